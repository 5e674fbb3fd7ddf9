"""Error models for strategy configuration validation, parsing and editing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

ViolationSeverity = Literal["error", "warning"]


@dataclass(frozen=True, slots=True)
class StrategyConfigViolation:
    """A single checklist item produced by validation."""

    code: str
    message: str
    path: str = ""
    value: Any = None
    severity: ViolationSeverity = "error"
    stage: str = "semantic"


@dataclass(frozen=True, slots=True)
class StrategyConfigValidationResult:
    """Validation response for schema + semantic phases."""

    is_valid: bool
    violations: tuple[StrategyConfigViolation, ...] = ()


class StrategyConfigValidationError(ValueError):
    """Raised when a wire payload cannot be parsed into a strategy config."""

    def __init__(self, violations: list[StrategyConfigViolation]) -> None:
        self.violations = violations
        summary = "; ".join(f"{item.code}@{item.path}: {item.message}" for item in violations)
        super().__init__(summary or "Strategy config validation failed")


class StrategyEditError(LookupError):
    """Raised when an edit addresses an entity that does not exist."""


class StrategyPatchApplyError(ValueError):
    """Raised when a JSON patch cannot be applied to a strategy config."""


class StrategyEngineError(Exception):
    """Base error for one failed call to the external strategy engine."""


class StrategyEngineTransportError(StrategyEngineError):
    """Network failure, timeout or non-2xx response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StrategyEngineRejectedError(StrategyEngineError):
    """The engine answered but refused the request; message is the engine's own."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
