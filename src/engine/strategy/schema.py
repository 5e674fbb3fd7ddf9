"""Structural check of wire documents against the bundled JSON schema.

Schema errors are reported with the same codes the checklist uses where the
two overlap (unknown frequency, unknown operate, bad parameter value), so a
caller can treat both sources uniformly.
"""

from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from src.engine.strategy.errors import StrategyConfigViolation
from src.engine.strategy.models import RESERVED_SIGNAL_KEYS

_ASSETS_DIR = Path(__file__).resolve().parent / "assets"
_SCHEMA_PATH = _ASSETS_DIR / "strategy_config_schema.json"

_UNEXPECTED_FIELD_PATTERN = re.compile(r"'([^']+)' was unexpected")

# enum-constrained field -> violation code
_ENUM_CODES = {
    "freq": "UNSUPPORTED_FREQ",
    "operate": "INVALID_OPERATE",
    "ensemble_method": "INVALID_ENUM",
}


@lru_cache(maxsize=1)
def load_config_schema() -> dict[str, Any]:
    return json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    return Draft202012Validator(load_config_schema())


def _json_path(parts: list[str | int]) -> str:
    return "$" + "".join(f"[{item}]" if isinstance(item, int) else f".{item}" for item in parts)


def _is_signal_param(parts: list[str | int]) -> bool:
    # $.signals_config[i].<param>
    return (
        len(parts) == 3
        and parts[0] == "signals_config"
        and isinstance(parts[2], str)
        and parts[2] not in RESERVED_SIGNAL_KEYS
    )


def _violation_code(error: ValidationError, parts: list[str | int]) -> str:
    field_name = parts[-1] if parts and isinstance(parts[-1], str) else None
    if error.validator == "enum" and field_name in _ENUM_CODES:
        return _ENUM_CODES[field_name]
    if error.validator == "type" and _is_signal_param(parts):
        return "INVALID_SIGNAL_PARAM"
    if error.validator == "required":
        return "MISSING_REQUIRED_FIELD"
    if error.validator == "type":
        return "TYPE_MISMATCH"
    if error.validator == "additionalProperties":
        return "ADDITIONAL_PROPERTY"
    return "SCHEMA_VALIDATION_ERROR"


def _to_violation(error: ValidationError) -> StrategyConfigViolation:
    parts = list(error.absolute_path)
    code = _violation_code(error, parts)
    message = error.message
    value: Any = error.instance

    if code == "MISSING_REQUIRED_FIELD" and isinstance(error.instance, dict):
        value = sorted(error.instance)
    elif code == "ADDITIONAL_PROPERTY":
        matched = _UNEXPECTED_FIELD_PATTERN.search(error.message)
        value = matched.group(1) if matched else None
        if value:
            message = f"Unexpected field '{value}'"
    elif code == "INVALID_SIGNAL_PARAM":
        message = f"Parameter '{parts[-1]}' must be numeric."
    elif code in _ENUM_CODES.values():
        allowed = error.validator_value if isinstance(error.validator_value, list) else []
        message = f"Unsupported {parts[-1]} {error.instance!r}; expected one of {allowed}."

    return StrategyConfigViolation(
        code=code,
        message=message,
        path=_json_path(parts),
        value=value,
        stage="schema",
    )


def validate_against_schema(payload: Any) -> list[StrategyConfigViolation]:
    """Every structural problem in ``payload``, ordered by path."""
    errors = sorted(_validator().iter_errors(payload), key=lambda item: (str(item.path), item.message))
    return [_to_violation(error) for error in errors]
