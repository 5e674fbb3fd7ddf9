"""End-to-end wire payload validation/parsing pipeline."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from src.engine.strategy.errors import (
    StrategyConfigValidationError,
    StrategyConfigValidationResult,
)
from src.engine.strategy.models import StrategyConfig
from src.engine.strategy.schema import validate_against_schema
from src.engine.strategy.semantic import validate_strategy_config
from src.engine.strategy.serializer import build_strategy_config


def load_strategy_payload(source: str | Path | dict[str, Any]) -> dict[str, Any]:
    """Load strategy payload from dict, JSON text or JSON file path."""
    if isinstance(source, dict):
        return dict(source)

    if isinstance(source, str) and source.lstrip().startswith("{"):
        return json.loads(source)

    path = Path(source).expanduser().resolve()
    return json.loads(path.read_text(encoding="utf-8"))


def validate_strategy_payload(payload: dict[str, Any]) -> StrategyConfigValidationResult:
    """Run schema validation first, then the draft checklist."""
    schema_errors = validate_against_schema(payload)
    if schema_errors:
        return StrategyConfigValidationResult(
            is_valid=False,
            violations=tuple(schema_errors),
        )

    violations = validate_strategy_config(build_strategy_config(payload))
    return StrategyConfigValidationResult(
        is_valid=not violations,
        violations=tuple(violations),
    )


def parse_strategy_payload(payload: dict[str, Any]) -> StrategyConfig:
    """Validate and parse a payload into a submittable config."""
    validation = validate_strategy_payload(payload)
    if not validation.is_valid:
        raise StrategyConfigValidationError(list(validation.violations))
    return build_strategy_config(payload)
