"""Canonical wire projection of strategy configs and its inverse."""

from __future__ import annotations

import hashlib
import json
from typing import Any

from src.engine.strategy.errors import StrategyConfigValidationError
from src.engine.strategy.models import (
    DEFAULT_DIGITS,
    DEFAULT_FEE_RATE,
    DEFAULT_INTERVAL,
    DEFAULT_STOP_LOSS,
    DEFAULT_TIMEOUT,
    RESERVED_SIGNAL_KEYS,
    EnsembleMethod,
    Factor,
    Operate,
    Operation,
    PositionConfig,
    SignalDefinition,
    SignalFreq,
    StrategyConfig,
)
from src.engine.strategy.schema import validate_against_schema

WIRE_FIELDS: tuple[str, ...] = (
    "strategy_id",
    "name",
    "description",
    "category",
    "positions_config",
    "signals_config",
    "ensemble_method",
    "fee_rate",
    "digits",
    "version",
    "author",
    "tags",
)


def _factor_to_wire(factor: Factor) -> dict[str, Any]:
    return {
        "name": factor.name,
        "signals_all": sorted(factor.signals_all),
        "signals_any": sorted(factor.signals_any),
        "signals_not": sorted(factor.signals_not),
    }


def _operation_to_wire(operation: Operation) -> dict[str, Any]:
    return {
        "operate": str(operation.operate),
        "factors": [_factor_to_wire(factor) for factor in operation.factors],
    }


def _position_to_wire(position: PositionConfig) -> dict[str, Any]:
    return {
        "name": position.name,
        "opens": [_operation_to_wire(operation) for operation in position.opens],
        "exits": [_operation_to_wire(operation) for operation in position.exits],
        "interval": position.interval,
        "timeout": position.timeout,
        "stop_loss": position.stop_loss,
        "T0": position.T0,
    }


def _signal_to_wire(signal: SignalDefinition) -> dict[str, Any]:
    # Params are flattened next to name/freq; reserved keys always win.
    entry: dict[str, Any] = {
        key: value for key, value in signal.params.items() if key not in RESERVED_SIGNAL_KEYS
    }
    entry["name"] = signal.name
    entry["freq"] = str(signal.freq)
    return entry


def to_wire_format(config: StrategyConfig) -> dict[str, Any]:
    """Project a draft onto the JSON document the engine accepts."""
    return {
        "strategy_id": config.strategy_id,
        "name": config.name,
        "description": config.description,
        "category": config.category,
        "positions_config": [_position_to_wire(position) for position in config.positions],
        "signals_config": [_signal_to_wire(signal) for signal in config.signals],
        "ensemble_method": str(config.ensemble_method),
        "fee_rate": config.fee_rate,
        "digits": config.digits,
        "version": config.version,
        "author": config.author,
        "tags": sorted(config.tags),
    }


def to_wire_json(config: StrategyConfig, *, indent: int | None = None) -> str:
    """Canonical JSON text: sorted keys, sorted sets, UTF-8 kept readable."""
    payload = to_wire_format(config)
    if indent is None:
        return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=indent)


def payload_hash(payload: dict[str, Any]) -> str:
    normalized = json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def _coerce_enum(enum_type: type, value: Any) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        return value


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _dict_list(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _build_factor(raw: dict[str, Any]) -> Factor:
    return Factor(
        name=str(raw.get("name", "")),
        signals_all=_string_list(raw.get("signals_all")),
        signals_any=_string_list(raw.get("signals_any")),
        signals_not=_string_list(raw.get("signals_not")),
    )


def _build_operation(raw: dict[str, Any]) -> Operation:
    return Operation(
        operate=_coerce_enum(Operate, str(raw.get("operate", ""))),
        factors=[_build_factor(item) for item in _dict_list(raw.get("factors"))],
    )


def _build_position(raw: dict[str, Any]) -> PositionConfig:
    return PositionConfig(
        name=str(raw.get("name", "")),
        opens=[_build_operation(item) for item in _dict_list(raw.get("opens"))],
        exits=[_build_operation(item) for item in _dict_list(raw.get("exits"))],
        interval=raw.get("interval", DEFAULT_INTERVAL),
        timeout=raw.get("timeout", DEFAULT_TIMEOUT),
        stop_loss=raw.get("stop_loss", DEFAULT_STOP_LOSS),
        T0=bool(raw.get("T0", False)),
    )


def _build_signal(raw: dict[str, Any]) -> SignalDefinition:
    return SignalDefinition(
        name=str(raw.get("name", "")),
        freq=_coerce_enum(SignalFreq, str(raw.get("freq", ""))),
        params={key: value for key, value in raw.items() if key not in RESERVED_SIGNAL_KEYS},
    )


def build_strategy_config(payload: dict[str, Any]) -> StrategyConfig:
    """Build a draft from an already schema-checked wire document.

    Keys outside the wire field set (engine timestamps, flags) are dropped.
    """
    tags = payload.get("tags")
    return StrategyConfig(
        strategy_id=str(payload.get("strategy_id", "") or ""),
        name=str(payload.get("name", "") or ""),
        description=str(payload.get("description", "") or ""),
        category=str(payload.get("category", "") or ""),
        positions=[_build_position(item) for item in _dict_list(payload.get("positions_config"))],
        signals=[_build_signal(item) for item in _dict_list(payload.get("signals_config"))],
        ensemble_method=_coerce_enum(
            EnsembleMethod, str(payload.get("ensemble_method", EnsembleMethod.MEAN))
        ),
        fee_rate=payload.get("fee_rate", DEFAULT_FEE_RATE),
        digits=payload.get("digits", DEFAULT_DIGITS),
        version=str(payload.get("version", "") or ""),
        author=str(payload.get("author", "") or ""),
        tags=_string_list(tags),
    )


def decode_wire_payload(source: dict[str, Any] | str | bytes) -> dict[str, Any]:
    if isinstance(source, dict):
        return source
    parsed = json.loads(source)
    if not isinstance(parsed, dict):
        raise ValueError("Strategy config JSON must decode to an object.")
    return parsed


def from_wire_format(source: dict[str, Any] | str | bytes) -> StrategyConfig:
    """Inverse of ``to_wire_format``; raises on structurally invalid documents."""
    payload = decode_wire_payload(source)
    schema_errors = validate_against_schema(payload)
    if schema_errors:
        raise StrategyConfigValidationError(schema_errors)
    return build_strategy_config(payload)
