"""Pure draft edits.

Every function takes a draft and returns a new one.  The input is deep-copied
first and never mutated, so a caller can always keep the previous draft.
Addressing an entity that does not exist raises ``StrategyEditError``.
"""

from __future__ import annotations

from collections.abc import Iterable
from copy import deepcopy
from typing import Any

import jsonpatch

from src.engine.strategy.catalog import default_signal_function, get_signal_function
from src.engine.strategy.errors import (
    StrategyConfigValidationError,
    StrategyEditError,
    StrategyPatchApplyError,
)
from src.engine.strategy.models import (
    DEFAULT_OPERATE,
    RESERVED_SIGNAL_KEYS,
    EnsembleMethod,
    Factor,
    FactorLogic,
    Operate,
    Operation,
    OperationSide,
    PositionConfig,
    SignalDefinition,
    SignalFreq,
    StrategyConfig,
)
from src.engine.strategy.serializer import WIRE_FIELDS, from_wire_format, to_wire_format

_POSITION_FIELDS = frozenset({"name", "interval", "timeout", "stop_loss", "T0"})


def _coerce_enum(enum_type: type, value: Any) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        return value


def _side(side: str) -> OperationSide:
    try:
        return OperationSide(side)
    except ValueError as exc:
        raise StrategyEditError(f"Unknown operation side '{side}'; expected 'opens' or 'exits'.") from exc


def _logic(logic: str) -> FactorLogic:
    try:
        return FactorLogic(logic)
    except ValueError as exc:
        raise StrategyEditError(
            f"Unknown factor logic '{logic}'; expected signals_all, signals_any or signals_not."
        ) from exc


def _item_at(items: list[Any], index: int, label: str) -> Any:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(items):
        raise StrategyEditError(f"{label} index {index} is out of range (size {len(items)}).")
    return items[index]


def _position_at(draft: StrategyConfig, index: int) -> PositionConfig:
    return _item_at(draft.positions, index, "Position")


def _operations_at(draft: StrategyConfig, position_index: int, side: str) -> list[Operation]:
    return _position_at(draft, position_index).operations(_side(side))


def _operation_at(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
) -> Operation:
    return _item_at(_operations_at(draft, position_index, side), operation_index, "Operation")


def _factor_at(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
    factor_index: int,
) -> Factor:
    operation = _operation_at(draft, position_index, side, operation_index)
    return _item_at(operation.factors, factor_index, "Factor")


def _signal_at(draft: StrategyConfig, index: int) -> SignalDefinition:
    return _item_at(draft.signals, index, "Signal function")


def _check_param_value(key: str, value: Any) -> None:
    if key in RESERVED_SIGNAL_KEYS:
        raise ValueError(f"Parameter name '{key}' is reserved.")
    if not isinstance(value, int | float) or isinstance(value, bool):
        raise ValueError(f"Parameter '{key}' must be numeric, got {value!r}.")


# ---------------------------------------------------------------------------
# Strategy-level fields
# ---------------------------------------------------------------------------
def update_metadata(
    draft: StrategyConfig,
    *,
    name: str | None = None,
    description: str | None = None,
    category: str | None = None,
    version: str | None = None,
    author: str | None = None,
    tags: Iterable[str] | None = None,
) -> StrategyConfig:
    updated = deepcopy(draft)
    if name is not None:
        updated.name = name
    if description is not None:
        updated.description = description
    if category is not None:
        updated.category = category
    if version is not None:
        updated.version = version
    if author is not None:
        updated.author = author
    if tags is not None:
        updated.tags = {str(item) for item in tags}
    return updated


def update_backtest_params(
    draft: StrategyConfig,
    *,
    ensemble_method: str | None = None,
    fee_rate: float | None = None,
    digits: int | None = None,
) -> StrategyConfig:
    """Range checks are left to the validator so the draft stays editable."""
    updated = deepcopy(draft)
    if ensemble_method is not None:
        updated.ensemble_method = _coerce_enum(EnsembleMethod, ensemble_method)
    if fee_rate is not None:
        updated.fee_rate = fee_rate
    if digits is not None:
        updated.digits = digits
    return updated


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------
def add_position(draft: StrategyConfig, position: PositionConfig | None = None) -> StrategyConfig:
    updated = deepcopy(draft)
    if position is None:
        position = PositionConfig(name=f"Position {len(updated.positions) + 1}")
    updated.positions.append(deepcopy(position))
    return updated


def remove_position(draft: StrategyConfig, position_index: int) -> StrategyConfig:
    updated = deepcopy(draft)
    _position_at(updated, position_index)
    del updated.positions[position_index]
    return updated


def update_position(draft: StrategyConfig, position_index: int, **fields: Any) -> StrategyConfig:
    unknown = sorted(set(fields) - _POSITION_FIELDS)
    if unknown:
        raise StrategyEditError(f"Unknown position fields: {unknown}")
    updated = deepcopy(draft)
    position = _position_at(updated, position_index)
    for field_name, value in fields.items():
        setattr(position, field_name, value)
    return updated


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------
def add_operation(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operate: str | None = None,
) -> StrategyConfig:
    resolved_side = _side(side)
    updated = deepcopy(draft)
    operations = _operations_at(updated, position_index, resolved_side)
    chosen = DEFAULT_OPERATE[resolved_side] if operate is None else _coerce_enum(Operate, operate)
    operations.append(Operation(operate=chosen))
    return updated


def remove_operation(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
) -> StrategyConfig:
    updated = deepcopy(draft)
    operations = _operations_at(updated, position_index, side)
    _item_at(operations, operation_index, "Operation")
    del operations[operation_index]
    return updated


def update_operation(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
    *,
    operate: str,
) -> StrategyConfig:
    updated = deepcopy(draft)
    operation = _operation_at(updated, position_index, side, operation_index)
    operation.operate = _coerce_enum(Operate, operate)
    return updated


# ---------------------------------------------------------------------------
# Factors
# ---------------------------------------------------------------------------
def add_factor(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
    factor: Factor | None = None,
) -> StrategyConfig:
    updated = deepcopy(draft)
    operation = _operation_at(updated, position_index, side, operation_index)
    if factor is None:
        factor = Factor(name=f"Factor {len(operation.factors) + 1}")
    operation.factors.append(deepcopy(factor))
    return updated


def remove_factor(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
    factor_index: int,
) -> StrategyConfig:
    updated = deepcopy(draft)
    operation = _operation_at(updated, position_index, side, operation_index)
    _item_at(operation.factors, factor_index, "Factor")
    del operation.factors[factor_index]
    return updated


def rename_factor(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
    factor_index: int,
    name: str,
) -> StrategyConfig:
    updated = deepcopy(draft)
    _factor_at(updated, position_index, side, operation_index, factor_index).name = name
    return updated


def add_factor_signal(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
    factor_index: int,
    logic: str,
    signal_name: str,
) -> StrategyConfig:
    """Add ``signal_name`` to one logic group; adding it twice changes nothing."""
    resolved_logic = _logic(logic)
    updated = deepcopy(draft)
    factor = _factor_at(updated, position_index, side, operation_index, factor_index)
    name = signal_name.strip() if isinstance(signal_name, str) else ""
    if name:
        factor.signals(resolved_logic).add(name)
    return updated


def remove_factor_signal(
    draft: StrategyConfig,
    position_index: int,
    side: str,
    operation_index: int,
    factor_index: int,
    logic: str,
    signal_name: str,
) -> StrategyConfig:
    resolved_logic = _logic(logic)
    updated = deepcopy(draft)
    factor = _factor_at(updated, position_index, side, operation_index, factor_index)
    factor.signals(resolved_logic).discard(signal_name)
    return updated


# ---------------------------------------------------------------------------
# Signal functions
# ---------------------------------------------------------------------------
def add_signal_function(
    draft: StrategyConfig,
    function_name: str | None = None,
    freq: str = SignalFreq.M15,
) -> StrategyConfig:
    """Append a signal function entry pre-filled with that function's default params."""
    spec = default_signal_function() if function_name is None else get_signal_function(function_name)
    name = function_name if spec is None else spec.name
    params = {} if spec is None else dict(spec.default_params)
    updated = deepcopy(draft)
    updated.signals.append(
        SignalDefinition(name=name or "", freq=_coerce_enum(SignalFreq, freq), params=params)
    )
    return updated


def remove_signal_function(draft: StrategyConfig, index: int) -> StrategyConfig:
    updated = deepcopy(draft)
    _signal_at(updated, index)
    del updated.signals[index]
    return updated


def update_signal_function(
    draft: StrategyConfig,
    index: int,
    *,
    freq: str | None = None,
    params: dict[str, int | float] | None = None,
) -> StrategyConfig:
    if params is not None:
        for key, value in params.items():
            _check_param_value(key, value)
    updated = deepcopy(draft)
    signal = _signal_at(updated, index)
    if freq is not None:
        signal.freq = _coerce_enum(SignalFreq, freq)
    if params is not None:
        signal.params = dict(params)
    return updated


def change_signal_function(draft: StrategyConfig, index: int, function_name: str) -> StrategyConfig:
    """Switch an entry to another function: freq is kept, params reset to its defaults."""
    spec = get_signal_function(function_name)
    updated = deepcopy(draft)
    signal = _signal_at(updated, index)
    signal.name = function_name
    signal.params = {} if spec is None else dict(spec.default_params)
    return updated


def set_signal_param(draft: StrategyConfig, index: int, key: str, value: int | float) -> StrategyConfig:
    _check_param_value(key, value)
    updated = deepcopy(draft)
    _signal_at(updated, index).params[key] = value
    return updated


# ---------------------------------------------------------------------------
# JSON patch on the wire form
# ---------------------------------------------------------------------------
def _normalize_patch_ops(patch_ops: list[dict[str, Any]]) -> list[dict[str, Any]]:
    if not isinstance(patch_ops, list) or not patch_ops:
        raise StrategyPatchApplyError("Patch payload must be a non-empty JSON array.")

    normalized: list[dict[str, Any]] = []
    for index, item in enumerate(patch_ops):
        if not isinstance(item, dict):
            raise StrategyPatchApplyError(f"Patch operation at index {index} must be a JSON object.")
        op = item.get("op")
        path = item.get("path")
        if not isinstance(op, str) or not op.strip():
            raise StrategyPatchApplyError(f"Patch operation at index {index} has invalid 'op'.")
        if not isinstance(path, str):
            raise StrategyPatchApplyError(f"Patch operation at index {index} has invalid 'path'.")
        normalized.append(dict(item))
    return normalized


def apply_strategy_patch(draft: StrategyConfig, patch_ops: list[dict[str, Any]]) -> StrategyConfig:
    """Apply RFC 6902 operations to the wire form of ``draft`` and parse the result."""
    normalized = _normalize_patch_ops(patch_ops)
    try:
        patch = jsonpatch.JsonPatch(normalized)
        patched = patch.apply(to_wire_format(draft), in_place=False)
    except Exception as exc:  # noqa: BLE001
        raise StrategyPatchApplyError(str(exc)) from exc

    if not isinstance(patched, dict):
        raise StrategyPatchApplyError("Patched strategy payload must remain a JSON object.")
    try:
        return from_wire_format(patched)
    except StrategyConfigValidationError as exc:
        raise StrategyPatchApplyError(f"Patched strategy payload is malformed: {exc}") from exc


def diff_strategy_configs(before: StrategyConfig, after: StrategyConfig) -> list[dict[str, Any]]:
    patch = jsonpatch.make_patch(to_wire_format(before), to_wire_format(after))
    return patch.patch if isinstance(patch.patch, list) else []


def build_update_payload(original: StrategyConfig, edited: StrategyConfig) -> dict[str, Any]:
    """Partial-update body: the top-level wire fields whose values changed."""
    before = to_wire_format(original)
    after = to_wire_format(edited)
    return {
        key: after[key]
        for key in WIRE_FIELDS
        if key != "strategy_id" and before.get(key) != after.get(key)
    }
