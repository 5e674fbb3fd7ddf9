"""Semantic validation for strategy config drafts.

``validate_strategy_config`` never raises.  Every check runs, and the result
is ordered by check category (name, positions, signals, operation lists,
operations, factors, numeric ranges) so callers can render it as a checklist.
"""

from __future__ import annotations

import math
from typing import Any

from src.engine.strategy.catalog import is_canonical_signal_name
from src.engine.strategy.errors import StrategyConfigViolation
from src.engine.strategy.models import (
    ALLOWED_OPERATES,
    DIGITS_RANGE,
    FEE_RATE_RANGE,
    INTERVAL_MIN,
    RESERVED_SIGNAL_KEYS,
    STOP_LOSS_RANGE,
    TIMEOUT_RANGE,
    EnsembleMethod,
    Factor,
    Operation,
    OperationSide,
    PositionConfig,
    SignalDefinition,
    SignalFreq,
    StrategyConfig,
)

_KNOWN_FREQS = frozenset(item.value for item in SignalFreq)
_KNOWN_ENSEMBLE_METHODS = frozenset(item.value for item in EnsembleMethod)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list | tuple):
        return list(value)
    return []


class _Buckets:
    """Violations grouped by check category, flattened in category order."""

    __slots__ = ("name", "positions", "signals", "operation_lists", "operations", "factors", "ranges")

    def __init__(self) -> None:
        self.name: list[StrategyConfigViolation] = []
        self.positions: list[StrategyConfigViolation] = []
        self.signals: list[StrategyConfigViolation] = []
        self.operation_lists: list[StrategyConfigViolation] = []
        self.operations: list[StrategyConfigViolation] = []
        self.factors: list[StrategyConfigViolation] = []
        self.ranges: list[StrategyConfigViolation] = []

    def flatten(self) -> list[StrategyConfigViolation]:
        return [
            *self.name,
            *self.positions,
            *self.signals,
            *self.operation_lists,
            *self.operations,
            *self.factors,
            *self.ranges,
        ]


def _check_int_range(
    *,
    field_name: str,
    value: Any,
    lower: int,
    upper: int | None,
    path: str,
    errors: list[StrategyConfigViolation],
) -> None:
    number = _as_int(value)
    if number is None:
        errors.append(
            StrategyConfigViolation(
                code="INVALID_NUMBER",
                message=f"'{field_name}' must be an integer.",
                path=path,
                value=value,
            )
        )
        return
    if number < lower or (upper is not None and number > upper):
        bound = f">= {lower}" if upper is None else f"between {lower} and {upper}"
        errors.append(
            StrategyConfigViolation(
                code="VALUE_OUT_OF_RANGE",
                message=f"'{field_name}' must be {bound}, got {number}.",
                path=path,
                value=value,
            )
        )


def _check_fee_rate(value: Any, errors: list[StrategyConfigViolation]) -> None:
    if not _is_number(value) or math.isnan(value) or math.isinf(value):
        errors.append(
            StrategyConfigViolation(
                code="INVALID_NUMBER",
                message="'fee_rate' must be a finite number.",
                path="$.fee_rate",
                value=value,
            )
        )
        return
    lower, upper = FEE_RATE_RANGE
    if not lower <= value <= upper:
        errors.append(
            StrategyConfigViolation(
                code="VALUE_OUT_OF_RANGE",
                message=f"'fee_rate' must be between {lower} and {upper}, got {value}.",
                path="$.fee_rate",
                value=value,
            )
        )


def _validate_signal_function(
    signal: Any,
    index: int,
    errors: list[StrategyConfigViolation],
) -> None:
    path = f"$.signals_config[{index}]"
    if not isinstance(signal, SignalDefinition):
        errors.append(
            StrategyConfigViolation(
                code="INVALID_SIGNAL_FUNCTION",
                message="Signal function entry must be a SignalDefinition.",
                path=path,
                value=type(signal).__name__,
            )
        )
        return

    if _is_blank(signal.name):
        errors.append(
            StrategyConfigViolation(
                code="MISSING_SIGNAL_FUNCTION_NAME",
                message="Signal function name is required.",
                path=f"{path}.name",
                value=signal.name,
            )
        )
    if str(signal.freq) not in _KNOWN_FREQS:
        errors.append(
            StrategyConfigViolation(
                code="UNSUPPORTED_FREQ",
                message=f"Unsupported frequency '{signal.freq}'.",
                path=f"{path}.freq",
                value=signal.freq,
            )
        )

    params = signal.params if isinstance(signal.params, dict) else {}
    for key in sorted(params, key=str):
        value = params[key]
        if key in RESERVED_SIGNAL_KEYS:
            errors.append(
                StrategyConfigViolation(
                    code="INVALID_SIGNAL_PARAM",
                    message=f"Parameter name '{key}' is reserved.",
                    path=f"{path}.{key}",
                    value=value,
                )
            )
        elif not _is_number(value):
            errors.append(
                StrategyConfigViolation(
                    code="INVALID_SIGNAL_PARAM",
                    message=f"Parameter '{key}' must be numeric.",
                    path=f"{path}.{key}",
                    value=value,
                )
            )


def _validate_factor(
    factor: Any,
    path: str,
    errors: list[StrategyConfigViolation],
) -> None:
    if not isinstance(factor, Factor):
        errors.append(
            StrategyConfigViolation(
                code="INVALID_FACTOR",
                message="Factor entry must be a Factor.",
                path=path,
                value=type(factor).__name__,
            )
        )
        return

    if factor.is_empty:
        errors.append(
            StrategyConfigViolation(
                code="EMPTY_FACTOR",
                message=f"Factor '{factor.name}' has no signals and never triggers.",
                path=path,
                value=factor.name,
                severity="warning",
            )
        )
        return

    for logic in ("signals_all", "signals_any", "signals_not"):
        for name in sorted(getattr(factor, logic), key=str):
            if not is_canonical_signal_name(name):
                errors.append(
                    StrategyConfigViolation(
                        code="INVALID_SIGNAL_NAME",
                        message=f"Signal name '{name}' does not follow freq_k2_k3_values_score.",
                        path=f"{path}.{logic}",
                        value=name,
                    )
                )


def _validate_operation(
    operation: Any,
    *,
    side: OperationSide,
    path: str,
    buckets: _Buckets,
) -> None:
    if not isinstance(operation, Operation):
        buckets.operations.append(
            StrategyConfigViolation(
                code="INVALID_OPERATION",
                message="Operation entry must be an Operation.",
                path=path,
                value=type(operation).__name__,
            )
        )
        return

    allowed = ALLOWED_OPERATES[side]
    if operation.operate not in allowed:
        buckets.operations.append(
            StrategyConfigViolation(
                code="OPERATE_SIDE_MISMATCH",
                message=(
                    f"Operate '{operation.operate}' is not allowed in {side.value}; "
                    f"expected one of {sorted(allowed)}."
                ),
                path=f"{path}.operate",
                value=operation.operate,
            )
        )

    factors = _as_list(operation.factors)
    if not factors:
        buckets.operations.append(
            StrategyConfigViolation(
                code="EMPTY_OPERATION",
                message="Operation needs at least one factor.",
                path=f"{path}.factors",
                value=[],
            )
        )
    for factor_index, factor in enumerate(factors):
        _validate_factor(factor, f"{path}.factors[{factor_index}]", buckets.factors)


def _validate_position(position: Any, index: int, buckets: _Buckets) -> None:
    path = f"$.positions_config[{index}]"
    if not isinstance(position, PositionConfig):
        buckets.operation_lists.append(
            StrategyConfigViolation(
                code="INVALID_POSITION",
                message="Position entry must be a PositionConfig.",
                path=path,
                value=type(position).__name__,
            )
        )
        return

    for side, code in ((OperationSide.OPENS, "EMPTY_OPENS"), (OperationSide.EXITS, "EMPTY_EXITS")):
        operations = _as_list(getattr(position, side.value))
        side_path = f"{path}.{side.value}"
        if not operations:
            buckets.operation_lists.append(
                StrategyConfigViolation(
                    code=code,
                    message=f"Position '{position.name}' needs at least one {side.value[:-1]} operation.",
                    path=side_path,
                    value=[],
                )
            )
        for operation_index, operation in enumerate(operations):
            _validate_operation(
                operation,
                side=side,
                path=f"{side_path}[{operation_index}]",
                buckets=buckets,
            )

    _check_int_range(
        field_name="interval",
        value=position.interval,
        lower=INTERVAL_MIN,
        upper=None,
        path=f"{path}.interval",
        errors=buckets.ranges,
    )
    _check_int_range(
        field_name="timeout",
        value=position.timeout,
        lower=TIMEOUT_RANGE[0],
        upper=TIMEOUT_RANGE[1],
        path=f"{path}.timeout",
        errors=buckets.ranges,
    )
    _check_int_range(
        field_name="stop_loss",
        value=position.stop_loss,
        lower=STOP_LOSS_RANGE[0],
        upper=STOP_LOSS_RANGE[1],
        path=f"{path}.stop_loss",
        errors=buckets.ranges,
    )
    if not isinstance(position.T0, bool):
        buckets.ranges.append(
            StrategyConfigViolation(
                code="INVALID_BOOLEAN",
                message="'T0' must be true or false.",
                path=f"{path}.T0",
                value=position.T0,
            )
        )


def validate_strategy_config(config: StrategyConfig) -> list[StrategyConfigViolation]:
    """Return every violation of ``config``; an empty list means submittable."""
    buckets = _Buckets()

    if _is_blank(getattr(config, "name", None)):
        buckets.name.append(
            StrategyConfigViolation(
                code="MISSING_STRATEGY_NAME",
                message="Strategy name is required.",
                path="$.name",
                value=getattr(config, "name", None),
            )
        )

    positions = _as_list(getattr(config, "positions", None))
    if not positions:
        buckets.positions.append(
            StrategyConfigViolation(
                code="MISSING_POSITIONS",
                message="At least one position is required.",
                path="$.positions_config",
                value=[],
            )
        )

    signals = _as_list(getattr(config, "signals", None))
    if not signals:
        buckets.signals.append(
            StrategyConfigViolation(
                code="MISSING_SIGNALS",
                message="At least one signal function is required.",
                path="$.signals_config",
                value=[],
            )
        )
    for index, signal in enumerate(signals):
        _validate_signal_function(signal, index, buckets.signals)

    for index, position in enumerate(positions):
        _validate_position(position, index, buckets)

    ensemble_method = getattr(config, "ensemble_method", None)
    if str(ensemble_method) not in _KNOWN_ENSEMBLE_METHODS:
        buckets.ranges.append(
            StrategyConfigViolation(
                code="INVALID_ENUM",
                message=(
                    f"Unsupported ensemble method '{ensemble_method}'; "
                    f"expected one of {sorted(_KNOWN_ENSEMBLE_METHODS)}."
                ),
                path="$.ensemble_method",
                value=ensemble_method,
            )
        )
    _check_fee_rate(getattr(config, "fee_rate", None), buckets.ranges)
    lower, upper = DIGITS_RANGE
    _check_int_range(
        field_name="digits",
        value=getattr(config, "digits", None),
        lower=lower,
        upper=upper,
        path="$.digits",
        errors=buckets.ranges,
    )

    return buckets.flatten()
