"""Reference truth semantics for factors and operations.

The execution engine owns signal computation and decides what an "active"
signal value is.  These helpers pin down the boolean contract a strategy
config declares so it can be documented and tested on its own.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from src.engine.strategy.models import Factor, Operation

ActivePredicate = Callable[[Any], bool]


def _active(name: str, observed: Mapping[str, Any], is_active: ActivePredicate) -> bool:
    if name not in observed:
        return False
    return bool(is_active(observed[name]))


def factor_is_satisfied(
    factor: Factor,
    observed: Mapping[str, Any],
    *,
    is_active: ActivePredicate = bool,
) -> bool:
    """all(signals_all) and (no signals_any or any(signals_any)) and not any(signals_not).

    An empty ``signals_all`` is vacuously true, so OR-only and NOT-only factors
    work.  A factor with all three groups empty cannot contribute truth and is
    always false; the validator reports it as a no-op.
    """
    if factor.is_empty:
        return False
    if not all(_active(name, observed, is_active) for name in factor.signals_all):
        return False
    if factor.signals_any and not any(_active(name, observed, is_active) for name in factor.signals_any):
        return False
    return not any(_active(name, observed, is_active) for name in factor.signals_not)


def operation_is_triggered(
    operation: Operation,
    observed: Mapping[str, Any],
    *,
    is_active: ActivePredicate = bool,
) -> bool:
    """OR across factors; an operation without factors never triggers."""
    return any(
        factor_is_satisfied(factor, observed, is_active=is_active) for factor in operation.factors
    )


def triggered_operations(
    operations: Iterable[Operation],
    observed: Mapping[str, Any],
    *,
    is_active: ActivePredicate = bool,
) -> list[Operation]:
    return [
        operation
        for operation in operations
        if operation_is_triggered(operation, observed, is_active=is_active)
    ]
