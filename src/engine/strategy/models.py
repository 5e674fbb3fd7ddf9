"""Typed model objects for editable strategy configurations.

The hierarchy is Strategy -> Position -> Operation -> Factor -> signal names.
Every child list is owned by exactly one parent; nothing is shared or
back-referenced, so a ``deepcopy`` of a strategy is a fully independent draft.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import uuid4


class Operate(StrEnum):
    """Trade action performed when an operation triggers."""

    LO = "LO"  # open long
    SO = "SO"  # open short
    LE = "LE"  # exit long
    SE = "SE"  # exit short


class OperationSide(StrEnum):
    """Which list of a position an operation lives in."""

    OPENS = "opens"
    EXITS = "exits"


class FactorLogic(StrEnum):
    """Logic group a signal participates in inside a factor."""

    ALL = "signals_all"
    ANY = "signals_any"
    NOT = "signals_not"


class SignalFreq(StrEnum):
    """Bar periods understood by the execution engine."""

    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"


class EnsembleMethod(StrEnum):
    """How position-level outputs are combined into one strategy decision."""

    MEAN = "mean"
    VOTE = "vote"
    MAX = "max"


ALLOWED_OPERATES: dict[str, frozenset[str]] = {
    OperationSide.OPENS: frozenset({Operate.LO, Operate.SO}),
    OperationSide.EXITS: frozenset({Operate.LE, Operate.SE}),
}
DEFAULT_OPERATE: dict[str, Operate] = {
    OperationSide.OPENS: Operate.LO,
    OperationSide.EXITS: Operate.LE,
}

INTERVAL_MIN = 0
TIMEOUT_RANGE = (10, 500)
STOP_LOSS_RANGE = (50, 1000)
FEE_RATE_RANGE = (0.0, 0.01)
DIGITS_RANGE = (0, 6)

DEFAULT_INTERVAL = 10
DEFAULT_TIMEOUT = 100
DEFAULT_STOP_LOSS = 200
DEFAULT_FEE_RATE = 0.0002
DEFAULT_DIGITS = 2

# Keys of a signal-function entry that are not part of its parameter bag.
RESERVED_SIGNAL_KEYS = frozenset({"name", "freq"})


@dataclass(slots=True)
class SignalDefinition:
    """One signal function the engine must compute, plus its numeric params."""

    name: str = ""
    freq: str = SignalFreq.M15
    params: dict[str, int | float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.params = dict(self.params)


@dataclass(slots=True)
class Factor:
    """AND / OR / NOT combination of catalog signal names."""

    name: str = ""
    signals_all: set[str] = field(default_factory=set)
    signals_any: set[str] = field(default_factory=set)
    signals_not: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.signals_all = _as_name_set(self.signals_all)
        self.signals_any = _as_name_set(self.signals_any)
        self.signals_not = _as_name_set(self.signals_not)

    @property
    def is_empty(self) -> bool:
        return not (self.signals_all or self.signals_any or self.signals_not)

    def signals(self, logic: str) -> set[str]:
        return getattr(self, FactorLogic(logic).value)

    def all_signal_names(self) -> set[str]:
        return self.signals_all | self.signals_any | self.signals_not


@dataclass(slots=True)
class Operation:
    """Trade action triggered by the OR of its factors."""

    operate: str = Operate.LO
    factors: list[Factor] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.factors = list(self.factors)


@dataclass(slots=True)
class PositionConfig:
    """Open/exit operations plus the risk parameters of one tradeable unit."""

    name: str = ""
    opens: list[Operation] = field(default_factory=list)
    exits: list[Operation] = field(default_factory=list)
    interval: int = DEFAULT_INTERVAL
    timeout: int = DEFAULT_TIMEOUT
    stop_loss: int = DEFAULT_STOP_LOSS
    T0: bool = False  # noqa: N815

    def __post_init__(self) -> None:
        self.opens = list(self.opens)
        self.exits = list(self.exits)

    def operations(self, side: str) -> list[Operation]:
        return getattr(self, OperationSide(side).value)


@dataclass(slots=True)
class StrategyConfig:
    """A complete (or in-progress) strategy draft."""

    strategy_id: str = ""
    name: str = ""
    description: str = ""
    category: str = "trend"
    positions: list[PositionConfig] = field(default_factory=list)
    signals: list[SignalDefinition] = field(default_factory=list)
    ensemble_method: str = EnsembleMethod.MEAN
    fee_rate: float = DEFAULT_FEE_RATE
    digits: int = DEFAULT_DIGITS
    version: str = "1.0.0"
    author: str = ""
    tags: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.positions = list(self.positions)
        self.signals = list(self.signals)
        self.tags = _as_name_set(self.tags)

    def catalog_signal_names(self) -> set[str]:
        """Every catalog signal referenced by any factor of any position."""
        names: set[str] = set()
        for position in self.positions:
            for operation in (*position.opens, *position.exits):
                for factor in operation.factors:
                    names |= factor.all_signal_names()
        return names


def mint_strategy_id() -> str:
    """Generate a fresh, unique strategy identifier."""
    return f"strategy_{int(time.time() * 1000)}_{uuid4().hex[:6]}"


def _as_name_set(values: Iterable[str] | None) -> set[str]:
    if values is None:
        return set()
    if isinstance(values, str):
        return {values}
    return {str(item) for item in values}
