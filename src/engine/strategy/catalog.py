"""Read-only catalogs of catalog signals and signal functions.

Two namespaces live here and must not be mixed up:

* catalog signals: instance names such as ``15m_D0BL9_V230228_向上_任意_任意_任意_0``
  that factors combine with AND / OR / NOT;
* signal functions: fully-qualified engine functions such as
  ``czsc.signals.cxt.cxt_bi_base_V230228`` that a strategy lists so the engine
  computes the signals its factors need.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType

from src.engine.strategy.models import SignalFreq

_KNOWN_FREQS = frozenset(item.value for item in SignalFreq)
# freq + k2 + k3 + three or four values + score
_MIN_SEGMENTS = 7
_MAX_SEGMENTS = 8


@dataclass(frozen=True, slots=True)
class SignalKey:
    """Parsed form of a catalog signal name."""

    freq: str
    k2: str
    k3: str
    values: tuple[str, ...]
    score: int

    @property
    def key(self) -> str:
        return "_".join((self.freq, self.k2, self.k3))

    @property
    def value(self) -> str:
        return "_".join(self.values)


def parse_signal_name(name: str) -> SignalKey | None:
    """Split a catalog signal name, returning ``None`` when it is not canonical."""
    if not isinstance(name, str):
        return None
    segments = name.split("_")
    if not _MIN_SEGMENTS <= len(segments) <= _MAX_SEGMENTS:
        return None
    if any(not segment or any(ch.isspace() for ch in segment) for segment in segments):
        return None

    freq, k2, k3, *values, score = segments
    if freq not in _KNOWN_FREQS:
        return None
    try:
        score_value = int(score)
    except ValueError:
        return None
    return SignalKey(freq=freq, k2=k2, k3=k3, values=tuple(values), score=score_value)


def is_canonical_signal_name(name: str) -> bool:
    return parse_signal_name(name) is not None


@dataclass(frozen=True, slots=True)
class CatalogSignal:
    """One known catalog signal with display metadata."""

    name: str
    display_name: str
    freq: str
    category: str
    description: str = ""


class SignalCatalog:
    """Immutable lookup/search over catalog signals, in insertion order."""

    __slots__ = ("_by_name", "_entries")

    def __init__(self, entries: tuple[CatalogSignal, ...] | list[CatalogSignal]) -> None:
        self._entries: tuple[CatalogSignal, ...] = tuple(entries)
        self._by_name: Mapping[str, CatalogSignal] = MappingProxyType(
            {entry.name: entry for entry in self._entries}
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogSignal]:
        return iter(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> CatalogSignal | None:
        return self._by_name.get(name)

    def contains(self, name: str) -> bool:
        return name in self._by_name

    def search(
        self,
        text: str | None = None,
        *,
        freq: str | None = None,
        category: str | None = None,
    ) -> list[CatalogSignal]:
        """Case-insensitive substring search on name/display name plus exact filters."""
        needle = text.strip().lower() if isinstance(text, str) else ""
        matches: list[CatalogSignal] = []
        for entry in self._entries:
            if needle and needle not in entry.name.lower() and needle not in entry.display_name.lower():
                continue
            if freq and entry.freq != freq:
                continue
            if category and entry.category != category:
                continue
            matches.append(entry)
        return matches

    def frequencies(self) -> list[str]:
        return list(dict.fromkeys(entry.freq for entry in self._entries))

    def categories(self) -> list[str]:
        return list(dict.fromkeys(entry.category for entry in self._entries))


@dataclass(frozen=True, slots=True)
class SignalFunctionSpec:
    """An engine signal function and the params it starts with."""

    name: str
    display_name: str
    default_params: Mapping[str, int | float] = field(default_factory=dict)


_CATALOG_ROWS: tuple[tuple[str, str, str, str], ...] = (
    ("15m_D0BL9_V230228_向上_任意_任意_任意_0", "笔方向向上", "15m", "笔相关"),
    ("15m_D0BL9_V230228_向下_任意_任意_任意_0", "笔方向向下", "15m", "笔相关"),
    ("15m_D1BS_一买_任意_任意_任意_0", "缠论一买", "15m", "买卖点"),
    ("15m_D1SS_一卖_任意_任意_任意_0", "缠论一卖", "15m", "买卖点"),
    ("15m_D2BS_二买_任意_任意_任意_0", "缠论二买", "15m", "买卖点"),
    ("15m_D2SS_二卖_任意_任意_任意_0", "缠论二卖", "15m", "买卖点"),
    ("15m_D3BS_三买_任意_任意_任意_0", "缠论三买", "15m", "买卖点"),
    ("15m_D3SS_三卖_任意_任意_任意_0", "缠论三卖", "15m", "买卖点"),
    ("15m_MACD_金叉_任意_任意_任意_0", "MACD金叉", "15m", "MACD"),
    ("15m_MACD_死叉_任意_任意_任意_0", "MACD死叉", "15m", "MACD"),
    ("15m_VOL_放量_任意_任意_任意_0", "成交量放量", "15m", "成交量"),
    ("15m_VOL_缩量_任意_任意_任意_0", "成交量缩量", "15m", "成交量"),
    ("1h_D0BL9_V230228_向上_任意_任意_任意_0", "笔方向向上", "1h", "笔相关"),
    ("1h_D0BL9_V230228_向下_任意_任意_任意_0", "笔方向向下", "1h", "笔相关"),
    ("1h_D1BS_一买_任意_任意_任意_0", "缠论一买", "1h", "买卖点"),
    ("1h_D1SS_一卖_任意_任意_任意_0", "缠论一卖", "1h", "买卖点"),
)

_SIGNAL_FUNCTIONS: tuple[SignalFunctionSpec, ...] = (
    SignalFunctionSpec(
        name="czsc.signals.cxt.cxt_bi_base_V230228",
        display_name="笔方向基础",
        default_params=MappingProxyType({"bi_init_length": 9}),
    ),
    SignalFunctionSpec(
        name="czsc.signals.cxt.cxt_first_buy_V221126",
        display_name="缠论一买",
        default_params=MappingProxyType({"di": 1}),
    ),
    SignalFunctionSpec(
        name="czsc.signals.cxt.cxt_second_bs_V230320",
        display_name="缠论二买二卖",
        default_params=MappingProxyType({"di": 1}),
    ),
    SignalFunctionSpec(
        name="czsc.signals.cxt.cxt_third_bs_V230319",
        display_name="缠论三买三卖",
        default_params=MappingProxyType({"di": 1}),
    ),
    SignalFunctionSpec(
        name="czsc.signals.bar.bar_macd_V230101",
        display_name="MACD指标",
        default_params=MappingProxyType({"fast": 12, "slow": 26, "signal": 9}),
    ),
    SignalFunctionSpec(
        name="czsc.signals.vol.vol_ma_V230101",
        display_name="成交量均线",
        default_params=MappingProxyType({"timeperiod": 20}),
    ),
)


@lru_cache(maxsize=1)
def get_signal_catalog() -> SignalCatalog:
    """Process-wide default catalog, built once on first use."""
    return SignalCatalog(
        [
            CatalogSignal(name=name, display_name=display_name, freq=freq, category=category)
            for name, display_name, freq, category in _CATALOG_ROWS
        ]
    )


def list_signal_functions() -> list[SignalFunctionSpec]:
    return list(_SIGNAL_FUNCTIONS)


def get_signal_function(name: str) -> SignalFunctionSpec | None:
    for spec in _SIGNAL_FUNCTIONS:
        if spec.name == name:
            return spec
    return None


def default_signal_function() -> SignalFunctionSpec:
    return _SIGNAL_FUNCTIONS[0]
