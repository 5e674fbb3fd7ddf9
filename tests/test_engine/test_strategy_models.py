from __future__ import annotations

import re
from copy import deepcopy

import pytest

from src.engine.strategy.models import (
    ALLOWED_OPERATES,
    DEFAULT_OPERATE,
    Factor,
    FactorLogic,
    Operate,
    Operation,
    OperationSide,
    PositionConfig,
    SignalDefinition,
    StrategyConfig,
    mint_strategy_id,
)

UP = "15m_D0BL9_V230228_向上_任意_任意_任意_0"
DOWN = "15m_D0BL9_V230228_向下_任意_任意_任意_0"


def test_factor_coerces_signal_lists_to_sets() -> None:
    factor = Factor(name="f", signals_all=[UP, UP], signals_any=(DOWN,), signals_not=None)

    assert factor.signals_all == {UP}
    assert factor.signals_any == {DOWN}
    assert factor.signals_not == set()
    assert factor.all_signal_names() == {UP, DOWN}
    assert factor.signals(FactorLogic.ANY) is factor.signals_any
    assert factor.signals("signals_not") is factor.signals_not


def test_factor_equality_ignores_signal_order() -> None:
    assert Factor(name="f", signals_all=[UP, DOWN]) == Factor(name="f", signals_all=[DOWN, UP])


def test_empty_factor_flag() -> None:
    assert Factor(name="blank").is_empty is True
    assert Factor(name="not-only", signals_not=[UP]).is_empty is False


def test_unknown_logic_group_raises() -> None:
    with pytest.raises(ValueError):
        Factor().signals("signals_maybe")


def test_operate_sides_are_disjoint() -> None:
    assert ALLOWED_OPERATES[OperationSide.OPENS] == {Operate.LO, Operate.SO}
    assert ALLOWED_OPERATES[OperationSide.EXITS] == {Operate.LE, Operate.SE}
    assert DEFAULT_OPERATE["opens"] == Operate.LO
    assert DEFAULT_OPERATE["exits"] == Operate.LE
    # Plain strings compare equal to the enum members.
    assert "SO" in ALLOWED_OPERATES[OperationSide.OPENS]


def test_position_defaults_and_operation_lookup() -> None:
    opening = Operation(operate=Operate.LO, factors=[Factor(name="up", signals_all=[UP])])
    position = PositionConfig(name="p", opens=[opening])

    assert position.interval == 10
    assert position.timeout == 100
    assert position.stop_loss == 200
    assert position.T0 is False
    assert position.operations("opens") == [opening]
    assert position.operations(OperationSide.EXITS) == []


def test_strategy_defaults() -> None:
    config = StrategyConfig()

    assert config.category == "trend"
    assert config.ensemble_method == "mean"
    assert config.fee_rate == 0.0002
    assert config.digits == 2
    assert config.version == "1.0.0"
    assert config.tags == set()


def test_catalog_signal_names_collects_every_factor() -> None:
    config = StrategyConfig(
        positions=[
            PositionConfig(
                opens=[Operation(factors=[Factor(signals_all=[UP], signals_not=[DOWN])])],
                exits=[Operation(operate=Operate.LE, factors=[Factor(signals_any=[DOWN])])],
            )
        ]
    )

    assert config.catalog_signal_names() == {UP, DOWN}


def test_deepcopy_gives_independent_draft() -> None:
    config = StrategyConfig(
        positions=[PositionConfig(opens=[Operation(factors=[Factor(signals_all=[UP])])])],
        signals=[SignalDefinition(name="czsc.signals.cxt.cxt_bi_base_V230228", params={"bi_init_length": 9})],
    )
    clone = deepcopy(config)

    clone.positions[0].opens[0].factors[0].signals_all.add(DOWN)
    clone.signals[0].params["bi_init_length"] = 7

    assert config.positions[0].opens[0].factors[0].signals_all == {UP}
    assert config.signals[0].params == {"bi_init_length": 9}


def test_mint_strategy_id_shape_and_uniqueness() -> None:
    first = mint_strategy_id()
    second = mint_strategy_id()

    assert re.fullmatch(r"strategy_\d{13}_[0-9a-f]{6}", first)
    assert first != second
