from __future__ import annotations

from src.engine.strategy import to_wire_format
from src.engine.strategy.view_state import EditorViewState, factor_key, operation_key


def test_first_position_starts_expanded() -> None:
    state = EditorViewState()

    assert state.is_position_expanded(0) is True
    assert state.is_position_expanded(1) is False


def test_toggles_flip_state() -> None:
    state = EditorViewState()

    assert state.toggle_position(1) is True
    assert state.toggle_position(1) is False
    assert state.toggle_operation(0, "opens", 0) is True
    assert state.is_operation_expanded(0, "opens", 0) is True
    assert state.toggle_factor(0, "opens", 0, 2) is True
    assert state.is_factor_expanded(0, "opens", 0, 2) is True
    assert state.toggle_factor(0, "opens", 0, 2) is False


def test_keys_format() -> None:
    assert operation_key(1, "exits", 2) == "1-exits-2"
    assert factor_key(1, "exits", 2, 3) == "1-exits-2-3"


def test_expand_only_position() -> None:
    state = EditorViewState(expanded_positions={0, 2, 3})

    state.expand_only_position(2)

    assert state.expanded_positions == {2}


def test_position_removal_shifts_later_positions() -> None:
    state = EditorViewState(
        expanded_positions={0, 1, 2},
        expanded_operations={"0-opens-0", "1-opens-0", "2-exits-1"},
        expanded_factors={"1-opens-0-0", "2-exits-1-0"},
    )

    state.position_removed(1)

    assert state.expanded_positions == {0, 1}
    assert state.expanded_operations == {"0-opens-0", "1-exits-1"}
    assert state.expanded_factors == {"1-exits-1-0"}


def test_operation_removal_only_touches_same_side() -> None:
    state = EditorViewState(
        expanded_operations={"0-opens-0", "0-opens-1", "0-opens-2", "0-exits-1", "1-opens-2"},
        expanded_factors={"0-opens-1-0", "0-opens-2-1", "0-exits-2-0"},
    )

    state.operation_removed(0, "opens", 1)

    assert state.expanded_operations == {"0-opens-0", "0-opens-1", "0-exits-1", "1-opens-2"}
    assert state.expanded_factors == {"0-opens-1-1", "0-exits-2-0"}


def test_factor_removal_only_touches_same_operation() -> None:
    state = EditorViewState(expanded_factors={"0-opens-0-0", "0-opens-0-1", "0-opens-0-3", "0-opens-1-3"})

    state.factor_removed(0, "opens", 0, 1)

    assert state.expanded_factors == {"0-opens-0-0", "0-opens-0-2", "0-opens-1-3"}


def test_view_state_is_not_part_of_the_wire_document(bi_long_draft) -> None:
    wire = to_wire_format(bi_long_draft)

    assert "expanded_positions" not in wire
    assert not any(key.startswith("expanded") for key in wire)
