"""Expand/collapse state of the strategy editor tree.

This is presentation state only.  It is keyed by positional indices, lives
next to a draft, and is never part of the serialized strategy.
"""

from __future__ import annotations

from dataclasses import dataclass, field


def operation_key(position_index: int, side: str, operation_index: int) -> str:
    return f"{position_index}-{side}-{operation_index}"


def factor_key(position_index: int, side: str, operation_index: int, factor_index: int) -> str:
    return f"{position_index}-{side}-{operation_index}-{factor_index}"


def _parse_key(key: str) -> tuple[int, str, list[int]] | None:
    parts = key.split("-")
    if len(parts) < 3:
        return None
    try:
        position_index = int(parts[0])
        rest = [int(item) for item in parts[2:]]
    except ValueError:
        return None
    return position_index, parts[1], rest


def _join_key(position_index: int, side: str, rest: list[int]) -> str:
    return "-".join([str(position_index), side, *(str(item) for item in rest)])


@dataclass(slots=True)
class EditorViewState:
    expanded_positions: set[int] = field(default_factory=lambda: {0})
    expanded_operations: set[str] = field(default_factory=set)
    expanded_factors: set[str] = field(default_factory=set)

    def toggle_position(self, position_index: int) -> bool:
        """Flip one position; returns whether it is expanded afterwards."""
        if position_index in self.expanded_positions:
            self.expanded_positions.discard(position_index)
            return False
        self.expanded_positions.add(position_index)
        return True

    def toggle_operation(self, position_index: int, side: str, operation_index: int) -> bool:
        key = operation_key(position_index, side, operation_index)
        if key in self.expanded_operations:
            self.expanded_operations.discard(key)
            return False
        self.expanded_operations.add(key)
        return True

    def toggle_factor(
        self,
        position_index: int,
        side: str,
        operation_index: int,
        factor_index: int,
    ) -> bool:
        key = factor_key(position_index, side, operation_index, factor_index)
        if key in self.expanded_factors:
            self.expanded_factors.discard(key)
            return False
        self.expanded_factors.add(key)
        return True

    def expand_only_position(self, position_index: int) -> None:
        self.expanded_positions = {position_index}

    def is_position_expanded(self, position_index: int) -> bool:
        return position_index in self.expanded_positions

    def is_operation_expanded(self, position_index: int, side: str, operation_index: int) -> bool:
        return operation_key(position_index, side, operation_index) in self.expanded_operations

    def is_factor_expanded(
        self,
        position_index: int,
        side: str,
        operation_index: int,
        factor_index: int,
    ) -> bool:
        return factor_key(position_index, side, operation_index, factor_index) in self.expanded_factors

    # -- re-indexing after removals -------------------------------------------------

    def position_removed(self, position_index: int) -> None:
        self.expanded_positions = {
            index if index < position_index else index - 1
            for index in self.expanded_positions
            if index != position_index
        }
        self.expanded_operations = self._shift_keys(self.expanded_operations, position_index)
        self.expanded_factors = self._shift_keys(self.expanded_factors, position_index)

    def operation_removed(self, position_index: int, side: str, operation_index: int) -> None:
        self.expanded_operations = self._shift_keys(
            self.expanded_operations, position_index, side, operation_index
        )
        self.expanded_factors = self._shift_keys(
            self.expanded_factors, position_index, side, operation_index
        )

    def factor_removed(
        self,
        position_index: int,
        side: str,
        operation_index: int,
        factor_index: int,
    ) -> None:
        self.expanded_factors = self._shift_keys(
            self.expanded_factors, position_index, side, operation_index, factor_index
        )

    @staticmethod
    def _shift_keys(keys: set[str], position_index: int, side: str | None = None, *path: int) -> set[str]:
        """Drop keys under the removed node and shift its later siblings down by one.

        ``path`` addresses the removed node below the side (operation index, then
        factor index).  With no side, the removed node is the whole position.
        """
        shifted: set[str] = set()
        for key in keys:
            parsed = _parse_key(key)
            if parsed is None:
                continue
            key_position, key_side, rest = parsed

            if side is None:
                if key_position == position_index:
                    continue
                if key_position > position_index:
                    key_position -= 1
                shifted.add(_join_key(key_position, key_side, rest))
                continue

            depth = len(path)
            same_parent = (
                key_position == position_index
                and key_side == side
                and len(rest) >= depth
                and rest[: depth - 1] == list(path[:-1])
            )
            if same_parent:
                removed_index = path[-1]
                if rest[depth - 1] == removed_index:
                    continue
                if rest[depth - 1] > removed_index:
                    rest = [*rest[: depth - 1], rest[depth - 1] - 1, *rest[depth:]]
            shifted.add(_join_key(key_position, key_side, rest))
        return shifted
