from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum


class CellState(str, Enum):
    RIGHT = "right"
    WRONG = "wrong"
    PLACEHOLDER = "placeholder"


@dataclass(slots=True)
class DigitCell:
    digit: int
    state: CellState
    digits_per_row: int = 10  # layout tag only; never affects digit/state

    def position(self, index: int) -> tuple[int, int]:
        """Grid (row, column) of this cell when it sits at ``index``."""
        width = max(1, int(self.digits_per_row))
        return index // width, index % width


class WindowBuffer:
    """Ordered cells currently shown to the trainee.

    Cells are only ever appended or removed at the back, so position ``i``
    always refers to the i-th judged digit (or i-th look-ahead placeholder).
    """

    def __init__(self) -> None:
        self._cells: list[DigitCell] = []

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[DigitCell]:
        return iter(self._cells)

    def push_back(self, cell: DigitCell) -> None:
        self._cells.append(cell)

    def pop_back(self) -> DigitCell | None:
        if not self._cells:
            return None
        return self._cells.pop()

    def get(self, index: int) -> DigitCell | None:
        if 0 <= index < len(self._cells):
            return self._cells[index]
        return None

    def update_at(self, index: int, digit: int, state: CellState) -> bool:
        cell = self.get(index)
        if cell is None:
            return False
        cell.digit = digit
        cell.state = state
        return True

    def retag(self, digits_per_row: int) -> None:
        for cell in self._cells:
            cell.digits_per_row = digits_per_row

    def clear(self) -> None:
        self._cells.clear()
