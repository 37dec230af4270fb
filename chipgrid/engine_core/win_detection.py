"""
Win Detector - Scans the board for a single-color line.

Scan order is fixed and is the tie-break when several lines complete at
once: horizontal windows (row-major), vertical windows (column-major),
down-right diagonals, then down-left diagonals. The first hit wins.

Lines compare chip color, not owner, so teammates sharing a color win
together. The winner is the owner of the first chip in the line.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .state import Board, BoardCell


@dataclass
class WinResult:
    winner: str
    cells: list[BoardCell] = field(default_factory=list)
    direction: str = "horizontal"

    @property
    def color(self) -> str:
        return self.cells[0].chip.color  # type: ignore[union-attr]


def _line_winner(cells: list[BoardCell]) -> str | None:
    if any(cell.chip is None for cell in cells):
        return None
    color = cells[0].chip.color  # type: ignore[union-attr]
    if all(cell.chip.color == color for cell in cells):  # type: ignore[union-attr]
        return cells[0].chip.player_id  # type: ignore[union-attr]
    return None


def _windows(board: Board, win_length: int):
    """Yield (direction, cells) for every window in scan order."""
    size = board.size
    grid = board.grid

    for row in range(size):
        for col in range(size - win_length + 1):
            yield "horizontal", grid[row][col:col + win_length]

    for col in range(size):
        for row in range(size - win_length + 1):
            yield "vertical", [grid[row + i][col] for i in range(win_length)]

    for row in range(size - win_length + 1):
        for col in range(size - win_length + 1):
            yield "diagonal", [grid[row + i][col + i] for i in range(win_length)]

    for row in range(size - win_length + 1):
        for col in range(win_length - 1, size):
            yield "diagonal", [grid[row + i][col - i] for i in range(win_length)]


def check_winner(board: Board, win_length: int = 5) -> WinResult | None:
    """Return the first complete single-color line, or None."""
    for direction, cells in _windows(board, win_length):
        winner = _line_winner(cells)
        if winner:
            return WinResult(winner=winner, cells=list(cells), direction=direction)
    return None


def winning_cell_numbers(result: WinResult | None) -> list[int]:
    """Cell numbers to highlight."""
    if result is None:
        return []
    return [cell.number for cell in result.cells]
