"""
Line Evaluator - Scores a board position for bot decision-making.

For each of the four line directions through a cell, every window of
win_length cells that contains it is classified:
- Offensive: only the bot's color (building toward a win)
- Defensive: only one enemy color (blocking)
- Empty: slight potential
- Dead: both sides, or two enemy colors

Weights can be adjusted, but the defaults are the reference policy.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..engine_core.state import Board


# horizontal, vertical, down-right, down-left
LINE_DIRECTIONS = [(0, 1), (1, 0), (1, 1), (1, -1)]


@dataclass
class EvaluationWeights:
    """
    Weights for the line evaluator.

    Higher values = more importance.
    """
    # Own line one short of win_length: placing here wins
    winning_move: float = 10000.0
    # Own line two short
    near_win: float = 100.0
    # Otherwise, per friendly chip
    friendly_chip: float = 3.0

    # Enemy line one short: must block
    must_block: float = 5000.0
    near_block: float = 50.0
    enemy_chip: float = 2.0

    empty_line: float = 1.0

    # Natural plays draw a replacement card
    natural_bonus: float = 50.0


class LineEvaluator:
    """
    Evaluates candidate cells by the lines running through them.

    The board is read as it is before the placement; counts exclude the
    target cell itself unless it already holds a chip (override games).
    """

    def __init__(self, weights: EvaluationWeights | None = None):
        self.weights = weights or EvaluationWeights()

    def score_position(
        self,
        board: Board,
        row: int,
        col: int,
        color: str,
        win_length: int,
    ) -> float:
        """Sum of window scores for every window through (row, col)."""
        score = 0.0
        for dr, dc in LINE_DIRECTIONS:
            for offset in range(win_length):
                start_row = row - offset * dr
                start_col = col - offset * dc
                score += self._score_window(board, start_row, start_col, dr, dc, color, win_length)
        return score

    def _score_window(
        self,
        board: Board,
        start_row: int,
        start_col: int,
        dr: int,
        dc: int,
        color: str,
        win_length: int,
    ) -> float:
        w = self.weights
        friendly = 0
        enemy = 0
        enemy_color = None

        for i in range(win_length):
            cell = board.cell_at(start_row + i * dr, start_col + i * dc)
            if cell is None:
                # Runs off the board
                return 0.0
            if cell.chip is None:
                continue
            if cell.chip.color == color:
                friendly += 1
            elif enemy_color is None or cell.chip.color == enemy_color:
                enemy_color = cell.chip.color
                enemy += 1
            else:
                # Two enemy colors: nobody can complete it
                return 0.0

        if friendly and enemy:
            return 0.0

        if friendly:
            if friendly == win_length - 1:
                return w.winning_move
            if friendly == win_length - 2:
                return w.near_win
            return friendly * w.friendly_chip

        if enemy:
            if enemy == win_length - 1:
                return w.must_block
            if enemy == win_length - 2:
                return w.near_block
            return enemy * w.enemy_chip

        return w.empty_line
