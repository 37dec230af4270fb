"""
Board Topology - Maps cell numbers 0-99 onto the 10x10 grid.

Three layouts, all pure functions of the pattern:

spiral: 0 at (4, 4), then right, down, left, up, repeating, with runs of
        1, 1, 2, 2, 3, 3, ... cells. The last run is cut off at 99.
snake: row-major, odd rows run right to left.
normal: row-major, left to right.
"""

from __future__ import annotations

from .state import Board, BoardCell, BoardPattern, BOARD_SIZE, CELL_COUNT


# right, down, left, up
_SPIRAL_DIRECTIONS = [(0, 1), (1, 0), (0, -1), (-1, 0)]


def spiral_positions(size: int = BOARD_SIZE) -> list[tuple[int, int]]:
    """Positions of numbers 0..size*size-1 in spiral order."""
    row, col = size // 2 - 1, size // 2 - 1
    positions = [(row, col)]

    dir_index = 0
    steps_in_direction = 1
    steps_taken = 0
    turns = 0

    while len(positions) < size * size:
        dr, dc = _SPIRAL_DIRECTIONS[dir_index]
        row += dr
        col += dc
        positions.append((row, col))
        steps_taken += 1

        if steps_taken == steps_in_direction:
            steps_taken = 0
            dir_index = (dir_index + 1) % 4
            turns += 1
            # Step count grows after every second turn
            if turns % 2 == 0:
                steps_in_direction += 1

    return positions


def snake_positions(size: int = BOARD_SIZE) -> list[tuple[int, int]]:
    positions = []
    for row in range(size):
        cols = range(size) if row % 2 == 0 else range(size - 1, -1, -1)
        positions.extend((row, col) for col in cols)
    return positions


def normal_positions(size: int = BOARD_SIZE) -> list[tuple[int, int]]:
    return [(row, col) for row in range(size) for col in range(size)]


_LAYOUTS = {
    BoardPattern.SPIRAL: spiral_positions,
    BoardPattern.SNAKE: snake_positions,
    BoardPattern.NORMAL: normal_positions,
}


def generate_board(pattern: BoardPattern | str = BoardPattern.SPIRAL) -> Board:
    """
    Build an empty board under the given numbering pattern.

    The inverse index (number -> position) is built once here and reused
    by validation and bot scoring.
    """
    pattern = BoardPattern(pattern)
    positions = _LAYOUTS[pattern](BOARD_SIZE)

    grid: list[list[BoardCell | None]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    for number, (row, col) in enumerate(positions[:CELL_COUNT]):
        grid[row][col] = BoardCell(number=number, row=row, col=col)

    return Board(pattern=pattern, grid=grid)  # type: ignore[arg-type]


def render_board(board: Board) -> str:
    """Plain-text grid of cell numbers, chips shown as their color initial."""
    lines = []
    for row in board.grid:
        parts = []
        for cell in row:
            if cell.chip:
                parts.append(f" {cell.chip.color[0].upper()}")
            else:
                parts.append(f"{cell.number:2d}")
        lines.append(" ".join(parts))
    return "\n".join(lines)
