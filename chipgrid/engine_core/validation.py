"""
Move Validator - Is a (card, target, action) placement legal?

Pure functions of board occupancy and settings. Pass is never validated
here since it has no target.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .state import Board, Card, GameSettings
from .action import ActionType


@dataclass
class PlacementCheck:
    valid: bool
    reason: str | None = None


@dataclass
class ValidPlacements:
    """Disjoint candidate sets for one card."""
    natural: list[int] = field(default_factory=list)
    higher: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.natural and not self.higher


def _is_open(board: Board, number: int, settings: GameSettings) -> bool:
    return settings.allow_chip_override or not board.is_occupied(number)


def is_valid_placement(
    board: Board,
    card: Card,
    target: int,
    action: ActionType | str,
    settings: GameSettings,
) -> PlacementCheck:
    """Check a placement against the board."""
    action = ActionType(action)

    if board.cell(target) is None:
        return PlacementCheck(False, "Cell does not exist")

    if not _is_open(board, target, settings):
        return PlacementCheck(False, "Cell is already occupied")

    if action == ActionType.NATURAL:
        if card.value != target:
            return PlacementCheck(False, "Natural play requires exact match")
        return PlacementCheck(True)

    if action == ActionType.HIGHER:
        if target <= card.value:
            return PlacementCheck(False, "Higher play requires target > card value")
        return PlacementCheck(True)

    return PlacementCheck(False, "Cannot validate placement for pass action")


def get_valid_placements(board: Board, card: Card, settings: GameSettings) -> ValidPlacements:
    """All cells where the card may go, split by action."""
    placements = ValidPlacements()
    for number in sorted(cell.number for cell in board.cells()):
        if not _is_open(board, number, settings):
            continue
        if number == card.value:
            placements.natural.append(number)
        elif number > card.value:
            placements.higher.append(number)
    return placements


def has_valid_moves(board: Board, hand: list[Card], settings: GameSettings) -> bool:
    """True if any card in hand has a placement. Empty hands have none."""
    return any(
        not get_valid_placements(board, card, settings).is_empty
        for card in hand
    )
