"""
Action Generator - Generates all legal actions from a game state.

The action generator is used by:
1. Bots to enumerate possible moves
2. UI to show available placements
3. Validation (is this action in legal_actions?)

Design: Generates Action objects, not just targets.
This ensures all generated actions are fully specified.
"""

from __future__ import annotations

from .state import GameState, GameStatus, Player
from .action import Action
from .validation import get_valid_placements


def placement_actions(state: GameState, player: Player) -> list[Action]:
    """Every natural and higher placement for every card in the player's hand."""
    actions = []
    for card in player.hand:
        placements = get_valid_placements(state.board, card, state.settings)
        for target in placements.natural:
            actions.append(Action.natural(player.player_id, card.card_id, target))
        for target in placements.higher:
            actions.append(Action.higher(player.player_id, card.card_id, target))
    return actions


def legal_actions(state: GameState) -> list[Action]:
    """
    All legal actions for the current player.

    Pass is always available while the game is in progress.
    """
    if state.status != GameStatus.PLAYING or not state.players:
        return []

    player = state.current_player
    actions = placement_actions(state, player)
    actions.append(Action.pass_turn(player.player_id))
    return actions


def is_legal(state: GameState, action: Action) -> bool:
    """Check if a specific action is legal."""
    for a in legal_actions(state):
        if (
            a.action_type == action.action_type
            and a.payload.player_id == action.payload.player_id
            and a.payload.card_id == action.payload.card_id
            and a.payload.cell_number == action.payload.cell_number
        ):
            return True
    return False
