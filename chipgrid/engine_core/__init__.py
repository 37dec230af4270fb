"""
Engine Core - Deterministic rules engine for chipgrid.

The engine is the runtime that:
1. Generates the board and deals the deck
2. Manages GameState
3. Validates placements and generates legal actions
4. Applies actions via the reducer
5. Detects wins and handles forfeits
"""

from .state import (
    Board,
    BoardCell,
    BoardPattern,
    Card,
    Chip,
    GameSettings,
    GameState,
    GameStatus,
    Player,
    TurnHistoryEntry,
    CHIP_COLORS,
)
from .action import Action, ActionType, ActionPayload, ActionResult, ErrorCode
from .board import generate_board
from .deck import generate_deck, shuffle_deck, deal_cards, draw_card, DrawResult
from .validation import is_valid_placement, get_valid_placements, has_valid_moves, ValidPlacements
from .win_detection import check_winner, winning_cell_numbers, WinResult
from .turn_order import build_team_turn_order, next_player_index
from .reducer import Reducer, apply_action, forfeit_player
from .action_generator import legal_actions, is_legal
from .setup import create_game, SeatSpec

__all__ = [
    "Board",
    "BoardCell",
    "BoardPattern",
    "Card",
    "Chip",
    "GameSettings",
    "GameState",
    "GameStatus",
    "Player",
    "TurnHistoryEntry",
    "CHIP_COLORS",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "ErrorCode",
    "generate_board",
    "generate_deck",
    "shuffle_deck",
    "deal_cards",
    "draw_card",
    "DrawResult",
    "is_valid_placement",
    "get_valid_placements",
    "has_valid_moves",
    "ValidPlacements",
    "check_winner",
    "winning_cell_numbers",
    "WinResult",
    "build_team_turn_order",
    "next_player_index",
    "Reducer",
    "apply_action",
    "forfeit_player",
    "legal_actions",
    "is_legal",
    "create_game",
    "SeatSpec",
]
