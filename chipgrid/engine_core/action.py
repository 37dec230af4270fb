"""
Action System - Actions, payloads, results and error codes.

Actions represent one player's turn:
1. natural - place a card on the cell equal to its value
2. higher - place a card on any strictly greater cell
3. pass - place nothing

All state changes flow through actions.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .state import GameStatus


class ActionType(Enum):
    """Types of turn actions."""
    NATURAL = "natural"
    HIGHER = "higher"
    PASS = "pass"


PLACEMENT_ACTIONS = {ActionType.NATURAL, ActionType.HIGHER}


class ErrorCode(str, Enum):
    """Structured error codes shared by the engine, session and API layers."""
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    GAME_NOT_IN_PROGRESS = "GAME_NOT_IN_PROGRESS"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    INVALID_PLACEMENT = "INVALID_PLACEMENT"
    CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
    NO_OTHER_PLAYERS = "NO_OTHER_PLAYERS"
    HOST_ONLY_ACTION = "HOST_ONLY_ACTION"
    ROOM_FULL = "ROOM_FULL"
    COLOR_ALREADY_TAKEN = "COLOR_ALREADY_TAKEN"
    LOBBY_NOT_READY = "LOBBY_NOT_READY"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    ALREADY_IN_ROOM = "ALREADY_IN_ROOM"
    COLOR_REQUIRED = "COLOR_REQUIRED"
    NO_COLORS_AVAILABLE = "NO_COLORS_AVAILABLE"
    BOT_NOT_FOUND = "BOT_NOT_FOUND"
    INVALID_SETTINGS = "INVALID_SETTINGS"
    INVALID_ACTION = "INVALID_ACTION"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    STORE_ERROR = "STORE_ERROR"


@dataclass
class ActionPayload:
    """
    Payload for an action - contains the action parameters.

    Placement actions need card_id and cell_number; pass needs neither.
    Validation happens in the reducer.
    """
    player_id: str
    card_id: str | None = None
    cell_number: int | None = None

    # Set when the turn timer passes on the player's behalf
    is_timeout: bool = False


@dataclass
class Action:
    """
    A complete action to be applied to the game state.

    Actions are:
    - Validated before application
    - Applied atomically by the reducer
    - Recorded in the turn history
    """
    action_type: ActionType
    payload: ActionPayload
    timestamp: float | None = None

    @property
    def player_id(self) -> str:
        return self.payload.player_id

    @classmethod
    def natural(cls, player_id: str, card_id: str, cell_number: int) -> Action:
        """Factory for natural play."""
        return cls(
            action_type=ActionType.NATURAL,
            payload=ActionPayload(player_id=player_id, card_id=card_id, cell_number=cell_number),
        )

    @classmethod
    def higher(cls, player_id: str, card_id: str, cell_number: int) -> Action:
        """Factory for higher play."""
        return cls(
            action_type=ActionType.HIGHER,
            payload=ActionPayload(player_id=player_id, card_id=card_id, cell_number=cell_number),
        )

    @classmethod
    def pass_turn(cls, player_id: str, is_timeout: bool = False) -> Action:
        """Factory for pass."""
        return cls(
            action_type=ActionType.PASS,
            payload=ActionPayload(player_id=player_id, is_timeout=is_timeout),
        )

    @classmethod
    def from_request(
        cls,
        player_id: str,
        action: str,
        card_id: str | None = None,
        cell_number: int | None = None,
    ) -> Action:
        """Build an action from loosely-typed request fields."""
        return cls(
            action_type=ActionType(action),
            payload=ActionPayload(player_id=player_id, card_id=card_id, cell_number=cell_number),
        )


@dataclass
class ActionResult:
    """
    Result of applying an action.

    Contains:
    - Whether action succeeded
    - New state (if succeeded)
    - Error and error code (if failed)
    - Consequences the caller must react to (game over, winner)
    """
    success: bool
    new_state: Any | None = None  # GameState
    error: str | None = None
    error_code: ErrorCode | None = None

    game_over: bool = False
    winner: str | None = None

    # Human-readable changes, for logs and UI
    state_changes: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str, error_code: ErrorCode | None = None) -> ActionResult:
        """Create a failure result."""
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def success_with_state(
        cls,
        state: Any,
        changes: list[str] | None = None,
    ) -> ActionResult:
        """Create a success result with new state."""
        finished = state.status == GameStatus.FINISHED
        return cls(
            success=True,
            new_state=state,
            game_over=finished,
            winner=state.winner if finished else None,
            state_changes=changes or [],
        )
