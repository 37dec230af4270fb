"""
Game Service - The synchronization shell around the rules engine.

Every mutating call is one cycle:
1. Read the whole room (public zone, private hands, history) in one get
2. Rebuild the GameState and hand it to the reducer
3. Write the new public zone and hands back as a compare-and-set on version
4. Append the new history entries

PERSISTENCE RULES:
- The public zone never carries hand contents
- Each hand is written only to privateHands/{playerId}/hand
- History is append-only
- A stale write is refused with VERSION_CONFLICT, never retried here
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging
import random
import time

from ..engine_core.action import Action, ActionResult, ErrorCode
from ..engine_core.reducer import Reducer
from ..engine_core.setup import SeatSpec, create_game
from ..engine_core.state import GameState, GameStatus
from ..engine_core.validation import get_valid_placements
from .documents import (
    GameDocument,
    PRIVATE_HANDS,
    PRESENCE,
    ROOMS_ROOT,
    TURN_HISTORY,
    history_key,
    parse_hands,
    parse_history,
    parse_room,
    public_view,
    room_is_gone,
    room_path,
)
from .results import PlayerIdentity, RoomResult, store_failure
from .store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

HOUR = 60 * 60

# Age after which a room is deleted, by status
ROOM_EXPIRY_SECONDS = {
    GameStatus.WAITING: 2 * HOUR,
    GameStatus.FINISHED: 24 * HOUR,
    GameStatus.PLAYING: 7 * 24 * HOUR,
}


@dataclass
class GameSummary:
    current_player_name: str
    current_player_color: str
    turn_number: int
    chips_placed: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentPlayerName": self.current_player_name,
            "currentPlayerColor": self.current_player_color,
            "turnNumber": self.turn_number,
            "chipsPlaced": dict(self.chips_placed),
        }


def game_summary(state: GameState) -> GameSummary:
    """Who is on turn, how many chips each player has down, which round."""
    chips = {p.player_id: 0 for p in state.players}
    for cell in state.board.cells():
        if cell.chip is not None:
            chips[cell.chip.player_id] = chips.get(cell.chip.player_id, 0) + 1

    current = state.current_player
    return GameSummary(
        current_player_name=current.name,
        current_player_color=current.color,
        turn_number=len(state.turn_history) // max(state.num_players, 1) + 1,
        chips_placed=chips,
    )


@dataclass
class GameService:
    """
    Turn, forfeit and rematch operations for dealt rooms.

    Usage:
        games = GameService(store)
        result = games.play(code, Action.natural("p1", "card-12-0-0", 12))
        if result.data.get("gameOver"):
            ...
    """
    store: DocumentStore
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], float] = time.time
    reducer: Reducer = field(init=False)

    def __post_init__(self):
        self.reducer = Reducer(rng=self.rng, clock=self.clock)

    # =========================================================================
    # Reads
    # =========================================================================

    def read_game(self, code: str) -> GameState | RoomResult:
        """Full GameState (with every hand) or the reason there is none."""
        try:
            data = self.store.get(room_path(code))
            if room_is_gone(data):
                return RoomResult.failure("Room not found", ErrorCode.ROOM_NOT_FOUND, code)
            room = parse_room(data)
            if not isinstance(room, GameDocument):
                return RoomResult.failure("Game is not in progress", ErrorCode.GAME_NOT_IN_PROGRESS, code)
            return room.to_state(
                hands=parse_hands(data.get(PRIVATE_HANDS)),
                history=parse_history(data.get(TURN_HISTORY)),
            )
        except StoreError as e:
            return store_failure(e, code)

    def room_view(self, code: str, viewer: PlayerIdentity) -> RoomResult:
        """
        What one player may see: the public zone, history, presence, and
        their own hand. Other hands are never included.
        """
        try:
            data = self.store.get(room_path(code))
            if room_is_gone(data):
                return RoomResult.failure("Room not found", ErrorCode.ROOM_NOT_FOUND, code)
            room = parse_room(data)
        except StoreError as e:
            return store_failure(e, code)

        hand: list[dict[str, Any]] = []
        history: list[dict[str, Any]] = []
        summary = None
        if isinstance(room, GameDocument):
            hands = parse_hands(data.get(PRIVATE_HANDS))
            hand = [c.to_dict() for c in hands.get(viewer.player_id, [])]
            entries = parse_history(data.get(TURN_HISTORY))
            history = [e.to_dict() for e in entries]
            summary = game_summary(room.to_state(hands, entries)).to_dict()

        return RoomResult.ok(
            code,
            room=public_view(data),
            hand=hand,
            history=history,
            presence=data.get(PRESENCE) or {},
            summary=summary,
        )

    def valid_moves(self, code: str, player: PlayerIdentity, card_id: str | None = None) -> RoomResult:
        """Legal targets for each card in the player's hand, or for one card."""
        loaded = self.read_game(code)
        if isinstance(loaded, RoomResult):
            return loaded
        state = loaded

        me = state.get_player(player.player_id)
        if me is None:
            return RoomResult.failure("Player not in room", ErrorCode.PLAYER_NOT_FOUND, code)

        cards = me.hand
        if card_id is not None:
            card = me.find_card(card_id)
            if card is None:
                return RoomResult.failure("Card not in hand", ErrorCode.CARD_NOT_IN_HAND, code)
            cards = [card]

        moves = []
        for card in cards:
            placements = get_valid_placements(state.board, card, state.settings)
            moves.append({
                "cardId": card.card_id,
                "value": card.value,
                "natural": placements.natural,
                "higher": placements.higher,
            })
        return RoomResult.ok(code, moves=moves, isMyTurn=state.current_player.player_id == me.player_id)

    def summary(self, code: str) -> RoomResult:
        loaded = self.read_game(code)
        if isinstance(loaded, RoomResult):
            return loaded
        return RoomResult.ok(code, **game_summary(loaded).to_dict())

    # =========================================================================
    # Turns
    # =========================================================================

    def play(self, code: str, action: Action) -> RoomResult:
        """Run one action through the reducer and write the result back."""
        loaded = self.read_game(code)
        if isinstance(loaded, RoomResult):
            return loaded
        state = loaded

        result = self.reducer.apply(state, action)
        if not result.success:
            logger.debug(
                "Room %s rejected %s from %s: %s",
                code, action.action_type.value, action.player_id, result.error,
            )
            return RoomResult.failure(result.error or "Action rejected", result.error_code, code)

        return self._commit(code, state, result)

    def forfeit(self, code: str, player: PlayerIdentity) -> RoomResult:
        loaded = self.read_game(code)
        if isinstance(loaded, RoomResult):
            return loaded
        state = loaded

        result = self.reducer.forfeit(state, player.player_id)
        if not result.success:
            logger.debug("Room %s refused forfeit by %s: %s", code, player.player_id, result.error)
            return RoomResult.failure(result.error or "Forfeit rejected", result.error_code, code)

        # Re-forfeiting changes nothing
        if result.new_state is state:
            return RoomResult.ok(code, gameOver=False, winner=None, changes=result.state_changes)

        return self._commit(code, state, result)

    def request_rematch(self, code: str, player: PlayerIdentity) -> RoomResult:
        """Deal a fresh game to the same players with the same settings."""
        loaded = self.read_game(code)
        if isinstance(loaded, RoomResult):
            return loaded
        old = loaded

        me = old.get_player(player.player_id)
        if me is None:
            return RoomResult.failure("Player not in room", ErrorCode.PLAYER_NOT_FOUND, code)
        if old.status != GameStatus.FINISHED:
            return RoomResult.failure("Game is still in progress", ErrorCode.INVALID_ACTION, code)
        if not me.is_host and old.winner != me.player_id:
            return RoomResult.failure(
                "Only host or winner can request rematch", ErrorCode.HOST_ONLY_ACTION, code
            )

        seats = [
            SeatSpec(
                player_id=p.player_id,
                name=p.name,
                color=p.color,
                is_host=p.is_host,
                is_bot=p.is_bot,
                team_index=p.team_index,
            )
            for p in old.players
        ]
        fresh = create_game(code, seats, settings=old.settings, rng=self.rng, created_at=self.clock())
        fresh.version = old.version + 1

        fields = self._state_fields(fresh)
        fields[TURN_HISTORY] = None
        try:
            self.store.update(room_path(code), fields, expected_version=old.version)
        except StoreError as e:
            return store_failure(e, code)

        logger.info("Room %s rematch started by %s", code, player.player_id)
        return RoomResult.ok(code)

    # =========================================================================
    # Housekeeping
    # =========================================================================

    def cleanup_stale_rooms(self, now: float | None = None) -> list[str]:
        """
        Delete empty rooms and rooms past their expiry for their status.

        Returns the deleted room codes.
        """
        now = self.clock() if now is None else now
        rooms = self.store.get(ROOMS_ROOT) or {}
        deleted = []

        for code, data in rooms.items():
            if room_is_gone(data):
                self.store.remove(room_path(code))
                deleted.append(code)
                logger.info("Room %s deleted (leftover data only)", code)
                continue
            try:
                room = parse_room(data)
            except StoreError:
                logger.warning("Skipping unreadable room %s during cleanup", code, exc_info=True)
                continue

            if isinstance(room, GameDocument):
                players, created_at, status = room.state.players, room.state.created_at, room.status
            else:
                players, created_at, status = room.players, room.created_at, room.status

            if players and now - created_at <= ROOM_EXPIRY_SECONDS[status]:
                continue

            self.store.remove(room_path(code))
            deleted.append(code)
            logger.info("Room %s deleted (%s)", code, "empty" if not players else f"{status.value} expired")

        return deleted

    # =========================================================================
    # Write-back
    # =========================================================================

    def _state_fields(self, state: GameState) -> dict[str, Any]:
        fields = state.public_dict()
        fields[PRIVATE_HANDS] = {
            pid: {"hand": [c.to_dict() for c in hand]} for pid, hand in state.hands().items()
        }
        return fields

    def _commit(self, code: str, before: GameState, result: ActionResult) -> RoomResult:
        new_state: GameState = result.new_state
        new_state.version = before.version + 1

        fields = self._state_fields(new_state)
        for index in range(len(before.turn_history), len(new_state.turn_history)):
            fields[history_key(index)] = new_state.turn_history[index].to_dict()

        try:
            self.store.update(room_path(code), fields, expected_version=before.version)
        except StoreError as e:
            return store_failure(e, code)

        logger.info("Room %s: %s", code, "; ".join(result.state_changes))
        if result.game_over:
            logger.info("Room %s finished, winner: %s", code, result.winner or "none")

        return RoomResult.ok(
            code,
            gameOver=result.game_over,
            winner=result.winner,
            changes=result.state_changes,
        )
