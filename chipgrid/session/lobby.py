"""
Lobby - Rooms before the first card is dealt.

The lobby owns everything that happens while status is "waiting":
joining, colors, readiness, bots, teams, settings, and finally the switch
to a dealt game. Every write is a compare-and-set on the room's version.

Admission rules (can_start_game):
- At least 2 players
- Team mode: everyone on a team, 2+ teams in use, each used team has its
  own color
- Free-for-all: everyone has a color, no two the same
- Every human other than the host is ready (bots always are)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging
import random
import string
import time

from ..engine_core.action import ErrorCode
from ..engine_core.state import CHIP_COLORS, GameSettings, GameStatus
from ..engine_core.setup import SeatSpec, create_game
from ..bots.line_bot import BOT_NAMES
from .documents import (
    GameDocument,
    LobbyDocument,
    LobbyPlayer,
    PRIVATE_HANDS,
    TURN_HISTORY,
    parse_room,
    room_is_gone,
    room_path,
)
from .results import PlayerIdentity, RoomResult, store_failure
from .store import DocumentStore, StoreError

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6
TEAM_SLOTS = 3

# Game-only keys dropped when a room goes back to the lobby
_GAME_KEYS = (
    "board",
    "deck",
    "discardPile",
    "winner",
    "turnOrder",
    "currentPlayerIndex",
    PRIVATE_HANDS,
    TURN_HISTORY,
)


@dataclass
class AdmissionCheck:
    can_start: bool
    reason: str | None = None


def can_start_game(lobby: LobbyDocument) -> AdmissionCheck:
    """Decide whether the host may start this lobby."""
    players = lobby.players
    if len(players) < 2:
        return AdmissionCheck(False, "Need at least 2 players")

    if lobby.settings.teams_enabled:
        if any(p.player_id not in lobby.teams for p in players):
            return AdmissionCheck(False, "All players must be assigned to a team")

        used_teams = sorted({lobby.teams[p.player_id] for p in players})
        if len(used_teams) < 2:
            return AdmissionCheck(False, "Need at least 2 teams")

        colors = [lobby.team_color(t) for t in used_teams]
        if any(c is None for c in colors):
            return AdmissionCheck(False, "All teams must have colors")
        if len(set(colors)) != len(colors):
            return AdmissionCheck(False, "Team colors must be distinct")
    else:
        colors = [p.color for p in players]
        if any(c is None for c in colors):
            return AdmissionCheck(False, "All players must select colors")
        if len(set(colors)) != len(colors):
            return AdmissionCheck(False, "Player colors must be distinct")

    if not all(p.is_ready for p in players if not p.is_host and not p.is_bot):
        return AdmissionCheck(False, "All players must be ready")

    return AdmissionCheck(True)


def available_colors(lobby: LobbyDocument) -> list[str]:
    taken = {p.color for p in lobby.players if p.color}
    return [c for c in CHIP_COLORS if c not in taken]


@dataclass
class LobbyService:
    """
    Lobby operations against a DocumentStore.

    Usage:
        lobby = LobbyService(store)
        result = lobby.create_room(PlayerIdentity("p1", "Ana"))
        lobby.join_room(result.room_code, PlayerIdentity("p2", "Ben"))
    """
    store: DocumentStore
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], float] = time.time

    # =========================================================================
    # Room lifecycle
    # =========================================================================

    def generate_room_code(self) -> str:
        while True:
            code = "".join(self.rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if room_is_gone(self.store.get(room_path(code))):
                return code

    def create_room(
        self,
        host: PlayerIdentity,
        settings: dict[str, Any] | None = None,
    ) -> RoomResult:
        """Create a lobby with the caller as host."""
        try:
            merged = GameSettings().merged(settings or {})
        except (TypeError, ValueError) as e:
            return RoomResult.failure(f"Invalid settings: {e}", ErrorCode.INVALID_SETTINGS)
        problem = merged.validate()
        if problem:
            return RoomResult.failure(problem, ErrorCode.INVALID_SETTINGS)

        try:
            code = self.generate_room_code()
            lobby = LobbyDocument(
                room_id=code,
                settings=merged,
                players=[LobbyPlayer(host.player_id, host.name, is_host=True)],
                created_at=self.clock(),
            )
            self.store.set(room_path(code), lobby.to_dict())
        except StoreError as e:
            return store_failure(e)

        logger.info("Room %s created by %s", code, host.player_id)
        return RoomResult.ok(code)

    def join_room(self, code: str, player: PlayerIdentity) -> RoomResult:
        def change(lobby: LobbyDocument) -> RoomResult | None:
            if len(lobby.players) >= lobby.settings.max_players:
                return RoomResult.failure("Room is full", ErrorCode.ROOM_FULL, code)
            if lobby.get_player(player.player_id):
                return RoomResult.failure("Already in this room", ErrorCode.ALREADY_IN_ROOM, code)
            lobby.players.append(LobbyPlayer(player.player_id, player.name))
            return None

        return self._modify(code, change, "players")

    def leave_room(self, code: str, player: PlayerIdentity) -> RoomResult:
        """
        Leave a lobby. A departing host hands the role to the next player;
        the last player out deletes the room.
        """
        loaded = self._load(code)
        if isinstance(loaded, RoomResult):
            return loaded
        lobby = loaded

        leaving = lobby.get_player(player.player_id)
        if leaving is None:
            return RoomResult.failure("Player not in room", ErrorCode.PLAYER_NOT_FOUND, code)

        lobby.players = [p for p in lobby.players if p.player_id != player.player_id]
        lobby.teams.pop(player.player_id, None)

        try:
            if not lobby.players:
                self.store.remove(room_path(code))
                logger.info("Room %s closed, last player left", code)
                return RoomResult.ok(code, deleted=True)
            if leaving.is_host:
                lobby.players[0].is_host = True
            self._write(lobby, ("players", "teams"))
        except StoreError as e:
            return store_failure(e, code)
        return RoomResult.ok(code)

    # =========================================================================
    # Player choices
    # =========================================================================

    def select_color(self, code: str, player: PlayerIdentity, color: str) -> RoomResult:
        def change(lobby: LobbyDocument) -> RoomResult | None:
            if color not in CHIP_COLORS:
                return RoomResult.failure(f"Unknown color: {color}", ErrorCode.INVALID_ACTION, code)
            me = lobby.get_player(player.player_id)
            if me is None:
                return RoomResult.failure("Player not in room", ErrorCode.PLAYER_NOT_FOUND, code)
            if any(p.color == color and p.player_id != me.player_id for p in lobby.players):
                return RoomResult.failure("Color already taken", ErrorCode.COLOR_ALREADY_TAKEN, code)
            me.color = color
            return None

        return self._modify(code, change, "players")

    def toggle_ready(self, code: str, player: PlayerIdentity) -> RoomResult:
        def change(lobby: LobbyDocument) -> RoomResult | None:
            me = lobby.get_player(player.player_id)
            if me is None:
                return RoomResult.failure("Player not in room", ErrorCode.PLAYER_NOT_FOUND, code)
            if not me.color:
                return RoomResult.failure("Must select a color first", ErrorCode.COLOR_REQUIRED, code)
            me.is_ready = not me.is_ready
            return None

        return self._modify(code, change, "players")

    # =========================================================================
    # Host controls
    # =========================================================================

    def add_bot(self, code: str, host: PlayerIdentity) -> RoomResult:
        added: dict[str, str] = {}

        def change(lobby: LobbyDocument) -> RoomResult | None:
            denied = self._require_host(lobby, host, "Only host can add bots")
            if denied:
                return denied
            if len(lobby.players) >= lobby.settings.max_players:
                return RoomResult.failure("Room is full", ErrorCode.ROOM_FULL, code)

            colors = available_colors(lobby)
            if not colors:
                return RoomResult.failure("No colors available", ErrorCode.NO_COLORS_AVAILABLE, code)

            used_names = {p.name for p in lobby.players}
            name = next((n for n in BOT_NAMES if n not in used_names), f"Bot {len(lobby.players)}")
            bot_id = f"bot-{self.rng.getrandbits(32):08x}"

            lobby.players.append(
                LobbyPlayer(bot_id, name, color=colors[0], is_ready=True, is_bot=True)
            )
            added["botId"] = bot_id
            return None

        result = self._modify(code, change, "players")
        if result.success:
            result.data.update(added)
        return result

    def remove_bot(self, code: str, host: PlayerIdentity, bot_id: str) -> RoomResult:
        def change(lobby: LobbyDocument) -> RoomResult | None:
            denied = self._require_host(lobby, host, "Only host can remove bots")
            if denied:
                return denied
            bot = lobby.get_player(bot_id)
            if bot is None or not bot.is_bot:
                return RoomResult.failure("Bot not found", ErrorCode.BOT_NOT_FOUND, code)
            lobby.players = [p for p in lobby.players if p.player_id != bot_id]
            lobby.teams.pop(bot_id, None)
            return None

        return self._modify(code, change, "players", "teams")

    def assign_team(
        self,
        code: str,
        host: PlayerIdentity,
        target_player_id: str,
        team_index: int | None,
    ) -> RoomResult:
        """Put a player on a team, or take them off with team_index=None."""
        def change(lobby: LobbyDocument) -> RoomResult | None:
            denied = self._require_host(lobby, host, "Only host can assign teams")
            if denied:
                return denied
            if lobby.get_player(target_player_id) is None:
                return RoomResult.failure("Player not in room", ErrorCode.PLAYER_NOT_FOUND, code)
            if team_index is None:
                lobby.teams.pop(target_player_id, None)
            elif not 0 <= team_index < TEAM_SLOTS:
                return RoomResult.failure(f"Unknown team: {team_index}", ErrorCode.INVALID_ACTION, code)
            else:
                lobby.teams[target_player_id] = team_index
            return None

        return self._modify(code, change, "teams")

    def select_team_color(
        self,
        code: str,
        host: PlayerIdentity,
        team_index: int,
        color: str,
    ) -> RoomResult:
        def change(lobby: LobbyDocument) -> RoomResult | None:
            denied = self._require_host(lobby, host, "Only host can set team colors")
            if denied:
                return denied
            if not 0 <= team_index < TEAM_SLOTS:
                return RoomResult.failure(f"Unknown team: {team_index}", ErrorCode.INVALID_ACTION, code)
            if color not in CHIP_COLORS:
                return RoomResult.failure(f"Unknown color: {color}", ErrorCode.INVALID_ACTION, code)
            colors = list(lobby.team_colors) + [None] * (TEAM_SLOTS - len(lobby.team_colors))
            if any(c == color and i != team_index for i, c in enumerate(colors)):
                return RoomResult.failure(
                    "Color already used by another team", ErrorCode.COLOR_ALREADY_TAKEN, code
                )
            colors[team_index] = color
            lobby.team_colors = colors
            return None

        return self._modify(code, change, "teamColors")

    def update_settings(self, code: str, host: PlayerIdentity, changes: dict[str, Any]) -> RoomResult:
        def change(lobby: LobbyDocument) -> RoomResult | None:
            denied = self._require_host(lobby, host, "Only host can change settings")
            if denied:
                return denied
            try:
                merged = lobby.settings.merged(changes)
            except (TypeError, ValueError) as e:
                return RoomResult.failure(f"Invalid settings: {e}", ErrorCode.INVALID_SETTINGS, code)
            problem = merged.validate()
            if problem:
                return RoomResult.failure(problem, ErrorCode.INVALID_SETTINGS, code)
            if len(lobby.players) > merged.max_players:
                return RoomResult.failure(
                    "max_players is below the current player count", ErrorCode.INVALID_SETTINGS, code
                )
            lobby.settings = merged
            return None

        return self._modify(code, change, "settings")

    def start_game(self, code: str, host: PlayerIdentity) -> RoomResult:
        """Deal the game: public zone replaces the lobby, hands go private."""
        loaded = self._load(code)
        if isinstance(loaded, RoomResult):
            return loaded
        lobby = loaded

        denied = self._require_host(lobby, host, "Only host can start game")
        if denied:
            return denied

        check = can_start_game(lobby)
        if not check.can_start:
            logger.debug("Room %s not ready to start: %s", code, check.reason)
            return RoomResult.failure(check.reason or "Lobby not ready", ErrorCode.LOBBY_NOT_READY, code)

        state = create_game(
            code,
            [self._seat(lobby, p) for p in lobby.players],
            settings=lobby.settings,
            rng=self.rng,
            created_at=self.clock(),
        )
        state.version = lobby.version + 1

        fields = state.public_dict()
        fields[PRIVATE_HANDS] = {
            pid: {"hand": [c.to_dict() for c in hand]} for pid, hand in state.hands().items()
        }
        fields[TURN_HISTORY] = None

        try:
            self.store.update(room_path(code), fields, expected_version=lobby.version)
        except StoreError as e:
            return store_failure(e, code)

        logger.info("Room %s started with %d players", code, state.num_players)
        return RoomResult.ok(code)

    def reset_to_lobby(self, code: str, player: PlayerIdentity) -> RoomResult:
        """
        Send a finished game back to the lobby.

        Humans must ready up again, bots stay ready. Teams and team colors
        carry over; board, deck, hands and history are dropped.
        """
        try:
            data = self.store.get(room_path(code))
            if room_is_gone(data):
                return RoomResult.failure("Room not found", ErrorCode.ROOM_NOT_FOUND, code)
            room = parse_room(data)
        except StoreError as e:
            return store_failure(e, code)

        if isinstance(room, LobbyDocument):
            return RoomResult.ok(code)

        game = room.state
        if game.get_player(player.player_id) is None:
            return RoomResult.failure("Player not in room", ErrorCode.PLAYER_NOT_FOUND, code)
        if game.status != GameStatus.FINISHED:
            return RoomResult.failure("Game is still in progress", ErrorCode.INVALID_ACTION, code)

        lobby = LobbyDocument(
            room_id=code,
            settings=game.settings,
            players=[
                LobbyPlayer(
                    p.player_id,
                    p.name,
                    color=p.color,
                    is_host=p.is_host,
                    is_ready=p.is_bot,
                    is_bot=p.is_bot,
                )
                for p in game.players
            ],
            teams={k: int(v) for k, v in (data.get("teams") or {}).items()},
            team_colors=list(data.get("teamColors") or [None] * TEAM_SLOTS),
            created_at=self.clock(),
            version=room.version + 1,
        )

        fields: dict[str, Any] = {key: None for key in _GAME_KEYS}
        fields.update(lobby.to_dict())
        try:
            self.store.update(room_path(code), fields, expected_version=room.version)
        except StoreError as e:
            return store_failure(e, code)

        logger.info("Room %s reset to lobby", code)
        return RoomResult.ok(code)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _seat(self, lobby: LobbyDocument, player: LobbyPlayer) -> SeatSpec:
        if lobby.settings.teams_enabled:
            team = lobby.teams.get(player.player_id, 0)
            color = lobby.team_color(team) or CHIP_COLORS[0]
        else:
            team = None
            color = player.color or CHIP_COLORS[0]
        return SeatSpec(
            player_id=player.player_id,
            name=player.name,
            color=color,
            is_host=player.is_host,
            is_bot=player.is_bot,
            team_index=team,
        )

    def _require_host(self, lobby: LobbyDocument, who: PlayerIdentity, message: str) -> RoomResult | None:
        me = lobby.get_player(who.player_id)
        if me is None or not me.is_host:
            return RoomResult.failure(message, ErrorCode.HOST_ONLY_ACTION, lobby.room_id)
        return None

    def _load(self, code: str) -> LobbyDocument | RoomResult:
        try:
            data = self.store.get(room_path(code))
            if room_is_gone(data):
                return RoomResult.failure("Room not found", ErrorCode.ROOM_NOT_FOUND, code)
            room = parse_room(data)
        except StoreError as e:
            return store_failure(e, code)
        if isinstance(room, GameDocument):
            return RoomResult.failure("Game already in progress", ErrorCode.INVALID_ACTION, code)
        return room

    def _write(self, lobby: LobbyDocument, keys: tuple[str, ...]) -> None:
        data = lobby.to_dict()
        fields = {key: data[key] for key in keys}
        fields["version"] = lobby.version + 1
        self.store.update(room_path(lobby.room_id), fields, expected_version=lobby.version)

    def _modify(
        self,
        code: str,
        change: Callable[[LobbyDocument], RoomResult | None],
        *keys: str,
    ) -> RoomResult:
        """Load the lobby, let change() mutate it or refuse, write back."""
        loaded = self._load(code)
        if isinstance(loaded, RoomResult):
            return loaded

        refused = change(loaded)
        if refused is not None:
            logger.debug("Lobby %s: %s", code, refused.error)
            return refused

        try:
            self._write(loaded, keys)
        except StoreError as e:
            return store_failure(e, code)
        return RoomResult.ok(code)
