"""
Room Documents - The two shapes stored at rooms/{code}.

A room is either a lobby (status "waiting") or a game ("playing" or
"finished"). parse_room() is the boundary: it checks the discriminator and
the required keys before anything reinterprets the data.

Layout under rooms/{code}:
    <public zone>                       lobby or game fields, never hands
    privateHands/{playerId}/hand        one player's cards
    turnHistory/{key}                   append-only turn log
    presence/{playerId}                 {online, lastSeen}
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import time

from ..engine_core.state import (
    Board,
    Card,
    GameSettings,
    GameState,
    GameStatus,
    Player,
    TurnHistoryEntry,
)
from .store import StoreError


ROOMS_ROOT = "rooms"
PRIVATE_HANDS = "privateHands"
TURN_HISTORY = "turnHistory"
PRESENCE = "presence"

# Keys that are not part of the public zone
_NON_PUBLIC_KEYS = {PRIVATE_HANDS, TURN_HISTORY, PRESENCE}

# Card piles shown to clients only as counts
_PILE_KEYS = {"deck": "deckCount", "discardPile": "discardCount"}

_LOBBY_KEYS = ("roomId", "status", "settings", "players")
_GAME_KEYS = ("roomId", "status", "settings", "board", "players", "currentPlayerIndex")


class DocumentError(StoreError):
    """Stored room data does not match either document shape."""


def room_path(code: str) -> str:
    return f"{ROOMS_ROOT}/{code}"


def hand_path(code: str, player_id: str) -> str:
    return f"{ROOMS_ROOT}/{code}/{PRIVATE_HANDS}/{player_id}/hand"


def history_path(code: str) -> str:
    return f"{ROOMS_ROOT}/{code}/{TURN_HISTORY}"


def history_key(index: int) -> str:
    """Field key of the index-th turn, relative to the room. Sorts in turn order."""
    return f"{TURN_HISTORY}/{index:012d}"


def presence_path(code: str, player_id: str | None = None) -> str:
    base = f"{ROOMS_ROOT}/{code}/{PRESENCE}"
    return f"{base}/{player_id}" if player_id else base


@dataclass
class LobbyPlayer:
    player_id: str
    name: str
    color: str | None = None
    is_host: bool = False
    is_ready: bool = False
    is_bot: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.player_id,
            "name": self.name,
            "color": self.color,
            "isHost": self.is_host,
            "isReady": self.is_ready,
        }
        if self.is_bot:
            data["isBot"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LobbyPlayer:
        return cls(
            player_id=data["id"],
            name=data["name"],
            color=data.get("color"),
            is_host=bool(data.get("isHost", False)),
            is_ready=bool(data.get("isReady", False)),
            is_bot=bool(data.get("isBot", False)),
        )


@dataclass
class LobbyDocument:
    """Pre-game room: roster, settings, team assignment."""
    room_id: str
    settings: GameSettings = field(default_factory=GameSettings)
    players: list[LobbyPlayer] = field(default_factory=list)
    teams: dict[str, int] = field(default_factory=dict)
    team_colors: list[str | None] = field(default_factory=lambda: [None, None, None])
    created_at: float = field(default_factory=time.time)
    version: int = 0

    status = GameStatus.WAITING

    def get_player(self, player_id: str) -> LobbyPlayer | None:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def team_color(self, team_index: int) -> str | None:
        if 0 <= team_index < len(self.team_colors):
            return self.team_colors[team_index]
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "roomId": self.room_id,
            "status": GameStatus.WAITING.value,
            "settings": self.settings.to_dict(),
            "players": [p.to_dict() for p in self.players],
            "teams": dict(self.teams),
            "teamColors": list(self.team_colors),
            "createdAt": self.created_at,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LobbyDocument:
        team_colors = list(data.get("teamColors") or [None, None, None])
        return cls(
            room_id=data["roomId"],
            settings=GameSettings.from_dict(data["settings"]),
            players=[LobbyPlayer.from_dict(p) for p in data.get("players") or []],
            teams={k: int(v) for k, v in (data.get("teams") or {}).items()},
            team_colors=team_colors,
            created_at=float(data.get("createdAt", 0.0)),
            version=int(data.get("version", 0)),
        )


@dataclass
class GameDocument:
    """
    In-progress or finished room, as stored.

    Holds the public GameState (empty hands). to_state() merges in the
    private hands and history to rebuild the full state the engine needs.
    """
    state: GameState

    @property
    def status(self) -> GameStatus:
        return self.state.status

    @property
    def version(self) -> int:
        return self.state.version

    def to_state(
        self,
        hands: dict[str, list[Card]] | None = None,
        history: list[TurnHistoryEntry] | None = None,
    ) -> GameState:
        full = self.state.clone()
        hands = hands or {}
        for player in full.players:
            player.hand = list(hands.get(player.player_id, []))
        full.turn_history = list(history or [])
        return full

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameDocument:
        turn_order = data.get("turnOrder")
        state = GameState(
            room_id=data["roomId"],
            settings=GameSettings.from_dict(data["settings"]),
            board=Board.from_dict(data["board"]),
            players=[Player.from_dict(p) for p in data.get("players") or []],
            status=GameStatus(data["status"]),
            current_player_index=int(data["currentPlayerIndex"]),
            deck=[Card.from_dict(c) for c in data.get("deck") or []],
            discard_pile=[Card.from_dict(c) for c in data.get("discardPile") or []],
            winner=data.get("winner"),
            turn_order=[int(i) for i in turn_order] if turn_order is not None else None,
            created_at=float(data.get("createdAt", 0.0)),
            version=int(data.get("version", 0)),
        )
        # Public data never carries hands, whatever the writer sent
        for player in state.players:
            player.hand = []
        return cls(state=state)


def _require(data: dict[str, Any], keys: tuple[str, ...], shape: str) -> None:
    missing = [k for k in keys if k not in data]
    if missing:
        raise DocumentError(f"Malformed {shape} document, missing: {', '.join(missing)}")


def room_is_gone(data: Any) -> bool:
    """
    True when nothing but leftovers remain at a room path: no data at all,
    or only presence, hands or history written after the room was deleted.
    """
    if data is None:
        return True
    return isinstance(data, dict) and not set(data) - _NON_PUBLIC_KEYS


def parse_room(data: Any) -> LobbyDocument | GameDocument:
    """
    Interpret a stored room by its status discriminator.

    Raises DocumentError when the data fits neither shape.
    """
    if not isinstance(data, dict):
        raise DocumentError("Room document is not an object")

    status = data.get("status")
    try:
        if status == GameStatus.WAITING.value:
            _require(data, _LOBBY_KEYS, "lobby")
            return LobbyDocument.from_dict(data)
        if status in (GameStatus.PLAYING.value, GameStatus.FINISHED.value):
            _require(data, _GAME_KEYS, "game")
            return GameDocument.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise DocumentError(f"Malformed room document: {e}") from e

    raise DocumentError(f"Unknown room status: {status!r}")


def parse_hands(data: Any) -> dict[str, list[Card]]:
    """privateHands subtree -> player id -> cards."""
    hands: dict[str, list[Card]] = {}
    for player_id, entry in (data or {}).items():
        cards = (entry or {}).get("hand") or []
        hands[player_id] = [Card.from_dict(c) for c in cards]
    return hands


def parse_history(data: Any) -> list[TurnHistoryEntry]:
    """turnHistory subtree -> entries in append order."""
    if not data:
        return []
    return [TurnHistoryEntry.from_dict(data[key]) for key in sorted(data)]


def public_view(data: dict[str, Any]) -> dict[str, Any]:
    """
    What every client may see of a raw room.

    Drops the private zone, history and presence. The deck and discard
    pile appear only as deckCount and discardCount.
    """
    view = {k: v for k, v in data.items() if k not in _NON_PUBLIC_KEYS and k not in _PILE_KEYS}
    for key, count_key in _PILE_KEYS.items():
        if key in data:
            view[count_key] = len(data[key] or [])
    return view
