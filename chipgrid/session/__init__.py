"""
Session module - Rooms in the shared document store.

Provides:
- DocumentStore / InMemoryDocumentStore: the shared store
- LobbyService: rooms before the deal
- GameService: turns, forfeits and rematches with versioned write-back
- HostDriver / TurnTimer: host-only bot turns and timeouts
- PresenceTracker: who is connected
"""

from .store import DocumentStore, InMemoryDocumentStore, StoreError, VersionConflict
from .documents import DocumentError, GameDocument, LobbyDocument, LobbyPlayer, parse_room
from .results import PlayerIdentity, RoomResult
from .lobby import AdmissionCheck, LobbyService, can_start_game
from .manager import GameService, GameSummary, game_summary
from .game_loop import HostDriver, TurnTimer, TimerEvent, TimerEventType
from .presence import PresenceTracker, PlayerPresence, is_player_online, offline_players

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "StoreError",
    "VersionConflict",
    "DocumentError",
    "GameDocument",
    "LobbyDocument",
    "LobbyPlayer",
    "parse_room",
    "PlayerIdentity",
    "RoomResult",
    "AdmissionCheck",
    "LobbyService",
    "can_start_game",
    "GameService",
    "GameSummary",
    "game_summary",
    "HostDriver",
    "TurnTimer",
    "TimerEvent",
    "TimerEventType",
    "PresenceTracker",
    "PlayerPresence",
    "is_player_online",
    "offline_players",
]
