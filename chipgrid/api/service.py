"""
API Service - Business logic layer between the HTTP API and the session layer.

The service:
1. Owns the store and the session services built on it
2. Keeps one HostDriver per room host, so turn timers survive between ticks
3. Turns request fields into engine actions and identities

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable
import logging
import random

from ..engine_core.action import Action, ErrorCode
from ..session import (
    DocumentStore,
    GameService,
    HostDriver,
    InMemoryDocumentStore,
    LobbyService,
    PlayerIdentity,
    PresenceTracker,
    RoomResult,
)
from ..session.documents import public_view, room_is_gone, room_path

logger = logging.getLogger(__name__)


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()
        created = service.lobby.create_room(PlayerIdentity("p1", "Ana"))
        service.play(created.room_code, "p1", "natural", "card-12-0-0", 12)
    """
    store: DocumentStore = field(default_factory=InMemoryDocumentStore)
    rng: random.Random = field(default_factory=random.Random)

    lobby: LobbyService = field(init=False)
    games: GameService = field(init=False)
    presence: PresenceTracker = field(init=False)

    # Host drivers by (room code, host id)
    _drivers: dict[tuple[str, str], HostDriver] = field(default_factory=dict)

    def __post_init__(self):
        self.lobby = LobbyService(self.store, rng=self.rng)
        self.games = GameService(self.store, rng=self.rng)
        self.presence = PresenceTracker(self.store)

    def play(
        self,
        code: str,
        player_id: str,
        action: str,
        card_id: str | None = None,
        cell_number: int | None = None,
    ) -> RoomResult:
        return self.games.play(code, Action.from_request(player_id, action, card_id, cell_number))

    def host_tick(self, code: str, player_id: str, now: float | None = None) -> RoomResult:
        key = (code, player_id)
        driver = self._drivers.get(key)
        if driver is None:
            driver = HostDriver(PlayerIdentity(player_id), self.games)
            self._drivers[key] = driver
        result = driver.tick(code, now)
        if not result.success:
            self._drivers.pop(key, None)
        return result

    def heartbeat(self, code: str, player_id: str) -> RoomResult:
        if room_is_gone(self.store.get(room_path(code))):
            return RoomResult.failure("Room not found", ErrorCode.ROOM_NOT_FOUND, code)
        self.presence.heartbeat(code, player_id)
        return RoomResult.ok(code)

    def snapshot(self, code: str) -> dict[str, Any] | None:
        """Public zone of a room, or None when it does not exist."""
        data = self.store.get(room_path(code))
        return None if room_is_gone(data) else public_view(data)

    def subscribe(self, code: str, on_change: Callable[[dict[str, Any] | None], None]) -> Callable[[], None]:
        """Stream public snapshots of a room; returns the unsubscribe call."""
        def deliver(data: Any) -> None:
            on_change(None if room_is_gone(data) else public_view(data))

        return self.store.subscribe(room_path(code), deliver)

    def cleanup(self) -> list[str]:
        deleted = self.games.cleanup_stale_rooms()
        if deleted:
            logger.info("Cleanup removed %d rooms", len(deleted))
        for key in [k for k in self._drivers if k[0] in deleted]:
            del self._drivers[key]
        return deleted
