"""
Presence - Who is connected to a room.

Each client writes {online, lastSeen} under rooms/{code}/presence/{id}
on connect and on every heartbeat, and registers a disconnect write that
marks it offline. A player counts as online only when marked online and
seen within ONLINE_WINDOW_SECONDS.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable
import logging
import time

from .documents import presence_path
from .store import DocumentStore

logger = logging.getLogger(__name__)

ONLINE_WINDOW_SECONDS = 60
HEARTBEAT_SECONDS = 30


@dataclass(frozen=True)
class PlayerPresence:
    player_id: str
    online: bool
    last_seen: float

    @classmethod
    def from_dict(cls, player_id: str, data: dict[str, Any]) -> PlayerPresence:
        return cls(
            player_id=player_id,
            online=bool(data.get("online", False)),
            last_seen=float(data.get("lastSeen", 0.0)),
        )


def is_player_online(
    presence: dict[str, PlayerPresence],
    player_id: str,
    now: float,
) -> bool:
    entry = presence.get(player_id)
    if entry is None:
        return False
    return entry.online and (now - entry.last_seen) < ONLINE_WINDOW_SECONDS


def offline_players(
    presence: dict[str, PlayerPresence],
    player_ids: Iterable[str],
    now: float,
) -> list[str]:
    return [pid for pid in player_ids if not is_player_online(presence, pid, now)]


@dataclass
class PresenceTracker:
    """
    Usage:
        tracker = PresenceTracker(store)
        tracker.connect("ABC123", "p1", client_id="conn-1")
        tracker.heartbeat("ABC123", "p1")     # every HEARTBEAT_SECONDS
        store.disconnect("conn-1")            # marks p1 offline
    """
    store: DocumentStore
    clock: Callable[[], float] = time.time

    def connect(self, code: str, player_id: str, client_id: str) -> None:
        path = presence_path(code, player_id)
        self.store.set(path, {"online": True, "lastSeen": self.clock()})
        self.store.on_disconnect_set_value(client_id, path, {"online": False, "lastSeen": self.clock()})
        logger.debug("Room %s: %s connected as %s", code, player_id, client_id)

    def heartbeat(self, code: str, player_id: str) -> None:
        self.store.set(presence_path(code, player_id), {"online": True, "lastSeen": self.clock()})

    def leave(self, code: str, player_id: str) -> None:
        self.store.set(presence_path(code, player_id), {"online": False, "lastSeen": self.clock()})

    def snapshot(self, code: str) -> dict[str, PlayerPresence]:
        data = self.store.get(presence_path(code)) or {}
        return {pid: PlayerPresence.from_dict(pid, entry) for pid, entry in data.items()}
