"""
Document Store - The shared store every client reads from and writes to.

The rules engine only needs a small surface:
    get / set / update / subscribe / append / remove
plus a presence hook (values written on a client's disconnect).

update() can compare a `version` field before writing. That is the
optimistic-concurrency check that stops a stale writer from silently
clobbering a newer room state.

Subscriptions coalesce to the latest value: a write made while listeners
are being notified is not delivered re-entrantly. Its listeners get the
newest snapshot once the current round finishes.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Any, Callable
import itertools
import logging
import threading

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class StoreError(Exception):
    """Transport or persistence failure; distinct from rule violations."""


class VersionConflict(StoreError):
    """The document changed between read and write."""

    def __init__(self, path: str, expected: int, actual: int | None):
        super().__init__(f"Version conflict at {path}: expected {expected}, found {actual}")
        self.path = path
        self.expected = expected
        self.actual = actual


def split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def join_path(*parts: str) -> str:
    return "/".join(p.strip("/") for p in parts if p)


def _related(a: str, b: str) -> bool:
    """True if one path is an ancestor of (or equal to) the other."""
    pa, pb = split_path(a), split_path(b)
    n = min(len(pa), len(pb))
    return pa[:n] == pb[:n]


def _within(path: str, root: str) -> bool:
    """True if path is root or lies below it."""
    parts, root_parts = split_path(path), split_path(root)
    return parts[:len(root_parts)] == root_parts


class DocumentStore(ABC):
    """Abstract shared document store."""

    @abstractmethod
    def get(self, path: str) -> Any:
        """Value at path, or None if absent."""

    @abstractmethod
    def set(self, path: str, value: Any) -> None:
        """Replace the value at path. None removes it."""

    @abstractmethod
    def update(self, path: str, fields: dict[str, Any], expected_version: int | None = None) -> None:
        """
        Shallow-merge fields into the object at path.

        Field keys may be nested paths ("privateHands/p1/hand"). With
        expected_version, the write only happens if path/version still
        equals it; otherwise VersionConflict is raised.
        """

    @abstractmethod
    def subscribe(self, path: str, on_change: Listener) -> Unsubscribe:
        """Call on_change with the current value now and after every change."""

    @abstractmethod
    def append(self, path: str, value: Any) -> str:
        """Insert under a new unique, ordered key; return the key."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Delete the value at path and cancel disconnect writes under it."""

    @abstractmethod
    def on_disconnect_set_value(self, client_id: str, path: str, value: Any) -> None:
        """Register a write to perform when client_id disconnects."""

    @abstractmethod
    def disconnect(self, client_id: str) -> None:
        """Run the client's disconnect writes."""


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local store backed by nested dicts.

    Values are deep-copied in and out, so callers never share mutable
    structure with the store.
    """

    def __init__(self):
        self._root: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._listeners: dict[int, tuple[str, Listener]] = {}
        self._listener_ids = itertools.count(1)
        self._append_seq = itertools.count(1)
        self._disconnect_writes: dict[str, list[tuple[str, Any]]] = {}

        self._dispatching = False
        self._pending: set[int] = set()

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, path: str) -> Any:
        with self._lock:
            node: Any = self._root
            for part in split_path(path):
                if not isinstance(node, dict) or part not in node:
                    return None
                node = node[part]
            return deepcopy(node)

    # =========================================================================
    # Writes
    # =========================================================================

    def set(self, path: str, value: Any) -> None:
        with self._lock:
            self._write(path, value)
        self._notify([path])

    def update(self, path: str, fields: dict[str, Any], expected_version: int | None = None) -> None:
        with self._lock:
            if expected_version is not None:
                actual = self.get(join_path(path, "version"))
                if (actual or 0) != expected_version:
                    raise VersionConflict(path, expected_version, actual)
            for key, value in fields.items():
                self._write(join_path(path, key), value)
        self._notify([join_path(path, key) for key in fields] or [path])

    def append(self, path: str, value: Any) -> str:
        with self._lock:
            key = f"{next(self._append_seq):012d}"
            self._write(join_path(path, key), value)
        self._notify([path])
        return key

    def remove(self, path: str) -> None:
        with self._lock:
            self._write(path, None)
            for client_id, writes in list(self._disconnect_writes.items()):
                kept = [(p, v) for p, v in writes if not _within(p, path)]
                if kept:
                    self._disconnect_writes[client_id] = kept
                else:
                    del self._disconnect_writes[client_id]
        self._notify([path])

    def _write(self, path: str, value: Any) -> None:
        parts = split_path(path)
        if not parts:
            raise StoreError("Cannot write to the store root")

        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[part] = child
            node = child

        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = deepcopy(value)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, path: str, on_change: Listener) -> Unsubscribe:
        with self._lock:
            listener_id = next(self._listener_ids)
            self._listeners[listener_id] = (path, on_change)

        on_change(self.get(path))

        def unsubscribe():
            with self._lock:
                self._listeners.pop(listener_id, None)
                self._pending.discard(listener_id)

        return unsubscribe

    def _notify(self, changed: list[str]) -> None:
        with self._lock:
            affected = {
                listener_id
                for listener_id, (path, _) in self._listeners.items()
                if any(_related(path, c) for c in changed)
            }
            self._pending |= affected
            if self._dispatching:
                return
            self._dispatching = True

        try:
            while True:
                with self._lock:
                    if not self._pending:
                        break
                    listener_id = min(self._pending)
                    self._pending.discard(listener_id)
                    entry = self._listeners.get(listener_id)
                if entry is None:
                    continue
                path, callback = entry
                try:
                    callback(self.get(path))
                except Exception:
                    logger.warning("Store listener for %s failed", path, exc_info=True)
        finally:
            with self._lock:
                self._dispatching = False

    # =========================================================================
    # Presence
    # =========================================================================

    def on_disconnect_set_value(self, client_id: str, path: str, value: Any) -> None:
        with self._lock:
            self._disconnect_writes.setdefault(client_id, []).append((path, deepcopy(value)))

    def disconnect(self, client_id: str) -> None:
        with self._lock:
            writes = self._disconnect_writes.pop(client_id, [])
        for path, value in writes:
            self.set(path, value)
