"""
Session Results - What session operations return, and who is asking.

Session operations never raise for rule violations. They return a
RoomResult carrying an ErrorCode, the same way the reducer returns an
ActionResult. Store failures are caught at this boundary too and reported
as STORE_ERROR (or VERSION_CONFLICT) so callers can tell them apart from
rule failures.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import logging

from ..engine_core.action import ErrorCode
from .store import StoreError, VersionConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerIdentity:
    """The caller of a session operation. Passed explicitly, never global."""
    player_id: str
    name: str = ""


@dataclass
class RoomResult:
    success: bool
    room_code: str | None = None
    error: str | None = None
    error_code: ErrorCode | None = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, room_code: str | None = None, **data: Any) -> RoomResult:
        return cls(success=True, room_code=room_code, data=data)

    @classmethod
    def failure(cls, error: str, error_code: ErrorCode, room_code: str | None = None) -> RoomResult:
        return cls(success=False, room_code=room_code, error=error, error_code=error_code)


def store_failure(error: StoreError, room_code: str | None = None) -> RoomResult:
    """Report a store exception as a result, distinct from rule failures."""
    if isinstance(error, VersionConflict):
        logger.info("Stale write to room %s: %s", room_code, error)
        return RoomResult.failure(
            "Room changed since it was read; reload and retry",
            ErrorCode.VERSION_CONFLICT,
            room_code,
        )
    logger.warning("Store failure in room %s", room_code, exc_info=error)
    return RoomResult.failure(f"Store failure: {error}", ErrorCode.STORE_ERROR, room_code)
