"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between clients and the room service.
Identity is explicit: every request names the acting player_id.

Error codes are the engine's ErrorCode values (ROOM_NOT_FOUND,
NOT_YOUR_TURN, INVALID_PLACEMENT, ...). Malformed bodies are rejected by
FastAPI with 422 before reaching the service.
"""

from enum import Enum
from typing import Any, Literal, Optional
from pydantic import BaseModel, Field

from ..engine_core.action import ErrorCode


# =============================================================================
# Enums
# =============================================================================

class TurnAction(str, Enum):
    NATURAL = "natural"
    HIGHER = "higher"
    PASS = "pass"


class ChipColor(str, Enum):
    CORAL = "coral"
    MINT = "mint"
    SKY = "sky"
    PEACH = "peach"
    LAVENDER = "lavender"
    YELLOW = "yellow"


class BoardPatternName(str, Enum):
    SPIRAL = "spiral"
    SNAKE = "snake"
    NORMAL = "normal"


# =============================================================================
# Shared Models
# =============================================================================

class SettingsModel(BaseModel):
    """
    Partial game settings. Omitted fields keep their current value.

    Ranges match GameSettings.validate().
    """
    deck_size: Optional[Literal[100, 200]] = None
    cards_per_number: Optional[int] = Field(None, ge=1, le=3)
    hand_size: Optional[int] = Field(None, ge=3, le=7)
    win_length: Optional[int] = Field(None, ge=4, le=6)
    draw_on_higher: Optional[bool] = None
    allow_chip_override: Optional[bool] = None
    max_players: Optional[int] = Field(None, ge=2, le=6)
    board_pattern: Optional[BoardPatternName] = None
    teams_enabled: Optional[bool] = None

    def changes(self) -> dict[str, Any]:
        """Only the fields the client set, as plain values."""
        data = self.model_dump(exclude_none=True)
        if "board_pattern" in data:
            data["board_pattern"] = data["board_pattern"].value
        return data


# =============================================================================
# Requests
# =============================================================================

class PlayerRequest(BaseModel):
    """Body for operations that need only the caller."""
    player_id: str = Field(..., min_length=1)


class CreateRoomRequest(PlayerRequest):
    name: str = Field(..., min_length=1, max_length=40)
    settings: Optional[SettingsModel] = None


class JoinRoomRequest(PlayerRequest):
    name: str = Field(..., min_length=1, max_length=40)


class ColorRequest(PlayerRequest):
    color: ChipColor


class TeamRequest(PlayerRequest):
    target_player_id: str
    team_index: Optional[int] = Field(None, ge=0, le=2, description="null removes the player from their team")


class TeamColorRequest(PlayerRequest):
    team_index: int = Field(..., ge=0, le=2)
    color: ChipColor


class SettingsRequest(PlayerRequest):
    settings: SettingsModel


class TurnRequest(PlayerRequest):
    action: TurnAction
    card_id: Optional[str] = None
    cell_number: Optional[int] = Field(None, ge=0, le=99)


class HostTickRequest(PlayerRequest):
    now: Optional[float] = Field(None, description="Clock reading; server time when omitted")


# =============================================================================
# Responses
# =============================================================================

class RoomResponse(BaseModel):
    """Successful room operation."""
    success: bool = True
    room_code: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    environment: str
