"""
API Module - HTTP and WebSocket interface.

Exposes the room services over REST for clients. A client:
1. Creates or joins a lobby
2. Picks a color, readies up, and (as host) starts the game
3. Plays turns and follows the room over a WebSocket
4. As host, ticks the room so bots move and the turn timer runs
"""

from .schemas import ErrorResponse, RoomResponse, HealthResponse
from .service import APIService
from .app import create_app

__all__ = [
    "ErrorResponse",
    "RoomResponse",
    "HealthResponse",
    "APIService",
    "create_app",
]
