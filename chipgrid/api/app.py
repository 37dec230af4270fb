"""
FastAPI Application - REST and WebSocket API for chipgrid rooms.

Endpoints:
    POST   /api/v1/rooms                        Create a lobby
    GET    /api/v1/rooms/{code}                 Room view (own hand only)
    POST   /api/v1/rooms/{code}/join            Join a lobby
    POST   /api/v1/rooms/{code}/color           Pick a chip color
    POST   /api/v1/rooms/{code}/ready           Toggle ready
    POST   /api/v1/rooms/{code}/bots            Add a bot (host)
    DELETE /api/v1/rooms/{code}/bots/{bot_id}   Remove a bot (host)
    POST   /api/v1/rooms/{code}/teams           Assign a team (host)
    POST   /api/v1/rooms/{code}/team-colors     Pick a team color (host)
    PATCH  /api/v1/rooms/{code}/settings        Change settings (host)
    POST   /api/v1/rooms/{code}/leave           Leave the lobby
    POST   /api/v1/rooms/{code}/start           Deal the game (host)
    POST   /api/v1/rooms/{code}/turns           Play natural / higher / pass
    GET    /api/v1/rooms/{code}/valid-moves     Legal targets per card
    GET    /api/v1/rooms/{code}/summary         Turn number and chips per player
    POST   /api/v1/rooms/{code}/forfeit         Leave a game in progress
    POST   /api/v1/rooms/{code}/reset           Back to the lobby
    POST   /api/v1/rooms/{code}/rematch         Fresh deal, same players
    POST   /api/v1/rooms/{code}/host/tick       Drive bots and the turn timer (host)
    POST   /api/v1/rooms/{code}/presence        Heartbeat
    WS     /api/v1/rooms/{code}/ws              Public room snapshots

Every failure body is an ErrorResponse with the engine's error code.
"""

from typing import Optional, Union
import asyncio
import json
import logging

from .. import config

logger = logging.getLogger(__name__)

# HTTP status per error code; anything unlisted is a 400
_STATUS_BY_CODE = {
    "ROOM_NOT_FOUND": 404,
    "PLAYER_NOT_FOUND": 404,
    "BOT_NOT_FOUND": 404,
    "HOST_ONLY_ACTION": 403,
    "NOT_YOUR_TURN": 403,
    "ROOM_FULL": 409,
    "ALREADY_IN_ROOM": 409,
    "COLOR_ALREADY_TAKEN": 409,
    "NO_COLORS_AVAILABLE": 409,
    "LOBBY_NOT_READY": 409,
    "GAME_NOT_IN_PROGRESS": 409,
    "VERSION_CONFLICT": 409,
    "STORE_ERROR": 503,
}


def status_for(error_code) -> int:
    value = getattr(error_code, "value", error_code)
    return _STATUS_BY_CODE.get(value, 400)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from .schemas import (
        ColorRequest,
        CreateRoomRequest,
        ErrorResponse,
        HealthResponse,
        HostTickRequest,
        JoinRoomRequest,
        PlayerRequest,
        RoomResponse,
        SettingsRequest,
        TeamColorRequest,
        TeamRequest,
        TurnRequest,
    )
    from ..engine_core.action import ErrorCode
    from ..session import PlayerIdentity, RoomResult

    app = FastAPI(
        title="Chipgrid API",
        description="""
Numbered-card placement game for 2-6 players on a 10x10 board.

## Flow

1. `POST /api/v1/rooms` creates a lobby; others `join`
2. Players pick colors and ready up; the host adds bots and starts
3. Players `POST /turns`; the host calls `POST /host/tick` about once a
   second so bots move and the 30 s turn timer is enforced
4. Everyone follows `WS /ws` for public snapshots

## Error Codes

| Code | HTTP |
|------|------|
| `ROOM_NOT_FOUND`, `PLAYER_NOT_FOUND`, `BOT_NOT_FOUND` | 404 |
| `HOST_ONLY_ACTION`, `NOT_YOUR_TURN` | 403 |
| `ROOM_FULL`, `COLOR_ALREADY_TAKEN`, `VERSION_CONFLICT`, ... | 409 |
| `STORE_ERROR` | 503 |
| `INVALID_PLACEMENT`, `CARD_NOT_IN_HAND`, ... | 400 |
        """,
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()
    lobby = api_service.lobby
    games = api_service.games

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_for(error_code),
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def respond(result: RoomResult) -> Union[RoomResponse, JSONResponse]:
        if not result.success:
            return make_error_response(
                result.error_code or ErrorCode.INVALID_ACTION,
                result.error or "Request failed",
            )
        return RoomResponse(room_code=result.room_code, data=result.data)

    error_responses = {
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    }

    # =========================================================================
    # Lobby Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/rooms",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Lobby"],
        summary="Create a lobby",
    )
    async def create_room(body: CreateRoomRequest):
        """Create a lobby with the caller as host. Returns the 6-character room code."""
        settings = body.settings.changes() if body.settings else None
        return respond(lobby.create_room(PlayerIdentity(body.player_id, body.name), settings))

    @app.post("/api/v1/rooms/{code}/join", response_model=RoomResponse, responses=error_responses, tags=["Lobby"])
    async def join_room(code: str, body: JoinRoomRequest):
        return respond(lobby.join_room(code, PlayerIdentity(body.player_id, body.name)))

    @app.post("/api/v1/rooms/{code}/color", response_model=RoomResponse, responses=error_responses, tags=["Lobby"])
    async def select_color(code: str, body: ColorRequest):
        return respond(lobby.select_color(code, PlayerIdentity(body.player_id), body.color.value))

    @app.post("/api/v1/rooms/{code}/ready", response_model=RoomResponse, responses=error_responses, tags=["Lobby"])
    async def toggle_ready(code: str, body: PlayerRequest):
        return respond(lobby.toggle_ready(code, PlayerIdentity(body.player_id)))

    @app.post("/api/v1/rooms/{code}/bots", response_model=RoomResponse, responses=error_responses, tags=["Lobby"])
    async def add_bot(code: str, body: PlayerRequest):
        """Add a bot with the first free color. Host only."""
        return respond(lobby.add_bot(code, PlayerIdentity(body.player_id)))

    @app.delete(
        "/api/v1/rooms/{code}/bots/{bot_id}",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Lobby"],
    )
    async def remove_bot(code: str, bot_id: str, player_id: str = Query(..., min_length=1)):
        return respond(lobby.remove_bot(code, PlayerIdentity(player_id), bot_id))

    @app.post("/api/v1/rooms/{code}/teams", response_model=RoomResponse, responses=error_responses, tags=["Lobby"])
    async def assign_team(code: str, body: TeamRequest):
        return respond(lobby.assign_team(code, PlayerIdentity(body.player_id), body.target_player_id, body.team_index))

    @app.post(
        "/api/v1/rooms/{code}/team-colors",
        response_model=RoomResponse,
        responses=error_responses,
        tags=["Lobby"],
    )
    async def select_team_color(code: str, body: TeamColorRequest):
        return respond(
            lobby.select_team_color(code, PlayerIdentity(body.player_id), body.team_index, body.color.value)
        )

    @app.patch("/api/v1/rooms/{code}/settings", response_model=RoomResponse, responses=error_responses, tags=["Lobby"])
    async def update_settings(code: str, body: SettingsRequest):
        return respond(lobby.update_settings(code, PlayerIdentity(body.player_id), body.settings.changes()))

    @app.post("/api/v1/rooms/{code}/leave", response_model=RoomResponse, responses=error_responses, tags=["Lobby"])
    async def leave_room(code: str, body: PlayerRequest):
        return respond(lobby.leave_room(code, PlayerIdentity(body.player_id)))

    @app.post("/api/v1/rooms/{code}/start", response_model=RoomResponse, responses=error_responses, tags=["Lobby"])
    async def start_game(code: str, body: PlayerRequest):
        """Deal the game. Fails with LOBBY_NOT_READY and the admission reason."""
        return respond(lobby.start_game(code, PlayerIdentity(body.player_id)))

    # =========================================================================
    # Game Endpoints
    # =========================================================================

    @app.get("/api/v1/rooms/{code}", response_model=RoomResponse, responses=error_responses, tags=["Game"])
    async def get_room(code: str, player_id: str = Query(..., min_length=1)):
        """Public room state plus the caller's own hand. Other hands are never sent."""
        return respond(games.room_view(code, PlayerIdentity(player_id)))

    @app.post("/api/v1/rooms/{code}/turns", response_model=RoomResponse, responses=error_responses, tags=["Game"])
    async def play_turn(code: str, body: TurnRequest):
        """
        Play a turn.

        **Request Body:**
        ```json
        {"player_id": "p1", "action": "natural", "card_id": "card-12-0-0", "cell_number": 12}
        ```
        """
        return respond(api_service.play(code, body.player_id, body.action.value, body.card_id, body.cell_number))

    @app.get("/api/v1/rooms/{code}/valid-moves", response_model=RoomResponse, responses=error_responses, tags=["Game"])
    async def valid_moves(code: str, player_id: str = Query(..., min_length=1), card_id: Optional[str] = None):
        return respond(games.valid_moves(code, PlayerIdentity(player_id), card_id))

    @app.get("/api/v1/rooms/{code}/summary", response_model=RoomResponse, responses=error_responses, tags=["Game"])
    async def game_summary(code: str):
        return respond(games.summary(code))

    @app.post("/api/v1/rooms/{code}/forfeit", response_model=RoomResponse, responses=error_responses, tags=["Game"])
    async def forfeit(code: str, body: PlayerRequest):
        return respond(games.forfeit(code, PlayerIdentity(body.player_id)))

    @app.post("/api/v1/rooms/{code}/reset", response_model=RoomResponse, responses=error_responses, tags=["Game"])
    async def reset_to_lobby(code: str, body: PlayerRequest):
        return respond(lobby.reset_to_lobby(code, PlayerIdentity(body.player_id)))

    @app.post("/api/v1/rooms/{code}/rematch", response_model=RoomResponse, responses=error_responses, tags=["Game"])
    async def rematch(code: str, body: PlayerRequest):
        """Deal again with the same players and settings. Host or winner only."""
        return respond(games.request_rematch(code, PlayerIdentity(body.player_id)))

    @app.post("/api/v1/rooms/{code}/host/tick", response_model=RoomResponse, responses=error_responses, tags=["Host"])
    async def host_tick(code: str, body: HostTickRequest):
        """Play pending bot turns and enforce the turn timer. Host only."""
        return respond(api_service.host_tick(code, body.player_id, body.now))

    @app.post("/api/v1/rooms/{code}/presence", response_model=RoomResponse, responses=error_responses, tags=["Host"])
    async def heartbeat(code: str, body: PlayerRequest):
        return respond(api_service.heartbeat(code, body.player_id))

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/rooms/{code}/ws")
    async def room_updates(websocket: WebSocket, code: str, player_id: Optional[str] = None):
        """
        Public room snapshots.

        Messages from server:
        - room_update: the newest public zone (null when the room is gone)
        - pong: reply to ping

        Messages from client:
        - ping: Keep-alive

        Only the newest snapshot is queued; a slow client skips stale ones.
        """
        await websocket.accept()

        loop = asyncio.get_running_loop()
        latest: asyncio.Queue = asyncio.Queue(maxsize=1)

        def offer(snapshot):
            if latest.full():
                latest.get_nowait()
            latest.put_nowait(snapshot)

        unsubscribe = api_service.subscribe(code, lambda snapshot: loop.call_soon_threadsafe(offer, snapshot))

        client_id = f"ws-{id(websocket)}"
        if player_id:
            api_service.presence.connect(code, player_id, client_id)

        async def pump():
            while True:
                snapshot = await latest.get()
                await websocket.send_json({"type": "room_update", "payload": snapshot})

        pump_task = asyncio.create_task(pump())
        try:
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })
                    continue
                if isinstance(message, dict) and message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
        except WebSocketDisconnect:
            logger.debug("Room %s: websocket %s closed", code, client_id)
        finally:
            pump_task.cancel()
            unsubscribe()
            if player_id:
                api_service.store.disconnect(client_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="chipgrid",
            version="1.0.0",
            environment=config.CHIPGRID_ENV,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Chipgrid API",
            "version": "1.0.0",
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn chipgrid.api.app:app
app = create_app()
