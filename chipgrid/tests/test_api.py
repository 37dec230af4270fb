"""
Tests for API layer.

Tests:
- API service methods
- Lobby and game endpoints end to end
- Error bodies and HTTP status codes
- WebSocket room snapshots
"""

import random

import pytest
from fastapi.testclient import TestClient

from ..api import APIService, create_app
from ..engine_core.action import ErrorCode
from ..session import PlayerIdentity
from .conftest import give_card, save


@pytest.fixture
def service():
    """Create a fresh API service."""
    return APIService(rng=random.Random(99))


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


@pytest.fixture
def room(client):
    """Lobby with Ana (host, coral) and a ready Ben (mint)."""
    code = client.post("/api/v1/rooms", json={
        "player_id": "p1", "name": "Ana", "settings": {"board_pattern": "normal"},
    }).json()["room_code"]
    client.post(f"/api/v1/rooms/{code}/join", json={"player_id": "p2", "name": "Ben"})
    client.post(f"/api/v1/rooms/{code}/color", json={"player_id": "p1", "color": "coral"})
    client.post(f"/api/v1/rooms/{code}/color", json={"player_id": "p2", "color": "mint"})
    client.post(f"/api/v1/rooms/{code}/ready", json={"player_id": "p2"})
    return code


@pytest.fixture
def started(client, room):
    response = client.post(f"/api/v1/rooms/{room}/start", json={"player_id": "p1"})
    assert response.status_code == 200, response.json()
    return room


class TestAPIService:
    """Tests for APIService."""

    def test_play_builds_actions(self, service):
        code = service.lobby.create_room(PlayerIdentity("p1", "Ana")).room_code

        result = service.play(code, "p1", "pass")

        assert result.error_code == ErrorCode.GAME_NOT_IN_PROGRESS

    def test_host_driver_is_kept_between_ticks(self, service, client, started):
        first = service.host_tick(started, "p1", now=0.0)
        second = service.host_tick(started, "p1", now=5.0)

        assert first.data["timerEvents"][0]["type"] == "started"
        assert second.data["secondsRemaining"] == 25.0
        assert len(service._drivers) == 1

    def test_failed_tick_drops_driver(self, service, client, started):
        assert not service.host_tick(started, "p2", now=0.0).success
        assert service._drivers == {}

    def test_heartbeat_needs_room(self, service):
        assert service.heartbeat("NOPE00", "p1").error_code == ErrorCode.ROOM_NOT_FOUND

    def test_snapshot(self, service, client, started):
        snapshot = service.snapshot(started)

        assert snapshot["status"] == "playing"
        assert "privateHands" not in snapshot
        assert "discardPile" not in snapshot
        assert service.snapshot("NOPE00") is None

    def test_cleanup(self, service):
        code = service.lobby.create_room(PlayerIdentity("p1", "Ana")).room_code
        service.lobby.leave_room(code, PlayerIdentity("p1"))
        assert service.cleanup() == []


class TestLobbyEndpoints:

    def test_create_room(self, client):
        response = client.post("/api/v1/rooms", json={"player_id": "p1", "name": "Ana"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["room_code"]) == 6

    def test_invalid_settings_rejected_by_schema(self, client):
        response = client.post("/api/v1/rooms", json={
            "player_id": "p1", "name": "Ana", "settings": {"win_length": 9},
        })
        assert response.status_code == 422

    def test_join_twice_is_conflict(self, client, room):
        response = client.post(f"/api/v1/rooms/{room}/join", json={"player_id": "p2", "name": "Ben"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "ALREADY_IN_ROOM"

    def test_missing_room_is_404(self, client):
        response = client.post("/api/v1/rooms/NOPE00/join", json={"player_id": "p2", "name": "Ben"})

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Room not found"
        assert body["api_version"] == "v1"

    def test_bots(self, client, room):
        added = client.post(f"/api/v1/rooms/{room}/bots", json={"player_id": "p1"})
        bot_id = added.json()["data"]["botId"]

        denied = client.post(f"/api/v1/rooms/{room}/bots", json={"player_id": "p2"})
        removed = client.delete(f"/api/v1/rooms/{room}/bots/{bot_id}", params={"player_id": "p1"})
        missing = client.delete(f"/api/v1/rooms/{room}/bots/{bot_id}", params={"player_id": "p1"})

        assert added.status_code == 200
        assert denied.status_code == 403
        assert removed.status_code == 200
        assert missing.json()["error_code"] == "BOT_NOT_FOUND"

    def test_teams_and_settings(self, client, room):
        client.patch(f"/api/v1/rooms/{room}/settings", json={
            "player_id": "p1", "settings": {"teams_enabled": True},
        })
        client.post(f"/api/v1/rooms/{room}/teams", json={"player_id": "p1", "target_player_id": "p1", "team_index": 0})
        client.post(f"/api/v1/rooms/{room}/teams", json={"player_id": "p1", "target_player_id": "p2", "team_index": 1})
        client.post(f"/api/v1/rooms/{room}/team-colors", json={"player_id": "p1", "team_index": 0, "color": "peach"})
        taken = client.post(f"/api/v1/rooms/{room}/team-colors", json={
            "player_id": "p1", "team_index": 1, "color": "peach",
        })

        assert taken.status_code == 409
        not_ready = client.post(f"/api/v1/rooms/{room}/start", json={"player_id": "p1"})
        assert not_ready.json()["error"] == "All teams must have colors"

    def test_leave(self, client, room):
        response = client.post(f"/api/v1/rooms/{room}/leave", json={"player_id": "p1"})
        view = client.get(f"/api/v1/rooms/{room}", params={"player_id": "p2"}).json()

        assert response.status_code == 200
        assert view["data"]["room"]["players"][0]["isHost"] is True

    def test_start_requires_ready(self, client, room):
        client.post(f"/api/v1/rooms/{room}/ready", json={"player_id": "p2"})
        response = client.post(f"/api/v1/rooms/{room}/start", json={"player_id": "p1"})

        assert response.status_code == 409
        assert response.json()["error_code"] == "LOBBY_NOT_READY"


class TestGameEndpoints:

    def test_room_view_hides_other_hands(self, client, started):
        body = client.get(f"/api/v1/rooms/{started}", params={"player_id": "p2"}).json()

        assert len(body["data"]["hand"]) == 5
        assert "privateHands" not in body["data"]["room"]
        assert all(p["hand"] == [] for p in body["data"]["room"]["players"])

    def test_walkthrough(self, client, service, started):
        """Play 12 on 12, hand refills, and the same card is then rejected."""
        state = service.games.read_game(started)
        card = give_card(state, "p1", 12)
        save(service.store, started, state)

        turn = {"player_id": "p1", "action": "natural", "card_id": card.card_id, "cell_number": 12}
        played = client.post(f"/api/v1/rooms/{started}/turns", json=turn)
        view = client.get(f"/api/v1/rooms/{started}", params={"player_id": "p1"}).json()["data"]

        assert played.status_code == 200
        assert len(view["hand"]) == 5
        assert view["room"]["board"]["cells"][1][2]["chip"]["playerId"] == "p1"
        assert view["summary"]["currentPlayerName"] == "Ben"

        client.post(f"/api/v1/rooms/{started}/turns", json={"player_id": "p2", "action": "pass"})
        again = client.post(f"/api/v1/rooms/{started}/turns", json=turn)

        assert again.status_code == 400
        assert again.json()["error_code"] == "CARD_NOT_IN_HAND"

    def test_out_of_turn(self, client, started):
        response = client.post(f"/api/v1/rooms/{started}/turns", json={"player_id": "p2", "action": "pass"})

        assert response.status_code == 403
        assert response.json()["error_code"] == "NOT_YOUR_TURN"

    def test_valid_moves_and_summary(self, client, started):
        moves = client.get(f"/api/v1/rooms/{started}/valid-moves", params={"player_id": "p1"}).json()
        summary = client.get(f"/api/v1/rooms/{started}/summary").json()

        assert moves["data"]["isMyTurn"] is True
        assert len(moves["data"]["moves"]) == 5
        assert summary["data"]["turnNumber"] == 1

    def test_forfeit_reset_and_rematch(self, client, started):
        forfeit = client.post(f"/api/v1/rooms/{started}/forfeit", json={"player_id": "p2"})
        assert forfeit.json()["data"]["winner"] == "p1"

        rematch = client.post(f"/api/v1/rooms/{started}/rematch", json={"player_id": "p1"})
        assert rematch.status_code == 200

        busy = client.post(f"/api/v1/rooms/{started}/reset", json={"player_id": "p1"})
        assert busy.json()["error"] == "Game is still in progress"

        client.post(f"/api/v1/rooms/{started}/forfeit", json={"player_id": "p1"})
        reset = client.post(f"/api/v1/rooms/{started}/reset", json={"player_id": "p2"})
        view = client.get(f"/api/v1/rooms/{started}", params={"player_id": "p2"}).json()

        assert reset.status_code == 200
        assert view["data"]["room"]["status"] == "waiting"

    def test_host_tick(self, client, started):
        host = client.post(f"/api/v1/rooms/{started}/host/tick", json={"player_id": "p1", "now": 0})
        guest = client.post(f"/api/v1/rooms/{started}/host/tick", json={"player_id": "p2", "now": 0})

        assert host.json()["data"]["timerEvents"][0]["playerId"] == "p1"
        assert guest.status_code == 403

    def test_presence(self, client, service, started):
        response = client.post(f"/api/v1/rooms/{started}/presence", json={"player_id": "p2"})

        assert response.status_code == 200
        assert service.presence.snapshot(started)["p2"].online


class TestWebSocket:

    def test_snapshots_follow_the_room(self, client, room):
        with client.websocket_connect(f"/api/v1/rooms/{room}/ws") as ws:
            first = ws.receive_json()
            assert first["type"] == "room_update"
            assert first["payload"]["status"] == "waiting"

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

            client.post(f"/api/v1/rooms/{room}/start", json={"player_id": "p1"})
            update = ws.receive_json()

        assert update["payload"]["status"] == "playing"
        assert "privateHands" not in update["payload"]
        assert "deck" not in update["payload"]
        assert update["payload"]["deckCount"] == 90

    def test_bad_json(self, client, room):
        with client.websocket_connect(f"/api/v1/rooms/{room}/ws") as ws:
            ws.receive_json()
            ws.send_text("not json")
            assert ws.receive_json()["type"] == "error"

    def test_disconnect_marks_player_offline(self, client, service, room):
        with client.websocket_connect(f"/api/v1/rooms/{room}/ws?player_id=p2") as ws:
            ws.receive_json()
            assert service.presence.snapshot(room)["p2"].online

        assert not service.presence.snapshot(room)["p2"].online


class TestSystem:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["service"] == "chipgrid"

    def test_root(self, client):
        assert client.get("/").json()["docs"] == "/api/docs"
