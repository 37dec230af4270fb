"""
Tests for the document store and room documents.

Tests:
- Path reads and writes, removal by writing None
- Versioned updates
- Append keys, coalescing subscriptions, disconnect writes
- Lobby/game discrimination and the public view
"""

import pytest

from ..engine_core.state import Card, GameStatus, TurnHistoryEntry
from ..session.documents import (
    DocumentError,
    GameDocument,
    LobbyDocument,
    LobbyPlayer,
    parse_history,
    parse_hands,
    parse_room,
    public_view,
    room_is_gone,
)
from ..session.store import InMemoryDocumentStore, StoreError, VersionConflict, join_path


class TestReadsAndWrites:

    def test_set_and_get_nested(self, store):
        store.set("rooms/ABC/settings", {"winLength": 5})

        assert store.get("rooms/ABC/settings/winLength") == 5
        assert store.get("rooms/ABC") == {"settings": {"winLength": 5}}
        assert store.get("rooms/XYZ") is None

    def test_values_are_copied(self, store):
        value = {"players": ["a"]}
        store.set("rooms/ABC", value)
        value["players"].append("b")
        store.get("rooms/ABC")["players"].append("c")

        assert store.get("rooms/ABC/players") == ["a"]

    def test_writing_none_removes(self, store):
        store.set("rooms/ABC", {"a": 1, "b": 2})
        store.update("rooms/ABC", {"a": None})

        assert store.get("rooms/ABC") == {"b": 2}

    def test_remove(self, store):
        store.set("rooms/ABC", {"a": 1})
        store.remove("rooms/ABC")
        assert store.get("rooms/ABC") is None

    def test_root_write_rejected(self, store):
        with pytest.raises(StoreError):
            store.set("/", {"a": 1})

    def test_join_path(self):
        assert join_path("rooms/", "/ABC", "version") == "rooms/ABC/version"


class TestVersionedUpdate:

    def test_matching_version_writes(self, store):
        store.set("rooms/ABC", {"version": 3, "winner": None})
        store.update("rooms/ABC", {"version": 4, "winner": "p1"}, expected_version=3)
        assert store.get("rooms/ABC") == {"version": 4, "winner": "p1"}

    def test_stale_version_raises_and_writes_nothing(self, store):
        store.set("rooms/ABC", {"version": 4})

        with pytest.raises(VersionConflict) as exc:
            store.update("rooms/ABC", {"version": 4, "winner": "p2"}, expected_version=3)

        assert exc.value.expected == 3
        assert exc.value.actual == 4
        assert store.get("rooms/ABC/winner") is None


class TestAppend:

    def test_keys_sort_in_append_order(self, store):
        keys = [store.append("rooms/ABC/turnHistory", {"n": n}) for n in range(12)]

        assert keys == sorted(keys)
        history = store.get("rooms/ABC/turnHistory")
        assert [history[k]["n"] for k in sorted(history)] == list(range(12))


class TestSubscriptions:

    def test_current_value_delivered_on_subscribe(self, store):
        store.set("rooms/ABC/status", "waiting")
        seen = []
        store.subscribe("rooms/ABC", seen.append)
        assert seen == [{"status": "waiting"}]

    def test_related_paths_notify(self, store):
        seen = []
        store.subscribe("rooms/ABC", seen.append)
        store.set("rooms/ABC/status", "playing")
        store.set("rooms/OTHER/status", "playing")

        assert seen == [None, {"status": "playing"}]

    def test_unsubscribe_stops_delivery(self, store):
        seen = []
        unsubscribe = store.subscribe("rooms/ABC", seen.append)
        unsubscribe()
        store.set("rooms/ABC/status", "playing")
        assert seen == [None]

    def test_writes_during_dispatch_are_coalesced(self, store):
        """A listener that writes does not re-enter; the latest value follows."""
        seen = []

        def bump(value):
            seen.append(value)
            if value == 1:
                store.set("counter", 2)
                store.set("counter", 3)

        store.subscribe("counter", bump)
        store.set("counter", 1)

        assert seen == [None, 1, 3]

    def test_failing_listener_does_not_stop_others(self, store, caplog):
        seen = []

        def broken(value):
            if value is not None:
                raise RuntimeError("boom")

        store.subscribe("rooms/ABC", broken)
        store.subscribe("rooms/ABC", seen.append)
        store.set("rooms/ABC", 1)

        assert seen == [None, 1]
        assert "listener for rooms/ABC failed" in caplog.text


class TestDisconnect:

    def test_disconnect_applies_registered_writes(self, store):
        store.set("rooms/ABC/presence/p1", {"online": True})
        store.on_disconnect_set_value("conn-1", "rooms/ABC/presence/p1", {"online": False})

        store.disconnect("conn-1")
        store.disconnect("conn-1")

        assert store.get("rooms/ABC/presence/p1") == {"online": False}

    def test_removing_a_room_cancels_its_disconnect_writes(self, store):
        store.set("rooms/ABC/presence/p1", {"online": True})
        store.on_disconnect_set_value("conn-1", "rooms/ABC/presence/p1", {"online": False})
        store.on_disconnect_set_value("conn-1", "rooms/XYZ/presence/p1", {"online": False})

        store.remove("rooms/ABC")
        store.disconnect("conn-1")

        assert store.get("rooms/ABC") is None
        assert store.get("rooms/XYZ/presence/p1") == {"online": False}

    def test_leftover_room_data_counts_as_gone(self):
        assert room_is_gone(None)
        assert room_is_gone({"presence": {"p1": {"online": False}}})
        assert not room_is_gone({"status": "waiting", "presence": {}})

    def test_unknown_client_is_ignored(self, store):
        store.disconnect("nobody")
        assert store.get("rooms") is None


class TestRoomDocuments:

    def test_lobby_round_trip(self):
        lobby = LobbyDocument(
            room_id="ABC123",
            players=[LobbyPlayer("p1", "Ana", "coral", is_host=True), LobbyPlayer("b1", "Robo", is_bot=True)],
            teams={"p1": 0},
            created_at=5.0,
        )
        data = lobby.to_dict()

        assert data["status"] == "waiting"
        assert "isBot" not in data["players"][0]
        assert data["players"][1]["isBot"] is True

        parsed = parse_room(data)
        assert isinstance(parsed, LobbyDocument)
        assert parsed == lobby

    def test_game_document_never_carries_hands(self, two_player_state):
        data = two_player_state.public_dict()
        data["players"][0]["hand"] = [{"value": 1, "id": "leak"}]

        parsed = parse_room(data)

        assert isinstance(parsed, GameDocument)
        assert parsed.status == GameStatus.PLAYING
        assert all(p.hand == [] for p in parsed.state.players)

    def test_to_state_merges_hands_and_history(self, two_player_state):
        doc = GameDocument.from_dict(two_player_state.public_dict())
        entry = TurnHistoryEntry("p1", "Ana", "coral", "pass")

        state = doc.to_state({"p1": [Card(3, "c3")]}, [entry])

        assert state.get_player("p1").hand == [Card(3, "c3")]
        assert state.get_player("p2").hand == []
        assert state.turn_history == [entry]
        assert doc.state.get_player("p1").hand == []

    @pytest.mark.parametrize("data, message", [
        ("nope", "not an object"),
        ({"status": "paused"}, "Unknown room status"),
        ({"status": "waiting", "roomId": "A"}, "missing"),
        ({"status": "playing", "roomId": "A", "settings": {}, "board": {"pattern": "hexagon", "cells": []},
          "players": [], "currentPlayerIndex": 0}, "Malformed room document"),
    ])
    def test_malformed_rooms(self, data, message):
        with pytest.raises(DocumentError) as exc:
            parse_room(data)
        assert message in str(exc.value)

    def test_parse_hands_and_history(self):
        hands = parse_hands({"p1": {"hand": [{"value": 4, "id": "c4"}]}, "p2": {}})
        history = parse_history({
            "000000000002": {"playerId": "b", "playerName": "B", "playerColor": "mint", "action": "pass"},
            "000000000001": {"playerId": "a", "playerName": "A", "playerColor": "coral", "action": "pass"},
        })

        assert hands == {"p1": [Card(4, "c4")], "p2": []}
        assert [e.player_id for e in history] == ["a", "b"]
        assert parse_history(None) == []

    def test_public_view_strips_private_zones(self):
        raw = {"roomId": "A", "privateHands": {}, "turnHistory": {}, "presence": {}, "status": "playing"}
        assert public_view(raw) == {"roomId": "A", "status": "playing"}

    def test_public_view_shows_pile_sizes_only(self):
        raw = {"roomId": "A", "status": "playing", "deck": [{"value": 1, "id": "c1"}] * 3, "discardPile": []}
        assert public_view(raw) == {"roomId": "A", "status": "playing", "deckCount": 3, "discardCount": 0}


def test_store_is_a_document_store():
    from ..session.store import DocumentStore
    assert isinstance(InMemoryDocumentStore(), DocumentStore)
