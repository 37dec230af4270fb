"""
Pytest fixtures for chipgrid tests.
"""

import random

import pytest

from ..engine_core.state import BoardPattern, Card, Chip, GameSettings, GameState
from ..engine_core.setup import SeatSpec, create_game
from ..engine_core.reducer import Reducer
from ..session import GameService, InMemoryDocumentStore, LobbyService, PlayerIdentity
from ..session.documents import PRIVATE_HANDS, room_path


class FakeClock:
    """Manually advanced clock for timers and timestamps."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def give_card(state: GameState, player_id: str, value: int) -> Card:
    """
    Move a card of the given value into a player's hand, swapping out the
    hand's first card so every count stays the same.
    """
    player = state.get_player(player_id)
    existing = next((c for c in player.hand if c.value == value), None)
    if existing:
        return existing

    piles = [state.deck, state.discard_pile] + [p.hand for p in state.players if p is not player]
    for pile in piles:
        for i, card in enumerate(pile):
            if card.value == value:
                pile[i] = player.hand[0]
                player.hand[0] = card
                return card
    raise AssertionError(f"No card with value {value} in play")


def place(state: GameState, number: int, player_id: str) -> None:
    """Put a player's chip on a cell directly, bypassing the reducer."""
    player = state.get_player(player_id)
    state.board.place_chip(number, Chip(player_id, player.color))


def save(store, code: str, state: GameState) -> None:
    """Overwrite a stored room with a hand-built state, hands included."""
    fields = state.public_dict()
    fields[PRIVATE_HANDS] = {
        pid: {"hand": [c.to_dict() for c in hand]} for pid, hand in state.hands().items()
    }
    store.update(room_path(code), fields)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def normal_settings() -> GameSettings:
    return GameSettings(board_pattern=BoardPattern.NORMAL)


@pytest.fixture
def two_player_state(normal_settings, rng) -> GameState:
    """Dealt 2-player game on the normal board, p1 on turn."""
    return create_game(
        "ROOM01",
        [
            SeatSpec("p1", "Ana", "coral", is_host=True),
            SeatSpec("p2", "Ben", "mint"),
        ],
        settings=normal_settings,
        rng=rng,
        created_at=0.0,
    )


@pytest.fixture
def three_player_state(normal_settings, rng) -> GameState:
    return create_game(
        "ROOM02",
        [
            SeatSpec("a", "A", "coral", is_host=True),
            SeatSpec("b", "B", "mint"),
            SeatSpec("c", "C", "sky"),
        ],
        settings=normal_settings,
        rng=rng,
        created_at=0.0,
    )


@pytest.fixture
def reducer(rng, clock) -> Reducer:
    return Reducer(rng=rng, clock=clock)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def lobby(store, rng, clock) -> LobbyService:
    return LobbyService(store, rng=rng, clock=clock)


@pytest.fixture
def games(store, rng, clock) -> GameService:
    return GameService(store, rng=rng, clock=clock)


@pytest.fixture
def host() -> PlayerIdentity:
    return PlayerIdentity("p1", "Ana")


@pytest.fixture
def guest() -> PlayerIdentity:
    return PlayerIdentity("p2", "Ben")


@pytest.fixture
def lobby_code(lobby, host, guest) -> str:
    """Lobby with host (coral) and a ready guest (mint), normal board."""
    code = lobby.create_room(host, {"board_pattern": "normal"}).room_code
    lobby.join_room(code, guest)
    lobby.select_color(code, host, "coral")
    lobby.select_color(code, guest, "mint")
    lobby.toggle_ready(code, guest)
    return code


@pytest.fixture
def game_code(lobby, lobby_code, host) -> str:
    """The lobby_code room after the host started it."""
    result = lobby.start_game(lobby_code, host)
    assert result.success, result.error
    return lobby_code
