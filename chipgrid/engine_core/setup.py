"""
Game Setup - Turns a roster and settings into an initial GameState.

Steps:
1. Generate and shuffle the deck
2. Deal hands round-robin
3. Generate the board for the chosen pattern
4. Build the team turn order (team mode only)
"""

from __future__ import annotations
from dataclasses import dataclass
import random
import time

from .state import GameState, GameSettings, GameStatus, Player
from .board import generate_board
from .deck import generate_deck, shuffle_deck, deal_cards
from .turn_order import build_team_turn_order, first_player_index


@dataclass
class SeatSpec:
    """A player as they enter the game, before cards are dealt."""
    player_id: str
    name: str
    color: str
    is_host: bool = False
    is_bot: bool = False
    team_index: int | None = None


def create_game(
    room_id: str,
    seats: list[SeatSpec],
    settings: GameSettings | None = None,
    rng: random.Random | None = None,
    created_at: float | None = None,
) -> GameState:
    """Create a game ready to play, first player on turn."""
    settings = settings or GameSettings()
    rng = rng or random.Random()

    deck = shuffle_deck(generate_deck(settings), rng)
    hands, remaining = deal_cards(deck, len(seats), settings.hand_size)

    players = [
        Player(
            player_id=seat.player_id,
            name=seat.name,
            color=seat.color,
            hand=hands[i],
            is_host=seat.is_host,
            is_bot=seat.is_bot,
            team_index=seat.team_index if settings.teams_enabled else None,
        )
        for i, seat in enumerate(seats)
    ]

    state = GameState(
        room_id=room_id,
        settings=settings,
        board=generate_board(settings.board_pattern),
        players=players,
        status=GameStatus.PLAYING,
        deck=remaining,
        discard_pile=[],
        turn_order=build_team_turn_order(players) if settings.teams_enabled else None,
        created_at=created_at if created_at is not None else time.time(),
    )
    state.current_player_index = first_player_index(state)
    return state
