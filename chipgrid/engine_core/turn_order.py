"""
Turn Order - Who moves next.

Free-for-all walks player indices modulo the player count. Team mode walks
a stored interleaving built once at game start. Either way forfeited
players are skipped, and the interleaving is never rebuilt.
"""

from __future__ import annotations
from typing import Sequence

from .state import GameState, Player


def build_team_turn_order(players: Sequence[Player]) -> list[int]:
    """
    Round-robin across teams: sort team keys ascending, then for each
    round take each team's round-th member (in seat order).

    Teams {0: [A, C], 1: [B, D, E]} give [A, B, C, D, E].
    """
    teams: dict[int, list[int]] = {}
    for index, player in enumerate(players):
        key = player.team_index if player.team_index is not None else 0
        teams.setdefault(key, []).append(index)

    team_keys = sorted(teams)
    rounds = max((len(members) for members in teams.values()), default=0)

    order: list[int] = []
    for round_index in range(rounds):
        for key in team_keys:
            members = teams[key]
            if round_index < len(members):
                order.append(members[round_index])
    return order


def next_player_index(state: GameState) -> int:
    """
    Index of the next non-forfeited player after the current one.

    With one or fewer active players the pointer stays where it is.
    """
    if len(state.active_players) <= 1:
        return state.current_player_index

    if state.turn_order:
        order = state.turn_order
        try:
            position = order.index(state.current_player_index)
        except ValueError:
            position = -1
        for step in range(1, len(order) + 1):
            candidate = order[(position + step) % len(order)]
            if not state.players[candidate].forfeited:
                return candidate
        return state.current_player_index

    count = state.num_players
    for step in range(1, count + 1):
        candidate = (state.current_player_index + step) % count
        if not state.players[candidate].forfeited:
            return candidate
    return state.current_player_index


def first_player_index(state: GameState) -> int:
    """Where play starts: head of the team order, else seat 0."""
    if state.turn_order:
        return state.turn_order[0]
    return 0
