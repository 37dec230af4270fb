"""
Chipgrid CLI - Command-line interface for the engine.

Usage:
    chipgrid board [--pattern spiral|snake|normal]
    chipgrid simulate [--bots N] [--seed S] [--pattern P] [--win-length L] [--teams]

simulate plays a bot-only game through the in-memory store, using the
same lobby, game and host-driver code as the API.
"""

import argparse
import logging
import random
import sys

from . import config

logger = logging.getLogger(__name__)

PATTERNS = ["spiral", "snake", "normal"]


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Chipgrid - numbered-card placement game engine",
        prog="chipgrid",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from CHIPGRID_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Board command
    board_parser = subparsers.add_parser("board", help="Print the cell numbering for a pattern")
    board_parser.add_argument("--pattern", choices=PATTERNS, default="spiral")

    # Simulate command
    sim_parser = subparsers.add_parser("simulate", help="Play a bot-only game")
    sim_parser.add_argument("--bots", type=int, default=2, help="Number of bots (2-6)")
    sim_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    sim_parser.add_argument("--pattern", choices=PATTERNS, default="spiral")
    sim_parser.add_argument("--win-length", type=int, default=5)
    sim_parser.add_argument("--teams", action="store_true", help="Split bots into two teams")
    sim_parser.add_argument("--max-turns", type=int, default=None, help="Stop after this many turns")

    args = parser.parse_args(argv)
    config.configure_logging(args.log_level)

    if args.command == "board":
        cmd_board(args)
    elif args.command == "simulate":
        sys.exit(cmd_simulate(args))
    else:
        parser.print_help()
        sys.exit(1)


def cmd_board(args):
    """Print the board numbering."""
    from .engine_core.board import generate_board, render_board

    print(render_board(generate_board(args.pattern)))


def cmd_simulate(args) -> int:
    """Play a bot-only game and print the history. Returns the exit code."""
    from .bots import LineBot
    from .engine_core.board import render_board
    from .engine_core.state import CHIP_COLORS
    from .session import (
        GameService,
        HostDriver,
        InMemoryDocumentStore,
        LobbyService,
        PlayerIdentity,
    )

    if not 2 <= args.bots <= 6:
        print("Error: --bots must be between 2 and 6")
        return 1

    logger.debug("Simulating %d bots with seed %s", args.bots, args.seed)
    rng = random.Random(args.seed)
    store = InMemoryDocumentStore()
    lobby = LobbyService(store, rng=rng)
    games = GameService(store, rng=rng)

    # A placeholder host creates the room, adds the bots, and leaves;
    # hosting passes to the first bot.
    placeholder = PlayerIdentity("cli-host", "CLI")
    created = lobby.create_room(placeholder, {
        "board_pattern": args.pattern,
        "win_length": args.win_length,
        "teams_enabled": args.teams,
    })
    if not created.success:
        print(f"Error: {created.error}")
        return 1
    code = created.room_code

    bot_ids = []
    for _ in range(args.bots):
        added = lobby.add_bot(code, placeholder)
        if not added.success:
            print(f"Error: {added.error}")
            return 1
        bot_ids.append(added.data["botId"])

    host = PlayerIdentity(bot_ids[0])
    if args.teams:
        for i, bot_id in enumerate(bot_ids):
            lobby.assign_team(code, placeholder, bot_id, i % 2)
        lobby.select_team_color(code, placeholder, 0, CHIP_COLORS[0])
        lobby.select_team_color(code, placeholder, 1, CHIP_COLORS[1])
    lobby.leave_room(code, placeholder)

    started = lobby.start_game(code, host)
    if not started.success:
        print(f"Error: {started.error}")
        return 1

    driver = HostDriver(host, games, bot=LineBot(rng=rng))
    if args.max_turns is not None:
        driver.chain_limit = args.max_turns
    result = driver.tick(code)
    if not result.success:
        print(f"Error: {result.error}")
        return 1

    state = games.read_game(code)
    print(f"Room {code} ({args.pattern}, win length {args.win_length})")
    for n, entry in enumerate(state.turn_history, start=1):
        if entry.action == "pass":
            print(f"{n:4d}. {entry.player_name} passed")
        else:
            print(f"{n:4d}. {entry.player_name} played {entry.card_value} {entry.action} on {entry.cell_number}")

    print()
    print(render_board(state.board))
    print()
    if state.winner:
        winner = state.get_player(state.winner)
        print(f"Winner: {winner.name} ({winner.color})")
    else:
        print(f"No winner after {len(state.turn_history)} turns")
    return 0


if __name__ == "__main__":
    main()
