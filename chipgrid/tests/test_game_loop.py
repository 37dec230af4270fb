"""
Tests for host-driven bot turns and the turn timer.
"""

import random

from ..bots import LineBot
from ..engine_core.action import Action, ErrorCode
from ..engine_core.state import GameStatus
from ..session import HostDriver, PlayerIdentity, TimerEventType, TurnTimer
from ..session.game_loop import FORFEIT_AFTER_TIMEOUTS


def event_types(events):
    return [(e.event_type, e.player_id) for e in events]


class TestTurnTimer:

    def test_start_warnings_and_expiry(self, two_player_state):
        timer = TurnTimer(duration=30)

        started = timer.tick(two_player_state, now=100.0)
        assert event_types(started) == [(TimerEventType.STARTED, "p1")]

        assert timer.tick(two_player_state, now=110.0) == []

        warned = timer.tick(two_player_state, now=116.0)
        assert [(e.event_type, e.seconds_remaining) for e in warned] == [(TimerEventType.WARNING, 14.0)]

        assert timer.tick(two_player_state, now=117.0) == []

        late = timer.tick(two_player_state, now=126.0)
        assert [e.event_type for e in late] == [TimerEventType.WARNING, TimerEventType.WARNING]

        expired = timer.tick(two_player_state, now=130.0)
        assert event_types(expired) == [(TimerEventType.EXPIRED, "p1")]

    def test_expires_once_per_turn(self, two_player_state):
        timer = TurnTimer(duration=30, warnings=())
        timer.tick(two_player_state, now=0.0)

        assert len(timer.tick(two_player_state, now=31.0)) == 1
        assert timer.tick(two_player_state, now=40.0) == []
        assert timer.seconds_remaining(40.0) == 0.0

    def test_new_turn_restarts(self, two_player_state, reducer):
        timer = TurnTimer(duration=30)
        timer.tick(two_player_state, now=0.0)

        state = reducer.apply(two_player_state, Action.pass_turn("p1")).new_state
        events = timer.tick(state, now=20.0)

        assert event_types(events) == [(TimerEventType.STARTED, "p2")]
        assert timer.seconds_remaining(20.0) == 30

    def test_bots_and_finished_games_are_untimed(self, two_player_state):
        timer = TurnTimer(duration=30)
        two_player_state.current_player.is_bot = True
        assert timer.tick(two_player_state, now=0.0) == []

        two_player_state.current_player.is_bot = False
        two_player_state.status = GameStatus.FINISHED
        assert not TurnTimer.is_timed(two_player_state)

    def test_event_dict(self, two_player_state):
        event = TurnTimer(duration=30).tick(two_player_state, now=0.0)[0]
        assert event.to_dict() == {"type": "started", "playerId": "p1", "secondsRemaining": 30}


class TestHostDriver:

    def driver(self, games, host, **kwargs):
        return HostDriver(host, games, bot=LineBot(rng=random.Random(8)), timer=TurnTimer(duration=30), **kwargs)

    def test_only_host_may_tick(self, games, game_code, guest):
        result = HostDriver(guest, games).tick(game_code, now=0.0)
        assert result.error_code == ErrorCode.HOST_ONLY_ACTION

    def test_lobby_cannot_be_ticked(self, games, lobby_code, host):
        result = HostDriver(host, games).tick(lobby_code, now=0.0)
        assert result.error_code == ErrorCode.GAME_NOT_IN_PROGRESS

    def test_bots_play_until_a_human_is_up(self, lobby, games, lobby_code, host):
        for _ in range(2):
            lobby.add_bot(lobby_code, host)
        lobby.start_game(lobby_code, host)
        games.play(lobby_code, Action.pass_turn("p1"))
        games.play(lobby_code, Action.pass_turn("p2"))

        result = self.driver(games, host).tick(lobby_code, now=0.0)

        assert result.success
        assert len(result.data["botMoves"]) == 2
        state = games.read_game(lobby_code)
        assert state.current_player.player_id == "p1"
        assert [e.player_id for e in state.turn_history[2:]] == [p.player_id for p in state.players[2:]]
        assert result.data["timerEvents"][0]["type"] == "started"

    def test_chain_limit(self, lobby, games, lobby_code, host):
        for _ in range(2):
            lobby.add_bot(lobby_code, host)
        lobby.start_game(lobby_code, host)
        games.play(lobby_code, Action.pass_turn("p1"))
        games.play(lobby_code, Action.pass_turn("p2"))

        result = self.driver(games, host, chain_limit=1).tick(lobby_code, now=0.0)

        assert len(result.data["botMoves"]) == 1
        assert games.read_game(lobby_code).current_player.is_bot

    def test_timeout_passes_for_the_player(self, games, game_code, host):
        driver = self.driver(games, host)
        driver.tick(game_code, now=0.0)

        result = driver.tick(game_code, now=30.0)

        assert result.data["timedOut"] == "p1"
        assert result.data["forfeited"] is None
        state = games.read_game(game_code)
        assert state.turn_history[-1].timeout
        assert state.get_player("p1").consecutive_timeouts == 1
        assert state.current_player.player_id == "p2"
        types = [e["type"] for e in result.data["timerEvents"]]
        assert types[-2:] == ["expired", "started"]

    def test_forfeit_after_repeated_timeouts(self, games, game_code, host):
        """Both humans idle: p1 hits the limit first and p2 wins."""
        driver = self.driver(games, host)
        now = 0.0
        driver.tick(game_code, now=now)

        for _ in range(2 * FORFEIT_AFTER_TIMEOUTS - 1):
            now += 30.0
            result = driver.tick(game_code, now=now)

        assert result.data["forfeited"] == "p1"
        state = games.read_game(game_code)
        assert state.status == GameStatus.FINISHED
        assert state.winner == "p2"

    def test_acting_resets_timeouts(self, games, game_code, host):
        driver = self.driver(games, host)
        driver.tick(game_code, now=0.0)
        driver.tick(game_code, now=30.0)
        games.play(game_code, Action.pass_turn("p2"))
        games.play(game_code, Action.pass_turn("p1"))

        assert games.read_game(game_code).get_player("p1").consecutive_timeouts == 0

    def test_quiet_tick(self, games, game_code, host):
        driver = self.driver(games, host)
        driver.tick(game_code, now=0.0)

        result = driver.tick(game_code, now=5.0)

        assert result.data == {
            "botMoves": [],
            "timerEvents": [],
            "timedOut": None,
            "forfeited": None,
            "secondsRemaining": 25.0,
        }

    def test_bot_only_game_plays_out(self, lobby, games, host):
        code = lobby.create_room(host, {"board_pattern": "normal", "win_length": 4}).room_code
        bots = [lobby.add_bot(code, host).data["botId"] for _ in range(2)]
        lobby.leave_room(code, host)
        bot_host = PlayerIdentity(bots[0])
        lobby.start_game(code, bot_host)

        result = self.driver(games, bot_host).tick(code, now=0.0)

        assert result.success
        state = games.read_game(code)
        assert state.status == GameStatus.FINISHED or len(state.turn_history) == 1000
        assert state.card_count() == 100
