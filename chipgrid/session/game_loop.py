"""
Game Loop - The host's side effects: bot turns and the turn timer.

Only the room host drives these, so each runs exactly once per turn.
HostDriver.tick() is called periodically by the host (the API exposes it
as an endpoint). One tick:
1. Checks the caller is still the host
2. Plays consecutive bot turns until a human is on turn or the game ends
3. Advances the turn timer; on expiry issues a timeout pass, and forfeits
   the player after FORFEIT_AFTER_TIMEOUTS consecutive timeouts
4. Plays any bot turns the timeout handed the turn to

The timer is driven by explicit clock readings, never by threads.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
import logging
import time

from .. import config
from ..bots.line_bot import LineBot
from ..bots.policy import BotPolicy
from ..engine_core.action import Action, ErrorCode
from ..engine_core.action_generator import legal_actions
from ..engine_core.state import GameState, GameStatus
from .manager import GameService
from .results import PlayerIdentity, RoomResult

logger = logging.getLogger(__name__)

WARNING_SECONDS = (15, 10, 5)
FORFEIT_AFTER_TIMEOUTS = 3


class TimerEventType(Enum):
    STARTED = "started"
    WARNING = "warning"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TimerEvent:
    event_type: TimerEventType
    player_id: str
    seconds_remaining: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.event_type.value,
            "playerId": self.player_id,
            "secondsRemaining": self.seconds_remaining,
        }


@dataclass
class TurnTimer:
    """
    Countdown for the human on turn.

    Restarts whenever the turn changes. A turn is identified by
    (current_player_index, number of history entries), so the same player
    getting the turn back still gets a fresh countdown. Warnings go to the
    acting player; expiry fires once per turn.
    """
    duration: float = field(default_factory=lambda: config.TURN_SECONDS)
    warnings: tuple[int, ...] = WARNING_SECONDS

    _turn_key: tuple[int, int] | None = field(default=None, init=False)
    _started_at: float = field(default=0.0, init=False)
    _warned: set[int] = field(default_factory=set, init=False)
    _expired: bool = field(default=False, init=False)

    @staticmethod
    def is_timed(state: GameState) -> bool:
        if state.status != GameStatus.PLAYING:
            return False
        player = state.current_player
        return not player.is_bot and not player.forfeited

    def seconds_remaining(self, now: float) -> float:
        if self._turn_key is None:
            return self.duration
        return max(0.0, self.duration - (now - self._started_at))

    def reset(self) -> None:
        self._turn_key = None
        self._warned = set()
        self._expired = False

    def tick(self, state: GameState, now: float) -> list[TimerEvent]:
        if not self.is_timed(state):
            self.reset()
            return []

        player_id = state.current_player.player_id
        events: list[TimerEvent] = []

        key = (state.current_player_index, len(state.turn_history))
        if key != self._turn_key:
            self.reset()
            self._turn_key = key
            self._started_at = now
            events.append(TimerEvent(TimerEventType.STARTED, player_id, self.duration))

        remaining = self.seconds_remaining(now)
        for threshold in sorted(self.warnings, reverse=True):
            if remaining <= threshold and threshold not in self._warned and remaining > 0:
                self._warned.add(threshold)
                events.append(TimerEvent(TimerEventType.WARNING, player_id, remaining))

        if remaining <= 0 and not self._expired:
            self._expired = True
            events.append(TimerEvent(TimerEventType.EXPIRED, player_id, 0.0))

        return events


@dataclass
class HostDriver:
    """
    Runs host-only effects for one room.

    Usage:
        driver = HostDriver(PlayerIdentity("host-id"), games)
        result = driver.tick(code)           # call about once a second
    """
    identity: PlayerIdentity
    games: GameService
    bot: BotPolicy = field(default_factory=LineBot)
    timer: TurnTimer = field(default_factory=TurnTimer)
    chain_limit: int = field(default_factory=lambda: config.BOT_CHAIN_LIMIT)
    clock: Callable[[], float] = time.time

    def tick(self, code: str, now: float | None = None) -> RoomResult:
        now = self.clock() if now is None else now

        loaded = self._read_as_host(code)
        if isinstance(loaded, RoomResult):
            return loaded
        state = loaded

        bot_moves: list[str] = []
        timed_out = forfeited = None

        state = self._run_bots(code, state, bot_moves)
        if isinstance(state, RoomResult):
            return state

        events = self.timer.tick(state, now)
        if any(e.event_type == TimerEventType.EXPIRED for e in events):
            outcome = self._handle_timeout(code, state)
            if isinstance(outcome, RoomResult):
                return outcome
            timed_out, forfeited = outcome

            refreshed = self.games.read_game(code)
            if isinstance(refreshed, RoomResult):
                return refreshed
            state = self._run_bots(code, refreshed, bot_moves)
            if isinstance(state, RoomResult):
                return state
            events.extend(self.timer.tick(state, now))

        return RoomResult.ok(
            code,
            botMoves=bot_moves,
            timerEvents=[e.to_dict() for e in events],
            timedOut=timed_out,
            forfeited=forfeited,
            secondsRemaining=self.timer.seconds_remaining(now),
        )

    def _read_as_host(self, code: str) -> GameState | RoomResult:
        loaded = self.games.read_game(code)
        if isinstance(loaded, RoomResult):
            return loaded
        me = loaded.get_player(self.identity.player_id)
        if me is None or not me.is_host:
            return RoomResult.failure(
                "Only the host drives bots and timers", ErrorCode.HOST_ONLY_ACTION, code
            )
        return loaded

    def _run_bots(self, code: str, state: GameState, moves: list[str]) -> GameState | RoomResult:
        """Play bot turns back to back until a human is up or the game ends."""
        played = 0
        while (
            state.status == GameStatus.PLAYING
            and state.current_player.is_bot
            and played < self.chain_limit
        ):
            bot = state.current_player
            decision = self.bot.select_action(state, legal_actions(state))
            result = self.games.play(code, decision.action)
            if not result.success:
                logger.warning("Room %s: bot %s move failed: %s", code, bot.player_id, result.error)
                return result

            moves.append(f"{bot.name}: {decision.explanation}")
            played += 1

            refreshed = self.games.read_game(code)
            if isinstance(refreshed, RoomResult):
                return refreshed
            state = refreshed

        if played >= self.chain_limit and state.status == GameStatus.PLAYING and state.current_player.is_bot:
            logger.warning("Room %s: bot chain stopped after %d turns", code, played)
        return state

    def _handle_timeout(self, code: str, state: GameState) -> tuple[str, str | None] | RoomResult:
        player = state.current_player
        result = self.games.play(code, Action.pass_turn(player.player_id, is_timeout=True))
        if not result.success:
            return result
        logger.info("Room %s: %s timed out", code, player.player_id)

        if player.consecutive_timeouts + 1 < FORFEIT_AFTER_TIMEOUTS:
            return player.player_id, None

        result = self.games.forfeit(code, PlayerIdentity(player.player_id, player.name))
        if not result.success:
            return result
        logger.info("Room %s: %s forfeited after %d timeouts", code, player.player_id, FORFEIT_AFTER_TIMEOUTS)
        return player.player_id, player.player_id
