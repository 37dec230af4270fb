"""
Line Bot - The scripted chipgrid bot.

For every card in hand and every legal target, score the cell with the
LineEvaluator; natural plays get a flat bonus since they refill the hand.
The best total wins, ties are broken at random. With no legal placement
the bot passes.

The bot does NOT:
- Look ahead more than one placement
- Consider which card it keeps in hand
- Coordinate with teammates beyond sharing a color
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
import random

from .policy import BotPolicy, BotDecision
from .evaluator import LineEvaluator
from ..engine_core.action import Action, ActionType
from ..engine_core.validation import get_valid_placements

if TYPE_CHECKING:
    from ..engine_core.state import Board, Card, GameSettings, GameState


BOT_NAMES = [
    "Botsworth",
    "Chippy",
    "Quinta-Bot",
    "AutoPlay",
    "Robo",
    "Circuit",
]


@dataclass
class ScoredMove:
    action: Action
    score: float


@dataclass
class LineBot(BotPolicy):
    """
    Usage:
        bot = LineBot(rng=random.Random(7))
        decision = bot.choose_move("bot-1", hand, board, settings, "mint")
        reducer.apply(state, decision.action)
    """
    evaluator: LineEvaluator = field(default_factory=LineEvaluator)
    rng: random.Random = field(default_factory=random.Random)

    def choose_move(
        self,
        player_id: str,
        hand: list[Card],
        board: Board,
        settings: GameSettings,
        color: str,
    ) -> BotDecision:
        """Pick the best placement for this hand, or pass."""
        scored: list[ScoredMove] = []
        bonus = self.evaluator.weights.natural_bonus

        for card in hand:
            placements = get_valid_placements(board, card, settings)
            for target in placements.natural:
                score = self._score_target(board, target, color, settings.win_length)
                scored.append(ScoredMove(Action.natural(player_id, card.card_id, target), score + bonus))
            for target in placements.higher:
                score = self._score_target(board, target, color, settings.win_length)
                scored.append(ScoredMove(Action.higher(player_id, card.card_id, target), score))

        if not scored:
            return BotDecision(
                action=Action.pass_turn(player_id),
                explanation="No legal placement, passing",
            )

        top_score = max(move.score for move in scored)
        top_moves = [move for move in scored if move.score == top_score]
        pick = self.rng.choice(top_moves)

        return BotDecision(
            action=pick.action,
            explanation=self._explain(pick),
            score=pick.score,
            evaluated_actions=len(scored),
            tied_actions=len(top_moves),
        )

    def select_action(
        self,
        state: GameState,
        legal_actions: list[Action],
    ) -> BotDecision:
        """
        Choose for the player on turn.

        legal_actions bounds nothing extra here: the search space is
        exactly get_valid_placements for each card in hand.
        """
        player = state.current_player
        return self.choose_move(player.player_id, player.hand, state.board, state.settings, player.color)

    def _score_target(self, board: Board, target: int, color: str, win_length: int) -> float:
        position = board.position_of(target)
        if position is None:
            return 0.0
        row, col = position
        return self.evaluator.score_position(board, row, col, color, win_length)

    def _explain(self, move: ScoredMove) -> str:
        w = self.evaluator.weights
        kind = move.action.action_type.value
        if move.score >= w.winning_move:
            return f"Completing a line ({kind})"
        if move.score >= w.must_block:
            return f"Blocking an opponent ({kind})"
        if move.action.action_type == ActionType.NATURAL:
            return "Natural play to keep the hand full"
        return f"Best positional {kind} play"
