"""
Bot Policy - Interface for bot decision-making.

A policy looks at the player on turn and returns a BotDecision: the
action to submit plus a one-line explanation for the turn feed.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING
import random

from ..engine_core.action import ActionType

if TYPE_CHECKING:
    from ..engine_core.state import GameState
    from ..engine_core.action import Action


@dataclass
class BotDecision:
    """
    The move a bot settled on.

    score is the evaluator's value for the chosen cell (0 for a pass);
    evaluated_actions and tied_actions count the candidates considered
    and how many shared the top score.
    """
    action: Action
    explanation: str = ""
    score: float = 0.0
    evaluated_actions: int = 0
    tied_actions: int = 1


class BotPolicy(ABC):
    """Chooses the turn for whoever is current in a state."""

    @abstractmethod
    def select_action(
        self,
        state: GameState,
        legal_actions: list[Action],
    ) -> BotDecision:
        """
        Select an action for state.current_player.

        Args:
            state: Current game state; only the current player's hand may be read
            legal_actions: Placements and the pass open to that player
        """

    def get_name(self) -> str:
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """
    Places on a uniformly random legal cell; passes only when no
    placement exists. Baseline for simulations and tests.
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_action(
        self,
        state: GameState,
        legal_actions: list[Action],
    ) -> BotDecision:
        if not legal_actions:
            raise ValueError("No legal actions available")

        placements = [a for a in legal_actions if a.action_type != ActionType.PASS]
        if not placements:
            return BotDecision(action=legal_actions[0], explanation="No legal placement, passing")

        return BotDecision(
            action=self.rng.choice(placements),
            explanation="Random placement",
            evaluated_actions=len(placements),
            tied_actions=len(placements),
        )
