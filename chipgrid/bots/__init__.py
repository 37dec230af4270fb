"""
Bots module - Scripted bot players.

Provides:
- BotPolicy: Interface for bot decision-making
- LineEvaluator: Scores cells by the lines through them
- LineBot: The chipgrid bot
- RandomPolicy: Uniform baseline
"""

from .policy import BotPolicy, BotDecision, RandomPolicy
from .evaluator import LineEvaluator, EvaluationWeights
from .line_bot import LineBot, BOT_NAMES

__all__ = [
    "BotPolicy",
    "BotDecision",
    "RandomPolicy",
    "LineEvaluator",
    "EvaluationWeights",
    "LineBot",
    "BOT_NAMES",
]
