"""
Deck Manager - Builds, shuffles, deals, draws and recycles cards.

Cards are conserved: they move between deck, hands, the board (as chips)
and the discard pile, but are never created or destroyed mid-game.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import random
import uuid

from .state import Card, GameSettings


@dataclass
class DrawResult:
    """Outcome of a draw. card is None when deck and discard are both empty."""
    card: Card | None
    deck: list[Card] = field(default_factory=list)
    discard_pile: list[Card] = field(default_factory=list)
    reshuffled: bool = False


def generate_deck(settings: GameSettings) -> list[Card]:
    """deck_size values, each repeated cards_per_number times with distinct ids."""
    batch = uuid.uuid4().hex[:8]
    deck = []
    for value in range(settings.deck_size):
        for copy in range(settings.cards_per_number):
            deck.append(Card(value=value, card_id=f"card-{value}-{copy}-{batch}"))
    return deck


def shuffle_deck(deck: list[Card], rng: random.Random | None = None) -> list[Card]:
    """Fisher-Yates shuffle into a new list."""
    rng = rng or random.Random()
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal_cards(
    deck: list[Card],
    player_count: int,
    hand_size: int,
) -> tuple[list[list[Card]], list[Card]]:
    """
    Deal round-robin, one card per player per round.

    Returns (hands, remaining_deck); the remaining deck keeps its order.
    """
    hands: list[list[Card]] = [[] for _ in range(player_count)]
    position = 0
    for _ in range(hand_size):
        for p in range(player_count):
            if position < len(deck):
                hands[p].append(deck[position])
                position += 1
    return hands, list(deck[position:])


def draw_card(
    deck: list[Card],
    discard_pile: list[Card],
    rng: random.Random | None = None,
) -> DrawResult:
    """
    Draw the top card.

    An empty deck is rebuilt by shuffling the discard pile, which is then
    emptied. With both empty the draw yields no card; that is not an error.
    """
    reshuffled = False
    if not deck and discard_pile:
        deck = shuffle_deck(discard_pile, rng)
        discard_pile = []
        reshuffled = True

    if not deck:
        return DrawResult(card=None, deck=[], discard_pile=list(discard_pile))

    return DrawResult(
        card=deck[0],
        deck=list(deck[1:]),
        discard_pile=list(discard_pile),
        reshuffled=reshuffled,
    )
