"""
Tests for the deck manager.
"""

import random

from ..engine_core.deck import deal_cards, draw_card, generate_deck, shuffle_deck
from ..engine_core.state import Card, GameSettings


class TestGenerateDeck:

    def test_one_card_per_value_by_default(self):
        deck = generate_deck(GameSettings())
        assert sorted(c.value for c in deck) == list(range(100))

    def test_copies_have_distinct_ids(self):
        """Duplicate values are told apart by id."""
        deck = generate_deck(GameSettings(deck_size=100, cards_per_number=2))

        assert len(deck) == 200
        assert len({c.card_id for c in deck}) == 200
        assert sum(1 for c in deck if c.value == 7) == 2


class TestShuffle:

    def test_shuffle_is_a_permutation(self):
        deck = generate_deck(GameSettings())
        shuffled = shuffle_deck(deck, random.Random(5))

        assert sorted(c.card_id for c in shuffled) == sorted(c.card_id for c in deck)
        assert shuffled is not deck

    def test_shuffle_does_not_touch_input(self):
        deck = generate_deck(GameSettings())
        before = list(deck)
        shuffle_deck(deck, random.Random(5))
        assert deck == before

    def test_same_seed_same_order(self):
        deck = generate_deck(GameSettings())
        assert shuffle_deck(deck, random.Random(9)) == shuffle_deck(deck, random.Random(9))

    def test_every_position_equally_likely(self):
        """Each card lands in each position about a quarter of the time."""
        deck = [Card(v, f"c{v}") for v in range(4)]
        rng = random.Random(2024)
        trials = 20_000
        counts = [[0] * 4 for _ in range(4)]

        for _ in range(trials):
            for position, card in enumerate(shuffle_deck(deck, rng)):
                counts[card.value][position] += 1

        expected = trials / 4
        for row in counts:
            for count in row:
                assert abs(count - expected) < 0.06 * expected


class TestDeal:

    def test_round_robin_deal(self):
        """Player 0 gets cards 0, 3, 6...; remaining deck keeps its order."""
        deck = [Card(v, f"c{v}") for v in range(20)]
        hands, remaining = deal_cards(deck, player_count=3, hand_size=5)

        assert [c.value for c in hands[0]] == [0, 3, 6, 9, 12]
        assert [c.value for c in hands[1]] == [1, 4, 7, 10, 13]
        assert [c.value for c in remaining] == [15, 16, 17, 18, 19]

    def test_short_deck_deals_what_it_has(self):
        deck = [Card(v, f"c{v}") for v in range(3)]
        hands, remaining = deal_cards(deck, player_count=2, hand_size=5)

        assert [len(h) for h in hands] == [2, 1]
        assert remaining == []


class TestDraw:

    def test_draw_takes_top_card(self):
        deck = [Card(1, "a"), Card(2, "b")]
        result = draw_card(deck, [])

        assert result.card == Card(1, "a")
        assert result.deck == [Card(2, "b")]
        assert not result.reshuffled

    def test_empty_deck_reshuffles_discard(self):
        discard = [Card(v, f"d{v}") for v in range(4)]
        result = draw_card([], discard, random.Random(3))

        assert result.reshuffled
        assert result.discard_pile == []
        assert len(result.deck) == 3
        drawn = {result.card.card_id} | {c.card_id for c in result.deck}
        assert drawn == {c.card_id for c in discard}

    def test_both_empty_yields_no_card(self):
        """Not an error: the caller just ends up with a shorter hand."""
        result = draw_card([], [])
        assert result.card is None
        assert result.deck == []
