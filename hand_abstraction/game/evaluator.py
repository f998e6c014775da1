"""
Hand evaluation using eval7.

Wraps the eval7 evaluator for showdown comparisons during equity sampling.
"""

import eval7
from treys import Card as TreysCard

from hand_abstraction.game.cards import Card

_EVAL7_CARD_CACHE: dict[int, eval7.Card] | None = None


def _get_eval7_card_cache() -> dict[int, eval7.Card]:
    global _EVAL7_CARD_CACHE
    if _EVAL7_CARD_CACHE is None:
        cache: dict[int, eval7.Card] = {}
        for card in Card.get_full_deck():
            cache[card.card_int] = eval7.Card(TreysCard.int_to_str(card.card_int))
        _EVAL7_CARD_CACHE = cache
    return _EVAL7_CARD_CACHE


class HandEvaluator:
    """
    Hand evaluator for Texas Hold'em using eval7.

    eval7 returns higher values for stronger hands; that order is kept here.
    """

    def __init__(self):
        self._card_cache = _get_eval7_card_cache()

    def evaluate(self, hole_cards: tuple[Card, Card], board: tuple[Card, ...]) -> int:
        """
        Evaluate hand strength.

        Args:
            hole_cards: Player's two hole cards
            board: Community cards (3-5 cards)

        Returns:
            Hand value, higher is stronger
        """
        if len(board) < 3:
            raise ValueError("Board must have at least 3 cards for evaluation")
        if len(hole_cards) != 2:
            raise ValueError("Must have exactly 2 hole cards")

        cards = [self._card_cache[card.card_int] for card in board]
        cards.extend(self._card_cache[card.card_int] for card in hole_cards)
        return eval7.evaluate(cards)

    def compare_hands(
        self,
        hole_cards1: tuple[Card, Card],
        hole_cards2: tuple[Card, Card],
        board: tuple[Card, ...],
    ) -> int:
        """
        Compare two hands on the same board.

        Returns:
            -1 if hand1 wins, 1 if hand2 wins, 0 if tie
        """
        value1 = self.evaluate(hole_cards1, board)
        value2 = self.evaluate(hole_cards2, board)

        if value1 > value2:
            return -1
        elif value1 < value2:
            return 1
        return 0


_evaluator_instance = None


def get_evaluator() -> HandEvaluator:
    """Get the shared evaluator instance."""
    global _evaluator_instance
    if _evaluator_instance is None:
        _evaluator_instance = HandEvaluator()
    return _evaluator_instance
