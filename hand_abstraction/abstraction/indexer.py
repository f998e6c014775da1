"""
Dense hand indexers.

An indexer assigns every distinct (hole cards, board) situation of a round a
unique integer in ``[0, size(round))`` and can decode an index back into
cards. Cards are dense indices (``4 * rank + suit``), hole cards first.
"""

from __future__ import annotations

from math import comb
from typing import List, Protocol, Sequence, Tuple

from hand_abstraction.game.cards import RANKS


class HandIndexer(Protocol):
    """Structural interface used by the equity precomputation."""

    @property
    def rounds(self) -> int:
        """Number of rounds this indexer can enumerate."""

    def size(self, round: int) -> int:
        """Number of distinct indices in ``round``."""

    def get_hand(self, round: int, index: int) -> Tuple[int, ...]:
        """Decode ``index`` into card indices, hole cards first."""

    def index_hand(self, cards: Sequence[int]) -> int:
        """Inverse of ``get_hand`` for the last round covered by ``cards``."""


def _rank_char(card: int) -> str:
    return RANKS[card >> 2]


class PreflopIndexer:
    """
    Indexer over the 169 suit-isomorphic starting hands.

    Ordering:
        0-12: Pairs (AA=0, KK=1, ..., 22=12)
        13-90: Suited hands (AKs=13, AQs=14, ..., 32s=90)
        91-168: Offsuit hands (AKo=91, AQo=92, ..., 32o=168)
    """

    HIGH_TO_LOW = RANKS[::-1]
    SIZE = 169

    def __init__(self):
        self._hands = self.get_all_hands()
        self._positions = {hand: i for i, hand in enumerate(self._hands)}

    @property
    def rounds(self) -> int:
        return 1

    @staticmethod
    def get_all_hands() -> List[str]:
        """All 169 canonical hand strings in index order."""
        order = PreflopIndexer.HIGH_TO_LOW
        hands = [f"{rank}{rank}" for rank in order]
        for suffix in ("s", "o"):
            for i, high in enumerate(order):
                for low in order[i + 1 :]:
                    hands.append(f"{high}{low}{suffix}")
        return hands

    def size(self, round: int = 0) -> int:
        if round != 0:
            raise ValueError(f"PreflopIndexer only covers round 0, got {round}")
        return self.SIZE

    def hand_string(self, index: int) -> str:
        if not 0 <= index < self.SIZE:
            raise IndexError(f"Preflop index {index} out of range")
        return self._hands[index]

    def get_hand(self, round: int, index: int) -> Tuple[int, int]:
        """Decode into a representative pair of card indices."""
        self.size(round)
        hand = self.hand_string(index)
        high = RANKS.index(hand[0])
        low = RANKS.index(hand[1])
        if len(hand) == 2:
            return (4 * high, 4 * low + 1)
        if hand[2] == "s":
            return (4 * high, 4 * low)
        return (4 * high, 4 * low + 1)

    def index_hand(self, cards: Sequence[int]) -> int:
        if len(cards) != 2:
            raise ValueError(f"Expected 2 hole cards, got {len(cards)}")
        c1, c2 = cards
        if c1 == c2:
            raise ValueError(f"Duplicate hole card {c1}")
        r1, r2 = _rank_char(c1), _rank_char(c2)
        if r1 == r2:
            return self._positions[f"{r1}{r2}"]
        if (c1 >> 2) < (c2 >> 2):
            r1, r2 = r2, r1
        suffix = "s" if (c1 & 3) == (c2 & 3) else "o"
        return self._positions[f"{r1}{r2}{suffix}"]


def _rank_subset(cards: Sequence[int]) -> int:
    """Colex rank of a set of distinct small integers."""
    return sum(comb(c, i + 1) for i, c in enumerate(sorted(cards)))


def _unrank_subset(rank: int, k: int) -> List[int]:
    """Inverse of ``_rank_subset`` for a ``k``-element set."""
    result = []
    for i in range(k, 0, -1):
        c = i - 1
        while comb(c + 1, i) <= rank:
            c += 1
        result.append(c)
        rank -= comb(c, i)
    return result[::-1]


class CombinationIndexer:
    """
    Dense, invertible indexer over (hole pair, board) for a fixed board size.

    ``index = hole_rank * C(50, board_cards) + board_rank`` where the board
    is ranked among the 50 cards left after removing the hole cards. Unlike
    the preflop indexer this does not merge suit-isomorphic situations.
    """

    HOLE_COMBOS = comb(52, 2)

    def __init__(self, board_cards: int):
        if not 0 <= board_cards <= 5:
            raise ValueError(f"Board size must be between 0 and 5, got {board_cards}")
        self.board_cards = board_cards
        self._board_combos = comb(50, board_cards)

    @property
    def rounds(self) -> int:
        return 1

    def size(self, round: int = 0) -> int:
        if round != 0:
            raise ValueError(f"CombinationIndexer only covers round 0, got {round}")
        return self.HOLE_COMBOS * self._board_combos

    def get_hand(self, round: int, index: int) -> Tuple[int, ...]:
        if not 0 <= index < self.size(round):
            raise IndexError(f"Index {index} out of range")
        hole_rank, board_rank = divmod(index, self._board_combos)
        hole = _unrank_subset(hole_rank, 2)
        remaining = [c for c in range(52) if c not in hole]
        board = [remaining[i] for i in _unrank_subset(board_rank, self.board_cards)]
        return tuple(hole + board)

    def index_hand(self, cards: Sequence[int]) -> int:
        if len(cards) != 2 + self.board_cards:
            raise ValueError(f"Expected {2 + self.board_cards} cards, got {len(cards)}")
        if len(set(cards)) != len(cards) or not all(0 <= c < 52 for c in cards):
            raise ValueError(f"Cards must be distinct indices in [0, 52): {list(cards)}")
        hole = sorted(cards[:2])
        remaining = [c for c in range(52) if c not in hole]
        positions = {c: i for i, c in enumerate(remaining)}
        board_rank = _rank_subset([positions[c] for c in cards[2:]])
        return _rank_subset(hole) * self._board_combos + board_rank
