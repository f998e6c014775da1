"""
Monte Carlo equity estimation.

Computes heads-up equity of one hand range against another by sampling
combos and board runouts, and builds equity histograms (the distribution of
a hand's river equity over future board cards) for potential-aware clustering.
"""

import math
import random
from typing import List, Optional, Protocol, Sequence, Tuple

import numpy as np

from hand_abstraction.game.cards import RANKS, SUITS, Card, cards_from_mask, parse_cards
from hand_abstraction.game.evaluator import get_evaluator

Combo = Tuple[Card, Card]


class HandRange:
    """A set of two-card combos, parsed from range notation."""

    def __init__(self, combos: Sequence[Combo]):
        self.combos: List[Combo] = list(combos)

    @classmethod
    def from_string(cls, text: str) -> "HandRange":
        """
        Parse a comma separated range.

        Supported tokens:
            "random"  every combo
            "AsKh"    one explicit combo
            "TT"      all six combos of a pair
            "AKs"     four suited combos
            "AKo"     twelve offsuit combos
            "AK"      all sixteen combos

        Raises:
            ValueError: If a token is malformed or the range is empty
        """
        combos: dict[frozenset, Combo] = {}
        for token in text.split(","):
            token = token.strip()
            for combo in _parse_token(token):
                combos.setdefault(frozenset(combo), combo)

        if not combos:
            raise ValueError(f"Range {text!r} contains no combos")
        return cls(list(combos.values()))

    @classmethod
    def from_combo(cls, combo: Combo) -> "HandRange":
        return cls([combo])

    def without(self, dead: Sequence[Card]) -> "HandRange":
        """Return the combos that share no card with ``dead``."""
        dead_set = set(dead)
        return HandRange([c for c in self.combos if c[0] not in dead_set and c[1] not in dead_set])

    def __len__(self) -> int:
        return len(self.combos)

    def __repr__(self) -> str:
        return f"HandRange({len(self.combos)} combos)"


def _parse_token(token: str) -> List[Combo]:
    if token.lower() == "random":
        deck = Card.get_full_deck()
        return [(deck[i], deck[j]) for i in range(52) for j in range(i + 1, 52)]

    if len(token) == 4 and token[1] in SUITS and token[3] in SUITS:
        c1, c2 = parse_cards(token)
        if c1 == c2:
            raise ValueError(f"Combo {token!r} repeats a card")
        return [(c1, c2)]

    if len(token) not in (2, 3) or token[0] not in RANKS or token[1] not in RANKS:
        raise ValueError(f"Malformed range token: {token!r}")

    r1, r2 = token[0], token[1]
    suffix = token[2] if len(token) == 3 else ""
    if suffix not in ("", "s", "o"):
        raise ValueError(f"Malformed range token: {token!r}")

    combos = []
    if r1 == r2:
        if suffix:
            raise ValueError(f"Pairs cannot be suited or offsuit: {token!r}")
        for i, s1 in enumerate(SUITS):
            for s2 in SUITS[i + 1 :]:
                combos.append((Card.new(r1 + s1), Card.new(r2 + s2)))
        return combos

    for s1 in SUITS:
        for s2 in SUITS:
            if suffix == "s" and s1 != s2:
                continue
            if suffix == "o" and s1 == s2:
                continue
            combos.append((Card.new(r1 + s1), Card.new(r2 + s2)))
    return combos


class EquityOracle(Protocol):
    """Structural interface for equity estimators used by the precompute pipeline."""

    def approx_equity(
        self,
        hand_ranges: Sequence[HandRange],
        board_mask: int,
        n_samples: int,
        std_error: float,
    ) -> List[float]:
        """Return one equity estimate per range."""

    def equity_histogram(
        self,
        hole_cards: Combo,
        board: Tuple[Card, ...],
        n_bins: int,
    ) -> np.ndarray:
        """Return the normalised distribution of the hand's river equity."""


class MonteCarloEquityOracle:
    """
    Monte Carlo equity estimator for heads-up ranges.

    Sampling stops as soon as the standard error of the first range's equity
    reaches the requested target, or when the sample budget runs out.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        batch_size: int = 200,
        n_runouts: int = 100,
        n_opponents: int = 50,
    ):
        """
        Initialize the oracle.

        Args:
            seed: Random seed for reproducibility (None = random)
            batch_size: Samples drawn between standard-error checks
            n_runouts: Board completions per equity histogram
            n_opponents: Opponent hands per runout in equity histograms
        """
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.batch_size = batch_size
        self.n_runouts = n_runouts
        self.n_opponents = n_opponents
        self.evaluator = get_evaluator()
        self.full_deck = Card.get_full_deck()
        self._rng = random.Random(seed)

    def approx_equity(
        self,
        hand_ranges: Sequence[HandRange],
        board_mask: int,
        n_samples: int,
        std_error: float,
    ) -> List[float]:
        """
        Estimate equity of two ranges on a partial board.

        Args:
            hand_ranges: Exactly two ranges (hero first)
            board_mask: Bitmask of known board cards (bit ``4 * rank + suit``)
            n_samples: Maximum number of showdowns to sample
            std_error: Target standard error of hero's equity

        Returns:
            [hero_equity, villain_equity]

        Raises:
            ValueError: If inputs are inconsistent (wrong range count, board
                too large, or no combo compatible with the board)
        """
        if len(hand_ranges) != 2:
            raise ValueError(f"Expected 2 hand ranges, got {len(hand_ranges)}")
        if n_samples < 1:
            raise ValueError("n_samples must be positive")
        if std_error < 0:
            raise ValueError("std_error must be non-negative")

        board = cards_from_mask(board_mask)
        if len(board) > 5:
            raise ValueError(f"Board has {len(board)} cards")

        hero_range = hand_ranges[0].without(board)
        villain_range = hand_ranges[1].without(board)
        if not hero_range or not villain_range:
            raise ValueError("A hand range has no combos compatible with the board")

        total = 0.0
        total_sq = 0.0
        n = 0
        while n < n_samples:
            batch = min(self.batch_size, n_samples - n)
            for _ in range(batch):
                hero, villain = self._sample_matchup(hero_range, villain_range)
                full_board = self._complete_board(board, hero + villain)
                result = self.evaluator.compare_hands(hero, villain, full_board)
                score = 1.0 if result < 0 else 0.5 if result == 0 else 0.0
                total += score
                total_sq += score * score
            n += batch

            mean = total / n
            variance = max(total_sq / n - mean * mean, 0.0)
            if math.sqrt(variance / n) <= std_error:
                break

        equity = total / n
        return [equity, 1.0 - equity]

    def equity_histogram(
        self,
        hole_cards: Combo,
        board: Tuple[Card, ...],
        n_bins: int = 10,
    ) -> np.ndarray:
        """
        Distribution of the hand's river equity over random board completions.

        Each runout completes the board to five cards, then the hand's equity
        against random opponents on that final board is binned.

        Returns:
            Histogram with ``n_bins`` bins that sums to 1.0
        """
        if n_bins < 1:
            raise ValueError("n_bins must be positive")
        if set(hole_cards) & set(board):
            raise ValueError("Hole cards overlap the board")

        histogram = np.zeros(n_bins)
        for _ in range(self.n_runouts):
            full_board = self._complete_board(board, hole_cards)
            dead = set(hole_cards) | set(full_board)
            available = [c for c in self.full_deck if c not in dead]

            score = 0.0
            for _ in range(self.n_opponents):
                opp = tuple(self._rng.sample(available, 2))
                result = self.evaluator.compare_hands(hole_cards, opp, full_board)
                score += 1.0 if result < 0 else 0.5 if result == 0 else 0.0

            equity = score / self.n_opponents
            histogram[min(int(equity * n_bins), n_bins - 1)] += 1

        return histogram / self.n_runouts

    def _sample_matchup(
        self, hero_range: HandRange, villain_range: HandRange
    ) -> Tuple[Combo, Combo]:
        for _ in range(1000):
            hero = self._rng.choice(hero_range.combos)
            villain = self._rng.choice(villain_range.combos)
            if not set(hero) & set(villain):
                return hero, villain

        # Ranges overlap heavily; fall back to an explicit filter
        hero = self._rng.choice(hero_range.combos)
        compatible = villain_range.without(hero)
        if not compatible:
            raise ValueError("Hand ranges have no non-overlapping combos")
        return hero, self._rng.choice(compatible.combos)

    def _complete_board(self, board: Tuple[Card, ...], dead: Sequence[Card]) -> Tuple[Card, ...]:
        missing = 5 - len(board)
        if missing == 0:
            return board
        used = set(board) | set(dead)
        available = [c for c in self.full_deck if c not in used]
        return board + tuple(self._rng.sample(available, missing))
