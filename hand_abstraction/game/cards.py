"""
Card and street representation.

Cards wrap the treys integer encoding for fast evaluation and also expose a
dense index (``4 * rank + suit``) that the hand indexers and board bitmasks use.
"""

from enum import Enum
from typing import List, Optional, Tuple

from treys import Card as TreysCard

RANKS = "23456789TJQKA"
SUITS = "shdc"


class Street(Enum):
    """Betting rounds in Texas Hold'em, valued by their index in the hand."""

    PREFLOP = 0
    FLOP = 1
    TURN = 2
    RIVER = 3

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def board_size(self) -> int:
        """Number of community cards visible on this street."""
        return (0, 3, 4, 5)[self.value]

    @property
    def num_cards(self) -> int:
        """Hole cards plus board cards."""
        return 2 + self.board_size

    def next_street(self) -> Optional["Street"]:
        """Get the next street, or None if this is the river."""
        if self == Street.RIVER:
            return None
        return Street(self.value + 1)


# Module-level caches
_CARD_CACHE: dict[str, "Card"] = {}
_FULL_DECK_CACHE: Optional[List["Card"]] = None


class Card:
    """
    Card representation using the treys library.

    Card objects are cached: creating the same card twice returns the same object.
    """

    def __init__(self, card_int: int):
        """
        Initialize from treys card integer.

        Args:
            card_int: Integer representation from treys (use Card.new() to create)
        """
        self.card_int = card_int
        self._hash: Optional[int] = None

    @classmethod
    def new(cls, card_str: str) -> "Card":
        """
        Create a card from string representation (e.g., 'As', 'Kh', '2d').

        Args:
            card_str: Two-character string (rank + suit)

        Returns:
            Card instance (cached)
        """
        if card_str not in _CARD_CACHE:
            if len(card_str) != 2 or card_str[0] not in RANKS or card_str[1] not in SUITS:
                raise ValueError(f"Invalid card string: {card_str!r}")
            _CARD_CACHE[card_str] = cls(TreysCard.new(card_str))
        return _CARD_CACHE[card_str]

    @classmethod
    def from_index(cls, index: int) -> "Card":
        """Create a card from its dense index (``4 * rank + suit``)."""
        if not 0 <= index < 52:
            raise ValueError(f"Card index out of range: {index}")
        return cls.new(RANKS[index >> 2] + SUITS[index & 3])

    @classmethod
    def get_full_deck(cls) -> List["Card"]:
        """
        Get a full 52-card deck ordered by dense index.

        Returns a copy so the cached deck cannot be mutated.
        """
        global _FULL_DECK_CACHE

        if _FULL_DECK_CACHE is None:
            _FULL_DECK_CACHE = [cls.from_index(i) for i in range(52)]

        return _FULL_DECK_CACHE.copy()

    @property
    def rank(self) -> int:
        """Rank index, 0 for a deuce up to 12 for an ace."""
        return TreysCard.get_rank_int(self.card_int)

    @property
    def suit(self) -> int:
        """Suit index in ``SUITS`` order."""
        return SUITS.index(TreysCard.int_to_str(self.card_int)[1])

    @property
    def index(self) -> int:
        """Dense card index in ``[0, 52)``."""
        return 4 * self.rank + self.suit

    @property
    def mask(self) -> int:
        """Single-bit board mask for this card."""
        return 1 << self.index

    def __str__(self) -> str:
        return TreysCard.int_to_pretty_str(self.card_int)

    def __repr__(self) -> str:
        return TreysCard.int_to_str(self.card_int)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Card):
            return False
        return self.card_int == other.card_int

    def __hash__(self) -> int:
        if self._hash is None:
            self._hash = hash(self.card_int)
        return self._hash

    def __lt__(self, other: "Card") -> bool:
        return self.index < other.index


def cards_from_mask(mask: int) -> Tuple[Card, ...]:
    """Decode a board bitmask into cards, lowest index first."""
    if mask < 0 or mask >> 52:
        raise ValueError(f"Board mask has bits outside the deck: {mask:#x}")
    return tuple(Card.from_index(i) for i in range(52) if mask >> i & 1)


def cards_to_mask(cards) -> int:
    """Encode cards into a board bitmask."""
    mask = 0
    for card in cards:
        mask |= card.mask
    return mask


def parse_cards(text: str) -> Tuple[Card, ...]:
    """Parse concatenated card strings such as ``"AsKh2c"``."""
    text = text.strip()
    if len(text) % 2:
        raise ValueError(f"Malformed card string: {text!r}")
    return tuple(Card.new(text[i : i + 2]) for i in range(0, len(text), 2))
