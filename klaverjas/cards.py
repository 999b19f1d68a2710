"""
Card codec: fixed 32-card ordering and the feature vectors fed to the network
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np

from .constants import (
    ALL_CARDS,
    CARD_TO_INDEX,
    HAND_SIZE,
    NUM_CARDS,
    ORDERED_INPUT_SIZE,
    SUITS,
    TRICK_SLOTS,
    is_empty_slot,
)


class UnknownCard(ValueError):
    """Raised when a card code is not one of the 32 canonical cards"""

    def __init__(self, card):
        super().__init__(f"Unknown card: {card!r}")
        self.card = card


def card_index(card: str) -> int:
    """Index of a card in the fixed deck order"""
    try:
        return CARD_TO_INDEX[card]
    except (KeyError, TypeError):
        raise UnknownCard(card) from None


def is_known_card(card) -> bool:
    return isinstance(card, str) and card in CARD_TO_INDEX


def encode_hand(cards: Iterable[str]) -> np.ndarray:
    """One-hot union of the given cards; unknown codes are ignored"""
    v = np.zeros(NUM_CARDS, dtype=np.float64)
    for c in cards:
        if is_known_card(c):
            v[CARD_TO_INDEX[c]] = 1.0
    return v


def encode_trick(cards: Iterable[Optional[str]]) -> np.ndarray:
    """Aggregate one-hot of the cards visible in the current trick"""
    return encode_hand(c for c in cards if not is_empty_slot(c))


def encode_trick_ordered(cards_in_seat_order: Optional[Sequence[Optional[str]]]) -> np.ndarray:
    """
    Encode the current trick as 4 slots x 32 one-hots.

    Each input position keeps its own block, so the vector records who played
    what. Empty slots leave their block zero; positions past the 4th are dropped.
    """
    v = np.zeros(TRICK_SLOTS * NUM_CARDS, dtype=np.float64)
    if cards_in_seat_order is None:
        return v
    for pos, c in enumerate(cards_in_seat_order):
        if pos >= TRICK_SLOTS:
            break
        if not is_empty_slot(c) and is_known_card(c):
            v[pos * NUM_CARDS + CARD_TO_INDEX[c]] = 1.0
    return v


def encode_trump(trump_suit: Optional[str]) -> np.ndarray:
    v = np.zeros(len(SUITS), dtype=np.float64)
    if trump_suit is None:
        return v
    for i, suit in enumerate(SUITS):
        if suit == trump_suit.upper():
            v[i] = 1.0
    return v


def encode_state(hand: Iterable[str], trick: Sequence[Optional[str]], trump: str,
                 input_size: int = ORDERED_INPUT_SIZE) -> np.ndarray:
    """
    Build the network input for the layout matching ``input_size``.

    The ordered layout (164) keeps the trick per seat; anything else gets the
    legacy aggregate layout (68).
    """
    if input_size == ORDERED_INPUT_SIZE:
        trick_vec = encode_trick_ordered(trick)
    else:
        trick_vec = encode_trick(trick)
    return np.concatenate([encode_hand(hand), trick_vec, encode_trump(trump)])


def random_suit(rng: np.random.Generator) -> str:
    return SUITS[int(rng.integers(len(SUITS)))]


def random_hand(rng: np.random.Generator, n: int = HAND_SIZE) -> List[str]:
    """Draw ``n`` distinct cards from the deck"""
    order = rng.permutation(NUM_CARDS)[:n]
    return [ALL_CARDS[i] for i in order]


def random_trick(rng: np.random.Generator, exclude: Iterable[str]) -> List[str]:
    """Draw 0-3 distinct cards that are not in ``exclude``"""
    size = int(rng.integers(TRICK_SLOTS))
    excluded = set(exclude)
    deck = [c for c in ALL_CARDS if c not in excluded]
    order = rng.permutation(len(deck))[:size]
    return [deck[i] for i in order]
