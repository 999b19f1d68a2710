from types import MappingProxyType
from typing import Mapping, Tuple

SUITS: Tuple[str, ...] = ("C", "D", "H", "S")
RANKS: Tuple[str, ...] = ("A", "K", "Q", "J", "10", "9", "8", "7")

# Trick-taking strength order (highest first)
TRUMP_ORDER: Tuple[str, ...] = ("J", "9", "A", "10", "K", "Q", "8", "7")
NON_TRUMP_ORDER: Tuple[str, ...] = ("A", "K", "Q", "J", "10", "9", "8", "7")

# Suit-major deck order; every one-hot index and the persisted model depend on it
ALL_CARDS: Tuple[str, ...] = tuple(rank + suit for suit in SUITS for rank in RANKS)
CARD_TO_INDEX: Mapping[str, int] = MappingProxyType({c: i for i, c in enumerate(ALL_CARDS)})

NUM_CARDS = len(ALL_CARDS)
HAND_SIZE = 8
TRICK_SLOTS = 4
SEATS = 4

LEGACY_INPUT_SIZE = NUM_CARDS + NUM_CARDS + len(SUITS)  # 68
ORDERED_INPUT_SIZE = NUM_CARDS + TRICK_SLOTS * NUM_CARDS + len(SUITS)  # 164
DEFAULT_HIDDEN_SIZE = 128

EMPTY_SLOT = "-"


def card_rank(card: str) -> str:
    return card[:-1]


def card_suit(card: str) -> str:
    return card[-1]


def trump_rank_index(card: str) -> int:
    return TRUMP_ORDER.index(card_rank(card))


def non_trump_rank_index(card: str) -> int:
    return NON_TRUMP_ORDER.index(card_rank(card))


def is_empty_slot(card) -> bool:
    return card is None or not str(card).strip() or card == EMPTY_SLOT
