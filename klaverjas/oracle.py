"""
HTTP client for the external card oracle used to label training samples

The oracle speaks its own card alphabet: ranks A K Q J T N E S and lower-case
suits (e.g. "Ts" for the ten of spades), and full suit names for trump.
"""

import logging
import threading
from typing import List, Optional, Sequence

import requests

from .config import OracleConfig
from .constants import card_rank, card_suit, is_empty_slot

logger = logging.getLogger(__name__)

_TO_API_RANK = {"A": "A", "K": "K", "Q": "Q", "J": "J", "10": "T", "9": "N", "8": "E", "7": "S"}
_FROM_API_RANK = {v: k for k, v in _TO_API_RANK.items()}
_TO_API_SUIT = {"H": "h", "C": "c", "D": "d", "S": "s"}
_FROM_API_SUIT = {v: k for k, v in _TO_API_SUIT.items()}
_SUIT_NAMES = {"H": "Hearts", "C": "Clubs", "D": "Diamonds", "S": "Spades"}


def to_api_card(card: str) -> str:
    """Internal card ("AH", "10S") to the oracle's code ("Ah", "Ts")"""
    if card is None or not card.strip():
        raise ValueError("Empty card")
    rank, suit = card_rank(card), card_suit(card).upper()
    if rank not in _TO_API_RANK:
        raise ValueError(f"Unsupported rank: {rank}")
    if suit not in _TO_API_SUIT:
        raise ValueError(f"Unsupported suit: {suit}")
    return _TO_API_RANK[rank] + _TO_API_SUIT[suit]


def from_api_card(api_card: str) -> str:
    """Oracle code back to the internal card"""
    if api_card is None or len(api_card.strip()) < 2:
        raise ValueError(f"Empty or short api card: {api_card!r}")
    rank, suit = api_card[0], api_card[1]
    if rank not in _FROM_API_RANK:
        raise ValueError(f"Unsupported api rank: {rank}")
    if suit not in _FROM_API_SUIT:
        raise ValueError(f"Unsupported api suit: {suit}")
    return _FROM_API_RANK[rank] + _FROM_API_SUIT[suit]


def to_api_suit(suit: str) -> str:
    """Suit letter to the oracle's suit name; anything else passes through"""
    if suit is None or not suit.strip():
        raise ValueError("Empty suit")
    return _SUIT_NAMES.get(suit.upper(), suit)


def strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


class OracleClient:
    """Asks the oracle which card it would play for a hand, trick and trump"""

    def __init__(self, base_url: str, calc_ai_card_path: str = "/api/v1/calcAiCard",
                 timeout_ms: int = 5000, game_variant: str = "amsterdams",
                 session: Optional[requests.Session] = None):
        self.url = base_url.rstrip("/") + calc_ai_card_path
        self.timeout = timeout_ms / 1000.0
        self.game_variant = game_variant
        self._shared_session = session
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """The injected session, otherwise one session per calling thread"""
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    @classmethod
    def from_config(cls, config: OracleConfig, game_variant: str = "amsterdams",
                    session: Optional[requests.Session] = None) -> "OracleClient":
        return cls(config.base_url, config.calc_ai_card_path, config.timeout_ms,
                   game_variant, session=session)

    def build_request(self, trick: Optional[Sequence[Optional[str]]], trump_suit: str,
                      hand: Optional[Sequence[str]]) -> dict:
        api_trick: List[str] = [to_api_card(c) for c in (trick or []) if not is_empty_slot(c)]
        api_hand: List[str] = [to_api_card(c) for c in (hand or [])]
        return {
            "currentTrick": api_trick,
            "trumpSuit": to_api_suit(trump_suit),
            "hand": api_hand,
            "gameVariant": self.game_variant,
        }

    def fetch_best_card(self, trick: Optional[Sequence[Optional[str]]], trump_suit: str,
                        hand: Optional[Sequence[str]]) -> Optional[str]:
        """
        Label card for the given state, or None when the oracle gave no answer.

        A response that cannot be mapped back to an internal card is returned
        as-is; callers check it against the hand.
        """
        body = self.build_request(trick, trump_suit, hand)
        try:
            response = self.session.post(
                self.url,
                json=body,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.debug("Oracle call failed: %s", e)
            return None

        text = response.text
        if text is None or not text.strip():
            return None
        value = strip_quotes(text)
        try:
            return from_api_card(value)
        except ValueError:
            return value

    def close(self) -> None:
        if self._shared_session is not None:
            self._shared_session.close()
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
