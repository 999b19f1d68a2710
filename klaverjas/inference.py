"""
Ranks the legal cards for a position, with the network or a deterministic fallback
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .cards import card_index, encode_state
from .constants import LEGACY_INPUT_SIZE, NUM_CARDS, ORDERED_INPUT_SIZE, is_empty_slot
from .legality import TableSlot, as_play
from .network import ModelLoadError, NeuralNetwork

logger = logging.getLogger(__name__)

FALLBACK_MODEL_NAME = "fallback"
MODEL_NAME = "klaverjas-mlp"
MODEL_VERSION = "0.1.0"


class NoLegalMoveError(Exception):
    """Raised when there is no legal card to rank"""


@dataclass
class Candidate:
    card: str
    score: float
    reason: Optional[str] = None

    def to_dict(self) -> Dict:
        return {"card": self.card, "score": self.score, "reason": self.reason}


@dataclass
class InferenceResult:
    best_card: str
    candidates: List[Candidate]
    legal_cards: List[str]
    model: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "bestCard": self.best_card,
            "candidates": [c.to_dict() for c in self.candidates],
            "legalCards": list(self.legal_cards),
            "model": dict(self.model),
        }


class InferenceEngine:
    """
    Picks the best legal card.

    ``network`` is either a loaded NeuralNetwork or None; with None every
    request is answered by the fallback policy. Forward passes only read the
    weights, so one engine can serve concurrent requests.
    """

    def __init__(self, network: Optional[NeuralNetwork] = None):
        self.network = network

    @classmethod
    def from_model_file(cls, path: str) -> "InferenceEngine":
        if not os.path.exists(path):
            logger.warning("Model file not found at %s. Inference will use fallback.", path)
            return cls(None)
        try:
            network = NeuralNetwork.load(path)
        except ModelLoadError as e:
            logger.warning("Failed to load model: %s. Using fallback.", e)
            return cls(None)
        if network.input_size not in (LEGACY_INPUT_SIZE, ORDERED_INPUT_SIZE) or network.output_size != NUM_CARDS:
            logger.warning("Model at %s has unsupported shape (input=%d, output=%d). Using fallback.",
                           path, network.input_size, network.output_size)
            return cls(None)
        logger.info("Loaded model from %s (input=%d, hidden=%d, output=%d)", path,
                    network.input_size, network.hidden_size, network.output_size)
        return cls(network)

    @property
    def model_name(self) -> str:
        return FALLBACK_MODEL_NAME if self.network is None else MODEL_NAME

    def model_info(self) -> Dict[str, str]:
        return {
            "name": self.model_name,
            "version": MODEL_VERSION,
            "ts": datetime.now(timezone.utc).isoformat(),
        }

    def pick_best(self, hand: Sequence[str], table: Optional[Sequence[TableSlot]], trump: str,
                  legal: Sequence[str], top_k: int = 3) -> InferenceResult:
        if not legal:
            raise NoLegalMoveError("No legal cards to choose from")
        top_k = max(0, top_k)

        if self.network is None:
            candidates = self._rank_fallback(legal)
        else:
            candidates = self._rank_with_network(self.network, hand, table, trump, legal)

        return InferenceResult(
            best_card=candidates[0].card,
            candidates=candidates[:top_k],
            legal_cards=list(legal),
            model=self.model_info(),
        )

    @staticmethod
    def _rank_fallback(legal: Sequence[str]) -> List[Candidate]:
        # first legal card by plain string order
        return [Candidate(card, 0.0, "fallback") for card in sorted(legal)]

    @staticmethod
    def _rank_with_network(network: NeuralNetwork, hand: Sequence[str],
                           table: Optional[Sequence[TableSlot]], trump: str,
                           legal: Sequence[str]) -> List[Candidate]:
        trick = [as_play(slot).card for slot in (table or [])]
        if network.input_size != ORDERED_INPUT_SIZE:
            trick = [c for c in trick if not is_empty_slot(c)]
        x = encode_state(hand, trick, trump, network.input_size)
        probs = network.forward(x)

        candidates = []
        for card in legal:
            idx = card_index(card)
            score = float(probs[idx]) if idx < len(probs) else 0.0
            candidates.append(Candidate(card, score))
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates
