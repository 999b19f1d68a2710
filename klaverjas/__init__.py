"""
Klaverjas best-card trainer: legal-move rules, a small MLP and oracle-driven training
"""

from .constants import ALL_CARDS, CARD_TO_INDEX, SUITS, RANKS, LEGACY_INPUT_SIZE, ORDERED_INPUT_SIZE
from .cards import (
    UnknownCard,
    card_index,
    encode_hand,
    encode_state,
    encode_trick,
    encode_trick_ordered,
    encode_trump,
)
from .legality import Play, legal_cards
from .network import ModelLoadError, NeuralNetwork
from .inference import Candidate, InferenceEngine, InferenceResult, NoLegalMoveError
from .oracle import OracleClient
from .training import Sample, Trainer, TrainingSummary
from .config import AppConfig, ConfigError, load_config

__all__ = [
    'ALL_CARDS', 'CARD_TO_INDEX', 'SUITS', 'RANKS', 'LEGACY_INPUT_SIZE', 'ORDERED_INPUT_SIZE',
    'UnknownCard', 'card_index', 'encode_hand', 'encode_state', 'encode_trick',
    'encode_trick_ordered', 'encode_trump',
    'Play', 'legal_cards',
    'ModelLoadError', 'NeuralNetwork',
    'Candidate', 'InferenceEngine', 'InferenceResult', 'NoLegalMoveError',
    'OracleClient',
    'Sample', 'Trainer', 'TrainingSummary',
    'AppConfig', 'ConfigError', 'load_config',
]
