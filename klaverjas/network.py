"""
Two-layer feed-forward card classifier (tanh hidden layer, softmax output)

Trained with plain SGD on categorical cross-entropy. Persisted as a small text
file so other tools can read the weights without numpy pickles.
"""

import os
import re
from typing import List, Optional

import numpy as np

MODEL_HEADER = "# model nn"


class ModelLoadError(Exception):
    """Raised when a persisted model cannot be parsed"""


def softmax(logits: np.ndarray) -> np.ndarray:
    e = np.exp(logits - np.max(logits))
    return e / e.sum()


class NeuralNetwork:
    """
    Minimal MLP: input -> hidden (tanh) -> output (softmax).

    Weights: W1 is hidden x input, W2 is output x hidden. The instance owns its
    arrays; training mutates them in place.
    """

    def __init__(self, input_size: int, hidden_size: int, output_size: int, seed: int = 42):
        self.input_size = input_size
        self.hidden_size = hidden_size
        self.output_size = output_size
        self.rng = np.random.default_rng(seed)
        self._init_weights()

    def _init_weights(self) -> None:
        std1 = np.sqrt(2.0 / (self.input_size + self.hidden_size))
        std2 = np.sqrt(2.0 / (self.hidden_size + self.output_size))
        self.W1 = self.rng.normal(0.0, std1, size=(self.hidden_size, self.input_size))
        self.b1 = np.zeros(self.hidden_size)
        self.W2 = self.rng.normal(0.0, std2, size=(self.output_size, self.hidden_size))
        self.b2 = np.zeros(self.output_size)

    @classmethod
    def from_parameters(cls, W1, b1, W2, b2) -> "NeuralNetwork":
        W1 = np.asarray(W1, dtype=np.float64)
        W2 = np.asarray(W2, dtype=np.float64)
        nn = cls(W1.shape[1], W1.shape[0], W2.shape[0])
        nn.W1 = W1
        nn.b1 = np.asarray(b1, dtype=np.float64)
        nn.W2 = W2
        nn.b2 = np.asarray(b2, dtype=np.float64)
        return nn

    def get_input_size(self) -> int:
        return self.input_size

    def get_output_size(self) -> int:
        return self.output_size

    def _check_input(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        if x.shape != (self.input_size,):
            raise ValueError(f"Expected input of size {self.input_size}, got shape {x.shape}")
        return x

    def _hidden(self, x: np.ndarray) -> np.ndarray:
        return np.tanh(self.W1 @ x + self.b1)

    def forward(self, x) -> np.ndarray:
        """Class probabilities for input ``x``"""
        x = self._check_input(x)
        return softmax(self.W2 @ self._hidden(x) + self.b2)

    def train_step(self, x, target_index: int, learning_rate: float) -> np.ndarray:
        """One SGD step towards ``target_index``; returns the pre-update probabilities"""
        if not 0 <= target_index < self.output_size:
            raise IndexError(f"Target index {target_index} out of range [0, {self.output_size})")
        x = self._check_input(x)
        h = self._hidden(x)
        probs = softmax(self.W2 @ h + self.b2)

        # softmax + cross-entropy: dL/dlogits = yhat - y
        d_o = probs.copy()
        d_o[target_index] -= 1.0
        self._backprop(x, h, d_o, learning_rate)
        return probs

    def train_step_masked(self, x, target_index: int, allowed: Optional[np.ndarray],
                          learning_rate: float) -> np.ndarray:
        """
        SGD step with the softmax restricted to ``allowed`` classes.

        Disallowed classes get probability 0 and no gradient. A missing or
        mis-sized mask, or one that allows nothing, falls back to ``train_step``.
        When the target itself is disallowed the correction term is skipped.
        """
        if allowed is None:
            return self.train_step(x, target_index, learning_rate)
        allowed = np.asarray(allowed, dtype=bool)
        if allowed.shape != (self.output_size,) or not allowed.any():
            return self.train_step(x, target_index, learning_rate)

        x = self._check_input(x)
        h = self._hidden(x)
        logits = self.W2 @ h + self.b2
        probs = np.zeros(self.output_size)
        probs[allowed] = softmax(logits[allowed])

        d_o = probs.copy()
        if 0 <= target_index < self.output_size and allowed[target_index]:
            d_o[target_index] -= 1.0
        self._backprop(x, h, d_o, learning_rate)
        return probs

    def _backprop(self, x: np.ndarray, h: np.ndarray, d_o: np.ndarray, learning_rate: float) -> None:
        d_h = (self.W2.T @ d_o) * (1.0 - h ** 2)
        self.W2 -= learning_rate * np.outer(d_o, h)
        self.b2 -= learning_rate * d_o
        self.W1 -= learning_rate * np.outer(d_h, x)
        self.b1 -= learning_rate * d_h

    # ===== Persistence =====

    def dumps(self) -> str:
        lines = [f"{MODEL_HEADER} input={self.input_size} hidden={self.hidden_size} output={self.output_size}"]
        for name, values in (("W1", self.W1), ("b1", self.b1), ("W2", self.W2), ("b2", self.b2)):
            lines.append(name)
            rows = values if values.ndim == 2 else [values]
            for row in rows:
                lines.append(",".join(f"{v:.6f}" for v in row))
        return "\n".join(lines) + "\n"

    def save(self, path: str) -> None:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.dumps())

    @classmethod
    def load(cls, path: str) -> "NeuralNetwork":
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ModelLoadError(f"Cannot read model file {path}: {e}") from e
        return cls.loads(text)

    @classmethod
    def loads(cls, text: str) -> "NeuralNetwork":
        lines = iter(text.splitlines())
        header = next(lines, None)
        if header is None or not header.startswith(MODEL_HEADER):
            raise ModelLoadError("Unrecognized model header")
        input_size = _parse_dim(header, "input")
        hidden_size = _parse_dim(header, "hidden")
        output_size = _parse_dim(header, "output")

        _expect_section(lines, "W1")
        W1 = [_parse_row(next(lines, None), input_size) for _ in range(hidden_size)]
        _expect_section(lines, "b1")
        b1 = _parse_row(next(lines, None), hidden_size)
        _expect_section(lines, "W2")
        W2 = [_parse_row(next(lines, None), hidden_size) for _ in range(output_size)]
        _expect_section(lines, "b2")
        b2 = _parse_row(next(lines, None), output_size)
        return cls.from_parameters(W1, b1, W2, b2)


def _parse_dim(header: str, key: str) -> int:
    match = re.search(rf"\b{key}=(\S*)", header)
    if match is None:
        raise ModelLoadError(f"Missing dimension: {key}")
    try:
        value = int(match.group(1))
    except ValueError:
        raise ModelLoadError(f"Bad dimension for {key}: {match.group(1)}") from None
    if value <= 0:
        raise ModelLoadError(f"Dimension {key} must be positive, got {value}")
    return value


def _expect_section(lines, name: str) -> None:
    line = next(lines, None)
    if line is None or line.strip() != name:
        raise ModelLoadError(f"Expected section '{name}' but got: {line}")


def _parse_row(line: Optional[str], expected: int) -> List[float]:
    if line is None:
        raise ModelLoadError("Unexpected EOF while reading row")
    parts = line.split(",")
    if len(parts) != expected:
        raise ModelLoadError(f"Expected {expected} values, got {len(parts)}")
    try:
        return [float(p) for p in parts]
    except ValueError as e:
        raise ModelLoadError(f"Malformed number in row: {e}") from None
