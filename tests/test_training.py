"""
Tests for the oracle-driven training loop using an in-process fake oracle
"""

import json
import threading

import numpy as np
import pytest

from klaverjas.cards import card_index
from klaverjas.config import TrainingConfig
from klaverjas.network import NeuralNetwork
from klaverjas.training import Trainer, argmax_allowed, build_sample


class FakeOracle:
    """Answers with the hand's first card, or misbehaves on demand"""

    def __init__(self, mode="first"):
        self.mode = mode
        self.calls = 0
        self.threads = set()
        self.requests = []
        self._lock = threading.Lock()

    def fetch_best_card(self, trick, trump, hand):
        with self._lock:
            self.calls += 1
            n = self.calls
            self.threads.add(threading.current_thread().name)
            self.requests.append((tuple(trick), trump, tuple(hand)))
        assert 0 <= len(trick) <= 3
        assert not set(trick) & set(hand)
        assert trump in ("C", "D", "H", "S")
        if self.mode == "none":
            return None
        if self.mode == "outside":
            return next(c for c in ("AC", "KC", "QC", "JC", "10C", "9C", "8C", "7C", "AD") if c not in hand)
        if self.mode == "flaky" and n % 2 == 0:
            raise RuntimeError("oracle exploded")
        return sorted(hand)[0]


def make_config(tmp_path, **overrides):
    values = dict(enabled=True, generations=3, games_per_generation=12, learning_rate=0.05,
                  model_file=str(tmp_path / "model" / "model.txt"), threads=3, hidden_size=8,
                  seed=11, log_interval=1, checkpoint_interval=2)
    values.update(overrides)
    return TrainingConfig(**values)


def test_disabled_training_does_nothing(tmp_path):
    oracle = FakeOracle()
    config = make_config(tmp_path, enabled=False)
    assert Trainer(config, oracle, show_progress=False).run() is None
    assert oracle.calls == 0
    assert not (tmp_path / "model" / "model.txt").exists()


def test_training_run_collects_and_saves(tmp_path):
    oracle = FakeOracle()
    config = make_config(tmp_path, event_log=str(tmp_path / "events.jsonl"))
    summary = Trainer(config, oracle, show_progress=False).run()

    assert oracle.calls == 36
    assert summary.generations == 3
    assert summary.total_samples == 36
    assert summary.used_samples == 36
    assert summary.skipped_samples == 0
    assert summary.final_learning_rate == pytest.approx(0.05 * 0.999 ** 3)
    assert any(name.startswith("trainer-worker") for name in oracle.threads)

    loaded = NeuralNetwork.load(config.model_file)
    assert (loaded.input_size, loaded.hidden_size, loaded.output_size) == (164, 8, 32)

    events = [json.loads(line)["event"] for line in open(config.event_log, encoding="utf-8")]
    assert events[0] == "training_start"
    assert events.count("generation") == 3
    assert events[-1] == "training_complete"


class RecordingNetwork(NeuralNetwork):
    """Remembers how many training steps had run at each save"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.steps = 0
        self.saved_at_steps = []

    def train_step_masked(self, x, target, allowed, lr):
        self.steps += 1
        return super().train_step_masked(x, target, allowed, lr)

    def save(self, path):
        self.saved_at_steps.append(self.steps)
        super().save(path)


def test_log_and_checkpoint_cadence(tmp_path):
    net = RecordingNetwork(164, 8, 32, seed=11)
    config = make_config(tmp_path, generations=5, games_per_generation=4, log_interval=2,
                         checkpoint_interval=2, event_log=str(tmp_path / "events.jsonl"))
    Trainer(config, FakeOracle(), network=net, show_progress=False).run()

    records = [json.loads(line) for line in open(config.event_log, encoding="utf-8")]
    assert [r["generation"] for r in records if r["event"] == "generation"] == [2, 4, 5]
    # checkpoints after generations 2, 4 and 5, then the final save
    assert net.saved_at_steps == [8, 16, 20, 20]


def test_training_updates_network(tmp_path):
    net = NeuralNetwork(164, 8, 32, seed=11)
    before = net.W1.copy()
    Trainer(make_config(tmp_path, generations=1), FakeOracle(), network=net, show_progress=False).run()
    assert not np.array_equal(before, net.W1)


@pytest.mark.parametrize("mode", ["none", "outside"])
def test_unusable_labels_are_skipped(tmp_path, mode):
    net = NeuralNetwork(164, 8, 32, seed=11)
    before = net.W1.copy()
    summary = Trainer(make_config(tmp_path), FakeOracle(mode), network=net, show_progress=False).run()
    assert summary.used_samples == 0
    assert summary.skipped_samples == 36
    assert np.array_equal(before, net.W1)


def test_failing_tasks_do_not_abort_the_run(tmp_path):
    summary = Trainer(make_config(tmp_path), FakeOracle("flaky"), show_progress=False).run()
    assert summary.used_samples == 18
    assert summary.skipped_samples == 18


def test_sampling_is_reproducible(tmp_path):
    a = Trainer(make_config(tmp_path, threads=4), FakeOracle(), show_progress=False)
    b = Trainer(make_config(tmp_path, threads=1), FakeOracle(), show_progress=False)
    a.run()
    b.run()
    # arrival order differs between pool sizes, the drawn positions do not
    assert sorted(a.oracle.requests) == sorted(b.oracle.requests)
    assert len(set(a.oracle.requests)) > 1


def test_rejects_legacy_network(tmp_path):
    with pytest.raises(ValueError):
        Trainer(make_config(tmp_path), FakeOracle(), network=NeuralNetwork(68, 8, 32))


def test_build_sample():
    hand = ["AH", "KH", "QH", "JH", "10H", "9H", "8H", "7H"]
    sample = build_sample(hand, ["AS"], "C", "JH")
    assert sample.target == card_index("JH")
    assert sample.allowed.sum() == 8
    assert all(sample.allowed[card_index(c)] for c in hand)
    assert sample.x.shape == (164,)
    assert sample.x[32 + card_index("AS")] == 1.0
    assert build_sample(hand, [], "C", None) is None
    assert build_sample(hand, [], "C", "AS") is None
    assert build_sample(hand, [], "C", "Xy") is None


def test_argmax_allowed():
    probs = np.array([0.5, 0.2, 0.3])
    assert argmax_allowed(probs, np.array([False, True, True])) == 2
    assert argmax_allowed(probs, np.array([False, False, False])) == 0
    assert argmax_allowed(np.array([0.1, 0.4, -np.inf]), np.array([False, False, True])) == 1
    assert argmax_allowed(probs, None) == 0
