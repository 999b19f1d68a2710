"""
Supervised self-play training against the card oracle

Each generation samples random positions in parallel, asks the oracle for the
card it would play, then updates the network on the collected samples on the
calling thread.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from tqdm import tqdm

from .cards import card_index, encode_state, random_hand, random_suit, random_trick
from .config import TrainingConfig
from .constants import HAND_SIZE, NUM_CARDS, ORDERED_INPUT_SIZE
from .log_utils import log_event
from .network import NeuralNetwork

logger = logging.getLogger(__name__)


@dataclass
class Sample:
    """One labelled position: input vector, oracle card index and the cards held"""
    x: np.ndarray
    target: int
    allowed: np.ndarray


@dataclass
class GenerationStats:
    generation: int
    used: int
    skipped: int
    correct: int
    duration: float

    @property
    def accuracy(self) -> float:
        return self.correct / self.used if self.used else 0.0


@dataclass
class TrainingSummary:
    generations: int
    total_samples: int
    used_samples: int
    skipped_samples: int
    last_accuracy: float
    final_learning_rate: float
    duration: float


def argmax_allowed(probs: np.ndarray, allowed: Optional[np.ndarray]) -> int:
    """Best class among the allowed ones; the global best if none has a finite score"""
    if allowed is None or len(allowed) != len(probs):
        return int(np.argmax(probs))
    candidates = np.asarray(allowed, dtype=bool) & np.isfinite(probs)
    if not candidates.any():
        return int(np.argmax(probs))
    return int(np.argmax(np.where(candidates, probs, -np.inf)))


def build_sample(hand: List[str], trick: List[str], trump: str, label: Optional[str]) -> Optional[Sample]:
    """Sample for an oracle answer, or None when the label is not a card in the hand"""
    if label is None or label not in hand:
        return None
    allowed = np.zeros(NUM_CARDS, dtype=bool)
    for c in hand:
        allowed[card_index(c)] = True
    x = encode_state(hand, trick, trump, ORDERED_INPUT_SIZE)
    return Sample(x=x, target=card_index(label), allowed=allowed)


class Trainer:
    """
    Runs the generation loop for one training session.

    The network is only touched from the thread that calls ``run``; worker
    threads just draw positions and wait on the oracle.
    """

    def __init__(self, config: TrainingConfig, oracle, network: Optional[NeuralNetwork] = None,
                 show_progress: bool = True):
        self.config = config
        self.oracle = oracle
        self.network = network or NeuralNetwork(ORDERED_INPUT_SIZE, config.hidden_size, NUM_CARDS,
                                                seed=config.seed)
        if self.network.input_size != ORDERED_INPUT_SIZE:
            raise ValueError(f"Training needs an ordered-layout network (input={ORDERED_INPUT_SIZE}), "
                             f"got input={self.network.input_size}")
        self.learning_rate = config.learning_rate
        self.show_progress = show_progress
        self._seeds = np.random.SeedSequence(config.seed)

    def collect_sample(self, rng: np.random.Generator) -> Optional[Sample]:
        hand = random_hand(rng, HAND_SIZE)
        trump = random_suit(rng)
        trick = random_trick(rng, hand)
        label = self.oracle.fetch_best_card(trick, trump, hand)
        return build_sample(hand, trick, trump, label)

    def _task(self, seed: np.random.SeedSequence) -> Optional[Sample]:
        return self.collect_sample(np.random.default_rng(seed))

    def run_generation(self, pool: ThreadPoolExecutor, generation: int) -> GenerationStats:
        start = time.perf_counter()
        seeds = self._seeds.spawn(self.config.games_per_generation)
        futures = [pool.submit(self._task, s) for s in seeds]

        batch: List[Sample] = []
        skipped = 0
        for fut in as_completed(futures):
            try:
                sample = fut.result()
            except Exception as e:
                skipped += 1
                logger.debug("Sample task failed: %s", e)
                continue
            if sample is None:
                skipped += 1
            else:
                batch.append(sample)

        # all workers are done; weights are only mutated here
        correct = 0
        for s in batch:
            probs = self.network.forward(s.x)
            if argmax_allowed(probs, s.allowed) == s.target:
                correct += 1
            self.network.train_step_masked(s.x, s.target, s.allowed, self.learning_rate)

        return GenerationStats(generation, len(batch), skipped, correct, time.perf_counter() - start)

    def run(self) -> Optional[TrainingSummary]:
        cfg = self.config
        if not cfg.enabled:
            logger.info("Training is disabled (training.enabled is false) - skipping training run.")
            return None

        logger.info("Starting training: generations=%d, games/gen=%d, lr=%s, threads=%d, modelFile=%s",
                    cfg.generations, cfg.games_per_generation, cfg.learning_rate, cfg.threads, cfg.model_file)
        log_event("training_start", {
            "generations": cfg.generations,
            "games_per_generation": cfg.games_per_generation,
            "learning_rate": cfg.learning_rate,
            "threads": cfg.threads,
            "model_file": cfg.model_file,
        }, cfg.event_log)

        start_all = time.perf_counter()
        total = used = skipped = 0
        last_accuracy = 0.0
        with ThreadPoolExecutor(max_workers=cfg.threads, thread_name_prefix="trainer-worker") as pool:
            for g in tqdm(range(1, cfg.generations + 1), desc="Generations", disable=not self.show_progress):
                stats = self.run_generation(pool, g)
                total += stats.used + stats.skipped
                used += stats.used
                skipped += stats.skipped
                last_accuracy = stats.accuracy

                if g % cfg.log_interval == 0 or g == cfg.generations:
                    logger.info("Gen %d/%d: used=%d, skipped=%d, acc=%.2f%%, duration=%d ms",
                                g, cfg.generations, stats.used, stats.skipped,
                                stats.accuracy * 100.0, stats.duration * 1000)
                    log_event("generation", {
                        "generation": g,
                        "used": stats.used,
                        "skipped": stats.skipped,
                        "accuracy": stats.accuracy,
                        "learning_rate": self.learning_rate,
                        "duration_ms": int(stats.duration * 1000),
                    }, cfg.event_log)

                if g % cfg.checkpoint_interval == 0 or g == cfg.generations:
                    self.network.save(cfg.model_file)
                    logger.debug("Checkpoint written to %s at generation %d", cfg.model_file, g)

                self.learning_rate *= cfg.lr_decay

        duration = time.perf_counter() - start_all
        self.network.save(cfg.model_file)
        logger.info("Training completed. TotalSamples=%d, UsedSamples=%d, duration=%d s",
                    total, used, duration)
        summary = TrainingSummary(
            generations=cfg.generations,
            total_samples=total,
            used_samples=used,
            skipped_samples=skipped,
            last_accuracy=last_accuracy,
            final_learning_rate=self.learning_rate,
            duration=duration,
        )
        log_event("training_complete", {
            "total_samples": total,
            "used_samples": used,
            "skipped_samples": skipped,
            "duration_s": round(duration, 3),
        }, cfg.event_log)
        return summary
