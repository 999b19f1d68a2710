#!/usr/bin/env python3
"""
Train the best-card network against the external oracle.

  python run_training.py --config config.json --enable --generations 200

Logs:
  - Progress and generation summaries: stderr
  - JSONL events: --event-log (optional)
"""

import argparse
import logging
import sys

from klaverjas.config import ConfigError, load_config
from klaverjas.log_utils import setup_logging
from klaverjas.oracle import OracleClient
from klaverjas.training import Trainer

logger = logging.getLogger("run_training")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Train the Klaverjas best-card network")
    parser.add_argument("--config", type=str, help="JSON config file")
    parser.add_argument("--enable", action="store_true", help="Enable training (overrides training.enabled)")
    parser.add_argument("--generations", type=int, help="Number of generations")
    parser.add_argument("--games-per-generation", type=int, help="Oracle samples per generation")
    parser.add_argument("--learning-rate", type=float, help="Initial learning rate")
    parser.add_argument("--threads", type=int, help="Worker threads for sample collection")
    parser.add_argument("--model-file", type=str, help="Checkpoint path")
    parser.add_argument("--seed", type=int, help="Seed for weights and sampling")
    parser.add_argument("--oracle-url", type=str, help="Oracle base URL")
    parser.add_argument("--event-log", type=str, help="Append JSONL training events to this file")
    parser.add_argument("--no-progress", action="store_true", help="Disable the progress bar")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        tc = config.training
        if args.enable:
            tc.enabled = True
        for name in ("generations", "games_per_generation", "learning_rate", "threads",
                     "model_file", "seed", "event_log"):
            value = getattr(args, name)
            if value is not None:
                setattr(tc, name, value)
        if args.oracle_url:
            config.oracle.base_url = args.oracle_url
        config.validate()
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    oracle = OracleClient.from_config(config.oracle, game_variant=config.training.game_variant)
    try:
        Trainer(config.training, oracle, show_progress=not args.no_progress).run()
    finally:
        oracle.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
