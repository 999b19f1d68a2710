#!/usr/bin/env python3
"""
Serve best-card recommendations over HTTP.

  python run_server.py --config config.json --port 8080

POST /v1/best-card with hand, table, trump and seat positions.
Falls back to a deterministic policy when no model file can be loaded.
"""

import argparse
import logging
import sys

from klaverjas.config import ConfigError, load_config
from klaverjas.inference import InferenceEngine
from klaverjas.log_utils import setup_logging
from klaverjas.service import create_app

logger = logging.getLogger("run_server")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Klaverjas best-card server")
    parser.add_argument("--config", type=str, help="JSON config file")
    parser.add_argument("--host", type=str, help="Bind address")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--model-file", type=str, help="Model file to serve")
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level")
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        sc = config.server
        if args.host:
            sc.host = args.host
        if args.port is not None:
            sc.port = args.port
        if args.model_file:
            sc.model_file = args.model_file
        config.validate()
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    engine = InferenceEngine.from_model_file(sc.model_file)
    app = create_app(engine, default_top_k=sc.default_top_k)
    logger.info("Starting web server on http://%s:%d (model=%s)", sc.host, sc.port, engine.model_name)
    app.run(host=sc.host, port=sc.port, debug=False, threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
