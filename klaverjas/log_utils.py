import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure a single stream handler on the root logger"""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def log_event(event_type: str, payload: dict, path: Optional[str]) -> None:
    """Append one JSON line to the event log at ``path``; a None path disables it"""
    if not path:
        return
    record = {"event": event_type, "ts": datetime.now(timezone.utc).isoformat(), **payload}
    try:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError as e:
        logger.debug("Could not write event %s to %s: %s", event_type, path, e)
