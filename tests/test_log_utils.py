"""
Tests for the JSONL event log
"""

import json

from klaverjas.log_utils import log_event


def test_log_event_appends_lines(tmp_path):
    path = tmp_path / "logs" / "training.log"
    log_event("generation", {"generation": 1, "used": 5}, str(path))
    log_event("generation", {"generation": 2, "used": 7}, str(path))
    records = [json.loads(line) for line in path.read_text().splitlines()]
    assert [r["generation"] for r in records] == [1, 2]
    assert all(r["event"] == "generation" and "ts" in r for r in records)


def test_log_event_disabled(tmp_path):
    log_event("generation", {"generation": 1}, None)
    assert list(tmp_path.iterdir()) == []


def test_log_event_unwritable_path_is_not_fatal(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    log_event("generation", {}, str(blocker / "sub" / "events.log"))
