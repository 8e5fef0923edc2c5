from __future__ import annotations

import json
from pathlib import Path

from padsplit.services.activity_log import LOGIN_FAILED, LOGIN_SUCCESS, ActivityLog


def test_record_appends_json_lines_without_password(tmp_path: Path) -> None:
    log = ActivityLog(tmp_path / "logs" / "activity.log")

    log.record(LOGIN_SUCCESS, ip="10.0.0.1", user_agent="pytest", email="host@example.com", password="s3cret")

    lines = log.path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["action"] == LOGIN_SUCCESS
    assert entry["ip"] == "10.0.0.1"
    assert entry["userAgent"] == "pytest"
    assert entry["email"] == "host@example.com"
    assert "password" not in entry
    assert "timestamp" in entry


def test_read_entries_newest_first_and_keeps_bad_lines(tmp_path: Path) -> None:
    log = ActivityLog(tmp_path / "activity.log")
    log.record(LOGIN_SUCCESS, email="a@example.com")
    with log.path.open("a", encoding="utf-8") as fh:
        fh.write("not json\n\n")
    log.record(LOGIN_FAILED, email="b@example.com", error="Invalid credentials")

    entries = log.read_entries()

    assert [e.get("action") for e in entries] == [LOGIN_FAILED, None, LOGIN_SUCCESS]
    assert entries[1] == {"raw": "not json"}


def test_missing_file_reads_as_empty(tmp_path: Path) -> None:
    assert ActivityLog(tmp_path / "absent.log").read_entries() == []
