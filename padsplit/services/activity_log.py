"""
Append-only activity log of login attempts.

One JSON object per line. Entries carry the caller's network origin, user
agent and email; passwords are never written.
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from padsplit import config
from padsplit.utils.time import now_utc

LOGIN_SUCCESS = "LOGIN_SUCCESS"
LOGIN_FAILED = "LOGIN_FAILED"

_REDACTED_KEYS = {"password"}


class ActivityLog:
    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or config.ACTIVITY_LOG_PATH)

    def record(self, action: str, *, ip: str = "unknown", user_agent: str = "unknown", **details: Any) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "timestamp": now_utc().isoformat(),
            "action": action,
            "ip": ip,
            "userAgent": user_agent,
        }
        entry.update({k: v for k, v in details.items() if k not in _REDACTED_KEYS})

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry) + "\n")

        logger.info("[ACTIVITY] {action}: {details}", action=action, details={k: v for k, v in entry.items() if k not in ("timestamp", "action")})
        return entry

    def read_entries(self) -> List[Dict[str, Any]]:
        """All entries, most recent first. Unparseable lines are returned as ``{"raw": line}``."""
        if not self.path.exists():
            return []
        entries: List[Dict[str, Any]] = []
        for line in self.path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                entries.append({"raw": line})
        entries.reverse()
        return entries
