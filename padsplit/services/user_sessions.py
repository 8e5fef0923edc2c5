"""
Server-side user sessions.

The browser cookie only carries an opaque session id; the dashboard
credentials needed to re-login for each browser session stay in process
memory and expire after ``config.SESSION_MAX_AGE_SECONDS``.
"""
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from padsplit import config
from padsplit.models import Credentials
from padsplit.utils.time import now_utc


@dataclass
class UserSession:
    session_id: str
    credentials: Credentials
    expires_at: datetime

    @property
    def email(self) -> str:
        return self.credentials.email


class UserSessionStore:
    def __init__(self, ttl_seconds: int = config.SESSION_MAX_AGE_SECONDS):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._sessions: Dict[str, UserSession] = {}

    def create(self, credentials: Credentials) -> UserSession:
        self._purge_expired()
        session = UserSession(
            session_id=secrets.token_urlsafe(32),
            credentials=credentials,
            expires_at=now_utc() + self.ttl,
        )
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: Optional[str]) -> Optional[UserSession]:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.expires_at <= now_utc():
            self._sessions.pop(session_id, None)
            return None
        return session

    def destroy(self, session_id: Optional[str]) -> None:
        if session_id:
            self._sessions.pop(session_id, None)

    def _purge_expired(self) -> None:
        now = now_utc()
        for sid in [sid for sid, s in self._sessions.items() if s.expires_at <= now]:
            del self._sessions[sid]
