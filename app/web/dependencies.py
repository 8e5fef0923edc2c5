"""
Shared FastAPI dependencies: the process-wide service container and the
logged-in user lookup.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request, status

from padsplit import config
from padsplit.scrapers.browser import BrowserSessionManager
from padsplit.services.activity_log import ActivityLog
from padsplit.services.directory_service import MetroDirectoryService
from padsplit.services.scrape_orchestrator import ScrapeOrchestrator
from padsplit.services.user_sessions import UserSession, UserSessionStore

SESSION_ID_KEY = "sid"


@dataclass
class WebServices:
    orchestrator: ScrapeOrchestrator
    directory: MetroDirectoryService
    user_sessions: UserSessionStore = field(default_factory=UserSessionStore)
    activity: ActivityLog = field(default_factory=ActivityLog)
    admin_key: Optional[str] = config.ADMIN_KEY


def build_services() -> WebServices:
    sessions = BrowserSessionManager()
    return WebServices(
        orchestrator=ScrapeOrchestrator(sessions=sessions),
        directory=MetroDirectoryService(sessions=sessions),
    )


def get_services(request: Request) -> WebServices:
    return request.app.state.services


def get_current_user(request: Request, services: WebServices = Depends(get_services)) -> UserSession:
    """The logged-in user's server-side session, or 401."""
    user = services.user_sessions.get(request.session.get(SESSION_ID_KEY))
    if user is None:
        request.session.pop(SESSION_ID_KEY, None)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    return user


def client_origin(request: Request) -> Dict[str, str]:
    """Caller IP (first X-Forwarded-For hop when proxied) and user agent for the activity log."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    elif request.client:
        ip = request.client.host
    else:
        ip = "unknown"
    return {"ip": ip or "unknown", "user_agent": request.headers.get("user-agent") or "unknown"}
