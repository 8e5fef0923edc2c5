from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import pytest

from padsplit import config
from padsplit.exceptions import AuthError
from padsplit.models import Credentials
from padsplit.services.directory_service import MetroDirectoryService

CREDS = Credentials(email="host@example.com", password="pw")
DETAIL_URL = config.METRO_DETAIL_ENDPOINT.format(metro_id=3)
LISTING = [{"metro_area": {"id": 3, "name": "Atlanta"}, "supported_zipcodes": ["30301"]}]


class FakePage:
    def __init__(self, events: list[str]) -> None:
        self.events = events

    async def goto(self, url: str, **_kwargs) -> None:
        self.events.append(f"goto {url}")

    async def wait_for_timeout(self, _ms: int) -> None:
        return None

    async def evaluate(self, _script: str, url: str) -> dict[str, Any]:
        self.events.append(f"fetch {url}")
        if url == DETAIL_URL:
            return {"status": 200, "body": {"id": 3, "name": "Atlanta", "zip_codes_list": ["30301"]}}
        return {"status": 200, "body": LISTING}


class FakeSession:
    def __init__(self, events: list[str]) -> None:
        self.events = events

    async def new_page(self) -> FakePage:
        return FakePage(self.events)


class FakeSessions:
    def __init__(self) -> None:
        self.events: list[str] = []
        self.acquired = 0
        self.released = 0

    @asynccontextmanager
    async def session(self):
        self.acquired += 1
        self.events.append("acquire")
        try:
            yield FakeSession(self.events)
        finally:
            self.released += 1
            self.events.append("release")


def _service(sessions: FakeSessions, fail_login: bool = False) -> MetroDirectoryService:
    async def authenticate(_page: Any, email: str, _password: str) -> bool:
        sessions.events.append(f"login {email}")
        if fail_login:
            raise AuthError("Invalid credentials")
        return True

    return MetroDirectoryService(sessions=sessions, authenticate=authenticate)


def test_detail_logs_in_then_opens_dashboard_then_fetches() -> None:
    sessions = FakeSessions()

    detail = asyncio.run(_service(sessions).fetch_metro_detail(CREDS, 3))

    assert detail.name == "Atlanta"
    assert detail.zip_codes == ["30301"]
    assert sessions.events == [
        "acquire",
        "login host@example.com",
        f"goto {config.INSIGHTS_URL}",
        f"fetch {DETAIL_URL}",
        "release",
    ]


def test_listing_logs_in_then_opens_dashboard_then_fetches() -> None:
    sessions = FakeSessions()

    metros = asyncio.run(_service(sessions).login_and_list_metros(CREDS))

    assert [m.name for m in metros] == ["Atlanta"]
    assert sessions.events == [
        "acquire",
        "login host@example.com",
        f"goto {config.INSIGHTS_URL}",
        f"fetch {config.METRO_LISTING_ENDPOINT}",
        "release",
    ]


def test_each_call_uses_its_own_session() -> None:
    sessions = FakeSessions()
    service = _service(sessions)

    async def _run() -> None:
        await service.login_and_list_metros(CREDS)
        await service.fetch_metro_detail(CREDS, 3)

    asyncio.run(_run())

    assert sessions.acquired == sessions.released == 2
    assert sessions.events.count("login host@example.com") == 2


@pytest.mark.parametrize("call", ["login_and_list_metros", "fetch_metro_detail"])
def test_session_released_when_login_fails(call: str) -> None:
    sessions = FakeSessions()
    service = _service(sessions, fail_login=True)
    args = (CREDS,) if call == "login_and_list_metros" else (CREDS, 3)

    with pytest.raises(AuthError, match="Invalid credentials"):
        asyncio.run(getattr(service, call)(*args))

    assert sessions.released == 1
    assert sessions.events == ["acquire", "login host@example.com", "release"]
