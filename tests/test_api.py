from __future__ import annotations

import time
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.web.dependencies import WebServices
from app.web.main import app
from padsplit.exceptions import AuthError
from padsplit.models import Credentials, MetroArea, MetroAreaDetail, MetroStats, ScrapeJob, ZipRecord
from padsplit.services.activity_log import LOGIN_FAILED, LOGIN_SUCCESS, ActivityLog
from padsplit.services.scrape_orchestrator import ScrapeOrchestrator
from padsplit.services.user_sessions import UserSessionStore
from padsplit.utils.time import now_utc

ADMIN_KEY = "letmein"
GOOD_LOGIN = {"email": "host@example.com", "password": "s3cret"}


class FakeDirectory:
    def __init__(self) -> None:
        self.detail_calls: list[tuple[str, str]] = []

    async def login_and_list_metros(self, credentials: Credentials) -> list[MetroArea]:
        if credentials.password != "s3cret":
            raise AuthError("Invalid credentials")
        return [MetroArea(id=3, name="Atlanta", slug="atlanta-ga", active_properties=40, supported_zipcode_count=2)]

    async def fetch_metro_detail(self, credentials: Credentials, metro_id: str) -> MetroAreaDetail:
        self.detail_calls.append((credentials.email, metro_id))
        return MetroAreaDetail(
            id=3,
            name="Atlanta",
            market_type="active",
            stats=MetroStats(average_occupancy=78, days_to_80_percent=20),
            zip_codes=["30301", "30302"],
        )


class FakeSession:
    async def new_page(self) -> object:
        return object()


class FakeSessions:
    async def acquire(self) -> FakeSession:
        return FakeSession()

    async def release(self, _session: FakeSession) -> None:
        return None


async def ok_login(_page: Any, _email: str, _password: str) -> bool:
    return True


async def fake_extract(_page: Any, zip_code: str) -> ZipRecord:
    return ZipRecord(zip_code=zip_code, active_units=5, upcoming_units=1, average_occupancy=80)


@pytest.fixture
def services(tmp_path: Path) -> WebServices:
    return WebServices(
        orchestrator=ScrapeOrchestrator(
            sessions=FakeSessions(), authenticate=ok_login, extract=fake_extract, request_delay_ms=0
        ),
        directory=FakeDirectory(),
        user_sessions=UserSessionStore(),
        activity=ActivityLog(tmp_path / "activity.log"),
        admin_key=ADMIN_KEY,
    )


@pytest.fixture
def client(services: WebServices):
    original = app.state.services
    app.state.services = services
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.state.services = original


def _wait_for_completion(client: TestClient, job_id: str) -> dict[str, Any]:
    for _ in range(200):
        progress = client.get(f"/api/scrape/{job_id}/progress").json()
        if progress["status"] != "running":
            return progress
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} did not finish")


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_login_requires_email_and_password(client: TestClient) -> None:
    response = client.post("/api/login", json={"email": "host@example.com"})

    assert response.status_code == 400
    assert response.json()["message"] == "Email and password required"


def test_login_failure_is_401_and_logged(client: TestClient, services: WebServices) -> None:
    response = client.post("/api/login", json={"email": "host@example.com", "password": "wrong"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"
    entry = services.activity.read_entries()[0]
    assert entry["action"] == LOGIN_FAILED
    assert entry["error"] == "Invalid credentials"


def test_login_success_returns_metros(client: TestClient, services: WebServices) -> None:
    response = client.post("/api/login", json=GOOD_LOGIN, headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["citiesCount"] == 1
    assert body["cities"][0]["name"] == "Atlanta"
    assert body["cities"][0]["supportedZipcodeCount"] == 2

    entry = services.activity.read_entries()[0]
    assert entry["action"] == LOGIN_SUCCESS
    assert entry["ip"] == "203.0.113.5"
    assert "password" not in entry


def test_city_zipcodes_requires_login(client: TestClient) -> None:
    response = client.get("/api/city/3/zipcodes")

    assert response.status_code == 401
    assert response.json()["message"] == "Not logged in"


def test_city_zipcodes_after_login(client: TestClient, services: WebServices) -> None:
    client.post("/api/login", json=GOOD_LOGIN)

    response = client.get("/api/city/3/zipcodes")

    assert response.status_code == 200
    body = response.json()
    assert body["city"] == "Atlanta"
    assert body["metroId"] == 3
    assert body["zipCodes"] == ["30301", "30302"]
    assert body["stats"]["averageOccupancy"] == 78
    assert body["stats"]["daysTo80Percent"] == 20
    assert services.directory.detail_calls == [("host@example.com", "3")]


def test_scrape_requires_login(client: TestClient) -> None:
    response = client.post("/api/scrape", json={"cityName": "Atlanta", "zipCodes": ["30301"]})

    assert response.status_code == 401


def test_scrape_rejects_empty_zip_list(client: TestClient) -> None:
    client.post("/api/login", json=GOOD_LOGIN)

    response = client.post("/api/scrape", json={"cityName": "Atlanta", "zipCodes": []})

    assert response.status_code == 400
    assert response.json()["message"] == "No zip codes selected"


def test_scrape_progress_results_and_export(client: TestClient) -> None:
    client.post("/api/login", json=GOOD_LOGIN)

    started = client.post("/api/scrape", json={"cityName": "Atlanta", "zipCodes": ["30301", "30302"]}).json()
    assert started["success"] is True
    assert started["message"] == "Started scraping 2 zip codes"
    job_id = started["jobId"]

    progress = _wait_for_completion(client, job_id)
    assert progress["status"] == "completed"
    assert progress["progressPercent"] == 100
    assert "progress" not in progress
    assert progress["completedZipCodes"] == progress["totalZipCodes"] == 2

    results = client.get(f"/api/scrape/{job_id}/results").json()
    assert results["cityName"] == "Atlanta"
    assert [r["zipCode"] for r in results["results"]] == ["30301", "30302"]
    assert results["results"][0]["city"] == "Atlanta"
    assert "daysTo80Booking" in results["results"][0]
    assert results["durationMs"] >= 0

    export = client.get(f"/api/scrape/{job_id}/export")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert 'filename="PadSplit_Atlanta_' in export.headers["content-disposition"]
    assert export.content[:2] == b"PK"


def test_export_before_completion_is_400(client: TestClient, services: WebServices) -> None:
    services.orchestrator.store.insert(
        ScrapeJob(id="scrape_pending", city_name="Atlanta", total_zip_codes=3, start_time=now_utc())
    )

    response = client.get("/api/scrape/scrape_pending/export")

    assert response.status_code == 400
    assert response.json()["message"] == "Scraping not completed yet"


def test_unknown_job_is_404(client: TestClient) -> None:
    for suffix in ("progress", "results", "export"):
        response = client.get(f"/api/scrape/scrape_missing/{suffix}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


def test_logout_clears_session(client: TestClient) -> None:
    client.post("/api/login", json=GOOD_LOGIN)
    assert client.get("/api/city/3/zipcodes").status_code == 200

    response = client.post("/api/logout")

    assert response.json() == {"success": True, "message": "Logged out"}
    assert client.get("/api/city/3/zipcodes").status_code == 401


def test_activity_log_requires_key(client: TestClient) -> None:
    assert client.get("/api/activity-log").status_code == 401
    response = client.get("/api/activity-log", params={"key": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_activity_log_empty_and_populated(client: TestClient) -> None:
    empty = client.get("/api/activity-log", params={"key": ADMIN_KEY}).json()
    assert empty == {"logs": [], "message": "No activity yet"}

    client.post("/api/login", json=GOOD_LOGIN)
    client.post("/api/login", json={"email": "host@example.com", "password": "wrong"})

    body = client.get("/api/activity-log", params={"key": ADMIN_KEY}).json()
    assert body["totalEntries"] == 2
    assert [e["action"] for e in body["logs"]] == [LOGIN_FAILED, LOGIN_SUCCESS]


def test_activity_log_disabled_without_admin_key(client: TestClient, services: WebServices) -> None:
    services.admin_key = None

    assert client.get("/api/activity-log", params={"key": ""}).status_code == 401


def test_scrape_drops_blank_zip_codes(client: TestClient) -> None:
    client.post("/api/login", json=GOOD_LOGIN)

    started = client.post("/api/scrape", json={"cityName": "Atlanta", "zipCodes": ["30301", "  "]}).json()

    assert started["message"] == "Started scraping 1 zip codes"
    progress = _wait_for_completion(client, started["jobId"])
    assert progress["totalZipCodes"] == 1
    results = client.get(f"/api/scrape/{started['jobId']}/results").json()
    assert [r["zipCode"] for r in results["results"]] == ["30301"]


@pytest.mark.parametrize(
    ("zip_codes", "message"),
    [
        (["  ", ""], "No zip codes selected"),
        (["30301", "3030"], "Invalid zip codes: 3030"),
    ],
)
def test_scrape_rejects_blank_or_malformed_zip_codes(
    client: TestClient, services: WebServices, zip_codes: list[str], message: str
) -> None:
    client.post("/api/login", json=GOOD_LOGIN)

    response = client.post("/api/scrape", json={"cityName": "Atlanta", "zipCodes": zip_codes})

    assert response.status_code == 400
    assert response.json()["message"] == message
    assert services.orchestrator.store.all() == []


def test_second_login_replaces_previous_server_session(client: TestClient, services: WebServices) -> None:
    client.post("/api/login", json=GOOD_LOGIN)
    first = next(iter(services.user_sessions._sessions))

    client.post("/api/login", json=GOOD_LOGIN)

    assert services.user_sessions.get(first) is None
    assert len(services.user_sessions._sessions) == 1
    assert client.get("/api/city/3/zipcodes").status_code == 200
