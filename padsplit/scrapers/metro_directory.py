"""
Metro directory client.

Reads the dashboard's internal partner-insights endpoints from inside an
authenticated page, so the browser's cookies act as the API credentials.
"""
import unicodedata
from typing import Any, Dict, List

from loguru import logger
from playwright.async_api import Error as PlaywrightError

from padsplit import config
from padsplit.exceptions import AuthError, SessionError
from padsplit.models import MetroArea, MetroAreaDetail, MetroStats
from padsplit.utils.numbers import fraction_to_percent, round_half_up

# Runs in the page; returns the status alongside the body so HTTP failures are visible.
IN_PAGE_FETCH_JS = """
async (url) => {
    const res = await fetch(url, { credentials: 'include' });
    let body = null;
    try {
        body = await res.json();
    } catch (e) {
        body = null;
    }
    return { status: res.status, body };
}
"""


async def open_dashboard(page, settle_ms: int = config.DASHBOARD_SETTLE_MS) -> None:
    """Load the insights dashboard so the client-side state the endpoints need exists."""
    try:
        await page.goto(config.INSIGHTS_URL, wait_until="networkidle", timeout=config.NAVIGATION_TIMEOUT_MS)
    except PlaywrightError as exc:
        raise SessionError(f"Could not load insights dashboard: {exc}") from exc
    await page.wait_for_timeout(settle_ms)


async def fetch_json(page, url: str) -> Any:
    """Authenticated in-page GET returning the parsed JSON body."""
    try:
        response = await page.evaluate(IN_PAGE_FETCH_JS, url)
    except PlaywrightError as exc:
        raise SessionError(f"In-page fetch failed for {url}: {exc}") from exc

    status = (response or {}).get("status")
    body = (response or {}).get("body")
    if status in (401, 403):
        raise AuthError("Not authenticated with PadSplit")
    if status is None or not 200 <= status < 300:
        raise SessionError(f"Unexpected HTTP {status} from {url}")
    return body


def _name_sort_key(name: str):
    normalized = unicodedata.normalize("NFKD", name)
    stripped = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return (stripped.casefold(), name)


def parse_metro_listing(payload: Any) -> List[MetroArea]:
    """Map the listing payload to MetroArea rows sorted by name."""
    if not isinstance(payload, list):
        raise SessionError("Unexpected metro listing response")

    metros: List[MetroArea] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        metro = entry.get("metro_area") or {}
        market_type = metro.get("market_type") or ("upcoming" if entry.get("is_upcoming") else "active")
        metros.append(
            MetroArea(
                id=metro.get("id"),
                name=metro.get("name") or "Unknown",
                slug=entry.get("metro_slug"),
                market_type=market_type,
                active_properties=entry.get("active_properties_count") or 0,
                supported_zipcode_count=len(entry.get("supported_zipcodes") or []),
            )
        )

    metros.sort(key=lambda m: _name_sort_key(m.name))
    return metros


def parse_metro_detail(payload: Any) -> MetroAreaDetail:
    """Map the per-metro payload, rounding fractional stats at this boundary."""
    if not isinstance(payload, dict):
        raise SessionError("Unexpected metro detail response")

    stats = MetroStats(
        active_rooms=round_half_up(payload.get("active_rooms_count")),
        upcoming_rooms=round_half_up(payload.get("upcoming_rooms_count")),
        searches=round_half_up(payload.get("searches")),
        average_occupancy=fraction_to_percent(payload.get("average_occupancy")),
        shared_bathroom_price=round_half_up(payload.get("average_price_shared_bathroom")),
        private_bathroom_price=round_half_up(payload.get("average_price_private_bathroom")),
        days_to_first_booking=round_half_up(payload.get("days_to_first_booking")),
        days_to_80_percent=round_half_up(payload.get("days_to_fill_80_percent_occupancy")),
    )
    zip_codes = [
        str(z) if isinstance(z, (str, int)) else z
        for z in (payload.get("zip_codes_list") or [])
    ]
    return MetroAreaDetail(
        id=payload.get("id"),
        name=payload.get("name"),
        market_type=payload.get("market_type"),
        stats=stats,
        zip_codes=zip_codes,
    )


async def list_metro_areas(page) -> List[MetroArea]:
    """All markets visible to the logged-in host. Assumes ``page`` is authenticated."""
    await open_dashboard(page)
    payload = await fetch_json(page, config.METRO_LISTING_ENDPOINT)
    metros = parse_metro_listing(payload)
    logger.info("Fetched {count} metro areas", count=len(metros))
    return metros


async def get_metro_area_detail(page, metro_id: int | str) -> MetroAreaDetail:
    """Stats and zip codes for one market. Assumes ``page`` is authenticated."""
    url = config.METRO_DETAIL_ENDPOINT.format(metro_id=metro_id)
    payload = await fetch_json(page, url)
    detail = parse_metro_detail(payload)
    logger.info(
        "Fetched metro {metro_id} ({name}): {count} zip codes",
        metro_id=metro_id,
        name=detail.name,
        count=len(detail.zip_codes),
    )
    return detail


def summarize_metros(metros: List[MetroArea]) -> Dict[str, Any]:
    return {
        "citiesCount": len(metros),
        "cities": [m.model_dump(by_alias=True) for m in metros],
    }
