"""
Per-zip-code extraction from the market insights dashboard.

The dashboard renders city-wide figures and the zip-specific figures on the
same page, so parsing is restricted to the window that follows the
"Postal code XXXXX" heading whenever that heading is present.
"""
from dataclasses import dataclass
from urllib.parse import urlencode

from loguru import logger
from playwright.async_api import Error as PlaywrightError

from padsplit import config
from padsplit.exceptions import ExtractionError
from padsplit.models import ZipRecord, ZipStatus
from padsplit.scrapers.parsing_policy import DEFAULT_POLICY, ParsingPolicy


@dataclass(frozen=True)
class ZipSection:
    text: str
    found: bool
    # Length of the "Postal code XXXXX" heading at the start of ``text`` (0 when not found)
    header_length: int = 0

    @property
    def body(self) -> str:
        """Section text after the heading, so the zip code itself is never read as a figure."""
        return self.text[self.header_length:]


def zip_url(zip_code: str) -> str:
    return f"{config.INSIGHTS_URL}?{urlencode({'zip': zip_code})}"


def locate_zip_section(text: str, zip_code: str, policy: ParsingPolicy = DEFAULT_POLICY) -> ZipSection:
    """Fixed-length window starting at the zip heading, or the whole text if absent."""
    match = policy.section_pattern(zip_code).search(text)
    if not match:
        return ZipSection(text=text, found=False)
    start = match.start()
    return ZipSection(
        text=text[start:start + policy.section_window],
        found=True,
        header_length=match.end() - start,
    )


def parse_zip_section(section: ZipSection, zip_code: str, policy: ParsingPolicy = DEFAULT_POLICY) -> ZipRecord:
    body = section.body
    values = {rule.field: rule.extract(body) for rule in policy.fields}
    record = ZipRecord(zip_code=zip_code, **values)

    if record.active_units is None and record.upcoming_units is None:
        if policy.rules.is_no_data(body):
            record.status = ZipStatus.NO_DATA
        elif policy.rules.is_zero_active(body):
            record.status = ZipStatus.NO_ACTIVE
            record.active_units = 0

    return record


def parse_zip_text(text: str, zip_code: str, policy: ParsingPolicy = DEFAULT_POLICY) -> ZipRecord:
    """Pure parse of a rendered page's text into a ZipRecord."""
    return parse_zip_section(locate_zip_section(text, zip_code, policy), zip_code, policy)


async def extract_zip_code(
    page,
    zip_code: str,
    policy: ParsingPolicy = DEFAULT_POLICY,
    settle_ms: int = config.ZIP_PAGE_SETTLE_MS,
) -> ZipRecord:
    """
    Load the dashboard filtered to ``zip_code`` and parse its figures.

    Raises:
        ExtractionError: navigation timed out or the page text could not be read.
    """
    url = zip_url(zip_code)
    log = logger.bind(zip_code=zip_code)
    log.info("Loading zip {zip_code}...", zip_code=zip_code)

    try:
        await page.goto(url, wait_until="networkidle", timeout=config.NAVIGATION_TIMEOUT_MS)
        # Charts and copy render after the network goes idle
        await page.wait_for_timeout(settle_ms)
        full_text = await page.text_content("body") or ""
    except PlaywrightError as exc:
        raise ExtractionError(zip_code, f"Failed to load zip {zip_code}: {exc}") from exc

    section = locate_zip_section(full_text, zip_code, policy)
    if section.found:
        log.debug("Found zip-specific section for {zip_code}", zip_code=zip_code)
    else:
        log.warning(
            "No 'Postal code {zip_code}' section found on {url} - login may have lapsed; parsing whole page",
            zip_code=zip_code,
            url=page.url,
        )

    record = parse_zip_section(section, zip_code, policy)
    log.info(
        "Zip {zip_code}: status={status} active={active} upcoming={upcoming}",
        zip_code=zip_code,
        status=record.status.value,
        active=record.active_units,
        upcoming=record.upcoming_units,
    )
    return record
