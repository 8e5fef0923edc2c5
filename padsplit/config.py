"""
PadSplit Market Insights configuration.

Module-level settings; values that differ between deployments are read from
the environment at import time.
"""

import os
import secrets
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Target site
BASE_URL = os.getenv("PADSPLIT_BASE_URL", "https://www.padsplit.com").rstrip("/")
LOGIN_URL = f"{BASE_URL}/login"
LOGIN_PATH_MARKER = "/login"
INSIGHTS_URL = f"{BASE_URL}/hosts/market-insights"
METRO_LISTING_ENDPOINT = f"{BASE_URL}/api/partner/insights/"
METRO_DETAIL_ENDPOINT = f"{BASE_URL}/api/partner/insights/metro_area/{{metro_id}}/"

# Browser
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
HEADLESS = _env_bool("PADSPLIT_HEADLESS", True)
USE_STEALTH = _env_bool("PADSPLIT_STEALTH", False)

# Timeouts and settle delays (milliseconds)
NAVIGATION_TIMEOUT_MS = 60_000
LOGIN_PAGE_SETTLE_MS = 2_000
LOGIN_SUBMIT_SETTLE_MS = 5_000
DASHBOARD_SETTLE_MS = 3_000
ZIP_PAGE_SETTLE_MS = 3_000
INTER_REQUEST_DELAY_MS = _env_int("PADSPLIT_REQUEST_DELAY_MS", 1_000)

# Zip-specific text region following "Postal code XXXXX"
ZIP_SECTION_WINDOW = 800

# Web
SESSION_SECRET = os.getenv("PADSPLIT_SESSION_SECRET") or secrets.token_hex(32)
SESSION_MAX_AGE_SECONDS = 3600
SECURE_COOKIES = os.getenv("PADSPLIT_ENV", "development") == "production"
# No key configured means the activity log endpoint always refuses.
ADMIN_KEY = os.getenv("PADSPLIT_ADMIN_KEY") or None
WEB_HOST = os.getenv("PADSPLIT_HOST", "0.0.0.0")  # noqa: S104
WEB_PORT = _env_int("PORT", 3000)

# Files
ACTIVITY_LOG_PATH = Path(os.getenv("PADSPLIT_ACTIVITY_LOG", str(PROJECT_ROOT / "activity.log")))
EXPORT_DIR = Path(os.getenv("PADSPLIT_EXPORT_DIR", "exports"))
