from loguru import logger
from playwright.async_api import Error as PlaywrightError

from padsplit import config
from padsplit.exceptions import AuthError, SessionError

EMAIL_SELECTOR = 'input[name="email"]'
PASSWORD_SELECTOR = 'input[name="password"]'
# The header also says "Sign in", and SSO buttons read "Sign in with Google" etc.
SIGN_IN_SELECTOR = (
    'button:has-text("Sign in")'
    ':not(:has-text("Google")):not(:has-text("Facebook")):not(:has-text("Apple"))'
)
INVALID_CREDENTIAL_MARKERS = ("Invalid", "incorrect")


async def login(page, email: str, password: str) -> bool:
    """
    Log into the PadSplit dashboard with the submitted form.

    Success is judged only by having navigated away from the login path;
    callers that need proof of access should follow up with a data fetch.

    Raises:
        AuthError: still on the login page after submitting.
        SessionError: the login page could not be loaded.
    """
    logger.info("Starting login for {email}", email=email)
    try:
        await page.goto(config.LOGIN_URL, wait_until="networkidle", timeout=config.NAVIGATION_TIMEOUT_MS)
    except PlaywrightError as exc:
        raise SessionError(f"Could not load login page: {exc}") from exc
    await page.wait_for_timeout(config.LOGIN_PAGE_SETTLE_MS)

    try:
        await page.fill(EMAIL_SELECTOR, email)
        await page.fill(PASSWORD_SELECTOR, password)
        await page.click(SIGN_IN_SELECTOR)
    except PlaywrightError as exc:
        raise SessionError(f"Login form not usable: {exc}") from exc
    await page.wait_for_timeout(config.LOGIN_SUBMIT_SETTLE_MS)

    current_url = page.url
    logger.info("After login, URL is: {url}", url=current_url)

    if config.LOGIN_PATH_MARKER in current_url:
        content = await page.text_content("body") or ""
        if any(marker in content for marker in INVALID_CREDENTIAL_MARKERS):
            raise AuthError("Invalid credentials")
        raise AuthError("Login failed - still on login page")

    logger.success("Login successful for {email}", email=email)
    return True
