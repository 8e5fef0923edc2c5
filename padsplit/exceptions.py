"""Domain exceptions shared by the scrapers, services and web layer."""


class PadSplitError(Exception):
    """Base class for all PadSplit Market Insights errors."""


class AuthError(PadSplitError):
    """Raised when the dashboard login fails or the session is not authenticated."""


class SessionError(PadSplitError):
    """Raised when the browser cannot be launched or a setup navigation fails."""


class ExtractionError(PadSplitError):
    """Raised when a single zip code page cannot be loaded or read."""

    def __init__(self, zip_code: str, message: str):
        super().__init__(message)
        self.zip_code = zip_code


class NotFoundError(PadSplitError):
    """Raised when a scrape job identifier is unknown."""


class PreconditionError(PadSplitError):
    """Raised when an operation is requested in the wrong job state."""
