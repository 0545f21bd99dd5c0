"""Conversion failure taxonomy.

Every per-job failure is converted into one of these exceptions and attached
to the ``render`` event for that job. Session start-up failures are the
exception: whatever the engine raises propagates to the caller of ``start()``
/ ``start_browser()``. The Chromium engine raises ``SessionCreationError``.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Failure classification carried by every conversion error."""
    CONVERSION = "conversion"   # Unexpected engine failure
    SESSION = "session"         # Worker session missing or failed to start
    NAVIGATION = "navigation"   # Target URI could not be opened
    TIMEOUT = "timeout"         # Stage exceeded max_delay_ms
    PAGE_CLOSE = "page_close"   # Page could not be closed (session corrupted)


class ConversionError(Exception):
    """Base class for uri2pdf failures."""

    kind = ErrorKind.CONVERSION

    def __init__(self, message: str, uri: Optional[str] = None):
        super().__init__(message)
        self.uri = uri


class SessionCreationError(ConversionError):
    """The rendering engine failed to start a worker session."""

    kind = ErrorKind.SESSION


class SessionUnavailableError(ConversionError):
    """A job was started while no worker session was running."""

    kind = ErrorKind.SESSION

    def __init__(self, uri: Optional[str] = None):
        super().__init__("No live worker session (call start() first)", uri)


class NavigationError(ConversionError):
    """The worker reported an unsuccessful navigation."""

    kind = ErrorKind.NAVIGATION

    def __init__(self, uri: str):
        super().__init__(f"page.open failed for {uri}", uri)


class ConversionTimeout(ConversionError):
    """A guarded conversion stage ran past the configured deadline."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, uri: str, max_delay_ms: int):
        super().__init__(f"Conversion of {uri} timed out after {max_delay_ms} ms", uri)
        self.max_delay_ms = max_delay_ms


class PageCloseError(ConversionError):
    """Closing a page failed; the worker session can no longer be trusted."""

    kind = ErrorKind.PAGE_CLOSE

    def __init__(self, uri: Optional[str] = None):
        super().__init__(f"Could not close page for {uri}", uri)
