"""Rendering engine implementations."""

from .base import Engine, Page, Session
from .chromium import ChromiumEngine, check_chromium

ENGINES = {
    "chromium": ChromiumEngine,
}


def create_engine(session_type: str) -> Engine:
    """Instantiate the engine registered for ``session_type``."""
    try:
        factory = ENGINES[session_type]
    except KeyError:
        raise ValueError(
            f"Unknown session type: {session_type!r} (expected one of {sorted(ENGINES)})"
        ) from None
    return factory()


__all__ = [
    "ENGINES",
    "ChromiumEngine",
    "Engine",
    "Page",
    "Session",
    "check_chromium",
    "create_engine",
]
