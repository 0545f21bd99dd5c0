"""Capability contract the scheduler expects from a rendering engine."""

from typing import Any, Dict, Optional, Protocol


class Page(Protocol):
    """One browser page (tab) used for a single conversion."""

    custom_headers: Optional[Dict[str, str]]

    async def open(self, uri: str) -> bool:
        """Navigate to ``uri``; return False when navigation failed."""

    async def set(self, name: str, value: Any) -> None:
        """Apply one engine-specific page option."""

    async def render(self, path: str) -> None:
        """Write the output artifact for the loaded page to ``path``."""

    async def close(self) -> None:
        """Release the page. Raising here marks the session as corrupted."""


class Session(Protocol):
    """A running engine instance."""

    async def create_page(self) -> Page:
        """Open a fresh page."""

    def exit(self) -> None:
        """Forcibly terminate the instance. Must be safe at interpreter exit."""


class Engine(Protocol):
    """Factory for worker sessions."""

    async def create_session(self, options: Dict[str, Any]) -> Session:
        """Start a new engine instance configured with ``options``."""

    async def aclose(self) -> None:
        """Release resources shared by all sessions (drivers, connections)."""
