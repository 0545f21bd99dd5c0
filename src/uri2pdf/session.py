"""Worker session lifecycle.

The manager owns at most one live engine session. It is either STOPPED (no
session) or RUNNING (one session held). A release hook registered with
``atexit`` terminates a still-running session when the interpreter exits.
"""

import asyncio
import atexit
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .engine.base import Engine, Session

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class SessionManager:
    """Create, tear down and restart the single worker session.

    Session creation failures are not caught here: they propagate to whoever
    awaited ``start_browser()``. There is no timeout on creation.
    """

    def __init__(
        self,
        engine: Engine,
        launch_options: Optional[Dict[str, Any]] = None,
        on_ready: Optional[Callable[[], Any]] = None,
    ):
        """Initialize the manager and register the process-exit release.

        Args:
            engine: Engine used to create sessions
            launch_options: Engine start-up configuration
            on_ready: Called when a session is available and no explicit
                callback was passed to ``start_browser()``
        """
        self.engine = engine
        self.launch_options = dict(launch_options or {})
        self.on_ready = on_ready
        self.session: Optional[Session] = None
        self._lock = asyncio.Lock()
        atexit.register(self.stop_browser)

    @property
    def state(self) -> SessionState:
        return SessionState.RUNNING if self.session is not None else SessionState.STOPPED

    async def start_browser(self, callback: Optional[Callable[[], Any]] = None) -> None:
        """Start the worker session if needed, then signal readiness.

        Idempotent: when a session already exists the callback (or
        ``on_ready``) runs immediately.
        """
        async with self._lock:
            if self.session is None:
                logger.info("Starting worker session")
                try:
                    self.session = await self.engine.create_session(self.launch_options)
                except Exception:
                    logger.exception("Worker session failed to start")
                    raise

        if callback is not None:
            callback()
        elif self.on_ready is not None:
            self.on_ready()

    def stop_browser(self) -> None:
        """Forcibly terminate the worker session (no-op when stopped)."""
        session, self.session = self.session, None
        if session is not None:
            logger.info("Stopping worker session")
            session.exit()

    async def restart_browser(self, callback: Optional[Callable[[], Any]] = None) -> None:
        self.stop_browser()
        await self.start_browser(callback)

    def close(self) -> None:
        """Stop the session and drop the process-exit hook."""
        self.stop_browser()
        atexit.unregister(self.stop_browser)
