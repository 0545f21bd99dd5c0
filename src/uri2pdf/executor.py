"""Single-job conversion driver.

Drives one job through the worker session:

1. Acquire a page from the live session
2. Under the deadline: apply custom headers, open the URI
3. Apply the configured page options one by one (front to back)
4. Under a fresh deadline: render the output artifact
5. Close the page and report the outcome

Any failure closes the page and is reported as the job's error. When the page
itself cannot be closed, the worker session is restarted first and the
outcome is reported from the restart callback, so the next job always starts
on a healthy session.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, TypeVar

from .engine.base import Page
from .errors import ConversionTimeout, NavigationError, PageCloseError, SessionUnavailableError
from .models import PageOption
from .queue.models import Job
from .session import SessionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

Reporter = Callable[[Job, Optional[BaseException]], None]


class Deadline:
    """Per-job guard aborting a stage that runs past ``max_delay_ms``."""

    def __init__(self, max_delay_ms: int, uri: str):
        self.max_delay_ms = max_delay_ms
        self.uri = uri
        self.expired = False

    async def guard(self, stage: Awaitable[T]) -> T:
        """Await ``stage``; cancel it and raise ConversionTimeout when late."""
        try:
            return await asyncio.wait_for(stage, timeout=self.max_delay_ms / 1000)
        except asyncio.TimeoutError as e:
            self.expired = True
            raise ConversionTimeout(self.uri, self.max_delay_ms) from e


class ConversionExecutor:
    """Runs jobs against the session owned by ``sessions``."""

    def __init__(
        self,
        sessions: SessionManager,
        page_options: List[PageOption],
        max_delay_ms: int,
        report: Reporter,
    ):
        self.sessions = sessions
        self.page_options = list(page_options)
        self.max_delay_ms = max_delay_ms
        self.report = report

    async def run(self, job: Job) -> None:
        """Convert ``job`` and report exactly one outcome for it."""
        start_time = time.monotonic()
        page: Optional[Page] = None

        try:
            page = await self._acquire_page(job)
            deadline = Deadline(self.max_delay_ms, job.uri)
            await deadline.guard(self._open(page, job))
            await self._apply_page_options(page)
            await deadline.guard(page.render(job.outfile))

        except ConversionTimeout as e:
            logger.warning("Job %s: %s", job.job_id, e)
            await self._finish(job, page, e)

        except Exception as e:
            logger.error("Job %s: conversion of %s failed: %s", job.job_id, job.uri, e)
            await self._finish(job, page, e)

        else:
            logger.info(
                "Job %s: rendered %s to %s in %.2fs",
                job.job_id, job.uri, job.outfile, time.monotonic() - start_time,
            )
            await self._finish(job, page, None)

    async def _acquire_page(self, job: Job) -> Page:
        session = self.sessions.session
        if session is None:
            raise SessionUnavailableError(job.uri)
        return await session.create_page()

    async def _open(self, page: Page, job: Job) -> None:
        if job.http_headers:
            page.custom_headers = job.http_headers
        if not await page.open(job.uri):
            raise NavigationError(job.uri)

    async def _apply_page_options(self, page: Page) -> None:
        for option in self.page_options:
            await page.set(option.name, option.value)

    async def _close(self, page: Page, job: Job) -> None:
        try:
            await page.close()
        except Exception as e:
            raise PageCloseError(job.uri) from e

    async def _finish(self, job: Job, page: Optional[Page], error: Optional[BaseException]) -> None:
        if page is not None:
            try:
                await self._close(page, job)
            except PageCloseError as e:
                logger.error(
                    "Job %s: %s (%s); restarting worker session", job.job_id, e, e.__cause__
                )
                await self.sessions.restart_browser(lambda: self.report(job, error))
                return

        self.report(job, error)
