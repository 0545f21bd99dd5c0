"""Convert URIs to PDF (or images) through a single headless browser session.

Usage:
    def on_event(event, *args):
        if event.kind is EventKind.READY:
            event.target.enqueue({"uri": "https://example.com", "outfile": "/tmp/out.pdf"})
        elif event.kind is EventKind.END:
            done.set()

    async with Uri2Pdf(callback=on_event) as converter:
        await done.wait()

Events:
    ready   the worker session is running and URIs can be submitted
    render  one job finished; ``event.options`` is the job, ``event.error``
            is set on failure
    end     the queue has been drained

The callback receives every event. Returning ``CANCEL`` (False) from it
suppresses the default follow-up: no automatic queue start on ``ready``, no
advance to the next job on ``render``.
"""

import asyncio
import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Set, Union

from .engine import create_engine
from .engine.base import Engine
from .events import CANCEL, Event, EventBus, EventKind, Handler, Listener
from .executor import ConversionExecutor
from .models import ConverterConfig
from .queue import Job, JobQueue
from .session import SessionManager

logger = logging.getLogger(__name__)

JobOptions = Union[Job, Mapping[str, Any]]


class Uri2Pdf:
    """Sequential conversion queue bound to one worker session."""

    def __init__(
        self,
        config: Union[ConverterConfig, Mapping[str, Any], None] = None,
        *,
        callback: Optional[Callable[..., Optional[bool]]] = None,
        engine: Optional[Engine] = None,
        listeners: Iterable[Listener] = (),
    ):
        """Initialize converter.

        Args:
            config: ConverterConfig, equivalent mapping, or None for defaults
            callback: Receives every event with its extra arguments
            engine: Rendering engine (default: looked up from session_type)
            listeners: Foreign listeners consulted before default handlers
        """
        if config is None:
            config = ConverterConfig()
        elif not isinstance(config, ConverterConfig):
            config = ConverterConfig.from_dict(dict(config))

        self.config = config
        self.callback = callback
        self.engine = engine or create_engine(config.session_type)
        self.queue = JobQueue()

        self.events = EventBus(self)
        self.events.set_default(EventKind.READY, self.onready)
        self.events.set_default(EventKind.RENDER, self.onrender)
        self.events.set_default(EventKind.END, self.onend)
        for listener in listeners:
            self.events.add_listener(listener)

        self.sessions = SessionManager(
            self.engine,
            config.engine.launch_options,
            on_ready=lambda: self.dispatch(EventKind.READY),
        )
        self.executor = ConversionExecutor(
            self.sessions,
            config.engine.page_options,
            config.max_delay_ms,
            report=self._report,
        )
        self._tasks: Set[asyncio.Task] = set()

    async def __aenter__(self) -> "Uri2Pdf":
        try:
            await self.start()
        except BaseException:
            await self.aclose()
            raise
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    @property
    def session(self):
        return self.sessions.session

    async def start(self) -> None:
        """Start the worker session; dispatches ``ready`` when it is up."""
        await self.sessions.start_browser()

    async def aclose(self) -> None:
        """Cancel in-flight conversions, stop the session and the engine."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self.sessions.close()
        await self.engine.aclose()

    async def join(self) -> None:
        """Wait until no conversion is in flight."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    # Session control

    async def start_browser(self, callback: Optional[Callable[[], Any]] = None) -> None:
        await self.sessions.start_browser(callback)

    def stop_browser(self) -> None:
        self.sessions.stop_browser()

    async def restart_browser(self, callback: Optional[Callable[[], Any]] = None) -> None:
        await self.sessions.restart_browser(callback)

    # Events

    def dispatch(self, event: Union[Event, EventKind, str], *args: Any) -> bool:
        return self.events.dispatch(event, *args)

    def on(self, kind: Union[EventKind, str], handler: Handler) -> None:
        """Subscribe ``handler(event)`` to events of ``kind``."""
        self.events.subscribe(kind, handler)

    def off(self, kind: Union[EventKind, str], handler: Handler) -> None:
        self.events.unsubscribe(kind, handler)

    def add_listener(self, listener: Listener) -> None:
        self.events.add_listener(listener)

    def remove_listener(self, listener: Listener) -> None:
        self.events.remove_listener(listener)

    # Queue

    def enqueue(self, options: JobOptions) -> Job:
        """Queue a job and start processing if the queue is idle.

        Args:
            options: Job or mapping with ``uri``, ``outfile``, optional
                ``http.headers`` and any extra fields to pass through

        Raises:
            pydantic.ValidationError: If ``uri`` or ``outfile`` is missing
        """
        job = Job.coerce(options)
        logger.debug("Job %s: queued %s", job.job_id, job.uri)
        if self.queue.enqueue(job):
            self.next()
        return job

    def next(self) -> None:
        """Convert the next queued job, or dispatch ``end`` once drained."""
        step = self.queue.next()
        if step.job is not None:
            self._spawn(self.executor.run(step.job))
        elif step.drained:
            self.dispatch(EventKind.END)

    def convert(self, options: JobOptions) -> asyncio.Task:
        """Convert a job immediately, bypassing the queue.

        The caller is responsible for not overlapping this with queued work.
        """
        return self._spawn(self.executor.run(Job.coerce(options)))

    # Default handlers

    def onready(self, event: Event) -> Optional[bool]:
        if self.callback is not None and self.callback(event) is CANCEL:
            return CANCEL
        if not self.queue.active:
            self.next()
        return None

    def onrender(self, event: Event, job: Job) -> Optional[bool]:
        if self.callback is not None and self.callback(event, job) is CANCEL:
            return CANCEL
        self.next()
        return None

    def onend(self, event: Event) -> Optional[bool]:
        if self.callback is not None:
            return self.callback(event)
        return None

    # Internals

    def _report(self, job: Job, error: Optional[BaseException]) -> None:
        self.dispatch(Event(kind=EventKind.RENDER, options=job, error=error), job)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Conversion task failed", exc_info=error)
