import asyncio

import pytest

from uri2pdf.events import EventKind


class FakePage:
    """Scripted page: behaviour per URI comes from the owning FakeEngine."""

    def __init__(self, engine, session):
        self.engine = engine
        self.session = session
        self.custom_headers = None
        self.headers_at_open = None
        self.uri = None
        self.closed = False

    async def open(self, uri):
        self.uri = uri
        self.headers_at_open = self.custom_headers
        self.engine.calls.append(("open", uri))
        behavior = self.engine.open_behavior.get(uri, True)
        if behavior == "hang":
            await asyncio.Event().wait()
        if isinstance(behavior, BaseException):
            raise behavior
        return behavior

    async def set(self, name, value):
        self.engine.calls.append(("set", name, value))
        if name in self.engine.failing_options:
            raise ValueError(f"Unsupported page option: {name}")

    async def render(self, path):
        self.engine.calls.append(("render", path))
        if self.uri in self.engine.render_hangs:
            await asyncio.Event().wait()
        self.engine.rendered.append(path)

    async def close(self):
        self.engine.calls.append(("close", self.uri))
        if self.uri in self.engine.close_fails:
            raise RuntimeError("page is wedged")
        self.closed = True
        self.engine.open_pages -= 1


class FakeSession:
    def __init__(self, engine):
        self.engine = engine
        self.exited = False
        self.pages = []

    async def create_page(self):
        await asyncio.sleep(0)
        page = FakePage(self.engine, self)
        self.pages.append(page)
        self.engine.open_pages += 1
        self.engine.max_open_pages = max(self.engine.max_open_pages, self.engine.open_pages)
        return page

    def exit(self):
        self.exited = True


class FakeEngine:
    """In-memory engine recording every call.

    Attributes:
        open_behavior: uri -> True | False | "hang" | exception
        close_fails: URIs whose page.close() raises
        render_hangs: URIs whose page.render() never completes
        create_error: Exception raised by create_session()
    """

    def __init__(self):
        self.sessions = []
        self.calls = []
        self.rendered = []
        self.open_behavior = {}
        self.close_fails = set()
        self.render_hangs = set()
        self.failing_options = set()
        self.create_error = None
        self.open_pages = 0
        self.max_open_pages = 0
        self.closed = False

    async def create_session(self, options):
        self.calls.append(("create_session", options))
        await asyncio.sleep(0)
        if self.create_error is not None:
            raise self.create_error
        session = FakeSession(self)
        self.sessions.append(session)
        return session

    async def aclose(self):
        self.closed = True


class EventLog:
    """Callback recording events; ``results`` maps kind -> value to return."""

    def __init__(self):
        self.events = []
        self.args = []
        self.results = {}
        self.ended = asyncio.Event()

    def __call__(self, event, *args):
        self.events.append(event)
        self.args.append(args)
        if event.kind is EventKind.END:
            self.ended.set()
        return self.results.get(event.kind)

    @property
    def kinds(self):
        return [e.type for e in self.events]

    @property
    def renders(self):
        return [e for e in self.events if e.kind is EventKind.RENDER]

    async def wait_end(self, timeout=2.0):
        await asyncio.wait_for(self.ended.wait(), timeout)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def event_log():
    return EventLog()
