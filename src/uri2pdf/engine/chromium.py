"""Headless Chromium engine driven through Playwright.

Each worker session is its own Chromium process started with a DevTools
port; Playwright attaches over CDP. Owning the process directly lets
``ChromiumSession.exit()`` terminate it synchronously, which the
process-exit hook relies on.

Key Features:
- One Playwright driver shared by every session of an engine
- Process tree cleanup with psutil (SIGTERM, grace period, SIGKILL)
- Phantom-style page options mapped onto Playwright calls
- PDF or screenshot output chosen from the output file suffix
"""

import asyncio
import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import psutil
from playwright.async_api import Browser, BrowserContext, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page as PlaywrightPage
from playwright.sync_api import sync_playwright

from ..errors import SessionCreationError

logger = logging.getLogger(__name__)

_DEVTOOLS_RE = re.compile(r"DevTools listening on (ws://\S+)")

HEADLESS_ARGS = [
    "--remote-debugging-port=0",
    "--no-first-run",
    "--no-default-browser-check",
    "--disable-gpu",
    "--disable-dev-shm-usage",
    "--hide-scrollbars",
]

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg"}


def kill_process_tree(pid: int, grace_period_s: float = 2.0) -> None:
    """Terminate ``pid`` and all its descendants.

    Kill sequence:
    1. SIGTERM to every process in the tree
    2. Wait up to ``grace_period_s``
    3. SIGKILL the survivors
    """
    try:
        parent = psutil.Process(pid)
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return

    for proc in children + [parent]:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass

    _, alive = psutil.wait_procs(children + [parent], timeout=grace_period_s)
    for proc in alive:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass


def check_chromium() -> bool:
    """Verify the Playwright Chromium build is installed."""
    try:
        with sync_playwright() as pw:
            return Path(pw.chromium.executable_path).exists()
    except (PlaywrightError, OSError):
        return False


class ChromiumPage:
    """Playwright page adapted to the engine ``Page`` contract."""

    def __init__(self, context: BrowserContext, page: PlaywrightPage):
        self._context = context
        self._page = page
        self.custom_headers: Optional[Dict[str, str]] = None
        self.pdf_options: Dict[str, Any] = {}

    async def open(self, uri: str) -> bool:
        if self.custom_headers:
            await self._page.set_extra_http_headers(dict(self.custom_headers))
        try:
            # The scheduler's deadline bounds navigation, not Playwright.
            await self._page.goto(uri, wait_until="load", timeout=0)
        except PlaywrightError as e:
            logger.warning("Navigation to %s failed: %s", uri, e)
            return False
        return True

    async def set(self, name: str, value: Any) -> None:
        if name == "paperSize":
            self._set_paper_size(value or {})
        elif name == "viewportSize":
            await self._page.set_viewport_size(
                {"width": int(value["width"]), "height": int(value["height"])}
            )
        elif name == "zoomFactor":
            self.pdf_options["scale"] = float(value)
        elif name == "emulateMedia":
            await self._page.emulate_media(media=value)
        else:
            raise ValueError(f"Unsupported page option: {name}")

    def _set_paper_size(self, value: Dict[str, Any]) -> None:
        if "format" in value:
            self.pdf_options["format"] = value["format"]
        if "width" in value and "height" in value:
            self.pdf_options.pop("format", None)
            self.pdf_options["width"] = str(value["width"])
            self.pdf_options["height"] = str(value["height"])
        if "orientation" in value:
            self.pdf_options["landscape"] = value["orientation"] == "landscape"

        margin = value.get("margin")
        if isinstance(margin, dict):
            self.pdf_options["margin"] = {k: str(v) for k, v in margin.items()}
        elif margin is not None:
            self.pdf_options["margin"] = {
                side: str(margin) for side in ("top", "right", "bottom", "left")
            }

    async def render(self, path: str) -> None:
        output = Path(path)
        output.parent.mkdir(parents=True, exist_ok=True)
        suffix = output.suffix.lower()

        if suffix == ".pdf":
            await self._page.pdf(path=str(output), print_background=True, **self.pdf_options)
        elif suffix in IMAGE_SUFFIXES:
            await self._page.screenshot(path=str(output), full_page=True)
        else:
            raise ValueError(f"Unsupported output format: {output.suffix or path}")

    async def close(self) -> None:
        await self._page.close()
        await self._context.close()


class ChromiumSession:
    """One Chromium process plus its CDP connection."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        profile_dir: str,
        browser: Browser,
        kill_grace_period_s: float = 2.0,
    ):
        self.process = process
        self.profile_dir = profile_dir
        self.browser = browser
        self.kill_grace_period_s = kill_grace_period_s
        self._stderr_task: Optional[asyncio.Task] = None

    def drain_stderr(self) -> None:
        """Keep reading Chromium's stderr so the pipe never fills up."""
        self._stderr_task = asyncio.get_running_loop().create_task(
            _log_stream(self.process.stderr)
        )

    async def create_page(self) -> ChromiumPage:
        context = await self.browser.new_context()
        page = await context.new_page()
        return ChromiumPage(context, page)

    def exit(self) -> None:
        """Kill the Chromium process tree and remove the profile directory.

        Blocks the calling thread (and the event loop) for up to
        ``kill_grace_period_s`` while psutil waits for the processes to exit.
        """
        if self._stderr_task is not None and not self._stderr_task.done():
            self._stderr_task.cancel()
        logger.debug("Terminating Chromium (pid %d)", self.process.pid)
        kill_process_tree(self.process.pid, self.kill_grace_period_s)
        shutil.rmtree(self.profile_dir, ignore_errors=True)


class ChromiumEngine:
    """Starts Chromium worker sessions.

    Recognized launch options:
        executable_path: Chromium binary (default: Playwright's bundled build)
        args: Extra command line switches
        headless: Run without a window (default True)
    """

    def __init__(self, kill_grace_period_s: float = 2.0):
        self.kill_grace_period_s = kill_grace_period_s
        self._playwright = None

    async def _driver(self):
        if self._playwright is None:
            self._playwright = await async_playwright().start()
        return self._playwright

    async def create_session(self, options: Dict[str, Any]) -> ChromiumSession:
        try:
            pw = await self._driver()
            executable = options.get("executable_path") or pw.chromium.executable_path
        except (PlaywrightError, OSError) as e:
            raise SessionCreationError(f"Cannot start the Playwright driver: {e}") from e

        profile_dir = tempfile.mkdtemp(prefix="uri2pdf-chromium-")

        cmd = [executable, *HEADLESS_ARGS, f"--user-data-dir={profile_dir}"]
        if options.get("headless", True):
            cmd.append("--headless=new")
        cmd.extend(options.get("args", []))
        cmd.append("about:blank")

        logger.info("Launching Chromium: %s", executable)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            shutil.rmtree(profile_dir, ignore_errors=True)
            raise SessionCreationError(f"Cannot launch Chromium ({executable}): {e}") from e

        try:
            endpoint = await _read_devtools_endpoint(process.stderr)
            browser = await pw.chromium.connect_over_cdp(endpoint)
        except (PlaywrightError, SessionCreationError) as e:
            kill_process_tree(process.pid, self.kill_grace_period_s)
            shutil.rmtree(profile_dir, ignore_errors=True)
            if isinstance(e, SessionCreationError):
                raise
            raise SessionCreationError(f"Cannot connect to Chromium: {e}") from e

        session = ChromiumSession(process, profile_dir, browser, self.kill_grace_period_s)
        session.drain_stderr()
        logger.info("Chromium session ready (pid %d)", process.pid)
        return session

    async def aclose(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


async def _read_devtools_endpoint(stream: asyncio.StreamReader) -> str:
    while True:
        line = await stream.readline()
        if not line:
            raise SessionCreationError("Chromium exited before exposing a DevTools endpoint")
        match = _DEVTOOLS_RE.search(line.decode(errors="replace"))
        if match:
            return match.group(1)


async def _log_stream(stream: asyncio.StreamReader) -> None:
    while True:
        line = await stream.readline()
        if not line:
            return
        logger.debug("chromium: %s", line.decode(errors="replace").rstrip())
