import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urlsplit

from playwright.async_api import Error as PlaywrightError, async_playwright

from .errors import DisplaySinkBlocked, MESSAGES, SaveFailed
from .settings import CaptureConfig
from .storage import save_document

logger = logging.getLogger(__name__)


class DisplaySink(Protocol):
    """Somewhere a finished editable document can be shown."""

    async def open_surface(self, source_url: str) -> Any: ...

    async def write(self, surface: Any, html: str) -> None: ...


def surface_filename(source_url: str, now: datetime | None = None) -> str:
    host = urlsplit(source_url).hostname or "page"
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S-%f")
    return f"{host.replace('.', '_')}-{stamp}.html"


class FileSink:
    """Each surface is a new HTML file under the results directory."""

    def __init__(self, results_dir: Path):
        self.results_dir = Path(results_dir)
        self.written: list[Path] = []

    async def open_surface(self, source_url: str) -> str:
        try:
            self.results_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DisplaySinkBlocked(f"{MESSAGES['popup_blocked']}: {e}") from e
        return surface_filename(source_url)

    async def write(self, surface: str, html: str) -> None:
        try:
            path = save_document(html, surface, self.results_dir)
        except SaveFailed as e:
            raise DisplaySinkBlocked(f"Failed to write to document: {e}") from e
        self.written.append(path)
        logger.info("Wrote editable document to %s", path)


class BrowserSink:
    """
    Shows each surface in a new tab of a visible Chromium window.

    Pages stay open until the sink is closed, so the user can keep editing.
    """

    def __init__(self, config: CaptureConfig):
        self.config = config
        self._playwright = None
        self._browser = None
        self._context = None

    async def __aenter__(self):
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=False)
        self._context = await self._browser.new_context(locale=self.config.browser_locale)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()

    async def open_surface(self, source_url: str):
        if self._context is None:
            raise DisplaySinkBlocked(MESSAGES["popup_blocked"])
        try:
            return await self._context.new_page()
        except PlaywrightError as e:
            raise DisplaySinkBlocked(f"{MESSAGES['popup_blocked']}: {e}") from e

    async def write(self, surface, html: str) -> None:
        try:
            await surface.set_content(html, timeout=self.config.browser_timeout_ms, wait_until="domcontentloaded")
        except PlaywrightError as e:
            raise DisplaySinkBlocked(f"Failed to write to document: {e}") from e

    async def wait_closed(self) -> None:
        """Block until the user has closed every editor tab."""
        if self._context is None:
            return
        for page in list(self._context.pages):
            if not page.is_closed():
                await page.wait_for_event("close", timeout=0)
