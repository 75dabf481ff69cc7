import asyncio
import html
import json
import logging
from urllib.parse import urlsplit

from playwright.async_api import Error as PlaywrightError, async_playwright

from .errors import CaptureError, CrossOriginBlocked, DisplaySinkBlocked, MESSAGES
from .settings import CaptureConfig

logger = logging.getLogger(__name__)

CAPTURE_STYLES = """
body, html { margin: 0; padding: 0; height: 100%; font-family: Arial, sans-serif; }
.toolbar { position: fixed; top: 0; left: 0; right: 0; background: #4a90e2; color: white; padding: 10px 20px; z-index: 9999; display: flex; justify-content: space-between; align-items: center; }
.toolbar-title { font-weight: bold; font-size: 16px; }
.toolbar-info { font-size: 14px; }
.toolbar-buttons { display: flex; gap: 10px; }
.btn { background: white; color: #4a90e2; border: none; border-radius: 4px; padding: 5px 12px; font-size: 14px; font-weight: 600; cursor: pointer; }
.btn:hover { background: #f0f0f0; }
.btn:disabled { opacity: 0.6; cursor: not-allowed; }
iframe { width: 100%; height: calc(100vh - 50px); border: none; margin-top: 50px; }
.loading { position: fixed; top: 50%; left: 50%; transform: translate(-50%, -50%); background: rgba(0,0,0,0.7); color: white; padding: 20px; border-radius: 8px; text-align: center; z-index: 9998; }
.error { position: fixed; top: 60px; left: 20px; right: 20px; background: #ff4444; color: white; padding: 15px; border-radius: 5px; z-index: 9997; display: none; }
.success { position: fixed; top: 60px; right: 20px; background: #4CAF50; color: white; padding: 15px; border-radius: 5px; z-index: 9997; display: none; }
"""

# Runs in the capture page. Reading a cross-origin iframe either yields a
# null contentDocument or throws a SecurityError.
READ_IFRAME_JS = """() => {
  const iframe = document.getElementById('capture-iframe');
  const doc = iframe.contentDocument || (iframe.contentWindow && iframe.contentWindow.document);
  if (!doc || !doc.documentElement) {
    throw new Error('Cannot access iframe content due to cross-origin restrictions.');
  }
  const dt = doc.doctype;
  const doctype = dt
    ? '<!DOCTYPE ' + dt.name + (dt.publicId ? ' PUBLIC "' + dt.publicId + '"' : '') + (dt.systemId ? ' "' + dt.systemId + '"' : '') + '>'
    : '<!DOCTYPE html>';
  return doctype + '\\n' + doc.documentElement.outerHTML;
}"""

CROSS_ORIGIN_MARKERS = ("cross-origin", "blocked a frame", "securityerror")

TRIGGER_BINDING = "pageCaptureTrigger"


def capture_interface_html(url: str, wait_seconds: int) -> str:
    safe_url = html.escape(url)
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Capturing: {safe_url}</title>
  <style>{CAPTURE_STYLES}</style>
</head>
<body>
  <div class="toolbar">
    <div>
      <div class="toolbar-title">Capturing: {safe_url}</div>
      <div class="toolbar-info">Wait for the page to load, then click "Capture Now"</div>
    </div>
    <div class="toolbar-buttons">
      <button class="btn" id="capture-btn">Capture Now</button>
      <button class="btn" id="wait-btn">Wait + Capture</button>
    </div>
  </div>
  <div class="loading" id="loading-message"><div>Loading page, please wait...</div></div>
  <div class="error" id="error-msg"></div>
  <div class="success" id="success-msg"></div>
  <iframe id="capture-iframe" src="{safe_url}"></iframe>
  <script>
    const waitTime = {json.dumps(int(wait_seconds))};
    const iframe = document.getElementById('capture-iframe');
    const waitBtn = document.getElementById('wait-btn');
    iframe.addEventListener('load', () => {{
      document.getElementById('loading-message').style.display = 'none';
    }});
    document.getElementById('capture-btn').addEventListener('click', () => {{
      window.{TRIGGER_BINDING}(false);
    }});
    waitBtn.addEventListener('click', () => {{
      waitBtn.disabled = true;
      waitBtn.textContent = 'Waiting (' + waitTime + 's)...';
      window.{TRIGGER_BINDING}(true);
    }});
    window.showCaptureMessage = (id, message, ms) => {{
      const el = document.getElementById(id);
      el.textContent = message;
      el.style.display = 'block';
      setTimeout(() => {{ el.style.display = 'none'; }}, ms);
    }};
  </script>
</body>
</html>"""


class IframeCaptureSession:
    """
    One open capture window: a page served on the target's origin that
    embeds the target in an iframe and reads it directly on demand.
    """

    def __init__(self, page, url: str, wait_seconds: int):
        self.page = page
        self.url = url
        self.wait_seconds = wait_seconds
        self._trigger: asyncio.Future | None = None

    async def install_trigger(self) -> None:
        loop = asyncio.get_running_loop()
        self._trigger = loop.create_future()

        def on_trigger(delayed):
            if not self._trigger.done():
                self._trigger.set_result(bool(delayed))

        await self.page.expose_function(TRIGGER_BINDING, on_trigger)

    @property
    def is_open(self) -> bool:
        return self.page is not None and not self.page.is_closed()

    async def capture_now(self) -> str:
        try:
            content = await self.page.evaluate(READ_IFRAME_JS)
        except PlaywrightError as e:
            msg = str(e)
            if any(marker in msg.lower() for marker in CROSS_ORIGIN_MARKERS):
                await self._notify("error-msg", MESSAGES["cross_origin"], 5000)
                raise CrossOriginBlocked(msg) from e
            await self._notify("error-msg", f"{MESSAGES['capture_failed']} {msg}", 5000)
            raise CaptureError(f"{MESSAGES['capture_failed']} {msg}") from e

        await self._notify("success-msg", "Editable copy created successfully!", 3000)
        return content

    async def wait_until_loaded(self, timeout_ms: int) -> None:
        """Wait for the embedded page to finish loading; give up quietly on timeout."""
        try:
            await self.page.wait_for_load_state("load", timeout=timeout_ms)
        except PlaywrightError as e:
            logger.warning("Capture page did not finish loading: %s", e)

    async def wait_and_capture(self) -> str:
        await asyncio.sleep(self.wait_seconds)
        return await self.capture_now()

    async def wait_for_trigger(self) -> str:
        """
        Block until a toolbar button is clicked, then capture.

        Closing the capture window instead raises DisplaySinkBlocked.
        """
        if not self.is_open:
            raise DisplaySinkBlocked(MESSAGES["capture_closed"])
        if self._trigger is None:
            await self.install_trigger()

        closed = asyncio.ensure_future(self._wait_closed())
        try:
            await asyncio.wait({self._trigger, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
        if not self._trigger.done():
            raise DisplaySinkBlocked(MESSAGES["capture_closed"])

        delayed = self._trigger.result()
        self._trigger = asyncio.get_running_loop().create_future()
        return await (self.wait_and_capture() if delayed else self.capture_now())

    async def close(self) -> None:
        if self.is_open:
            await self.page.close()
        self.page = None

    async def _wait_closed(self) -> None:
        try:
            await self.page.wait_for_event("close", timeout=0)
        except PlaywrightError as e:
            # the page is gone either way
            logger.debug("Capture window went away: %s", e)

    async def _notify(self, element_id: str, message: str, ms: int) -> None:
        try:
            await self.page.evaluate(
                "([id, message, ms]) => window.showCaptureMessage && window.showCaptureMessage(id, message, ms)",
                [element_id, message, ms],
            )
        except PlaywrightError:
            logger.debug("Could not show capture message %r", message)


class IframeCapture:
    """
    Interactive capture tool backed by Playwright.

    - Uses single browser instance per context manager (__aenter__/__aexit__)
    - Serves the capture interface on the target's own origin by routing a
      reserved path, so same-origin targets can be read through the iframe
    - Honors headless/locale/user agent from CaptureConfig
    """

    name = "iframe"

    def __init__(self, config: CaptureConfig):
        self.config = config

        self._playwright = None
        self._browser = None
        self._context = None
        self.session: IframeCaptureSession | None = None

    async def __aenter__(self):
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.config.browser_headless)
        self._context = await self._browser.new_context(
            user_agent=self.config.user_agent,
            locale=self.config.browser_locale,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()

    def interface_url(self, url: str) -> str:
        parts = urlsplit(url)
        return f"{parts.scheme}://{parts.netloc}{self.config.capture_interface_path}"

    async def open(self, url: str, wait_seconds: int) -> IframeCaptureSession:
        if self._context is None:
            raise DisplaySinkBlocked(f"{MESSAGES['popup_blocked']}: capture browser is not running")

        logger.info("Opening iframe capture tool for %s", url)
        await self.close()

        interface = capture_interface_html(url, wait_seconds)
        interface_url = self.interface_url(url)

        async def serve_interface(route):
            await route.fulfill(status=200, content_type="text/html; charset=utf-8", body=interface)

        page = None
        try:
            page = await self._context.new_page()
            await page.route(interface_url, serve_interface)
            session = IframeCaptureSession(page, url, wait_seconds)
            await session.install_trigger()
            await page.goto(interface_url, timeout=self.config.browser_timeout_ms, wait_until="domcontentloaded")
        except PlaywrightError as e:
            if page is not None and not page.is_closed():
                await page.close()
            raise DisplaySinkBlocked(f"{MESSAGES['popup_blocked']}: {e}") from e

        self.session = session
        return session

    async def close(self) -> None:
        if self.session is not None:
            await self.session.close()
        self.session = None

    def is_open(self) -> bool:
        return self.session is not None and self.session.is_open
