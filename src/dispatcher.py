import logging
from dataclasses import dataclass

from .errors import DependencyMissing, InvalidURL, MESSAGES, UnknownCaptureMode
from .modes import CaptureMode, resolve_mode
from .settings import CaptureConfig, clamp_wait_seconds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureRequest:
    """
    What the user asked for. Immutable once dispatched.

    Fields:
        url          : Target page, http(s) only.
        mode         : CaptureMode, or a raw value that the dispatcher will
                       reject as unknown.
        wait_seconds : Extra settle time for DYNAMIC captures; also the delay
                       of the "Wait + Capture" button in IFRAME mode.
    """
    url: str
    mode: CaptureMode | str
    wait_seconds: int = 0

    @classmethod
    def from_input(cls, url, mode, wait, config: CaptureConfig | None = None) -> "CaptureRequest":
        url = (url or "").strip()
        if not url:
            raise InvalidURL(MESSAGES["no_url"])
        if not url.startswith(("http://", "https://")):
            raise InvalidURL(MESSAGES["invalid_url"])

        try:
            mode = resolve_mode(mode)
        except UnknownCaptureMode:
            # Left raw on purpose; dispatch() is where unknown modes fail.
            mode = str(mode)

        return cls(url=url, mode=mode, wait_seconds=clamp_wait_seconds(wait, config))


class CaptureDispatcher:
    """
    Routes a CaptureRequest to the right capture path and shows the result.

    - IFRAME: opens the interactive capture tool and reads the live iframe;
      never touches the proxy engine
    - STATIC / DYNAMIC: one end-to-end proxy retrieval
    Both paths end in the editable document builder and the display sink.
    """

    def __init__(self, engine, builder, sink, iframe_capture, config: CaptureConfig):
        deps = {
            "engine": engine,
            "builder": builder,
            "sink": sink,
            "iframe_capture": iframe_capture,
            "config": config,
        }
        missing = [name for name, dep in deps.items() if dep is None]
        if missing:
            raise DependencyMissing(*missing)

        self.engine = engine
        self.builder = builder
        self.sink = sink
        self.iframe_capture = iframe_capture
        self.config = config

    async def dispatch(self, request: CaptureRequest) -> str:
        """Returns the editable document that was written to the sink."""
        mode = resolve_mode(request.mode)
        logger.info("Capturing %s (mode=%s, wait=%ss)", request.url, mode.value, request.wait_seconds)

        if mode is CaptureMode.IFRAME:
            html_text = await self._capture_iframe(request)
        else:
            html_text = await self.engine.fetch_through_proxies(request.url)

        editor_html = self.builder.create_editor_html(request.url, html_text, mode, request.wait_seconds)

        surface = await self.sink.open_surface(request.url)
        await self.sink.write(surface, editor_html)
        return editor_html

    async def _capture_iframe(self, request: CaptureRequest) -> str:
        session = await self.iframe_capture.open(request.url, request.wait_seconds)

        # Nobody can click the toolbar of a headless browser
        if self.config.browser_headless:
            await session.wait_until_loaded(self.config.browser_timeout_ms)
            return await session.wait_and_capture()
        return await session.wait_for_trigger()
