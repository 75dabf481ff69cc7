import logging
from typing import Any, Protocol

from .dispatcher import CaptureDispatcher, CaptureRequest
from .errors import CaptureError, DependencyMissing
from .settings import CaptureConfig, DEFAULT_CAPTURE_CONFIG

logger = logging.getLogger(__name__)


class UiState(Protocol):
    """What the capture form reports and how it shows progress/errors."""

    url: str
    mode: Any
    wait_seconds: Any

    def set_loading(self, loading: bool) -> None: ...

    def show_error(self, message: str) -> None: ...

    def hide_error(self) -> None: ...


class CaptureApp:
    """
    Ties the UI state to the dispatcher.

    Whatever happens during a capture, the loading indicator is cleared
    afterwards, so a new attempt can always be started.
    """

    def __init__(self, ui: UiState, dispatcher: CaptureDispatcher, config: CaptureConfig | None = None):
        missing = [n for n, v in (("ui", ui), ("dispatcher", dispatcher)) if v is None]
        if missing:
            raise DependencyMissing(*missing)
        self.ui = ui
        self.dispatcher = dispatcher
        self.config = config or DEFAULT_CAPTURE_CONFIG
        self.loading = False

    async def handle_fetch(self) -> str | None:
        """
        Run one capture from the current UI state.

        Returns the editable document, or None when the capture failed and
        an error was shown instead.
        """
        try:
            request = CaptureRequest.from_input(
                self.ui.url, self.ui.mode, self.ui.wait_seconds, self.config
            )
            self.ui.hide_error()
            self._set_loading(True)
            return await self.dispatcher.dispatch(request)
        except CaptureError as e:
            logger.error("Capture failed: %s", e)
            self.ui.show_error(f"Error: {e}")
            return None
        finally:
            self._set_loading(False)

    def _set_loading(self, loading: bool) -> None:
        self.loading = loading
        self.ui.set_loading(loading)

    def get_stats(self) -> dict:
        return {
            "proxy_stats": self.dispatcher.engine.get_stats(),
            "iframe_capture_open": self.dispatcher.iframe_capture.is_open(),
            "loading": self.loading,
        }

    async def reset(self) -> None:
        self._set_loading(False)
        self.ui.hide_error()
        await self.dispatcher.iframe_capture.close()
        self.dispatcher.engine.reset_stats()
        logger.debug("Application state reset")
