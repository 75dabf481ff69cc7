import asyncio

import pytest

from src.editor import EditableDocumentBuilder
from src.errors import CrossOriginBlocked
from src.rewriter import DocumentRewriter
from src.settings import CaptureConfig
from src.styles import StyleRewriter
from src.urls import UrlResolver


class FakeResponse:
    """Stands in for the `async with session.get(...)` response object."""

    def __init__(self, status=200, body="", reason="OK", delay=0.0, error=None):
        self.status = status
        self.body = body
        self.reason = reason
        self.delay = delay
        self.error = error

    async def __aenter__(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def text(self, errors="strict"):
        return self.body


class FakeSession:
    """Hands out the queued responses in call order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.responses[len(self.calls) - 1]


class FakeEngine:
    def __init__(self, html="<html><body><p>Proxied</p></body></html>", error=None):
        self.html = html
        self.error = error
        self.calls = []
        self.resets = 0

    async def fetch_through_proxies(self, url):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.html

    def get_stats(self):
        return {"AllOrigins": {"attempts": len(self.calls)}}

    def reset_stats(self):
        self.resets += 1


class FakeCaptureSession:
    def __init__(self, html, cross_origin=False):
        self.html = html
        self.cross_origin = cross_origin
        self.used = []

    async def wait_until_loaded(self, timeout_ms):
        self.used.append("loaded")

    async def capture_now(self):
        self.used.append("now")
        if self.cross_origin:
            raise CrossOriginBlocked("Blocked a frame with origin")
        return self.html

    async def wait_and_capture(self):
        self.used.append("wait")
        return await self.capture_now()

    async def wait_for_trigger(self):
        self.used.append("trigger")
        return await self.capture_now()


class FakeIframeCapture:
    def __init__(self, html="<html><body><p>Framed</p></body></html>", cross_origin=False):
        self.session = FakeCaptureSession(html, cross_origin)
        self.opened = []
        self.closed = 0

    async def open(self, url, wait_seconds):
        self.opened.append((url, wait_seconds))
        return self.session

    async def close(self):
        self.closed += 1

    def is_open(self):
        return bool(self.opened) and not self.closed


class FakeSink:
    def __init__(self, error=None):
        self.error = error
        self.surfaces = []
        self.written = []

    async def open_surface(self, source_url):
        if self.error is not None:
            raise self.error
        name = f"surface-{len(self.surfaces) + 1}"
        self.surfaces.append(name)
        return name

    async def write(self, surface, html):
        self.written.append((surface, html))


class FakeUi:
    def __init__(self, url="https://example.com/dir/page.html", mode="static", wait_seconds=0):
        self.url = url
        self.mode = mode
        self.wait_seconds = wait_seconds
        self.loading_calls = []
        self.errors = []
        self.hidden = 0

    def set_loading(self, loading):
        self.loading_calls.append(loading)

    def show_error(self, message):
        self.errors.append(message)

    def hide_error(self):
        self.hidden += 1


@pytest.fixture
def config() -> CaptureConfig:
    return CaptureConfig()


@pytest.fixture
def resolver() -> UrlResolver:
    return UrlResolver()


@pytest.fixture
def rewriter(resolver) -> DocumentRewriter:
    return DocumentRewriter(resolver, StyleRewriter(resolver))


@pytest.fixture
def builder(rewriter, config) -> EditableDocumentBuilder:
    return EditableDocumentBuilder(rewriter, config)
