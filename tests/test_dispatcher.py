import asyncio
import dataclasses

import pytest

from conftest import FakeEngine, FakeIframeCapture, FakeSink, FakeUi
from src.app import CaptureApp
from src.dispatcher import CaptureDispatcher, CaptureRequest
from src.errors import (
    CrossOriginBlocked,
    DependencyMissing,
    DisplaySinkBlocked,
    InvalidURL,
    ProxyExhausted,
    UnknownCaptureMode,
)
from src.modes import CaptureMode
from src.settings import CaptureConfig

URL = "https://example.com/dir/page.html"


def make_dispatcher(builder, config=None, engine=None, iframe=None, sink=None):
    engine = engine or FakeEngine()
    iframe = iframe or FakeIframeCapture()
    sink = sink or FakeSink()
    dispatcher = CaptureDispatcher(engine, builder, sink, iframe, config or CaptureConfig())
    return dispatcher, engine, iframe, sink


def test_static_capture_goes_through_proxies(builder):
    dispatcher, engine, iframe, sink = make_dispatcher(builder)

    html = asyncio.run(dispatcher.dispatch(CaptureRequest(URL, CaptureMode.STATIC, 0)))

    assert engine.calls == [URL]
    assert iframe.opened == []
    assert sink.written == [("surface-1", html)]
    assert "<p>Proxied</p>" in html
    assert 'id="run-scripts-btn"' not in html


def test_dynamic_capture_uses_same_retrieval(builder):
    dispatcher, engine, _, _ = make_dispatcher(builder)

    html = asyncio.run(dispatcher.dispatch(CaptureRequest(URL, "dynamic", 2)))

    assert engine.calls == [URL]
    assert 'id="run-scripts-btn"' in html


def test_iframe_capture_never_touches_proxies(builder):
    dispatcher, engine, iframe, sink = make_dispatcher(builder)

    html = asyncio.run(dispatcher.dispatch(CaptureRequest(URL, CaptureMode.IFRAME, 4)))

    assert engine.calls == []
    assert iframe.opened == [(URL, 4)]
    # headless: wait for load, then the delayed capture
    assert iframe.session.used == ["loaded", "wait", "now"]
    assert "<p>Framed</p>" in html
    assert len(sink.written) == 1


def test_headful_iframe_capture_waits_for_trigger(builder):
    dispatcher, _, iframe, _ = make_dispatcher(builder, config=CaptureConfig(browser_headless=False))

    asyncio.run(dispatcher.dispatch(CaptureRequest(URL, CaptureMode.IFRAME, 0)))

    assert iframe.session.used == ["trigger", "now"]


def test_cross_origin_iframe_is_not_retried(builder):
    dispatcher, engine, iframe, sink = make_dispatcher(builder, iframe=FakeIframeCapture(cross_origin=True))

    with pytest.raises(CrossOriginBlocked):
        asyncio.run(dispatcher.dispatch(CaptureRequest(URL, CaptureMode.IFRAME, 0)))

    assert engine.calls == []
    assert iframe.session.used.count("now") == 1
    assert sink.written == []


def test_unknown_mode_fails_before_any_work(builder):
    dispatcher, engine, iframe, sink = make_dispatcher(builder)

    with pytest.raises(UnknownCaptureMode):
        asyncio.run(dispatcher.dispatch(CaptureRequest(URL, "sideways", 0)))

    assert engine.calls == [] and iframe.opened == [] and sink.surfaces == []


def test_sink_failure_propagates(builder):
    dispatcher, _, _, _ = make_dispatcher(builder, sink=FakeSink(error=DisplaySinkBlocked("blocked")))

    with pytest.raises(DisplaySinkBlocked):
        asyncio.run(dispatcher.dispatch(CaptureRequest(URL, "static", 0)))


def test_missing_collaborators_fail_at_construction(builder):
    with pytest.raises(DependencyMissing) as exc:
        CaptureDispatcher(None, builder, None, FakeIframeCapture(), CaptureConfig())
    assert exc.value.names == ("engine", "sink")


def test_request_from_input_validates_and_clamps():
    r = CaptureRequest.from_input("  https://example.com/  ", "DYNAMIC", "99")

    assert r.url == "https://example.com/"
    assert r.mode is CaptureMode.DYNAMIC
    assert r.wait_seconds == 30
    assert CaptureRequest.from_input(URL, "static", "soon").wait_seconds == 0
    assert CaptureRequest.from_input(URL, "static", -5).wait_seconds == 0
    with pytest.raises(dataclasses.FrozenInstanceError):
        r.url = "https://other.org/"


@pytest.mark.parametrize("url, message", [("", "Please enter a valid URL"), ("ftp://x.org/", "must start with http")])
def test_request_from_input_rejects_urls(url, message):
    with pytest.raises(InvalidURL) as exc:
        CaptureRequest.from_input(url, "static", 0)
    assert message in str(exc.value)


def test_request_keeps_unknown_mode_for_dispatch():
    assert CaptureRequest.from_input(URL, "sideways", 0).mode == "sideways"


def test_app_success_clears_loading(builder):
    dispatcher, engine, _, _ = make_dispatcher(builder)
    ui = FakeUi(url=URL, mode="static")
    app = CaptureApp(ui, dispatcher)

    html = asyncio.run(app.handle_fetch())

    assert html is not None
    assert ui.loading_calls == [True, False]
    assert ui.errors == []
    assert app.loading is False


def test_app_shows_error_and_clears_loading_on_failure(builder):
    dispatcher, _, _, _ = make_dispatcher(builder, engine=FakeEngine(error=ProxyExhausted("HTTP 500")))
    ui = FakeUi(url=URL, mode="static")
    app = CaptureApp(ui, dispatcher)

    assert asyncio.run(app.handle_fetch()) is None

    assert ui.loading_calls[-1] is False
    assert len(ui.errors) == 1
    assert ui.errors[0].startswith("Error: Failed to fetch the webpage content")
    assert "Last error: HTTP 500" in ui.errors[0]


def test_app_rejects_bad_url_before_dispatch(builder):
    dispatcher, engine, _, _ = make_dispatcher(builder)
    ui = FakeUi(url="example.com", mode="static")

    assert asyncio.run(CaptureApp(ui, dispatcher).handle_fetch()) is None

    assert engine.calls == []
    assert True not in ui.loading_calls
    assert ui.errors == ["Error: URL must start with http:// or https://"]


def test_app_can_retry_after_failure(builder):
    engine = FakeEngine(error=ProxyExhausted("boom"))
    dispatcher, _, _, _ = make_dispatcher(builder, engine=engine)
    ui = FakeUi(url=URL, mode="static")
    app = CaptureApp(ui, dispatcher)

    asyncio.run(app.handle_fetch())
    engine.error = None
    html = asyncio.run(app.handle_fetch())

    assert html is not None
    assert ui.hidden == 2
    assert ui.loading_calls == [True, False, True, False]


def test_app_stats_and_reset(builder):
    dispatcher, engine, iframe, _ = make_dispatcher(builder)
    ui = FakeUi(url=URL, mode="iframe")
    app = CaptureApp(ui, dispatcher)
    asyncio.run(app.handle_fetch())

    stats = app.get_stats()
    assert stats["iframe_capture_open"] is True
    assert stats["loading"] is False
    assert stats["proxy_stats"] == {"AllOrigins": {"attempts": 0}}

    asyncio.run(app.reset())

    assert iframe.closed == 1
    assert engine.resets == 1
    assert app.get_stats()["iframe_capture_open"] is False


def test_app_requires_dispatcher():
    with pytest.raises(DependencyMissing):
        CaptureApp(FakeUi(), None)
