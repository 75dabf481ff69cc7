"""
Command-line front end: capture a page, write its editable copy, and
optionally export the edited result.

    python -m src https://example.com/ --mode dynamic --wait 3 --export page.html
"""

import argparse
import asyncio
import sys
from contextlib import AsyncExitStack
from dataclasses import replace

from .app import CaptureApp
from .capture import IframeCapture
from .dispatcher import CaptureDispatcher
from .editor import EditableDocumentBuilder
from .errors import SaveFailed
from .metrics import stats_frame
from .modes import CaptureMode
from .proxy import ProxyRetrievalEngine, make_session
from .rewriter import DocumentRewriter
from .settings import DEFAULT_CAPTURE_CONFIG, clamp_wait_seconds, load_capture_config, load_proxy_endpoints_from_txt
from .sinks import BrowserSink, FileSink
from .styles import StyleRewriter
from .surface import EditableSurface
from .urls import UrlResolver
from .utils import configure_logging


class ConsoleUi:
    """UI state collaborator backed by command-line arguments."""

    def __init__(self, url: str, mode: str, wait_seconds):
        self.url = url
        self.mode = mode
        self.wait_seconds = wait_seconds
        self.loading = False
        self.last_error: str | None = None

    def set_loading(self, loading: bool) -> None:
        if loading and not self.loading:
            print("Creating editable version...", file=sys.stderr)
        self.loading = loading

    def show_error(self, message: str) -> None:
        self.last_error = message
        print(message, file=sys.stderr)

    def hide_error(self) -> None:
        self.last_error = None


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="page-capture", description="Capture a webpage into an editable copy.")
    p.add_argument("url", help="Page to capture (http:// or https://)")
    p.add_argument("--mode", choices=[m.value for m in CaptureMode], default=CaptureMode.STATIC.value)
    p.add_argument("--wait", default=None, help="Seconds to wait before editing (dynamic) or capturing (iframe)")
    p.add_argument("--sink", choices=["file", "browser"], default="file", help="Where to show the editable copy")
    p.add_argument("--export", metavar="FILENAME", help="Also save the edited page under results/FILENAME")
    p.add_argument("--config", help="Path to a capture_config.yaml")
    p.add_argument("--endpoints", help="Text file with '<id> <template>' proxy endpoint lines")
    p.add_argument("--headful", action="store_true", help="Show the iframe capture window and wait for a click")
    p.add_argument("--stats", action="store_true", help="Print per-proxy statistics after the run")
    p.add_argument("--log-level", default=None)
    return p


async def run(args: argparse.Namespace) -> int:
    config = load_capture_config(args.config) if args.config else DEFAULT_CAPTURE_CONFIG
    configure_logging(args.log_level or config.log_level)
    if args.headful:
        config = replace(config, browser_headless=False)

    wait = args.wait if args.wait is not None else config.default_wait_s
    endpoints = load_proxy_endpoints_from_txt(args.endpoints) if args.endpoints else None

    resolver = UrlResolver()
    rewriter = DocumentRewriter(resolver, StyleRewriter(resolver))
    builder = EditableDocumentBuilder(rewriter, config)

    async with AsyncExitStack() as stack:
        session = await stack.enter_async_context(make_session())
        engine = ProxyRetrievalEngine(session, config, endpoints)

        iframe_capture = IframeCapture(config)
        if args.mode == CaptureMode.IFRAME.value:
            await stack.enter_async_context(iframe_capture)

        if args.sink == "browser":
            sink = await stack.enter_async_context(BrowserSink(config))
        else:
            sink = FileSink(config.results_path)

        ui = ConsoleUi(args.url, args.mode, wait)
        app = CaptureApp(ui, CaptureDispatcher(engine, builder, sink, iframe_capture, config), config)
        editor_html = await app.handle_fetch()

        if args.stats:
            print(stats_frame(app.get_stats()["proxy_stats"]).to_string(index=False))

        if editor_html is None:
            return 1

        if args.export:
            surface = EditableSurface(editor_html, builder.schedule_for(args.mode, clamp_wait_seconds(wait, config)))
            surface.run_to_editable()
            try:
                path = surface.save(args.export, config.results_path)
            except SaveFailed as e:
                ui.show_error(str(e))
                return 1
            print(f"Saved {path}")

        if args.sink == "browser":
            await sink.wait_closed()

    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))
