"""
Error taxonomy for the capture-and-rewrite pipeline.

Every error carries a message that is safe to show to the user as-is.
Per-endpoint proxy failures (`ProxyAttemptFailed`, `Timeout`) are normally
swallowed by the retrieval engine; everything else propagates up to
`CaptureApp.handle_fetch`, which turns it into a visible message.
"""

MESSAGES = {
    "no_url": "Please enter a valid URL",
    "invalid_url": "URL must start with http:// or https://",
    "popup_blocked": "Could not open a new tab. Please check your popup blocker settings.",
    "parse_error": "Could not parse the webpage HTML",
    "proxy_failed": "Failed to fetch the webpage content through any available proxy.",
    "cross_origin": (
        "Cross-origin restriction detected! This site cannot be captured using "
        'Interactive mode. Please try "Static Capture" or "Dynamic Capture" instead.'
    ),
    "iframe_access": "Cannot access iframe content due to cross-origin restrictions.",
    "save_failed": "Failed to save the page.",
    "capture_failed": "Error capturing page:",
    "capture_closed": "The capture window was closed before the page was captured.",
}


class CaptureError(Exception):
    """Base class for every error surfaced by this package."""


class InvalidURL(CaptureError):
    pass


class ParseError(CaptureError):
    pass


class ProxyAttemptFailed(CaptureError):
    """A single proxy endpoint answered, but not with usable content."""


class Timeout(CaptureError, TimeoutError):
    """A single proxy request ran past its deadline."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"Request timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class ProxyExhausted(CaptureError):
    """
    Every configured endpoint failed.

    `last_error` keeps the message of the last observed failure so the
    user gets at least one concrete reason.
    """

    def __init__(self, last_error: str | None = None):
        msg = MESSAGES["proxy_failed"]
        if last_error:
            msg = f"{msg} Last error: {last_error}"
        super().__init__(msg)
        self.last_error = last_error


class CrossOriginBlocked(CaptureError):
    def __init__(self, detail: str | None = None):
        super().__init__(MESSAGES["cross_origin"])
        self.detail = detail


class UnknownCaptureMode(CaptureError):
    def __init__(self, mode):
        super().__init__(f"Unknown capture type: {mode}")
        self.mode = mode


class EditorBuildError(CaptureError):
    pass


class DisplaySinkBlocked(CaptureError):
    pass


class SaveFailed(CaptureError):
    pass


class DependencyMissing(CaptureError):
    def __init__(self, *names: str):
        super().__init__(f"Missing dependencies: {', '.join(names)}")
        self.names = names
