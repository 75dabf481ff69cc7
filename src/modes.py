from enum import Enum

from .errors import UnknownCaptureMode


class CaptureMode(str, Enum):
    IFRAME = "iframe"    # read a live same-origin iframe, no network fetch
    STATIC = "static"    # proxy fetch, editable right after settling
    DYNAMIC = "dynamic"  # proxy fetch, editable after an extra wait


def resolve_mode(value) -> CaptureMode:
    if isinstance(value, CaptureMode):
        return value
    try:
        return CaptureMode(str(value).strip().lower())
    except ValueError:
        raise UnknownCaptureMode(value) from None
