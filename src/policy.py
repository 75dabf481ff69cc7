"""
Policy module: decides whether a proxy response counts as a successful
capture.

The logic is:
- explicit
- side-effect free
- easily auditable
"""


def is_success_status(status: int | None) -> bool:
    return status is not None and 200 <= status < 300


def failure_reason(status: int | None, reason: str | None, body: str | None) -> str | None:
    """
    Returns None when the response is usable, otherwise a short description
    of why it is not.
    """
    if status is None:
        return "No HTTP status"

    if not is_success_status(status):
        return f"HTTP {status}: {reason}" if reason else f"HTTP {status}"

    # Proxies often answer 200 with nothing in it when the upstream fetch failed
    if not body or not body.strip():
        return "Empty response received"

    return None


def is_usable_response(status: int | None, body: str | None) -> bool:
    return failure_reason(status, None, body) is None
