from pathlib import Path

from .errors import MESSAGES, SaveFailed
from .settings import DEFAULT_CAPTURE_CONFIG


def save_document(html: str, filename: str, results_dir: Path | None = None) -> Path:
    """
    Persist an HTML document as results/<filename>.

    This intentionally keeps the storage layer minimal, but centralizes
    the filesystem layout so exports and file-sink surfaces land in one place.
    """
    name = (filename or "").strip()
    if not name or "/" in name or "\\" in name or name in {".", ".."}:
        raise SaveFailed(f"{MESSAGES['save_failed']} Invalid filename: {filename!r}")

    out_dir = Path(results_dir) if results_dir is not None else DEFAULT_CAPTURE_CONFIG.results_path
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        out_path = out_dir / name
        out_path.write_text(html, encoding="utf-8")
    except OSError as e:
        raise SaveFailed(f"{MESSAGES['save_failed']} {e}") from e
    return out_path
