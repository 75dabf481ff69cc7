import logging
from pathlib import Path
from urllib.parse import quote
from pydantic import BaseModel
from dataclasses import dataclass, fields
import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone.
_URI_COMPONENT_SAFE = "-_.!~*'()"


class ProxyEndpoint(BaseModel):
    """
    A named passthrough service used to get around cross-origin fetch limits.

    `template` must contain a single `{url}` placeholder. With `encode=True`
    the target URL is percent-encoded before substitution (query-embedded
    services), otherwise it is appended verbatim (path-suffix services).
    """
    id: str
    template: str
    encode: bool = True

    def build(self, url: str) -> str:
        target = quote(url, safe=_URI_COMPONENT_SAFE) if self.encode else url
        return self.template.replace("{url}", target)


# Order is fallback priority.
DEFAULT_PROXY_ENDPOINTS = (
    ProxyEndpoint(id="AllOrigins", template="https://api.allorigins.win/raw?url={url}"),
    ProxyEndpoint(id="CORS Proxy IO", template="https://corsproxy.io/?{url}"),
    ProxyEndpoint(id="CORS Anywhere", template="https://cors-anywhere.herokuapp.com/{url}", encode=False),
    ProxyEndpoint(id="Bridged CORS", template="https://cors.bridged.cc/{url}", encode=False),
)


def load_proxy_endpoints_from_txt(path: str) -> list[ProxyEndpoint]:
    """
    Load proxy endpoints from a text file, one `<id> <template>` per line.

    The id may contain spaces; the template is the last whitespace-separated
    token. Templates containing `{url}` right after `?` or `=` are treated as
    query-embedded and get the target URL encoded.
    Blank lines and lines starting with `#` are skipped.
    """

    p = Path(path)
    if not p.is_absolute():
        p = PROJECT_ROOT / p

    if not p.exists():
        logger.warning("Proxy endpoint file not found: %s", p)
        return []

    endpoints = []
    for ln in p.read_text(encoding="utf-8").splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#"):
            continue

        parts = ln.rsplit(None, 1)
        name, template = parts if len(parts) == 2 else ("", ln)
        name = name.strip().strip('"').strip("'")
        if not name or "{url}" not in template:
            logger.warning("Skipping malformed proxy endpoint line: %s", ln)
            continue

        encode = "?{url}" in template or "={url}" in template
        endpoints.append(ProxyEndpoint(id=name, template=template, encode=encode))

    return endpoints


@dataclass
class CaptureConfig:
    """
    Central configuration for capture behavior.

    Values can be overridden via capture_config.yaml at the project root.
    """

    # Network
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
    proxy_timeout_s: float = 30.0
    proxy_endpoints: list | None = None  # list of {id, template, encode} mappings
    log_proxy_attempts: bool = True

    # Editor timing
    settle_delay_ms: int = 500
    default_wait_s: int = 2
    max_wait_s: int = 30

    # Editor look
    toolbar_color: str = "#4a90e2"
    hover_color: str = "rgba(74, 144, 226, 0.1)"
    focus_color: str = "rgba(74, 144, 226, 0.15)"
    toolbar_height: str = "50px"

    # Output
    default_filename: str = "edited-page.html"
    results_dir: str = "results"

    # Browser (iframe capture tool and browser sink)
    browser_headless: bool = True
    browser_timeout_ms: int = 30_000
    browser_locale: str = "en-US"
    capture_interface_path: str = "/__page_capture__"

    log_level: str = "INFO"

    def endpoints(self) -> list[ProxyEndpoint]:
        if not self.proxy_endpoints:
            return list(DEFAULT_PROXY_ENDPOINTS)
        return [ProxyEndpoint(**e) for e in self.proxy_endpoints]

    @property
    def results_path(self) -> Path:
        p = Path(self.results_dir)
        return p if p.is_absolute() else PROJECT_ROOT / p


def clamp_wait_seconds(value, config: CaptureConfig | None = None) -> int:
    """
    Coerce user input into a wait time in [0, max_wait_s].

    Anything that does not parse as an integer counts as 0.
    """
    cfg = config or DEFAULT_CAPTURE_CONFIG
    try:
        seconds = int(str(value).strip())
    except (TypeError, ValueError):
        return 0
    return max(0, min(seconds, cfg.max_wait_s))


def load_capture_config(path: str | Path | None = None) -> CaptureConfig:
    """
    Load CaptureConfig from YAML if present; otherwise use defaults.

    By default, looks for `capture_config.yaml` at the project root.
    """

    if path is None:
        path = PROJECT_ROOT / "capture_config.yaml"

    path = Path(path)

    if not path.exists():
        logger.info("[config] YAML not found at %s, using defaults", path)
        return CaptureConfig()

    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        logger.warning("[config] Expected mapping in %s, got %s, using defaults", path, type(data))
        return CaptureConfig()

    allowed_keys = {f.name for f in fields(CaptureConfig)}
    filtered = {k: v for k, v in data.items() if k in allowed_keys}

    return CaptureConfig(**filtered)


DEFAULT_CAPTURE_CONFIG = load_capture_config()
