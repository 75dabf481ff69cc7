"""
URL resolution used by the document rewriter.

Absolutization is plain prefix concatenation: `..` segments and duplicate
slashes are kept as they are. Rewritten documents and their tests rely on
that, so do not swap this for `urllib.parse.urljoin`.
"""

from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import InvalidURL

ABSOLUTE_PREFIXES = ("http://", "https://", "data:", "#", "javascript:")


@dataclass(frozen=True)
class ResolvedURL:
    """
    Pieces of a source URL needed to absolutize references found in it.

    protocol : scheme with trailing colon, e.g. "https:"
    host     : hostname[:port], lower-cased, without credentials
    origin   : protocol + "//" + host
    base_path: source URL up to and including the last "/" of its path
    base_url : same as origin; kept separately because callers pass it around
    """
    protocol: str
    host: str
    origin: str
    base_path: str
    base_url: str


class UrlResolver:

    def parse(self, url: str) -> ResolvedURL:
        if not isinstance(url, str) or not url.strip():
            raise InvalidURL(f"Invalid URL: {url!r}")

        url = url.strip()
        try:
            parts = urlsplit(url)
            # .port raises on garbage like "host:abc"
            parts.port
        except ValueError as e:
            raise InvalidURL(f"Invalid URL: {url}") from e

        if not parts.scheme or not parts.netloc or not parts.hostname:
            raise InvalidURL(f"Invalid URL: {url}")

        protocol = parts.scheme.lower() + ":"
        host = parts.netloc.rpartition("@")[2].lower()
        origin = f"{protocol}//{host}"

        # Query and fragment may contain "/" too; only the path counts.
        path = parts.path or "/"
        base_path = origin + path[: path.rfind("/") + 1]

        return ResolvedURL(
            protocol=protocol,
            host=host,
            origin=origin,
            base_path=base_path,
            base_url=origin,
        )

    def is_absolute(self, ref: str) -> bool:
        return ref.startswith(ABSOLUTE_PREFIXES)

    def to_absolute(self, ref: str, base_url: str, base_path: str) -> str:
        if self.is_absolute(ref):
            return ref

        if ref.startswith("/"):
            return self.parse(base_url).origin + ref
        return base_path + ref
