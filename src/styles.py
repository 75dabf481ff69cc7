import re

from .urls import UrlResolver

CSS_URL_RE = re.compile(r"""url\(['"]?([^'")\s]+)['"]?\)""")


class StyleRewriter:
    """
    Rewrites `url(...)` references in CSS text against a base path.

    Only document-relative references are touched. Absolute ones and
    root-relative ones ("/img/x.png") are left exactly as written, since the
    `<base>` tag inserted by the document rewriter already covers the latter.
    """

    def __init__(self, resolver: UrlResolver):
        self.resolver = resolver

    def rewrite_inline_style(self, css_text: str, base_path: str) -> str:
        def _sub(m: re.Match) -> str:
            url = m.group(1)
            if self.resolver.is_absolute(url) or url.startswith("/"):
                return m.group(0)
            return f"url('{base_path}{url}')"

        return CSS_URL_RE.sub(_sub, css_text)
