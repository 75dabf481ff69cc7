import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup, Doctype

from .errors import DependencyMissing, MESSAGES, ParseError
from .styles import StyleRewriter
from .urls import UrlResolver

logger = logging.getLogger(__name__)

# tag -> attribute holding a resource reference
URL_ATTRIBUTES = {
    "img": "src",
    "script": "src",
    "link": "href",
    "a": "href",
    "video": "src",
    "audio": "src",
    "source": "src",
    "iframe": "src",
    "embed": "src",
    "object": "data",
    "form": "action",
}

DEFAULT_DOCTYPE = "<!DOCTYPE html>"

_DOCTYPE_RE = re.compile(
    r"""^\s*(?P<name>[^\s"]+)
        (?:\s+PUBLIC\s+"(?P<public>[^"]*)"(?:\s+"(?P<system>[^"]*)")?
          |\s+SYSTEM\s+"(?P<system_only>[^"]*)")?""",
    re.IGNORECASE | re.VERBOSE,
)


@dataclass
class RewrittenDocument:
    """
    A captured page with its resource references made absolute.

    Produced once per successful capture and handed to the editable
    document builder, which embeds the two markup halves verbatim.
    """
    head_markup: str
    body_markup: str
    base_path: str
    doctype: str = DEFAULT_DOCTYPE


def doctype_string(soup: BeautifulSoup) -> str:
    """
    Rebuild `<!DOCTYPE name [PUBLIC "publicId"] ["systemId"]>` from the
    parsed doctype node, or `<!DOCTYPE html>` when the page has none.
    """
    node = next((n for n in soup.contents if isinstance(n, Doctype)), None)
    if node is None:
        return DEFAULT_DOCTYPE

    m = _DOCTYPE_RE.match(str(node))
    if not m:
        return DEFAULT_DOCTYPE

    public_id = m.group("public")
    system_id = m.group("system") or m.group("system_only")

    out = "<!DOCTYPE " + m.group("name").lower()
    if public_id:
        out += f' PUBLIC "{public_id}"'
    if system_id:
        out += f' "{system_id}"'
    return out + ">"


class DocumentRewriter:
    """
    Turns raw captured HTML into a `RewrittenDocument`.

    Steps run in a fixed order: parse, resolve the source URL, absolutize
    the attributes in URL_ATTRIBUTES, rewrite CSS `url(...)` references,
    add a `<base>` tag, read the doctype.
    """

    def __init__(self, resolver: UrlResolver, styles: StyleRewriter):
        missing = [n for n, v in (("resolver", resolver), ("styles", styles)) if v is None]
        if missing:
            raise DependencyMissing(*missing)
        self.resolver = resolver
        self.styles = styles

    def rewrite(self, html_text: str, source_url: str) -> RewrittenDocument:
        soup = self.parse(html_text)

        resolved = self.resolver.parse(source_url)
        base_url, base_path = resolved.base_url, resolved.base_path

        self._fix_relative_urls(soup, base_url, base_path)
        self._fix_css_urls(soup, base_path)

        if soup.head.find("base") is None:
            soup.head.insert(0, soup.new_tag("base", href=base_path))

        logger.debug("Rewrote %s against base path %s", source_url, base_path)

        return RewrittenDocument(
            head_markup=soup.head.decode_contents(),
            body_markup=soup.body.decode_contents(),
            base_path=base_path,
            doctype=doctype_string(soup),
        )

    def parse(self, html_text: str) -> BeautifulSoup:
        """
        Parse HTML and make sure <html>, <head> and <body> exist, the way a
        browser DOM parser would.
        """
        if not isinstance(html_text, str):
            raise ParseError(f"{MESSAGES['parse_error']}: expected text, got {type(html_text).__name__}")

        try:
            soup = BeautifulSoup(html_text, "lxml")
        except Exception as e:
            raise ParseError(f"{MESSAGES['parse_error']}: {e}") from e

        root = soup.html
        if root is None:
            root = soup.new_tag("html")
            soup.append(root)
        if soup.head is None:
            root.insert(0, soup.new_tag("head"))
        if soup.body is None:
            root.append(soup.new_tag("body"))
        return soup

    def _fix_relative_urls(self, soup: BeautifulSoup, base_url: str, base_path: str) -> None:
        for tag_name, attr in URL_ATTRIBUTES.items():
            for el in soup.find_all(tag_name):
                value = el.get(attr)
                if value and not self.resolver.is_absolute(value):
                    el[attr] = self.resolver.to_absolute(value, base_url, base_path)

    def _fix_css_urls(self, soup: BeautifulSoup, base_path: str) -> None:
        for style in soup.find_all("style"):
            if style.string:
                style.string = self.styles.rewrite_inline_style(style.string, base_path)

        for el in soup.find_all(style=True):
            el["style"] = self.styles.rewrite_inline_style(el["style"], base_path)
