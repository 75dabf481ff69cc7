from src.styles import StyleRewriter
from src.urls import UrlResolver

BASE_PATH = "https://example.com/dir/"


def rewrite(css: str) -> str:
    return StyleRewriter(UrlResolver()).rewrite_inline_style(css, BASE_PATH)


def test_relative_url_is_prefixed_and_quoted():
    assert rewrite("background: url(bg.png)") == "background: url('https://example.com/dir/bg.png')"


def test_quoted_relative_urls_are_rewritten():
    assert rewrite("a{b:url('x.png')} c{d:url(\"y.gif\")}") == (
        "a{b:url('https://example.com/dir/x.png')} c{d:url('https://example.com/dir/y.gif')}"
    )


def test_absolute_and_root_relative_urls_pass_through():
    css = "a{b:url(https://cdn.com/x.png)} c{d:url('/img/y.png')} e{f:url(data:image/png;base64,AA)}"
    assert rewrite(css) == css


def test_text_without_urls_is_unchanged():
    assert rewrite("color: red; margin: 0") == "color: red; margin: 0"


def test_rewriting_twice_does_not_double_prefix():
    once = rewrite("background: url(bg.png)")
    assert rewrite(once) == once
