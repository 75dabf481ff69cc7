import json
import re

import pytest

from src.editor import EditableDocumentBuilder, EditorPhase, EditorSchedule
from src.errors import DependencyMissing, EditorBuildError, UnknownCaptureMode
from src.modes import CaptureMode
from src.rewriter import RewrittenDocument

SOURCE = "https://example.com/dir/page.html"


def rewritten(**overrides) -> RewrittenDocument:
    values = dict(
        head_markup='<base href="https://example.com/dir/"/><title>Original</title>',
        body_markup="<h1>Hello</h1><p>World</p>",
        base_path="https://example.com/dir/",
        doctype="<!DOCTYPE html>",
    )
    values.update(overrides)
    return RewrittenDocument(**values)


def embedded_config(html: str) -> dict:
    m = re.search(r"window\.__pageEditorConfig = (\{.*?\});", html)
    assert m, "editor config not embedded"
    return json.loads(m.group(1))


def test_document_starts_with_doctype(builder):
    doctype = '<!DOCTYPE html PUBLIC "-//W3C//DTD HTML 4.01//EN" "http://www.w3.org/TR/html4/strict.dtd">'
    html = builder.build(SOURCE, rewritten(doctype=doctype), CaptureMode.STATIC, 0)
    assert html.splitlines()[0] == doctype


def test_markup_is_embedded(builder):
    html = builder.build(SOURCE, rewritten(), CaptureMode.STATIC, 0)

    assert '<title>Original</title>' in html
    assert '<div class="visual-editor-content">\n    <h1>Hello</h1><p>World</p>' in html
    assert "Editing copy of: https://example.com/dir/page.html" in html
    assert 'id="save-btn"' in html and 'id="print-btn"' in html and 'id="toggle-edit-btn"' in html


def test_run_scripts_button_only_for_dynamic(builder):
    static = builder.build(SOURCE, rewritten(), "static", 3)
    dynamic = builder.build(SOURCE, rewritten(), "dynamic", 3)

    assert 'id="run-scripts-btn"' not in static
    assert 'id="run-scripts-btn"' in dynamic


def test_timing_is_embedded(builder):
    dynamic = embedded_config(builder.build(SOURCE, rewritten(), CaptureMode.DYNAMIC, 3))
    static = embedded_config(builder.build(SOURCE, rewritten(), CaptureMode.STATIC, 3))

    assert (dynamic["settleDelayMs"], dynamic["extraWaitMs"]) == (500, 3000)
    assert (static["settleDelayMs"], static["extraWaitMs"]) == (500, 0)
    assert static["editableSelector"].startswith("p, h1, h2")
    assert "figcaption" in static["editableSelector"]


def test_source_url_is_escaped(builder):
    html = builder.build('https://example.com/?q="><script>x</script>', rewritten(), "static", 0)
    assert "<script>x</script>" not in html
    assert "&lt;script&gt;" in html


def test_missing_rewritten_document_is_a_build_error(builder):
    with pytest.raises(EditorBuildError):
        builder.build(SOURCE, None, "static", 0)
    with pytest.raises(EditorBuildError):
        builder.build(SOURCE, rewritten(body_markup=None), "static", 0)


def test_unknown_mode_is_rejected(builder):
    with pytest.raises(UnknownCaptureMode):
        builder.build(SOURCE, rewritten(), "sideways", 0)


def test_create_editor_html_rewrites_first(builder):
    html = builder.create_editor_html(SOURCE, '<img src="pic.png">', "static", 0)
    assert 'src="https://example.com/dir/pic.png"' in html


def test_builder_requires_rewriter(config):
    with pytest.raises(DependencyMissing):
        EditableDocumentBuilder(None, config)


def test_dynamic_schedule_phases():
    s = EditorSchedule(CaptureMode.DYNAMIC, wait_seconds=3)

    assert s.editable_after_ms == 3500
    assert s.phase_at(None) is EditorPhase.LOADING
    assert s.phase_at(0) is EditorPhase.SETTLE_WAIT
    assert s.phase_at(499) is EditorPhase.SETTLE_WAIT
    assert s.phase_at(500) is EditorPhase.EXTRA_WAIT
    assert s.phase_at(3499) is EditorPhase.EXTRA_WAIT
    assert s.phase_at(3500) is EditorPhase.EDITABLE


def test_static_schedule_ignores_wait():
    s = EditorSchedule(CaptureMode.STATIC, wait_seconds=10)

    assert s.extra_wait_ms == 0
    assert s.phase_at(500) is EditorPhase.EDITABLE
