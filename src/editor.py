import html
import json
import logging
from dataclasses import dataclass
from enum import Enum

from .editor_assets import EDITOR_SCRIPT, EDITOR_STYLES
from .errors import DependencyMissing, EditorBuildError, MESSAGES
from .modes import CaptureMode, resolve_mode
from .rewriter import DocumentRewriter, RewrittenDocument
from .settings import CaptureConfig

logger = logging.getLogger(__name__)

# Text-bearing elements that become contenteditable.
EDITABLE_TAGS = (
    "p", "h1", "h2", "h3", "h4", "h5", "h6",
    "span", "div", "a", "li", "td", "th",
    "strong", "em", "label", "button", "figcaption",
)

DISABLED_SCRIPT_TYPE = "text/disabled"
SCRIPTS_WARNING = "Enabling scripts may cause the page to change or navigate away. Continue?"
SAVE_PROMPT = "Enter filename to save as:"


class EditorPhase(str, Enum):
    LOADING = "loading"
    SETTLE_WAIT = "settle_wait"
    EXTRA_WAIT = "extra_wait"
    EDITABLE = "editable"


@dataclass(frozen=True)
class EditorSchedule:
    """
    When the editable surface changes state, counted from document load.

    LOADING -> SETTLE_WAIT -> [EXTRA_WAIT, DYNAMIC only] -> EDITABLE

    Scripts and iframes are neutralized when SETTLE_WAIT ends; elements
    become editable when EDITABLE starts.
    """
    mode: CaptureMode
    wait_seconds: int = 0
    settle_delay_ms: int = 500

    @property
    def extra_wait_ms(self) -> int:
        if self.mode is CaptureMode.DYNAMIC:
            return max(0, int(self.wait_seconds)) * 1000
        return 0

    @property
    def editable_after_ms(self) -> int:
        return self.settle_delay_ms + self.extra_wait_ms

    def phase_at(self, elapsed_ms: float | None) -> EditorPhase:
        """elapsed_ms=None means the document has not finished loading."""
        if elapsed_ms is None:
            return EditorPhase.LOADING
        if elapsed_ms < self.settle_delay_ms:
            return EditorPhase.SETTLE_WAIT
        if elapsed_ms < self.editable_after_ms:
            return EditorPhase.EXTRA_WAIT
        return EditorPhase.EDITABLE


class EditableDocumentBuilder:
    """
    Wraps a rewritten page in the editor shell: toolbar, content container,
    tooltip, editor stylesheet and the behavior script that neutralizes
    scripts/iframes and makes text editable once the page has settled.
    """

    def __init__(self, rewriter: DocumentRewriter, config: CaptureConfig):
        missing = [n for n, v in (("rewriter", rewriter), ("config", config)) if v is None]
        if missing:
            raise DependencyMissing(*missing)
        self.rewriter = rewriter
        self.config = config

    def schedule_for(self, mode, wait_seconds: int) -> EditorSchedule:
        return EditorSchedule(
            mode=resolve_mode(mode),
            wait_seconds=wait_seconds or 0,
            settle_delay_ms=self.config.settle_delay_ms,
        )

    def create_editor_html(self, source_url: str, html_text: str, mode, wait_seconds: int) -> str:
        """Rewrite raw captured HTML, then build the editable document from it."""
        rewritten = self.rewriter.rewrite(html_text, source_url)
        return self.build(source_url, rewritten, mode, wait_seconds)

    def build(self, source_url: str, doc: RewrittenDocument, mode, wait_seconds: int) -> str:
        if doc is None:
            raise EditorBuildError("Failed to create editor HTML: no rewritten document")
        for attr in ("head_markup", "body_markup", "base_path", "doctype"):
            if getattr(doc, attr, None) is None:
                raise EditorBuildError(f"Failed to create editor HTML: rewritten document has no {attr}")

        schedule = self.schedule_for(mode, wait_seconds)
        safe_url = html.escape(source_url or "")

        run_scripts_button = ""
        if schedule.mode is CaptureMode.DYNAMIC:
            run_scripts_button = (
                '<button id="run-scripts-btn" class="visual-editor-toolbar-button">Run Scripts</button>'
            )

        logger.debug(
            "Building editor for %s (mode=%s, editable after %d ms)",
            source_url, schedule.mode.value, schedule.editable_after_ms,
        )

        return f"""{doc.doctype}
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Edit: {safe_url}</title>
  {doc.head_markup}
  {self.editor_styles()}
</head>
<body>
  <div class="visual-editor-toolbar">
    <div class="visual-editor-toolbar-title">
      Editing copy of: {safe_url}
    </div>
    <div class="visual-editor-toolbar-buttons">
      <button id="save-btn" class="visual-editor-toolbar-button">Save</button>
      <button id="print-btn" class="visual-editor-toolbar-button">Print</button>
      <button id="toggle-edit-btn" class="visual-editor-toolbar-button">Toggle Edit Mode</button>
      {run_scripts_button}
    </div>
  </div>

  <div class="visual-editor-content">
    {doc.body_markup}
  </div>

  <div id="edit-tooltip" class="edit-tooltip">Click to edit</div>

  {self.editor_script(schedule)}
</body>
</html>"""

    def editor_styles(self) -> str:
        cfg = self.config
        return EDITOR_STYLES.substitute(
            toolbar_color=cfg.toolbar_color,
            hover_color=cfg.hover_color,
            focus_color=cfg.focus_color,
            toolbar_height=cfg.toolbar_height,
        )

    def editor_script(self, schedule: EditorSchedule) -> str:
        params = {
            "captureType": schedule.mode.value,
            "settleDelayMs": schedule.settle_delay_ms,
            "extraWaitMs": schedule.extra_wait_ms,
            "editableSelector": ", ".join(EDITABLE_TAGS),
            "disabledScriptType": DISABLED_SCRIPT_TYPE,
            "scriptsWarning": SCRIPTS_WARNING,
            "savePrompt": SAVE_PROMPT,
            "saveFailed": MESSAGES["save_failed"],
            "defaultFilename": self.config.default_filename,
        }
        # "</" would end the script element early
        payload = json.dumps(params).replace("</", "<\\/")
        return (
            '<script data-editor-script="true">\n'
            f"window.__pageEditorConfig = {payload};\n"
            f"{EDITOR_SCRIPT}\n"
            "</script>"
        )
