"""
Python model of the editable surface.

Mirrors what the embedded behavior script does in a browser, on a parsed
copy of the built document: neutralizing scripts and iframes after the
settle delay, marking text editable once the schedule allows it, toggling
edit mode, re-enabling scripts, and producing the Save/Print output.
Used for headless exports.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable

from bs4 import BeautifulSoup, Tag
from bs4.element import NavigableString, Script, Stylesheet

from .editor import (
    DISABLED_SCRIPT_TYPE,
    EDITABLE_TAGS,
    SCRIPTS_WARNING,
    EditorPhase,
    EditorSchedule,
)
from .errors import MESSAGES, SaveFailed
from .rewriter import doctype_string
from .storage import save_document

logger = logging.getLogger(__name__)

# Strings a browser counts in textContent; bs4 leaves script and style text out by default.
TEXT_CONTENT_TYPES = (NavigableString, Script, Stylesheet)


def _set_display(tag: Tag, value: str) -> None:
    decls = [d.strip() for d in (tag.get("style") or "").split(";") if d.strip()]
    decls = [d for d in decls if d.split(":", 1)[0].strip().lower() != "display"]
    if value:
        decls.append(f"display: {value}")
    if decls:
        tag["style"] = "; ".join(decls) + ";"
    elif tag.has_attr("style"):
        del tag["style"]


class EditableSurface:

    def __init__(self, html_text: str, schedule: EditorSchedule):
        self.soup = BeautifulSoup(html_text, "lxml")
        self.schedule = schedule
        self.phase = EditorPhase.LOADING
        self.edit_mode = True
        self.tracked: list[Tag] = []
        self._neutralized = False
        self._editable = False

    # -- lifecycle --------------------------------------------------------

    def load(self) -> EditorPhase:
        return self.advance_to(0)

    def advance_to(self, elapsed_ms: float) -> EditorPhase:
        """Apply every transition due by `elapsed_ms` after load."""
        phase = self.schedule.phase_at(elapsed_ms)

        if phase in (EditorPhase.EXTRA_WAIT, EditorPhase.EDITABLE) and not self._neutralized:
            self._fix_frames_and_scripts()
        if phase is EditorPhase.EDITABLE and not self._editable:
            self._make_elements_editable()

        self.phase = phase
        return phase

    def run_to_editable(self) -> EditorPhase:
        return self.advance_to(self.schedule.editable_after_ms)

    def _fix_frames_and_scripts(self) -> None:
        for script in self.soup.find_all("script"):
            if script.has_attr("data-editor-script") or script.get("type") == DISABLED_SCRIPT_TYPE:
                continue
            if script.has_attr("type"):
                script["data-original-type"] = script["type"]
            script["type"] = DISABLED_SCRIPT_TYPE

        for iframe in self.soup.find_all("iframe"):
            placeholder = self.soup.new_tag("div", attrs={"class": "iframe-placeholder"})
            note = self.soup.new_tag("p")
            note.string = f"iframe content: {iframe.get('src') or 'empty'}"
            placeholder.append(note)
            iframe.insert_before(placeholder)
            _set_display(iframe, "none")

        self._neutralized = True

    def _make_elements_editable(self) -> None:
        container = self.soup.select_one(".visual-editor-content")
        self._editable = True
        if container is None:
            return

        for el in container.find_all(list(EDITABLE_TAGS)):
            if el.find_parent(class_="visual-editor-toolbar") or el.find_parent(class_="edit-tooltip"):
                continue
            if not el.get_text(types=TEXT_CONTENT_TYPES).strip():
                continue
            el["contenteditable"] = "true"
            self.tracked.append(el)

        logger.debug("Marked %d elements editable", len(self.tracked))

    # -- toolbar actions --------------------------------------------------

    def toggle_edit(self) -> bool:
        self.edit_mode = not self.edit_mode
        value = "true" if self.edit_mode else "false"
        for el in self.tracked:
            el["contenteditable"] = value

        button = self.soup.find(id="toggle-edit-btn")
        if button is not None:
            button.string = "Toggle Edit Mode" if self.edit_mode else "Enable Editing"
        tooltip = self._tooltip()
        if not self.edit_mode and tooltip is not None:
            _set_display(tooltip, "none")
        return self.edit_mode

    def allows_navigation(self, anchor: Tag) -> bool:
        """Clicks on tracked links are swallowed while edit mode is on."""
        return not (self.edit_mode and any(a is anchor for a in self.tracked))

    def run_scripts(self, confirm: Callable[[str], bool]) -> bool:
        """
        Restore neutralized scripts and hidden iframes (dynamic captures only).

        Captured scripts run with full trust once the user confirms; there is
        no sandbox. Returns False when there is nothing to do or the user
        declined.
        """
        button = self.soup.find(id="run-scripts-btn")
        if button is None or button.has_attr("disabled"):
            return False
        if not confirm(SCRIPTS_WARNING):
            return False

        for script in self.soup.find_all("script", attrs={"type": DISABLED_SCRIPT_TYPE}):
            attrs = {k: v for k, v in script.attrs.items() if k not in ("type", "data-original-type")}
            if script.has_attr("data-original-type"):
                attrs["type"] = script["data-original-type"]
            fresh = self.soup.new_tag("script", attrs=attrs)
            if script.string:
                fresh.string = script.string
            script.replace_with(fresh)

        for iframe in self.soup.find_all("iframe"):
            _set_display(iframe, "")
            prev = iframe.previous_sibling
            if isinstance(prev, Tag) and "iframe-placeholder" in (prev.get("class") or []):
                prev.decompose()

        if self.edit_mode:
            self.toggle_edit()

        button["disabled"] = ""
        button.string = "Scripts Enabled"
        return True

    @contextmanager
    def _hidden_chrome(self):
        toolbar = self.soup.select_one(".visual-editor-toolbar")
        tooltip = self._tooltip()
        saved_styles = [(t, t.get("style")) for t in (toolbar, tooltip) if t is not None]
        saved_editable = [(el, el.get("contenteditable")) for el in self.tracked]

        for t, _ in saved_styles:
            _set_display(t, "none")
        for el in self.tracked:
            if el.has_attr("contenteditable"):
                del el["contenteditable"]
        try:
            yield
        finally:
            for t, style in saved_styles:
                if style is None:
                    if t.has_attr("style"):
                        del t["style"]
                else:
                    t["style"] = style
            for el, value in saved_editable:
                if value is not None:
                    el["contenteditable"] = value

    def serialize(self) -> str:
        """Save output: doctype line plus the page with editor chrome hidden."""
        try:
            with self._hidden_chrome():
                return doctype_string(self.soup) + "\n" + str(self.soup.html)
        except Exception as e:
            raise SaveFailed(f"{MESSAGES['save_failed']} {e}") from e

    def save(self, filename: str, results_dir: Path | None = None) -> Path:
        path = save_document(self.serialize(), filename, results_dir)
        logger.info("Saved edited page to %s", path)
        return path

    def print_view(self, printer: Callable[[str], None]) -> None:
        with self._hidden_chrome():
            printer(str(self.soup.html))

    def markup(self) -> str:
        return str(self.soup)

    def _tooltip(self) -> Tag | None:
        return self.soup.find(id="edit-tooltip")
