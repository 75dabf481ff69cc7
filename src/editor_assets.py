"""
Static stylesheet and behavior script embedded in every editable document.

The script reads its timing and selectors from `window.__pageEditorConfig`,
which the builder writes right before it.
"""

from string import Template

EDITOR_STYLES = Template("""<style data-editor-style="true">
.visual-editor-toolbar {
  position: fixed;
  top: 0;
  left: 0;
  right: 0;
  background-color: $toolbar_color;
  color: white;
  display: flex;
  justify-content: space-between;
  align-items: center;
  padding: 10px 20px;
  z-index: 9999;
  box-shadow: 0 2px 5px rgba(0, 0, 0, 0.2);
  font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Arial, sans-serif;
}

.visual-editor-toolbar-title {
  font-weight: bold;
  font-size: 16px;
}

.visual-editor-toolbar-buttons {
  display: flex;
  gap: 10px;
}

.visual-editor-toolbar-button {
  background-color: white;
  color: $toolbar_color;
  border: none;
  border-radius: 4px;
  padding: 5px 12px;
  font-size: 14px;
  font-weight: 600;
  cursor: pointer;
  transition: background-color 0.2s;
}

.visual-editor-toolbar-button:hover {
  background-color: #f0f0f0;
}

.visual-editor-toolbar-button:disabled {
  opacity: 0.6;
  cursor: not-allowed;
}

[contenteditable="true"] {
  outline: none;
  min-height: 1em;
}

[contenteditable="true"]:hover {
  background-color: $hover_color;
  cursor: text;
}

[contenteditable="true"]:focus {
  background-color: $focus_color;
  border-radius: 2px;
}

.visual-editor-content {
  margin-top: $toolbar_height;
  min-height: calc(100vh - $toolbar_height);
}

.edit-tooltip {
  position: absolute;
  background-color: rgba(0, 0, 0, 0.7);
  color: white;
  padding: 5px 10px;
  border-radius: 4px;
  font-size: 12px;
  pointer-events: none;
  z-index: 9990;
  display: none;
  white-space: nowrap;
}

.iframe-placeholder {
  border: 1px dashed #ccc;
  padding: 10px;
  margin: 10px 0;
  background-color: #f9f9f9;
  text-align: center;
  color: #666;
}

@media print {
  .visual-editor-toolbar,
  .edit-tooltip {
    display: none !important;
  }

  .visual-editor-content {
    margin-top: 0 !important;
  }
}
</style>""")


EDITOR_SCRIPT = """(function() {
  'use strict';

  var config = window.__pageEditorConfig || {};
  var DISABLED_TYPE = config.disabledScriptType;
  var isEditMode = true;
  var tracked = [];

  var saveBtn = document.getElementById('save-btn');
  var printBtn = document.getElementById('print-btn');
  var toggleEditBtn = document.getElementById('toggle-edit-btn');
  var runScriptsBtn = document.getElementById('run-scripts-btn');
  var editTooltip = document.getElementById('edit-tooltip');
  var editorContent = document.querySelector('.visual-editor-content');

  function init() {
    setTimeout(function() {
      fixFramesAndScripts();
      setTimeout(function() {
        makeElementsEditable(editorContent);
        addTooltipFunctionality();
      }, config.extraWaitMs || 0);
    }, config.settleDelayMs || 0);

    if (saveBtn) saveBtn.addEventListener('click', savePage);
    if (printBtn) printBtn.addEventListener('click', printPage);
    if (toggleEditBtn) toggleEditBtn.addEventListener('click', toggleEditMode);
    if (runScriptsBtn) runScriptsBtn.addEventListener('click', enablePageScripts);
  }

  function isEditorChrome(element) {
    return element.closest('.visual-editor-toolbar') || element.closest('.edit-tooltip');
  }

  function fixFramesAndScripts() {
    document.querySelectorAll('script').forEach(function(script) {
      if (script.hasAttribute('data-editor-script') || script.type === DISABLED_TYPE) {
        return;
      }
      if (script.hasAttribute('type')) {
        script.setAttribute('data-original-type', script.getAttribute('type'));
      }
      script.type = DISABLED_TYPE;
    });

    document.querySelectorAll('iframe').forEach(function(iframe) {
      var placeholder = document.createElement('div');
      placeholder.className = 'iframe-placeholder';
      var note = document.createElement('p');
      note.textContent = 'iframe content: ' + (iframe.getAttribute('src') || 'empty');
      placeholder.appendChild(note);

      iframe.parentNode.insertBefore(placeholder, iframe);
      iframe.style.display = 'none';
    });
  }

  function makeElementsEditable(container) {
    if (!container) return;

    container.querySelectorAll(config.editableSelector).forEach(function(element) {
      if (isEditorChrome(element)) return;
      if (!element.textContent.trim()) return;

      element.setAttribute('contenteditable', 'true');
      tracked.push(element);

      if (element.tagName.toLowerCase() === 'a') {
        element.addEventListener('click', function(e) {
          if (isEditMode) {
            e.preventDefault();
          }
        });
      }
    });
  }

  function addTooltipFunctionality() {
    tracked.forEach(function(element) {
      element.addEventListener('mouseover', function() {
        if (isEditMode) {
          var rect = element.getBoundingClientRect();
          editTooltip.style.top = (window.scrollY + rect.top - 30) + 'px';
          editTooltip.style.left = (rect.left + rect.width / 2 - 50) + 'px';
          editTooltip.style.display = 'block';
        }
      });
      element.addEventListener('mouseout', function() {
        editTooltip.style.display = 'none';
      });
      element.addEventListener('focus', function() {
        editTooltip.style.display = 'none';
      });
    });
  }

  function toggleEditMode() {
    isEditMode = !isEditMode;

    tracked.forEach(function(element) {
      element.setAttribute('contenteditable', isEditMode ? 'true' : 'false');
    });

    if (toggleEditBtn) {
      toggleEditBtn.textContent = isEditMode ? 'Toggle Edit Mode' : 'Enable Editing';
    }
    if (!isEditMode) {
      editTooltip.style.display = 'none';
    }
  }

  function enablePageScripts() {
    if (!confirm(config.scriptsWarning)) return;

    document.querySelectorAll('script[type="' + DISABLED_TYPE + '"]').forEach(function(script) {
      var fresh = document.createElement('script');
      Array.prototype.forEach.call(script.attributes, function(attr) {
        if (attr.name !== 'type' && attr.name !== 'data-original-type') {
          fresh.setAttribute(attr.name, attr.value);
        }
      });
      if (script.hasAttribute('data-original-type')) {
        fresh.setAttribute('type', script.getAttribute('data-original-type'));
      }
      fresh.textContent = script.textContent;
      script.parentNode.replaceChild(fresh, script);
    });

    document.querySelectorAll('iframe').forEach(function(iframe) {
      iframe.style.display = '';
      var placeholder = iframe.previousSibling;
      if (placeholder && placeholder.className === 'iframe-placeholder') {
        placeholder.parentNode.removeChild(placeholder);
      }
    });

    if (isEditMode) toggleEditMode();

    runScriptsBtn.disabled = true;
    runScriptsBtn.textContent = 'Scripts Enabled';
  }

  function docTypeString() {
    var dt = document.doctype;
    if (!dt) return '<!DOCTYPE html>';
    return '<!DOCTYPE ' + dt.name +
      (dt.publicId ? ' PUBLIC "' + dt.publicId + '"' : '') +
      (dt.systemId ? ' "' + dt.systemId + '"' : '') + '>';
  }

  function hideChrome() {
    var toolbar = document.querySelector('.visual-editor-toolbar');
    var saved = {
      toolbar: toolbar.style.display,
      tooltip: editTooltip.style.display,
      editable: tracked.map(function(el) { return el.getAttribute('contenteditable'); })
    };
    toolbar.style.display = 'none';
    editTooltip.style.display = 'none';
    tracked.forEach(function(el) { el.removeAttribute('contenteditable'); });

    return function restore() {
      toolbar.style.display = saved.toolbar;
      editTooltip.style.display = saved.tooltip;
      tracked.forEach(function(el, i) {
        if (saved.editable[i] !== null) el.setAttribute('contenteditable', saved.editable[i]);
      });
    };
  }

  function savePage() {
    try {
      var restore = hideChrome();
      var htmlContent;
      try {
        htmlContent = docTypeString() + '\\n' + document.documentElement.outerHTML;
      } finally {
        restore();
      }

      var filename = prompt(config.savePrompt, config.defaultFilename);
      if (!filename) return;

      var blob = new Blob([htmlContent], { type: 'text/html' });
      var url = URL.createObjectURL(blob);
      var a = document.createElement('a');
      a.href = url;
      a.download = filename;
      a.style.display = 'none';
      document.body.appendChild(a);
      a.click();
      document.body.removeChild(a);
      URL.revokeObjectURL(url);
    } catch (error) {
      console.error('Error saving page:', error);
      alert(config.saveFailed + ' ' + error.message);
    }
  }

  function printPage() {
    var restore = hideChrome();
    try {
      window.print();
    } finally {
      restore();
    }
  }

  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', init);
  } else {
    init();
  }
})();"""
