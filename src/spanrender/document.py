"""JSON diagnostics documents for the command-line host.

A document lists diagnostics whose labels name files by path, relative to
the document's directory, or by a key of the optional ``sources`` table::

    {
      "sources": {"<stdin>": "let x = 1\\n"},
      "diagnostics": [
        {
          "severity": "error",
          "code": "E001",
          "message": "type mismatch",
          "labels": [
            {"file": "main.fun", "start": 12, "end": 15,
             "message": "expected `String`", "style": "primary"}
          ],
          "notes": ["expected String"]
        }
      ]
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from spanrender.diagnostic import Diagnostic, LabelStyle
from spanrender.errors import DocumentError
from spanrender.files import FileId, SimpleFiles


class DocumentLoader:
    """Builds an in-memory file table and diagnostics from one document."""

    def __init__(self, base_dir: Path, sources: dict[str, str] | None = None) -> None:
        self.base_dir = base_dir
        self.sources = sources or {}
        self.files = SimpleFiles()
        self._ids: dict[str, FileId] = {}

    def file_id(self, name: str) -> FileId:
        """Return the id for ``name``, reading the file on first use."""
        if name not in self._ids:
            if name in self.sources:
                text = self.sources[name]
            else:
                try:
                    text = (self.base_dir / name).read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as e:
                    raise DocumentError(f"cannot read source file `{name}`: {e}") from e
            self._ids[name] = self.files.add(name, text)
        return self._ids[name]

    def diagnostic(self, entry: dict[str, Any]) -> Diagnostic:
        diag = Diagnostic(entry.get("severity", "error"), entry.get("message", ""))
        if entry.get("code") is not None:
            diag.set_code(str(entry["code"]))
        for label in entry.get("labels", []):
            try:
                file_id = self.file_id(label["file"])
                start, end = int(label["start"]), int(label["end"])
            except (KeyError, TypeError, ValueError) as e:
                raise DocumentError(f"malformed label {label!r}: {e}") from e
            message = label.get("message", "")
            if label.get("style", LabelStyle.PRIMARY.value) == LabelStyle.SECONDARY.value:
                diag.add_secondary_label(file_id, start, end, message)
            else:
                diag.add_primary_label(file_id, start, end, message)
        for note in entry.get("notes", []):
            diag.add_note(note)
        return diag


def load_document(path: Path) -> tuple[SimpleFiles, list[Diagnostic]]:
    """Parse a diagnostics document. Raises DocumentError."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise DocumentError(f"cannot load {path}: {e}") from e
    if not isinstance(data, dict):
        raise DocumentError(f"{path}: expected a JSON object at the top level")

    loader = DocumentLoader(path.parent, data.get("sources"))
    diagnostics = []
    for entry in data.get("diagnostics", []):
        if not isinstance(entry, dict):
            raise DocumentError(f"{path}: diagnostic entries must be objects")
        diagnostics.append(loader.diagnostic(entry))
    return loader.files, diagnostics
