"""Conversion of diagnostics into Language Server Protocol diagnostics.

Positions come from the same file table the renderer uses: the LSP line is
the zero-based line index and the character is the zero-based count of
characters before the offset on that line. A host's ``line_number`` and
``column_number`` conventions only affect rendered output.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from lsprotocol import types as lsp

from spanrender.diagnostic import Diagnostic, Label, Severity
from spanrender.files import ByteIndex, FileId, Files, column_index

# spanrender Severity → LSP DiagnosticSeverity
_SEVERITY_MAP = {
    Severity.BUG: lsp.DiagnosticSeverity.Error,
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.NOTE: lsp.DiagnosticSeverity.Information,
    Severity.HELP: lsp.DiagnosticSeverity.Hint,
}

UriFor = Callable[[FileId], str]


def byte_to_position(files: Files, file_id: FileId, byte_index: ByteIndex) -> lsp.Position:
    """Convert a byte offset to a 0-indexed LSP Position."""
    line_index = files.line_index(file_id, byte_index)
    line_range = files.line_range(file_id, line_index)
    character = column_index(files.source_bytes(file_id), line_range, byte_index)
    return lsp.Position(line=line_index, character=character)


def label_to_range(files: Files, label: Label) -> lsp.Range:
    return lsp.Range(
        start=byte_to_position(files, label.file_id, label.start),
        end=byte_to_position(files, label.file_id, label.end),
    )


def _anchor(diagnostic: Diagnostic) -> Label | None:
    """The label an editor should underline: the first primary, else the first."""
    for label in diagnostic.labels:
        if label.is_primary:
            return label
    return diagnostic.labels[0] if diagnostic.labels else None


def to_lsp_diagnostic(
    diagnostic: Diagnostic,
    files: Files,
    uri_for: UriFor | None = None,
    source: str = "spanrender",
) -> lsp.Diagnostic:
    """Convert a Diagnostic to an LSP Diagnostic.

    Labels other than the anchor become related information; notes are
    appended to the message, one per line.
    """
    uri_for = uri_for or files.name
    anchor = _anchor(diagnostic)
    if anchor is None:
        span_range = lsp.Range(
            start=lsp.Position(line=0, character=0),
            end=lsp.Position(line=0, character=0),
        )
    else:
        span_range = label_to_range(files, anchor)

    message = "\n".join([diagnostic.message, *diagnostic.notes])
    related = [
        lsp.DiagnosticRelatedInformation(
            location=lsp.Location(uri=uri_for(label.file_id), range=label_to_range(files, label)),
            message=label.message or diagnostic.message,
        )
        for label in diagnostic.labels
        if label is not anchor
    ]
    return lsp.Diagnostic(
        range=span_range,
        message=message,
        severity=_SEVERITY_MAP[diagnostic.severity],
        code=diagnostic.code or None,
        source=source,
        related_information=related or None,
    )


def diagnostics_by_uri(
    diagnostics: Iterable[Diagnostic],
    files: Files,
    uri_for: UriFor | None = None,
) -> dict[str, list[lsp.Diagnostic]]:
    """Group converted diagnostics by the document their anchor label is in.

    Diagnostics without labels cannot be placed in a document and are skipped.
    """
    uri_for = uri_for or files.name
    grouped: dict[str, list[lsp.Diagnostic]] = {}
    for diagnostic in diagnostics:
        anchor = _anchor(diagnostic)
        if anchor is None:
            continue
        uri = uri_for(anchor.file_id)
        grouped.setdefault(uri, []).append(to_lsp_diagnostic(diagnostic, files, uri_for))
    return grouped
