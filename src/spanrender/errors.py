"""Exceptions raised when a host breaks the rendering contract."""

from __future__ import annotations


class SpanRenderError(Exception):
    """Base class for every spanrender error."""


class MissingCallbackError(SpanRenderError):
    """A required source map callback was not supplied."""

    def __init__(self, callback: str) -> None:
        self.callback = callback
        super().__init__(f"required source map callback `{callback}` is missing")


class InvalidTextError(SpanRenderError):
    """Text crossing the boundary was absent or not valid UTF-8."""


class UnknownFileError(SpanRenderError):
    """The source map could not resolve a file id."""

    def __init__(self, file_id: int, detail: str = "") -> None:
        self.file_id = file_id
        message = f"unknown file id {file_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidSpanError(SpanRenderError):
    """A label references a byte range outside its file."""

    def __init__(self, file_id: int, start: int, end: int, length: int) -> None:
        self.file_id = file_id
        self.start = start
        self.end = end
        self.length = length
        super().__init__(
            f"label range {start}..{end} is invalid for file {file_id} "
            f"({length} bytes)"
        )


class SourceMapError(SpanRenderError):
    """A source map callback returned a malformed result."""


class DocumentError(SpanRenderError):
    """A diagnostics document could not be loaded."""
