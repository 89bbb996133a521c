"""spanrender: annotated source diagnostics over a host-owned source map."""

from __future__ import annotations

from spanrender.config import CharStyle, Chars, DisplayStyle, RenderConfig
from spanrender.diagnostic import Diagnostic, Label, LabelStyle, Severity
from spanrender.errors import (
    InvalidSpanError,
    InvalidTextError,
    MissingCallbackError,
    SourceMapError,
    SpanRenderError,
    UnknownFileError,
)
from spanrender.files import Files, SimpleFiles, column_index
from spanrender.renderer import DiagnosticRenderer, render
from spanrender.source_map import CallbackSourceMap

__version__ = "0.1.0"

__all__ = [
    "CallbackSourceMap",
    "CharStyle",
    "Chars",
    "Diagnostic",
    "DiagnosticRenderer",
    "DisplayStyle",
    "Files",
    "InvalidSpanError",
    "InvalidTextError",
    "Label",
    "LabelStyle",
    "MissingCallbackError",
    "RenderConfig",
    "Severity",
    "SimpleFiles",
    "SourceMapError",
    "SpanRenderError",
    "UnknownFileError",
    "column_index",
    "render",
]
