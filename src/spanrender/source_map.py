"""Source map adapter over host-supplied callbacks.

The host keeps ownership of its file storage. ``CallbackSourceMap`` holds
an opaque host context plus the callbacks that read from it, and turns them
into the ``Files`` capability the renderer consumes. Every callback receives
the context as its first argument.

Required callbacks::

    name(context, file_id) -> str | bytes
    source(context, file_id) -> str | bytes
    line_index(context, file_id, byte_index) -> int
    line_range(context, file_id, line_index) -> (start, end)

Optional callbacks (the ``Files`` defaults apply when omitted)::

    line_number(context, file_id, line_index) -> int
    column_number(context, file_id, line_index, byte_index) -> int
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from spanrender.errors import (
    InvalidTextError,
    MissingCallbackError,
    SourceMapError,
    UnknownFileError,
)
from spanrender.files import ByteIndex, FileId, Files, LineIndex, LineRange

logger = logging.getLogger(__name__)

TextCallback = Callable[[Any, FileId], "str | bytes | None"]
LineIndexCallback = Callable[[Any, FileId, ByteIndex], LineIndex]
LineRangeCallback = Callable[[Any, FileId, LineIndex], LineRange]
LineNumberCallback = Callable[[Any, FileId, LineIndex], int]
ColumnNumberCallback = Callable[[Any, FileId, LineIndex, ByteIndex], int]


class CallbackSourceMap(Files):
    """A ``Files`` table whose answers come from host callbacks.

    The adapter never copies or caches host text: each call goes back to the
    host. Host callbacks raising ``LookupError`` (an unknown id, a line out
    of range) surface as ``UnknownFileError``.
    """

    def __init__(
        self,
        context: Any,
        name: TextCallback | None = None,
        source: TextCallback | None = None,
        line_index: LineIndexCallback | None = None,
        line_range: LineRangeCallback | None = None,
        line_number: LineNumberCallback | None = None,
        column_number: ColumnNumberCallback | None = None,
    ) -> None:
        required = {
            "name": name,
            "source": source,
            "line_index": line_index,
            "line_range": line_range,
        }
        for callback_name, callback in required.items():
            if callback is None:
                raise MissingCallbackError(callback_name)

        self.context = context
        self._name = name
        self._source = source
        self._line_index = line_index
        self._line_range = line_range
        self._line_number = line_number
        self._column_number = column_number
        logger.debug(
            "source map created (line_number override: %s, column_number override: %s)",
            line_number is not None,
            column_number is not None,
        )

    @property
    def has_line_number(self) -> bool:
        return self._line_number is not None

    @property
    def has_column_number(self) -> bool:
        return self._column_number is not None

    def _call(self, callback: Callable[..., Any], file_id: FileId, *args: Any) -> Any:
        try:
            return callback(self.context, file_id, *args)
        except LookupError as e:
            raise UnknownFileError(file_id, str(e)) from e

    def _text(self, callback: TextCallback, what: str, file_id: FileId) -> str:
        value = self._call(callback, file_id)
        if value is None:
            raise InvalidTextError(f"host returned no {what} for file {file_id}")
        if not isinstance(value, (str, bytes, bytearray, memoryview)):
            raise InvalidTextError(
                f"host returned {type(value).__name__} as the {what} of file {file_id}"
            )
        try:
            if isinstance(value, str):
                value.encode("utf-8")
                return value
            return bytes(value).decode("utf-8")
        except UnicodeError as e:
            raise InvalidTextError(
                f"{what} of file {file_id} is not valid UTF-8: {e}"
            ) from e

    def name(self, file_id: FileId) -> str:
        return self._text(self._name, "name", file_id)

    def source(self, file_id: FileId) -> str:
        return self._text(self._source, "source", file_id)

    def line_index(self, file_id: FileId, byte_index: ByteIndex) -> LineIndex:
        return self._call(self._line_index, file_id, byte_index)

    def line_range(self, file_id: FileId, line_index: LineIndex) -> LineRange:
        start, end = self._call(self._line_range, file_id, line_index)
        if start > end:
            raise SourceMapError(
                f"line {line_index} of file {file_id} has an inverted range {start}..{end}"
            )
        return start, end

    def line_number(self, file_id: FileId, line_index: LineIndex) -> int:
        if self._line_number is None:
            return super().line_number(file_id, line_index)
        return self._call(self._line_number, file_id, line_index)

    def column_number(
        self, file_id: FileId, line_index: LineIndex, byte_index: ByteIndex,
    ) -> int:
        if self._column_number is None:
            return super().column_number(file_id, line_index, byte_index)
        return self._call(self._column_number, file_id, line_index, byte_index)
