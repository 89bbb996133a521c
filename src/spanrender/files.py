"""File access for diagnostics: the capability the renderer reads through.

A ``Files`` table answers four required questions about a file (its name,
its source text, which line a byte offset falls on, and the byte range of a
line) and derives human line and column numbers from them unless a subclass
overrides the derivation.

Byte indices are offsets into the UTF-8 encoding of the source text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from bisect import bisect_right

from spanrender.errors import InvalidTextError, SourceMapError, UnknownFileError

FileId = int
ByteIndex = int
LineIndex = int
LineRange = tuple[int, int]


def column_index(source: bytes, line_range: LineRange, byte_index: ByteIndex) -> int:
    """Count the characters of a line that start before ``byte_index``.

    The count is in Unicode scalar values, so a caret after ``fizz₁`` lands
    under the fifth character rather than the seventh byte. ``byte_index`` is
    clamped to the end of the line and the end of the source.
    """
    start, end = line_range
    stop = min(byte_index, end, len(source))
    if stop <= start:
        return 0
    # UTF-8 continuation bytes look like 0b10xxxxxx; every other byte starts a character.
    return sum(1 for b in source[start:stop] if b & 0xC0 != 0x80)


def line_starts(source: bytes) -> list[ByteIndex]:
    """Return the byte offset of the start of every line in ``source``."""
    starts = [0]
    pos = source.find(b"\n")
    while pos != -1:
        starts.append(pos + 1)
        pos = source.find(b"\n", pos + 1)
    return starts


class Files(ABC):
    """Read access to a set of source files, keyed by host-defined ids.

    Subclasses implement ``name``, ``source``, ``line_index`` and
    ``line_range``. ``line_number`` and ``column_number`` have default
    implementations computed from those four.
    """

    # ── Required operations ──────────────────────────────────────

    @abstractmethod
    def name(self, file_id: FileId) -> str:
        """The name shown in the locus line."""
        ...

    @abstractmethod
    def source(self, file_id: FileId) -> str:
        """The full source text."""
        ...

    @abstractmethod
    def line_index(self, file_id: FileId, byte_index: ByteIndex) -> LineIndex:
        """The zero-based line that ``byte_index`` falls on."""
        ...

    @abstractmethod
    def line_range(self, file_id: FileId, line_index: LineIndex) -> LineRange:
        """The byte range of a line, including its terminator."""
        ...

    # ── Derived operations ───────────────────────────────────────

    def source_bytes(self, file_id: FileId) -> bytes:
        """The UTF-8 encoding of ``source(file_id)``."""
        try:
            return self.source(file_id).encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidTextError(f"source of file {file_id} is not valid UTF-8: {e}") from e

    def line_number(self, file_id: FileId, line_index: LineIndex) -> int:
        """The 1-based line number shown to humans."""
        return line_index + 1

    def column_number(
        self, file_id: FileId, line_index: LineIndex, byte_index: ByteIndex,
    ) -> int:
        """The 1-based column number shown to humans."""
        source = self.source_bytes(file_id)
        line_range = self.line_range(file_id, line_index)
        return column_index(source, line_range, byte_index) + 1


class SimpleFile:
    """One in-memory source file with precomputed line starts."""

    def __init__(self, name: str, source: str) -> None:
        self.name = name
        self.source = source
        try:
            self.data = source.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidTextError(f"source of `{name}` is not valid UTF-8: {e}") from e
        self._line_starts = line_starts(self.data)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_index(self, byte_index: ByteIndex) -> LineIndex:
        return bisect_right(self._line_starts, byte_index) - 1

    def line_start(self, line_index: LineIndex) -> ByteIndex:
        if line_index < len(self._line_starts):
            return self._line_starts[line_index]
        if line_index == len(self._line_starts):
            return len(self.data)
        raise SourceMapError(
            f"line index {line_index} is out of range for `{self.name}` "
            f"({len(self._line_starts)} lines)"
        )

    def line_range(self, line_index: LineIndex) -> LineRange:
        return self.line_start(line_index), self.line_start(line_index + 1)


class SimpleFiles(Files):
    """A host-side file table that keeps sources in memory.

    File ids are assigned in insertion order starting at zero.
    """

    def __init__(self) -> None:
        self._files: list[SimpleFile] = []

    def __len__(self) -> int:
        return len(self._files)

    def add(self, name: str, source: str) -> FileId:
        """Add a file and return its id."""
        self._files.append(SimpleFile(name, source))
        return len(self._files) - 1

    def get(self, file_id: FileId) -> SimpleFile:
        if 0 <= file_id < len(self._files):
            return self._files[file_id]
        raise UnknownFileError(file_id)

    def name(self, file_id: FileId) -> str:
        return self.get(file_id).name

    def source(self, file_id: FileId) -> str:
        return self.get(file_id).source

    def source_bytes(self, file_id: FileId) -> bytes:
        return self.get(file_id).data

    def line_index(self, file_id: FileId, byte_index: ByteIndex) -> LineIndex:
        return self.get(file_id).line_index(byte_index)

    def line_range(self, file_id: FileId, line_index: LineIndex) -> LineRange:
        return self.get(file_id).line_range(line_index)

    def source_map(self):
        """Expose this table through host callbacks, as a foreign host would."""
        from spanrender.source_map import CallbackSourceMap

        return CallbackSourceMap(
            self,
            name=_file_name,
            source=_source_code,
            line_index=_line_index,
            line_range=_line_range,
        )


# ── Callbacks used by SimpleFiles.source_map ─────────────────────


def _file_name(files: SimpleFiles, file_id: FileId) -> bytes:
    return files.get(file_id).name.encode("utf-8")


def _source_code(files: SimpleFiles, file_id: FileId) -> bytes:
    return files.get(file_id).data


def _line_index(files: SimpleFiles, file_id: FileId, byte_index: ByteIndex) -> LineIndex:
    return files.line_index(file_id, byte_index)


def _line_range(files: SimpleFiles, file_id: FileId, line_index: LineIndex) -> LineRange:
    return files.line_range(file_id, line_index)
