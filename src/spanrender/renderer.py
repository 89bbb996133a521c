"""Annotated-snippet rendering of diagnostics over a ``Files`` table.

Rendering is two-pass: every label is resolved against the file table
first (which also validates it), the excerpt blocks and the shared gutter
width are computed from the resolved labels, and only then are rows
emitted. Nothing reaches the output sink unless the whole diagnostic
rendered.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from itertools import groupby
from typing import Any

from spanrender.config import Chars, DisplayStyle, RenderConfig
from spanrender.diagnostic import Diagnostic, Label, LabelStyle, Severity
from spanrender.errors import InvalidSpanError, UnknownFileError
from spanrender.files import ByteIndex, FileId, Files, LineIndex

logger = logging.getLogger(__name__)

Sink = Callable[[Any, bytes], None]

# ANSI color codes
_SEVERITY_COLORS = {
    Severity.BUG: "\033[1;31m",      # bold red
    Severity.ERROR: "\033[1;31m",    # bold red
    Severity.WARNING: "\033[1;33m",  # bold yellow
    Severity.NOTE: "\033[1;32m",     # bold green
    Severity.HELP: "\033[1;36m",     # bold cyan
}
_BOLD = "\033[1m"
_BLUE = "\033[1;34m"
_RESET = "\033[0m"


class _Row:
    """One output line made of cells, each carrying an optional color."""

    def __init__(self) -> None:
        self.cells: list[tuple[str, str]] = []
        self.origin = 0

    def write(self, text: str, color: str = "") -> None:
        self.cells.extend((ch, color) for ch in text)

    def mark(self) -> None:
        """Columns given to ``put`` count from the current end of the row."""
        self.origin = len(self.cells)

    def put(self, col: int, text: str, color: str = "") -> None:
        index = self.origin + col
        missing = index + len(text) - len(self.cells)
        if missing > 0:
            self.cells.extend([(" ", "")] * missing)
        for offset, ch in enumerate(text):
            self.cells[index + offset] = (ch, color)

    @property
    def width(self) -> int:
        return len(self.cells) - self.origin

    def to_str(self, color: bool) -> str:
        cells = self.cells[:]
        while cells and cells[-1][0] == " ":
            cells.pop()
        parts: list[str] = []
        for code, run in groupby(cells, key=lambda cell: cell[1]):
            text = "".join(ch for ch, _ in run)
            parts.append(f"{code}{text}{_RESET}" if color and code else text)
        return "".join(parts)


# ── Resolved layout ───────────────────────────────────────────────


@dataclass
class _Resolved:
    """A label checked against its file, with the lines it starts and ends on."""

    label: Label
    order: int
    name: str
    data: bytes
    start_line: LineIndex
    end_line: LineIndex


@dataclass
class _Single:
    """An underline confined to one source line, in display columns."""

    start: int
    end: int
    style: LabelStyle
    message: str
    order: int

    @property
    def stop(self) -> int:
        return max(self.end, self.start + 1)


@dataclass
class _Multi:
    """A label spanning several lines, drawn as a bracket in the left margin."""

    start_line: LineIndex
    end_line: LineIndex
    start: int
    end: int
    style: LabelStyle
    message: str
    order: int
    top_inline: bool
    slot: int = 0


@dataclass
class _Line:
    index: LineIndex
    number: int
    start: ByteIndex
    raw: str
    text: str
    singles: list[_Single] = field(default_factory=list)


@dataclass
class _Block:
    """Consecutive labels of one file whose start lines never go backwards."""

    file_id: FileId
    name: str
    new_file: bool
    data: bytes
    locus: _Resolved
    last_start_line: LineIndex = 0
    lines: dict[LineIndex, _Line] = field(default_factory=dict)
    multis: list[_Multi] = field(default_factory=list)
    slot_count: int = 0


class DiagnosticRenderer:
    """Renders diagnostics against a file table in codespan style."""

    def __init__(
        self,
        files: Files,
        config: RenderConfig | None = None,
        *,
        color: bool = False,
    ) -> None:
        self.files = files
        self.config = config or RenderConfig()
        self.color = bool(color)
        self.chars: Chars = self.config.chars

    @property
    def tab_width(self) -> int:
        return max(self.config.tab_width, 0)

    def render(self, diagnostic: Diagnostic) -> str:
        """Render one diagnostic to text, ending with a newline."""
        logger.debug(
            "rendering %s with %d label(s) and %d note(s) as %s",
            diagnostic.severity.label,
            len(diagnostic.labels),
            len(diagnostic.notes),
            self.config.display_style.name.lower(),
        )
        resolved = self._resolve_labels(diagnostic)
        if self.config.display_style is DisplayStyle.SHORT:
            rows = self._render_short(diagnostic, resolved)
        else:
            rows = self._render_excerpts(diagnostic, resolved)
        return "".join(row.to_str(self.color) + "\n" for row in rows)

    # ── Label resolution ─────────────────────────────────────────

    def _resolve_labels(self, diagnostic: Diagnostic) -> list[_Resolved]:
        names: dict[FileId, str] = {}
        sources: dict[FileId, bytes] = {}
        resolved = []
        for order, label in enumerate(diagnostic.labels):
            file_id = label.file_id
            try:
                if file_id not in sources:
                    names[file_id] = self.files.name(file_id)
                    sources[file_id] = self.files.source_bytes(file_id)
                data = sources[file_id]
                if not 0 <= label.start <= label.end <= len(data):
                    raise InvalidSpanError(file_id, label.start, label.end, len(data))
                start_line = self.files.line_index(file_id, label.start)
                end_line = self.files.line_index(file_id, label.end)
            except LookupError as e:
                raise UnknownFileError(file_id, str(e)) from e
            resolved.append(
                _Resolved(label, order, names[file_id], data, start_line, end_line)
            )
        return resolved

    def _locus(self, resolved: _Resolved) -> str:
        label = resolved.label
        line = self.files.line_number(label.file_id, resolved.start_line)
        column = self.files.column_number(label.file_id, resolved.start_line, label.start)
        return f"{resolved.name}:{line}:{column}"

    # ── Header and short style ───────────────────────────────────

    def _header(self, diagnostic: Diagnostic) -> _Row:
        row = _Row()
        title = diagnostic.severity.label
        if diagnostic.code:
            title = f"{title}[{diagnostic.code}]"
        row.write(title, _SEVERITY_COLORS[diagnostic.severity])
        row.write(f": {diagnostic.message}", _BOLD)
        return row

    def _render_short(self, diagnostic: Diagnostic, resolved: list[_Resolved]) -> list[_Row]:
        if not resolved:
            return [self._header(diagnostic)]
        rows = []
        for item in resolved:
            row = _Row()
            row.write(f"{self._locus(item)}: ")
            row.cells.extend(self._header(diagnostic).cells)
            if item.label.message:
                row.write(f": {item.label.message}")
            rows.append(row)
        return rows

    # ── Rich and medium styles ───────────────────────────────────

    def _render_excerpts(self, diagnostic: Diagnostic, resolved: list[_Resolved]) -> list[_Row]:
        blocks = self._build_blocks(resolved)
        numbers = [line.number for block in blocks for line in block.lines.values()]
        width = max((len(str(n)) for n in numbers), default=0)
        color = _SEVERITY_COLORS[diagnostic.severity]

        rows = [self._header(diagnostic)]
        for block in blocks:
            if block.new_file:
                row = _Row()
                row.write(" " * (width + 1))
                row.write(
                    self.chars.source_border_top_left + self.chars.source_border_top,
                    _BLUE,
                )
                row.write(f" {self._locus(block.locus)}")
                rows.append(row)
                rows.append(self._gutter(width))
            else:
                rows.append(self._gutter(width, border=self.chars.source_border_left_break))
            rows.extend(self._block_rows(block, width, color))

        if diagnostic.notes:
            if blocks:
                rows.append(self._gutter(width))
            for note in diagnostic.notes:
                first, *rest = note.split("\n")
                row = _Row()
                row.write(" " * (width + 1))
                row.write(self.chars.note_bullet, _BLUE)
                row.write(f" {first}")
                rows.append(row)
                for line in rest:
                    row = _Row()
                    row.write(" " * (width + 3) + line)
                    rows.append(row)
        return rows

    def _build_blocks(self, resolved: list[_Resolved]) -> list[_Block]:
        blocks: list[_Block] = []
        for item in resolved:
            file_id = item.label.file_id
            block = blocks[-1] if blocks else None
            if block is None or block.file_id != file_id or item.start_line < block.last_start_line:
                new_file = block is None or block.file_id != file_id
                block = _Block(file_id, item.name, new_file, item.data, locus=item)
                blocks.append(block)
            elif item.label.is_primary and not block.locus.label.is_primary:
                block.locus = item
            block.last_start_line = item.start_line
            self._add_label(block, item)

        for block in blocks:
            self._fill_gaps(block)
            self._assign_slots(block)
        return blocks

    def _line(self, block: _Block, index: LineIndex) -> _Line:
        line = block.lines.get(index)
        if line is None:
            start, end = self.files.line_range(block.file_id, index)
            raw = block.data[start:end].decode("utf-8", errors="replace")
            text = raw.removesuffix("\n").removesuffix("\r")
            text = text.replace("\t", " " * self.tab_width)
            number = self.files.line_number(block.file_id, index)
            line = _Line(index, number, start, raw, text)
            block.lines[index] = line
        return line

    def _column(self, line: _Line, byte_index: ByteIndex) -> int:
        """Display column of ``byte_index`` within ``line``, with tabs expanded."""
        col = 0
        offset = line.start
        for ch in line.raw:
            if offset >= byte_index:
                break
            col += self.tab_width if ch == "\t" else 1
            offset += len(ch.encode("utf-8"))
        return col

    def _add_label(self, block: _Block, item: _Resolved) -> None:
        label = item.label
        first = self._line(block, item.start_line)
        start = self._column(first, label.start)
        if item.end_line == item.start_line:
            end = self._column(first, label.end)
            first.singles.append(_Single(start, end, label.style, label.message, item.order))
            return

        last = self._line(block, item.end_line)
        end = self._column(last, label.end)
        if self.config.display_style is DisplayStyle.MEDIUM:
            # No bracket art: underline the tail of the first line and the head of the last.
            first.singles.append(
                _Single(start, max(len(first.text), start), label.style, "", item.order)
            )
            indent = len(last.text) - len(last.text.lstrip())
            last.singles.append(
                _Single(min(indent, end), end, label.style, label.message, item.order)
            )
            return

        top_inline = not first.text[:start].strip()
        block.multis.append(
            _Multi(
                item.start_line, item.end_line, start, end,
                label.style, label.message, item.order, top_inline,
            )
        )

    def _fill_gaps(self, block: _Block) -> None:
        """Show a lone unlabelled line between two shown lines instead of a break."""
        indices = sorted(block.lines)
        for prev, nxt in zip(indices, indices[1:]):
            if nxt - prev == 2:
                self._line(block, prev + 1)

    def _assign_slots(self, block: _Block) -> None:
        slot_ends: list[LineIndex] = []
        for multi in sorted(block.multis, key=lambda m: (m.start_line, m.order)):
            for slot, end_line in enumerate(slot_ends):
                if end_line < multi.start_line:
                    multi.slot = slot
                    slot_ends[slot] = multi.end_line
                    break
            else:
                multi.slot = len(slot_ends)
                slot_ends.append(multi.end_line)
        block.slot_count = len(slot_ends)

    # ── Row construction ─────────────────────────────────────────

    def _gutter(self, width: int, number: int | None = None, border: str | None = None) -> _Row:
        row = _Row()
        if number is None:
            row.write(" " * width)
        else:
            row.write(f"{number:>{width}}", _BLUE)
        row.write(" ")
        row.write(border or self.chars.source_border_left, _BLUE)
        row.write(" ")
        return row

    def _style_color(self, style: LabelStyle, color: str) -> str:
        return color if style is LabelStyle.PRIMARY else _BLUE

    def _margin(self, row: _Row, block: _Block, glyphs: dict[int, tuple[str, str]]) -> None:
        """Write the multi-line bracket margin, then start the text area."""
        for slot in range(block.slot_count):
            ch, code = glyphs.get(slot, (" ", ""))
            row.write(ch, code)
            row.write(" ")
        row.mark()

    def _block_rows(self, block: _Block, width: int, color: str) -> list[_Row]:
        rows: list[_Row] = []
        chars = self.chars
        indices = sorted(block.lines)
        for pos, index in enumerate(indices):
            line = block.lines[index]

            # Source line.
            glyphs = {}
            for multi in block.multis:
                code = self._style_color(multi.style, color)
                if multi.start_line == index and multi.top_inline:
                    glyphs[multi.slot] = (chars.multi_top_left, code)
                elif multi.start_line < index <= multi.end_line:
                    glyphs[multi.slot] = (chars.multi_left, code)
            row = self._gutter(width, line.number)
            self._margin(row, block, glyphs)
            row.write(line.text)
            rows.append(row)

            # Tops of brackets that start after other text on this line.
            for multi in sorted(block.multis, key=lambda m: m.slot):
                if multi.start_line != index or multi.top_inline:
                    continue
                code = self._style_color(multi.style, color)
                caret = (
                    chars.multi_primary_caret_start
                    if multi.style is LabelStyle.PRIMARY
                    else chars.multi_secondary_caret_start
                )
                rows.append(
                    self._bracket_row(
                        block, width, color, multi, index,
                        chars.multi_top_left, chars.multi_top, multi.start, caret, code,
                        pending=lambda m: (
                            m.slot > multi.slot and m.start_line == index and not m.top_inline
                        ),
                    )
                )

            # Underlines for labels within this line.
            if line.singles:
                glyphs = self._open_margin(block, index, color)
                rows.extend(self._underline_rows(block, width, line.singles, glyphs, color))

            # Bottoms of brackets that end on this line, innermost first.
            for multi in sorted(block.multis, key=lambda m: -m.slot):
                if multi.end_line != index:
                    continue
                code = self._style_color(multi.style, color)
                caret = (
                    chars.multi_primary_caret_end
                    if multi.style is LabelStyle.PRIMARY
                    else chars.multi_secondary_caret_end
                )
                row = self._bracket_row(
                    block, width, color, multi, index,
                    chars.multi_bottom_left, chars.multi_bottom, max(multi.end - 1, 0), caret, code,
                    pending=lambda m: m.slot > multi.slot and m.end_line == index,
                )
                if multi.message:
                    row.write(f" {multi.message}", code)
                rows.append(row)

            # Break between this line and the next shown one.
            if pos + 1 < len(indices) and indices[pos + 1] > index + 1:
                glyphs = {
                    m.slot: (chars.multi_left, self._style_color(m.style, color))
                    for m in block.multis
                    if m.start_line <= index < m.end_line
                }
                row = self._gutter(width, border=chars.source_border_left_break)
                self._margin(row, block, glyphs)
                rows.append(row)
        return rows

    def _open_margin(self, block: _Block, index: LineIndex, color: str) -> dict[int, tuple[str, str]]:
        return {
            m.slot: (self.chars.multi_left, self._style_color(m.style, color))
            for m in block.multis
            if m.start_line <= index <= m.end_line
        }

    def _bracket_row(
        self,
        block: _Block,
        width: int,
        color: str,
        multi: _Multi,
        index: LineIndex,
        corner: str,
        fill: str,
        caret_col: int,
        caret: str,
        code: str,
        pending: Callable[[_Multi], bool],
    ) -> _Row:
        """A row joining a bracket's corner to its caret on the text."""
        glyphs = self._open_margin(block, index, color)
        # Brackets whose own top or bottom row has not been drawn yet stay blank.
        for other in block.multis:
            if other is not multi and pending(other):
                glyphs.pop(other.slot, None)
        glyphs[multi.slot] = (corner, code)

        row = self._gutter(width)
        for slot in range(block.slot_count):
            ch, slot_code = glyphs.get(slot, (" ", ""))
            if slot > multi.slot and ch == " ":
                ch, slot_code = fill, code
            row.write(ch, slot_code)
            row.write(fill if slot >= multi.slot else " ", code if slot >= multi.slot else "")
        row.mark()
        row.put(0, fill * caret_col, code)
        row.put(caret_col, caret, code)
        return row

    def _underline_rows(
        self,
        block: _Block,
        width: int,
        singles: list[_Single],
        glyphs: dict[int, tuple[str, str]],
        color: str,
    ) -> list[_Row]:
        chars = self.chars

        def new_row() -> _Row:
            row = self._gutter(width)
            self._margin(row, block, glyphs)
            return row

        row = new_row()
        # Primary carets win where spans overlap.
        for single in sorted(singles, key=lambda s: (s.style is LabelStyle.PRIMARY, s.order)):
            caret = (
                chars.single_primary_caret
                if single.style is LabelStyle.PRIMARY
                else chars.single_secondary_caret
            )
            row.put(single.start, caret * (single.stop - single.start),
                    self._style_color(single.style, color))

        trailing = self._trailing(singles)
        if trailing is not None:
            row.put(row.width + 1, trailing.message, self._style_color(trailing.style, color))
        rows = [row]

        hanging = sorted(
            (s for s in singles if s.message and s is not trailing),
            key=lambda s: (-s.start, s.order),
        )
        if hanging:
            row = new_row()
            for single in hanging:
                row.put(single.start, chars.pointer_left, self._style_color(single.style, color))
            rows.append(row)
            for pos, single in enumerate(hanging):
                row = new_row()
                for waiting in hanging[pos + 1:]:
                    row.put(waiting.start, chars.pointer_left,
                            self._style_color(waiting.style, color))
                row.put(single.start, single.message, self._style_color(single.style, color))
                rows.append(row)
        return rows

    @staticmethod
    def _trailing(singles: list[_Single]) -> _Single | None:
        """The label whose message can sit on the underline row itself."""
        last = max(singles, key=lambda s: (s.start, s.order))
        if not last.message:
            return None
        if any(s is not last and s.stop > last.start for s in singles):
            return None
        return last


def render(
    diagnostic: Diagnostic,
    source_map: Files,
    config: RenderConfig | None,
    color: bool | int,
    sink: Sink,
    context: Any = None,
) -> None:
    """Render ``diagnostic`` and hand the UTF-8 result to ``sink`` in one call.

    ``sink`` is called as ``sink(context, data)`` exactly once, after the
    whole diagnostic rendered. ``data`` is an immutable ``bytes`` object the
    sink owns from then on. A usage violation raises before the sink runs.
    """
    renderer = DiagnosticRenderer(source_map, config, color=bool(color))
    data = renderer.render(diagnostic).encode("utf-8")
    sink(context, data)
