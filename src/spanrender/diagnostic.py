"""Diagnostic value model: severity, code, message, labels and notes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from spanrender.errors import InvalidTextError
from spanrender.files import ByteIndex, FileId


class Severity(IntEnum):
    """Diagnostic severity, ordered from least to most severe."""

    HELP = 0
    NOTE = 1
    WARNING = 2
    ERROR = 3
    BUG = 4

    @classmethod
    def coerce(cls, value: object) -> Severity:
        """Resolve a member, raw int or name. Anything unrecognised is ERROR."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.__members__.get(value.upper(), cls.ERROR)
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                return cls.ERROR
        return cls.ERROR

    @property
    def label(self) -> str:
        return self.name.lower()


class LabelStyle(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


def utf8_text(value: str | bytes | bytearray | memoryview | None) -> str:
    """Decode boundary text. ``None`` is the empty string; bytes must be UTF-8."""
    if value is None:
        return ""
    try:
        if isinstance(value, str):
            value.encode("utf-8")
            return value
        return bytes(value).decode("utf-8")
    except UnicodeError as e:
        raise InvalidTextError(f"text is not valid UTF-8: {e}") from e


@dataclass(frozen=True)
class Label:
    """A labelled byte range ``[start, end)`` in one file."""

    file_id: FileId
    start: ByteIndex
    end: ByteIndex
    message: str = ""
    style: LabelStyle = LabelStyle.PRIMARY

    @property
    def is_primary(self) -> bool:
        return self.style is LabelStyle.PRIMARY


@dataclass
class Diagnostic:
    """One reportable message, built up in insertion order.

    Labels and notes render in the order they were added; there is no way
    to remove either once added.
    """

    severity: Severity
    message: str
    code: str | None = None
    labels: list[Label] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.severity = Severity.coerce(self.severity)
        self.message = utf8_text(self.message)
        if self.code is not None:
            self.code = utf8_text(self.code)

    @classmethod
    def new(cls, severity: Severity | int | str, message: str | bytes | None) -> Diagnostic:
        return cls(severity, message)  # type: ignore[arg-type]

    def set_code(self, code: str | bytes | None) -> None:
        """Replace the diagnostic code."""
        self.code = utf8_text(code)

    def add_primary_label(
        self,
        file_id: FileId,
        start: ByteIndex,
        end: ByteIndex,
        message: str | bytes | None = "",
    ) -> None:
        self.labels.append(
            Label(file_id, start, end, utf8_text(message), LabelStyle.PRIMARY)
        )

    def add_secondary_label(
        self,
        file_id: FileId,
        start: ByteIndex,
        end: ByteIndex,
        message: str | bytes | None = "",
    ) -> None:
        self.labels.append(
            Label(file_id, start, end, utf8_text(message), LabelStyle.SECONDARY)
        )

    def add_note(self, message: str | bytes | None) -> None:
        self.notes.append(utf8_text(message))

    @property
    def primary_labels(self) -> list[Label]:
        return [label for label in self.labels if label.is_primary]
