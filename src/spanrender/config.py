"""Render configuration and ``spanrender.toml`` loading."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

CONFIG_FILENAME = "spanrender.toml"
DEFAULT_TAB_WIDTH = 4


class DisplayStyle(IntEnum):
    RICH = 0
    MEDIUM = 1
    SHORT = 2

    @classmethod
    def coerce(cls, value: object) -> DisplayStyle:
        """Resolve a member, raw int or name. Anything unrecognised is RICH."""
        return _coerce(cls, value, cls.RICH)


class CharStyle(IntEnum):
    FANCY = 0
    ASCII = 1

    @classmethod
    def coerce(cls, value: object) -> CharStyle:
        """Resolve a member, raw int or name. Anything unrecognised is FANCY."""
        return _coerce(cls, value, cls.FANCY)


def _coerce(cls, value, default):
    if isinstance(value, cls):
        return value
    if isinstance(value, str):
        return cls.__members__.get(value.upper(), default)
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return cls(value)
        except ValueError:
            return default
    return default


@dataclass(frozen=True)
class Chars:
    """The glyphs used to draw borders, carets and multi-line brackets."""

    source_border_top_left: str
    source_border_top: str
    source_border_left: str
    source_border_left_break: str
    note_bullet: str
    single_primary_caret: str
    single_secondary_caret: str
    multi_primary_caret_start: str
    multi_primary_caret_end: str
    multi_secondary_caret_start: str
    multi_secondary_caret_end: str
    multi_top_left: str
    multi_top: str
    multi_bottom_left: str
    multi_bottom: str
    multi_left: str
    pointer_left: str

    @classmethod
    def fancy(cls) -> Chars:
        return cls(
            source_border_top_left="┌",
            source_border_top="─",
            source_border_left="│",
            source_border_left_break="·",
            note_bullet="=",
            single_primary_caret="^",
            single_secondary_caret="-",
            multi_primary_caret_start="^",
            multi_primary_caret_end="^",
            multi_secondary_caret_start="'",
            multi_secondary_caret_end="'",
            multi_top_left="╭",
            multi_top="─",
            multi_bottom_left="╰",
            multi_bottom="─",
            multi_left="│",
            pointer_left="│",
        )

    @classmethod
    def ascii(cls) -> Chars:
        return cls(
            source_border_top_left="-",
            source_border_top="-",
            source_border_left="|",
            source_border_left_break=".",
            note_bullet="=",
            single_primary_caret="^",
            single_secondary_caret="-",
            multi_primary_caret_start="^",
            multi_primary_caret_end="^",
            multi_secondary_caret_start="'",
            multi_secondary_caret_end="'",
            multi_top_left="/",
            multi_top="-",
            multi_bottom_left="\\",
            multi_bottom="-",
            multi_left="|",
            pointer_left="|",
        )


@dataclass
class RenderConfig:
    """How a diagnostic is laid out. Color mode is chosen per render call."""

    display_style: DisplayStyle = DisplayStyle.RICH
    char_style: CharStyle = CharStyle.FANCY
    tab_width: int = DEFAULT_TAB_WIDTH

    def __post_init__(self) -> None:
        self.display_style = DisplayStyle.coerce(self.display_style)
        self.char_style = CharStyle.coerce(self.char_style)

    @property
    def chars(self) -> Chars:
        if self.char_style is CharStyle.ASCII:
            return Chars.ascii()
        return Chars.fancy()


@dataclass
class FileConfig:
    """Settings read from the ``[render]`` table of ``spanrender.toml``."""

    render: RenderConfig = field(default_factory=RenderConfig)
    color: bool = False


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find spanrender.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_FILENAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> FileConfig:
    """Parse a spanrender.toml file into a FileConfig.

    Raises ValueError for a malformed file or a bad ``tab_width``.
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = FileConfig()

    if "render" in data:
        rnd = data["render"]
        tab_width = rnd.get("tab_width", DEFAULT_TAB_WIDTH)
        if not isinstance(tab_width, int) or isinstance(tab_width, bool) or tab_width < 0:
            raise ValueError(
                f"{path}: [render] tab_width must be a non-negative integer, got {tab_width!r}"
            )
        config.render = RenderConfig(
            display_style=rnd.get("style", DisplayStyle.RICH),
            char_style=rnd.get("chars", CharStyle.FANCY),
            tab_width=tab_width,
        )
        config.color = bool(rnd.get("color", False))

    return config
