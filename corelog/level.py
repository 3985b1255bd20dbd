"""Logging levels, their text forms and their coloured renderings."""

from __future__ import annotations

import json
from typing import ClassVar, Protocol, runtime_checkable


class Level(int):
    """A logging priority. Higher levels are more important."""

    __slots__ = ()

    DEBUG: ClassVar[Level]
    INFO: ClassVar[Level]
    WARN: ClassVar[Level]
    ERROR: ClassVar[Level]
    DPANIC: ClassVar[Level]
    PANIC: ClassVar[Level]
    FATAL: ClassVar[Level]

    def __str__(self) -> str:
        name = _LOWER_NAMES.get(int(self))
        return name if name is not None else f"Level({int(self)})"

    def __repr__(self) -> str:
        return f"<Level {self}>"

    def __format__(self, spec: str) -> str:
        return str(self) if not spec else int.__format__(int(self), spec)

    def capital_string(self) -> str:
        """Return an all-caps representation of the level."""
        name = _LOWER_NAMES.get(int(self))
        return name.upper() if name is not None else f"LEVEL({int(self)})"

    def enabled(self, lvl: int) -> bool:
        """Report whether ``lvl`` is at or above this level."""
        return lvl >= self

    def marshal_text(self) -> bytes:
        """Return the lower-case text form of the level as bytes."""
        return str(self).encode()


_LOWER_NAMES: dict[int, str] = {
    -1: "debug",
    0: "info",
    1: "warn",
    2: "error",
    3: "dpanic",
    4: "panic",
    5: "fatal",
}

Level.DEBUG = Level(-1)
Level.INFO = Level(0)
Level.WARN = Level(1)
Level.ERROR = Level(2)
Level.DPANIC = Level(3)
Level.PANIC = Level(4)
Level.FATAL = Level(5)

MIN_LEVEL = Level.DEBUG
MAX_LEVEL = Level.FATAL
ALL_LEVELS: tuple[Level, ...] = tuple(Level(n) for n in range(MIN_LEVEL, MAX_LEVEL + 1))

_TEXT_TO_LEVEL: dict[str, Level] = {"": Level.INFO}
for _level in ALL_LEVELS:
    _TEXT_TO_LEVEL[str(_level)] = _level
    _TEXT_TO_LEVEL[_level.capital_string()] = _level
del _level


@runtime_checkable
class LevelEnabler(Protocol):
    """Decides whether a given logging level is enabled."""

    def enabled(self, lvl: Level) -> bool: ...


def parse_level(text: str | bytes) -> Level:
    """Parse the lower-case or all-caps name of a level.

    The empty string parses as the info level. Raises ValueError on
    anything unrecognised.
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8", errors="replace")
    level = _TEXT_TO_LEVEL.get(text)
    if level is None:
        level = _TEXT_TO_LEVEL.get(text.lower())
    if level is None:
        raise ValueError(f"unrecognized level: {json.dumps(text, ensure_ascii=False)}")
    return level


_MAGENTA, _BLUE, _YELLOW, _RED = 35, 34, 33, 31

_LEVEL_COLORS: dict[Level, int] = {
    Level.DEBUG: _MAGENTA,
    Level.INFO: _BLUE,
    Level.WARN: _YELLOW,
    Level.ERROR: _RED,
    Level.DPANIC: _RED,
    Level.PANIC: _RED,
    Level.FATAL: _RED,
}
_UNKNOWN_LEVEL_COLOR = _RED


def _colorize(color: int, text: str) -> str:
    return f"\x1b[{color}m{text}\x1b[0m"


_LOWERCASE_COLOR_STRINGS = {lvl: _colorize(c, str(lvl)) for lvl, c in _LEVEL_COLORS.items()}
_CAPITAL_COLOR_STRINGS = {lvl: _colorize(c, lvl.capital_string()) for lvl, c in _LEVEL_COLORS.items()}


def lowercase_color_string(level: Level) -> str:
    """Return the lower-case level name wrapped in its terminal colour."""
    level = Level(level)
    found = _LOWERCASE_COLOR_STRINGS.get(level)
    return found if found is not None else _colorize(_UNKNOWN_LEVEL_COLOR, str(level))


def capital_color_string(level: Level) -> str:
    """Return the all-caps level name wrapped in its terminal colour."""
    level = Level(level)
    found = _CAPITAL_COLOR_STRINGS.get(level)
    return found if found is not None else _colorize(_UNKNOWN_LEVEL_COLOR, level.capital_string())