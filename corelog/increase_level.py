"""A core wrapper that raises the minimum level of an existing core."""

from __future__ import annotations

from typing import Any, Sequence

from corelog.entry import CheckedEntry, Core, Entry
from corelog.level import ALL_LEVELS, Level, LevelEnabler


class _LevelFilterCore:
    """Filters entries by a stricter level before the wrapped core sees them."""

    def __init__(self, core: Core, level: LevelEnabler) -> None:
        self._core = core
        self._level = level

    def enabled(self, lvl: Level) -> bool:
        return self._level.enabled(lvl)

    def with_fields(self, fields: Sequence[Any]) -> _LevelFilterCore:
        return _LevelFilterCore(self._core.with_fields(fields), self._level)

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        if not self.enabled(ent.level):
            return ce
        return self._core.check(ent, ce)

    def write(self, ent: Entry, fields: Sequence[Any]) -> None:
        self._core.write(ent, fields)

    def sync(self) -> None:
        self._core.sync()


def new_increase_level_core(core: Core, level: LevelEnabler) -> Core:
    """Return a core that logs only what both ``core`` and ``level`` allow.

    Raises ValueError if ``level`` would enable a level ``core`` does not.
    """
    for lvl in reversed(ALL_LEVELS):
        if not core.enabled(lvl) and level.enabled(lvl):
            raise ValueError(
                f'invalid increase level, as level "{lvl}" is allowed by '
                "increased level, but not by existing core"
            )
    return _LevelFilterCore(core, level)