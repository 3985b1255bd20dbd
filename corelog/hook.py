"""A core wrapper that runs user callbacks for every logged entry."""

from __future__ import annotations

from typing import Any, Callable, Sequence

from corelog.entry import CheckedEntry, Core, Entry
from corelog.level import Level

Hook = Callable[[Entry], object]


class _HookedCore:
    """Lets the wrapped core decide what to log, then runs the hooks."""

    def __init__(self, core: Core, hooks: tuple[Hook, ...]) -> None:
        self._core = core
        self._hooks = hooks

    def enabled(self, lvl: Level) -> bool:
        return self._core.enabled(lvl)

    def with_fields(self, fields: Sequence[Any]) -> _HookedCore:
        return _HookedCore(self._core.with_fields(fields), self._hooks)

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        # The wrapped core registers itself directly with the checked entry.
        downstream = self._core.check(ent, ce)
        if downstream is not None:
            return downstream.add_core(self)
        return ce

    def write(self, ent: Entry, fields: Sequence[Any]) -> None:
        """Run every hook; failures are collected and raised together."""
        errors: list[Exception] = []
        for hook in self._hooks:
            try:
                hook(ent)
            except Exception as exc:  # noqa: BLE001 - every hook gets its turn
                errors.append(exc)
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise ExceptionGroup("hook errors", errors)

    def sync(self) -> None:
        self._core.sync()


def register_hooks(core: Core, *args: Hook) -> Core:
    """Wrap ``core`` so that each hook is called, in order, for every logged entry."""
    return _HookedCore(core, tuple(args))