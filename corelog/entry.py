"""Log entries, their call sites, and entries checked for writing."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, Sequence, runtime_checkable

from corelog.level import Level, LevelEnabler
from corelog.timefmt import Time


@runtime_checkable
class Core(LevelEnabler, Protocol):
    """The minimal logging interface that entries are written through.

    ``write`` raises an exception to report a failure.
    """

    def with_fields(self, fields: Sequence[Any]) -> Core: ...

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None: ...

    def write(self, ent: Entry, fields: Sequence[Any]) -> None: ...

    def sync(self) -> None: ...


@dataclass(frozen=True)
class EntryCaller:
    """The call site of a logging function."""

    defined: bool = False
    pc: int = 0
    file: str = ""
    line: int = 0
    function: str = ""

    def full_path(self) -> str:
        """Return ``/full/path/to/package/file:line``."""
        if not self.defined:
            return "undefined"
        return f"{self.file}:{self.line}"

    def trimmed_path(self) -> str:
        """Return ``package/file:line``, keeping only the leaf directory."""
        if not self.defined:
            return "undefined"
        last = self.file.rfind("/")
        if last == -1:
            return self.full_path()
        penultimate = self.file.rfind("/", 0, last)
        if penultimate == -1:
            return self.full_path()
        return f"{self.file[penultimate + 1:]}:{self.line}"

    def __str__(self) -> str:
        return self.full_path()


def new_entry_caller(pc: int, file: str, line: int, ok: bool) -> EntryCaller:
    """Build an EntryCaller; an unknown call site (``ok`` false) is undefined."""
    if not ok:
        return EntryCaller()
    return EntryCaller(defined=True, pc=pc, file=file, line=line)


@dataclass(frozen=True)
class Entry:
    """A complete log message with its level, time, name and call site."""

    level: Level = Level.INFO
    time: Time = Time(0)
    logger_name: str = ""
    message: str = ""
    caller: EntryCaller = EntryCaller()
    stack: str = ""


class CheckWriteAction(enum.IntEnum):
    """What to do after an entry is written, in increasing severity."""

    WRITE_THEN_NOOP = 0
    WRITE_THEN_GOEXIT = 1
    WRITE_THEN_PANIC = 2
    WRITE_THEN_FATAL = 3


class LoggedPanic(Exception):
    """Raised after writing an entry whose action is WRITE_THEN_PANIC."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class LoggedExit(SystemExit):
    """Raised after writing an entry that ends the current thread or the program.

    A fatal entry carries exit code 1; an entry that only ends the current
    thread carries no code, so a worker thread stops quietly.
    """

    def __init__(self, action: CheckWriteAction, code: int | None) -> None:
        super().__init__(code)
        self.action = action


def _sync(out: Any) -> None:
    for name in ("sync", "flush"):
        method = getattr(out, name, None)
        if callable(method):
            method()
            return


def _combine(errors: list[BaseException]) -> str:
    return "; ".join(str(err) for err in errors)


@dataclass
class CheckedEntry:
    """An entry together with the cores that have agreed to log it."""

    entry: Entry = field(default_factory=Entry)
    error_output: Any = None
    should: CheckWriteAction = CheckWriteAction.WRITE_THEN_NOOP
    cores: list[Core] = field(default_factory=list)
    dirty: bool = False

    def add_core(self, core: Core) -> CheckedEntry:
        """Register a core that will write this entry."""
        self.cores.append(core)
        return self

    def set_should(self, action: CheckWriteAction) -> CheckedEntry:
        """Set the action taken once the entry is written."""
        self.should = CheckWriteAction(action)
        return self

    def write(self, *args: Any) -> None:
        """Write the entry and ``args`` as fields to every core, then act.

        Core failures are reported to ``error_output``. Afterwards the
        entry's action may raise LoggedPanic or LoggedExit.
        """
        ent = self.entry
        if self.dirty:
            if self.error_output is not None:
                self.error_output.write(
                    f"{ent.time} Unsafe CheckedEntry re-use near Entry {ent!r}.\n"
                )
                _sync(self.error_output)
            return
        self.dirty = True

        fields: Iterable[Any] = list(args)
        errors: list[BaseException] = []
        for core in self.cores:
            try:
                core.write(ent, fields)
            except Exception as exc:  # noqa: BLE001 - every core gets its turn
                errors.append(exc)
        if errors and self.error_output is not None:
            self.error_output.write(f"{ent.time} write error: {_combine(errors)}\n")
            _sync(self.error_output)

        action = self.should
        if action == CheckWriteAction.WRITE_THEN_PANIC:
            raise LoggedPanic(ent.message)
        if action == CheckWriteAction.WRITE_THEN_FATAL:
            raise LoggedExit(action, 1)
        if action == CheckWriteAction.WRITE_THEN_GOEXIT:
            raise LoggedExit(action, None)


def add_core(ce: CheckedEntry | None, ent: Entry, core: Core) -> CheckedEntry:
    """Add ``core`` to ``ce``, creating a CheckedEntry for ``ent`` if ``ce`` is None."""
    if ce is None:
        ce = CheckedEntry(entry=ent)
    return ce.add_core(core)


def should(ce: CheckedEntry | None, ent: Entry, action: CheckWriteAction) -> CheckedEntry:
    """Set ``ce``'s action, creating a CheckedEntry for ``ent`` if ``ce`` is None."""
    if ce is None:
        ce = CheckedEntry(entry=ent)
    return ce.set_should(action)