"""A core wrapper that samples repeated entries to cap logging load."""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from corelog.entry import CheckedEntry, Core, Entry
from corelog.level import MAX_LEVEL, MIN_LEVEL, Level

_COUNTERS_PER_LEVEL = 4096


def fnv32a(s: str | bytes) -> int:
    """Return the 32-bit FNV-1a hash of the UTF-8 bytes of ``s``."""
    data = s.encode("utf-8") if isinstance(s, str) else bytes(s)
    h = 2166136261
    for b in data:
        h ^= b
        h = (h * 16777619) & 0xFFFFFFFF
    return h


class SamplingDecision(enum.IntFlag):
    """The sampler's decision about an entry, as a bit field."""

    LOG_DROPPED = 1
    LOG_SAMPLED = 2


SamplingHook = Callable[[Entry, SamplingDecision], object]


def _nop_sampling_hook(ent: Entry, dec: SamplingDecision) -> None:
    return None


class _Counter:
    __slots__ = ("reset_at", "count")

    def __init__(self) -> None:
        self.reset_at = 0
        self.count = 0

    def inc_check_reset(self, now: int, tick: int) -> int:
        if self.reset_at > now:
            self.count += 1
            return self.count
        self.count = 1
        self.reset_at = now + tick
        return 1


class _Counters:
    """Counters per level and message hash, shared by a sampler and its children."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[tuple[int, int], _Counter] = {}

    def inc_check_reset(self, lvl: Level, key: str, now: int, tick: int) -> int:
        slot = (int(lvl) - int(MIN_LEVEL), fnv32a(key) % _COUNTERS_PER_LEVEL)
        with self._lock:
            counter = self._counters.get(slot)
            if counter is None:
                counter = self._counters[slot] = _Counter()
            return counter.inc_check_reset(now, tick)


@dataclass(frozen=True)
class SamplerOption:
    """Configures a sampler."""

    apply: Callable[[_Sampler], None]


def sampler_hook(hook: SamplingHook) -> SamplerOption:
    """Return an option that reports every sampling decision to ``hook``."""

    def apply(s: _Sampler) -> None:
        s.hook = hook

    return SamplerOption(apply)


class _Sampler:
    def __init__(
        self,
        core: Core,
        counts: _Counters,
        tick: int,
        first: int,
        thereafter: int,
        hook: SamplingHook,
    ) -> None:
        self._core = core
        self._counts = counts
        self.tick = tick
        self.first = first
        self.thereafter = thereafter
        self.hook = hook

    def enabled(self, lvl: Level) -> bool:
        return self._core.enabled(lvl)

    def with_fields(self, fields: Sequence[Any]) -> _Sampler:
        return _Sampler(
            self._core.with_fields(fields),
            self._counts,
            self.tick,
            self.first,
            self.thereafter,
            self.hook,
        )

    def check(self, ent: Entry, ce: CheckedEntry | None) -> CheckedEntry | None:
        if not self.enabled(ent.level):
            return ce
        if MIN_LEVEL <= ent.level <= MAX_LEVEL:
            n = self._counts.inc_check_reset(
                ent.level, ent.message, ent.time.unix_nano(), self.tick
            )
            if n > self.first and (
                self.thereafter == 0 or (n - self.first) % self.thereafter != 0
            ):
                self.hook(ent, SamplingDecision.LOG_DROPPED)
                return ce
            self.hook(ent, SamplingDecision.LOG_SAMPLED)
        return self._core.check(ent, ce)

    def write(self, ent: Entry, fields: Sequence[Any]) -> None:
        self._core.write(ent, fields)

    def sync(self) -> None:
        self._core.sync()


def new_sampler_with_options(
    core: Core, tick: int, first: int, thereafter: int, *args: SamplerOption
) -> Core:
    """Return a core that samples entries by level and message.

    In each ``tick`` nanoseconds the first ``first`` entries with the same
    level and message are logged, then every ``thereafter``-th; with
    ``thereafter`` zero the rest are dropped.
    """
    s = _Sampler(core, _Counters(), int(tick), int(first), int(thereafter), _nop_sampling_hook)
    for opt in args:
        opt.apply(s)
    return s


def new_sampler(core: Core, tick: int, first: int, thereafter: int) -> Core:
    """Return a sampling core without options."""
    return new_sampler_with_options(core, tick, first, thereafter)