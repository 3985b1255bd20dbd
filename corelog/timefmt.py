"""Nanosecond-precision instants and durations with reference-layout formatting."""

from __future__ import annotations

import re
import time as _time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Union


class Duration(int):
    """An elapsed time as an integer number of nanoseconds."""

    __slots__ = ()

    def __str__(self) -> str:
        return _format_duration(int(self))

    def __repr__(self) -> str:
        return f"Duration({int(self)})"

    def __format__(self, spec: str) -> str:
        return str(self) if not spec else int.__format__(int(self), spec)

    @property
    def nanoseconds(self) -> int:
        return int(self)

    def total_seconds(self) -> float:
        return int(self) / 1e9

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> Duration:
        micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
        return cls(micros * 1000)


NANOSECOND = Duration(1)
MICROSECOND = Duration(1000)
MILLISECOND = Duration(1_000_000)
SECOND = Duration(1_000_000_000)
MINUTE = Duration(60 * SECOND)
HOUR = Duration(60 * MINUTE)

_NANOS_PER_SECOND = 1_000_000_000


def _split_fraction(value: int, prec: int) -> tuple[int, str]:
    whole, frac = divmod(value, 10**prec)
    if frac == 0:
        return whole, ""
    return whole, "." + f"{frac:0{prec}d}".rstrip("0")


def _format_duration(d: int) -> str:
    neg = d < 0
    u = -d if neg else d
    if u == 0:
        return "0s"
    if u < _NANOS_PER_SECOND:
        if u < MICROSECOND:
            prec, unit = 0, "ns"
        elif u < MILLISECOND:
            prec, unit = 3, "µs"
        else:
            prec, unit = 6, "ms"
        whole, frac = _split_fraction(u, prec)
        text = f"{whole}{frac}{unit}"
    else:
        whole, frac = _split_fraction(u, 9)
        hours, rest = divmod(whole, 3600)
        minutes, seconds = divmod(rest, 60)
        text = f"{seconds}{frac}s"
        if whole >= 60:
            text = f"{minutes}m{text}"
        if hours:
            text = f"{hours}h{text}"
    return "-" + text if neg else text


ISO8601_LAYOUT = "2006-01-02T15:04:05.000Z0700"
RFC3339 = "2006-01-02T15:04:05Z07:00"
RFC3339_NANO = "2006-01-02T15:04:05.999999999Z07:00"
DEFAULT_STRING_LAYOUT = "2006-01-02 15:04:05.999999999 -0700 MST"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_UNNAMED_ZONE = re.compile(r"^UTC[+-]\d\d:\d\d(:\d\d(\.\d+)?)?$")

Offset = Union[tzinfo, timedelta, int, None]


def _as_tzinfo(offset: Offset) -> tzinfo:
    if offset is None:
        return timezone.utc
    if isinstance(offset, tzinfo):
        return offset
    if isinstance(offset, timedelta):
        return timezone(offset)
    if isinstance(offset, int) and not isinstance(offset, bool):
        return timezone(timedelta(seconds=offset))
    raise TypeError(f"unsupported time zone offset: {offset!r}")


@dataclass(frozen=True)
class Time:
    """An instant as nanoseconds since the Unix epoch, viewed in a time zone."""

    nanos: int
    tz: tzinfo = field(default=timezone.utc)

    @classmethod
    def from_unix_nano(cls, nanos: int, offset: Offset = None) -> Time:
        """Build a Time from nanoseconds since the epoch.

        ``offset`` is a tzinfo, a timedelta, seconds east of UTC, or None for UTC.
        """
        return cls(int(nanos), _as_tzinfo(offset))

    @classmethod
    def from_datetime(cls, dt: datetime) -> Time:
        """Build a Time from a datetime; naive values are taken as local time."""
        if dt.tzinfo is None:
            dt = dt.astimezone()
        delta = dt - _EPOCH
        micros = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
        return cls(micros * 1000, dt.tzinfo)

    @classmethod
    def now(cls, offset: Offset = None) -> Time:
        return cls(_time.time_ns(), _as_tzinfo(offset))

    @classmethod
    def date(
        cls,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
        nanosecond: int = 0,
        offset: Offset = None,
    ) -> Time:
        """Build a Time from calendar fields in the given zone."""
        tz = _as_tzinfo(offset)
        base = cls.from_datetime(datetime(year, month, day, hour, minute, second, tzinfo=tz))
        return cls(base.nanos + nanosecond, tz)

    def unix_nano(self) -> int:
        return self.nanos

    @property
    def nanosecond(self) -> int:
        return self.nanos % _NANOS_PER_SECOND

    def in_zone(self, offset: Offset) -> Time:
        return Time(self.nanos, _as_tzinfo(offset))

    def add(self, d: int) -> Time:
        return Time(self.nanos + int(d), self.tz)

    def to_datetime(self) -> datetime:
        """Return the instant as an aware datetime (microsecond precision)."""
        sec, nsec = divmod(self.nanos, _NANOS_PER_SECOND)
        return (_EPOCH + timedelta(seconds=sec, microseconds=nsec // 1000)).astimezone(self.tz)

    def utc_offset(self) -> int:
        offset = self.to_datetime().utcoffset()
        return int(offset.total_seconds()) if offset is not None else 0

    def zone_name(self) -> str:
        name = self.to_datetime().tzname()
        if not name or _UNNAMED_ZONE.match(name):
            return ""
        return name

    def format(self, layout: str) -> str:
        """Format using a reference layout such as ``2006-01-02T15:04:05Z07:00``."""
        dt = self.to_datetime()
        offset = self.utc_offset()
        name = self.zone_name()
        nsec = self.nanosecond
        return "".join(
            chunk if isinstance(chunk, str) else _render(chunk, dt, nsec, offset, name)
            for chunk in _parse_layout(layout)
        )

    def __str__(self) -> str:
        return self.format(DEFAULT_STRING_LAYOUT)


_TZ_SUFFIXES = ("070000", "07:00:00", "0700", "07:00", "07")


@dataclass(frozen=True)
class _Std:
    kind: str
    separator: str = ""
    digit: str = ""
    width: int = 0


def _match_std(layout: str, i: int) -> tuple[_Std, int] | None:
    rest = layout[i:]
    c = rest[0]
    if c == "J":
        for tok in ("January", "Jan"):
            if rest.startswith(tok):
                return _Std(tok), len(tok)
    elif c == "M":
        for tok in ("Monday", "Mon", "MST"):
            if rest.startswith(tok):
                return _Std(tok), len(tok)
    elif c == "0":
        if len(rest) >= 2 and rest[1] in "123456":
            return _Std(rest[:2]), 2
        if rest.startswith("002"):
            return _Std("002"), 3
    elif c == "1":
        if rest.startswith("15"):
            return _Std("15"), 2
        return _Std("1"), 1
    elif c == "2":
        if rest.startswith("2006"):
            return _Std("2006"), 4
        return _Std("2"), 1
    elif c == "_":
        if rest.startswith("_2"):
            if rest.startswith("_2006"):
                return None
            return _Std("_2"), 2
        if rest.startswith("__2"):
            return _Std("__2"), 3
    elif c in "345":
        return _Std(c), 1
    elif c == "P" and rest.startswith("PM"):
        return _Std("PM"), 2
    elif c == "p" and rest.startswith("pm"):
        return _Std("pm"), 2
    elif c in "-Z":
        for tok in _TZ_SUFFIXES:
            if rest.startswith(c + tok):
                return _Std(c + tok), len(tok) + 1
    elif c in ".," and len(rest) > 1 and rest[1] in "09":
        digit = rest[1]
        run = len(rest[1:]) - len(rest[1:].lstrip(digit))
        after = rest[1 + run : 2 + run]
        if not (after and after in "0123456789"):
            return _Std("frac", c, digit, run), run + 1
    return None


@lru_cache(maxsize=64)
def _parse_layout(layout: str) -> tuple[str | _Std, ...]:
    chunks: list[str | _Std] = []
    literal: list[str] = []
    i = 0
    while i < len(layout):
        found = _match_std(layout, i)
        if found is None:
            literal.append(layout[i])
            i += 1
            continue
        if literal:
            chunks.append("".join(literal))
            literal.clear()
        std, length = found
        chunks.append(std)
        i += length
    if literal:
        chunks.append("".join(literal))
    return tuple(chunks)


def _format_zone(kind: str, offset: int, name: str) -> str:
    if kind == "MST":
        if name:
            return name
        minutes = offset // 60 if offset >= 0 else -((-offset) // 60)
        sign = "-" if minutes < 0 else "+"
        minutes = abs(minutes)
        return f"{sign}{minutes // 60:02d}{minutes % 60:02d}"
    prefix, spec = kind[0], kind[1:]
    if prefix == "Z" and offset == 0:
        return "Z"
    absolute = abs(offset)
    zone = absolute // 60
    sign = "-" if offset < 0 else "+"
    colon = ":" in spec
    parts = [sign, f"{zone // 60:02d}"]
    if spec != "07":
        parts.append((":" if colon else "") + f"{zone % 60:02d}")
    if spec in ("070000", "07:00:00"):
        parts.append((":" if colon else "") + f"{absolute % 60:02d}")
    return "".join(parts)


def _render(std: _Std, dt: datetime, nsec: int, offset: int, name: str) -> str:
    kind = std.kind
    hour12 = dt.hour % 12 or 12
    yday = dt.timetuple().tm_yday
    match kind:
        case "2006":
            return f"{dt.year:04d}"
        case "06":
            return f"{dt.year % 100:02d}"
        case "January":
            return dt.strftime("%B") if False else _MONTHS[dt.month - 1]
        case "Jan":
            return _MONTHS[dt.month - 1][:3]
        case "1":
            return str(dt.month)
        case "01":
            return f"{dt.month:02d}"
        case "Monday":
            return _WEEKDAYS[dt.weekday()]
        case "Mon":
            return _WEEKDAYS[dt.weekday()][:3]
        case "2":
            return str(dt.day)
        case "_2":
            return f"{dt.day:>2}"
        case "02":
            return f"{dt.day:02d}"
        case "__2":
            return f"{yday:>3}"
        case "002":
            return f"{yday:03d}"
        case "15":
            return f"{dt.hour:02d}"
        case "3":
            return str(hour12)
        case "03":
            return f"{hour12:02d}"
        case "4":
            return str(dt.minute)
        case "04":
            return f"{dt.minute:02d}"
        case "5":
            return str(dt.second)
        case "05":
            return f"{dt.second:02d}"
        case "PM":
            return "PM" if dt.hour >= 12 else "AM"
        case "pm":
            return "pm" if dt.hour >= 12 else "am"
        case "frac":
            digits = f"{nsec:09d}"[: min(std.width, 9)]
            if std.digit == "9":
                digits = digits.rstrip("0")
                if not digits:
                    return ""
            return std.separator + digits
        case _:
            return _format_zone(kind, offset, name)


_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")