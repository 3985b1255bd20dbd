"""Encoder interfaces, their configuration, and the primitive value encoders."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

import yaml

from corelog.entry import Entry, EntryCaller
from corelog.level import Level, capital_color_string, lowercase_color_string
from corelog.marshaler import ArrayMarshaler, ObjectMarshaler
from corelog.timefmt import ISO8601_LAYOUT, RFC3339, RFC3339_NANO, Duration, Time

DEFAULT_LINE_ENDING = "\n"
OMIT_KEY = ""


@runtime_checkable
class PrimitiveArrayEncoder(Protocol):
    """Appends built-in values to an array-like context."""

    def append_bool(self, value: bool) -> None: ...

    def append_byte_string(self, value: bytes) -> None: ...

    def append_complex(self, value: complex) -> None: ...

    def append_complex64(self, value: complex) -> None: ...

    def append_float(self, value: float) -> None: ...

    def append_float32(self, value: float) -> None: ...

    def append_int(self, value: int) -> None: ...

    def append_uint(self, value: int) -> None: ...

    def append_string(self, value: str) -> None: ...


@runtime_checkable
class ArrayEncoder(PrimitiveArrayEncoder, Protocol):
    """Appends any loggable value, including nested arrays and objects."""

    def append_duration(self, value: int) -> None: ...

    def append_time(self, value: Time) -> None: ...

    def append_array(self, marshaler: ArrayMarshaler) -> None: ...

    def append_object(self, marshaler: ObjectMarshaler) -> None: ...

    def append_reflected(self, value: Any) -> None: ...


@runtime_checkable
class ObjectEncoder(Protocol):
    """Adds key-value pairs to a map-like context."""

    def add_array(self, key: str, marshaler: ArrayMarshaler) -> None: ...

    def add_object(self, key: str, marshaler: ObjectMarshaler) -> None: ...

    def add_binary(self, key: str, value: bytes) -> None: ...

    def add_byte_string(self, key: str, value: bytes) -> None: ...

    def add_bool(self, key: str, value: bool) -> None: ...

    def add_complex(self, key: str, value: complex) -> None: ...

    def add_complex64(self, key: str, value: complex) -> None: ...

    def add_duration(self, key: str, value: int) -> None: ...

    def add_float(self, key: str, value: float) -> None: ...

    def add_float32(self, key: str, value: float) -> None: ...

    def add_int(self, key: str, value: int) -> None: ...

    def add_uint(self, key: str, value: int) -> None: ...

    def add_string(self, key: str, value: str) -> None: ...

    def add_time(self, key: str, value: Time) -> None: ...

    def add_reflected(self, key: str, value: Any) -> None: ...

    def open_namespace(self, key: str) -> None: ...


@runtime_checkable
class Encoder(ObjectEncoder, Protocol):
    """A format-specific marshaler for whole log entries."""

    def clone(self) -> Encoder: ...

    def encode_entry(self, ent: Entry, fields: Any) -> bytes: ...


LevelEncoder = Callable[[Level, PrimitiveArrayEncoder], None]
TimeEncoder = Callable[[Time, PrimitiveArrayEncoder], None]
DurationEncoder = Callable[[int, PrimitiveArrayEncoder], None]
CallerEncoder = Callable[[EntryCaller, PrimitiveArrayEncoder], None]
NameEncoder = Callable[[str, PrimitiveArrayEncoder], None]


def _decode(text: str | bytes) -> str:
    if isinstance(text, (bytes, bytearray)):
        return bytes(text).decode("utf-8", errors="replace")
    return text


# Level encoders


def lowercase_level_encoder(level: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the level as a lower-case name, e.g. ``info``."""
    enc.append_string(str(Level(level)))


def lowercase_color_level_encoder(level: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the lower-case level name wrapped in its terminal colour."""
    enc.append_string(lowercase_color_string(Level(level)))


def capital_level_encoder(level: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the level as an all-caps name, e.g. ``INFO``."""
    enc.append_string(Level(level).capital_string())


def capital_color_level_encoder(level: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the all-caps level name wrapped in its terminal colour."""
    enc.append_string(capital_color_string(Level(level)))


_LEVEL_ENCODERS: dict[str, LevelEncoder] = {
    "capital": capital_level_encoder,
    "capitalColor": capital_color_level_encoder,
    "color": lowercase_color_level_encoder,
}


def level_encoder_from_text(text: str | bytes) -> LevelEncoder:
    """Choose a level encoder by name; unknown names give the lower-case one."""
    return _LEVEL_ENCODERS.get(_decode(text), lowercase_level_encoder)


# Time encoders


def epoch_time_encoder(t: Time, enc: PrimitiveArrayEncoder) -> None:
    """Append floating-point seconds since the Unix epoch."""
    enc.append_float(float(t.unix_nano()) / 1e9)


def epoch_millis_time_encoder(t: Time, enc: PrimitiveArrayEncoder) -> None:
    """Append floating-point milliseconds since the Unix epoch."""
    enc.append_float(float(t.unix_nano()) / 1e6)


def epoch_nanos_time_encoder(t: Time, enc: PrimitiveArrayEncoder) -> None:
    """Append integer nanoseconds since the Unix epoch."""
    enc.append_int(t.unix_nano())


def _encode_time_layout(t: Time, layout: str, enc: PrimitiveArrayEncoder) -> None:
    append_layout = getattr(enc, "append_time_layout", None)
    if callable(append_layout):
        append_layout(t, layout)
        return
    enc.append_string(t.format(layout))


def iso8601_time_encoder(t: Time, enc: PrimitiveArrayEncoder) -> None:
    """Append an ISO8601 string with millisecond precision."""
    _encode_time_layout(t, ISO8601_LAYOUT, enc)


def rfc3339_time_encoder(t: Time, enc: PrimitiveArrayEncoder) -> None:
    """Append an RFC3339 string."""
    _encode_time_layout(t, RFC3339, enc)


def rfc3339nano_time_encoder(t: Time, enc: PrimitiveArrayEncoder) -> None:
    """Append an RFC3339 string with nanosecond precision."""
    _encode_time_layout(t, RFC3339_NANO, enc)


def time_encoder_of_layout(layout: str) -> TimeEncoder:
    """Return a time encoder that formats with the given reference layout."""

    def encode(t: Time, enc: PrimitiveArrayEncoder) -> None:
        _encode_time_layout(t, layout, enc)

    encode.__name__ = f"time_encoder_of_layout({layout!r})"
    return encode


_TIME_ENCODERS: dict[str, TimeEncoder] = {
    "rfc3339nano": rfc3339nano_time_encoder,
    "RFC3339Nano": rfc3339nano_time_encoder,
    "rfc3339": rfc3339_time_encoder,
    "RFC3339": rfc3339_time_encoder,
    "iso8601": iso8601_time_encoder,
    "ISO8601": iso8601_time_encoder,
    "millis": epoch_millis_time_encoder,
    "nanos": epoch_nanos_time_encoder,
}


def time_encoder_from_text(text: str | bytes) -> TimeEncoder:
    """Choose a time encoder by name; unknown names give epoch seconds."""
    return _TIME_ENCODERS.get(_decode(text), epoch_time_encoder)


def time_encoder_from_value(value: Any) -> TimeEncoder:
    """Choose a time encoder from a decoded config value.

    A mapping selects a custom layout from its ``layout`` entry; a string
    is looked up by name. Raises TypeError for anything else.
    """
    if isinstance(value, Mapping):
        layout = value.get("layout", "")
        if layout is None:
            layout = ""
        if not isinstance(layout, str):
            raise TypeError(f"time encoder layout must be a string, not {type(layout).__name__}")
        return time_encoder_of_layout(layout)
    if value is None:
        return time_encoder_from_text("")
    if isinstance(value, (str, bytes, bytearray)):
        return time_encoder_from_text(value)
    if isinstance(value, (bool, int, float)):
        return time_encoder_from_text(str(value))
    raise TypeError(f"cannot build a time encoder from {type(value).__name__}")


# Duration encoders


def seconds_duration_encoder(d: int, enc: PrimitiveArrayEncoder) -> None:
    """Append floating-point seconds elapsed."""
    enc.append_float(float(int(d)) / 1e9)


def nanos_duration_encoder(d: int, enc: PrimitiveArrayEncoder) -> None:
    """Append integer nanoseconds elapsed."""
    enc.append_int(int(d))


def millis_duration_encoder(d: int, enc: PrimitiveArrayEncoder) -> None:
    """Append integer milliseconds elapsed, truncated toward zero."""
    nanos = int(d)
    millis = abs(nanos) // 1_000_000
    enc.append_int(-millis if nanos < 0 else millis)


def string_duration_encoder(d: int, enc: PrimitiveArrayEncoder) -> None:
    """Append the human-readable form of the duration, e.g. ``1m0s``."""
    enc.append_string(str(Duration(d)))


_DURATION_ENCODERS: dict[str, DurationEncoder] = {
    "string": string_duration_encoder,
    "nanos": nanos_duration_encoder,
    "ms": millis_duration_encoder,
}


def duration_encoder_from_text(text: str | bytes) -> DurationEncoder:
    """Choose a duration encoder by name; unknown names give seconds."""
    return _DURATION_ENCODERS.get(_decode(text), seconds_duration_encoder)


# Caller and name encoders


def full_caller_encoder(caller: EntryCaller, enc: PrimitiveArrayEncoder) -> None:
    """Append the caller as ``/full/path/to/package/file:line``."""
    enc.append_string(str(caller))


def short_caller_encoder(caller: EntryCaller, enc: PrimitiveArrayEncoder) -> None:
    """Append the caller as ``package/file:line``."""
    enc.append_string(caller.trimmed_path())


def caller_encoder_from_text(text: str | bytes) -> CallerEncoder:
    """Choose a caller encoder: ``full`` or, for anything else, the short one."""
    return full_caller_encoder if _decode(text) == "full" else short_caller_encoder


def full_name_encoder(logger_name: str, enc: PrimitiveArrayEncoder) -> None:
    """Append the logger name unchanged."""
    enc.append_string(logger_name)


def name_encoder_from_text(text: str | bytes) -> NameEncoder:
    """Choose a name encoder; every name gives the full one."""
    _decode(text)
    return full_name_encoder


@dataclass
class EncoderConfig:
    """Keys and value encoders used by the concrete entry encoders.

    An empty key omits that part of the entry.
    """

    message_key: str = ""
    level_key: str = ""
    time_key: str = ""
    name_key: str = ""
    caller_key: str = ""
    function_key: str = ""
    stacktrace_key: str = ""
    skip_line_ending: bool = False
    line_ending: str = ""
    encode_level: LevelEncoder | None = None
    encode_time: TimeEncoder | None = None
    encode_duration: DurationEncoder | None = None
    encode_caller: CallerEncoder | None = None
    encode_name: NameEncoder | None = None
    new_reflected_encoder: Callable[[Any], Any] | None = None
    console_separator: str = ""


_STRING_KEYS = {
    "messageKey": "message_key",
    "levelKey": "level_key",
    "timeKey": "time_key",
    "nameKey": "name_key",
    "callerKey": "caller_key",
    "functionKey": "function_key",
    "stacktraceKey": "stacktrace_key",
    "lineEnding": "line_ending",
    "consoleSeparator": "console_separator",
}

_TEXT_ENCODERS: dict[str, tuple[str, Callable[[str], Any]]] = {
    "levelEncoder": ("encode_level", level_encoder_from_text),
    "durationEncoder": ("encode_duration", duration_encoder_from_text),
    "callerEncoder": ("encode_caller", caller_encoder_from_text),
    "nameEncoder": ("encode_name", name_encoder_from_text),
}


def encoder_config_from_mapping(data: Mapping[str, Any] | None) -> EncoderConfig:
    """Build an EncoderConfig from a mapping with camel-case keys.

    Unknown keys are ignored. Raises TypeError on values of the wrong type.
    """
    if data is None:
        return EncoderConfig()
    if not isinstance(data, Mapping):
        raise TypeError(f"encoder config must be a mapping, not {type(data).__name__}")
    values: dict[str, Any] = {}
    for key, attr in _STRING_KEYS.items():
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise TypeError(f"{key} must be a string, not {type(value).__name__}")
        values[attr] = value
    skip = data.get("skipLineEnding")
    if skip is not None:
        if not isinstance(skip, bool):
            raise TypeError(f"skipLineEnding must be a boolean, not {type(skip).__name__}")
        values["skip_line_ending"] = skip
    for key, (attr, build) in _TEXT_ENCODERS.items():
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str):
            raise TypeError(f"{key} must be a string, not {type(value).__name__}")
        values[attr] = build(value)
    if "timeEncoder" in data:
        values["encode_time"] = time_encoder_from_value(data["timeEncoder"])
    return EncoderConfig(**values)


def encoder_config_from_json(text: str | bytes) -> EncoderConfig:
    """Build an EncoderConfig from a JSON document.

    Raises ValueError on malformed JSON and TypeError on wrong types.
    """
    return encoder_config_from_mapping(json.loads(text))


def encoder_config_from_yaml(text: str | bytes) -> EncoderConfig:
    """Build an EncoderConfig from a YAML document.

    Raises ValueError on malformed YAML and TypeError on wrong types.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid YAML encoder config: {exc}") from exc
    return encoder_config_from_mapping(data)