"""A fast JSON encoder for log entries and the default encoder for arbitrary values."""

from __future__ import annotations

import base64
import dataclasses
import io
import json
import math
import re
import struct
from decimal import Decimal
from typing import Any, Callable, Iterable, Protocol, runtime_checkable

from corelog.encoder import DEFAULT_LINE_ENDING, EncoderConfig, full_name_encoder
from corelog.entry import Entry
from corelog.field import Field, add_fields
from corelog.marshaler import ArrayMarshaler, ObjectMarshaler
from corelog.timefmt import RFC3339_NANO, Duration, Time


@runtime_checkable
class ReflectedEncoder(Protocol):
    """Serializes values that have no dedicated encoding method.

    ``encode`` writes the encoded value to the underlying stream and raises
    an exception if the value cannot be encoded.
    """

    def encode(self, obj: Any) -> None: ...


def _json_default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if isinstance(obj, Time):
        return obj.format(RFC3339_NANO)
    raise TypeError(f"json: unsupported type: {type(obj).__name__}")


class _StdJSONEncoder:
    """Writes compact JSON followed by a newline, without escaping HTML."""

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    def encode(self, obj: Any) -> None:
        text = json.dumps(
            obj,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
            default=_json_default,
        )
        self._stream.write((text + "\n").encode("utf-8"))


def default_reflected_encoder(stream: Any) -> ReflectedEncoder:
    """Return the standard JSON encoder writing bytes to ``stream``."""
    return _StdJSONEncoder(stream)


_NO_SEPARATOR_AFTER = frozenset(b"{[:, ")

_ESCAPE_RE = re.compile(r'[\x00-\x1f"\\\ud800-\udfff]')
_SIMPLE_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _escape_char(match: re.Match[str]) -> str:
    c = match.group()
    simple = _SIMPLE_ESCAPES.get(c)
    if simple is not None:
        return simple
    code = ord(c)
    if code >= 0xD800:
        # Invalid UTF-8 or a lone surrogate.
        return "\\ufffd"
    return f"\\u00{code:02x}"


def _escape(text: str) -> bytes:
    return _ESCAPE_RE.sub(_escape_char, text).encode("utf-8")


def _escape_bytes(value: bytes | bytearray | str) -> bytes:
    if isinstance(value, str):
        return _escape(value)
    return _escape(bytes(value).decode("utf-8", errors="surrogateescape"))


def _to_float32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", float(value)))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _shortest_digits(value: float, bits: int) -> str:
    if bits == 32:
        for precision in range(9):
            text = f"{value:.{precision}e}"
            if _to_float32(float(text)) == value:
                return text
    return repr(value)


def _format_float(value: float, bits: int) -> str:
    """Format like a shortest fixed-point float: ``3.14``, ``3``, ``NaN``, ``+Inf``."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return format(Decimal(_shortest_digits(value, bits)).normalize(), "f")


def _unsigned(value: int) -> int:
    value = int(value)
    if value < 0:
        raise ValueError(f"unsigned value must not be negative: {value}")
    return value


class JSONEncoder:
    """Encodes log entries and their context as JSON objects.

    Keys are not deduplicated. With ``spaced`` a space follows every colon
    and comma.
    """

    def __init__(self, cfg: EncoderConfig | None = None, spaced: bool = False) -> None:
        cfg = cfg if cfg is not None else EncoderConfig()
        if cfg.skip_line_ending:
            line_ending = ""
        else:
            line_ending = cfg.line_ending or DEFAULT_LINE_ENDING
        self.config = dataclasses.replace(
            cfg,
            line_ending=line_ending,
            new_reflected_encoder=cfg.new_reflected_encoder or default_reflected_encoder,
        )
        self.spaced = spaced
        self._buf = bytearray()
        self._open_namespaces = 0
        self._reflect_buf: io.BytesIO | None = None
        self._reflect_enc: ReflectedEncoder | None = None

    # Object encoder methods

    def add_array(self, key: str, arr: ArrayMarshaler) -> None:
        self._add_key(key)
        self.append_array(arr)

    def add_object(self, key: str, obj: ObjectMarshaler) -> None:
        self._add_key(key)
        self.append_object(obj)

    def add_binary(self, key: str, value: bytes) -> None:
        """Add bytes as a base64 string."""
        self.add_string(key, base64.b64encode(bytes(value)).decode("ascii"))

    def add_byte_string(self, key: str, value: bytes) -> None:
        self._add_key(key)
        self.append_byte_string(value)

    def add_bool(self, key: str, value: bool) -> None:
        self._add_key(key)
        self.append_bool(value)

    def add_complex(self, key: str, value: complex) -> None:
        self._add_key(key)
        self.append_complex(value)

    def add_complex64(self, key: str, value: complex) -> None:
        self._add_key(key)
        self.append_complex64(value)

    def add_duration(self, key: str, value: int) -> None:
        self._add_key(key)
        self.append_duration(value)

    def add_float(self, key: str, value: float) -> None:
        self._add_key(key)
        self.append_float(value)

    def add_float32(self, key: str, value: float) -> None:
        self._add_key(key)
        self.append_float32(value)

    def add_int(self, key: str, value: int) -> None:
        self._add_key(key)
        self.append_int(value)

    def add_uint(self, key: str, value: int) -> None:
        self._add_key(key)
        self.append_uint(value)

    def add_string(self, key: str, value: str) -> None:
        self._add_key(key)
        self.append_string(value)

    def add_time(self, key: str, value: Time) -> None:
        self._add_key(key)
        self.append_time(value)

    def add_reflected(self, key: str, value: Any) -> None:
        """Add any value through the reflected encoder; its errors propagate."""
        encoded = self._encode_reflected(value)
        self._add_key(key)
        self._buf += encoded

    def open_namespace(self, key: str) -> None:
        """Nest every following field inside an object under ``key``."""
        self._add_key(key)
        self._buf += b"{"
        self._open_namespaces += 1

    # Array encoder methods

    def append_array(self, arr: ArrayMarshaler) -> None:
        self._add_element_separator()
        self._buf += b"["
        try:
            arr.marshal_log_array(self)
        finally:
            self._buf += b"]"

    def append_object(self, obj: ObjectMarshaler) -> None:
        # Close only the namespaces opened while marshaling this object.
        old = self._open_namespaces
        self._open_namespaces = 0
        self._add_element_separator()
        self._buf += b"{"
        try:
            obj.marshal_log_object(self)
        finally:
            self._buf += b"}"
            self._close_open_namespaces()
            self._open_namespaces = old

    def append_bool(self, value: bool) -> None:
        self._add_element_separator()
        self._buf += b"true" if value else b"false"

    def append_byte_string(self, value: bytes) -> None:
        self._add_element_separator()
        self._buf += b'"' + _escape_bytes(value) + b'"'

    def _append_complex(self, value: complex, bits: int) -> None:
        self._add_element_separator()
        value = complex(value)
        real, imag = value.real, value.imag
        if bits == 32:
            real, imag = _to_float32(real), _to_float32(imag)
        sign = "+" if imag >= 0 else ""
        text = f'"{_format_float(real, bits)}{sign}{_format_float(imag, bits)}i"'
        self._buf += text.encode("ascii")

    def append_complex(self, value: complex) -> None:
        self._append_complex(value, 64)

    def append_complex64(self, value: complex) -> None:
        self._append_complex(value, 32)

    def append_duration(self, value: int) -> None:
        cur = len(self._buf)
        encode = self.config.encode_duration
        if encode is not None:
            encode(Duration(value), self)
        if cur == len(self._buf):
            # A no-op duration encoder: fall back to nanoseconds to keep the JSON valid.
            self.append_int(int(value))

    def _append_float(self, value: float, bits: int) -> None:
        self._add_element_separator()
        value = float(value)
        if math.isnan(value) or math.isinf(value):
            self._buf += f'"{_format_float(value, bits)}"'.encode("ascii")
        else:
            self._buf += _format_float(value, bits).encode("ascii")

    def append_float(self, value: float) -> None:
        self._append_float(value, 64)

    def append_float32(self, value: float) -> None:
        self._append_float(_to_float32(value), 32)

    def append_int(self, value: int) -> None:
        self._add_element_separator()
        self._buf += str(int(value)).encode("ascii")

    def append_uint(self, value: int) -> None:
        value = _unsigned(value)
        self._add_element_separator()
        self._buf += str(value).encode("ascii")

    def append_string(self, value: str) -> None:
        self._add_element_separator()
        self._buf += b'"' + _escape(value) + b'"'

    def append_time(self, value: Time) -> None:
        cur = len(self._buf)
        encode = self.config.encode_time
        if encode is not None:
            encode(value, self)
        if cur == len(self._buf):
            # A no-op time encoder: fall back to Unix nanoseconds to keep the JSON valid.
            self.append_int(value.unix_nano())

    def append_time_layout(self, t: Time, layout: str) -> None:
        """Append ``t`` formatted with a reference layout, as a string."""
        self._add_element_separator()
        self._buf += b'"' + t.format(layout).encode("utf-8") + b'"'

    def append_reflected(self, value: Any) -> None:
        encoded = self._encode_reflected(value)
        self._add_element_separator()
        self._buf += encoded

    # Whole entries

    def clone(self) -> JSONEncoder:
        """Copy the encoder so that fields added to the copy leave this one alone."""
        copy = self._clone_empty()
        copy._buf += self._buf
        return copy

    def encode_entry(self, ent: Entry, fields: Iterable[Field] | None = None) -> bytes:
        """Encode the entry, the accumulated context and ``fields`` as one line."""
        final = self._clone_empty()
        cfg = final.config
        final._buf += b"{"

        if cfg.level_key and cfg.encode_level is not None:
            final._add_key(cfg.level_key)
            cur = len(final._buf)
            cfg.encode_level(ent.level, final)
            if cur == len(final._buf):
                final.append_string(str(ent.level))
        if cfg.time_key:
            final.add_time(cfg.time_key, ent.time)
        if ent.logger_name and cfg.name_key:
            final._add_key(cfg.name_key)
            cur = len(final._buf)
            (cfg.encode_name or full_name_encoder)(ent.logger_name, final)
            if cur == len(final._buf):
                final.append_string(ent.logger_name)
        if ent.caller.defined:
            if cfg.caller_key:
                final._add_key(cfg.caller_key)
                cur = len(final._buf)
                if cfg.encode_caller is not None:
                    cfg.encode_caller(ent.caller, final)
                if cur == len(final._buf):
                    final.append_string(str(ent.caller))
            if cfg.function_key:
                final._add_key(cfg.function_key)
                final.append_string(ent.caller.function)
        if cfg.message_key:
            final._add_key(cfg.message_key)
            final.append_string(ent.message)
        if self._buf:
            final._add_element_separator()
            final._buf += self._buf
        add_fields(final, fields or ())
        final._close_open_namespaces()
        if ent.stack and cfg.stacktrace_key:
            final.add_string(cfg.stacktrace_key, ent.stack)
        final._buf += b"}"
        final._buf += cfg.line_ending.encode("utf-8")
        return bytes(final._buf)

    # Internals

    def _clone_empty(self) -> JSONEncoder:
        copy = JSONEncoder.__new__(JSONEncoder)
        copy.config = self.config
        copy.spaced = self.spaced
        copy._buf = bytearray()
        copy._open_namespaces = self._open_namespaces
        copy._reflect_buf = None
        copy._reflect_enc = None
        return copy

    def _encode_reflected(self, obj: Any) -> bytes:
        if obj is None:
            return b"null"
        if self._reflect_buf is None or self._reflect_enc is None:
            self._reflect_buf = io.BytesIO()
            new_encoder: Callable[[Any], ReflectedEncoder] = self.config.new_reflected_encoder
            self._reflect_enc = new_encoder(self._reflect_buf)
        else:
            self._reflect_buf.seek(0)
            self._reflect_buf.truncate(0)
        self._reflect_enc.encode(obj)
        data = self._reflect_buf.getvalue()
        return data[:-1] if data.endswith(b"\n") else data

    def _close_open_namespaces(self) -> None:
        self._buf += b"}" * self._open_namespaces
        self._open_namespaces = 0

    def _add_key(self, key: str) -> None:
        self._add_element_separator()
        self._buf += b'"' + _escape(key) + b'":'
        if self.spaced:
            self._buf += b" "

    def _add_element_separator(self) -> None:
        if not self._buf or self._buf[-1] in _NO_SEPARATOR_AFTER:
            return
        self._buf += b", " if self.spaced else b","


def new_json_encoder(cfg: EncoderConfig) -> JSONEncoder:
    """Create a compact JSON encoder that escapes all keys and values."""
    return JSONEncoder(cfg)