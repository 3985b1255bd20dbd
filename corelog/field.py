"""Typed key-value fields and how they are added to an encoder."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from corelog.timefmt import Time


class FieldType(enum.IntEnum):
    """Which member of a Field carries its value and how it is serialized."""

    UNKNOWN = 0
    ARRAY_MARSHALER = 1
    OBJECT_MARSHALER = 2
    BINARY = 3
    BOOL = 4
    BYTE_STRING = 5
    COMPLEX128 = 6
    COMPLEX64 = 7
    DURATION = 8
    FLOAT64 = 9
    FLOAT32 = 10
    INT64 = 11
    INT32 = 12
    INT16 = 13
    INT8 = 14
    STRING = 15
    TIME = 16
    TIME_FULL = 17
    UINT64 = 18
    UINT32 = 19
    UINT16 = 20
    UINT8 = 21
    UINTPTR = 22
    REFLECT = 23
    NAMESPACE = 24
    STRINGER = 25
    ERROR = 26
    SKIP = 27
    INLINE_MARSHALER = 28


def _wrap(value: int, bits: int, signed: bool) -> int:
    value = int(value) & ((1 << bits) - 1)
    if signed and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _float64_from_bits(bits: int) -> float:
    return struct.unpack("<d", struct.pack("<Q", _wrap(bits, 64, False)))[0]


def _float32_from_bits(bits: int) -> float:
    return struct.unpack("<f", struct.pack("<I", _wrap(bits, 32, False)))[0]


def _as_bytes(value: Any) -> bytes:
    return bytes(value) if value is not None else b""


def _deep_equal(a: Any, b: Any) -> bool:
    if a is b:
        return True
    if isinstance(a, BaseException) and isinstance(b, BaseException):
        return type(a) is type(b) and a.args == b.args
    try:
        return bool(a == b)
    except Exception:  # noqa: BLE001 - incomparable values are unequal
        return False


@dataclass(frozen=True)
class Field:
    """A lazily marshaled key-value pair for a logger's context.

    ``integer`` carries integers, booleans (1 is true), durations in
    nanoseconds, float bit patterns and Unix nanoseconds; ``string``
    carries strings; ``interface`` carries everything else.
    """

    key: str = ""
    type: FieldType = FieldType.UNKNOWN
    integer: int = 0
    string: str = ""
    interface: Any = None

    def add_to(self, enc: Any) -> None:
        """Add the field to an object encoder.

        Failures while marshaling are recorded under ``<key>Error``.
        Raises ValueError for a field of unknown type.
        """
        adder = _ADDERS.get(self.type)
        if adder is None:
            raise ValueError(f"unknown field type: {self!r}")
        if self.type not in _FALLIBLE:
            adder(self, enc)
            return
        try:
            adder(self, enc)
        except Exception as exc:  # noqa: BLE001 - reported in the log context
            enc.add_string(f"{self.key}Error", str(exc))

    def equals(self, other: Field) -> bool:
        """Report whether two fields are equal, comparing rich values deeply."""
        if self.type != other.type or self.key != other.key:
            return False
        if self.type in (FieldType.BINARY, FieldType.BYTE_STRING):
            return _as_bytes(self.interface) == _as_bytes(other.interface)
        if self.type in _DEEP_TYPES:
            return _deep_equal(self.interface, other.interface)
        return self == other


_DEEP_TYPES = frozenset(
    {FieldType.ARRAY_MARSHALER, FieldType.OBJECT_MARSHALER, FieldType.ERROR, FieldType.REFLECT}
)

_FALLIBLE = frozenset(
    {
        FieldType.ARRAY_MARSHALER,
        FieldType.OBJECT_MARSHALER,
        FieldType.INLINE_MARSHALER,
        FieldType.REFLECT,
        FieldType.STRINGER,
        FieldType.ERROR,
    }
)


def _add_time(f: Field, enc: Any) -> None:
    if f.interface is not None:
        enc.add_time(f.key, Time.from_unix_nano(f.integer, f.interface))
    else:
        # No zone given: fall back to UTC.
        enc.add_time(f.key, Time.from_unix_nano(f.integer))


def _encode_stringer(key: str, value: Any, enc: Any) -> None:
    if value is None:
        enc.add_string(key, "<nil>")
        return
    try:
        text = str(value)
    except Exception as exc:  # noqa: BLE001 - converted to a reported failure
        raise RuntimeError(f"PANIC={exc}") from exc
    enc.add_string(key, text)


_ADDERS: dict[FieldType, Callable[[Field, Any], None]] = {
    FieldType.ARRAY_MARSHALER: lambda f, enc: enc.add_array(f.key, f.interface),
    FieldType.OBJECT_MARSHALER: lambda f, enc: enc.add_object(f.key, f.interface),
    FieldType.INLINE_MARSHALER: lambda f, enc: f.interface.marshal_log_object(enc),
    FieldType.BINARY: lambda f, enc: enc.add_binary(f.key, f.interface),
    FieldType.BOOL: lambda f, enc: enc.add_bool(f.key, f.integer == 1),
    FieldType.BYTE_STRING: lambda f, enc: enc.add_byte_string(f.key, f.interface),
    FieldType.COMPLEX128: lambda f, enc: enc.add_complex(f.key, f.interface),
    FieldType.COMPLEX64: lambda f, enc: enc.add_complex64(f.key, f.interface),
    FieldType.DURATION: lambda f, enc: enc.add_duration(f.key, _wrap(f.integer, 64, True)),
    FieldType.FLOAT64: lambda f, enc: enc.add_float(f.key, _float64_from_bits(f.integer)),
    FieldType.FLOAT32: lambda f, enc: enc.add_float32(f.key, _float32_from_bits(f.integer)),
    FieldType.INT64: lambda f, enc: enc.add_int(f.key, _wrap(f.integer, 64, True)),
    FieldType.INT32: lambda f, enc: enc.add_int(f.key, _wrap(f.integer, 32, True)),
    FieldType.INT16: lambda f, enc: enc.add_int(f.key, _wrap(f.integer, 16, True)),
    FieldType.INT8: lambda f, enc: enc.add_int(f.key, _wrap(f.integer, 8, True)),
    FieldType.STRING: lambda f, enc: enc.add_string(f.key, f.string),
    FieldType.TIME: _add_time,
    FieldType.TIME_FULL: lambda f, enc: enc.add_time(f.key, f.interface),
    FieldType.UINT64: lambda f, enc: enc.add_uint(f.key, _wrap(f.integer, 64, False)),
    FieldType.UINT32: lambda f, enc: enc.add_uint(f.key, _wrap(f.integer, 32, False)),
    FieldType.UINT16: lambda f, enc: enc.add_uint(f.key, _wrap(f.integer, 16, False)),
    FieldType.UINT8: lambda f, enc: enc.add_uint(f.key, _wrap(f.integer, 8, False)),
    FieldType.UINTPTR: lambda f, enc: enc.add_uint(f.key, _wrap(f.integer, 64, False)),
    FieldType.REFLECT: lambda f, enc: enc.add_reflected(f.key, f.interface),
    FieldType.NAMESPACE: lambda f, enc: enc.open_namespace(f.key),
    FieldType.STRINGER: lambda f, enc: _encode_stringer(f.key, f.interface, enc),
    FieldType.ERROR: lambda f, enc: encode_error(f.key, f.interface, enc),
    FieldType.SKIP: lambda f, enc: None,
}


def add_fields(enc: Any, fields: Iterable[Field]) -> None:
    """Add every field, in order, to the encoder."""
    for f in fields:
        f.add_to(enc)


def _error_causes(err: Any) -> list[Any] | None:
    if isinstance(err, BaseExceptionGroup):
        return list(err.exceptions)
    errors = getattr(err, "errors", None)
    if callable(errors):
        return list(errors())
    return None


def _has_formatter(err: Any) -> bool:
    return type(err).__format__ is not object.__format__


@dataclass(frozen=True)
class _ErrArrayElem:
    err: Any

    def marshal_log_object(self, enc: Any) -> None:
        encode_error("error", self.err, enc)

    def marshal_log_array(self, arr: Any) -> None:
        arr.append_object(self)


@dataclass(frozen=True)
class _ErrArray:
    errors: tuple[Any, ...]

    def marshal_log_array(self, arr: Any) -> None:
        for err in self.errors:
            if err is None:
                continue
            try:
                arr.append_object(_ErrArrayElem(err))
            except Exception:  # noqa: BLE001 - a bad cause must not hide the rest
                pass


def encode_error(key: str, err: Any, enc: Any) -> None:
    """Encode an error under ``key``.

    Error groups (ExceptionGroup, or anything with an ``errors()`` method)
    add ``<key>Causes``; errors whose ``+v`` format differs from their
    plain text add ``<key>Verbose``. A None error is written as ``<nil>``.
    Raises RuntimeError if the error cannot describe itself.
    """
    if err is None:
        enc.add_string(key, "<nil>")
        return
    try:
        basic = str(err)
    except Exception as exc:  # noqa: BLE001 - converted to a reported failure
        raise RuntimeError(f"PANIC={exc}") from exc
    enc.add_string(key, basic)

    try:
        causes = _error_causes(err)
        verbose = None
        if causes is None and _has_formatter(err):
            verbose = format(err, "+v")
    except Exception as exc:  # noqa: BLE001 - converted to a reported failure
        raise RuntimeError(f"PANIC={exc}") from exc

    if causes is not None:
        enc.add_array(key + "Causes", _ErrArray(tuple(causes)))
    elif verbose is not None and verbose != basic:
        enc.add_string(key + "Verbose", verbose)