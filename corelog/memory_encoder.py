"""An object encoder backed by plain dicts and lists, handy in tests."""

from __future__ import annotations

import struct
from typing import Any

from corelog.marshaler import ArrayMarshaler, ObjectMarshaler
from corelog.timefmt import Duration, Time


def _to_float32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", float(value)))[0]


def _to_complex64(value: complex) -> complex:
    value = complex(value)
    return complex(_to_float32(value.real), _to_float32(value.imag))


def _unsigned(value: int) -> int:
    value = int(value)
    if value < 0:
        raise ValueError(f"unsigned value must not be negative: {value}")
    return value


def _text(value: bytes | bytearray | str) -> str:
    if isinstance(value, str):
        return value
    return bytes(value).decode("utf-8", errors="replace")


class _SliceArrayEncoder:
    """An array encoder backed by a list."""

    def __init__(self) -> None:
        self.elems: list[Any] = []

    def append_array(self, marshaler: ArrayMarshaler) -> None:
        inner = _SliceArrayEncoder()
        try:
            marshaler.marshal_log_array(inner)
        finally:
            self.elems.append(inner.elems)

    def append_object(self, marshaler: ObjectMarshaler) -> None:
        enc = MapObjectEncoder()
        try:
            marshaler.marshal_log_object(enc)
        finally:
            self.elems.append(enc.fields)

    def append_reflected(self, value: Any) -> None:
        self.elems.append(value)

    def append_bool(self, value: bool) -> None:
        self.elems.append(bool(value))

    def append_byte_string(self, value: bytes) -> None:
        self.elems.append(_text(value))

    def append_complex(self, value: complex) -> None:
        self.elems.append(complex(value))

    def append_complex64(self, value: complex) -> None:
        self.elems.append(_to_complex64(value))

    def append_duration(self, value: int) -> None:
        self.elems.append(Duration(value))

    def append_float(self, value: float) -> None:
        self.elems.append(float(value))

    def append_float32(self, value: float) -> None:
        self.elems.append(_to_float32(value))

    def append_int(self, value: int) -> None:
        self.elems.append(int(value))

    def append_uint(self, value: int) -> None:
        self.elems.append(_unsigned(value))

    def append_string(self, value: str) -> None:
        self.elems.append(value)

    def append_time(self, value: Time) -> None:
        self.elems.append(value)


class MapObjectEncoder:
    """An object encoder that records every field into ``fields``."""

    def __init__(self) -> None:
        self.fields: dict[str, Any] = {}
        self._cur = self.fields

    def add_array(self, key: str, marshaler: ArrayMarshaler) -> None:
        """Store the marshaled elements under ``key``, even if marshaling fails."""
        arr = _SliceArrayEncoder()
        try:
            marshaler.marshal_log_array(arr)
        finally:
            self._cur[key] = arr.elems

    def add_object(self, key: str, marshaler: ObjectMarshaler) -> None:
        """Store the marshaled object under ``key``, even if marshaling fails."""
        nested = MapObjectEncoder()
        self._cur[key] = nested.fields
        marshaler.marshal_log_object(nested)

    def add_binary(self, key: str, value: bytes) -> None:
        self._cur[key] = bytes(value)

    def add_byte_string(self, key: str, value: bytes) -> None:
        self._cur[key] = _text(value)

    def add_bool(self, key: str, value: bool) -> None:
        self._cur[key] = bool(value)

    def add_complex(self, key: str, value: complex) -> None:
        self._cur[key] = complex(value)

    def add_complex64(self, key: str, value: complex) -> None:
        self._cur[key] = _to_complex64(value)

    def add_duration(self, key: str, value: int) -> None:
        self._cur[key] = Duration(value)

    def add_float(self, key: str, value: float) -> None:
        self._cur[key] = float(value)

    def add_float32(self, key: str, value: float) -> None:
        self._cur[key] = _to_float32(value)

    def add_int(self, key: str, value: int) -> None:
        self._cur[key] = int(value)

    def add_uint(self, key: str, value: int) -> None:
        self._cur[key] = _unsigned(value)

    def add_string(self, key: str, value: str) -> None:
        self._cur[key] = value

    def add_time(self, key: str, value: Time) -> None:
        self._cur[key] = value

    def add_reflected(self, key: str, value: Any) -> None:
        self._cur[key] = value

    def open_namespace(self, key: str) -> None:
        """Nest every following field inside a new map under ``key``."""
        namespace: dict[str, Any] = {}
        self._cur[key] = namespace
        self._cur = namespace