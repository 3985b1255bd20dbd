"""Interfaces that let user types add themselves to a log context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class ObjectMarshaler(Protocol):
    """A type that can write itself into an object encoder.

    Implementations raise an exception to report a failure.
    """

    def marshal_log_object(self, enc: Any) -> None: ...


@runtime_checkable
class ArrayMarshaler(Protocol):
    """A type that can write itself into an array encoder.

    Implementations raise an exception to report a failure.
    """

    def marshal_log_array(self, enc: Any) -> None: ...


@dataclass(frozen=True)
class ObjectMarshalerFunc:
    """Adapts a plain function into an ObjectMarshaler."""

    fn: Callable[[Any], object]

    def marshal_log_object(self, enc: Any) -> None:
        """Call the wrapped function with the encoder."""
        self.fn(enc)


@dataclass(frozen=True)
class ArrayMarshalerFunc:
    """Adapts a plain function into an ArrayMarshaler."""

    fn: Callable[[Any], object]

    def marshal_log_array(self, enc: Any) -> None:
        """Call the wrapped function with the encoder."""
        self.fn(enc)