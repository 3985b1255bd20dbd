import pytest

from corelog.marshaler import (
    ArrayMarshaler,
    ArrayMarshalerFunc,
    ObjectMarshaler,
    ObjectMarshalerFunc,
)


def test_object_marshaler_func_passes_encoder():
    seen = []
    marshaler = ObjectMarshalerFunc(seen.append)
    enc = object()
    assert marshaler.marshal_log_object(enc) is None
    assert len(seen) == 1
    assert seen[0] is enc


def test_array_marshaler_func_passes_encoder():
    seen = []
    marshaler = ArrayMarshalerFunc(seen.append)
    enc = []
    marshaler.marshal_log_array(enc)
    marshaler.marshal_log_array(enc)
    assert len(seen) == 2
    assert all(item is enc for item in seen)


def test_object_marshaler_func_propagates_errors():
    def fail(enc):
        raise ValueError("too few users")

    with pytest.raises(ValueError, match="too few users"):
        ObjectMarshalerFunc(fail).marshal_log_object(None)


def test_array_marshaler_func_propagates_errors():
    def fail(enc):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        ArrayMarshalerFunc(fail).marshal_log_array(None)


def test_func_adapters_write_into_encoder():
    def write(enc):
        enc.append("user")
        enc.append("user")

    out = []
    wrapped = ArrayMarshalerFunc(write)
    assert isinstance(wrapped, ArrayMarshaler)
    wrapped.marshal_log_array(out)
    assert out == ["user", "user"]


def test_object_func_satisfies_protocol_and_writes():
    store = {}
    wrapped = ObjectMarshalerFunc(lambda enc: enc.update(users=2))
    assert isinstance(wrapped, ObjectMarshaler)
    wrapped.marshal_log_object(store)
    assert store == {"users": 2}


def test_func_adapters_compare_by_function():
    def fn(enc):
        return None

    assert ObjectMarshalerFunc(fn) == ObjectMarshalerFunc(fn)
    assert ArrayMarshalerFunc(fn) != ArrayMarshalerFunc(lambda enc: None)