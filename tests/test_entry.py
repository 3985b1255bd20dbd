import io
import threading

import pytest

from corelog.entry import (
    CheckedEntry,
    CheckWriteAction,
    Entry,
    EntryCaller,
    LoggedExit,
    LoggedPanic,
    add_core,
    new_entry_caller,
    should,
)
from corelog.level import Level


class RecordingCore:
    def __init__(self, fail=None):
        self.written = []
        self.fail = fail

    def enabled(self, lvl):
        return True

    def with_fields(self, fields):
        return self

    def check(self, ent, ce):
        return add_core(ce, ent, self)

    def write(self, ent, fields):
        self.written.append((ent, list(fields)))
        if self.fail:
            raise RuntimeError(self.fail)

    def sync(self):
        pass


@pytest.mark.parametrize(
    "caller, full, short",
    [
        (new_entry_caller(100, "/path/to/foo.go", 42, False), "undefined", "undefined"),
        (new_entry_caller(100, "/path/to/foo.go", 42, True), "/path/to/foo.go:42", "to/foo.go:42"),
        (new_entry_caller(100, "to/foo.go", 42, True), "to/foo.go:42", "to/foo.go:42"),
    ],
)
def test_entry_caller(caller, full, short):
    assert str(caller) == full
    assert caller.full_path() == full
    assert caller.trimmed_path() == short


def test_entry_caller_without_directory():
    caller = EntryCaller(defined=True, file="foo.go", line=7)
    assert caller.trimmed_path() == "foo.go:7"


def test_entry_defaults():
    ent = Entry()
    assert ent.level == Level.INFO
    assert ent.message == ""
    assert ent.caller.defined is False
    assert ent.time.unix_nano() == 0


def test_add_core_creates_and_appends():
    ent = Entry(message="hi")
    first, second = RecordingCore(), RecordingCore()
    ce = add_core(None, ent, first)
    assert ce.entry == ent
    assert ce.cores == [first]
    same = add_core(ce, ent, second)
    assert same is ce
    assert ce.cores == [first, second]


def test_should_on_none_creates_entry():
    ent = Entry(message="x")
    ce = should(None, ent, CheckWriteAction.WRITE_THEN_PANIC)
    assert ce.entry == ent
    assert ce.should == CheckWriteAction.WRITE_THEN_PANIC
    assert ce.set_should(CheckWriteAction.WRITE_THEN_NOOP) is ce
    assert ce.should == CheckWriteAction.WRITE_THEN_NOOP


def test_fresh_checked_entry_state():
    ce = CheckedEntry()
    assert ce.dirty is False
    assert ce.error_output is None
    assert ce.should == CheckWriteAction.WRITE_THEN_NOOP
    assert ce.cores == []


def test_write_then_panic():
    ce = should(None, Entry(message="boom"), CheckWriteAction.WRITE_THEN_PANIC)
    with pytest.raises(LoggedPanic) as info:
        ce.write()
    assert info.value.message == "boom"


def test_write_then_fatal():
    ce = should(None, Entry(), CheckWriteAction.WRITE_THEN_FATAL)
    with pytest.raises(LoggedExit) as info:
        ce.write()
    assert info.value.code == 1
    assert info.value.action == CheckWriteAction.WRITE_THEN_FATAL


def test_write_then_goexit_raises_exit_without_code():
    ce = should(None, Entry(), CheckWriteAction.WRITE_THEN_GOEXIT)
    with pytest.raises(LoggedExit) as info:
        ce.write()
    assert info.value.code is None
    assert info.value.action == CheckWriteAction.WRITE_THEN_GOEXIT


def test_write_then_goexit_stops_thread():
    core = RecordingCore()
    ce = add_core(None, Entry(message="stop"), core)
    ce.set_should(CheckWriteAction.WRITE_THEN_GOEXIT)
    state = {"finished": False, "caught": None}

    def run():
        try:
            ce.write()
            state["finished"] = True
        except LoggedExit as exc:
            state["caught"] = exc

    worker = threading.Thread(target=run)
    worker.start()
    worker.join()
    assert state["finished"] is False
    assert state["caught"].action == CheckWriteAction.WRITE_THEN_GOEXIT
    assert state["caught"].code is None
    assert len(core.written) == 1


def test_write_passes_fields_to_every_core():
    ent = Entry(message="msg")
    a, b = RecordingCore(), RecordingCore()
    ce = add_core(add_core(None, ent, a), ent, b)
    ce.write("f1", "f2")
    assert a.written == [(ent, ["f1", "f2"])]
    assert b.written == [(ent, ["f1", "f2"])]


def test_write_errors_reported():
    ent = Entry()
    out = io.StringIO()
    ok = RecordingCore()
    ce = add_core(add_core(add_core(None, ent, RecordingCore("boom")), ent, ok), ent, RecordingCore("bang"))
    ce.error_output = out
    ce.write()
    assert out.getvalue() == "1970-01-01 00:00:00 +0000 UTC write error: boom; bang\n"
    assert len(ok.written) == 1


def test_reuse_is_detected():
    ent = Entry(message="again")
    out = io.StringIO()
    core = RecordingCore()
    ce = add_core(None, ent, core)
    ce.error_output = out
    ce.write()
    ce.write()
    assert len(core.written) == 1
    assert "Unsafe CheckedEntry re-use near Entry" in out.getvalue()