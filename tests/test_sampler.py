import threading
import time

import pytest

from corelog.entry import Entry, add_core
from corelog.field import Field, FieldType
from corelog.level import ALL_LEVELS, Level
from corelog.sampler import (
    SamplingDecision,
    fnv32a,
    new_sampler,
    new_sampler_with_options,
    sampler_hook,
)
from corelog.timefmt import Time

MINUTE = 60 * 1_000_000_000
SECOND = 1_000_000_000
MS = 1_000_000


class ObserverCore:
    def __init__(self, level, logs=None, context=()):
        self.level = level
        self.logs = logs if logs is not None else []
        self.context = tuple(context)

    def enabled(self, lvl):
        return self.level.enabled(lvl)

    def with_fields(self, fields):
        return ObserverCore(self.level, self.logs, self.context + tuple(fields))

    def check(self, ent, ce):
        if self.enabled(ent.level):
            return add_core(ce, ent, self)
        return ce

    def write(self, ent, fields):
        self.logs.append((ent, list(self.context) + list(fields)))

    def sync(self):
        pass

    def take_all(self):
        taken = list(self.logs)
        self.logs.clear()
        return taken


class CountingCore:
    def __init__(self):
        self.count = 0
        self.lock = threading.Lock()

    def enabled(self, lvl):
        return True

    def with_fields(self, fields):
        return self

    def check(self, ent, ce):
        return add_core(ce, ent, self)

    def write(self, ent, fields):
        with self.lock:
            self.count += 1

    def sync(self):
        pass


def fake_sampler(lvl, tick, first, thereafter):
    core = ObserverCore(lvl)
    return new_sampler(core, tick, first, thereafter), core


def write_sequence(core, n, lvl, now=None):
    now = time.time_ns() if now is None else now
    core = core.with_fields([Field("iter", FieldType.INT64, integer=n)])
    ce = core.check(Entry(level=lvl, time=Time.from_unix_nano(now)), None)
    if ce is not None:
        ce.write()


def logged_sequence(logs, lvl):
    seen = []
    for ent, context in logs:
        assert ent.message == ""
        assert len(context) == 1
        assert ent.level == lvl
        assert context[0].key == "iter"
        assert context[0].type == FieldType.INT64
        seen.append(context[0].integer)
    return seen


def test_fnv32a_known_values():
    assert fnv32a("") == 2166136261
    assert fnv32a("a") == 0xE40C292C
    assert fnv32a("foobar") == 0xBF9CF968


@pytest.mark.parametrize("lvl", ALL_LEVELS)
def test_sampler(lvl):
    sampler, observer = fake_sampler(Level.DEBUG, MINUTE, 2, 3)
    probe = Level.INFO if lvl == Level.DEBUG else Level.DEBUG
    for _ in range(10):
        write_sequence(sampler, 1, probe)
    observer.take_all()

    for i in range(1, 10):
        write_sequence(sampler, i, lvl)
    assert logged_sequence(observer.take_all(), lvl) == [1, 2, 5, 8]


def test_sampler_disabled_levels():
    sampler, observer = fake_sampler(Level.INFO, MINUTE, 1, 100)
    write_sequence(sampler, 1, Level.DEBUG)
    write_sequence(sampler, 2, Level.INFO)
    assert logged_sequence(observer.take_all(), Level.INFO) == [2]


def test_sampler_ticking():
    sampler, observer = fake_sampler(Level.DEBUG, 10 * MS, 5, 10)
    now = time.time_ns()

    for _ in range(2):
        for i in range(1, 6):
            write_sequence(sampler, i, Level.INFO, now)
        now += 15 * MS
    assert logged_sequence(observer.take_all(), Level.INFO) == [1, 2, 3, 4, 5] * 2

    for _ in range(3):
        for i in range(1, 18):
            write_sequence(sampler, i, Level.INFO, now)
        now += 10 * MS
    assert logged_sequence(observer.take_all(), Level.INFO) == [1, 2, 3, 4, 5, 15] * 3


@pytest.mark.parametrize("lvl", [Level(Level.DEBUG - 1), Level(Level.FATAL + 1)])
def test_sampler_unknown_levels(lvl):
    sampler, observer = fake_sampler(lvl, MINUTE, 2, 3)
    for i in range(1, 10):
        write_sequence(sampler, i, lvl)
    assert logged_sequence(observer.take_all(), lvl) == list(range(1, 10))


def test_sampler_with_zero_thereafter():
    counter = CountingCore()
    sampler = new_sampler_with_options(counter, SECOND, 2, 0)
    now = time.time_ns()

    for _ in range(1000):
        ce = sampler.check(Entry(level=Level.INFO, message="msg", time=Time.from_unix_nano(now)), None)
        if ce is not None:
            ce.write()
    assert counter.count == 2

    now += SECOND
    for _ in range(1000):
        ce = sampler.check(Entry(level=Level.INFO, message="msg", time=Time.from_unix_nano(now)), None)
        if ce is not None:
            ce.write()
    assert counter.count == 4


def test_sampler_hook_reports_decisions():
    decisions = []
    counter = CountingCore()
    sampler = new_sampler_with_options(
        counter, MINUTE, 2, 3, sampler_hook(lambda ent, dec: decisions.append(dec))
    )
    now = time.time_ns()
    for _ in range(9):
        ce = sampler.check(Entry(level=Level.INFO, message="m", time=Time.from_unix_nano(now)), None)
        if ce is not None:
            ce.write()
    assert counter.count == 4
    assert decisions.count(SamplingDecision.LOG_SAMPLED) == 4
    assert decisions.count(SamplingDecision.LOG_DROPPED) == 5


def test_sampler_concurrent_counts_are_exact():
    sampler, observer = fake_sampler(Level.DEBUG, MINUTE, 1, 1000)
    now = time.time_ns()
    start = threading.Event()

    def worker():
        start.wait()
        for j in range(100):
            write_sequence(sampler, j, Level.INFO, now)

    threads = [threading.Thread(target=worker) for _ in range(100)]
    for t in threads:
        t.start()
    start.set()
    for t in threads:
        t.join()
    assert len(observer.take_all()) == 10


def test_sampler_write_and_enabled_delegate():
    observer = ObserverCore(Level.WARN)
    sampler = new_sampler(observer, MINUTE, 1, 1)
    assert sampler.enabled(Level.ERROR) is True
    assert sampler.enabled(Level.INFO) is False
    ent = Entry(level=Level.ERROR, message="direct")
    sampler.write(ent, [])
    assert observer.take_all() == [(ent, [])]