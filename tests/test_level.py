import pytest

from corelog.level import (
    ALL_LEVELS,
    MAX_LEVEL,
    MIN_LEVEL,
    Level,
    LevelEnabler,
    capital_color_string,
    lowercase_color_string,
    parse_level,
)


@pytest.mark.parametrize(
    "lvl, text",
    [
        (Level.DEBUG, "debug"),
        (Level.INFO, "info"),
        (Level.WARN, "warn"),
        (Level.ERROR, "error"),
        (Level.DPANIC, "dpanic"),
        (Level.PANIC, "panic"),
        (Level.FATAL, "fatal"),
        (Level(-42), "Level(-42)"),
    ],
)
def test_level_string(lvl, text):
    assert str(lvl) == text
    assert f"{lvl}" == text
    assert lvl.capital_string() == text.upper()


@pytest.mark.parametrize(
    "text, level",
    [
        ("debug", Level.DEBUG),
        ("info", Level.INFO),
        ("", Level.INFO),
        ("warn", Level.WARN),
        ("error", Level.ERROR),
        ("dpanic", Level.DPANIC),
        ("panic", Level.PANIC),
        ("fatal", Level.FATAL),
    ],
)
def test_level_text(text, level):
    if text:
        assert level.marshal_text() == text.encode()
    assert parse_level(text) == level
    assert parse_level(text.encode()) == level


@pytest.mark.parametrize(
    "text, level",
    [("info", Level.INFO), ("DEBUG", Level.DEBUG)],
)
def test_parse_level(text, level):
    assert parse_level(text) == level


def test_parse_level_error():
    with pytest.raises(ValueError, match='unrecognized level: "FOO"'):
        parse_level("FOO")


@pytest.mark.parametrize(
    "text, level",
    [
        ("DEBUG", Level.DEBUG),
        ("INFO", Level.INFO),
        ("WARN", Level.WARN),
        ("ERROR", Level.ERROR),
        ("DPANIC", Level.DPANIC),
        ("PANIC", Level.PANIC),
        ("FATAL", Level.FATAL),
    ],
)
def test_capital_levels_parse(text, level):
    assert parse_level(text) == level


@pytest.mark.parametrize(
    "text, level",
    [
        ("Debug", Level.DEBUG),
        ("Info", Level.INFO),
        ("Warn", Level.WARN),
        ("Error", Level.ERROR),
        ("Dpanic", Level.DPANIC),
        ("Panic", Level.PANIC),
        ("Fatal", Level.FATAL),
        ("DeBuG", Level.DEBUG),
        ("InFo", Level.INFO),
        ("WaRn", Level.WARN),
        ("ErRor", Level.ERROR),
        ("DpAnIc", Level.DPANIC),
        ("PaNiC", Level.PANIC),
        ("FaTaL", Level.FATAL),
    ],
)
def test_weird_levels_parse(text, level):
    assert parse_level(text) == level


def test_unmarshal_unknown_text():
    with pytest.raises(ValueError) as info:
        parse_level("foo")
    assert "unrecognized level" in str(info.value)


def test_parse_level_nope_message():
    with pytest.raises(ValueError) as info:
        parse_level("nope")
    assert str(info.value) == 'unrecognized level: "nope"'


def test_parse_level_as_flag_type_round_trip():
    for expected in ALL_LEVELS:
        assert parse_level(str(expected)) == expected


def test_enabled():
    assert Level.WARN.enabled(Level.WARN)
    assert Level.WARN.enabled(Level.FATAL)
    assert not Level.WARN.enabled(Level.INFO)
    assert not Level.WARN.enabled(Level.DEBUG)


def test_level_is_a_level_enabler():
    enabler = Level.ERROR
    assert isinstance(enabler, LevelEnabler)
    assert enabler.enabled(Level.PANIC) is True


def test_level_bounds():
    assert MIN_LEVEL.capital_string() == "DEBUG"
    assert MAX_LEVEL.capital_string() == "FATAL"
    assert parse_level("debug") == MIN_LEVEL
    assert parse_level("fatal") == MAX_LEVEL
    assert all(MIN_LEVEL.enabled(lvl) for lvl in ALL_LEVELS)
    assert [MAX_LEVEL.enabled(lvl) for lvl in ALL_LEVELS] == [False] * (len(ALL_LEVELS) - 1) + [True]
    assert len(ALL_LEVELS) == MAX_LEVEL - MIN_LEVEL + 1


def test_all_levels_covered_by_color_strings():
    lowers = {lowercase_color_string(lvl) for lvl in ALL_LEVELS}
    capitals = {capital_color_string(lvl) for lvl in ALL_LEVELS}
    assert len(lowers) == len(ALL_LEVELS)
    assert len(capitals) == len(ALL_LEVELS)
    for lvl in ALL_LEVELS:
        low = lowercase_color_string(lvl)
        cap = capital_color_string(lvl)
        assert str(lvl) in low and low.startswith("\x1b[") and low.endswith("\x1b[0m")
        assert lvl.capital_string() in cap and cap.startswith("\x1b[")


def test_unknown_level_color_uses_error_color():
    unknown = lowercase_color_string(Level(-42))
    assert "Level(-42)" in unknown
    assert unknown.startswith(lowercase_color_string(Level.ERROR).split("error")[0])
    assert "LEVEL(-42)" in capital_color_string(Level(-42))


def test_color_differs_between_debug_and_info():
    debug_prefix = lowercase_color_string(Level.DEBUG).split("debug")[0]
    info_prefix = lowercase_color_string(Level.INFO).split("info")[0]
    assert debug_prefix != info_prefix