# corelog

corelog is the core of a structured logger. It provides:

- leveled log entries;
- typed key-value fields;
- a JSON encoder for whole entries;
- an in-memory encoder for tests;
- wrappers around a *core* (the object that writes entries) that add hooks, raise the minimum level, or sample repeated entries.

## Installation

```
pip install corelog
```

To run the test suite:

```
pip install "corelog[test]"
pytest
```

## Levels (`corelog.level`)

`Level` is an `int` subclass with these constants, from lowest to highest: `Level.DEBUG`, `INFO`, `WARN`, `ERROR`, `DPANIC`, `PANIC` and `FATAL`.

```python
from corelog.level import Level, parse_level

level = parse_level("WARN")
level.enabled(Level.ERROR)    # True
level.enabled(Level.INFO)     # False
str(Level.INFO)               # "info"
Level.INFO.capital_string()   # "INFO"
Level.INFO.marshal_text()     # b"info"
```

How `parse_level` reads its input:

- It accepts lower-case, all-caps and mixed-case names.
- An empty string parses as `info`.
- Any other text raises `ValueError("unrecognized level: ...")`.

`lowercase_color_string(level)` and `capital_color_string(level)` return the level name wrapped in ANSI colour codes:

| Level | Colour |
| --- | --- |
| debug | magenta |
| info | blue |
| warn | yellow |
| all higher levels | red |
| unknown levels | red |

## Times and durations (`corelog.timefmt`)

`Time` is an instant stored as nanoseconds since the Unix epoch, together with a time zone. You can build one in several ways:

- `Time.from_unix_nano(nanos, offset)`
- `Time.date(...)`
- `Time.now()`
- `Time.from_datetime(dt)`

`Time.format(layout)` formats the instant with a reference layout, such as `"2006-01-02T15:04:05Z07:00"`. The module defines these layouts as constants:

- `ISO8601_LAYOUT`
- `RFC3339`
- `RFC3339_NANO`

`Duration` is an `int` count of nanoseconds. Its string form is human-readable, for example `1.0000005s` or `1m0s`. The module also defines the unit constants `NANOSECOND` through `HOUR`.

## Encoding entries as JSON (`corelog.json_encoder`)

```python
from corelog.encoder import EncoderConfig, iso8601_time_encoder, lowercase_level_encoder
from corelog.entry import Entry
from corelog.json_encoder import new_json_encoder
from corelog.level import Level
from corelog.timefmt import Time

cfg = EncoderConfig(
    message_key="msg",
    level_key="level",
    time_key="ts",
    encode_level=lowercase_level_encoder,
    encode_time=iso8601_time_encoder,
)
enc = new_json_encoder(cfg)
enc.add_string("service", "api")
line = enc.encode_entry(
    Entry(level=Level.INFO, time=Time.date(2018, 6, 19, 16, 33, 42), message="started"),
    [],
)
# b'{"level":"info","ts":"2018-06-19T16:33:42.000Z","msg":"started","service":"api"}\n'
```

### Config keys

An empty key in the config leaves that part of the entry out. The level is written only when both `level_key` and `encode_level` are set.

### Context

Fields you add to the encoder become its context. That context is repeated in every entry it encodes. `clone()` copies the encoder, so fields added to the copy do not affect the original.

### Namespaces

`open_namespace(key)` nests every field that follows inside an object under `key`. All open namespaces are closed at the end of the entry.

### How values are written

- Floats use their shortest form. NaN and infinities are written as the strings `"NaN"`, `"+Inf"` and `"-Inf"`.
- Binary values are written as base64.
- Strings are JSON-escaped. Invalid UTF-8 becomes `\ufffd`.

### Other values

Any other value goes through `add_reflected`, which uses a reflected encoder. By default this is `default_reflected_encoder`, the standard `json` module writing compact output. To use your own, set `EncoderConfig.new_reflected_encoder`: a callable that receives a byte stream and returns an object with an `encode(obj)` method.

### Encoders that write nothing

If the time, duration, level, name or caller encoder writes nothing, the JSON encoder writes a plain value instead, so the output stays valid JSON.

## Value encoders and configuration (`corelog.encoder`)

An `EncoderConfig` holds the entry keys and one encoder function for each kind of value. You can pick each encoder function by name with a `*_from_text` helper:

| Helper | Names it accepts | Name-less default |
| --- | --- | --- |
| `level_encoder_from_text` | `capital`, `capitalColor`, `color` | lower case |
| `time_encoder_from_text` | `iso8601`, `rfc3339`, `rfc3339nano`, `millis`, `nanos` | epoch seconds |
| `duration_encoder_from_text` | `string`, `nanos`, `ms` | seconds |
| `caller_encoder_from_text` | `full` | short path |
| `name_encoder_from_text` | any name | full name |

A config can also be loaded from camel-case keys:

- `encoder_config_from_mapping(data)` takes a mapping.
- `encoder_config_from_json(text)` takes JSON text.
- `encoder_config_from_yaml(text)` takes YAML text.

In these documents, `timeEncoder` may be one of the names above or a mapping with a `layout` entry:

```python
from corelog.encoder import encoder_config_from_yaml

cfg = encoder_config_from_yaml(
    "messageKey: msg\n"
    "levelKey: level\n"
    "levelEncoder: capital\n"
    "timeKey: ts\n"
    "timeEncoder: {layout: '06/01/02 03:04pm'}\n"
)
```

Malformed YAML raises `ValueError`. A value of the wrong type, such as a list where a time encoder is expected, raises `TypeError`.

## Fields (`corelog.field`)

A `Field` holds these attributes:

- `key`
- `type`, a `FieldType`
- `integer`, `string` and `interface`, which carry the value

`Field.add_to(enc)` writes the field to any object encoder. `add_fields(enc, fields)` writes several fields in order.

### Errors while adding a field

Marshalers, reflected values, stringers and errors can fail while they are being written. When they do, `add_to` records the failure under `<key>Error` and raises nothing. A field of type `FieldType.UNKNOWN` raises `ValueError`.

### Error fields

`encode_error(key, err, enc)` handles error fields, as follows:

- The error's message goes under `key`.
- A `None` error is written as `<nil>`.
- If the error is a group, its causes go under `<key>Causes`, each encoded the same way. A group is either an `ExceptionGroup` or an object with an `errors()` method.
- If the error defines `__format__` and `format(err, "+v")` differs from its message, the verbose form goes under `<key>Verbose`.

### Comparing fields

`Field.equals(other)` compares two fields:

- Byte values are compared by content.
- Marshalers, errors and reflected values are compared deeply.

## Marshalers (`corelog.marshaler`)

A type can write itself into a log context. To do so, implement one of these methods:

- `marshal_log_object(enc)`
- `marshal_log_array(enc)`

To wrap a plain function instead, use `ObjectMarshalerFunc` or `ArrayMarshalerFunc`.

## Entries and cores (`corelog.entry`)

An `Entry` carries these attributes:

- `level`
- `time`
- `logger_name`
- `message`
- `caller`, an `EntryCaller`
- `stack`

`EntryCaller.full_path()` gives `/full/path/file.go:42`. `EntryCaller.trimmed_path()` gives `path/file.go:42`.

### Cores

A core is any object with these methods:

- `enabled(level)`
- `with_fields(fields)`
- `check(ent, ce)`
- `write(ent, fields)`
- `sync()`

In `check`, a core that wants to log an entry registers itself with `add_core(ce, ent, self)`. That call creates the `CheckedEntry` if `ce` is `None`.

### Writing a checked entry

`CheckedEntry.write(*fields)` writes the entry to every registered core. Two safety rules apply:

- Errors raised by cores are reported to `error_output`, if one is set.
- A checked entry writes only once. Writing it again only reports the re-use.

The `should(ce, ent, action)` helper sets a `CheckWriteAction`. That action decides what happens after the write:

| Action | Result |
| --- | --- |
| `WRITE_THEN_NOOP` | nothing |
| `WRITE_THEN_PANIC` | raises `LoggedPanic` |
| `WRITE_THEN_FATAL` | raises `LoggedExit` with code 1 |
| `WRITE_THEN_GOEXIT` | raises `LoggedExit` with no code |

## Core wrappers

### Hooks (`corelog.hook`)

`register_hooks(core, hook, ...)` runs each hook, in order, for every entry the wrapped core accepts. A hook that raises does not stop the others. All the failures are raised together once the hooks have run.

### Raising the level (`corelog.increase_level`)

`new_increase_level_core(core, level)` filters entries by a stricter level. It raises `ValueError` if `level` would enable a level that `core` does not.

### Sampling (`corelog.sampler`)

`new_sampler_with_options(core, tick, first, thereafter, sampler_hook(fn))` counts entries that share a level and a message within each `tick`. The tick is given in nanoseconds and measured against the entries' own times. Within each tick it works like this:

- It logs the first `first` such entries.
- After that it logs every `thereafter`-th entry.
- It drops the rest.
- With `thereafter` set to zero, it drops everything after the first `first`.

Each decision is reported to the hook as a `SamplingDecision`. Counters are shared between a sampler and the cores derived from it with `with_fields`. `new_sampler` is the same without options.

## In-memory encoding (`corelog.memory_encoder`)

`MapObjectEncoder` records every field into its `fields` dict. Nested objects become dicts and arrays become lists. This makes it convenient for asserting on what a field or marshaler writes.

## What this package does not do

corelog is only the core of a logger. It does not include:

- a logger front end with `info()` / `error()` style methods;
- caller or stack-trace capture;
- a console (plain-text) encoder;
- a ready-made core that writes to files or streams.

To emit log lines, you supply a core yourself. For example, it can call `encode_entry` on a `JSONEncoder` and write the bytes wherever you need them.