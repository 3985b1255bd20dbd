"""Structured, leveled logging core: fields, JSON and in-memory encoders, hooks, level filters and sampling."""

__version__ = "0.1.0"

__all__ = [
    "encoder",
    "entry",
    "field",
    "hook",
    "increase_level",
    "json_encoder",
    "level",
    "marshaler",
    "memory_encoder",
    "sampler",
    "timefmt",
]