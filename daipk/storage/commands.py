"""Builders for the atomic store commands the allocator relies on.

Commands are plain argument lists (`["HMGET", key, field, ...]`) so that any
client pool can execute them as-is.
"""

from typing import Iterable, TypeAlias

Command: TypeAlias = list[str]


def lpop(key: str, count: int) -> Command:
    """Pop up to `count` elements (returns fewer, or nothing, if shorter)"""
    return ["LPOP", key, str(count)]


def lpush(key: str, values: Iterable[int | str]) -> Command:
    return ["LPUSH", key, *map(str, values)]


def incr_saturating(key: str, field: str, amount: int) -> Command:
    """Read the counter and increment it by `amount`, saturating at the
    maximum of the bitfield type. Replies with `[before, after]`."""
    return [
        "BITFIELD",
        key,
        "GET",
        field,
        "0",
        "OVERFLOW",
        "SAT",
        "INCRBY",
        field,
        "0",
        str(amount),
    ]


def hsetnx(key: str, field: str, value: str) -> Command:
    """Set the hash field only if it doesn't exist yet. Replies 1 or 0."""
    return ["HSETNX", key, field, value]


def hmget(key: str, fields: Iterable[str]) -> Command:
    return ["HMGET", key, *fields]


def exists(key: str) -> Command:
    return ["EXISTS", key]
