"""
Store key conventions. Each allocator node keeps its state in three store keys
derived from its identity, so that many nodes can share one store.
"""

from typing import Callable, NamedTuple, TypeAlias

MAP = "map"
"""Forward map (hash): primary key -> unique id"""

COUNTER = "ctr"
"""Saturating counter (bitfield) of issued integers"""

RECLAIM = "refurbished"
"""List of integers that were reserved but never bound"""

DEFAULT_SEPARATOR = "-"

KeyBuilder: TypeAlias = Callable[[str, str, str], str]
"""(suffix, separator, identity) -> store key"""


def build_key(suffix: str, separator: str, identity: str) -> str:
    """
    Default store key naming.

    Examples:
        >>> build_key(MAP, "-", "users")
        "users-map"
    """
    return f"{identity}{separator}{suffix}"


class KeyNames(NamedTuple):
    map: str
    counter: str
    reclaim: str

    @classmethod
    def make(
        cls,
        identity: str,
        separator: str = DEFAULT_SEPARATOR,
        builder: KeyBuilder = build_key,
    ) -> "KeyNames":
        return cls(
            map=builder(MAP, separator, identity),
            counter=builder(COUNTER, separator, identity),
            reclaim=builder(RECLAIM, separator, identity),
        )


def unique_id(identity: str, separator: str, value: int) -> str:
    return f"{identity}{separator}{value}"


def shard_identity(base: str, index: int) -> str:
    """
    Identity of the shard at position `index` of an auto-sharded chain.

    Examples:
        >>> shard_identity("users", 2)
        "users_2"
    """
    return f"{base}_{index}"
