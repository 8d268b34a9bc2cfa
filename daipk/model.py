from enum import StrEnum
from typing import TypeAlias

from pydantic import BaseModel, StrictBool, StrictFloat, StrictInt, StrictStr

PrimaryKey: TypeAlias = StrictStr | StrictInt | StrictFloat | StrictBool
"""Caller supplied scalar key that gets a unique id assigned"""

UniqueId: TypeAlias = str
"""Store assigned identifier: `{identity}{separator}{integer}`"""


class Capacity(StrEnum):
    """
    Capacity policy of an allocator node, named after the width of its id
    space.

    Unsigned counters are stored in a bitfield one bit wider than the id
    space, so the store saturates at or beyond `size` and the allocator can
    hand out every integer in `[0, size)`.
    """

    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    I64 = "i64"

    @property
    def bits(self) -> int:
        return int(self.value[1:])

    @property
    def size(self) -> int:
        """Number of distinct integers a node can hand out"""
        if self is Capacity.I64:
            return 2**63 - 1
        return 2**self.bits

    @property
    def field(self) -> str:
        """Bitfield type of the store counter"""
        if self is Capacity.I64:
            return self.value
        return f"u{self.bits + 1}"

    def clamp(self, value: int) -> int:
        return max(0, min(int(value), self.size))


class InsertResult(BaseModel):
    bound: dict[PrimaryKey, UniqueId] = {}
    """Keys with their (new or already existing) unique id"""
    overflow: list[PrimaryKey] = []
    """Keys that could not be bound because the capacity is exhausted"""


class FetchResult(BaseModel):
    found: dict[PrimaryKey, UniqueId] = {}
    not_found: list[PrimaryKey] = []
