"""Auto-sharding: grow a chain of allocator nodes whenever it is full.

Shards are named `{base}_{index}`. Because the names are deterministic, many
processes extending the same chain end up with the same shards.

Note: uniqueness is only guaranteed within one chain. The same primary key
inserted through two different chains gets two different ids.
"""

import threading
from typing import Any, Iterable

from anystore.logging import get_logger

from daipk.allocator import DistributedPrimaryKey
from daipk.conventions.keys import (
    DEFAULT_SEPARATOR,
    KeyBuilder,
    KeyNames,
    build_key,
    shard_identity,
)
from daipk.exceptions import ImproperlyConfigured, ShardLimitExceeded
from daipk.model import Capacity, FetchResult, InsertResult
from daipk.storage import commands
from daipk.storage.pool import ClientPool, leased

log = get_logger(__name__)


class ShardedPrimaryKey:
    """
    Keeps a live handle to the head of a shard chain and appends a fresh
    shard when an insert overflows.

    Example:
        ```python
        users = ShardedPrimaryKey(pool, "users", capacity="u16")
        users.insert(f"user:{i}" for i in range(100_000))
        users.shards  # 2
        ```

    Args:
        pool: Client pool used for all store round trips
        base: Base identity, shards are named `{base}_{index}`
        capacity: Capacity policy of each shard
        shards: Number of shards that already exist (e.g. after a restart).
            If not given, existing shards are discovered in the store: shard
            `{base}_{n}` is taken as existing while its counter key exists.
        max_shards: Refuse to grow the chain beyond this number of shards
    """

    def __init__(
        self,
        pool: ClientPool,
        base: str,
        capacity: Capacity | str = Capacity.I64,
        separator: str = DEFAULT_SEPARATOR,
        key_builder: KeyBuilder = build_key,
        shards: int | None = None,
        max_shards: int = 1024,
    ) -> None:
        if not base:
            raise ImproperlyConfigured("Base identity must not be empty")
        if shards is None:
            shards = discover_shards(pool, base, separator, key_builder)
        if shards < 1 or shards > max_shards:
            raise ImproperlyConfigured(
                f"Invalid number of shards: {shards} (max: {max_shards})"
            )
        self.pool = pool
        self.base = base
        self.max_shards = max_shards
        self.log = get_logger(__name__, base=base)
        self._lock = threading.Lock()
        self.head = DistributedPrimaryKey(
            pool,
            shard_identity(base, 0),
            separator=separator,
            key_builder=key_builder,
            capacity=capacity,
        )
        for index in range(1, shards):
            self.head = self.head.extend(shard_identity(base, index))

    @property
    def shards(self) -> int:
        return len(self.head.chain)

    def insert(self, keys: Iterable[Any]) -> InsertResult:
        """
        Insert keys into the chain, adding shards until every valid key is
        bound.

        Raises:
            ShardLimitExceeded: If the chain would grow beyond `max_shards`
        """
        head = self.head
        result = head.insert(keys)
        bound = dict(result.bound)
        while result.overflow:
            head = self._grow(head)
            result = head.insert(result.overflow)
            bound.update(result.bound)
        return InsertResult(bound=bound)

    def fetch_unique_ids(self, keys: Iterable[Any]) -> FetchResult:
        return self.head.fetch_unique_ids(keys)

    def _grow(self, full: DistributedPrimaryKey) -> DistributedPrimaryKey:
        with self._lock:
            # another thread may already have grown the chain
            if self.head is not full:
                return self.head
            if self.shards >= self.max_shards:
                self.log.warning(
                    "Shard limit reached, keys overflow",
                    max_shards=self.max_shards,
                )
                raise ShardLimitExceeded(
                    f"Shard limit reached for `{self.base}`: {self.max_shards}"
                )
            self.head = full.extend(shard_identity(self.base, self.shards))
            self.log.info(
                f"Added shard `{self.head.identity}`",
                shard=self.head.identity,
                shards=self.shards,
            )
            return self.head

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.base}, shards={self.shards})>"


def discover_shards(
    pool: ClientPool,
    base: str,
    separator: str = DEFAULT_SEPARATOR,
    key_builder: KeyBuilder = build_key,
) -> int:
    """
    Count the consecutive shards `{base}_0`, `{base}_1`, ... that have handed
    out integers before (their counter key exists). Returns at least 1.
    """
    shards = 0
    with leased(pool, f"{base}{separator}discover") as token:
        while True:
            keys = KeyNames.make(shard_identity(base, shards), separator, key_builder)
            if not pool.run(token, commands.exists(keys.counter)):
                break
            shards += 1
    log.debug("Discovered shards", base=base, shards=shards)
    return max(shards, 1)
