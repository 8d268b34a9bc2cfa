"""Factory functions building pools and allocators from the settings.

The factories are cached, so repeated calls with the same arguments share one
instance (and one connection pool).

Example:
    ```python
    from daipk.factories import get_allocator

    users = get_allocator("users", capacity="u32")
    users.insert(["alice", "bob"])
    ```
"""

from functools import cache

from daipk.allocator import DistributedPrimaryKey
from daipk.model import Capacity
from daipk.settings import Settings
from daipk.sharding import ShardedPrimaryKey
from daipk.storage.pool import RedisClientPool


def get_pool(uri: str | None = None) -> RedisClientPool:
    return _get_pool(uri or Settings().redis_uri)


@cache
def _get_pool(uri: str) -> RedisClientPool:
    settings = Settings()
    return RedisClientPool(
        uri=uri,
        size=settings.pool_size,
        timeout=settings.lease_timeout,
    )


@cache
def get_allocator(
    identity: str,
    capacity: Capacity | str | None = None,
    uri: str | None = None,
) -> DistributedPrimaryKey:
    settings = Settings()
    return DistributedPrimaryKey(
        get_pool(uri),
        identity,
        separator=settings.separator,
        capacity=capacity or settings.capacity,
    )


@cache
def get_sharded(
    base: str,
    capacity: Capacity | str | None = None,
    uri: str | None = None,
    shards: int | None = None,
) -> ShardedPrimaryKey:
    settings = Settings()
    return ShardedPrimaryKey(
        get_pool(uri),
        base,
        capacity=capacity or settings.capacity,
        separator=settings.separator,
        shards=shards,
        max_shards=settings.max_shards,
    )
