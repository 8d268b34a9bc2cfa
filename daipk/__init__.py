"""Distributed auto-incrementing primary keys on top of Redis."""

from daipk.allocator import DistributedPrimaryKey
from daipk.factories import get_allocator, get_pool, get_sharded
from daipk.model import Capacity, FetchResult, InsertResult
from daipk.sharding import ShardedPrimaryKey
from daipk.storage.pool import RedisClientPool

__version__ = "0.1.0"

__all__ = [
    "Capacity",
    "DistributedPrimaryKey",
    "FetchResult",
    "InsertResult",
    "RedisClientPool",
    "ShardedPrimaryKey",
    "get_allocator",
    "get_pool",
    "get_sharded",
]
