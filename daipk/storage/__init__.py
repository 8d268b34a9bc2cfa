"""Store access: command builders and leased client pools."""

from daipk.storage.pool import ClientPool, RedisClientPool, leased

__all__ = ["ClientPool", "RedisClientPool", "leased"]
