import fakeredis
import pytest

from daipk.factories import _get_pool, get_allocator, get_sharded
from daipk.storage.pool import RedisClientPool


@pytest.fixture(scope="function")
def redis_client() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture(scope="function")
def pool(redis_client) -> RedisClientPool:
    return RedisClientPool(client=redis_client, size=16, timeout=5)


@pytest.fixture(autouse=True, scope="function")
def cache_clear():
    _get_pool.cache_clear()
    get_allocator.cache_clear()
    get_sharded.cache_clear()
    yield
