import pytest

from daipk.exceptions import LeaseError, LeaseTimeout
from daipk.storage import commands
from daipk.storage.pool import ClientPool, RedisClientPool, leased


def test_storage_pool_lease(pool):
    with pool.lease("scope") as token:
        assert token.startswith("scope-")
        assert pool.active == 1
        assert pool.run(token, ["SET", "foo", "bar"])
        assert pool.run(token, ["GET", "foo"]) == "bar"
    assert pool.active == 0

    with pytest.raises(LeaseError):
        pool.run(token, ["GET", "foo"])


def test_storage_pool_lease_from_protocol(pool):
    def count_fields(pool: ClientPool, key: str) -> int:
        with pool.lease("count") as token:
            return pool.run(token, ["HLEN", key])

    assert "lease" in ClientPool.__dict__
    with pool.lease("scope") as token:
        pool.run(token, commands.hsetnx("h", "a", "1"))
        assert pool.run(token, commands.exists("h")) == 1
        assert pool.run(token, commands.exists("missing")) == 0
    assert count_fields(pool, "h") == 1
    assert pool.active == 0


def test_storage_pool_lease_released_on_error(pool):
    with pytest.raises(ValueError):
        with leased(pool, "scope"):
            raise ValueError("oops")
    assert pool.active == 0


def test_storage_pool_tokens(pool):
    tokens = {pool.generate_unique_token("users-insert") for _ in range(100)}
    assert len(tokens) == 100
    assert all(t.startswith("users-insert-") for t in tokens)


def test_storage_pool_acquire_release(redis_client):
    pool = RedisClientPool(client=redis_client, size=2, timeout=0.05)
    pool.acquire("a")
    with pytest.raises(LeaseError):
        pool.acquire("a")
    pool.acquire("b")
    with pytest.raises(LeaseTimeout):
        pool.acquire("c")
    assert pool.active == 2

    pool.release("a")
    pool.acquire("c")
    pool.release("b")
    pool.release("c")
    assert pool.active == 0
    with pytest.raises(LeaseError):
        pool.release("c")


def test_storage_pool_pipeline(pool, redis_client):
    with pool.lease("scope") as token:
        results = pool.pipeline(
            token,
            [
                commands.hsetnx("h", "a", "1"),
                commands.hsetnx("h", "a", "2"),
                commands.hsetnx("h", "b", "3"),
            ],
        )
        assert [bool(r) for r in results] == [True, False, True]
        assert pool.run(token, commands.hmget("h", ["a", "b", "c"])) == [
            "1",
            "3",
            None,
        ]
    with pytest.raises(LeaseError):
        pool.pipeline(token, [commands.hmget("h", ["a"])])
    assert redis_client.hgetall("h") == {"a": "1", "b": "3"}


def test_storage_commands(pool):
    with pool.lease("scope") as token:
        assert not pool.run(token, commands.lpop("list", 3))
        pool.run(token, commands.lpush("list", [1, 2]))
        assert pool.run(token, commands.lpop("list", 3)) == ["2", "1"]

        command = commands.incr_saturating("ctr", "u9", 300)
        assert pool.run(token, command) == [0, 300]
        assert pool.run(token, command) == [300, 511]
        assert pool.run(token, command) == [511, 511]


def test_storage_pool_from_uri():
    pool = RedisClientPool(uri="redis://example.org:6380/2", size=3)
    kwargs = pool.client.connection_pool.connection_kwargs
    assert kwargs["host"] == "example.org"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 2
    assert pool.size == 3
