"""Leased command execution against the backing store.

A lease reserves an ordered command channel for the duration of one logical
operation. Commands issued with the same token are executed in the order they
are sent.
"""

import threading
from contextlib import contextmanager
from typing import Any, ContextManager, Generator, Protocol, Sequence
from uuid import uuid4

import redis
from anystore.logging import get_logger

from daipk.exceptions import LeaseError, LeaseTimeout
from daipk.storage.commands import Command

log = get_logger(__name__)

DEFAULT_URI = "redis://localhost:6379/0"


class ClientPool(Protocol):
    def generate_unique_token(self, scope: str) -> str: ...

    def acquire(self, token: str) -> None: ...

    def release(self, token: str) -> None: ...

    def run(self, token: str, command: Command) -> Any: ...

    def pipeline(
        self, token: str, commands: Sequence[Command], transaction: bool = False
    ) -> list[Any]: ...

    def shutdown(self) -> None: ...

    def lease(self, scope: str) -> ContextManager[str]: ...


@contextmanager
def leased(pool: ClientPool, scope: str) -> Generator[str, None, None]:
    """
    Acquire a lease for the given scope and release it on context leave, no
    matter how the context is left.

    Example:
        ```python
        with leased(pool, "users-insert") as token:
            pool.run(token, ["HMGET", "users-map", "alice"])
        ```
    """
    token = pool.generate_unique_token(scope)
    pool.acquire(token)
    try:
        yield token
    finally:
        pool.release(token)


class RedisClientPool:
    """
    Client pool on top of a redis-py client (or anything compatible with it,
    such as `fakeredis.FakeRedis`).

    The number of concurrent leases is bounded by `size`, acquiring a lease
    blocks for at most `timeout` seconds (forever if `None`).
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        uri: str | None = None,
        size: int = 8,
        timeout: float | None = 30.0,
    ) -> None:
        if client is None:
            client = redis.Redis.from_url(uri or DEFAULT_URI, decode_responses=True)
        self.client = client
        self.size = size
        self.timeout = timeout
        self._slots = threading.BoundedSemaphore(size)
        self._leases: set[str] = set()
        self._lock = threading.Lock()

    def generate_unique_token(self, scope: str) -> str:
        return f"{scope}-{uuid4().hex}"

    def acquire(self, token: str) -> None:
        if not self._slots.acquire(timeout=self.timeout):
            raise LeaseTimeout(
                f"No lease available within {self.timeout}s: `{token}`"
            )
        with self._lock:
            if token in self._leases:
                self._slots.release()
                raise LeaseError(f"Token already leased: `{token}`")
            self._leases.add(token)
        log.debug("Acquired lease", token=token)

    def release(self, token: str) -> None:
        with self._lock:
            if token not in self._leases:
                raise LeaseError(f"Token not leased: `{token}`")
            self._leases.remove(token)
        self._slots.release()
        log.debug("Released lease", token=token)

    def run(self, token: str, command: Command) -> Any:
        self._ensure_leased(token)
        return self.client.execute_command(*command)

    def pipeline(
        self, token: str, commands: Sequence[Command], transaction: bool = False
    ) -> list[Any]:
        self._ensure_leased(token)
        with self.client.pipeline(transaction=transaction) as pipe:
            for command in commands:
                pipe.execute_command(*command)
            return pipe.execute()

    def lease(self, scope: str) -> ContextManager[str]:
        return leased(self, scope)

    @property
    def active(self) -> int:
        """Number of currently held leases"""
        with self._lock:
            return len(self._leases)

    def shutdown(self) -> None:
        self.client.close()

    def _ensure_leased(self, token: str) -> None:
        with self._lock:
            if token not in self._leases:
                raise LeaseError(f"Token not leased: `{token}`")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.client!r}, size={self.size})>"
