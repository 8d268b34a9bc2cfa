"""Distributed auto-incrementing primary keys.

An allocator node assigns unique ids (`{identity}{separator}{integer}`) to
arbitrary scalar keys. All state lives in the store under three keys per node:

- map: hash of primary key -> unique id (written with set-if-absent)
- ctr: saturating bitfield counter, the source of fresh integers
- refurbished: list of integers that were reserved but never bound

Nodes can be chained: a node created with a `parent` first lets the parent
(and its ancestors, oldest first) serve a request, and only handles what
they couldn't.
"""

from typing import Any, Iterable
from uuid import uuid4

from anystore.logging import get_logger

from daipk.conventions.keys import (
    DEFAULT_SEPARATOR,
    KeyBuilder,
    KeyNames,
    build_key,
    unique_id,
)
from daipk.exceptions import ImproperlyConfigured
from daipk.model import Capacity, FetchResult, InsertResult, UniqueId
from daipk.storage import commands
from daipk.storage.pool import ClientPool, leased
from daipk.util import clean_keys


class DistributedPrimaryKey:
    """
    Allocator node bound to one identity.

    Thread and multi-process safe: the node only holds immutable
    configuration, coordination happens through atomic store commands.

    Example:
        ```python
        pool = RedisClientPool(uri="redis://localhost:6379")
        users = DistributedPrimaryKey(pool, "users", capacity="u32")

        result = users.insert(["alice", "bob"])
        result.bound  # {"alice": "users-0", "bob": "users-1"}

        users.fetch_unique_ids(["alice", "carol"]).not_found  # ["carol"]
        ```

    Args:
        pool: Client pool used for all store round trips
        identity: Namespace of this node (random UUID if not given)
        parent: Existing node to chain with, consulted before this one
        separator: Separator for store keys and unique ids
        key_builder: Store key naming function `(suffix, separator, identity)`
        capacity: Capacity policy (`u8`, `u16`, `u32` or `i64`)
    """

    def __init__(
        self,
        pool: ClientPool,
        identity: str | None = None,
        parent: "DistributedPrimaryKey | None" = None,
        separator: str = DEFAULT_SEPARATOR,
        key_builder: KeyBuilder = build_key,
        capacity: Capacity | str = Capacity.I64,
    ) -> None:
        if identity is not None and not identity:
            raise ImproperlyConfigured("Identity must not be empty")
        if not separator:
            raise ImproperlyConfigured("Separator must not be empty")
        try:
            self.capacity = Capacity(capacity)
        except ValueError:
            raise ImproperlyConfigured(f"Invalid capacity policy: `{capacity}`")
        self.pool = pool
        self.identity = identity or str(uuid4())
        self.parent = parent
        self.separator = separator
        self.key_builder = key_builder
        self.keys = KeyNames.make(self.identity, separator, key_builder)

        if parent is None:
            self.chain: tuple[DistributedPrimaryKey, ...] = (self,)
        else:
            if self.identity in (node.identity for node in parent.chain):
                raise ImproperlyConfigured(
                    f"Identity already used in chain: `{self.identity}`"
                )
            self.chain = (*parent.chain, self)
        self.log = get_logger(__name__, identity=self.identity)

    def insert(self, keys: Iterable[Any]) -> InsertResult:
        """
        Assign unique ids to the given primary keys. Keys that already have an
        id (in this node or any of its ancestors) get their existing id.

        Invalid keys (None, NaN, empty strings) and duplicates within the
        batch are dropped silently.

        Args:
            keys: Primary keys to insert

        Returns:
            The bound keys with their ids, and the keys that didn't fit
            (overflow) because the capacity of the chain is exhausted
        """
        pending = clean_keys(keys)
        originals = dict(pending)
        bound: dict[str, UniqueId] = {}
        for node in self.chain:
            if not pending:
                break
            node_bound, overflow = node._insert(list(pending))
            bound.update(node_bound)
            pending = {field: pending[field] for field in overflow}

        if pending:
            self.log.info(
                "Capacity exhausted, keys overflow",
                capacity=str(self.capacity),
                overflow=len(pending),
            )
        return InsertResult(
            bound={originals[field]: uid for field, uid in bound.items()},
            overflow=list(pending.values()),
        )

    def fetch_unique_ids(self, keys: Iterable[Any]) -> FetchResult:
        """
        Look up the unique ids of the given primary keys without modifying
        anything.

        Returns:
            The found keys with their ids, and the keys without an id
        """
        pending = clean_keys(keys)
        originals = dict(pending)
        found: dict[str, UniqueId] = {}
        for node in self.chain:
            if not pending:
                break
            hits = node._fetch(list(pending))
            found.update(hits)
            pending = {f: k for f, k in pending.items() if f not in hits}

        return FetchResult(
            found={originals[field]: uid for field, uid in found.items()},
            not_found=list(pending.values()),
        )

    def extend(self, identity: str | None = None) -> "DistributedPrimaryKey":
        """Create a successor node chained to this one, sharing pool, key
        naming and capacity policy."""
        return self.__class__(
            self.pool,
            identity,
            parent=self,
            separator=self.separator,
            key_builder=self.key_builder,
            capacity=self.capacity,
        )

    def make_id(self, value: int) -> UniqueId:
        return unique_id(self.identity, self.separator, value)

    def _insert(self, fields: list[str]) -> tuple[dict[str, UniqueId], list[str]]:
        bound: dict[str, UniqueId] = {}
        reclaim: list[int] = []
        with leased(self.pool, self._scope("insert")) as token:
            numbers = self._pop_reclaimed(token, len(fields))
            shortfall = len(fields) - len(numbers)
            if shortfall > 0:
                numbers.extend(self._increment(token, shortfall))

            pairs = list(zip(fields, numbers))
            unresolved = fields[len(pairs) :]
            if pairs:
                # a failed pipeline may be partially applied, its integers
                # are never returned to the reclaim list
                created = self.pool.pipeline(
                    token,
                    [
                        commands.hsetnx(self.keys.map, field, self.make_id(number))
                        for field, number in pairs
                    ],
                    False,
                )
                for (field, number), is_new in zip(pairs, created):
                    if is_new:
                        bound[field] = self.make_id(number)
                    else:
                        # bound before (by another caller): reservation wasted
                        reclaim.append(number)
                        unresolved.append(field)

            if reclaim:
                self.pool.run(token, commands.lpush(self.keys.reclaim, reclaim))

            overflow: list[str] = []
            if unresolved:
                existing = self.pool.run(
                    token, commands.hmget(self.keys.map, unresolved)
                )
                for field, uid in zip(unresolved, existing):
                    if uid is None:
                        overflow.append(field)
                    else:
                        bound[field] = uid

        self.log.debug(
            "Inserted keys",
            bound=len(bound),
            overflow=len(overflow),
            reclaimed=len(reclaim),
        )
        return bound, overflow

    def _fetch(self, fields: list[str]) -> dict[str, UniqueId]:
        with leased(self.pool, self._scope("fetch_unique_ids")) as token:
            values = self.pool.run(token, commands.hmget(self.keys.map, fields))
        return {field: uid for field, uid in zip(fields, values) if uid is not None}

    def _pop_reclaimed(self, token: str, count: int) -> list[int]:
        values = self.pool.run(token, commands.lpop(self.keys.reclaim, count))
        if not values:
            return []
        return [int(v) for v in values]

    def _increment(self, token: str, amount: int) -> range:
        before, after = self.pool.run(
            token,
            commands.incr_saturating(self.keys.counter, self.capacity.field, amount),
        )
        return range(self.capacity.clamp(before), self.capacity.clamp(after))

    def _scope(self, operation: str) -> str:
        return f"{self.identity}{self.separator}{operation}"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.identity}, capacity={self.capacity})>"
