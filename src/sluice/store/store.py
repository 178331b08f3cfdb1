# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Store - in-memory record collection with a staged mutation queue.

A Store is itself a Queryable over its records: each terminal operator scans
a snapshot taken when the scan starts. Mutations are queued with insert(),
update() and delete() and applied all-or-nothing by submit().

Example:
    store = Store("customers")
    store.insert({"name": "dave", "value": 1}).insert({"name": "ann", "value": 2})
    await store.submit()

    first = await store.order_by(lambda r: r.value["value"]).first()
    first.value["name"] = "roger"
    await store.update(first).submit()
"""

from __future__ import annotations

import copy
import inspect
import logging
from collections.abc import Awaitable
from typing import Any, Generic, TypeVar, Union

import anyio
from pydantic import Field

from sluice.core.context import EmissionContext
from sluice.core.source import Source
from sluice.errors import ExistsError, NotFoundError
from sluice.query.queryable import Queryable
from sluice.types import HashableModel

from .record import Record, create_key

logger = logging.getLogger(__name__)

__all__ = ("RecordParameter", "Store", "StoreConfig")

T = TypeVar("T")

RecordParameter = Union[Any, list[Any], Queryable[Any], Awaitable[Any]]


class StoreConfig(HashableModel):
    """Store behaviour.

    Attributes:
        scan_batch_size: Records emitted between event-loop checkpoints.
        copy_records: Deep-copy values on write and on read, so records
            handed to callers never alias stored state.
    """

    scan_batch_size: int = Field(default=100, gt=0)
    copy_records: bool = Field(default=True)


async def _resolve(records: RecordParameter) -> list[Any]:
    """Flatten a record parameter: item, list, Queryable, or awaitable of those.

    Only lists are flattened; a tuple is a single value.
    """
    if records is None:
        return []
    if isinstance(records, list):
        return list(records)
    if isinstance(records, Queryable):
        return await records.collect()
    if inspect.isawaitable(records):
        return await _resolve(await records)
    return [records]


class Store(Queryable[Record[T]], Generic[T]):
    """Named in-memory collection of Records.

    Attributes:
        name: Store name, unique within a Database.
        config: StoreConfig.
    """

    def __init__(self, name: str, config: StoreConfig | None = None) -> None:
        self.name = name
        self.config = config or StoreConfig()
        self._records: dict[Any, T] = {}
        self._inserts: list[Any] = []
        self._updates: list[Any] = []
        self._deletes: list[Any] = []
        self._lock: anyio.Lock | None = None
        super().__init__(Source(self._scan))

    def _copy(self, value: T) -> T:
        return copy.deepcopy(value) if self.config.copy_records else value

    async def _scan(self, context: EmissionContext[Record[T]]) -> None:
        snapshot = list(self._records.items())
        batch = self.config.scan_batch_size
        for offset, (key, value) in enumerate(snapshot):
            if offset and offset % batch == 0:
                await anyio.sleep(0)
            if context.closed:
                return
            context.next(Record(key, self._copy(value)))
        context.end()

    # -------------------------------------------------------------------------
    # Mutation queue
    # -------------------------------------------------------------------------

    def insert(self, records: RecordParameter) -> Store[T]:
        """Queue values (keyed with create_key()) or Records for insertion."""
        self._inserts.append(records)
        return self

    def update(self, records: RecordParameter) -> Store[T]:
        """Queue Records whose stored value is replaced on submit."""
        self._updates.append(records)
        return self

    def delete(self, records: RecordParameter) -> Store[T]:
        """Queue Records (or bare keys) for deletion."""
        self._deletes.append(records)
        return self

    @property
    def pending(self) -> int:
        """Number of queued mutation calls."""
        return len(self._inserts) + len(self._updates) + len(self._deletes)

    def clear(self) -> None:
        """Discard queued mutations."""
        self._inserts.clear()
        self._updates.clear()
        self._deletes.clear()

    async def _drain(self, queue: list[Any], count: int) -> list[Any]:
        """Resolve queued parameters in place so a retried submit reuses them."""
        items: list[Any] = []
        for position in range(count):
            resolved = await _resolve(queue[position])
            queue[position] = resolved
            items.extend(resolved)
        return items

    async def submit(self) -> None:
        """Apply queued inserts, then updates, then deletes, atomically.

        The whole batch is validated against a working copy before it
        replaces the stored records; on any failure nothing is applied and
        the queue is kept.

        Raises:
            ExistsError: An inserted key is already present.
            NotFoundError: An updated key is not present.
            TypeError: update() was given something other than a Record.
        """
        if self._lock is None:
            self._lock = anyio.Lock()

        async with self._lock:
            counts = (len(self._inserts), len(self._updates), len(self._deletes))
            inserts = await self._drain(self._inserts, counts[0])
            updates = await self._drain(self._updates, counts[1])
            deletes = await self._drain(self._deletes, counts[2])

            staged = dict(self._records)
            for item in inserts:
                record = item if isinstance(item, Record) else Record(create_key(), item)
                if record.key in staged:
                    raise ExistsError(
                        f"Record '{record.key}' already exists in store '{self.name}'",
                        details={"store": self.name, "key": record.key},
                    )
                staged[record.key] = self._copy(record.value)
            for item in updates:
                if not isinstance(item, Record):
                    raise TypeError(f"update() expects Record, got {type(item).__name__}")
                if item.key not in staged:
                    raise NotFoundError(
                        f"Record '{item.key}' not found in store '{self.name}'",
                        details={"store": self.name, "key": item.key},
                    )
                staged[item.key] = self._copy(item.value)
            for item in deletes:
                staged.pop(item.key if isinstance(item, Record) else item, None)

            self._records = staged
            del self._inserts[: counts[0]]
            del self._updates[: counts[1]]
            del self._deletes[: counts[2]]

        logger.debug(
            f"Store '{self.name}' submitted {len(inserts)} inserts, "
            f"{len(updates)} updates, {len(deletes)} deletes"
        )

    # -------------------------------------------------------------------------
    # Direct access
    # -------------------------------------------------------------------------

    async def get(self, key: Any) -> Record[T]:
        """Record stored under key. Raises NotFoundError if absent."""
        if key not in self._records:
            raise NotFoundError(
                f"Record '{key}' not found in store '{self.name}'",
                details={"store": self.name, "key": key},
            )
        return Record(key, self._copy(self._records[key]))

    async def size(self) -> int:
        """Number of stored records, without scanning."""
        return len(self._records)

    def query(self) -> Queryable[Record[T]]:
        """Plain Queryable over this store's records."""
        return Queryable(self.source)

    def __repr__(self) -> str:
        return f"Store(name={self.name!r}, records={len(self._records)}, pending={self.pending})"
