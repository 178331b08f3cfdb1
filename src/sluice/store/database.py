# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Database - named registry of in-memory Stores."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field

from sluice.errors import NotFoundError
from sluice.types import HashableModel

from .record import create_key
from .store import Store, StoreConfig

logger = logging.getLogger(__name__)

__all__ = ("Database", "DatabaseConfig")


class DatabaseConfig(HashableModel):
    """Database layout.

    Attributes:
        name: Database name.
        stores: Store names created up front.
        auto_create: Create undeclared stores on first access.
        store: Config applied to every store.
    """

    name: str = Field(..., min_length=1)
    stores: tuple[str, ...] = Field(default=())
    auto_create: bool = Field(default=True)
    store: StoreConfig = Field(default_factory=StoreConfig)


class Database:
    """Collection of Stores sharing one StoreConfig.

    Example:
        db = Database.open("db0", stores=["customers"])
        db.store("customers").insert({"name": "dave"})
        await db.submit()
        count = await db.store("customers").count()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self.config = config
        self._stores: dict[str, Store[Any]] = {}
        for name in config.stores:
            self._stores[name] = Store(name, config.store)

    @classmethod
    def open(cls, name: str, stores: list[str] | tuple[str, ...] = (), **kwargs: Any) -> Database:
        """Build a Database from keyword config values."""
        return cls(DatabaseConfig(name=name, stores=tuple(stores), **kwargs))

    @property
    def name(self) -> str:
        return self.config.name

    def store(self, name: str) -> Store[Any]:
        """Return the named store, creating it when auto_create is on.

        Raises:
            NotFoundError: If the store does not exist and auto_create is off.
        """
        if name not in self._stores:
            if not self.config.auto_create:
                raise NotFoundError(
                    f"Store '{name}' not found in database '{self.name}'",
                    details={"database": self.name, "store": name},
                )
            logger.debug(f"Creating store '{name}' in database '{self.name}'")
            self._stores[name] = Store(name, self.config.store)
        return self._stores[name]

    def store_names(self) -> list[str]:
        return list(self._stores)

    def drop(self, name: str) -> None:
        """Remove a store and its records.

        Raises:
            NotFoundError: If the store does not exist.
        """
        if self._stores.pop(name, None) is None:
            raise NotFoundError(
                f"Store '{name}' not found in database '{self.name}'",
                details={"database": self.name, "store": name},
            )

    async def submit(self) -> None:
        """Submit every store with queued mutations, in creation order."""
        for store in list(self._stores.values()):
            if store.pending:
                await store.submit()

    @staticmethod
    def create_key() -> str:
        """Random uuid4 key for records."""
        return create_key()

    def __contains__(self, name: str) -> bool:
        return name in self._stores

    def __repr__(self) -> str:
        return f"Database(name={self.name!r}, stores={len(self._stores)})"
