# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""sluice - Deferred-execution LINQ-style queries over push Sources.

Top-level re-exports for convenient imports:
- sluice.Queryable -> sluice.query.queryable
- sluice.Source, sluice.EmissionContext, sluice.CancelToken -> sluice.core
- sluice.Database, sluice.Store, sluice.Record -> sluice.store
"""

from __future__ import annotations

from typing import TYPE_CHECKING

# Lazy import mapping
_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    # core
    "CancelToken": ("sluice.core.cancel", "CancelToken"),
    "EmissionContext": ("sluice.core.context", "EmissionContext"),
    "End": ("sluice.core.events", "End"),
    "Error": ("sluice.core.events", "Error"),
    "Source": ("sluice.core.source", "Source"),
    "Value": ("sluice.core.events", "Value"),
    # query
    "Queryable": ("sluice.query.queryable", "Queryable"),
    # store
    "Database": ("sluice.store.database", "Database"),
    "DatabaseConfig": ("sluice.store.database", "DatabaseConfig"),
    "Record": ("sluice.store.record", "Record"),
    "Store": ("sluice.store.store", "Store"),
    "StoreConfig": ("sluice.store.store", "StoreConfig"),
}

_LOADED: dict[str, object] = {}


def __getattr__(name: str) -> object:
    """Lazy import attributes on first access."""
    if name in _LOADED:
        return _LOADED[name]

    if name in _LAZY_IMPORTS:
        from importlib import import_module

        module_name, attr_name = _LAZY_IMPORTS[name]
        module = import_module(module_name)
        value = getattr(module, attr_name)
        _LOADED[name] = value
        return value

    raise AttributeError(f"module 'sluice' has no attribute {name!r}")


def __dir__() -> list[str]:
    """Return all available attributes for autocomplete."""
    return list(__all__)


if TYPE_CHECKING:
    from sluice.core.cancel import CancelToken
    from sluice.core.context import EmissionContext
    from sluice.core.events import End, Error, Value
    from sluice.core.source import Source
    from sluice.query.queryable import Queryable
    from sluice.store.database import Database, DatabaseConfig
    from sluice.store.record import Record
    from sluice.store.store import Store, StoreConfig

__all__ = (
    "CancelToken",
    "Database",
    "DatabaseConfig",
    "EmissionContext",
    "End",
    "Error",
    "Queryable",
    "Record",
    "Source",
    "Store",
    "StoreConfig",
    "Value",
)
