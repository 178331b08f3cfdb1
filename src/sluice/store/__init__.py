# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""In-memory record storage queried through Queryable."""

from __future__ import annotations

from .database import Database, DatabaseConfig
from .record import Record, create_key
from .store import RecordParameter, Store, StoreConfig

__all__ = (
    "Database",
    "DatabaseConfig",
    "Record",
    "RecordParameter",
    "Store",
    "StoreConfig",
    "create_key",
)
