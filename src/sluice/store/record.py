# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from uuid import uuid4

__all__ = ("Record", "create_key")

T = TypeVar("T")


@dataclass(slots=True)
class Record(Generic[T]):
    """A stored value and the key that identifies it.

    Attributes:
        key: Storage position; unique within a store.
        value: Payload. Opaque to the query engine.
    """

    key: Any
    value: T


def create_key() -> str:
    """Random uuid4 key."""
    return str(uuid4())
