# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Emission events delivered to a Source reader.

A subscription sees zero or more Value events followed by exactly one
terminal event (Error or End).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

__all__ = ("End", "Error", "Event", "EventHandler", "Value")

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Value(Generic[T]):
    """A produced element."""

    value: T

    @property
    def terminal(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Error:
    """Terminal failure signal."""

    error: BaseException

    @property
    def terminal(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class End:
    """Terminal completion signal."""

    @property
    def terminal(self) -> bool:
        return True


Event = Union[Value[Any], Error, End]
EventHandler = Callable[[Event], Any]
