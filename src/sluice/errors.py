# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Exception hierarchy for sluice.

Every error carries a human-readable message, a details dict for structured
context, and a retryable flag:

    SluiceError
    ├── SourceError            producer signalled a non-exception failure
    ├── SequenceError          cardinality / emptiness violations
    │   ├── EmptySequenceError
    │   ├── ElementNotFoundError
    │   └── MultipleElementsError
    └── StoreError             in-memory record store
        ├── NotFoundError
        └── ExistsError
"""

from __future__ import annotations

from typing import Any

__all__ = (
    "ElementNotFoundError",
    "EmptySequenceError",
    "ExistsError",
    "MultipleElementsError",
    "NotFoundError",
    "SequenceError",
    "SluiceError",
    "SourceError",
    "StoreError",
)


class SluiceError(Exception):
    """Base error for all sluice failures.

    Attributes:
        message: Human-readable description.
        details: Structured context (indices, keys, store names).
        retryable: Whether repeating the operation may succeed.
    """

    default_message: str = "Sluice error"
    default_retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        retryable: bool | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        self.retryable = self.default_retryable if retryable is None else retryable
        super().__init__(self.message)
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging or transport."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "retryable": self.retryable,
            **({"details": self.details} if self.details else {}),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class SourceError(SluiceError):
    """A producer signalled failure with a payload that is not an exception."""

    default_message = "Source signalled an error"
    default_retryable = True


class SequenceError(SluiceError):
    """Sequence did not hold the number of elements an operator required."""

    default_message = "Sequence cardinality violation"


class EmptySequenceError(SequenceError):
    default_message = "no elements in sequence"


class ElementNotFoundError(SequenceError):
    default_message = "unable to locate element with the given criteria"


class MultipleElementsError(SequenceError):
    default_message = "found multiple elements in this sequence"


class StoreError(SluiceError):
    """Record store failure."""

    default_message = "Store error"


class NotFoundError(StoreError):
    default_message = "Not found"


class ExistsError(StoreError):
    default_message = "Already exists"
