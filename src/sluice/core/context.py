# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""EmissionContext - the single channel a producer emits through.

One context per read. The first terminal signal (error or end) latches the
context; every later next/error/end call is dropped. A cancelled token closes
the context the same way, so producers only need to check ``closed``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from sluice.errors import SourceError

from .cancel import CancelToken

logger = logging.getLogger(__name__)

__all__ = ("EmissionContext",)

T = TypeVar("T")


class EmissionContext(Generic[T]):
    """Latching emitter handed to a producer function.

    Args:
        on_value: Called for each value while the context is open.
        on_error: Called once with the failure when error() latches.
        on_end: Called once when the context latches (after on_error).
        token: Cancellation token; a fresh one when omitted.
    """

    __slots__ = ("_on_value", "_on_error", "_on_end", "_token", "_done")

    def __init__(
        self,
        on_value: Callable[[T], Any],
        on_error: Callable[[BaseException], Any],
        on_end: Callable[[], Any],
        token: CancelToken | None = None,
    ) -> None:
        self._on_value = on_value
        self._on_error = on_error
        self._on_end = on_end
        self._token = token if token is not None else CancelToken()
        self._done = False

    @property
    def token(self) -> CancelToken:
        return self._token

    @property
    def done(self) -> bool:
        """True once error() or end() has latched."""
        return self._done

    @property
    def closed(self) -> bool:
        """True when no further events will be delivered."""
        return self._done or self._token.cancelled

    def next(self, value: T) -> None:
        if self.closed:
            logger.debug("Dropped value emitted on closed context")
            return
        self._on_value(value)

    def error(self, error: BaseException | Any) -> None:
        if self.closed:
            logger.debug("Dropped error emitted on closed context: %r", error)
            return
        self._done = True
        if not isinstance(error, BaseException):
            error = SourceError(str(error), details={"payload": error})
        self._on_error(error)
        self._on_end()

    def end(self) -> None:
        if self.closed:
            logger.debug("Dropped end emitted on closed context")
            return
        self._done = True
        self._on_end()

    def __repr__(self) -> str:
        state = "done" if self._done else "cancelled" if self._token.cancelled else "open"
        return f"EmissionContext({state})"
