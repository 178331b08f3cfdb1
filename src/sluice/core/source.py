# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Source - deferred, re-readable producer of emission events.

A Source wraps a producer function. Every read builds a fresh
EmissionContext and invokes the producer anew, so a Source holds no state of
its own; any state lives in closures scoped to one read.

Example:
    def producer(context):
        for value in (1, 2, 3):
            context.next(value)
        context.end()

    async def slow_producer(context):
        rows = await fetch_rows()
        for row in rows:
            if context.closed:
                return
            context.next(row)
        context.end()

    await Source(producer).consume(print)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

import anyio

from .cancel import CancelToken
from .context import EmissionContext
from .events import End, Error, Event, EventHandler, Value

logger = logging.getLogger(__name__)

__all__ = ("Producer", "Source")

T = TypeVar("T")

Producer = Callable[[EmissionContext[T]], "Awaitable[None] | None"]


class Source(Generic[T]):
    """Deferred producer of Value/Error/End events.

    Attributes:
        func: Producer invoked with a fresh EmissionContext on each read.
            May be a plain function or a coroutine function.
    """

    __slots__ = ("func",)

    def __init__(self, func: Producer[T]) -> None:
        self.func = func

    async def read(self, func: EventHandler, token: CancelToken | None = None) -> None:
        """Subscribe func to a fresh run of the producer.

        Returns once the producer function returns, which for producers that
        hand the context to other tasks may precede the terminal event. An
        exception raised by the producer is delivered as an Error event.

        Args:
            func: Receives Value, then exactly one Error or End.
            token: Cancels this run; the context closes when it fires.
        """
        errored = False

        def on_error(error: BaseException) -> None:
            nonlocal errored
            errored = True
            func(Error(error))

        def on_end() -> None:
            if not errored:
                func(End())

        context: EmissionContext[T] = EmissionContext(
            lambda value: func(Value(value)), on_error, on_end, token
        )
        try:
            result = self.func(context)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.debug(f"Producer raised {type(e).__name__}: {e}")
            context.error(e)

    async def consume(self, func: EventHandler, token: CancelToken | None = None) -> None:
        """Read and wait until the terminal event arrives or token is cancelled."""
        token = token if token is not None else CancelToken()
        finished = anyio.Event()

        def relay(event: Event) -> Any:
            func(event)
            if event.terminal:
                finished.set()

        unsubscribe = token.on_cancel(finished.set)
        try:
            await self.read(relay, token)
            await finished.wait()
        finally:
            unsubscribe()

    def __repr__(self) -> str:
        name = getattr(self.func, "__qualname__", type(self.func).__name__)
        return f"Source({name})"
