# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Queryable - LINQ-style operators over a Source.

A Queryable is an immutable pipeline stage. Intermediate operators return a
new Queryable wrapping a new Source that reads the upstream one; nothing runs
until a terminal operator is awaited, and every terminal triggers a fresh
traversal of the whole chain.

Operator families:
    streaming:  select, select_many, where, skip, take, distinct, cast, concat
    buffering:  order_by, order_by_descending, reverse, intersect
    terminal:   aggregate, all, any, count, sum, average, first, last,
                element_at, single (and *_or_default), each, collect

Example:
    names = await (
        Queryable.from_sequence(users)
        .where(lambda u: u.active)
        .order_by(lambda u: u.age)
        .select(lambda u, i: f"{i}: {u.name}")
        .take(10)
        .collect()
    )

Errors never raise from intermediate operators; they travel as Error events
and surface when the terminal operator is awaited.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Callable, Iterable
from typing import Any, Generic, TypeVar, overload

from sluice.core.cancel import CancelToken
from sluice.core.context import EmissionContext
from sluice.core.events import End, Error, Event, Value
from sluice.core.source import Source
from sluice.errors import ElementNotFoundError, EmptySequenceError, MultipleElementsError

from ._utils import Membership, Outcome, with_index

__all__ = ("Queryable",)

T = TypeVar("T")
U = TypeVar("U")

Equality = Callable[[Any, Any], bool]
OnValue = Callable[[EmissionContext[Any], Any, int], None]


class Queryable(Generic[T]):
    """Lazy, re-runnable query over the values produced by a Source.

    Attributes:
        source: The wrapped Source; read once per terminal operator call.
    """

    __slots__ = ("source",)

    def __init__(self, source: Source[T]) -> None:
        self.source = source

    # =========================================================================
    # Construction
    # =========================================================================

    @staticmethod
    def from_sequence(values: Iterable[T]) -> Queryable[T]:
        """Emit each element of values, then end.

        Re-reading re-iterates ``values``; pass a re-iterable collection
        rather than a one-shot iterator if the query runs more than once.
        """

        def producer(context: EmissionContext[T]) -> None:
            for value in values:
                if context.closed:
                    return
                context.next(value)
            context.end()

        return Queryable(Source(producer))

    @staticmethod
    def range(start: int, stop: int) -> Queryable[int]:
        """Emit start, start + 1, ..., stop - 1, then end."""

        def producer(context: EmissionContext[int]) -> None:
            value = start
            while value < stop:
                if context.closed:
                    return
                context.next(value)
                value += 1
            context.end()

        return Queryable(Source(producer))

    @staticmethod
    def from_async_iterable(
        values: AsyncIterable[T] | Callable[[], AsyncIterable[T]]
    ) -> Queryable[T]:
        """Emit each item of an async iterable, then end.

        Args:
            values: Async iterable, or a factory called once per read so the
                query can be run more than once.
        """

        async def producer(context: EmissionContext[T]) -> None:
            iterable = values() if callable(values) else values
            async for value in iterable:
                if context.closed:
                    return
                context.next(value)
            context.end()

        return Queryable(Source(producer))

    # =========================================================================
    # Streaming operators
    # =========================================================================

    def _pipe(self, stage: Callable[[], OnValue]) -> Queryable[Any]:
        """Build a streaming stage.

        Args:
            stage: Called once per read; returns on_value(context, value,
                index), so per-read state lives in its closure.

        Errors and end are forwarded unchanged. An exception from on_value
        becomes the downstream error. Once the downstream context latches,
        the upstream read is cancelled.
        """
        upstream = self.source

        async def producer(context: EmissionContext[Any]) -> None:
            on_value = stage()
            token = context.token.child()
            index = 0

            def on_event(event: Event) -> None:
                nonlocal index
                match event:
                    case Value(value=value):
                        try:
                            on_value(context, value, index)
                        except Exception as e:
                            context.error(e)
                        index += 1
                    case Error(error=error):
                        context.error(error)
                    case End():
                        context.end()
                if context.done:
                    token.cancel()

            await upstream.read(on_event, token)

        return Queryable(Source(producer))

    def select(self, func: Callable[..., U]) -> Queryable[U]:
        """Project each value with func(value[, index])."""
        func = with_index(func)

        def on_value(context: EmissionContext[U], value: T, index: int) -> None:
            context.next(func(value, index))

        return self._pipe(lambda: on_value)

    def select_many(self, func: Callable[..., Iterable[U]]) -> Queryable[U]:
        """Project each value to an iterable and flatten the results."""
        func = with_index(func)

        def on_value(context: EmissionContext[U], value: T, index: int) -> None:
            for item in func(value, index):
                if context.closed:
                    return
                context.next(item)

        return self._pipe(lambda: on_value)

    def where(self, func: Callable[..., bool]) -> Queryable[T]:
        """Keep values for which func(value[, index]) is truthy."""
        func = with_index(func)

        def on_value(context: EmissionContext[T], value: T, index: int) -> None:
            if func(value, index):
                context.next(value)

        return self._pipe(lambda: on_value)

    def skip(self, count: int) -> Queryable[T]:
        """Bypass the first count values."""

        def on_value(context: EmissionContext[T], value: T, index: int) -> None:
            if index >= count:
                context.next(value)

        return self._pipe(lambda: on_value)

    def take(self, count: int) -> Queryable[T]:
        """Forward the first count values, then end and cancel the upstream.

        With count <= 0 the upstream is still read up to its first event, so
        an upstream error is reported rather than hidden.
        """

        def on_value(context: EmissionContext[T], value: T, index: int) -> None:
            if index < count:
                context.next(value)
            if index + 1 >= count:
                context.end()

        return self._pipe(lambda: on_value)

    def distinct(self, equals: Equality | None = None) -> Queryable[T]:
        """Drop values equal to one already forwarded.

        Args:
            equals: Equality capability; defaults to ``==`` between values
                of the same type.
        """

        def stage() -> OnValue:
            seen = Membership(equals)

            def on_value(context: EmissionContext[T], value: T, index: int) -> None:
                if value not in seen:
                    seen.add(value)
                    context.next(value)

            return on_value

        return self._pipe(stage)

    @overload
    def cast(self) -> Queryable[Any]: ...

    @overload
    def cast(self, type_: type[U]) -> Queryable[U]: ...

    def cast(self, type_: type[U] | None = None) -> Queryable[Any]:
        """Re-type the sequence. No conversion or check happens at runtime."""

        def on_value(context: EmissionContext[Any], value: Any, index: int) -> None:
            context.next(value)

        return self._pipe(lambda: on_value)

    def concat(self, other: Queryable[T]) -> Queryable[T]:
        """Enumerate this sequence, then other. Other is not read on error."""
        first, second = self.source, other.source

        async def producer(context: EmissionContext[T]) -> None:
            def head(event: Event) -> None:
                match event:
                    case Value(value=value):
                        context.next(value)
                    case Error(error=error):
                        context.error(error)

            head_token = context.token.child()
            try:
                await first.consume(head, head_token)
            finally:
                head_token.cancel()
            if context.closed:
                return
            await second.read(_forward(context), context.token.child())

        return Queryable(Source(producer))

    # =========================================================================
    # Buffering operators
    # =========================================================================

    def _buffered(self, arrange: Callable[[list[T]], Iterable[T]]) -> Queryable[T]:
        """Collect the upstream fully, then replay arrange(buffer) and end."""
        upstream = self

        async def producer(context: EmissionContext[T]) -> None:
            outcome = await upstream._gather(context.token.child())
            if not outcome.settled:
                return
            if outcome.failed:
                context.error(outcome.error)
                return
            try:
                arranged = list(arrange(outcome.value))
            except Exception as e:
                context.error(e)
                return
            for value in arranged:
                if context.closed:
                    return
                context.next(value)
            context.end()

        return Queryable(Source(producer))

    def order_by(self, key: Callable[[T], Any]) -> Queryable[T]:
        """Stable ascending sort on key(value). Buffers the whole sequence."""
        return self._buffered(lambda buffer: sorted(buffer, key=key))

    def order_by_descending(self, key: Callable[[T], Any]) -> Queryable[T]:
        """Stable descending sort on key(value). Buffers the whole sequence."""
        return self._buffered(lambda buffer: sorted(buffer, key=key, reverse=True))

    def reverse(self) -> Queryable[T]:
        """Invert the order of the sequence. Buffers the whole sequence."""
        return self._buffered(lambda buffer: buffer[::-1])

    def intersect(self, other: Queryable[T], equals: Equality | None = None) -> Queryable[T]:
        """Stream values of other that are present in this sequence.

        This sequence is buffered in full first; other is streamed, so the
        result follows other's order.
        """
        receiver, argument = self, other.source

        async def producer(context: EmissionContext[T]) -> None:
            outcome = await receiver._gather(context.token.child())
            if not outcome.settled:
                return
            if outcome.failed:
                context.error(outcome.error)
                return

            members = Membership(equals)
            for value in outcome.value:
                members.add(value)

            token = context.token.child()

            def on_event(event: Event) -> None:
                match event:
                    case Value(value=value):
                        try:
                            if value in members:
                                context.next(value)
                        except Exception as e:
                            context.error(e)
                    case Error(error=error):
                        context.error(error)
                    case End():
                        context.end()
                if context.done:
                    token.cancel()

            await argument.read(on_event, token)

        return Queryable(Source(producer))

    # =========================================================================
    # Terminal operators
    # =========================================================================

    async def _settle(self, outcome: Outcome[U], on_event: Callable[[Event], None]) -> U:
        """Consume the source until outcome settles, then unwrap it."""
        await self.source.consume(outcome.guard(on_event), outcome.token)
        return outcome.unwrap()

    async def _gather(self, token: CancelToken) -> Outcome[list[T]]:
        outcome: Outcome[list[T]] = Outcome(token)
        buffer: list[T] = []

        def on_event(event: Event) -> None:
            match event:
                case Value(value=value):
                    buffer.append(value)
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve(buffer)

        await self.source.consume(outcome.guard(on_event), token)
        return outcome

    async def aggregate(self, func: Callable[..., U], initial: U) -> U:
        """Fold func(acc, value[, index]) over the sequence, starting at initial."""
        func = with_index(func, arity=2)
        outcome: Outcome[U] = Outcome()
        acc = initial
        index = 0

        def on_event(event: Event) -> None:
            nonlocal acc, index
            match event:
                case Value(value=value):
                    acc = func(acc, value, index)
                    index += 1
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve(acc)

        return await self._settle(outcome, on_event)

    async def all(self, func: Callable[..., bool]) -> bool:
        """True if every value satisfies func. Stops at the first failure."""
        func = with_index(func)
        outcome: Outcome[bool] = Outcome()
        index = 0

        def on_event(event: Event) -> None:
            nonlocal index
            match event:
                case Value(value=value):
                    if not func(value, index):
                        outcome.resolve(False)
                    index += 1
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve(True)

        return await self._settle(outcome, on_event)

    async def any(self, func: Callable[..., bool] | None = None) -> bool:
        """True if any value satisfies func (or, without func, if any value
        exists). Stops at the first match."""
        func = with_index(func) if func is not None else None
        outcome: Outcome[bool] = Outcome()
        index = 0

        def on_event(event: Event) -> None:
            nonlocal index
            match event:
                case Value(value=value):
                    if func is None or func(value, index):
                        outcome.resolve(True)
                    index += 1
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve(False)

        return await self._settle(outcome, on_event)

    async def count(self) -> int:
        """Number of values in the sequence."""
        outcome: Outcome[int] = Outcome()
        total = 0

        def on_event(event: Event) -> None:
            nonlocal total
            match event:
                case Value():
                    total += 1
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve(total)

        return await self._settle(outcome, on_event)

    async def sum(self, func: Callable[..., Any] | None = None) -> Any:
        """Sum of func(value[, index]), or of the values themselves."""
        return (await self._accumulate(func))[0]

    async def average(self, func: Callable[..., Any] | None = None) -> Any:
        """Mean of func(value[, index]), or of the values. 0 when empty."""
        total, count = await self._accumulate(func)
        return total / count if count > 0 else 0

    async def _accumulate(self, func: Callable[..., Any] | None) -> tuple[Any, int]:
        func = with_index(func) if func is not None else None
        outcome: Outcome[tuple[Any, int]] = Outcome()
        total: Any = 0
        index = 0

        def on_event(event: Event) -> None:
            nonlocal total, index
            match event:
                case Value(value=value):
                    total += func(value, index) if func is not None else value
                    index += 1
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve((total, index))

        return await self._settle(outcome, on_event)

    async def first(self) -> T:
        """First value.

        Raises:
            EmptySequenceError: If the sequence is empty.
        """
        outcome: Outcome[T] = Outcome()

        def on_event(event: Event) -> None:
            match event:
                case Value(value=value):
                    outcome.resolve(value)
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.reject(EmptySequenceError())

        return await self._settle(outcome, on_event)

    async def first_or_default(self, default: U | None = None) -> T | U | None:
        """First value, or default if the sequence is empty."""
        outcome: Outcome[T | U | None] = Outcome()

        def on_event(event: Event) -> None:
            match event:
                case Value(value=value):
                    outcome.resolve(value)
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve(default)

        return await self._settle(outcome, on_event)

    async def last(self) -> T:
        """Last value.

        Raises:
            EmptySequenceError: If the sequence is empty.
        """
        found, value = await self._last()
        if not found:
            raise EmptySequenceError()
        return value

    async def last_or_default(self, default: U | None = None) -> T | U | None:
        """Last value, or default if the sequence is empty."""
        found, value = await self._last()
        return value if found else default

    async def _last(self) -> tuple[bool, Any]:
        outcome: Outcome[tuple[bool, Any]] = Outcome()
        found = False
        current: Any = None

        def on_event(event: Event) -> None:
            nonlocal found, current
            match event:
                case Value(value=value):
                    found, current = True, value
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve((found, current))

        return await self._settle(outcome, on_event)

    async def element_at(self, index: int) -> T:
        """Value at zero-based index.

        Raises:
            ElementNotFoundError: If index is negative or past the end.
        """
        found, value = await self._element_at(index)
        if not found:
            raise ElementNotFoundError(f"no element at [{index}]", details={"index": index})
        return value

    async def element_at_or_default(self, index: int, default: U | None = None) -> T | U | None:
        """Value at zero-based index, or default if out of range."""
        found, value = await self._element_at(index)
        return value if found else default

    async def _element_at(self, index: int) -> tuple[bool, Any]:
        outcome: Outcome[tuple[bool, Any]] = Outcome()
        position = 0

        def on_event(event: Event) -> None:
            nonlocal position
            match event:
                case Value(value=value):
                    if position == index:
                        outcome.resolve((True, value))
                    position += 1
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve((False, None))

        return await self._settle(outcome, on_event)

    async def single(self, func: Callable[..., bool] | None = None) -> T:
        """The only value satisfying func (or the only value, without func).

        Raises:
            MultipleElementsError: On the second match; reading stops there.
            ElementNotFoundError: If nothing matches.
        """
        found, value = await self._single(func)
        if not found:
            raise ElementNotFoundError()
        return value

    async def single_or_default(
        self, func: Callable[..., bool] | None = None, default: U | None = None
    ) -> T | U | None:
        """Like single(), but returns default when nothing matches.

        Raises:
            MultipleElementsError: On the second match.
        """
        found, value = await self._single(func)
        return value if found else default

    async def _single(self, func: Callable[..., bool] | None) -> tuple[bool, Any]:
        func = with_index(func) if func is not None else None
        outcome: Outcome[tuple[bool, Any]] = Outcome()
        found = False
        hit: Any = None
        index = 0

        def on_event(event: Event) -> None:
            nonlocal found, hit, index
            match event:
                case Value(value=value):
                    if func is None or func(value, index):
                        if found:
                            outcome.reject(
                                MultipleElementsError(details={"indices": [hit[0], index]})
                            )
                        else:
                            found, hit = True, (index, value)
                    index += 1
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve((found, hit[1] if found else None))

        return await self._settle(outcome, on_event)

    async def each(self, func: Callable[..., Any]) -> None:
        """Call func(value[, index]) for every value."""
        func = with_index(func)
        outcome: Outcome[None] = Outcome()
        index = 0

        def on_event(event: Event) -> None:
            nonlocal index
            match event:
                case Value(value=value):
                    func(value, index)
                    index += 1
                case Error(error=error):
                    outcome.reject(error)
                case End():
                    outcome.resolve(None)

        return await self._settle(outcome, on_event)

    async def collect(self) -> list[T]:
        """All values, in order."""
        outcome = await self._gather(CancelToken())
        return outcome.unwrap()

    def __repr__(self) -> str:
        return f"Queryable({self.source!r})"


def _forward(context: EmissionContext[Any]) -> Callable[[Event], None]:
    """Handler re-emitting every event on context unchanged."""

    def on_event(event: Event) -> None:
        match event:
            case Value(value=value):
                context.next(value)
            case Error(error=error):
                context.error(error)
            case End():
                context.end()

    return on_event
