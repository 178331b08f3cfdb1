# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Internal helpers for Queryable operators."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from sluice.core.cancel import CancelToken
from sluice.core.events import Event

__all__ = ("Membership", "Outcome", "with_index")

T = TypeVar("T")

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def _positional_count(func: Callable[..., Any]) -> int | None:
    """Number of required positional parameters, None for *args, 0 if uninspectable."""
    # constructors (int, str, dataclasses) take the value only
    if inspect.isclass(func):
        return 0
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return 0
    count = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return None
        if param.kind in _POSITIONAL and param.default is inspect.Parameter.empty:
            count += 1
    return count


def with_index(func: Callable[..., Any], arity: int = 1) -> Callable[..., Any]:
    """Adapt func to always be called with a trailing index argument.

    Callbacks may be written with or without the index parameter:
    ``lambda v: v * 2`` and ``lambda v, i: v * i`` are both accepted.
    Parameters with defaults never receive the index, so ``round`` or
    ``lambda v, scale=2: v * scale`` are called with the value only.

    Args:
        func: User callback.
        arity: Number of arguments excluding the index.

    Returns:
        Callable taking ``arity`` arguments followed by the index.
    """
    count = _positional_count(func)
    if count is None or count > arity:
        return func

    def call(*args: Any) -> Any:
        return func(*args[:arity])

    return call


class Membership:
    """Equality-based set used by distinct and intersect.

    Default equality is ``==`` between values of the same type, so ``1``,
    ``True`` and ``1.0`` stay distinct. Hashable values are looked up in a
    set, unhashable ones by linear scan. A custom ``equals(a, b)`` always
    scans.
    """

    __slots__ = ("_equals", "_hashed", "_unhashable")

    def __init__(self, equals: Callable[[Any, Any], bool] | None = None) -> None:
        self._equals = equals
        self._hashed: set[tuple[type, Any]] = set()
        self._unhashable: list[Any] = []

    def add(self, value: Any) -> None:
        if self._equals is not None:
            self._unhashable.append(value)
            return
        try:
            self._hashed.add((type(value), value))
        except TypeError:
            self._unhashable.append(value)

    def __contains__(self, value: Any) -> bool:
        if self._equals is not None:
            return any(self._equals(item, value) for item in self._unhashable)
        try:
            if (type(value), value) in self._hashed:
                return True
        except TypeError:
            pass
        return any(_same(item, value) for item in self._unhashable)


def _same(a: Any, b: Any) -> bool:
    return type(a) is type(b) and a == b


class Outcome(Generic[T]):
    """Single-shot settlement of a terminal operator.

    The first resolve() or reject() wins and cancels the token the upstream
    is being read with; later calls are ignored.
    """

    __slots__ = ("_token", "settled", "value", "error")

    def __init__(self, token: CancelToken | None = None) -> None:
        self._token = token if token is not None else CancelToken()
        self.settled = False
        self.value: T | None = None
        self.error: BaseException | None = None

    @property
    def token(self) -> CancelToken:
        return self._token

    @property
    def failed(self) -> bool:
        return self.error is not None

    def resolve(self, value: T) -> None:
        if self.settled:
            return
        self.settled = True
        self.value = value
        self._token.cancel()

    def reject(self, error: BaseException) -> None:
        if self.settled:
            return
        self.settled = True
        self.error = error
        self._token.cancel()

    def guard(self, func: Callable[[Event], Any]) -> Callable[[Event], None]:
        """Wrap an event handler: ignore events once settled, reject on raise."""

        def handler(event: Event) -> None:
            if self.settled:
                return
            try:
                func(event)
            except Exception as e:
                self.reject(e)

        return handler

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
