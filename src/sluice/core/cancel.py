# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""CancelToken - consumer-to-producer stop signal.

Tokens form a tree: cancelling a token cancels every child derived from it,
never its parent. Operators that are satisfied early (take, first, any, ...)
cancel the token they read their upstream with; producers poll
``context.closed`` and stop emitting.
"""

from __future__ import annotations

from collections.abc import Callable

__all__ = ("CancelToken",)


def _noop() -> None:
    return None


class CancelToken:
    """Idempotent cancellation flag with callbacks."""

    __slots__ = ("_cancelled", "_callbacks")

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Cancel this token and its children. Subsequent calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register callback; runs immediately if already cancelled.

        Returns:
            Function that unregisters the callback.
        """
        if self._cancelled:
            callback()
            return _noop

        self._callbacks.append(callback)

        def unsubscribe() -> None:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    def child(self) -> CancelToken:
        """Derive a token cancelled together with this one."""
        token = CancelToken()
        unlink = self.on_cancel(token.cancel)
        token.on_cancel(unlink)
        return token

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self._cancelled})"
