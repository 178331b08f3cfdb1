# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Push-protocol primitives: events, emission context, cancellation, Source."""

from __future__ import annotations

from typing import TYPE_CHECKING

# Lazy import mapping - all modules are in sluice.core.*
_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    # cancel
    "CancelToken": ("sluice.core.cancel", "CancelToken"),
    # context
    "EmissionContext": ("sluice.core.context", "EmissionContext"),
    # events
    "End": ("sluice.core.events", "End"),
    "Error": ("sluice.core.events", "Error"),
    "Event": ("sluice.core.events", "Event"),
    "EventHandler": ("sluice.core.events", "EventHandler"),
    "Value": ("sluice.core.events", "Value"),
    # source
    "Producer": ("sluice.core.source", "Producer"),
    "Source": ("sluice.core.source", "Source"),
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

    raise AttributeError(f"module 'sluice.core' has no attribute {name!r}")


def __dir__() -> list[str]:
    """Return all available attributes for autocomplete."""
    return list(__all__)


# TYPE_CHECKING block for static analysis
if TYPE_CHECKING:
    from .cancel import CancelToken
    from .context import EmissionContext
    from .events import End, Error, Event, EventHandler, Value
    from .source import Producer, Source

__all__ = [
    "CancelToken",
    "EmissionContext",
    "End",
    "Error",
    "Event",
    "EventHandler",
    "Producer",
    "Source",
    "Value",
]
