# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Shared base types."""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict

__all__ = ("HashableModel",)


class HashableModel(BaseModel):
    """Frozen pydantic model, hashable by its JSON dump.

    Used for configuration objects so they can key caches and be compared
    by value.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    def __hash__(self) -> int:
        return hash(json.dumps(self.model_dump(mode="json"), sort_keys=True))
