# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Queryable operator surface over push Sources."""

from __future__ import annotations

from .queryable import Queryable

__all__ = ("Queryable",)
