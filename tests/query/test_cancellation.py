# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Tests for early termination: satisfied operators stop their upstream."""

from __future__ import annotations

import anyio
import pytest

from sluice.core.source import Source
from sluice.query import Queryable

# =============================================================================
# Helpers
# =============================================================================


def tracked(emitted, limit=None):
    """Counting producer that honours context.closed."""

    def producer(context):
        value = 0
        while limit is None or value < limit:
            if context.closed:
                return
            emitted.append(value)
            context.next(value)
            value += 1
        context.end()

    return Queryable(Source(producer))


def stubborn(count):
    """Producer that never checks context.closed."""

    def producer(context):
        for value in range(count):
            context.next(value)
        context.end()

    return Queryable(Source(producer))


# =============================================================================
# Tests
# =============================================================================


class TestEarlyTermination:
    """Satisfied operators cancel the upstream read."""

    @pytest.mark.anyio
    async def test_take_on_huge_range(self):
        with anyio.fail_after(5):
            assert await Queryable.range(0, 10**12).take(3).collect() == [0, 1, 2]

    @pytest.mark.anyio
    async def test_take_on_unbounded_producer(self):
        emitted = []
        assert await tracked(emitted).take(4).collect() == [0, 1, 2, 3]
        assert emitted == [0, 1, 2, 3]

    @pytest.mark.anyio
    async def test_take_through_streaming_chain(self):
        emitted = []
        query = tracked(emitted).where(lambda v: v % 2 == 0).select(lambda v: v * 10).take(2)

        assert await query.collect() == [0, 20]
        assert emitted == [0, 1, 2]

    @pytest.mark.anyio
    async def test_first_stops_upstream(self):
        emitted = []
        assert await tracked(emitted).first() == 0
        assert emitted == [0]

    @pytest.mark.anyio
    async def test_any_stops_at_match(self):
        emitted = []
        assert await tracked(emitted).any(lambda v: v == 5) is True
        assert emitted == [0, 1, 2, 3, 4, 5]

    @pytest.mark.anyio
    async def test_all_stops_at_failure(self):
        emitted = []
        assert await tracked(emitted).all(lambda v: v < 3) is False
        assert emitted == [0, 1, 2, 3]

    @pytest.mark.anyio
    async def test_element_at_stops_upstream(self):
        emitted = []
        assert await tracked(emitted).element_at(2) == 2
        assert emitted == [0, 1, 2]

    @pytest.mark.anyio
    async def test_single_stops_at_second_match(self):
        from sluice.errors import MultipleElementsError

        emitted = []
        with pytest.raises(MultipleElementsError):
            await tracked(emitted).single(lambda v: v % 3 == 0)
        assert emitted == [0, 1, 2, 3]

    @pytest.mark.anyio
    async def test_concat_second_is_cancelled(self):
        query = Queryable.range(0, 3).concat(Queryable.range(100, 10**12)).take(5)
        with anyio.fail_after(5):
            assert await query.collect() == [0, 1, 2, 100, 101]

    @pytest.mark.anyio
    async def test_take_does_not_read_second_when_satisfied(self):
        emitted = []
        query = Queryable.range(0, 5).concat(tracked(emitted)).take(2)

        assert await query.collect() == [0, 1]
        assert emitted == []

    @pytest.mark.anyio
    async def test_async_source_stops(self):
        produced = []

        async def ticks():
            value = 0
            while True:
                produced.append(value)
                yield value
                value += 1
                await anyio.sleep(0)

        with anyio.fail_after(5):
            assert await Queryable.from_async_iterable(ticks).take(3).collect() == [0, 1, 2]
        assert len(produced) <= 4


class TestUncooperativeProducer:
    """Producers ignoring closed keep running, but their events are dropped."""

    @pytest.mark.anyio
    async def test_take_result_unchanged(self):
        assert await stubborn(50).take(2).collect() == [0, 1]

    @pytest.mark.anyio
    async def test_first_result_unchanged(self):
        assert await stubborn(50).first() == 0

    @pytest.mark.anyio
    async def test_skip_take(self):
        assert await stubborn(50).skip(10).take(3).collect() == [10, 11, 12]
