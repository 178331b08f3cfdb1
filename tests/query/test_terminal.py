# Copyright (c) 2025 - 2026, HaiyangLi <quantocean.li at gmail dot com>
# SPDX-License-Identifier: Apache-2.0

"""Tests for sluice.query.queryable - terminal operators."""

from __future__ import annotations

import pytest

from sluice.core.source import Source
from sluice.errors import (
    ElementNotFoundError,
    EmptySequenceError,
    MultipleElementsError,
    SequenceError,
)
from sluice.query import Queryable

# =============================================================================
# Helpers
# =============================================================================

EMPTY = Queryable.from_sequence(())


def failing(values, error):
    def producer(context):
        for value in values:
            context.next(value)
        context.error(error)

    return Queryable(Source(producer))


# =============================================================================
# Folds
# =============================================================================


class TestAggregate:
    @pytest.mark.anyio
    async def test_aggregate(self):
        result = await Queryable.range(1, 5).aggregate(lambda acc, v: acc * v, 1)
        assert result == 24

    @pytest.mark.anyio
    async def test_aggregate_with_index(self):
        result = await Queryable.from_sequence("ab").aggregate(
            lambda acc, v, i: acc + [(i, v)], []
        )
        assert result == [(0, "a"), (1, "b")]

    @pytest.mark.anyio
    async def test_aggregate_empty_returns_initial(self):
        assert await EMPTY.aggregate(lambda acc, v: acc + v, 42) == 42


class TestAllAny:
    @pytest.mark.anyio
    async def test_all(self):
        query = Queryable.from_sequence([2, 4, 6])
        assert await query.all(lambda v: v % 2 == 0) is True
        assert await query.all(lambda v: v < 5) is False

    @pytest.mark.anyio
    async def test_all_empty_is_true(self):
        assert await EMPTY.all(lambda v: False) is True

    @pytest.mark.anyio
    async def test_any(self):
        query = Queryable.from_sequence([1, 3, 4])
        assert await query.any(lambda v: v % 2 == 0) is True
        assert await query.any(lambda v: v > 10) is False

    @pytest.mark.anyio
    async def test_any_without_predicate(self):
        assert await Queryable.from_sequence([0]).any() is True
        assert await EMPTY.any() is False

    @pytest.mark.anyio
    async def test_any_with_index(self):
        assert await Queryable.from_sequence("xyz").any(lambda v, i: i == 2 and v == "z")


class TestCountSumAverage:
    @pytest.mark.anyio
    async def test_count(self):
        assert await Queryable.from_sequence("hello").count() == 5
        assert await EMPTY.count() == 0

    @pytest.mark.anyio
    async def test_sum(self):
        assert await Queryable.from_sequence([1, 2, 3]).sum() == 6
        assert await Queryable.from_sequence([{"n": 2}, {"n": 5}]).sum(lambda r: r["n"]) == 7

    @pytest.mark.anyio
    async def test_sum_empty(self):
        assert await EMPTY.sum() == 0

    @pytest.mark.anyio
    async def test_average(self):
        assert await Queryable.from_sequence([1, 2, 3]).average(lambda v: v) == 2
        assert await Queryable.from_sequence([1, 2]).average() == 1.5

    @pytest.mark.anyio
    async def test_average_empty_is_zero(self):
        assert await EMPTY.average(lambda v: v) == 0


# =============================================================================
# Element access
# =============================================================================


class TestFirstLast:
    @pytest.mark.anyio
    async def test_first(self):
        assert await Queryable.from_sequence([7, 8]).first() == 7

    @pytest.mark.anyio
    async def test_first_empty_raises(self):
        with pytest.raises(EmptySequenceError, match="no elements in sequence"):
            await EMPTY.first()

    @pytest.mark.anyio
    async def test_first_or_default(self):
        assert await EMPTY.first_or_default() is None
        assert await EMPTY.first_or_default("fallback") == "fallback"
        assert await Queryable.from_sequence([None, 1]).first_or_default(5) is None

    @pytest.mark.anyio
    async def test_last(self):
        assert await Queryable.from_sequence([7, 8, 9]).last() == 9

    @pytest.mark.anyio
    async def test_last_none_value(self):
        """None is a legitimate element, not an empty marker."""
        assert await Queryable.from_sequence([1, None]).last() is None

    @pytest.mark.anyio
    async def test_last_empty_raises(self):
        with pytest.raises(EmptySequenceError):
            await EMPTY.last()

    @pytest.mark.anyio
    async def test_last_or_default(self):
        assert await EMPTY.last_or_default() is None
        assert await EMPTY.last_or_default(0) == 0
        assert await Queryable.from_sequence([1, 2]).last_or_default(0) == 2


class TestElementAt:
    @pytest.mark.anyio
    async def test_element_at_is_zero_based(self):
        query = Queryable.from_sequence("abc")
        assert await query.element_at(0) == "a"
        assert await query.element_at(2) == "c"

    @pytest.mark.anyio
    @pytest.mark.parametrize("index", [3, -1])
    async def test_element_at_out_of_range(self, index):
        with pytest.raises(ElementNotFoundError) as excinfo:
            await Queryable.from_sequence("abc").element_at(index)
        assert excinfo.value.message == f"no element at [{index}]"
        assert excinfo.value.details == {"index": index}

    @pytest.mark.anyio
    async def test_element_at_or_default(self):
        query = Queryable.from_sequence("abc")
        assert await query.element_at_or_default(1) == "b"
        assert await query.element_at_or_default(9) is None
        assert await query.element_at_or_default(9, "?") == "?"


class TestSingle:
    @pytest.mark.anyio
    async def test_single_exactly_one(self):
        assert await Queryable.range(0, 10).single(lambda v: v == 4) == 4

    @pytest.mark.anyio
    async def test_single_two_matches(self):
        with pytest.raises(MultipleElementsError) as excinfo:
            await Queryable.range(0, 10).single(lambda v: v in (2, 5))
        assert excinfo.value.details == {"indices": [2, 5]}

    @pytest.mark.anyio
    async def test_single_no_match(self):
        with pytest.raises(ElementNotFoundError):
            await Queryable.range(0, 10).single(lambda v: v > 100)

    @pytest.mark.anyio
    async def test_single_without_predicate(self):
        assert await Queryable.from_sequence(["only"]).single() == "only"
        with pytest.raises(MultipleElementsError):
            await Queryable.from_sequence([1, 2]).single()

    @pytest.mark.anyio
    async def test_single_or_default(self):
        query = Queryable.range(0, 5)
        assert await query.single_or_default(lambda v: v == 3) == 3
        assert await query.single_or_default(lambda v: v > 9) is None
        assert await query.single_or_default(lambda v: v > 9, default=-1) == -1
        with pytest.raises(MultipleElementsError):
            await query.single_or_default(lambda v: v > 2)

    @pytest.mark.anyio
    async def test_cardinality_errors_share_base(self):
        with pytest.raises(SequenceError):
            await EMPTY.single()


# =============================================================================
# Traversal
# =============================================================================


class TestEachCollect:
    @pytest.mark.anyio
    async def test_each(self):
        seen = []
        result = await Queryable.from_sequence("ab").each(lambda v, i: seen.append((i, v)))
        assert result is None
        assert seen == [(0, "a"), (1, "b")]

    @pytest.mark.anyio
    async def test_collect_is_rerunnable(self):
        query = Queryable.range(0, 3).select(lambda v: v * v)
        assert await query.collect() == [0, 1, 4]
        assert await query.collect() == [0, 1, 4]

    @pytest.mark.anyio
    async def test_callback_exception_raises_from_terminal(self):
        def explode(value):
            raise LookupError(value)

        with pytest.raises(LookupError):
            await Queryable.from_sequence([1]).each(explode)


# =============================================================================
# Error propagation
# =============================================================================


class TestTerminalErrors:
    """Every terminal should raise the carried error, never return."""

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "terminal",
        [
            lambda q: q.aggregate(lambda acc, v: acc + v, 0),
            lambda q: q.all(lambda v: True),
            lambda q: q.any(lambda v: False),
            lambda q: q.count(),
            lambda q: q.sum(),
            lambda q: q.average(),
            lambda q: q.last(),
            lambda q: q.last_or_default(),
            lambda q: q.element_at(10),
            lambda q: q.element_at_or_default(10),
            lambda q: q.single(lambda v: v == 99),
            lambda q: q.single_or_default(lambda v: v == 99),
            lambda q: q.each(lambda v: None),
            lambda q: q.collect(),
        ],
    )
    async def test_mid_sequence_error(self, terminal):
        boom = RuntimeError("storage fault")
        with pytest.raises(RuntimeError) as excinfo:
            await terminal(failing([1, 2], boom))
        assert excinfo.value is boom

    @pytest.mark.anyio
    async def test_first_error_before_any_value(self):
        with pytest.raises(RuntimeError):
            await failing([], RuntimeError("empty fault")).first()
