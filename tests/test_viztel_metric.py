"""Тести K-лінії: інваріант OHLC, merge_aggregated, activity."""

from __future__ import annotations

import math

import pytest

from viztel_core.metric import Metric, activity


def _assert_ohlc_bounds(metric: Metric) -> None:
    values = (metric.open, metric.high, metric.low, metric.close)
    if metric.is_empty:
        assert values == (None, None, None, None)
        return
    assert all(v is not None for v in values)
    assert metric.low <= metric.open <= metric.high
    assert metric.low <= metric.close <= metric.high


def test_update_keeps_ohlc_bounds_after_every_sample() -> None:
    metric = Metric()
    _assert_ohlc_bounds(metric)
    for value in [5, 3, 9, 9, -2, 4.5, 0]:
        metric.update(value)
        _assert_ohlc_bounds(metric)

    assert metric.open == 5
    assert metric.high == 9
    assert metric.low == -2
    assert metric.close == 0
    assert metric.sample_count == 7


def test_first_update_sets_all_four_values() -> None:
    metric = Metric()
    metric.update(0.42)
    assert (metric.open, metric.high, metric.low, metric.close) == (
        0.42,
        0.42,
        0.42,
        0.42,
    )


def test_bad_samples_are_ignored() -> None:
    metric = Metric.from_samples(1.0)
    for bad in (None, "abc", math.nan, math.inf, -math.inf, object()):
        metric.update(bad)
    assert metric.sample_count == 1
    assert metric.close == 1.0

    # порожня лишається порожньою
    empty = Metric()
    empty.update(math.nan)
    assert empty.is_empty


def test_merge_aggregated_into_empty_copies_incoming() -> None:
    incoming = Metric.from_ohlc(0.2, 0.8, 0.1, 0.5, 10)
    target = Metric()
    target.merge_aggregated(incoming)
    assert (target.open, target.high, target.low, target.close) == (0.2, 0.8, 0.1, 0.5)
    assert target.sample_count == 10


def test_merge_a_then_b_takes_extremes_and_last_close() -> None:
    a = Metric.from_ohlc(1.0, 4.0, 0.5, 2.0)
    b = Metric.from_ohlc(3.0, 3.5, -1.0, 3.2)

    ab = Metric()
    ab.merge_aggregated(a)
    ab.merge_aggregated(b)
    ba = Metric()
    ba.merge_aggregated(b)
    ba.merge_aggregated(a)

    assert ab.high == ba.high == 4.0
    assert ab.low == ba.low == -1.0
    assert ab.close == 3.2
    assert ba.close == 2.0
    # open належить першій злитій K-лінії
    assert ab.open == 1.0
    _assert_ohlc_bounds(ab)
    _assert_ohlc_bounds(ba)


def test_merge_ignores_empty_or_none() -> None:
    metric = Metric.from_samples(1, 2)
    metric.merge_aggregated(None)
    metric.merge_aggregated(Metric())
    assert (metric.open, metric.close, metric.sample_count) == (1, 2, 2)


def test_from_ohlc_partial_or_non_finite_is_empty() -> None:
    assert Metric.from_ohlc(1, 2, None, 1).is_empty
    assert Metric.from_ohlc(1, math.inf, 0, 1).is_empty
    assert Metric.from_ohlc("x", 2, 0, 1).is_empty


def test_from_ohlc_widens_broken_bounds() -> None:
    metric = Metric.from_ohlc(5, 3, 4, 1)
    _assert_ohlc_bounds(metric)
    assert metric.high == 5
    assert metric.low == 1


def test_activity_formula() -> None:
    metric = Metric.from_ohlc(1.0, 5.0, 0.0, 3.0)
    # (5 - 0) + |3 - 1|
    assert metric.activity() == pytest.approx(7.0)
    assert activity(metric) == pytest.approx(7.0)
    assert activity(None) == 0.0
    assert Metric().activity() == 0.0


def test_reset_and_copy() -> None:
    metric = Metric.from_samples(1, 2, 3)
    clone = metric.copy()
    metric.reset()
    assert metric.is_empty
    assert metric.sample_count == 0
    assert clone.close == 3
    assert clone.sample_count == 3
