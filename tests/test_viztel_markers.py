"""Тести маркерів і статистики: стабільне сортування, зрізи, Пірсон."""

from __future__ import annotations

import pytest

from viztel_core.metric import Metric
from viztel_core.viztel_types import MARKERS_ENTITY, ElementRecord, Frame
from viztel_markers import extract_markers, pearson, population_variance, slice_frames


def _marker_frame(ts: int, **markers: int) -> Frame:
    attrs = {name: Metric.from_samples(at) for name, at in markers.items()}
    return Frame(timestamp=ts, data={MARKERS_ENTITY: ElementRecord(attrs=attrs)})


def test_extract_markers_sorted_and_stable() -> None:
    frames = [
        _marker_frame(100, END=50),
        _marker_frame(200, CLICK_A=10),
        _marker_frame(300, CLICK_B=10),
        _marker_frame(400, MIDDLE=30),
    ]

    markers = extract_markers(frames)

    assert [m.timestamp_ms for m in markers] == [10, 10, 30, 50]
    # рівні часові мітки — у порядку появи
    assert [m.name for m in markers[:2]] == ["CLICK_A", "CLICK_B"]


def test_extract_markers_skips_non_positive_and_missing() -> None:
    frames = [
        _marker_frame(1, ZERO=0, NEG=-5, OK=7),
        Frame(timestamp=2, data={"other": ElementRecord(attrs={"x": Metric.from_samples(1)})}),
    ]
    assert [m.name for m in extract_markers(frames)] == ["OK"]
    assert extract_markers([]) == []


def test_slice_frames_is_inclusive() -> None:
    frames = [_marker_frame(ts) for ts in (0, 100, 200, 300)]
    assert [f.timestamp for f in slice_frames(frames, 100, 200)] == [100, 200]
    assert slice_frames(frames, 301, 400) == []


def test_population_variance_divides_by_n() -> None:
    assert population_variance([0, 5, 10, 15, 20]) == pytest.approx(50.0)
    assert population_variance([1, 1, 1]) == 0.0
    assert population_variance([3]) == 0.0
    assert population_variance([1, float("nan")]) == 0.0


def test_pearson_perfect_and_inverse() -> None:
    assert pearson([0, 1, 2, 3, 4], [0, 2, 4, 6, 8]) == pytest.approx(1.0)
    assert pearson([0, 1, 2, 3, 4], [8, 6, 4, 2, 0]) == pytest.approx(-1.0)


@pytest.mark.parametrize(
    ("xs", "ys"),
    [
        ([1.0, 2.5, 0.3, 4.1, 2.2], [0.4, 1.9, 0.1, 3.3, 2.8]),
        ([10, 20, 15, 5], [3, 1, 4, 1]),
        ([0.01, 0.02, 0.5], [100.0, 90.0, 95.0]),
    ],
)
def test_pearson_is_symmetric(xs: list[float], ys: list[float]) -> None:
    assert pearson(xs, ys) == pytest.approx(pearson(ys, xs))
    assert -1.0 <= pearson(xs, ys) <= 1.0


def test_pearson_degenerate_cases_return_zero() -> None:
    assert pearson([1, 2], [1, 2]) == 0.0
    assert pearson([1, 1, 1, 1], [1, 2, 3, 4]) == 0.0
    assert pearson([1, 2, float("inf")], [1, 2, 3]) == 0.0
    # довжини різні — беремо спільний префікс
    assert pearson([0, 1, 2, 99], [0, 1, 2]) == pytest.approx(1.0)
