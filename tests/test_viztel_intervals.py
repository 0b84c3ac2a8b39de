"""Тести інтервальної кореляції: таблиця рішень та сценарії NO_RESPONSE/HEALTHY."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from viztel_core.config import VizTelCoreConfig
from viztel_core.metric import Metric
from viztel_core.viztel_types import MARKERS_ENTITY, ElementRecord, Frame, Marker, Verdict
from viztel_markers import (
    analyze_intervals,
    classify_interval,
    detect_output_entities,
    extract_markers,
    signal_series,
    split_selector,
)


def _moving(activity: float) -> Metric:
    # activity = (high - low) + |close - open| = activity + 0
    return Metric.from_ohlc(0.0, activity, 0.0, 0.0)


def _frames(
    inputs: Sequence[float],
    outputs: Sequence[float],
    *,
    start: int = 1000,
    step: int = 100,
    start_marker: str = "ACTION_START",
    end_marker: str = "ACTION_END",
) -> list[Frame]:
    frames: list[Frame] = []
    last = len(inputs) - 1
    for i, (inp, out) in enumerate(zip(inputs, outputs)):
        ts = start + i * step
        data = {
            "__cursor__": ElementRecord(attrs={"x": _moving(inp)}),
            "button": ElementRecord(attrs={"scale": _moving(out)}),
        }
        if i == 0:
            data[MARKERS_ENTITY] = ElementRecord(attrs={start_marker: Metric.from_samples(ts)})
        if i == last:
            data[MARKERS_ENTITY] = ElementRecord(attrs={end_marker: Metric.from_samples(ts)})
        frames.append(Frame(timestamp=ts, data=data))
    return frames


def _analyze(frames: list[Frame], cfg: VizTelCoreConfig | None = None):
    cfg = cfg or VizTelCoreConfig()
    return analyze_intervals(frames, extract_markers(frames), cfg)


# ── Таблиця рішень ──


@pytest.mark.parametrize(
    ("iv", "ov", "corr", "verdict", "confidence"),
    [
        (0.0, 0.0, 0.0, Verdict.IDLE, 0.9),
        (1.0, 0.0, 0.0, Verdict.NO_RESPONSE, 0.95),
        (0.0, 1.0, 0.0, Verdict.AUTONOMOUS, 0.85),
        (1.0, 1.0, 0.8, Verdict.HEALTHY, 0.99),
        (1.0, 1.0, 0.4, Verdict.HEALTHY, 0.9),
        (1.0, 1.0, -0.9, Verdict.HEALTHY, 0.99),
        (1.0, 1.0, 0.0, Verdict.CHAOTIC, 0.9),
        (1.0, 1.0, 0.15, Verdict.CHAOTIC, 0.7),
    ],
)
def test_decision_table_cells(
    iv: float, ov: float, corr: float, verdict: Verdict, confidence: float
) -> None:
    got, conf, details = classify_interval(iv, ov, corr, VizTelCoreConfig())
    assert got is verdict
    assert conf == pytest.approx(confidence)
    assert details


def test_correlation_exactly_at_threshold_is_chaotic() -> None:
    verdict, conf, _ = classify_interval(1.0, 1.0, 0.3, VizTelCoreConfig())
    assert verdict is Verdict.CHAOTIC
    assert conf == pytest.approx(0.5)


def test_variance_thresholds_are_strict() -> None:
    cfg = VizTelCoreConfig()
    verdict, _, _ = classify_interval(0.01, 0.001, 0.0, cfg)
    assert verdict is Verdict.IDLE


# ── Сценарії ──


def test_scenario_no_response() -> None:
    frames = _frames([0, 5, 10, 15, 20], [1, 1, 1, 1, 1])

    results = _analyze(frames)

    assert len(results) == 1
    item = results[0]
    assert item.verdict is Verdict.NO_RESPONSE
    assert item.input_variance == pytest.approx(50.0)
    assert item.output_variance == 0.0
    assert item.confidence == pytest.approx(0.95)
    assert item.start_marker == "ACTION_START"
    assert item.end_marker == "ACTION_END"
    assert item.duration_ms == 400


def test_scenario_healthy() -> None:
    frames = _frames([0, 1, 2, 3, 4], [0, 2, 4, 6, 8])

    item = _analyze(frames)[0]

    assert item.verdict is Verdict.HEALTHY
    assert item.correlation == pytest.approx(1.0)
    assert item.input_variance == pytest.approx(2.0)
    assert item.output_variance == pytest.approx(8.0)
    assert item.name == "ACTION_START -> ACTION_END"


def test_too_few_frames_is_insufficient_data() -> None:
    frames = _frames([0, 9], [0, 9])

    item = _analyze(frames)[0]

    assert item.verdict is Verdict.INSUFFICIENT_DATA
    assert item.confidence == 0.0


def test_short_interval_is_skipped() -> None:
    frames = _frames([0, 1, 2, 3], [0, 1, 2, 3], step=10)
    # 30 мс між маркерами < min_interval_ms=50
    assert _analyze(frames) == []


def test_fewer_than_two_markers_gives_no_intervals() -> None:
    frames = _frames([0, 1, 2], [0, 1, 2])
    only_start = [
        Frame(timestamp=f.timestamp, data={k: v for k, v in f.data.items() if k != MARKERS_ENTITY})
        for f in frames
    ]
    assert analyze_intervals(only_start, [Marker("A", 1000)], VizTelCoreConfig()) == []


def test_output_entities_auto_detect_excludes_system_and_inputs() -> None:
    frames = _frames([0, 1, 2], [0, 1, 2])
    frames.append(
        Frame(
            timestamp=5000,
            data={
                "__system__/audio": ElementRecord(attrs={"energy_rms": Metric.from_samples(0.1)}),
                "__input__": ElementRecord(attrs={"keys": Metric.from_samples(1)}),
                "enemy": ElementRecord(attrs={"x": Metric.from_samples(1)}),
            },
        )
    )
    detected = detect_output_entities(frames, ("__cursor__", "__input__"))
    assert detected == ["button", "enemy"]


def test_explicit_output_entities_override_auto_detect() -> None:
    frames = _frames([0, 5, 10, 15, 20], [0, 5, 10, 15, 20])
    cfg = VizTelCoreConfig(output_entity_ids=("missing",))
    # вихідна сутність відсутня → вихід "заморожений"
    assert _analyze(frames, cfg)[0].verdict is Verdict.NO_RESPONSE


def test_signal_series_ignores_rank_and_fills_missing_with_zero() -> None:
    frames = [
        Frame(
            timestamp=1,
            data={
                "a": ElementRecord(
                    weight=_moving(4.0), rank=_moving(100.0), attrs={"x": _moving(2.0)}
                )
            },
        ),
        Frame(timestamp=2, data={"b": ElementRecord(attrs={"x": _moving(1.0)})}),
    ]
    assert signal_series(frames, ["a"]) == pytest.approx([3.0, 0.0])


# ── Селектори entity:attr ──


def test_split_selector() -> None:
    assert split_selector("player:x") == ("player", "x")
    assert split_selector("player") == ("player", None)
    assert split_selector("__system__/audio:peak_level") == ("__system__/audio", "peak_level")


def test_signal_series_attribute_selector_vs_whole_entity() -> None:
    frame = Frame(
        timestamp=1,
        data={"player": ElementRecord(attrs={"x": _moving(2.0), "y": _moving(10.0)})},
    )

    assert signal_series([frame], ["player:x"]) == [2.0]
    assert signal_series([frame], ["player"]) == [6.0]
    assert signal_series([frame], ["player:z"]) == [0.0]
    assert signal_series([frame], ["ghost"]) == [0.0]


def test_detect_output_entities_skips_entities_of_input_selectors() -> None:
    frame = Frame(
        timestamp=1,
        data={
            "__cursor__": ElementRecord(attrs={"x": _moving(1.0)}),
            "player": ElementRecord(attrs={"x": _moving(1.0)}),
            "enemy": ElementRecord(attrs={"x": _moving(1.0)}),
        },
    )
    assert detect_output_entities([frame], ["__cursor__", "player:x"]) == ["enemy"]


def _frames_with_static_opacity() -> list[Frame]:
    frames = _frames([0, 1, 2, 3, 4], [0, 2, 4, 6, 8])
    out: list[Frame] = []
    for frame in frames:
        data = dict(frame.data)
        button = data["button"]
        data["button"] = ElementRecord(
            attrs={**button.attrs, "opacity": Metric.from_ohlc(1.0, 1.0, 1.0, 1.0)}
        )
        out.append(Frame(timestamp=frame.timestamp, data=data))
    return out


@pytest.mark.parametrize(
    ("outputs", "verdict"),
    [
        (("button",), Verdict.HEALTHY),
        (("button:scale",), Verdict.HEALTHY),
        # статична прозорість не реагує на курсор
        (("button:opacity",), Verdict.NO_RESPONSE),
    ],
)
def test_output_selectors_pick_single_signal(
    outputs: tuple[str, ...], verdict: Verdict
) -> None:
    cfg = VizTelCoreConfig(output_entity_ids=outputs)
    [diagnosis] = _analyze(_frames_with_static_opacity(), cfg)
    assert diagnosis.verdict is verdict
