"""Тести DiagnosisEngine: бал, алерти, зведення, pandas-експорт, офлайн-звіт."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from viztel_core.engine import DiagnosisEngine, build_alerts, compute_score
from viztel_core.frames_df import entity_activity, frames_to_df
from viztel_core.metric import Metric
from viztel_core.serializers import dumps_frame
from viztel_core.viztel_types import (
    MARKERS_ENTITY,
    AudioSyncReport,
    AudioVerdict,
    AvSyncEvent,
    ElementRecord,
    Frame,
    IntervalDiagnosis,
    Verdict,
)


def _interval(verdict: Verdict, name: str = "A -> B") -> IntervalDiagnosis:
    return IntervalDiagnosis(
        name=name,
        start_marker="A",
        end_marker="B",
        start_ms=0,
        end_ms=100,
        duration_ms=100,
        input_variance=0.0,
        output_variance=0.0,
        correlation=0.0,
        verdict=verdict,
        confidence=0.9,
        details="d",
    )


def _event(verdict: AudioVerdict) -> AvSyncEvent:
    return AvSyncEvent("EXPLOSION", 0, 0, 0.0, verdict is AudioVerdict.FAIL_SILENT, verdict)


def _moving(v: float) -> Metric:
    return Metric.from_ohlc(0.0, v, 0.0, 0.0)


def _scenario_frames() -> list[Frame]:
    """Два інтервали: клік з реакцією, потім вибух без звуку."""

    frames: list[Frame] = []
    inputs = [0, 1, 2, 3, 0, 0, 0, 0, 0]
    outputs = [0, 2, 4, 6, 0, 0, 0, 0, 0]
    markers = {0: "TAP_START", 4: "EXPLOSION", 8: "IDLE_END"}
    for i, (inp, out) in enumerate(zip(inputs, outputs)):
        ts = 1000 + i * 100
        data = {
            "__cursor__": ElementRecord(attrs={"x": _moving(inp)}),
            "hero": ElementRecord(attrs={"y": _moving(out)}),
            "__system__/audio": ElementRecord(attrs={"peak_level": _moving(0.01)}),
        }
        if i in markers:
            data[MARKERS_ENTITY] = ElementRecord(attrs={markers[i]: Metric.from_samples(ts)})
        frames.append(Frame(timestamp=ts, data=data))
    return frames


@pytest.mark.parametrize(
    ("intervals", "events", "expected"),
    [
        ([], [], 100.0),
        ([Verdict.HEALTHY, Verdict.IDLE], [AudioVerdict.PASS], 100.0),
        ([Verdict.NO_RESPONSE, Verdict.HEALTHY], [], 75.0),
        ([Verdict.CHAOTIC, Verdict.HEALTHY], [AudioVerdict.FAIL_LAG], 50.0),
        ([], [AudioVerdict.FAIL_SILENT, AudioVerdict.FAIL_SILENT, AudioVerdict.FAIL_LAG], 0.0),
        ([Verdict.INSUFFICIENT_DATA, Verdict.AUTONOMOUS], [], 100.0),
    ],
)
def test_compute_score(
    intervals: list[Verdict], events: list[AudioVerdict], expected: float
) -> None:
    score = compute_score(
        [_interval(v) for v in intervals], AudioSyncReport([_event(e) for e in events])
    )
    assert score == pytest.approx(expected)
    assert 0.0 <= score <= 100.0


def test_alerts_only_for_failures() -> None:
    intervals = [_interval(v, name=v.value) for v in Verdict]
    audio = AudioSyncReport([_event(v) for v in AudioVerdict])

    alerts = build_alerts(intervals, audio)

    assert len(alerts) == 4
    joined = "\n".join(alerts)
    assert "NO_RESPONSE" in joined and "CHAOTIC" in joined
    assert "FAIL_SILENT" in joined and "FAIL_LAG" in joined
    for quiet in ("HEALTHY", "AUTONOMOUS", "PASS", "INSUFFICIENT_DATA"):
        assert f"] {quiet}" not in joined


def test_engine_end_to_end() -> None:
    report = DiagnosisEngine().analyze("game-1", _scenario_frames())

    assert [i.verdict for i in report.intervals] == [Verdict.HEALTHY, Verdict.IDLE]
    assert report.audio_sync is not None
    assert [e.verdict for e in report.audio_sync.sync_events] == [AudioVerdict.FAIL_SILENT]
    # 1 аудіо-провал / 2 інтервали * 50
    assert report.score == pytest.approx(75.0)
    assert report.healthy_count == 1
    assert report.anomaly_count == 0
    assert report.overall_health == pytest.approx(0.5)
    assert report.alerts == [
        "[EXPLOSION] FAIL_SILENT: latency=0ms energy=0.010"
    ]
    assert report.topology is None
    assert report.meta["markers"] == ["TAP_START", "EXPLOSION", "IDLE_END"]


def test_engine_sorts_frames_by_timestamp() -> None:
    frames = _scenario_frames()
    shuffled = list(reversed(frames))
    a = DiagnosisEngine().analyze("x", frames)
    b = DiagnosisEngine().analyze("x", shuffled)
    assert [i.verdict for i in a.intervals] == [i.verdict for i in b.intervals]
    assert a.score == b.score


def test_frames_to_df_long_format() -> None:
    df = frames_to_df(_scenario_frames())

    assert list(df.columns) == [
        "ts",
        "entity",
        "metric",
        "open",
        "high",
        "low",
        "close",
        "count",
        "activity",
    ]
    hero = df[(df["entity"] == "hero") & (df["ts"] == 1200)]
    assert hero["activity"].iloc[0] == pytest.approx(4.0)

    top = entity_activity(df)
    assert top.iloc[0]["entity"] == "hero"
    assert frames_to_df([]).empty
    assert entity_activity(frames_to_df([])).empty


def test_replay_report_tool(tmp_path: Path) -> None:
    from tools.viztel_replay_report import main

    frames_path = tmp_path / "frames.jsonl"
    lines = [dumps_frame(f) for f in _scenario_frames()]
    lines.insert(2, "{broken")
    frames_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    csv_path = tmp_path / "out" / "frames.csv"
    json_path = tmp_path / "out" / "report.json"

    code = main(
        [str(frames_path), "--scenario", "game-1", "--csv", str(csv_path), "--json", str(json_path)]
    )

    assert code == 0
    assert csv_path.exists()
    report = json.loads(json_path.read_text(encoding="utf-8"))
    assert report["scenario_id"] == "game-1"
    assert report["score"] == pytest.approx(75.0)


def test_replay_report_tool_missing_file(tmp_path: Path) -> None:
    from tools.viztel_replay_report import main

    assert main([str(tmp_path / "nope.jsonl")]) == 1
