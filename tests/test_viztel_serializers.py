"""Тести кодека кадрів та plain-звіту."""

from __future__ import annotations

import json

import pytest

from viztel_core.errors import FramePayloadError
from viztel_core.metric import Metric
from viztel_core.serializers import (
    dumps_frame,
    frame_from_payload,
    frame_to_payload,
    loads_frame,
    to_plain_report,
)
from viztel_core.viztel_types import (
    AudioSyncReport,
    AudioVerdict,
    AvSyncEvent,
    DiagnosisReport,
    ElementRecord,
    Frame,
    FrameSource,
    IntervalDiagnosis,
    TopologyReport,
    Verdict,
)


def _sample_frame() -> Frame:
    return Frame(
        timestamp=1_700_000_000_123,
        duration_ms=100,
        sources=frozenset({FrameSource.DOM, FrameSource.VIRTUAL}),
        scenario_id="checkout",
        data={
            "modal": ElementRecord(
                weight=Metric.from_ohlc(100, 250.5, 90, 200, 6),
                rank=Metric.from_ohlc(2, 2, 1, 1, 6),
                attrs={"opacity": Metric.from_ohlc(0.0, 1.0, 0.0, 1.0, 6)},
            ),
            "player": ElementRecord(attrs={"hp": Metric.from_samples(100, 95)}),
        },
    )


def test_frame_round_trip_preserves_data_and_timestamp() -> None:
    frame = _sample_frame()

    restored = loads_frame(dumps_frame(frame))

    assert restored.timestamp == frame.timestamp
    assert dict(restored.data) == dict(frame.data)
    assert restored.sources == frame.sources
    assert restored.duration_ms == 100
    assert restored.scenario_id == "checkout"


def test_wire_format_is_compact() -> None:
    payload = frame_to_payload(_sample_frame())
    assert payload["ts"] == 1_700_000_000_123
    assert payload["sources"] == ["dom", "virtual"]
    assert payload["sid"] == "checkout"
    modal = payload["data"]["modal"]
    assert set(modal) == {"w", "r", "a"}
    assert modal["w"] == {"o": 100.0, "h": 250.5, "l": 90.0, "c": 200.0, "cnt": 6}
    assert set(payload["data"]["player"]) == {"a"}


def test_decoder_accepts_long_names_and_ignores_unknown_fields() -> None:
    raw = {
        "timestamp": 5000,
        "durationMs": 50,
        "sources": ["dom", "haptics"],
        "newChannel": {"anything": 1},
        "data": {
            "btn": {
                "weight": {"open": 1, "high": 3, "low": 1, "close": 2},
                "attrs": {"scale": {"o": 1, "h": 1, "l": 1, "c": 1, "extra": True}},
                "future": [1, 2, 3],
            }
        },
    }

    frame = frame_from_payload(raw)

    assert frame.timestamp == 5000
    assert frame.duration_ms == 50
    assert frame.sources == {FrameSource.DOM}
    assert frame.data["btn"].weight.high == 3
    assert frame.data["btn"].attrs["scale"].close == 1


def test_decoder_drops_broken_metrics_and_empty_entities() -> None:
    raw = {
        "ts": 1,
        "data": {
            "a": {"a": {"x": {"o": 1, "h": None, "l": 0, "c": 1}, "y": "junk"}},
            "b": {"w": {"o": 1, "h": 2, "l": 0, "c": 1}, "r": {"o": -1}},
        },
    }
    frame = frame_from_payload(raw)
    assert "a" not in frame.data
    assert frame.data["b"].rank is None
    assert frame.data["b"].weight is not None


@pytest.mark.parametrize(
    "raw",
    [
        {"data": {}},
        {"ts": 1},
        {"ts": "soon", "data": {}},
        {"ts": 1, "data": []},
        ["not", "a", "dict"],
    ],
)
def test_decoder_rejects_missing_required_fields(raw: object) -> None:
    with pytest.raises(FramePayloadError):
        frame_from_payload(raw)


def test_loads_frame_rejects_invalid_json() -> None:
    with pytest.raises(FramePayloadError):
        loads_frame("{not json")
    # FramePayloadError є і ValueError для зовнішніх викликачів
    with pytest.raises(ValueError):
        loads_frame("[]")


def test_to_plain_report_is_json_friendly() -> None:
    report = DiagnosisReport(
        scenario_id="s1",
        score=75.0,
        total_frames=10,
        intervals=[
            IntervalDiagnosis(
                name="A -> B",
                start_marker="A",
                end_marker="B",
                start_ms=0,
                end_ms=400,
                duration_ms=400,
                input_variance=50.0,
                output_variance=0.0,
                correlation=0.0,
                verdict=Verdict.NO_RESPONSE,
                confidence=0.95,
                details="frozen",
            ),
        ],
        audio_sync=AudioSyncReport(
            [AvSyncEvent("EXPLOSION", 0, 0, 0.01, True, AudioVerdict.FAIL_SILENT)]
        ),
        topology=TopologyReport(total_frames=10),
        alerts=["[A -> B] NO_RESPONSE: frozen"],
    )

    plain = to_plain_report(report)
    encoded = json.dumps(plain)

    assert plain["schema_version"] == "viztel.diagnosis.v1"
    assert plain["intervals"][0]["verdict"] == "NO_RESPONSE"
    assert plain["audio_sync"]["sync_events"][0]["verdict"] == "FAIL_SILENT"
    assert plain["summary"] == {
        "healthy_count": 0,
        "anomaly_count": 1,
        "overall_health": 0.0,
    }
    assert plain["topology"]["summary"]["stability"] == 1.0
    assert "NO_RESPONSE" in encoded
