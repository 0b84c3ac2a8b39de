"""Серіалізатори viztel-core: кадр ↔ транспортний payload, звіт → plain JSON.

Декодер толерантний: невідомі поля ігнорує, довгі імена (`timestamp`,
`weight`, `attrs`) приймає нарівні з компактними, биту K-лінію трактує як
порожню. Обов'язкові лише `ts`/`timestamp` та `data`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from core.contracts import (
    DIAGNOSIS_SCHEMA_VERSION,
    AudioSyncPayload,
    AvSyncEventPayload,
    DiagnosisPayload,
    ElementPayload,
    FramePayload,
    IntervalPayload,
    MetricPayload,
)
from core.serialization import json_dumps, json_loads, safe_int
from viztel_core.errors import FramePayloadError
from viztel_core.metric import Metric
from viztel_core.viztel_types import (
    AudioSyncReport,
    AvSyncEvent,
    DiagnosisReport,
    ElementRecord,
    Frame,
    FrameSource,
    IntervalDiagnosis,
    TopologyReport,
    TopologyViolation,
)

_SOURCE_ORDER = (FrameSource.DOM, FrameSource.VIRTUAL, FrameSource.AUDIO)

# ── Metric ────────────────────────────────────────────────────────────────


def metric_to_payload(metric: Metric) -> MetricPayload:
    payload: MetricPayload = {
        "o": metric.open,
        "h": metric.high,
        "l": metric.low,
        "c": metric.close,
    }
    if metric.sample_count:
        payload["cnt"] = metric.sample_count
    return payload


def metric_from_payload(raw: Any) -> Metric:
    """Декодує K-лінію; будь-яка некоректна форма → порожня K-лінія."""

    if not isinstance(raw, Mapping):
        return Metric()
    return Metric.from_ohlc(
        _pick(raw, "o", "open"),
        _pick(raw, "h", "high"),
        _pick(raw, "l", "low"),
        _pick(raw, "c", "close"),
        _pick(raw, "cnt", "sampleCount"),
    )


# ── Frame ─────────────────────────────────────────────────────────────────


def element_to_payload(record: ElementRecord) -> ElementPayload:
    payload: ElementPayload = {}
    if record.weight is not None and not record.weight.is_empty:
        payload["w"] = metric_to_payload(record.weight)
    if record.rank is not None and not record.rank.is_empty:
        payload["r"] = metric_to_payload(record.rank)
    attrs = {
        name: metric_to_payload(metric)
        for name, metric in record.attrs.items()
        if not metric.is_empty
    }
    if attrs:
        payload["a"] = attrs
    return payload


def element_from_payload(raw: Any) -> ElementRecord:
    if not isinstance(raw, Mapping):
        return ElementRecord()
    weight = metric_from_payload(_pick(raw, "w", "weight"))
    rank = metric_from_payload(_pick(raw, "r", "rank"))
    attrs: dict[str, Metric] = {}
    attrs_raw = _pick(raw, "a", "attrs")
    if isinstance(attrs_raw, Mapping):
        for name, metric_raw in attrs_raw.items():
            metric = metric_from_payload(metric_raw)
            if not metric.is_empty:
                attrs[str(name)] = metric
    return ElementRecord(
        weight=None if weight.is_empty else weight,
        rank=None if rank.is_empty else rank,
        attrs=attrs,
    )


def frame_to_payload(frame: Frame) -> FramePayload:
    payload: FramePayload = {
        "ts": int(frame.timestamp),
        "dur": int(frame.duration_ms),
        "sources": [s.value for s in _SOURCE_ORDER if s in frame.sources],
        "data": {
            entity_id: element_to_payload(record)
            for entity_id, record in frame.data.items()
        },
    }
    if frame.scenario_id:
        payload["sid"] = frame.scenario_id
    return payload


def frame_from_payload(raw: Any) -> Frame:
    """Декодує payload кадру.

    Raises:
        FramePayloadError: payload не dict, або немає `ts`/`data`.
    """

    if not isinstance(raw, Mapping):
        raise FramePayloadError("frame payload must be a JSON object")
    timestamp = safe_int(_pick(raw, "ts", "timestamp"))
    if timestamp is None:
        raise FramePayloadError("frame payload requires integer 'ts'")
    data_raw = raw.get("data")
    if not isinstance(data_raw, Mapping):
        raise FramePayloadError("frame payload requires object 'data'")

    data: dict[str, ElementRecord] = {}
    for entity_id, record_raw in data_raw.items():
        record = element_from_payload(record_raw)
        if not record.is_empty:
            data[str(entity_id)] = record

    sources: set[FrameSource] = set()
    sources_raw = raw.get("sources")
    if isinstance(sources_raw, (list, tuple)):
        for item in sources_raw:
            try:
                sources.add(FrameSource(str(item)))
            except ValueError:
                continue

    duration = safe_int(_pick(raw, "dur", "durationMs"))
    scenario_id = _pick(raw, "sid", "scenarioId")
    return Frame(
        timestamp=timestamp,
        data=data,
        duration_ms=duration if duration is not None and duration >= 0 else 0,
        sources=frozenset(sources),
        scenario_id=str(scenario_id) if scenario_id else None,
    )


def dumps_frame(frame: Frame) -> str:
    return json_dumps(frame_to_payload(frame))


def loads_frame(data: str | bytes | bytearray) -> Frame:
    try:
        raw = json_loads(data)
    except ValueError as exc:
        raise FramePayloadError(f"frame payload is not valid JSON: {exc}") from exc
    return frame_from_payload(raw)


# ── Report ────────────────────────────────────────────────────────────────


def interval_to_plain(item: IntervalDiagnosis) -> IntervalPayload:
    return {
        "name": item.name,
        "start_marker": item.start_marker,
        "end_marker": item.end_marker,
        "start_ms": item.start_ms,
        "end_ms": item.end_ms,
        "duration_ms": item.duration_ms,
        "input_variance": item.input_variance,
        "output_variance": item.output_variance,
        "correlation": item.correlation,
        "verdict": item.verdict.value,
        "confidence": item.confidence,
        "details": item.details,
    }


def _event_to_plain(event: AvSyncEvent) -> AvSyncEventPayload:
    return {
        "marker": event.marker,
        "marker_ts": event.marker_ts,
        "latency_ms": event.latency_ms,
        "max_energy": event.max_energy,
        "is_silent": event.is_silent,
        "verdict": event.verdict.value,
    }


def audio_sync_to_plain(report: AudioSyncReport) -> AudioSyncPayload:
    return {
        "sync_events": [_event_to_plain(event) for event in report.sync_events]
    }


def _violation_to_plain(violation: TopologyViolation) -> dict[str, Any]:
    return {
        "contract_id": violation.contract_id,
        "frame_index": violation.frame_index,
        "timestamp": violation.timestamp,
        "expected": list(violation.expected),
        "actual": list(violation.actual),
        "violations": [
            {
                "element": v.element,
                "expected_rank": v.expected_rank,
                "actual_rank": v.actual_rank,
                "severity": v.severity.value,
            }
            for v in violation.violations
        ],
    }


def topology_to_plain(report: TopologyReport) -> dict[str, Any]:
    return {
        "total_frames": report.total_frames,
        "contracts": [
            {
                "contract_id": result.contract_id,
                "contract_name": result.contract_name,
                "passed": result.passed,
                "violation_count": result.violation_count,
                "violations": [_violation_to_plain(v) for v in result.violations],
                "stats": {
                    "compliant_frames": result.stats.compliant_frames,
                    "total_frames": result.stats.total_frames,
                    "evaluated_frames": result.stats.evaluated_frames,
                    "max_consecutive_violation": result.stats.max_consecutive_violation,
                },
            }
            for result in report.contracts
        ],
        "relations": [
            {
                "constraint_id": rel.constraint_id,
                "passed": rel.passed,
                "violation_frames": list(rel.violation_frames),
            }
            for rel in report.relations
        ],
        "summary": {
            "total_violations": report.total_violations,
            "critical_count": report.critical_count,
            "stability": report.stability,
        },
    }


def to_plain_report(report: DiagnosisReport) -> DiagnosisPayload:
    """Конвертує DiagnosisReport у JSON-friendly dict (snake_case ключі)."""

    plain: DiagnosisPayload = {
        "schema_version": DIAGNOSIS_SCHEMA_VERSION,
        "scenario_id": report.scenario_id,
        "score": report.score,
        "total_frames": report.total_frames,
        "intervals": [interval_to_plain(item) for item in report.intervals],
        "summary": {
            "healthy_count": report.healthy_count,
            "anomaly_count": report.anomaly_count,
            "overall_health": report.overall_health,
        },
        "alerts": list(report.alerts),
    }
    if report.audio_sync is not None:
        plain["audio_sync"] = audio_sync_to_plain(report.audio_sync)
    if report.topology is not None:
        plain["topology"] = topology_to_plain(report.topology)
    return plain


def _pick(raw: Mapping[str, Any], short: str, long: str) -> Any:
    value = raw.get(short)
    if value is None:
        value = raw.get(long)
    return value
