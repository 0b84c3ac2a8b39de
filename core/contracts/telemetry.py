"""Контракт транспортного кадру телеметрії та звіту діагностики.

Компактні ключі (`ts`, `dur`, `w`, `r`, `a`, `o/h/l/c`) — це формат, у якому
кадри пишуться у Redis і приходять від producer-ів. Довгі імена (`timestamp`,
`weight`, ...) декодер також приймає, але енкодер завжди пише компактні.

Невідомі поля на вході ігноруються: нові сигнальні канали не повинні ламати
старі консюмери.
"""

from __future__ import annotations

from typing import Literal, NotRequired, TypedDict

DIAGNOSIS_SCHEMA_VERSION: str = "viztel.diagnosis.v1"

FrameSourceName = Literal["dom", "virtual", "audio"]


class MetricPayload(TypedDict):
    """Одна K-лінія (OHLC) у транспортному вигляді."""

    o: float | None
    h: float | None
    l: float | None  # noqa: E741
    c: float | None
    cnt: NotRequired[int]


class ElementPayload(TypedDict, total=False):
    """Запис сутності: вага/ранг (лише для геометрії) та атрибути."""

    w: MetricPayload
    r: MetricPayload
    a: dict[str, MetricPayload]


class FramePayload(TypedDict):
    """Уніфікований кадр телеметрії (DOM + virtual + audio)."""

    ts: int
    dur: int
    sources: list[FrameSourceName]
    data: dict[str, ElementPayload]
    sid: NotRequired[str]


class IntervalPayload(TypedDict):
    name: str
    start_marker: str
    end_marker: str
    start_ms: int
    end_ms: int
    duration_ms: int
    input_variance: float
    output_variance: float
    correlation: float
    verdict: str
    confidence: float
    details: str


class AvSyncEventPayload(TypedDict):
    marker: str
    marker_ts: int
    latency_ms: int
    max_energy: float
    is_silent: bool
    verdict: str


class AudioSyncPayload(TypedDict):
    sync_events: list[AvSyncEventPayload]


class SummaryPayload(TypedDict):
    healthy_count: int
    anomaly_count: int
    overall_health: float


class DiagnosisPayload(TypedDict):
    """Відповідь diagnosis-запиту (див. ``viztel_core.serializers``)."""

    schema_version: str
    scenario_id: str
    score: float
    total_frames: int
    intervals: list[IntervalPayload]
    summary: SummaryPayload
    audio_sync: NotRequired[AudioSyncPayload]
    topology: NotRequired[dict[str, object]]
    alerts: list[str]
