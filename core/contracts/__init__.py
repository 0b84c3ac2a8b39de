"""Контракти (schemas) між модулями проєкту.

Принцип: contract-first — спочатку описуємо payload, потім імплементуємо.
"""

from __future__ import annotations

from .telemetry import (
    DIAGNOSIS_SCHEMA_VERSION,
    AudioSyncPayload,
    AvSyncEventPayload,
    DiagnosisPayload,
    ElementPayload,
    FramePayload,
    FrameSourceName,
    IntervalPayload,
    MetricPayload,
    SummaryPayload,
)

__all__ = [
    "DIAGNOSIS_SCHEMA_VERSION",
    "AudioSyncPayload",
    "AvSyncEventPayload",
    "DiagnosisPayload",
    "ElementPayload",
    "FramePayload",
    "FrameSourceName",
    "IntervalPayload",
    "MetricPayload",
    "SummaryPayload",
]
