"""Публічний API viztel-core: K-лінії, типи, конфіг, серіалізатори.

``DiagnosisEngine`` імпортується з ``viztel_core.engine`` напряму: движок
залежить від пакетів аналізу, які самі спираються на ``viztel_core``.
"""

from __future__ import annotations

from viztel_core.config import VIZTEL_CORE_CONFIG, VizTelCoreConfig
from viztel_core.errors import (
    FramePayloadError,
    ScenarioNotFoundError,
    StoreUnavailableError,
    VizTelError,
)
from viztel_core.metric import Metric, activity
from viztel_core.serializers import (
    dumps_frame,
    frame_from_payload,
    frame_to_payload,
    loads_frame,
    to_plain_report,
)
from viztel_core.viztel_types import (
    MARKERS_ENTITY,
    AudioSyncReport,
    AudioVerdict,
    AvSyncEvent,
    ContractType,
    DiagnosisReport,
    ElementRecord,
    Frame,
    FrameSource,
    IntervalDiagnosis,
    Marker,
    RankContract,
    RelationConstraint,
    RelationType,
    Severity,
    Tolerance,
    TopologyReport,
    TopologyViolation,
    Verdict,
)

__all__ = [
    "MARKERS_ENTITY",
    "VIZTEL_CORE_CONFIG",
    "AudioSyncReport",
    "AudioVerdict",
    "AvSyncEvent",
    "ContractType",
    "DiagnosisReport",
    "ElementRecord",
    "Frame",
    "FramePayloadError",
    "FrameSource",
    "IntervalDiagnosis",
    "Marker",
    "Metric",
    "RankContract",
    "RelationConstraint",
    "RelationType",
    "ScenarioNotFoundError",
    "Severity",
    "StoreUnavailableError",
    "Tolerance",
    "TopologyReport",
    "TopologyViolation",
    "Verdict",
    "VizTelCoreConfig",
    "VizTelError",
    "activity",
    "dumps_frame",
    "frame_from_payload",
    "frame_to_payload",
    "loads_frame",
    "to_plain_report",
]
