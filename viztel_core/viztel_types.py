"""Базові типи та перерахування для viztel-core."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from viztel_core.metric import Metric

MARKERS_ENTITY = "__markers__"
SYSTEM_PREFIX = "__"


class FrameSource(str, Enum):
    """Джерело даних у кадрі."""

    DOM = "dom"
    VIRTUAL = "virtual"
    AUDIO = "audio"


class Verdict(str, Enum):
    """Вердикт для інтервалу між двома маркерами."""

    HEALTHY = "HEALTHY"
    NO_RESPONSE = "NO_RESPONSE"
    AUTONOMOUS = "AUTONOMOUS"
    CHAOTIC = "CHAOTIC"
    IDLE = "IDLE"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"


class AudioVerdict(str, Enum):
    """Вердикт аудіо-синхронізації для одного маркера."""

    PASS = "PASS"
    FAIL_SILENT = "FAIL_SILENT"
    FAIL_LAG = "FAIL_LAG"


class ContractType(str, Enum):
    """Типи rank-контрактів."""

    STRICT_ORDER = "STRICT_ORDER"
    PARTIAL_ORDER = "PARTIAL_ORDER"
    TOP_N = "TOP_N"
    NEVER_BELOW = "NEVER_BELOW"


class RelationType(str, Enum):
    """Парні відношення між рангами двох сутностей."""

    ABOVE = "ABOVE"
    BELOW = "BELOW"
    ADJACENT = "ADJACENT"
    SAME_RANK = "SAME_RANK"


class Severity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class ElementRecord:
    """Дані однієї сутності за вікно.

    ``weight``/``rank`` є лише у сутностей, які спостерігає геометричний шар;
    ``attrs`` — логічні, аудіо та UI-фізичні сигнали (read-only mapping).
    """

    weight: Metric | None = None
    rank: Metric | None = None
    attrs: Mapping[str, Metric] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.attrs, MappingProxyType):
            object.__setattr__(self, "attrs", MappingProxyType(dict(self.attrs)))

    @property
    def is_empty(self) -> bool:
        weight_empty = self.weight is None or self.weight.is_empty
        rank_empty = self.rank is None or self.rank.is_empty
        return weight_empty and rank_empty and not self.attrs

    def metrics(self) -> list[Metric]:
        """Метрики, що описують рух сутності: weight та attrs (без rank)."""

        out: list[Metric] = []
        if self.weight is not None and not self.weight.is_empty:
            out.append(self.weight)
        out.extend(m for m in self.attrs.values() if not m.is_empty)
        return out


@dataclass(frozen=True, slots=True)
class Frame:
    """Зібраний кадр телеметрії. Після збирання не змінюється.

    ``data`` і ``attrs`` кожного запису обгортаються у read-only mapping;
    K-лінії всередині належать кадру (після harvest producer пише у нові).
    Порожні сутності не зберігаються (sparse-кодування).
    """

    timestamp: int
    data: Mapping[str, ElementRecord]
    duration_ms: int = 0
    sources: frozenset[FrameSource] = frozenset()
    scenario_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))
        if not isinstance(self.sources, frozenset):
            object.__setattr__(self, "sources", frozenset(self.sources))


@dataclass(frozen=True, slots=True)
class Marker:
    """Іменована подія нульової тривалості (початок/кінець дії)."""

    name: str
    timestamp_ms: int


@dataclass(frozen=True, slots=True)
class Tolerance:
    frames: int = 0
    margin_or_n: int = 0


@dataclass(frozen=True, slots=True)
class RankContract:
    """Контракт порядку рангів для набору сутностей.

    ``expected_order`` — від найпомітнішої (rank 1) до найменш помітної.
    ``requires_entity_present`` — контракт активний лише коли ця сутність має
    додатну вагу у кадрі (наприклад, відкрита модалка).
    """

    id: str
    type: ContractType
    expected_order: tuple[str, ...]
    tolerance: Tolerance = Tolerance()
    requires_entity_present: str | None = None
    name: str = ""


@dataclass(frozen=True, slots=True)
class RelationConstraint:
    """Парне обмеження: ``subject`` ABOVE/BELOW/... ``target``."""

    id: str
    subject: str
    relation: RelationType
    target: str
    tolerance_frames: int = 0


@dataclass(frozen=True, slots=True)
class IntervalDiagnosis:
    """Діагноз одного інтервалу між сусідніми маркерами."""

    name: str
    start_marker: str
    end_marker: str
    start_ms: int
    end_ms: int
    duration_ms: int
    input_variance: float
    output_variance: float
    correlation: float
    verdict: Verdict
    confidence: float
    details: str = ""


@dataclass(frozen=True, slots=True)
class AvSyncEvent:
    """Результат пошуку аудіо-піку після одного критичного маркера."""

    marker: str
    marker_ts: int
    latency_ms: int
    max_energy: float
    is_silent: bool
    verdict: AudioVerdict


@dataclass(slots=True)
class AudioSyncReport:
    sync_events: list[AvSyncEvent] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ElementViolation:
    element: str
    expected_rank: int
    actual_rank: int
    severity: Severity


@dataclass(frozen=True, slots=True)
class TopologyViolation:
    """Порушення контракту в одному кадрі."""

    contract_id: str
    frame_index: int
    timestamp: int
    expected: tuple[str, ...]
    actual: tuple[str, ...]
    violations: tuple[ElementViolation, ...]

    @property
    def is_critical(self) -> bool:
        return any(v.severity is Severity.CRITICAL for v in self.violations)


@dataclass(slots=True)
class ContractStats:
    compliant_frames: int = 0
    total_frames: int = 0
    evaluated_frames: int = 0
    max_consecutive_violation: int = 0


@dataclass(slots=True)
class ContractResult:
    contract_id: str
    contract_name: str
    violations: list[TopologyViolation] = field(default_factory=list)
    stats: ContractStats = field(default_factory=ContractStats)

    @property
    def passed(self) -> bool:
        return not self.violations

    @property
    def violation_count(self) -> int:
        return len(self.violations)


@dataclass(slots=True)
class RelationResult:
    constraint_id: str
    violation_frames: list[int] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violation_frames


@dataclass(slots=True)
class TopologyReport:
    """Зведення перевірки топології по всіх контрактах та відношеннях."""

    total_frames: int
    contracts: list[ContractResult] = field(default_factory=list)
    relations: list[RelationResult] = field(default_factory=list)
    total_violations: int = 0
    critical_count: int = 0
    stability: float = 1.0


@dataclass(slots=True)
class DiagnosisReport:
    """Фінальний результат діагностики сценарію."""

    scenario_id: str
    score: float
    total_frames: int
    intervals: list[IntervalDiagnosis] = field(default_factory=list)
    audio_sync: AudioSyncReport | None = None
    topology: TopologyReport | None = None
    alerts: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy_count(self) -> int:
        return sum(
            1
            for item in self.intervals
            if item.verdict in (Verdict.HEALTHY, Verdict.AUTONOMOUS)
        )

    @property
    def anomaly_count(self) -> int:
        return sum(
            1
            for item in self.intervals
            if item.verdict in (Verdict.NO_RESPONSE, Verdict.CHAOTIC)
        )

    @property
    def overall_health(self) -> float:
        if not self.intervals:
            return 1.0
        return self.healthy_count / len(self.intervals)
