"""Центральний движок діагностики сценарію.

Кадри → маркери → інтервальні вердикти + audio-sync → бал та алерти.
Перевірка топології підключається, якщо передано контракти або відношення.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from viztel_audio import analyze_audio_sync
from viztel_core.config import VIZTEL_CORE_CONFIG, VizTelCoreConfig
from viztel_core.viztel_types import (
    AudioSyncReport,
    AudioVerdict,
    DiagnosisReport,
    Frame,
    IntervalDiagnosis,
    RankContract,
    RelationConstraint,
    TopologyReport,
    Verdict,
)
from viztel_markers import analyze_intervals, extract_markers
from viztel_topology import TopologyChecker

LOGGER = logging.getLogger("viztel_core.engine")

FAILING_VERDICTS = frozenset({Verdict.NO_RESPONSE, Verdict.CHAOTIC})


def compute_score(
    intervals: Sequence[IntervalDiagnosis], audio_sync: AudioSyncReport | None
) -> float:
    """``max(0, 100 - fails / max(1, intervals) * 50)``.

    Fails: NO_RESPONSE/CHAOTIC інтервали плюс не-PASS аудіо-події. Знаменник —
    лише кількість інтервалів, тому самі аудіо-провали можуть обнулити бал.
    """

    fails = sum(1 for item in intervals if item.verdict in FAILING_VERDICTS)
    if audio_sync is not None:
        fails += sum(
            1 for event in audio_sync.sync_events if event.verdict is not AudioVerdict.PASS
        )
    return max(0.0, 100.0 - fails / max(1, len(intervals)) * 50.0)


def build_alerts(
    intervals: Sequence[IntervalDiagnosis],
    audio_sync: AudioSyncReport | None,
    topology: TopologyReport | None = None,
) -> list[str]:
    alerts: list[str] = []
    for item in intervals:
        if item.verdict in FAILING_VERDICTS:
            alerts.append(f"[{item.name}] {item.verdict.value}: {item.details}")
    if audio_sync is not None:
        for event in audio_sync.sync_events:
            if event.verdict is AudioVerdict.PASS:
                continue
            alerts.append(
                f"[{event.marker}] {event.verdict.value}: "
                f"latency={event.latency_ms}ms energy={event.max_energy:.3f}"
            )
    if topology is not None:
        for result in topology.contracts:
            if result.passed:
                continue
            alerts.append(
                f"[{result.contract_id}] TOPOLOGY: {result.violation_count} "
                f"violation(s), max streak {result.stats.max_consecutive_violation}"
            )
        for rel in topology.relations:
            if not rel.passed:
                alerts.append(
                    f"[{rel.constraint_id}] RELATION: "
                    f"{len(rel.violation_frames)} violating frame(s)"
                )
    return alerts


class DiagnosisEngine:
    """Оркеструє маркери, інтервали, audio-sync та топологію.

    Стану між викликами ``analyze`` немає: один екземпляр можна кликати з
    кількох потоків одночасно.
    """

    def __init__(self, cfg: VizTelCoreConfig | None = None) -> None:
        self._cfg = cfg or VIZTEL_CORE_CONFIG

    @property
    def config(self) -> VizTelCoreConfig:
        return self._cfg

    def analyze(
        self,
        scenario_id: str,
        frames: Sequence[Frame],
        contracts: Iterable[RankContract] | None = None,
        relations: Iterable[RelationConstraint] | None = None,
    ) -> DiagnosisReport:
        ordered = sorted(frames, key=lambda f: f.timestamp)
        markers = extract_markers(ordered)
        LOGGER.debug(
            "[VizTel] діагностика %s: кадрів=%d маркерів=%d",
            scenario_id,
            len(ordered),
            len(markers),
        )

        intervals = analyze_intervals(ordered, markers, self._cfg)
        audio_sync = analyze_audio_sync(ordered, markers, self._cfg)

        topology: TopologyReport | None = None
        contract_list = list(contracts or ())
        relation_list = list(relations or ())
        if contract_list or relation_list:
            checker = TopologyChecker(self._cfg).register_contracts(contract_list)
            for constraint in relation_list:
                checker.register_relation(constraint)
            topology = checker.check(ordered)

        report = DiagnosisReport(
            scenario_id=scenario_id,
            score=compute_score(intervals, audio_sync),
            total_frames=len(ordered),
            intervals=intervals,
            audio_sync=audio_sync,
            topology=topology,
            alerts=build_alerts(intervals, audio_sync, topology),
            meta={
                "markers": [m.name for m in markers],
                "first_ts": ordered[0].timestamp if ordered else None,
                "last_ts": ordered[-1].timestamp if ordered else None,
            },
        )
        LOGGER.debug(
            "[VizTel] %s: score=%.1f alerts=%d",
            scenario_id,
            report.score,
            len(report.alerts),
        )
        return report
