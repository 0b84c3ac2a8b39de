"""TopologyChecker — перевірка rank-контрактів (шарів/порядку) у часі.

Ранг сутності в кадрі — ``rank.close`` (останнє значення у вікні). Порушення
фіксується лише коли серія поспіль порушених кадрів перевищує
``tolerance.frames``: одно-двокадрове мерехтіння під час анімації переходу не
є порушенням. Неактивний контракт (немає умовної сутності) скидає серію.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from viztel_core.config import VIZTEL_CORE_CONFIG, VizTelCoreConfig
from viztel_core.viztel_types import (
    ContractResult,
    ContractType,
    ElementViolation,
    Frame,
    RankContract,
    RelationConstraint,
    RelationResult,
    RelationType,
    Severity,
    TopologyReport,
    TopologyViolation,
)

logger = logging.getLogger("viztel_topology.checker")


def extract_rank_map(frame: Frame) -> dict[str, float]:
    """``entity_id → rank`` для сутностей із непорожньою rank-метрикою."""

    ranks: dict[str, float] = {}
    for entity_id, record in frame.data.items():
        if record.rank is not None and not record.rank.is_empty:
            ranks[entity_id] = float(record.rank.close)  # type: ignore[arg-type]
    return ranks


def is_contract_active(contract: RankContract, frame: Frame) -> bool:
    """Умовний контракт активний, лише коли умовна сутність має вагу > 0."""

    entity_id = contract.requires_entity_present
    if not entity_id:
        return True
    record = frame.data.get(entity_id)
    if record is None or record.weight is None or record.weight.is_empty:
        return False
    return record.weight.close > 0  # type: ignore[operator]


@dataclass(frozen=True, slots=True)
class _FrameCheck:
    present: tuple[str, ...]
    actual: tuple[str, ...]
    violations: tuple[ElementViolation, ...]


class TopologyChecker:
    def __init__(self, cfg: VizTelCoreConfig = VIZTEL_CORE_CONFIG) -> None:
        self._cfg = cfg
        self._contracts: dict[str, RankContract] = {}
        self._relations: list[RelationConstraint] = []

    # ── Реєстрація ──────────────────────────────────────────────────────

    def register_contract(self, contract: RankContract) -> TopologyChecker:
        self._contracts[contract.id] = contract
        return self

    def register_contracts(self, contracts: Iterable[RankContract]) -> TopologyChecker:
        for contract in contracts:
            self.register_contract(contract)
        return self

    def register_relation(self, constraint: RelationConstraint) -> TopologyChecker:
        self._relations.append(constraint)
        return self

    def remove_contract(self, contract_id: str) -> TopologyChecker:
        self._contracts.pop(contract_id, None)
        return self

    @property
    def contracts(self) -> list[RankContract]:
        return list(self._contracts.values())

    @property
    def relations(self) -> list[RelationConstraint]:
        return list(self._relations)

    # ── Перевірка ───────────────────────────────────────────────────────

    def check(self, frames: Sequence[Frame]) -> TopologyReport:
        """Повна перевірка пакета кадрів усіма контрактами та відношеннями."""

        report = TopologyReport(total_frames=len(frames))
        compliant_total = 0
        evaluated_total = 0

        for contract in self._contracts.values():
            result = self.check_contract(contract, frames)
            report.contracts.append(result)
            report.total_violations += result.violation_count
            report.critical_count += sum(1 for v in result.violations if v.is_critical)
            compliant_total += result.stats.compliant_frames
            evaluated_total += result.stats.evaluated_frames

        for constraint in self._relations:
            rel = self.check_relation(constraint, frames)
            report.relations.append(rel)
            report.total_violations += len(rel.violation_frames)

        report.stability = (
            compliant_total / evaluated_total if evaluated_total > 0 else 1.0
        )
        if report.total_violations:
            logger.debug(
                "[Topology] порушень=%d critical=%d stability=%.3f",
                report.total_violations,
                report.critical_count,
                report.stability,
            )
        return report

    def check_frame(self, frame: Frame, frame_index: int = 0) -> list[TopologyViolation]:
        """Потокова перевірка одного кадру без урахування толерантності."""

        out: list[TopologyViolation] = []
        rank_map = extract_rank_map(frame)
        for contract in self._contracts.values():
            if not is_contract_active(contract, frame):
                continue
            violation = self._violation_for(contract, frame, frame_index, rank_map)
            if violation is not None:
                out.append(violation)
        return out

    def check_contract(
        self, contract: RankContract, frames: Sequence[Frame]
    ) -> ContractResult:
        result = ContractResult(
            contract_id=contract.id, contract_name=contract.name or contract.id
        )
        stats = result.stats
        stats.total_frames = len(frames)
        streak = 0

        for index, frame in enumerate(frames):
            if not is_contract_active(contract, frame):
                streak = 0
                continue
            stats.evaluated_frames += 1
            violation = self._violation_for(
                contract, frame, index, extract_rank_map(frame)
            )
            if violation is None:
                stats.compliant_frames += 1
                streak = 0
                continue
            streak += 1
            stats.max_consecutive_violation = max(
                stats.max_consecutive_violation, streak
            )
            if streak > contract.tolerance.frames:
                result.violations.append(violation)
        return result

    def check_relation(
        self, constraint: RelationConstraint, frames: Sequence[Frame]
    ) -> RelationResult:
        result = RelationResult(constraint_id=constraint.id)
        streak = 0
        for index, frame in enumerate(frames):
            rank_map = extract_rank_map(frame)
            subject = rank_map.get(constraint.subject)
            target = rank_map.get(constraint.target)
            if subject is None or target is None:
                streak = 0
                continue
            if not _relation_violated(constraint.relation, subject, target):
                streak = 0
                continue
            streak += 1
            if streak > constraint.tolerance_frames:
                result.violation_frames.append(index)
        return result

    # ── Внутрішнє ───────────────────────────────────────────────────────

    def _violation_for(
        self,
        contract: RankContract,
        frame: Frame,
        frame_index: int,
        rank_map: Mapping[str, float],
    ) -> TopologyViolation | None:
        checked = self._compare(contract, rank_map)
        if not checked.violations:
            return None
        return TopologyViolation(
            contract_id=contract.id,
            frame_index=frame_index,
            timestamp=frame.timestamp,
            expected=checked.present,
            actual=checked.actual,
            violations=checked.violations,
        )

    def _compare(
        self, contract: RankContract, rank_map: Mapping[str, float]
    ) -> _FrameCheck:
        present = tuple(e for e in contract.expected_order if e in rank_map)
        # стабільне сортування: рівні ранги лишаються в очікуваному порядку
        actual = tuple(sorted(present, key=lambda e: rank_map[e]))
        margin = max(0, contract.tolerance.margin_or_n)

        if contract.type is ContractType.TOP_N:
            return _FrameCheck(present, actual, self._top_n(contract, rank_map, margin))
        if len(present) < 2:
            return _FrameCheck(present, actual, ())
        if contract.type is ContractType.STRICT_ORDER:
            violations = self._strict(present, actual)
        else:
            violations = self._ordered(present, actual, rank_map, margin)
        return _FrameCheck(present, actual, violations)

    def _strict(
        self, present: tuple[str, ...], actual: tuple[str, ...]
    ) -> tuple[ElementViolation, ...]:
        out: list[ElementViolation] = []
        for expected_idx, element in enumerate(present):
            actual_idx = actual.index(element)
            if actual_idx != expected_idx:
                out.append(self._element(element, expected_idx + 1, actual_idx + 1))
        return tuple(out)

    def _ordered(
        self,
        present: tuple[str, ...],
        actual: tuple[str, ...],
        rank_map: Mapping[str, float],
        margin: int,
    ) -> tuple[ElementViolation, ...]:
        """Кожен раніший елемент має ранг ``<=`` кожного пізнішого (+margin)."""

        out: list[ElementViolation] = []
        for i, element in enumerate(present):
            rank = rank_map[element]
            if any(rank > rank_map[later] + margin for later in present[i + 1 :]):
                out.append(self._element(element, i + 1, actual.index(element) + 1))
        return tuple(out)

    def _top_n(
        self, contract: RankContract, rank_map: Mapping[str, float], margin: int
    ) -> tuple[ElementViolation, ...]:
        if not contract.expected_order:
            return ()
        focus = contract.expected_order[0]
        rank = rank_map.get(focus)
        top_n = max(1, margin)
        if rank is None or rank <= top_n:
            return ()
        return (self._element(focus, 1, int(rank), distance=int(rank) - top_n),)

    def _element(
        self,
        element: str,
        expected_rank: int,
        actual_rank: int,
        *,
        distance: int | None = None,
    ) -> ElementViolation:
        if distance is None:
            distance = abs(actual_rank - expected_rank)
        return ElementViolation(
            element=element,
            expected_rank=expected_rank,
            actual_rank=actual_rank,
            severity=self._severity(distance),
        )

    def _severity(self, distance: int) -> Severity:
        if distance >= self._cfg.severity_critical_distance:
            return Severity.CRITICAL
        if distance >= self._cfg.severity_major_distance:
            return Severity.MAJOR
        return Severity.MINOR


def _relation_violated(relation: RelationType, subject: float, target: float) -> bool:
    if relation is RelationType.ABOVE:
        return subject >= target
    if relation is RelationType.BELOW:
        return subject <= target
    if relation is RelationType.ADJACENT:
        return abs(subject - target) > 1
    return subject != target
