"""Межа діагностики: scenario id → DiagnosisReport."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from prometheus_client import Counter

from app.settings import Settings, settings
from data.telemetry_store import TelemetryStore
from viztel_core.engine import DiagnosisEngine
from viztel_core.errors import ScenarioNotFoundError
from viztel_core.viztel_types import DiagnosisReport, RankContract, RelationConstraint
from viztel_topology import load_contracts_yaml

logger = logging.getLogger("app.diagnose")

VIZTEL_DIAGNOSES_TOTAL = Counter(
    "viztel_diagnoses_total",
    "Total number of scenario diagnoses performed.",
)
VIZTEL_INTERVAL_VERDICTS_TOTAL = Counter(
    "viztel_interval_verdicts_total",
    "Interval verdicts produced by scenario diagnoses.",
    ["verdict"],
)


async def diagnose_scenario(
    store: TelemetryStore,
    scenario_id: str,
    engine: DiagnosisEngine | None = None,
    *,
    contracts: Iterable[RankContract] | None = None,
    relations: Iterable[RelationConstraint] | None = None,
) -> DiagnosisReport:
    """Читає індекс сценарію і будує звіт.

    Raises:
        ScenarioNotFoundError: для сценарію немає жодного кадру.
        StoreUnavailableError: сховище недоступне.
    """

    frames = await store.read_scenario(scenario_id)
    if not frames:
        raise ScenarioNotFoundError(scenario_id)

    report = (engine or DiagnosisEngine()).analyze(
        scenario_id, frames, contracts=contracts, relations=relations
    )
    VIZTEL_DIAGNOSES_TOTAL.inc()
    for item in report.intervals:
        VIZTEL_INTERVAL_VERDICTS_TOTAL.labels(verdict=item.verdict.value).inc()
    logger.info(
        "[VizTel] сценарій %s: score=%.1f інтервалів=%d алертів=%d",
        scenario_id,
        report.score,
        len(report.intervals),
        len(report.alerts),
    )
    return report


def configured_contracts(
    cfg: Settings | None = None,
) -> tuple[list[RankContract], list[RelationConstraint]]:
    """Контракти з ``VIZTEL_CONTRACTS_PATH`` (або ``config/contracts.yaml``)."""

    cfg = cfg if cfg is not None else settings
    path = cfg.contracts_path
    if path is None:
        return [], []
    contracts, relations = load_contracts_yaml(path)
    logger.debug(
        "[VizTel] контракти з %s: %d, відношень: %d", path, len(contracts), len(relations)
    )
    return contracts, relations


async def diagnose_configured(
    store: TelemetryStore, scenario_id: str, cfg: Settings | None = None
) -> DiagnosisReport:
    """Діагностика з порогами та контрактами поточного профілю ``Settings``."""

    cfg = cfg if cfg is not None else settings
    contracts, relations = configured_contracts(cfg)
    return await diagnose_scenario(
        store,
        scenario_id,
        DiagnosisEngine(cfg.core_config()),
        contracts=contracts or None,
        relations=relations or None,
    )
