"""Офлайн-діагностика сценарію з JSONL-дампу кадрів.

Приклад:
    python tools/viztel_replay_report.py frames.jsonl --scenario checkout \
        --contracts config/contracts.yaml --csv out/frames.csv --json out/report.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from core.serialization import json_dumps
from viztel_core.engine import DiagnosisEngine
from viztel_core.errors import FramePayloadError, VizTelError
from viztel_core.frames_df import entity_activity, frames_to_df
from viztel_core.serializers import loads_frame, to_plain_report
from viztel_core.viztel_types import DiagnosisReport, Frame, Verdict
from viztel_topology import load_contracts_yaml

logger = logging.getLogger("tools.viztel_replay_report")
logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

_VERDICT_STYLE = {
    Verdict.HEALTHY: "green",
    Verdict.AUTONOMOUS: "cyan",
    Verdict.IDLE: "dim",
    Verdict.NO_RESPONSE: "bold red",
    Verdict.CHAOTIC: "yellow",
    Verdict.INSUFFICIENT_DATA: "magenta",
}


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Будує звіт діагностики з JSONL-файлу кадрів",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("frames", help="JSONL: один кадр на рядок")
    parser.add_argument("--scenario", default="offline", help="Ідентифікатор сценарію")
    parser.add_argument("--contracts", help="YAML з rank-контрактами та відношеннями")
    parser.add_argument("--csv", help="Експорт long-format DataFrame кадрів у CSV")
    parser.add_argument("--json", help="Зберегти звіт як JSON")
    return parser.parse_args(argv)


def read_frames_jsonl(path: Path) -> tuple[list[Frame], int]:
    """Повертає кадри та кількість пропущених битих рядків."""

    frames: list[Frame] = []
    skipped = 0
    with path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                frames.append(loads_frame(line))
            except FramePayloadError:
                skipped += 1
    return frames, skipped


def render_report(report: DiagnosisReport, console: Console) -> None:
    table = Table(title=f"Сценарій {report.scenario_id}", expand=True)
    table.add_column("Інтервал")
    table.add_column("Вердикт")
    table.add_column("conf", justify="right")
    table.add_column("var in", justify="right")
    table.add_column("var out", justify="right")
    table.add_column("r", justify="right")
    for item in report.intervals:
        table.add_row(
            item.name,
            Text(item.verdict.value, style=_VERDICT_STYLE.get(item.verdict, "")),
            f"{item.confidence:.2f}",
            f"{item.input_variance:.4f}",
            f"{item.output_variance:.4f}",
            f"{item.correlation:.3f}",
        )
    console.print(table)
    console.print(
        f"score=[bold]{report.score:.1f}[/bold] кадрів={report.total_frames} "
        f"healthy={report.healthy_count} anomaly={report.anomaly_count}"
    )
    if report.topology is not None:
        console.print(
            f"topology: порушень={report.topology.total_violations} "
            f"critical={report.topology.critical_count} "
            f"stability={report.topology.stability:.3f}"
        )
    for alert in report.alerts:
        console.print(Text(alert, style="red"))


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    path = Path(args.frames)
    if not path.exists():
        logger.error("Файл не знайдено: %s", path)
        return 1

    frames, skipped = read_frames_jsonl(path)
    if skipped:
        logger.warning("Пропущено %d битих рядків", skipped)
    if not frames:
        logger.error("У %s немає жодного кадру", path)
        return 1

    contracts, relations = [], []
    if args.contracts:
        try:
            contracts, relations = load_contracts_yaml(args.contracts)
        except VizTelError as exc:
            logger.error("%s", exc)
            return 1

    report = DiagnosisEngine().analyze(
        args.scenario, frames, contracts=contracts, relations=relations
    )
    render_report(report, Console())

    if args.csv:
        df = frames_to_df(frames)
        out = Path(args.csv)
        out.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(out, index=False)
        logger.info("CSV: %s (%d рядків)", out, len(df))
        top = entity_activity(df).head(10)
        if not top.empty:
            logger.info("Найактивніші сутності:\n%s", top.to_string(index=False))
    if args.json:
        out = Path(args.json)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json_dumps(to_plain_report(report), pretty=True), encoding="utf-8")
        logger.info("JSON: %s", out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
