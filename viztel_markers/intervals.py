"""Кореляція вводу/виводу між сусідніми маркерами.

Для кожної пари маркерів ``(start, end)``:

1. беремо кадри ``start <= ts <= end`` (коротші за ``min_interval_ms``
   інтервали пропускаємо зовсім, замало кадрів — ``INSUFFICIENT_DATA``);
2. будуємо ряди середньої активності для вхідних та вихідних сигналів
   (id сутності або селектор ``entity:attr``);
3. рахуємо дисперсії (ділення на N) і Пірсона;
4. класифікуємо за таблицею рішень.

Чиста функція від ``(frames, markers, cfg)`` — стану між викликами немає.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from viztel_core.config import VIZTEL_CORE_CONFIG, VizTelCoreConfig
from viztel_core.metric import Metric
from viztel_core.viztel_types import (
    SYSTEM_PREFIX,
    Frame,
    IntervalDiagnosis,
    Marker,
    Verdict,
)
from viztel_markers.extractor import slice_frames
from viztel_markers.stats import pearson, population_variance

logger = logging.getLogger("viztel_markers.intervals")


def split_selector(selector: str) -> tuple[str, str | None]:
    """``"player:x"`` → ``("player", "x")``; ``"player"`` → ``("player", None)``."""

    entity_id, _, attr = selector.partition(":")
    return entity_id, attr or None


def _selected_metrics(frame: Frame, selector: str) -> list[Metric]:
    entity_id, attr = split_selector(selector)
    record = frame.data.get(entity_id)
    if record is None:
        return []
    if attr is None:
        return list(record.metrics())
    metric = record.attrs.get(attr)
    return [metric] if metric is not None and not metric.is_empty else []


def signal_series(frames: Sequence[Frame], selectors: Collection[str]) -> list[float]:
    """Одне число на кадр: середня ``activity`` по вибраних сигналах.

    Селектор — або id сутності (``weight`` та всі ``attrs``; ранг — це порядок,
    а не рух), або ``entity:attr`` для одного атрибута. Кадр без жодної
    вибраної метрики дає 0.
    """

    series: list[float] = []
    for frame in frames:
        total = 0.0
        count = 0
        for selector in selectors:
            for metric in _selected_metrics(frame, selector):
                total += metric.activity()
                count += 1
        series.append(total / count if count else 0.0)
    return series


def detect_output_entities(
    frames: Sequence[Frame], input_selectors: Collection[str]
) -> list[str]:
    """Усі не-системні сутності зрізу, що не є вхідними (порядок появи).

    Сутність вхідного селектора ``entity:attr`` теж вважається вхідною.
    """

    input_entities = {split_selector(s)[0] for s in input_selectors}
    seen: dict[str, None] = {}
    for frame in frames:
        for entity_id in frame.data:
            if entity_id.startswith(SYSTEM_PREFIX) or entity_id in input_entities:
                continue
            seen.setdefault(entity_id, None)
    return list(seen)


def classify_interval(
    input_variance: float,
    output_variance: float,
    correlation: float,
    cfg: VizTelCoreConfig = VIZTEL_CORE_CONFIG,
) -> tuple[Verdict, float, str]:
    """Таблиця рішень → ``(verdict, confidence, details)``."""

    has_input = input_variance > cfg.input_variance_threshold
    has_output = output_variance > cfg.output_variance_threshold
    abs_corr = abs(correlation)

    if not has_input and not has_output:
        return Verdict.IDLE, 0.9, "no input or output activity in interval"
    if has_input and not has_output:
        return (
            Verdict.NO_RESPONSE,
            0.95,
            f"input active (var={input_variance:.4f}) but output frozen "
            f"(var={output_variance:.6f})",
        )
    if not has_input:
        return (
            Verdict.AUTONOMOUS,
            0.85,
            f"output moves without input (var={output_variance:.4f}): "
            "animation or timer",
        )
    if abs_corr > cfg.correlation_threshold:
        return (
            Verdict.HEALTHY,
            min(0.99, 0.5 + abs_corr),
            f"input and output coupled (r={correlation:.3f})",
        )
    # чим ближче |r| до нуля, тим впевненіше "не пов'язані"
    threshold = cfg.correlation_threshold or 1.0
    confidence = 0.5 + 0.4 * max(0.0, 1.0 - abs_corr / threshold)
    return (
        Verdict.CHAOTIC,
        min(0.9, confidence),
        f"input and output both active but uncorrelated (r={correlation:.3f})",
    )


def analyze_interval(
    frames: Sequence[Frame],
    start: Marker,
    end: Marker,
    cfg: VizTelCoreConfig = VIZTEL_CORE_CONFIG,
) -> IntervalDiagnosis:
    name = f"{start.name} -> {end.name}"
    duration = end.timestamp_ms - start.timestamp_ms
    sliced = slice_frames(frames, start.timestamp_ms, end.timestamp_ms)

    if len(sliced) < cfg.min_frames_per_interval:
        return IntervalDiagnosis(
            name=name,
            start_marker=start.name,
            end_marker=end.name,
            start_ms=start.timestamp_ms,
            end_ms=end.timestamp_ms,
            duration_ms=duration,
            input_variance=0.0,
            output_variance=0.0,
            correlation=0.0,
            verdict=Verdict.INSUFFICIENT_DATA,
            confidence=0.0,
            details=f"only {len(sliced)} frames in interval",
        )

    input_ids = cfg.input_entity_ids
    output_ids = cfg.output_entity_ids or detect_output_entities(sliced, input_ids)
    input_series = signal_series(sliced, input_ids)
    output_series = signal_series(sliced, output_ids)

    input_variance = population_variance(input_series)
    output_variance = population_variance(output_series)
    correlation = pearson(input_series, output_series)
    verdict, confidence, details = classify_interval(
        input_variance, output_variance, correlation, cfg
    )
    return IntervalDiagnosis(
        name=name,
        start_marker=start.name,
        end_marker=end.name,
        start_ms=start.timestamp_ms,
        end_ms=end.timestamp_ms,
        duration_ms=duration,
        input_variance=input_variance,
        output_variance=output_variance,
        correlation=correlation,
        verdict=verdict,
        confidence=confidence,
        details=details,
    )


def analyze_intervals(
    frames: Sequence[Frame],
    markers: Sequence[Marker],
    cfg: VizTelCoreConfig = VIZTEL_CORE_CONFIG,
) -> list[IntervalDiagnosis]:
    """Діагнози для всіх сусідніх пар маркерів, довших за ``min_interval_ms``."""

    results: list[IntervalDiagnosis] = []
    for start, end in zip(markers, markers[1:]):
        if end.timestamp_ms - start.timestamp_ms < cfg.min_interval_ms:
            continue
        diagnosis = analyze_interval(frames, start, end, cfg)
        logger.debug(
            "[VizTel] інтервал %s → %s (conf=%.2f)",
            diagnosis.name,
            diagnosis.verdict.value,
            diagnosis.confidence,
        )
        results.append(diagnosis)
    return results
