"""Аудіо-синхронізація: чи прозвучав звук після критичної дії.

Для кожного маркера з ключовим словом у назві шукаємо максимум ``high``
пікової метрики аудіо-сутності у вікні ``[ts, ts + window]``. Відсутність
аудіо-інструментації взагалі — валідна конфігурація: порожній звіт, не помилка.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from viztel_core.config import VIZTEL_CORE_CONFIG, VizTelCoreConfig
from viztel_core.viztel_types import (
    AudioSyncReport,
    AudioVerdict,
    AvSyncEvent,
    Frame,
    Marker,
)

logger = logging.getLogger("viztel_audio.sync")


def extract_audio_stream(
    frames: Sequence[Frame], cfg: VizTelCoreConfig = VIZTEL_CORE_CONFIG
) -> list[tuple[int, float]]:
    """``(timestamp, peak)`` для кожного кадру з аудіо-даними.

    Метрики перебираються у порядку ``cfg.audio_peak_metrics`` (спершу
    ``peak_level``, потім ``energy_rms``); береться перша наявна.
    """

    stream: list[tuple[int, float]] = []
    for frame in frames:
        record = frame.data.get(cfg.audio_entity_id)
        if record is None:
            continue
        for metric_name in cfg.audio_peak_metrics:
            metric = record.attrs.get(metric_name)
            if metric is not None and not metric.is_empty:
                stream.append((frame.timestamp, float(metric.high)))  # type: ignore[arg-type]
                break
    return stream


def is_critical_marker(name: str, keywords: Sequence[str]) -> bool:
    upper = name.upper()
    return any(key in upper for key in keywords)


def evaluate_marker(
    marker: Marker,
    stream: Sequence[tuple[int, float]],
    cfg: VizTelCoreConfig = VIZTEL_CORE_CONFIG,
) -> AvSyncEvent:
    window_end = marker.timestamp_ms + cfg.audio_search_window_ms
    max_energy = 0.0
    peak_ts: int | None = None
    for ts, peak in stream:
        if marker.timestamp_ms <= ts <= window_end and (
            peak_ts is None or peak > max_energy
        ):
            max_energy = peak
            peak_ts = ts

    latency = 0 if peak_ts is None else peak_ts - marker.timestamp_ms
    is_silent = peak_ts is None or max_energy < cfg.audio_silence_threshold
    if is_silent:
        verdict = AudioVerdict.FAIL_SILENT
    elif latency > cfg.audio_lag_threshold_ms:
        verdict = AudioVerdict.FAIL_LAG
    else:
        verdict = AudioVerdict.PASS
    return AvSyncEvent(
        marker=marker.name,
        marker_ts=marker.timestamp_ms,
        latency_ms=latency,
        max_energy=max_energy,
        is_silent=is_silent,
        verdict=verdict,
    )


def analyze_audio_sync(
    frames: Sequence[Frame],
    markers: Sequence[Marker],
    cfg: VizTelCoreConfig = VIZTEL_CORE_CONFIG,
) -> AudioSyncReport:
    report = AudioSyncReport()
    stream = extract_audio_stream(frames, cfg)
    if not stream:
        logger.debug("[VizTel] аудіо-даних немає, audio-sync пропущено")
        return report

    for marker in markers:
        if not is_critical_marker(marker.name, cfg.audio_keywords):
            continue
        report.sync_events.append(evaluate_marker(marker, stream, cfg))
    return report
