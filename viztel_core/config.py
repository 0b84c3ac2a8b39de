"""Константи та базовий конфіг для viztel-core."""

from __future__ import annotations

from dataclasses import dataclass, fields

from core.serialization import safe_float, safe_int

DEFAULT_INPUT_ENTITY_IDS: tuple[str, ...] = ("__cursor__", "__input__")
DEFAULT_AUDIO_KEYWORDS: tuple[str, ...] = (
    "COLLISION",
    "EXPLOSION",
    "SUCCESS",
    "FAIL",
    "CLICK",
)


@dataclass(frozen=True, slots=True)
class VizTelCoreConfig:
    """Пороги, що визначають чутливість діагностики.

    Небезпечні значення (від'ємні пороги, нульові вікна) нормалізуються до
    дефолтів у ``__post_init__``: аналіз ніколи не отримує конфіг, з яким
    кореляція чи вікна стають невизначеними.
    """

    input_entity_ids: tuple[str, ...] = DEFAULT_INPUT_ENTITY_IDS
    output_entity_ids: tuple[str, ...] | None = None  # None => автодетект
    correlation_threshold: float = 0.3  # |r| вище — вважаємо зв'язаними
    input_variance_threshold: float = 0.01  # дисперсія входу, вище якої є "ввід"
    output_variance_threshold: float = 0.001  # дисперсія виходу, вище якої є "реакція"
    min_interval_ms: int = 50  # коротші інтервали статистично незначущі
    min_frames_per_interval: int = 3  # менше — INSUFFICIENT_DATA

    # --- Audio-sync ---
    audio_silence_threshold: float = 0.05  # 5% енергії вважаємо звуком
    audio_lag_threshold_ms: int = 200
    audio_search_window_ms: int = 300
    audio_keywords: tuple[str, ...] = DEFAULT_AUDIO_KEYWORDS
    audio_entity_id: str = "__system__/audio"
    audio_peak_metrics: tuple[str, ...] = ("peak_level", "energy_rms")

    # --- Topology: відстань від очікуваної позиції для severity ---
    severity_major_distance: int = 2
    severity_critical_distance: int = 3

    def __post_init__(self) -> None:
        defaults = {f.name: f.default for f in fields(self)}
        _set = object.__setattr__

        for name in (
            "correlation_threshold",
            "input_variance_threshold",
            "output_variance_threshold",
            "audio_silence_threshold",
        ):
            value = safe_float(getattr(self, name), finite=True)
            if value is None or value < 0:
                value = defaults[name]
            _set(self, name, value)
        if self.correlation_threshold > 1.0:
            _set(self, "correlation_threshold", 1.0)

        for name, floor in (
            ("min_interval_ms", 1),
            ("min_frames_per_interval", 2),
            ("audio_lag_threshold_ms", 0),
            ("audio_search_window_ms", 1),
            ("severity_major_distance", 1),
            ("severity_critical_distance", 1),
        ):
            value = safe_int(getattr(self, name))
            if value is None or value < floor:
                value = defaults[name]
            _set(self, name, value)
        if self.severity_critical_distance <= self.severity_major_distance:
            _set(self, "severity_critical_distance", self.severity_major_distance + 1)

        _set(self, "input_entity_ids", tuple(self.input_entity_ids or ()))
        if self.output_entity_ids is not None:
            outputs = tuple(self.output_entity_ids)
            _set(self, "output_entity_ids", outputs or None)
        keywords = tuple(k.strip().upper() for k in self.audio_keywords if k.strip())
        _set(self, "audio_keywords", keywords)
        _set(self, "audio_peak_metrics", tuple(self.audio_peak_metrics))


VIZTEL_CORE_CONFIG = VizTelCoreConfig()
