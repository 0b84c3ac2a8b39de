"""Маркери та інтервальна кореляція: markers → intervals → verdicts."""

from __future__ import annotations

from .extractor import extract_markers, slice_frames
from .intervals import (
    analyze_interval,
    analyze_intervals,
    classify_interval,
    detect_output_entities,
    signal_series,
    split_selector,
)
from .stats import pearson, population_variance

__all__ = [
    "analyze_interval",
    "analyze_intervals",
    "classify_interval",
    "detect_output_entities",
    "extract_markers",
    "pearson",
    "population_variance",
    "signal_series",
    "slice_frames",
    "split_selector",
]
