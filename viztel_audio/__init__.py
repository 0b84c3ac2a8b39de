"""Аудіо-візуальна синхронізація маркерів."""

from __future__ import annotations

from .sync import (
    analyze_audio_sync,
    evaluate_marker,
    extract_audio_stream,
    is_critical_marker,
)

__all__ = [
    "analyze_audio_sync",
    "evaluate_marker",
    "extract_audio_stream",
    "is_critical_marker",
]
