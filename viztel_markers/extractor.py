"""Витяг маркерів причинних подій з потоку кадрів."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from viztel_core.viztel_types import MARKERS_ENTITY, Frame, Marker


def extract_markers(frames: Iterable[Frame]) -> list[Marker]:
    """Повертає маркери, відсортовані за часом спрацювання.

    Час маркера закодовано у ``close`` атрибута сутності ``__markers__``.
    Значення ``<= 0`` маркером не вважаються. Сортування стабільне: маркери з
    однаковим часом лишаються у порядку появи.
    """

    markers: list[Marker] = []
    for frame in frames:
        record = frame.data.get(MARKERS_ENTITY)
        if record is None:
            continue
        for name, metric in record.attrs.items():
            if metric.is_empty or metric.close <= 0:  # type: ignore[operator]
                continue
            markers.append(Marker(name=name, timestamp_ms=int(metric.close)))  # type: ignore[arg-type]
    markers.sort(key=lambda m: m.timestamp_ms)
    return markers


def slice_frames(frames: Sequence[Frame], start_ms: int, end_ms: int) -> list[Frame]:
    """Кадри з ``start_ms <= timestamp <= end_ms`` (межі включно)."""

    return [f for f in frames if start_ms <= f.timestamp <= end_ms]
