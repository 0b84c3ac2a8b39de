"""Статистика для рядів активності: дисперсія та кореляція Пірсона."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

MIN_CORRELATION_POINTS = 3


def population_variance(series: Sequence[float]) -> float:
    """Дисперсія генеральної сукупності (ділення на N)."""

    if len(series) < 2:
        return 0.0
    arr = np.asarray(series, dtype=np.float64)
    if not np.all(np.isfinite(arr)):
        return 0.0
    return float(np.var(arr))


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Коефіцієнт Пірсона по перших ``min(len)`` точках.

    0.0, якщо точок менше трьох, будь-який ряд константний чи містить
    нескінченності — NaN назовні не виходить.
    """

    n = min(len(xs), len(ys))
    if n < MIN_CORRELATION_POINTS:
        return 0.0
    a = np.asarray(xs[:n], dtype=np.float64)
    b = np.asarray(ys[:n], dtype=np.float64)
    if not (np.all(np.isfinite(a)) and np.all(np.isfinite(b))):
        return 0.0
    da = a - a.mean()
    db = b - b.mean()
    denom = float(np.sqrt(np.sum(da * da) * np.sum(db * db)))
    if denom == 0.0 or not np.isfinite(denom):
        return 0.0
    r = float(np.sum(da * db)) / denom
    return max(-1.0, min(1.0, r))
