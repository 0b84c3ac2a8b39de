"""K-лінія (OHLC) як універсальна одиниця агрегації сигналу.

Порожній стан — один: усі чотири значення ``None``. Числових сентинелів
(``-1`` тощо) немає ні в пам'яті, ні на дроті.

Інваріант непорожньої K-лінії: ``low <= open, close <= high``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.serialization import safe_float, safe_int


@dataclass(slots=True)
class Metric:
    """OHLC-агрегат скалярного сигналу за одне вікно семплювання."""

    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    sample_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.open is None

    def update(self, value: Any) -> None:
        """Додає один скалярний семпл.

        Некоректний семпл (нечислове значення, NaN/inf) ігнорується: один
        поганий семпл не повинен зламати цикл harvest.
        """

        sample = safe_float(value, finite=True)
        if sample is None:
            return
        if self.open is None:
            self.open = self.high = self.low = self.close = sample
            self.sample_count = 1
            return
        self.close = sample
        if sample > self.high:  # type: ignore[operator]
            self.high = sample
        if sample < self.low:  # type: ignore[operator]
            self.low = sample
        self.sample_count += 1

    def merge_aggregated(self, incoming: Metric | None) -> None:
        """Зливає вже агреговану K-лінію без повторної агрегації.

        ``low``/``high`` — екстремуми обох, ``close`` — від incoming (найсвіжіше
        закриття producer-а), ``open`` не змінюється. Саме так зберігається
        справжній діапазон від спеціалізованого агрегатора (аудіо), замість
        колапсу в одну точку.
        """

        if incoming is None or incoming.is_empty:
            return
        if self.open is None:
            self.open = incoming.open
            self.high = incoming.high
            self.low = incoming.low
            self.close = incoming.close
            self.sample_count = incoming.sample_count
            return
        self.low = min(self.low, incoming.low)  # type: ignore[type-var]
        self.high = max(self.high, incoming.high)  # type: ignore[type-var]
        self.close = incoming.close
        self.sample_count += incoming.sample_count

    def activity(self) -> float:
        """``(high - low) + |close - open|`` або 0 для порожньої K-лінії."""

        if self.open is None:
            return 0.0
        return (self.high - self.low) + abs(self.close - self.open)  # type: ignore[operator]

    def reset(self) -> None:
        self.open = self.high = self.low = self.close = None
        self.sample_count = 0

    def copy(self) -> Metric:
        return Metric(self.open, self.high, self.low, self.close, self.sample_count)

    @classmethod
    def from_samples(cls, *values: Any) -> Metric:
        metric = cls()
        for value in values:
            metric.update(value)
        return metric

    @classmethod
    def from_ohlc(
        cls,
        open_: Any,
        high: Any,
        low: Any,
        close: Any,
        sample_count: Any = None,
    ) -> Metric:
        """Будує K-лінію з готових OHLC (з дроту або від producer-а).

        Якщо хоч одне з чотирьох значень відсутнє/нескінченне — повертає
        порожню K-лінію. Якщо порушено ``low <= open,close <= high``, межі
        розширюються до охоплення open/close.
        """

        o = safe_float(open_, finite=True)
        h = safe_float(high, finite=True)
        lo = safe_float(low, finite=True)
        c = safe_float(close, finite=True)
        if o is None or h is None or lo is None or c is None:
            return cls()
        count = safe_int(sample_count)
        return cls(
            open=o,
            high=max(h, lo, o, c),
            low=min(h, lo, o, c),
            close=c,
            sample_count=count if count is not None and count > 0 else 1,
        )


def activity(metric: Metric | None) -> float:
    """Універсальна міра "наскільки рухався сигнал" у вікні."""

    if metric is None:
        return 0.0
    return metric.activity()
