"""SignalChannel — потокобезпечна таблиця буферів ``(entity, metric) → K-лінія``.

Кожен ключ — маленький автомат станів::

    EMPTY --push--> ACCUMULATING --harvest--> EMPTY

Один lock охоплює всю мапу: push під ним — O(1), harvest тримає його на час
читання+скидання, тож push у той самий ключ або потрапляє у поточний знімок,
або в наступне вікно; втрат немає. Конкуренція обмежена коротким вікном
(100 мс), шардування не потрібне.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from core.serialization import monotonic_ms
from viztel_core.metric import Metric

logger = logging.getLogger("viztel_channel.channel")

Harvest = dict[str, dict[str, Metric]]


class BufferState(Enum):
    EMPTY = auto()
    ACCUMULATING = auto()


@dataclass(slots=True)
class SignalBuffer:
    """Буфер одного сигналу з часом останнього запису (монотонний, мс)."""

    metric: Metric = field(default_factory=Metric)
    last_write_ms: float = 0.0

    @property
    def state(self) -> BufferState:
        return BufferState.EMPTY if self.metric.is_empty else BufferState.ACCUMULATING

    def drain(self) -> Metric:
        """Повертає накопичену K-лінію та переводить буфер у EMPTY."""

        snapshot = self.metric
        self.metric = Metric()
        return snapshot


class SignalChannel:
    """Канал логічних/віртуальних сигналів.

    Екземпляр створюється явно та передається producer-ам; процесний дефолт
    живе лише на рівні композиції застосунку (див. ``app.runtime``).
    """

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or monotonic_ms
        self._lock = threading.Lock()
        self._buffers: dict[tuple[str, str], SignalBuffer] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffers)

    def _buffer(self, entity_id: str, metric_name: str) -> SignalBuffer:
        key = (entity_id, metric_name)
        buf = self._buffers.get(key)
        if buf is None:
            buf = SignalBuffer()
            self._buffers[key] = buf
        return buf

    def push(self, entity_id: str, metric_name: str, value: Any) -> None:
        """Додає скалярний семпл у буфер ключа."""

        with self._lock:
            buf = self._buffer(entity_id, metric_name)
            buf.metric.update(value)
            buf.last_write_ms = self._clock()

    def push_aggregated(
        self, entity_id: str, metric_name: str, metric: Metric | None
    ) -> None:
        """Зливає вже агреговану K-лінію (без повторної агрегації)."""

        if metric is None or metric.is_empty:
            return
        with self._lock:
            buf = self._buffer(entity_id, metric_name)
            buf.metric.merge_aggregated(metric)
            buf.last_write_ms = self._clock()

    def push_batch(self, entity_id: str, values: Mapping[str, Any]) -> None:
        """Пакетний push для ігрових циклів: кілька метрик однієї сутності."""

        with self._lock:
            now = self._clock()
            for metric_name, value in values.items():
                buf = self._buffer(entity_id, str(metric_name))
                buf.metric.update(value)
                buf.last_write_ms = now

    def harvest(self) -> Harvest:
        """Атомарно забирає всі непорожні буфери і скидає їх у EMPTY."""

        result: Harvest = {}
        with self._lock:
            for (entity_id, metric_name), buf in self._buffers.items():
                if buf.state is BufferState.EMPTY:
                    continue
                result.setdefault(entity_id, {})[metric_name] = buf.drain()
        return result

    def prune_stale(self, threshold_ms: float = 30_000.0) -> int:
        """Видаляє буфери, у які не писали довше за ``threshold_ms``."""

        with self._lock:
            now = self._clock()
            stale = [
                key
                for key, buf in self._buffers.items()
                if now - buf.last_write_ms > threshold_ms
            ]
            for key in stale:
                del self._buffers[key]
        if stale:
            logger.debug("[Channel] prune_stale видалив %d буферів", len(stale))
        return len(stale)
