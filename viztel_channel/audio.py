"""Аудіо producer: RMS/peak енергія PCM-блоків як "слухові" K-лінії.

Семпли блоку — float у [-1, 1] або uint8 з центром тиші 128 (формат
``getByteTimeDomainData``). На flush готові K-лінії йдуть у канал через
``push_aggregated``: повторна агрегація high-значення як скаляра колапсувала б
діапазон енергії в одну точку.
"""

from __future__ import annotations

import logging
import threading

import numpy as np
import numpy.typing as npt

from viztel_channel.channel import SignalChannel
from viztel_core.metric import Metric

logger = logging.getLogger("viztel_channel.audio")

AUDIO_ENTITY_ID = "__system__/audio"
METRIC_RMS = "energy_rms"
METRIC_PEAK = "peak_level"


def block_energy(samples: npt.ArrayLike) -> tuple[float, float]:
    """Повертає ``(rms, peak)`` для одного блоку семплів.

    Порожній блок — ``(0.0, 0.0)``; NaN/inf у блоці відкидаються.
    """

    arr = np.asarray(samples)
    if arr.size == 0:
        return 0.0, 0.0
    if arr.dtype == np.uint8:
        amp = (arr.astype(np.float64) - 128.0) / 128.0
    else:
        amp = arr.astype(np.float64)
        amp = amp[np.isfinite(amp)]
        if amp.size == 0:
            return 0.0, 0.0
    rms = float(np.sqrt(np.mean(amp * amp)))
    peak = float(np.max(np.abs(amp)))
    return rms, peak


class AudioEnergySampler:
    def __init__(
        self,
        channel: SignalChannel,
        *,
        entity_id: str = AUDIO_ENTITY_ID,
    ) -> None:
        self._channel = channel
        self._entity_id = entity_id
        self._lock = threading.Lock()
        self._rms = Metric()
        self._peak = Metric()

    def feed(self, samples: npt.ArrayLike) -> tuple[float, float]:
        """Аналізує один блок (звичайно — один анімаційний кадр)."""

        rms, peak = block_energy(samples)
        with self._lock:
            self._rms.update(rms)
            self._peak.update(peak)
        return rms, peak

    def flush(self) -> bool:
        """Передає накопичені K-лінії у канал. False — нічого не було."""

        with self._lock:
            if self._rms.is_empty:
                return False
            rms, peak = self._rms, self._peak
            self._rms, self._peak = Metric(), Metric()
        self._channel.push_aggregated(self._entity_id, METRIC_RMS, rms)
        self._channel.push_aggregated(self._entity_id, METRIC_PEAK, peak)
        return True
