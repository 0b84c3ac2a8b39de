"""TelemetryStore — append-only сховище кадрів у Redis.

Шлях: ``data/telemetry_store.py``

Ключі:
    • ``{ns}:telemetry:stream:{session}`` — сирий потік сесії (TTL 2 год);
    • ``{ns}:telemetry:scenario:{scenario}`` — індекс сценарію (TTL 24 год),
      бо діагностика запитується пізніше, ніж живе сирий потік.

Кожен append оновлює TTL. Помилки Redis піднімаються як
``StoreUnavailableError``: тихої втрати кадрів на цьому шарі немає.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError
from rich.console import Console
from rich.logging import RichHandler

from config.config import (
    NAMESPACE,
    SCENARIO_TTL_SEC,
    STREAM_TTL_SEC,
    scenario_key,
    stream_key,
)
from viztel_core.errors import FramePayloadError, StoreUnavailableError
from viztel_core.serializers import dumps_frame, loads_frame
from viztel_core.viztel_types import Frame

# ── Логування ──
logger = logging.getLogger("data.telemetry_store")
if not logger.handlers:  # guard проти повторної ініціалізації
    logger.setLevel(logging.INFO)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=True))
    logger.propagate = False

_REDIS_ERRORS = (RedisError, ConnectionError, OSError)


@dataclass(frozen=True, slots=True)
class StoreConfig:
    namespace: str = NAMESPACE
    stream_ttl_sec: int = STREAM_TTL_SEC
    scenario_ttl_sec: int = SCENARIO_TTL_SEC


class TelemetryStore:
    """Тонка обгортка над ``redis.asyncio.Redis`` для потоків кадрів."""

    def __init__(self, redis: Redis | Any, cfg: StoreConfig | None = None) -> None:
        self._redis = redis
        self.cfg = cfg if cfg is not None else StoreConfig()

    def stream_key(self, session_id: str) -> str:
        return stream_key(session_id, self.cfg.namespace)

    def scenario_key(self, scenario_id: str) -> str:
        return scenario_key(scenario_id, self.cfg.namespace)

    async def append_frame(
        self, session_id: str, frame: Frame, scenario_id: str | None = None
    ) -> None:
        """Додає кадр у потік сесії та (якщо є сценарій) в індекс сценарію."""

        payload = dumps_frame(frame)
        scenario = scenario_id or frame.scenario_id
        targets = [(self.stream_key(session_id), self.cfg.stream_ttl_sec)]
        if scenario:
            targets.append((self.scenario_key(scenario), self.cfg.scenario_ttl_sec))
        for key, ttl in targets:
            await self._append(key, payload, ttl)

    async def append_frames(
        self, session_id: str, frames: Iterable[Frame], scenario_id: str | None = None
    ) -> int:
        count = 0
        for frame in frames:
            await self.append_frame(session_id, frame, scenario_id)
            count += 1
        return count

    async def read_stream(self, session_id: str) -> list[Frame]:
        return await self._read(self.stream_key(session_id))

    async def read_scenario(self, scenario_id: str) -> list[Frame]:
        return await self._read(self.scenario_key(scenario_id))

    async def _append(self, key: str, payload: str, ttl: int) -> None:
        try:
            await self._redis.rpush(key, payload)
            await self._redis.expire(key, ttl)
        except _REDIS_ERRORS as exc:
            logger.error("[Store] append у %s не вдався: %s", key, exc)
            raise StoreUnavailableError(f"append to {key} failed: {exc}") from exc

    async def _read(self, key: str) -> list[Frame]:
        try:
            raw_items = await self._redis.lrange(key, 0, -1)
        except _REDIS_ERRORS as exc:
            logger.error("[Store] читання %s не вдалося: %s", key, exc)
            raise StoreUnavailableError(f"range read of {key} failed: {exc}") from exc

        frames: list[Frame] = []
        skipped = 0
        for raw in raw_items or ():
            try:
                frames.append(loads_frame(raw))
            except FramePayloadError:
                skipped += 1
        if skipped:
            logger.warning("[Store] %s: пропущено %d битих кадрів", key, skipped)
        return frames
