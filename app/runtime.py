"""TelemetryRuntime — періодичний збір кадрів (10 Гц) та композиція з Settings.

``bootstrap`` — єдина точка, де namespace, TTL, частота, outbox і рівень логів
беруться з ``Settings`` (з урахуванням ``.env``), а не з констант імпорту.

Один цикл: audio flush → урожай геометрії → урожай каналу → збирання кадру →
outbox. Цикли не перекриваються: якщо цикл довший за інтервал, пропущені тіки
не наздоганяються, а рахуються у ``viztel_ticks_skipped_total``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from prometheus_client import Counter, Gauge, start_http_server
from redis.asyncio import Redis
from rich.console import Console
from rich.logging import RichHandler

from app.settings import Settings, settings
from config.config import FLUSH_INTERVAL_MS, OUTBOX_CAPACITY, STALE_SIGNAL_MS
from core.serialization import utc_now_ms
from data.telemetry_store import StoreConfig, TelemetryStore
from viztel_channel import (
    AudioEnergySampler,
    FrameAssembler,
    FrameOutbox,
    FrameSink,
    GeometrySampler,
    SignalChannel,
)
from viztel_core.viztel_types import Frame

logger = logging.getLogger("app.runtime")
if not logger.handlers:
    logger.setLevel(settings.log_level)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=True))
    logger.propagate = False

VIZTEL_FRAMES_EMITTED_TOTAL = Counter(
    "viztel_frames_emitted_total",
    "Total number of frames assembled by the telemetry runtime.",
)
VIZTEL_FRAMES_DROPPED_TOTAL = Counter(
    "viztel_frames_dropped_total",
    "Total number of frames evicted from the outbox ring buffer.",
)
VIZTEL_TICKS_SKIPPED_TOTAL = Counter(
    "viztel_ticks_skipped_total",
    "Total number of ticks skipped because the previous cycle overran.",
)
VIZTEL_OUTBOX_PENDING = Gauge(
    "viztel_outbox_pending",
    "Frames queued in the outbox waiting for the transport.",
)

_PRUNE_EVERY_TICKS = 10

# Батьківські логери пакетів + ті, що мають власний рівень (RichHandler).
_VIZTEL_LOGGERS = (
    "app",
    "app.runtime",
    "data",
    "data.telemetry_store",
    "viztel_core",
    "viztel_channel",
    "viztel_markers",
    "viztel_audio",
    "viztel_topology",
)


def apply_log_level(level: str | int) -> None:
    """Застосовує ``LOG_LEVEL`` до всіх логерів viztel."""

    for name in _VIZTEL_LOGGERS:
        logging.getLogger(name).setLevel(level)


def create_redis_client(
    cfg: Settings | None = None, *, decode_responses: bool = False
) -> tuple[Redis, str]:
    """Створює Redis-клієнт на базі pydantic Settings."""

    cfg = cfg if cfg is not None else settings
    kwargs: dict[str, Any] = {
        "host": cfg.redis_host,
        "port": cfg.redis_port,
        "db": cfg.redis_db,
    }
    if decode_responses:
        kwargs["decode_responses"] = True
    client = Redis(**kwargs)
    return client, f"{cfg.redis_host}:{cfg.redis_port}/{cfg.redis_db}"


def store_sink(
    store: TelemetryStore, session_id: str, scenario_id: str | None = None
) -> FrameSink:
    """Транспорт outbox → TelemetryStore для однієї сесії."""

    async def _sink(frame: Frame) -> None:
        await store.append_frame(session_id, frame, scenario_id)

    return _sink


def store_config(cfg: Settings | None = None) -> StoreConfig:
    """Namespace і TTL сховища з ``Settings`` (а не з констант імпорту)."""

    cfg = cfg if cfg is not None else settings
    return StoreConfig(
        namespace=cfg.namespace,
        stream_ttl_sec=cfg.viztel_stream_ttl_sec,
        scenario_ttl_sec=cfg.viztel_scenario_ttl_sec,
    )


def create_store(
    cfg: Settings | None = None, *, redis: Redis | Any | None = None
) -> TelemetryStore:
    """TelemetryStore для поточного профілю; ``redis`` — готовий клієнт (тести)."""

    cfg = cfg if cfg is not None else settings
    if redis is None:
        redis, label = create_redis_client(cfg)
        logger.info("[Store] Redis %s, namespace=%s", label, cfg.namespace)
    return TelemetryStore(redis, store_config(cfg))


def start_metrics_exporter(cfg: Settings | None = None) -> int | None:
    """Піднімає HTTP-експорт prometheus на ``VIZTEL_PROM_HTTP_PORT``.

    Порожній порт вимикає експорт; повертає порт або None.
    """

    cfg = cfg if cfg is not None else settings
    port = cfg.viztel_prom_http_port
    if port is None:
        return None
    start_http_server(port)
    logger.info("[Runtime] prometheus метрики на :%d", port)
    return port


class TelemetryRuntime:
    def __init__(
        self,
        channel: SignalChannel | None = None,
        *,
        assembler: FrameAssembler | None = None,
        outbox: FrameOutbox | None = None,
        geometry: GeometrySampler | None = None,
        audio: AudioEnergySampler | None = None,
        interval_ms: int = FLUSH_INTERVAL_MS,
        stale_ms: int = STALE_SIGNAL_MS,
        scenario_id: str | None = None,
        clock: Callable[[], int] = utc_now_ms,
    ) -> None:
        self.channel = channel if channel is not None else SignalChannel()
        self.interval_ms = max(1, int(interval_ms))
        self.assembler = (
            assembler
            if assembler is not None
            else FrameAssembler(duration_ms=self.interval_ms)
        )
        self.outbox = (
            outbox if outbox is not None else FrameOutbox(capacity=OUTBOX_CAPACITY)
        )
        self.geometry = geometry
        self.audio = audio
        self.stale_ms = stale_ms
        self.scenario_id = scenario_id
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._last_tick_ms: int | None = None
        self._ticks = 0
        self._dropped_seen = 0
        self.skipped_ticks = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self, *, duration_ms: int | None = None) -> Frame | None:
        """Один цикл harvest → assemble → emit. Порожній урожай кадру не дає."""

        now = self._clock()
        if self.audio is not None:
            self.audio.flush()
        geometry = self.geometry.harvest() if self.geometry is not None else None
        virtual = self.channel.harvest()
        frame = self.assembler.assemble(
            geometry,
            virtual,
            timestamp=now,
            duration_ms=duration_ms,
            scenario_id=self.scenario_id,
        )
        self._last_tick_ms = now
        self._ticks += 1
        if self._ticks % _PRUNE_EVERY_TICKS == 0:
            self.channel.prune_stale(self.stale_ms)
        if frame is None:
            return None

        VIZTEL_FRAMES_EMITTED_TOTAL.inc()
        await self.outbox.send(frame)
        self._observe_outbox()
        return frame

    async def flush_final(self) -> Frame | None:
        """Фінальний короткий кадр з того, що накопичилось після останнього тіку."""

        duration = None
        if self._last_tick_ms is not None:
            duration = max(0, self._clock() - self._last_tick_ms)
        return await self.tick(duration_ms=duration)

    async def run(self) -> None:
        """Тікер з фіксованим кроком; скасування → фінальний flush і вихід."""

        loop = asyncio.get_running_loop()
        interval = self.interval_ms / 1000.0
        deadline = loop.time() + interval
        logger.info("[Runtime] тікер запущено: крок %d мс", self.interval_ms)
        try:
            while True:
                await asyncio.sleep(max(0.0, deadline - loop.time()))
                try:
                    await self.tick()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    # один зламаний цикл не зупиняє тікер
                    logger.warning("[Runtime] цикл збору впав", exc_info=True)
                deadline += interval
                now = loop.time()
                if now > deadline:
                    missed = int((now - deadline) // interval) + 1
                    self.skipped_ticks += missed
                    VIZTEL_TICKS_SKIPPED_TOTAL.inc(missed)
                    deadline += missed * interval
        except asyncio.CancelledError:
            await self.flush_final()
            logger.info("[Runtime] тікер зупинено, фінальний кадр відправлено")
            raise

    def start(self) -> asyncio.Task[None]:
        task = self._task
        if task is None or task.done():
            task = asyncio.create_task(self.run(), name="viztel-runtime")
            self._task = task
        return task

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._task = None

    def _observe_outbox(self) -> None:
        VIZTEL_OUTBOX_PENDING.set(self.outbox.pending)
        dropped = self.outbox.dropped_total - self._dropped_seen
        if dropped > 0:
            VIZTEL_FRAMES_DROPPED_TOTAL.inc(dropped)
            self._dropped_seen = self.outbox.dropped_total


def runtime_from_settings(
    cfg: Settings | None = None,
    *,
    sink: FrameSink | None = None,
    channel: SignalChannel | None = None,
    geometry: GeometrySampler | None = None,
    audio: AudioEnergySampler | None = None,
    scenario_id: str | None = None,
) -> TelemetryRuntime:
    """Runtime з частотою, ємністю outbox і stale-таймаутом з ``Settings``."""

    cfg = cfg if cfg is not None else settings
    return TelemetryRuntime(
        channel,
        outbox=FrameOutbox(sink, capacity=cfg.viztel_outbox_capacity),
        geometry=geometry,
        audio=audio,
        interval_ms=cfg.viztel_flush_interval_ms,
        stale_ms=cfg.viztel_stale_signal_ms,
        scenario_id=scenario_id,
    )


def bootstrap(
    session_id: str,
    *,
    cfg: Settings | None = None,
    redis: Redis | Any | None = None,
    channel: SignalChannel | None = None,
    geometry: GeometrySampler | None = None,
    audio: AudioEnergySampler | None = None,
    scenario_id: str | None = None,
    expose_metrics: bool = True,
) -> tuple[TelemetryRuntime, TelemetryStore]:
    """Точка композиції: рівень логів, сховище, runtime → store, метрики."""

    cfg = cfg if cfg is not None else settings
    apply_log_level(cfg.log_level)
    store = create_store(cfg, redis=redis)
    runtime = runtime_from_settings(
        cfg,
        sink=store_sink(store, session_id, scenario_id),
        channel=channel,
        geometry=geometry,
        audio=audio,
        scenario_id=scenario_id,
    )
    if expose_metrics:
        start_metrics_exporter(cfg)
    logger.info(
        "[Runtime] сесія %s готова (сценарій=%s)", session_id, scenario_id or "-"
    )
    return runtime, store


_default_runtime: TelemetryRuntime | None = None


def get_default_runtime() -> TelemetryRuntime:
    """Процесний runtime за замовчуванням; бібліотечний код отримує його явно."""

    global _default_runtime
    if _default_runtime is None:
        _default_runtime = runtime_from_settings()
    return _default_runtime


def reset_default_runtime() -> None:
    global _default_runtime
    _default_runtime = None


__all__ = (
    "TelemetryRuntime",
    "apply_log_level",
    "bootstrap",
    "create_redis_client",
    "create_store",
    "get_default_runtime",
    "reset_default_runtime",
    "runtime_from_settings",
    "start_metrics_exporter",
    "store_config",
    "store_sink",
)
