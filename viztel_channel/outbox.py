"""FrameOutbox — кільцевий буфер кадрів, поки транспорт ще не готовий.

Гарантія: at-least-the-most-recent ``capacity`` кадрів. При переповненні
витісняється найстаріший кадр; консюмери мають переживати пропуски.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable

from viztel_core.viztel_types import Frame

logger = logging.getLogger("viztel_channel.outbox")

FrameSink = Callable[[Frame], Awaitable[None]]

DEFAULT_OUTBOX_CAPACITY = 200


class FrameOutbox:
    def __init__(
        self,
        sink: FrameSink | None = None,
        *,
        capacity: int = DEFAULT_OUTBOX_CAPACITY,
    ) -> None:
        self._sink = sink
        self._queue: deque[Frame] = deque(maxlen=max(1, int(capacity)))
        self.dropped_total = 0
        self.sent_total = 0

    @property
    def capacity(self) -> int:
        return self._queue.maxlen or 0

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def is_attached(self) -> bool:
        return self._sink is not None

    def _enqueue(self, frame: Frame) -> None:
        if len(self._queue) == self._queue.maxlen:
            self.dropped_total += 1
        self._queue.append(frame)

    async def attach(self, sink: FrameSink) -> int:
        """Підключає транспорт і зливає накопичену чергу."""

        self._sink = sink
        return await self.flush()

    def detach(self) -> None:
        self._sink = None

    async def send(self, frame: Frame) -> bool:
        """Надсилає кадр або ставить у чергу. True — кадр пішов у транспорт."""

        self._enqueue(frame)
        await self.flush()
        return not self._queue

    async def flush(self) -> int:
        """Надсилає чергу у порядку надходження; зупиняється на першій помилці."""

        if self._sink is None:
            return 0
        sent = 0
        while self._queue:
            frame = self._queue[0]
            try:
                await self._sink(frame)
            except Exception:
                logger.warning(
                    "[Outbox] транспорт недоступний, у черзі %d кадрів",
                    len(self._queue),
                    exc_info=True,
                )
                break
            self._queue.popleft()
            sent += 1
        self.sent_total += sent
        return sent
