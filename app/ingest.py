"""Межа інжесту: один кадр (JSON або dict) → TelemetryStore."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from data.telemetry_store import TelemetryStore
from viztel_core.serializers import frame_from_payload, loads_frame
from viztel_core.viztel_types import Frame

logger = logging.getLogger("app.ingest")


def parse_frame(payload: str | bytes | bytearray | Mapping[str, Any]) -> Frame:
    """Raises FramePayloadError, якщо немає ``ts``/``data``."""

    if isinstance(payload, (str, bytes, bytearray)):
        return loads_frame(payload)
    return frame_from_payload(payload)


async def ingest_frame(
    store: TelemetryStore,
    payload: str | bytes | bytearray | Mapping[str, Any],
    session_id: str,
    scenario_id: str | None = None,
) -> Frame:
    """Парсить кадр і дописує його у потік сесії та індекс сценарію.

    Сценарій береться з аргументу, інакше з поля ``sid`` кадру.
    """

    frame = parse_frame(payload)
    await store.append_frame(session_id, frame, scenario_id or frame.scenario_id)
    logger.debug(
        "[VizTel] кадр ts=%d сесія=%s сутностей=%d",
        frame.timestamp,
        session_id,
        len(frame.data),
    )
    return frame
