"""FrameAssembler — зводить урожаї producer-ів в один кадр з provenance."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from viztel_core.metric import Metric
from viztel_core.viztel_types import ElementRecord, Frame, FrameSource

logger = logging.getLogger("viztel_channel.assembler")

DEFAULT_AUDIO_ENTITY = "__system__/audio"


class FrameAssembler:
    def __init__(
        self,
        *,
        duration_ms: int = 100,
        audio_entity_id: str = DEFAULT_AUDIO_ENTITY,
    ) -> None:
        self.duration_ms = int(duration_ms)
        self.audio_entity_id = audio_entity_id

    def assemble(
        self,
        geometry: Mapping[str, ElementRecord] | None,
        virtual: Mapping[str, Mapping[str, Metric]] | None,
        *,
        timestamp: int,
        duration_ms: int | None = None,
        scenario_id: str | None = None,
    ) -> Frame | None:
        """Будує кадр; порожній кадр (без даних) не випускається — None.

        Якщо сутність є в обох урожаях, її ``attrs`` доповнюються віртуальними
        ключами поруч із геометричними ``weight``/``rank``.
        """

        data: dict[str, ElementRecord] = {}
        sources: set[FrameSource] = set()

        for entity_id, record in (geometry or {}).items():
            if record.is_empty:
                continue
            data[entity_id] = ElementRecord(
                weight=record.weight,
                rank=record.rank,
                attrs={k: m for k, m in record.attrs.items() if not m.is_empty},
            )
        if data:
            sources.add(FrameSource.DOM)

        for entity_id, metrics in (virtual or {}).items():
            attrs = {k: m for k, m in metrics.items() if not m.is_empty}
            if not attrs:
                continue
            existing = data.get(entity_id)
            if existing is None:
                data[entity_id] = ElementRecord(attrs=attrs)
            else:
                data[entity_id] = ElementRecord(
                    weight=existing.weight,
                    rank=existing.rank,
                    attrs={**existing.attrs, **attrs},
                )
            sources.add(FrameSource.VIRTUAL)
            if entity_id == self.audio_entity_id:
                sources.add(FrameSource.AUDIO)

        if not data:
            return None
        return Frame(
            timestamp=int(timestamp),
            data=data,
            duration_ms=self.duration_ms if duration_ms is None else int(duration_ms),
            sources=frozenset(sources),
            scenario_id=scenario_id,
        )
