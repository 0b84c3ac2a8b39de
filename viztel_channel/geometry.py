"""Геометричний producer: візуальна вага, ранг уваги та watched-атрибути.

Вага = площа * позиційне загасання * прозорість * z-корекція. Ранг — позиція
сутності у знімку, відсортованому за спаданням ваги (rank 1 — найпомітніша).
Семплювання (~60 Гц) і harvest (10 Гц) незалежні: між двома harvest у буферах
накопичуються K-лінії.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from viztel_core.metric import Metric
from viztel_core.viztel_types import ElementRecord

WATCHABLE_ATTRS: frozenset[str] = frozenset(
    {"opacity", "z-index", "x", "y", "width", "height"}
)


@dataclass(frozen=True, slots=True)
class ElementPhysicalState:
    width: float
    height: float
    x: float
    y: float
    opacity: float
    z_index: int
    viewport_w: float
    viewport_h: float

    def attr(self, name: str) -> float:
        return {
            "opacity": self.opacity,
            "z-index": float(self.z_index),
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }.get(name, 0.0)


def compute_visual_weight(state: ElementPhysicalState) -> int:
    """Абсолютна візуальна вага одного елемента.

    Невидимі елементи (нульова площа чи прозорість) мають вагу 0. Центр
    в'юпорту дає позиційний коефіцієнт 1.0, край — не нижче 0.5. z-index
    коригує вагу не більш ніж на ±10% (розрізняє повністю перекриті елементи).
    """

    if state.width <= 0 or state.height <= 0 or state.opacity <= 0:
        return 0
    area = state.width * state.height

    half_w = state.viewport_w / 2 if state.viewport_w > 0 else 1.0
    half_h = state.viewport_h / 2 if state.viewport_h > 0 else 1.0
    norm_x = (state.x + state.width / 2 - half_w) / half_w
    norm_y = (state.y + state.height / 2 - half_h) / half_h
    position_factor = max(0.5, 1 - (norm_x * norm_x + norm_y * norm_y) * 0.4)

    z_factor = 1 + max(-0.1, min(0.1, state.z_index * 0.001))
    return math.floor(area * position_factor * state.opacity * z_factor)


@dataclass(slots=True)
class _ElementContext:
    watched: tuple[str, ...]
    weight: Metric = field(default_factory=Metric)
    rank: Metric = field(default_factory=Metric)
    attrs: dict[str, Metric] = field(default_factory=dict)


class GeometrySampler:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._registry: dict[str, _ElementContext] = {}

    def register(self, entity_id: str, watch: Iterable[str] = ()) -> None:
        """Реєструє сутність; повторна реєстрація ігнорується."""

        watched = tuple(a for a in watch if a in WATCHABLE_ATTRS)
        with self._lock:
            self._registry.setdefault(entity_id, _ElementContext(watched=watched))

    def unregister(self, entity_id: str) -> None:
        with self._lock:
            self._registry.pop(entity_id, None)

    @property
    def entity_ids(self) -> list[str]:
        with self._lock:
            return list(self._registry)

    def sample(self, states: Mapping[str, ElementPhysicalState]) -> dict[str, int]:
        """Один знімок фізики всіх зареєстрованих сутностей.

        Повертає мапу ``entity_id → rank`` цього знімка. Сутності без стану у
        ``states`` у ранжуванні не беруть участі.
        """

        with self._lock:
            snapshot: list[tuple[str, int]] = []
            for entity_id, ctx in self._registry.items():
                state = states.get(entity_id)
                if state is None:
                    continue
                snapshot.append((entity_id, compute_visual_weight(state)))
                for attr in ctx.watched:
                    ctx.attrs.setdefault(attr, Metric()).update(state.attr(attr))

            # стабільне сортування: при рівній вазі зберігається порядок реєстрації
            snapshot.sort(key=lambda item: item[1], reverse=True)
            ranks: dict[str, int] = {}
            for index, (entity_id, weight) in enumerate(snapshot, start=1):
                ctx = self._registry[entity_id]
                ctx.weight.update(weight)
                ctx.rank.update(index)
                ranks[entity_id] = index
        return ranks

    def harvest(self) -> dict[str, ElementRecord]:
        result: dict[str, ElementRecord] = {}
        with self._lock:
            for entity_id, ctx in self._registry.items():
                if ctx.weight.is_empty:
                    continue
                result[entity_id] = ElementRecord(
                    weight=ctx.weight,
                    rank=ctx.rank,
                    attrs={k: m for k, m in ctx.attrs.items() if not m.is_empty},
                )
                ctx.weight = Metric()
                ctx.rank = Metric()
                ctx.attrs = {}
        return result
