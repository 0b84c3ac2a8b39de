"""Винятки viztel, які піднімаються на межах системи (store/ingest/diagnose)."""

from __future__ import annotations


class VizTelError(Exception):
    """Базовий виняток viztel."""


class ScenarioNotFoundError(VizTelError):
    """Для сценарію немає жодного кадру — звіт побудувати неможливо."""

    def __init__(self, scenario_id: str) -> None:
        super().__init__(f"no telemetry data found for scenario: {scenario_id}")
        self.scenario_id = scenario_id


class StoreUnavailableError(VizTelError):
    """Сховище кадрів недоступне під час append або читання діапазону."""


class FramePayloadError(VizTelError, ValueError):
    """Payload кадру не містить обов'язкових полів або має невірну форму."""
