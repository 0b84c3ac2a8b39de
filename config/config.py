"""Центральне джерело інфраструктурних констант viztel.

Тут лише те, що визначає оточення: режим запуску, namespace Redis, шаблони
ключів, TTL та частоти. Пороги аналізу живуть у ``VizTelCoreConfig``.
"""

from __future__ import annotations

import os

__all__ = [
    "VIZTEL_MODE",
    "NAMESPACE",
    "REDIS_KEY_TELEMETRY_STREAM",
    "REDIS_KEY_TELEMETRY_SCENARIO",
    "STREAM_TTL_SEC",
    "SCENARIO_TTL_SEC",
    "FLUSH_INTERVAL_MS",
    "OUTBOX_CAPACITY",
    "STALE_SIGNAL_MS",
    "PROM_HTTP_PORT",
    "namespace_for_mode",
    "normalize_run_mode",
    "stream_key",
    "scenario_key",
]


def normalize_run_mode(raw: str | None, default: str = "local") -> str:
    """``prod`` або ``local``; невідоме значення → default."""

    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in {"local", "dev"}:
        return "local"
    if value in {"prod", "production"}:
        return "prod"
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return value if value > 0 else default


VIZTEL_MODE: str = normalize_run_mode(os.getenv("VIZTEL_MODE"))


def namespace_for_mode(mode: str) -> str:
    return "viztel_local" if mode == "local" else "viztel"


def _env_namespace(default: str) -> str:
    # локальні запуски не повинні писати у прод-ключі
    raw = os.getenv("VIZTEL_NAMESPACE")
    if raw is None:
        return default
    value = str(raw).strip()
    return value or default


NAMESPACE: str = _env_namespace(namespace_for_mode(VIZTEL_MODE))

# ── Redis: ключі та TTL ───────────────────────────────────────────────────
REDIS_KEY_TELEMETRY_STREAM = "{ns}:telemetry:stream:{session}"
REDIS_KEY_TELEMETRY_SCENARIO = "{ns}:telemetry:scenario:{scenario}"
STREAM_TTL_SEC: int = _env_int("VIZTEL_STREAM_TTL_SEC", 2 * 60 * 60)
# індекс сценарію живе довше за сирий потік: діагностика на вимогу
SCENARIO_TTL_SEC: int = _env_int("VIZTEL_SCENARIO_TTL_SEC", 24 * 60 * 60)

# ── Producer ──────────────────────────────────────────────────────────────
FLUSH_INTERVAL_MS: int = _env_int("VIZTEL_FLUSH_INTERVAL_MS", 100)
OUTBOX_CAPACITY: int = _env_int("VIZTEL_OUTBOX_CAPACITY", 200)
STALE_SIGNAL_MS: int = _env_int("VIZTEL_STALE_SIGNAL_MS", 30_000)

PROM_HTTP_PORT: int = _env_int("VIZTEL_PROM_HTTP_PORT", 9108)


def stream_key(session_id: str, namespace: str | None = None) -> str:
    return REDIS_KEY_TELEMETRY_STREAM.format(
        ns=namespace or NAMESPACE, session=session_id
    )


def scenario_key(scenario_id: str, namespace: str | None = None) -> str:
    return REDIS_KEY_TELEMETRY_SCENARIO.format(
        ns=namespace or NAMESPACE, scenario=scenario_id
    )
