"""Конфігурація застосунку viztel (Redis, namespace, пороги аналізу).

Шлях: ``app/settings.py``

``.env``-профіль обирається через ``app.env.select_env_file`` і підвантажується
python-dotenv до створення ``Settings``. Пороги аналізу задаються змінними
``VIZTEL_*`` та збираються у ``VizTelCoreConfig`` методом ``core_config()``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.env import select_env_file
from config.config import (
    FLUSH_INTERVAL_MS,
    OUTBOX_CAPACITY,
    PROM_HTTP_PORT,
    SCENARIO_TTL_SEC,
    STALE_SIGNAL_MS,
    STREAM_TTL_SEC,
    VIZTEL_MODE,
    namespace_for_mode,
    normalize_run_mode,
)
from viztel_core.config import (
    DEFAULT_AUDIO_KEYWORDS,
    DEFAULT_INPUT_ENTITY_IDS,
    VizTelCoreConfig,
)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_DEFAULT_CONTRACTS = _PROJECT_ROOT / "config" / "contracts.yaml"
logger = logging.getLogger("app.settings")
if not logger.handlers:
    logger.addHandler(logging.NullHandler())

_ENV_FILE = select_env_file(_PROJECT_ROOT)
load_dotenv(_ENV_FILE)


def _split_csv(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",  # ігноруємо невідомі змінні замість ValidationError
    )

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    log_level: str = "INFO"

    viztel_mode: str = VIZTEL_MODE
    viztel_namespace: str | None = None
    viztel_contracts_path: str | None = None

    # Інфраструктура: читається тут, а не з констант config.config, бо ті
    # фіксуються під час імпорту, можливо ще до load_dotenv.
    viztel_stream_ttl_sec: int = STREAM_TTL_SEC
    viztel_scenario_ttl_sec: int = SCENARIO_TTL_SEC
    viztel_flush_interval_ms: int = FLUSH_INTERVAL_MS
    viztel_outbox_capacity: int = OUTBOX_CAPACITY
    viztel_stale_signal_ms: int = STALE_SIGNAL_MS
    viztel_prom_http_port: int | None = PROM_HTTP_PORT

    # Списки — рядки через кому: "__cursor__,__input__"
    viztel_input_entity_ids: str = ",".join(DEFAULT_INPUT_ENTITY_IDS)
    viztel_output_entity_ids: str | None = None
    viztel_correlation_threshold: float = 0.3
    viztel_input_variance_threshold: float = 0.01
    viztel_output_variance_threshold: float = 0.001
    viztel_min_interval_ms: int = 50
    viztel_min_frames_per_interval: int = 3
    viztel_audio_silence_threshold: float = 0.05
    viztel_audio_lag_threshold_ms: int = 200
    viztel_audio_search_window_ms: int = 300
    viztel_audio_keywords: str = ",".join(DEFAULT_AUDIO_KEYWORDS)

    @field_validator(
        "viztel_namespace",
        "viztel_output_entity_ids",
        "viztel_contracts_path",
        "viztel_prom_http_port",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v):  # type: ignore[no-untyped-def]
        if v is None:
            return None
        value = str(v).strip()
        return value or None

    @field_validator(
        "viztel_stream_ttl_sec",
        "viztel_scenario_ttl_sec",
        "viztel_flush_interval_ms",
        "viztel_outbox_capacity",
        "viztel_stale_signal_ms",
    )
    @classmethod
    def _positive(cls, v: int, info: ValidationInfo) -> int:
        if v > 0:
            return v
        return cls.model_fields[info.field_name].default

    @field_validator("viztel_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, v):  # type: ignore[no-untyped-def]
        return normalize_run_mode(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v):  # type: ignore[no-untyped-def]
        value = str(v or "").strip().upper()
        return value if value in logging.getLevelNamesMapping() else "INFO"

    @property
    def namespace(self) -> str:
        return self.viztel_namespace or namespace_for_mode(self.viztel_mode)

    @property
    def contracts_path(self) -> Path | None:
        if self.viztel_contracts_path:
            path = Path(self.viztel_contracts_path).expanduser()
            return path if path.is_absolute() else _PROJECT_ROOT / path
        return _DEFAULT_CONTRACTS if _DEFAULT_CONTRACTS.exists() else None

    def core_config(self) -> VizTelCoreConfig:
        """Пороги з ENV → ``VizTelCoreConfig`` (небезпечні значення нормалізує він)."""

        return VizTelCoreConfig(
            input_entity_ids=_split_csv(self.viztel_input_entity_ids)
            or DEFAULT_INPUT_ENTITY_IDS,
            output_entity_ids=_split_csv(self.viztel_output_entity_ids) or None,
            correlation_threshold=self.viztel_correlation_threshold,
            input_variance_threshold=self.viztel_input_variance_threshold,
            output_variance_threshold=self.viztel_output_variance_threshold,
            min_interval_ms=self.viztel_min_interval_ms,
            min_frames_per_interval=self.viztel_min_frames_per_interval,
            audio_silence_threshold=self.viztel_audio_silence_threshold,
            audio_lag_threshold_ms=self.viztel_audio_lag_threshold_ms,
            audio_search_window_ms=self.viztel_audio_search_window_ms,
            audio_keywords=_split_csv(self.viztel_audio_keywords)
            or DEFAULT_AUDIO_KEYWORDS,
        )


settings = Settings()
