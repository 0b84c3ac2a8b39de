"""Вибір env-файлу для запуску viztel.

Один перемикач профілю: ``VIZTEL_ENV_FILE``. Береться з process-ENV, або з
dispatcher-файлу ``.env`` у корені (рядок ``VIZTEL_ENV_FILE=.env.local``),
інакше — сам ``.env``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import dotenv_values

ENV_FILE_VAR = "VIZTEL_ENV_FILE"


@dataclass(frozen=True, slots=True)
class EnvFileSelection:
    """Вибраний env-файл і звідки взялось рішення.

    source: ``process_env`` | ``dispatcher_env`` | ``fallback``.
    """

    path: Path
    source: str
    exists: bool
    ref: str | None = None


def _resolve(project_root: Path, ref: str) -> Path:
    candidate = Path(ref).expanduser()
    if not candidate.is_absolute():
        candidate = project_root / candidate
    return candidate


def select_env_file_with_trace(project_root: Path) -> EnvFileSelection:
    override = os.getenv(ENV_FILE_VAR)
    if override:
        path = _resolve(project_root, override)
        return EnvFileSelection(path, "process_env", path.exists(), override)

    dispatcher = project_root / ".env"
    if dispatcher.exists():
        ref = dotenv_values(dispatcher).get(ENV_FILE_VAR)
        if ref:
            path = _resolve(project_root, ref)
            return EnvFileSelection(path, "dispatcher_env", path.exists(), ref)

    return EnvFileSelection(dispatcher, "fallback", dispatcher.exists())


def select_env_file(project_root: Path) -> Path:
    return select_env_file_with_trace(project_root).path
