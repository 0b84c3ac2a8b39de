"""Спільні хелпери: мілісекундний час, безпечні приведення та JSON.

Усі шари (producer → store → diagnosis) пишуть і читають кадри через ці
функції, тому формат JSON тут один: компактний, з відсортованими ключами,
без ASCII-escape для назв маркерів.

Правила:
- NaN/inf у телеметрію не потрапляють (``safe_float(..., finite=True)``);
- numpy-скаляри з аналітики серіалізуються як звичайні числа;
- ``str(obj)`` лише як останній варіант.
"""

from __future__ import annotations

import json
import math
import time
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np

# ── Час ───────────────────────────────────────────────────────────────────


def utc_now_ms() -> int:
    """Wall-clock UTC у мс: timestamp кадру."""

    return time.time_ns() // 1_000_000


def monotonic_ms() -> float:
    """Монотонний годинник у мс (для TTL буферів, не для timestamp кадрів)."""

    return time.monotonic_ns() / 1_000_000


def utc_ms_to_iso_z(ts_ms: int) -> str:
    """``1700000000000`` → ``"2023-11-14T22:13:20Z"`` (для логів і звітів)."""

    stamp = datetime.fromtimestamp(ts_ms / 1000.0, tz=UTC)
    return stamp.isoformat().replace("+00:00", "Z")


# ── Приведення ────────────────────────────────────────────────────────────


def safe_int(value: Any) -> int | None:
    """int або None; ``bool`` числом не вважаємо, inf/NaN відкидаємо."""

    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def safe_float(value: Any, *, finite: bool = False) -> float | None:
    """float або None. ``finite=True`` додатково відсікає NaN/inf."""

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if finite and not math.isfinite(number):
        return None
    return number


# ── JSON ──────────────────────────────────────────────────────────────────


def to_jsonable(obj: Any) -> Any:
    """``default=`` для ``json.dumps``: зводить об'єкт до JSON-типів."""

    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Enum):
        return obj.value if isinstance(obj.value, (str, int)) else obj.name
    if isinstance(obj, datetime):
        return utc_ms_to_iso_z(int(obj.timestamp() * 1000))
    if isinstance(obj, Path):
        return obj.as_posix()
    if isinstance(obj, Mapping):
        return dict(obj)
    if is_dataclass(obj) and not isinstance(obj, type):
        # неглибоко: вкладені значення json.dumps передасть сюди ж
        return {f.name: getattr(obj, f.name) for f in fields(obj)}
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    return str(obj)


def json_dumps(obj: Any, *, pretty: bool = False) -> str:
    """JSON-рядок для Redis/файлів; ``pretty=True`` лише для звітів на диск."""

    options: dict[str, Any] = {
        "ensure_ascii": False,
        "sort_keys": True,
        "default": to_jsonable,
    }
    if pretty:
        options["indent"] = 2
    else:
        options["separators"] = (",", ":")
    return json.dumps(obj, **options)


def json_loads(data: str | bytes | bytearray) -> Any:
    """Розбирає JSON; bytes (Redis без ``decode_responses``) декодує як UTF-8."""

    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8", errors="replace")
    return json.loads(data)
