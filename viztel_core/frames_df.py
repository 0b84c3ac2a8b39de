"""Long-format pandas DataFrame для пакета кадрів (офлайн QA, CSV-експорт).

Один рядок — одна метрика однієї сутності в одному кадрі:
``ts, entity, metric, open, high, low, close, count, activity``.
"""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from viztel_core.viztel_types import Frame

FRAME_COLUMNS: tuple[str, ...] = (
    "ts",
    "entity",
    "metric",
    "open",
    "high",
    "low",
    "close",
    "count",
    "activity",
)


def frames_to_df(frames: Iterable[Frame]) -> pd.DataFrame:
    rows: list[dict[str, object]] = []
    for frame in frames:
        for entity_id, record in frame.data.items():
            named = []
            if record.weight is not None:
                named.append(("weight", record.weight))
            if record.rank is not None:
                named.append(("rank", record.rank))
            named.extend(record.attrs.items())
            for name, metric in named:
                if metric.is_empty:
                    continue
                rows.append(
                    {
                        "ts": frame.timestamp,
                        "entity": entity_id,
                        "metric": name,
                        "open": metric.open,
                        "high": metric.high,
                        "low": metric.low,
                        "close": metric.close,
                        "count": metric.sample_count,
                        "activity": metric.activity(),
                    }
                )
    df = pd.DataFrame(rows, columns=list(FRAME_COLUMNS))
    if df.empty:
        return df
    return df.sort_values(["ts", "entity", "metric"], kind="stable").reset_index(
        drop=True
    )


def entity_activity(df: pd.DataFrame) -> pd.DataFrame:
    """Сумарна активність кожної сутності за весь пакет, за спаданням."""

    if df.empty:
        return pd.DataFrame(columns=["entity", "frames", "activity"])
    grouped = df.groupby("entity").agg(
        frames=("ts", "nunique"), activity=("activity", "sum")
    )
    return (
        grouped.sort_values("activity", ascending=False, kind="stable")
        .reset_index()
        .loc[:, ["entity", "frames", "activity"]]
    )
