"""Wall-clock lifecycle durations per ticket and batch averages (pure functions)."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

import pandas as pd
import pytz

from sla_app.core.models import Ticket

from .timestamps import ensure_utc

TIMESTAMP_COLUMNS = ("created_at", "resolved_at", "assigned_at", "owner_comment_at")
DURATION_COLUMNS = (
    "open_duration_minutes",
    "time_to_resolution_minutes",
    "time_to_first_owner_comment_minutes",
)


def _minutes(delta: pd.Series) -> pd.Series:
    return delta.dt.total_seconds() / 60.0


def lifecycle_frame(tickets: Iterable[Ticket], now: datetime | None = None) -> pd.DataFrame:
    """One row per ticket with open, resolution and first-owner-comment durations.

    Open tickets are measured up to ``now``; durations whose endpoints are
    missing are NaN.
    """
    rows = [{"key": t.key, **{col: getattr(t, col) for col in TIMESTAMP_COLUMNS}} for t in tickets]
    if not rows:
        return pd.DataFrame(columns=["key", *TIMESTAMP_COLUMNS, *DURATION_COLUMNS])
    out = pd.DataFrame(rows)
    for col in TIMESTAMP_COLUMNS:
        out[col] = pd.to_datetime(out[col], utc=True, errors="coerce")
    now_ts = pd.Timestamp(ensure_utc(now) if now is not None else datetime.now(pytz.UTC))
    out["open_duration_minutes"] = _minutes(out["resolved_at"].fillna(now_ts) - out["created_at"])
    out["time_to_resolution_minutes"] = _minutes(out["resolved_at"] - out["created_at"])
    out["time_to_first_owner_comment_minutes"] = _minutes(out["owner_comment_at"] - out["assigned_at"])
    return out


def _mean(values: pd.Series) -> float | None:
    present = values.dropna()
    if present.empty:
        return None
    return round(float(present.mean()), 2)


def summarize_lifecycle(tickets: Iterable[Ticket], now: datetime | None = None) -> dict:
    df = lifecycle_frame(tickets, now)
    return {
        "count": len(df),
        "avg_open_duration_minutes": _mean(df["open_duration_minutes"]),
        "avg_time_to_resolution_minutes": _mean(df["time_to_resolution_minutes"]),
        "avg_time_to_first_owner_comment_minutes": _mean(df["time_to_first_owner_comment_minutes"]),
    }
