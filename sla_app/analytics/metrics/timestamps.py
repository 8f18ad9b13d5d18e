"""Timestamp normalization helpers shared by mappers and the calendar."""

from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytz


def normalize_timestamp(value) -> datetime | None:
    """Parse a timestamp-like value into an aware UTC ``datetime``.

    Returns None when the input is empty or cannot be parsed. Naive values are
    taken to already be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime) and not isinstance(value, pd.Timestamp):
        return ensure_utc(value)
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    try:
        if getattr(ts, "tzinfo", None) is None:
            ts = ts.tz_localize(pytz.UTC)
        return ts.tz_convert(pytz.UTC).to_pydatetime()
    except (TypeError, ValueError, AttributeError):
        return None


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=pytz.UTC)
    return value.astimezone(pytz.UTC)


def earliest(*values: datetime | None) -> datetime | None:
    present = [v for v in values if v is not None]
    return min(present) if present else None
