"""Tabular (DataFrame) views of an aggregate summary and outcome list."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from sla_app.analytics.metrics.business_hours import format_business_time
from sla_app.core.config import DAY_NAMES, OUTCOME_COLUMNS, SETTINGS
from sla_app.core.models import Pathway, SLAOutcome

from .compliance import COMBINED, AggregateSummary, Tally


def outcomes_to_dataframe(outcomes: Iterable[SLAOutcome]) -> pd.DataFrame:
    rows = [o.to_dict() for o in outcomes]
    if not rows:
        return pd.DataFrame(columns=list(OUTCOME_COLUMNS))
    df = pd.DataFrame(rows)
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True, errors="coerce")
    return df


def _tally_rows(label: str, tallies: dict[str, Tally]) -> list[dict]:
    rows = []
    for name, tally in tallies.items():
        rows.append(
            {
                label: name,
                "met": tally.met,
                "breached": tally.breached,
                "pending": tally.pending,
                "total": tally.total,
                "compliance_rate": tally.compliance_rate,
                "avg_response_minutes": tally.avg_response_minutes,
            }
        )
    return rows


def _to_display(df: pd.DataFrame, label: str) -> pd.DataFrame:
    display = df.copy()
    display["avg_response"] = display["avg_response_minutes"].apply(
        lambda v: format_business_time(None if pd.isna(v) else v)
    )
    display = display.rename(
        columns={
            label: label.title(),
            "met": "SLA met",
            "breached": "SLA breached",
            "pending": "Pending",
            "total": "Tickets",
            "compliance_rate": "Compliance %",
            "avg_response": "Avg response",
        }
    )
    for col in ("SLA met", "SLA breached", "Pending", "Tickets"):
        display[col] = display[col].astype("Int64")
    return display.drop(columns=["avg_response_minutes"]).head(SETTINGS.max_table_rows)


def actor_table(summary: AggregateSummary, view: Pathway | str = COMBINED) -> pd.DataFrame:
    """Per-actor compliance, best compliance first (ties by volume)."""
    rows = _tally_rows("actor", summary.actors(view))
    if not rows:
        return pd.DataFrame()
    df = pd.DataFrame(rows).sort_values(
        by=["compliance_rate", "total", "actor"], ascending=[False, False, True]
    )
    return _to_display(df.reset_index(drop=True), "actor")


def breakdown_table(summary: AggregateSummary, by: str = "day") -> pd.DataFrame:
    """On-call compliance by creation ``day`` of week or ``hour`` of day."""
    if by == "day":
        tallies = {day: summary.by_day[day] for day in DAY_NAMES if day in summary.by_day}
    elif by == "hour":
        tallies = {hour: summary.by_hour[hour] for hour in sorted(summary.by_hour)}
    else:
        raise ValueError(f"Unknown breakdown: {by!r}")
    rows = _tally_rows(by, tallies)
    if not rows:
        return pd.DataFrame()
    return _to_display(pd.DataFrame(rows), by)


def histogram_table(summary: AggregateSummary) -> pd.DataFrame:
    hist = summary.to_dict()["response_time_distribution"]
    total = sum(hist.values())
    df = pd.DataFrame({"bucket": list(hist.keys()), "count": list(hist.values())})
    df["share_pct"] = (df["count"] / total * 100).round(1) if total else 0.0
    return df
