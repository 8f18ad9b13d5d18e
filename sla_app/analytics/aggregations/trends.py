"""Period-over-period comparison of aggregate summaries."""

from __future__ import annotations

from sla_app.core.config import COMPLIANCE_TARGET_PCT
from sla_app.core.models import Pathway

from .compliance import COMBINED, AggregateSummary


def _growth_pct(change: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return round(change / previous * 100.0, 1)


def compare_summaries(
    current: AggregateSummary,
    previous: AggregateSummary | None,
    *,
    view: Pathway | str = COMBINED,
) -> dict:
    if previous is None:
        return {"has_previous": False}

    compliance_change = round(current.overall.compliance_rate - previous.overall.compliance_rate, 1)
    ticket_change = current.overall.total - previous.overall.total

    previous_actors = previous.actors(view)
    actors = []
    for name, tally in sorted(current.actors(view).items()):
        prev = previous_actors.get(name)
        if prev is None:
            continue
        change = round(tally.compliance_rate - prev.compliance_rate, 1)
        actors.append(
            {
                "actor": name,
                "current_rate": tally.compliance_rate,
                "previous_rate": prev.compliance_rate,
                "change": change,
                "improved": change >= 0,
            }
        )

    return {
        "has_previous": True,
        "compliance_change": compliance_change,
        "improved": compliance_change > 0,
        "ticket_change": ticket_change,
        "ticket_growth_pct": _growth_pct(ticket_change, previous.overall.total),
        "actors": actors,
    }


def target_gap(summary: AggregateSummary, target: float = COMPLIANCE_TARGET_PCT) -> float:
    """Percentage points still needed to reach ``target`` (0 once achieved)."""
    return max(0.0, round(target - summary.overall.compliance_rate, 1))
