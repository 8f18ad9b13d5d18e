"""Compliance aggregation over SLA outcomes.

Every summary is built from additive counters only, so summaries of
arbitrary partitions of an outcome set merge into exactly the summary of the
whole set. Rates and averages are derived on read.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from sla_app.core.config import DAY_NAMES, NO_RESPONSE_BUCKET, RESPONSE_TIME_BUCKETS, SETTINGS
from sla_app.core.models import Disposition, Pathway, SLAOutcome

COMBINED = "combined"
COVERED = "covered"
OFF_HOURS = "off-hours"
HISTOGRAM_LABELS: tuple[str, ...] = tuple(label for label, _ in RESPONSE_TIME_BUCKETS) + (NO_RESPONSE_BUCKET,)


def compliance_rate(met: int, total: int) -> float:
    """Percentage to one decimal; 0.0 when nothing was evaluated."""
    if total <= 0:
        return 0.0
    return round(met / total * 100.0, SETTINGS.compliance_decimals)


def response_bucket(minutes: float | None) -> str:
    if minutes is None:
        return NO_RESPONSE_BUCKET
    for label, upper in RESPONSE_TIME_BUCKETS:
        if upper is None or minutes < upper:
            return label
    return RESPONSE_TIME_BUCKETS[-1][0]


def hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


@dataclass(slots=True)
class Tally:
    """Counters for one slice of outcomes.

    By default ``met``/``breached`` follow each outcome's ``met`` flag and
    ``pending`` counts outcomes still open within their shift, overlapping the
    other two. Per-actor tallies are filled ``by_disposition`` instead, which
    keeps the three counts disjoint.
    """

    met: int = 0
    breached: int = 0
    pending: int = 0
    count: int = 0
    response_minutes_sum: int = 0
    response_count: int = 0

    @property
    def total(self) -> int:
        return self.count

    @property
    def compliance_rate(self) -> float:
        return compliance_rate(self.met, self.total)

    @property
    def avg_response_minutes(self) -> float | None:
        if self.response_count == 0:
            return None
        return self.response_minutes_sum / self.response_count

    def add(self, outcome: SLAOutcome, *, by_disposition: bool = False) -> None:
        self.count += 1
        if by_disposition:
            disposition = outcome.disposition
            if disposition is Disposition.MET:
                self.met += 1
            elif disposition is Disposition.BREACHED:
                self.breached += 1
            else:
                self.pending += 1
        else:
            if outcome.met:
                self.met += 1
            else:
                self.breached += 1
            if outcome.status.is_open and not outcome.shift_ended:
                self.pending += 1
        if outcome.response_minutes is not None:
            self.response_minutes_sum += outcome.response_minutes
            self.response_count += 1

    def merge(self, other: Tally) -> Tally:
        return Tally(
            met=self.met + other.met,
            breached=self.breached + other.breached,
            pending=self.pending + other.pending,
            count=self.count + other.count,
            response_minutes_sum=self.response_minutes_sum + other.response_minutes_sum,
            response_count=self.response_count + other.response_count,
        )

    def to_dict(self) -> dict:
        avg = self.avg_response_minutes
        return {
            "met": self.met,
            "breached": self.breached,
            "pending": self.pending,
            "total": self.total,
            "compliance_rate": self.compliance_rate,
            "avg_response_minutes": round(avg, 1) if avg is not None else "N/A",
        }


def _merge_tallies(left: dict[str, Tally], right: dict[str, Tally]) -> dict[str, Tally]:
    out = {key: Tally().merge(tally) for key, tally in left.items()}
    for key, tally in right.items():
        out[key] = out[key].merge(tally) if key in out else Tally().merge(tally)
    return out


def _merge_counts(left: dict[str, int], right: dict[str, int]) -> dict[str, int]:
    out = dict(left)
    for key, count in right.items():
        out[key] = out.get(key, 0) + count
    return out


@dataclass(slots=True)
class AggregateSummary:
    overall: Tally = field(default_factory=Tally)
    by_pathway: dict[str, Tally] = field(default_factory=dict)
    by_actor: dict[str, dict[str, Tally]] = field(
        default_factory=lambda: {Pathway.ON_CALL.value: {}, Pathway.ASSIGNEE.value: {}, COMBINED: {}}
    )
    by_day: dict[str, Tally] = field(default_factory=dict)
    by_hour: dict[str, Tally] = field(default_factory=dict)
    by_coverage: dict[str, Tally] = field(default_factory=dict)
    histogram: dict[str, int] = field(default_factory=lambda: {label: 0 for label in HISTOGRAM_LABELS})
    tickets_examined: int = 0
    tickets_skipped: int = 0
    skip_reasons: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[SLAOutcome]) -> AggregateSummary:
        summary = cls()
        for outcome in outcomes:
            summary.add(outcome)
        return summary

    def add(self, outcome: SLAOutcome) -> None:
        pathway = outcome.pathway.value
        self.overall.add(outcome)
        self.by_pathway.setdefault(pathway, Tally()).add(outcome)
        self.histogram[response_bucket(outcome.response_minutes)] += 1

        # Coverage gaps are never actors
        if not outcome.is_gap:
            for view in (pathway, COMBINED):
                tally = self.by_actor[view].setdefault(outcome.responsible, Tally())
                tally.add(outcome, by_disposition=True)

        if outcome.pathway is Pathway.ON_CALL:
            off_hours = outcome.coverage is not None and outcome.coverage.is_off_hours
            self.by_coverage.setdefault(OFF_HOURS if off_hours else COVERED, Tally()).add(outcome)
            if outcome.created_at is not None:
                day = DAY_NAMES[outcome.created_at.weekday()]
                self.by_day.setdefault(day, Tally()).add(outcome)
                self.by_hour.setdefault(hour_label(outcome.created_at.hour), Tally()).add(outcome)

    def record_examined(self, examined: int = 1, skipped: int = 0, reasons: Iterable[str] = ()) -> None:
        self.tickets_examined += examined
        self.tickets_skipped += skipped
        for reason in reasons:
            self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + 1

    def merge(self, other: AggregateSummary) -> AggregateSummary:
        return AggregateSummary(
            overall=self.overall.merge(other.overall),
            by_pathway=_merge_tallies(self.by_pathway, other.by_pathway),
            by_actor={
                key: _merge_tallies(self.by_actor.get(key, {}), other.by_actor.get(key, {}))
                for key in set(self.by_actor) | set(other.by_actor)
            },
            by_day=_merge_tallies(self.by_day, other.by_day),
            by_hour=_merge_tallies(self.by_hour, other.by_hour),
            by_coverage=_merge_tallies(self.by_coverage, other.by_coverage),
            histogram=_merge_counts(self.histogram, other.histogram),
            tickets_examined=self.tickets_examined + other.tickets_examined,
            tickets_skipped=self.tickets_skipped + other.tickets_skipped,
            skip_reasons=_merge_counts(self.skip_reasons, other.skip_reasons),
        )

    def __add__(self, other: AggregateSummary) -> AggregateSummary:
        return self.merge(other)

    def pathway(self, pathway: Pathway | str) -> Tally:
        key = pathway.value if isinstance(pathway, Pathway) else pathway
        return self.by_pathway.get(key, Tally())

    def actors(self, view: Pathway | str = COMBINED) -> dict[str, Tally]:
        key = view.value if isinstance(view, Pathway) else view
        return self.by_actor.get(key, {})

    def to_dict(self) -> dict:
        return {
            "overall": self.overall.to_dict(),
            "pathways": {
                p.value: self.pathway(p).to_dict() for p in (Pathway.ON_CALL, Pathway.ASSIGNEE)
            },
            "actors": {
                view: {name: tally.to_dict() for name, tally in sorted(tallies.items())}
                for view, tallies in sorted(self.by_actor.items())
            },
            "by_day_of_week": [
                {"day": day, **self.by_day[day].to_dict()} for day in DAY_NAMES if day in self.by_day
            ],
            "by_hour_of_day": [
                {"hour": hour, **self.by_hour[hour].to_dict()} for hour in sorted(self.by_hour)
            ],
            "by_coverage": {key: tally.to_dict() for key, tally in sorted(self.by_coverage.items())},
            "response_time_distribution": {label: self.histogram.get(label, 0) for label in HISTOGRAM_LABELS},
            "tickets_examined": self.tickets_examined,
            "tickets_skipped": self.tickets_skipped,
            "skip_reasons": dict(sorted(self.skip_reasons.items())),
        }


def aggregate(outcomes: Iterable[SLAOutcome]) -> AggregateSummary:
    return AggregateSummary.from_outcomes(outcomes)


def merge_summaries(summaries: Iterable[AggregateSummary]) -> AggregateSummary:
    merged = AggregateSummary()
    for summary in summaries:
        merged = merged.merge(summary)
    return merged
