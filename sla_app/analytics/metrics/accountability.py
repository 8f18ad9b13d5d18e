"""On-call accountability over a resolved, non-overlapping shift timeline."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable
from datetime import datetime

from sla_app.core.models import GapSentinel, Shift, WorkingHours
from sla_app.core.roster import EngineConfig, default_engine_config

from .business_hours import is_weekend
from .timestamps import ensure_utc


def accountability_start(ticket_created_at: datetime, shift_start: datetime) -> datetime:
    """Accountability never begins before the responsible shift does."""
    return max(ensure_utc(ticket_created_at), ensure_utc(shift_start))


class ShiftTimeline:
    """Ordered shift list with binary-search lookup and gap classification.

    Shifts are inclusive on both ends. When one shift ends exactly where the
    next begins, the boundary instant belongs to the incoming shift.
    """

    def __init__(
        self,
        shifts: Iterable[Shift],
        *,
        schedule_start: datetime | None = None,
        coverage_hours: WorkingHours | None = None,
    ):
        defaults = default_engine_config()
        ordered = sorted(
            (Shift(s.actor, ensure_utc(s.start), ensure_utc(s.end)) for s in shifts),
            key=lambda s: (s.start, s.end),
        )
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.start < prev.end:
                raise ValueError(
                    f"Overlapping shifts: {prev.actor} until {prev.end.isoformat()} "
                    f"and {cur.actor} from {cur.start.isoformat()}"
                )
        for shift in ordered:
            if shift.end < shift.start:
                raise ValueError(f"Shift for {shift.actor} ends before it starts")
        self.shifts: tuple[Shift, ...] = tuple(ordered)
        self._starts = [s.start for s in self.shifts]
        self.schedule_start = ensure_utc(schedule_start) if schedule_start else defaults.schedule_start
        self.coverage_hours = coverage_hours or defaults.coverage_hours

    @classmethod
    def from_config(cls, shifts: Iterable[Shift], config: EngineConfig) -> ShiftTimeline:
        return cls(shifts, schedule_start=config.schedule_start, coverage_hours=config.coverage_hours)

    def __len__(self) -> int:
        return len(self.shifts)

    def shift_at(self, ts: datetime) -> Shift | None:
        ts = ensure_utc(ts)
        idx = bisect_right(self._starts, ts) - 1
        if idx < 0:
            return None
        shift = self.shifts[idx]
        return shift if shift.contains(ts) else None

    def classify_gap(self, ts: datetime) -> GapSentinel:
        ts = ensure_utc(ts)
        if ts < self.schedule_start:
            return GapSentinel.BEFORE_SCHEDULE_START
        if is_weekend(ts):
            return GapSentinel.WEEKEND
        if not self.coverage_hours.contains_hour(ts.hour):
            return GapSentinel.AFTER_HOURS
        return GapSentinel.NO_COVERAGE

    def resolve_accountable_actor(self, ts: datetime) -> Shift | GapSentinel:
        shift = self.shift_at(ts)
        if shift is not None:
            return shift
        return self.classify_gap(ts)

    def next_shift_after(self, ts: datetime) -> Shift | None:
        idx = bisect_right(self._starts, ensure_utc(ts))
        if idx >= len(self.shifts):
            return None
        return self.shifts[idx]

    def match_shift(self, ts: datetime) -> Shift | None:
        """Shift accountable for a ticket created at ``ts``.

        A ticket created in a coverage gap is picked up by the next shift.
        Nothing is handed off for instants before the schedule started.
        """
        ts = ensure_utc(ts)
        shift = self.shift_at(ts)
        if shift is not None:
            return shift
        if ts < self.schedule_start:
            return None
        return self.next_shift_after(ts)
