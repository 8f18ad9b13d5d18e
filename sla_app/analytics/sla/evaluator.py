"""Classify tickets into on-call and assignee SLA outcomes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import pytz

from sla_app.analytics.metrics.accountability import ShiftTimeline, accountability_start
from sla_app.analytics.metrics.business_hours import BusinessCalendar
from sla_app.analytics.metrics.timestamps import ensure_utc
from sla_app.core.models import GapSentinel, OutcomeStatus, Pathway, SLAOutcome, Ticket
from sla_app.core.roster import EngineConfig

logger = logging.getLogger(__name__)


class SkipReason(str, Enum):
    NO_GOAL = "no-goal"
    MISSING_CREATED = "missing-created"
    UNRECOGNIZED_ON_CALL = "unrecognized-on-call"
    UNRECOGNIZED_RESPONDER = "unrecognized-responder"
    NO_ASSIGNMENT = "no-assignment"
    SELF_ASSIGNED = "self-assigned"
    EVALUATION_ERROR = "evaluation-error"


@dataclass(slots=True)
class TicketEvaluation:
    key: str
    outcomes: list[SLAOutcome] = field(default_factory=list)
    skips: list[SkipReason] = field(default_factory=list)


class SLAEvaluator:
    def __init__(
        self,
        calendar: BusinessCalendar,
        timeline: ShiftTimeline,
        config: EngineConfig | None = None,
    ):
        self.calendar = calendar
        self.timeline = timeline
        self.config = config or calendar.config

    def evaluate(self, ticket: Ticket, now: datetime | None = None) -> list[SLAOutcome]:
        return self.assess(ticket, now).outcomes

    def assess(self, ticket: Ticket, now: datetime | None = None) -> TicketEvaluation:
        """Evaluate both pathways, recording why a pathway produced nothing."""
        result = TicketEvaluation(ticket.key)
        if not ticket.has_goal:
            result.skips.append(SkipReason.NO_GOAL)
            return result
        now = ensure_utc(now) if now is not None else datetime.now(pytz.UTC)
        for pathway in (self._on_call_outcome, self._assignee_outcome):
            outcome = pathway(ticket, now, result.skips)
            if outcome is not None:
                result.outcomes.append(outcome)
        return result

    # ------------------ On-call Pathway ------------------
    def _on_call_outcome(self, ticket: Ticket, now: datetime, skips: list[SkipReason]) -> SLAOutcome | None:
        if ticket.created_at is None:
            skips.append(SkipReason.MISSING_CREATED)
            return None
        created = ensure_utc(ticket.created_at)
        responder = self.config.canonical_name(ticket.first_responder)
        if responder is not None and responder not in self.config.sla_responders:
            logger.debug("%s: responder %s not in roster, skipping on-call", ticket.key, responder)
            skips.append(SkipReason.UNRECOGNIZED_RESPONDER)
            return None

        action_at = ticket.first_responder_action_at
        coverage = None if self.timeline.shift_at(created) else self.timeline.classify_gap(created)
        shift = self.timeline.match_shift(created)
        goal = float(ticket.goal_minutes)

        if shift is None:
            return self._gap_outcome(ticket, created, action_at, now, coverage or GapSentinel.NO_COVERAGE)

        actor = self.config.canonical_name(shift.actor)
        if actor not in self.config.on_call_responders:
            logger.debug("%s: on-call actor %s not in roster, skipping on-call", ticket.key, actor)
            skips.append(SkipReason.UNRECOGNIZED_ON_CALL)
            return None

        start = accountability_start(created, shift.start)
        shift_ended = False
        if action_at is not None:
            action_at = ensure_utc(action_at)
            if action_at > shift.end:
                # Responding after one's own shift is always a breach
                status = OutcomeStatus.RESPONDED_AFTER_SHIFT
                minutes = self.calendar.elapsed_business_minutes(start, shift.end, actor)
                met = False
            else:
                status = OutcomeStatus.RESPONDED
                minutes = self.calendar.elapsed_business_minutes(start, action_at, actor)
                met = minutes <= goal
        elif now > shift.end:
            status = OutcomeStatus.PENDING
            shift_ended = True
            minutes = self.calendar.elapsed_business_minutes(start, shift.end, actor)
            met = False
        else:
            status = OutcomeStatus.PENDING
            minutes = self.calendar.elapsed_business_minutes(start, now, actor)
            met = minutes <= goal

        return SLAOutcome(
            ticket_key=ticket.key,
            pathway=Pathway.ON_CALL,
            responsible=actor,
            status=status,
            business_minutes=minutes,
            met=met,
            goal_minutes=goal,
            created_at=created,
            shift_ended=shift_ended,
            coverage=coverage,
        )

    def _gap_outcome(
        self,
        ticket: Ticket,
        created: datetime,
        action_at: datetime | None,
        now: datetime,
        gap: GapSentinel,
    ) -> SLAOutcome:
        # No shift to bound the measurement: default window from creation
        end = ensure_utc(action_at) if action_at is not None else now
        minutes = self.calendar.elapsed_business_minutes(created, end)
        goal = float(ticket.goal_minutes)
        return SLAOutcome(
            ticket_key=ticket.key,
            pathway=Pathway.ON_CALL,
            responsible=gap,
            status=OutcomeStatus.RESPONDED if action_at is not None else OutcomeStatus.PENDING,
            business_minutes=minutes,
            met=minutes <= goal,
            goal_minutes=goal,
            created_at=created,
            coverage=gap,
        )

    # ------------------ Assignee Pathway ------------------
    def _assignee_outcome(self, ticket: Ticket, now: datetime, skips: list[SkipReason]) -> SLAOutcome | None:
        owner = self.config.canonical_name(ticket.current_owner)
        if ticket.assigned_at is None or owner is None:
            skips.append(SkipReason.NO_ASSIGNMENT)
            return None
        if ticket.assigned_by and self.config.canonical_name(ticket.assigned_by) == owner:
            skips.append(SkipReason.SELF_ASSIGNED)
            return None

        assigned = ensure_utc(ticket.assigned_at)
        if ticket.owner_comment_at is not None:
            status = OutcomeStatus.RESPONDED
            end = ticket.owner_comment_at
        elif ticket.resolved_at is not None:
            status = OutcomeStatus.RESOLVED_NO_COMMENT
            end = ticket.resolved_at
        else:
            status = OutcomeStatus.NO_RESPONSE
            end = now
        minutes = self.calendar.elapsed_business_minutes(assigned, end, owner)
        goal = float(ticket.goal_minutes)
        return SLAOutcome(
            ticket_key=ticket.key,
            pathway=Pathway.ASSIGNEE,
            responsible=owner,
            status=status,
            business_minutes=minutes,
            met=minutes <= goal,
            goal_minutes=goal,
            created_at=ensure_utc(ticket.created_at) if ticket.created_at else None,
        )
