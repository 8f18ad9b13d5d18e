"""SLAService: orchestrates mapping, per-ticket evaluation, and aggregation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pytz

from sla_app.analytics.aggregations.compliance import AggregateSummary, merge_summaries
from sla_app.analytics.metrics.accountability import ShiftTimeline
from sla_app.analytics.metrics.business_hours import BusinessCalendar
from sla_app.analytics.metrics.lifecycle import summarize_lifecycle
from sla_app.analytics.sla.evaluator import SkipReason, SLAEvaluator

from .config import EVALUATION_MAX_WORKERS, EVALUATION_MIN_PARALLEL
from .mappers import map_issue, map_timeline, ticket_from_record
from .models import Shift, SLAOutcome, Ticket
from .roster import EngineConfig, load_engine_config

ProgressCallback = Callable[[str, int | None, int | None], None]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EvaluationRun:
    outcomes: list[SLAOutcome] = field(default_factory=list)
    summary: AggregateSummary = field(default_factory=AggregateSummary)
    lifecycle: dict = field(default_factory=dict)

    @property
    def tickets_examined(self) -> int:
        return self.summary.tickets_examined

    @property
    def tickets_skipped(self) -> int:
        return self.summary.tickets_skipped

    def to_dict(self) -> dict:
        return {
            "outcomes": [o.to_dict() for o in self.outcomes],
            "summary": self.summary.to_dict(),
            "lifecycle": self.lifecycle,
        }


class SLAService:
    def __init__(
        self,
        shifts: Iterable[Shift] = (),
        config: EngineConfig | None = None,
        *,
        max_workers: int = EVALUATION_MAX_WORKERS,
        min_parallel: int = EVALUATION_MIN_PARALLEL,
    ):
        self.config = config or load_engine_config()
        self.calendar = BusinessCalendar(self.config)
        self.timeline = ShiftTimeline.from_config(shifts, self.config)
        self.evaluator = SLAEvaluator(self.calendar, self.timeline, self.config)
        self.max_workers = max_workers
        self.min_parallel = min_parallel

    @classmethod
    def from_timeline_payload(cls, payload: Mapping[str, Any], config: EngineConfig | None = None, **kwargs):
        config = config or load_engine_config()
        return cls(map_timeline(payload, config), config, **kwargs)

    # ------------------ Entry Points ------------------
    def evaluate_issues(
        self,
        raw_issues: Iterable[Mapping[str, Any]],
        *,
        now: datetime | None = None,
        progress: ProgressCallback | None = None,
    ) -> EvaluationRun:
        """Map raw Jira issues and evaluate them; unmappable issues are counted as skipped."""
        tickets, unmapped = self._map_all(raw_issues, lambda raw: map_issue(raw, self.config), "issue")
        return self._with_unmapped(self.evaluate_tickets(tickets, now=now, progress=progress), unmapped)

    def evaluate_records(
        self,
        records: Iterable[Mapping[str, Any]],
        *,
        now: datetime | None = None,
        progress: ProgressCallback | None = None,
    ) -> EvaluationRun:
        """Evaluate flat ticket records; records that cannot be mapped are counted as skipped."""
        tickets, unmapped = self._map_all(records, ticket_from_record, "record")
        return self._with_unmapped(self.evaluate_tickets(tickets, now=now, progress=progress), unmapped)

    def evaluate_tickets(
        self,
        tickets: Sequence[Ticket],
        *,
        now: datetime | None = None,
        progress: ProgressCallback | None = None,
    ) -> EvaluationRun:
        now = now or datetime.now(pytz.UTC)
        tickets = list(tickets)
        if not tickets:
            return EvaluationRun(lifecycle=summarize_lifecycle((), now))

        # Sequential short-circuit
        if len(tickets) < self.min_parallel or self.max_workers <= 1:
            if progress:
                progress("Evaluating SLA outcomes", 0, len(tickets))
            run = self._evaluate_chunk(tickets, now)
            run.lifecycle = summarize_lifecycle(tickets, now)
            if progress:
                progress("Evaluating SLA outcomes", len(tickets), len(tickets))
            self._log_run(run)
            return run

        chunk_size = max(1, -(-len(tickets) // self.max_workers))
        chunks = [tickets[i : i + chunk_size] for i in range(0, len(tickets), chunk_size)]
        if progress:
            progress("Evaluating SLA outcomes", 0, len(tickets))
        partials: dict[int, EvaluationRun] = {}
        completed = 0
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(self._evaluate_chunk, chunk, now): idx for idx, chunk in enumerate(chunks)}
            for fut in as_completed(futures):
                idx = futures[fut]
                partials[idx] = fut.result()
                completed += len(chunks[idx])
                if progress:
                    progress("Evaluating SLA outcomes", completed, len(tickets))

        # Reassemble in input order; summaries merge order-independently
        ordered = [partials[idx] for idx in range(len(chunks))]
        run = EvaluationRun(
            outcomes=[o for part in ordered for o in part.outcomes],
            summary=merge_summaries(part.summary for part in ordered),
            lifecycle=summarize_lifecycle(tickets, now),
        )
        self._log_run(run)
        return run

    # ------------------ Internal Helpers ------------------
    def _map_all(
        self,
        raw_items: Iterable[Mapping[str, Any]],
        mapper: Callable[[Mapping[str, Any]], Ticket],
        kind: str,
    ) -> tuple[list[Ticket], int]:
        tickets: list[Ticket] = []
        unmapped = 0
        for raw in raw_items:
            try:
                tickets.append(mapper(raw))
            except (TypeError, ValueError, AttributeError) as exc:
                unmapped += 1
                key = raw.get("key") if isinstance(raw, Mapping) else raw
                logger.warning("Failed to map %s %s: %s", kind, key, exc)
        return tickets, unmapped

    @staticmethod
    def _with_unmapped(run: EvaluationRun, unmapped: int) -> EvaluationRun:
        if unmapped:
            run.summary.record_examined(unmapped, unmapped, [SkipReason.EVALUATION_ERROR.value] * unmapped)
        return run

    def _evaluate_chunk(self, tickets: Sequence[Ticket], now: datetime) -> EvaluationRun:
        run = EvaluationRun()
        for ticket in tickets:
            try:
                result = self.evaluator.assess(ticket, now)
            except (TypeError, ValueError, RuntimeError, OverflowError) as exc:
                logger.warning("Failed to evaluate %s: %s", ticket.key, exc)
                run.summary.record_examined(1, 1, [SkipReason.EVALUATION_ERROR.value])
                continue
            for outcome in result.outcomes:
                run.summary.add(outcome)
            run.outcomes.extend(result.outcomes)
            run.summary.record_examined(
                1,
                0 if result.outcomes else 1,
                [reason.value for reason in result.skips],
            )
        return run

    def _log_run(self, run: EvaluationRun) -> None:
        overall = run.summary.overall
        logger.info(
            "Evaluated %s tickets: %s outcomes, %s skipped, compliance %.1f%%",
            run.tickets_examined,
            len(run.outcomes),
            run.tickets_skipped,
            overall.compliance_rate,
        )
