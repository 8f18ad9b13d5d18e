import json

from helpers import ts

from sla_app.analytics.aggregations.compliance import (
    COMBINED,
    AggregateSummary,
    aggregate,
    compliance_rate,
    merge_summaries,
    response_bucket,
)
from sla_app.core.models import Disposition, GapSentinel, OutcomeStatus, Pathway, SLAOutcome


def _outcome(key, pathway, responsible, status, minutes, met, created=None, coverage=None, shift_ended=False):
    return SLAOutcome(
        ticket_key=key,
        pathway=pathway,
        responsible=responsible,
        status=status,
        business_minutes=minutes,
        met=met,
        goal_minutes=120,
        created_at=created,
        shift_ended=shift_ended,
        coverage=coverage,
    )


def _sample_outcomes():
    return [
        _outcome("A-1", Pathway.ON_CALL, "Alice", OutcomeStatus.RESPONDED, 30, True, ts(3, 14)),
        _outcome(
            "A-2",
            Pathway.ON_CALL,
            "Bob",
            OutcomeStatus.RESPONDED,
            150,
            False,
            ts(4, 23),
            coverage=GapSentinel.AFTER_HOURS,
        ),
        _outcome(
            "A-3",
            Pathway.ON_CALL,
            GapSentinel.WEEKEND,
            OutcomeStatus.PENDING,
            60,
            True,
            ts(1, 10),
            coverage=GapSentinel.WEEKEND,
        ),
        _outcome("A-4", Pathway.ASSIGNEE, "Carol", OutcomeStatus.NO_RESPONSE, 600, False, ts(3, 15)),
        _outcome("A-5", Pathway.ASSIGNEE, "Alice", OutcomeStatus.RESOLVED_NO_COMMENT, 90, True, ts(3, 16)),
    ]


def test_empty_summary_reports_zero_rate():
    summary = aggregate([])
    assert summary.overall.total == 0
    assert summary.overall.compliance_rate == 0.0
    assert summary.to_dict()["overall"]["avg_response_minutes"] == "N/A"
    assert compliance_rate(0, 0) == 0.0


def test_overall_counts_and_rate():
    summary = aggregate(_sample_outcomes())
    # A-3 is open but within goal: met, and still pending
    assert (summary.overall.met, summary.overall.breached, summary.overall.pending) == (3, 2, 2)
    assert summary.overall.total == 5
    assert summary.overall.compliance_rate == 60.0
    assert summary.overall.avg_response_minutes == 90.0
    assert summary.pathway(Pathway.ON_CALL).total == 3
    assert summary.pathway("assignee").total == 2


def test_dispositions():
    outcomes = _sample_outcomes()
    assert [o.disposition for o in outcomes] == [
        Disposition.MET,
        Disposition.BREACHED,
        Disposition.PENDING,
        Disposition.BREACHED,
        Disposition.MET,
    ]


def test_gap_outcomes_excluded_from_actors():
    summary = aggregate(_sample_outcomes())
    combined = summary.actors(COMBINED)
    assert set(combined) == {"Alice", "Bob", "Carol"}
    assert combined["Alice"].met == 2
    assert set(summary.actors(Pathway.ON_CALL)) == {"Alice", "Bob"}
    assert set(summary.actors(Pathway.ASSIGNEE)) == {"Alice", "Carol"}
    # Gap outcome still counts toward the overall totals
    assert summary.overall.total == 5


def test_histogram_buckets():
    summary = aggregate(_sample_outcomes())
    assert summary.histogram == {
        "Under 1 hour": 1,
        "1-2 hours": 1,
        "2-4 hours": 1,
        "4-8 hours": 0,
        "Over 8 hours": 0,
        "No response": 2,
    }
    assert response_bucket(59) == "Under 1 hour"
    assert response_bucket(60) == "1-2 hours"
    assert response_bucket(10_000) == "Over 8 hours"
    assert response_bucket(None) == "No response"


def test_day_hour_and_coverage_breakdowns():
    summary = aggregate(_sample_outcomes())
    assert set(summary.by_day) == {"Monday", "Tuesday", "Saturday"}
    assert set(summary.by_hour) == {"14:00", "23:00", "10:00"}
    assert summary.by_coverage["covered"].total == 1
    assert summary.by_coverage["off-hours"].total == 2
    days = [row["day"] for row in summary.to_dict()["by_day_of_week"]]
    assert days == ["Monday", "Tuesday", "Saturday"]


def test_partition_merge_matches_whole():
    outcomes = _sample_outcomes()
    whole = aggregate(outcomes)
    for split in range(len(outcomes) + 1):
        merged = aggregate(outcomes[:split]) + aggregate(outcomes[split:])
        assert merged == whole
    assert merge_summaries(aggregate([o]) for o in outcomes) == whole


def test_merge_associative_and_identity():
    outcomes = _sample_outcomes()
    a, b, c = aggregate(outcomes[:1]), aggregate(outcomes[1:3]), aggregate(outcomes[3:])
    assert (a + b) + c == a + (b + c)
    assert a + AggregateSummary() == a


def test_examined_counters_merge():
    left = AggregateSummary()
    left.record_examined(3, 1, ["no-goal"])
    right = AggregateSummary()
    right.record_examined(2, 2, ["no-goal", "self-assigned"])
    merged = left + right
    assert merged.tickets_examined == 5
    assert merged.tickets_skipped == 3
    assert merged.skip_reasons == {"no-goal": 2, "self-assigned": 1}


def test_summary_serializes_to_json():
    summary = aggregate(_sample_outcomes())
    payload = json.loads(json.dumps(summary.to_dict()))
    assert payload["overall"]["compliance_rate"] == 60.0
    assert "[Weekend]" not in payload["actors"]["combined"]
    assert payload["response_time_distribution"]["No response"] == 2


def test_open_outcome_within_goal_counts_as_met():
    outcome = _outcome("B-1", Pathway.ON_CALL, "Alice", OutcomeStatus.PENDING, 60, True, ts(3, 14))
    summary = aggregate([outcome])
    assert summary.overall.compliance_rate == 100.0
    assert summary.overall.pending == 1
    assert summary.pathway(Pathway.ON_CALL).compliance_rate == 100.0
    assert summary.by_day["Monday"].met == 1
    assert summary.by_hour["14:00"].compliance_rate == 100.0
    # Per-actor tables keep it apart until it closes
    alice = summary.actors(COMBINED)["Alice"]
    assert (alice.met, alice.pending, alice.total) == (0, 1, 1)


def test_shift_ended_outcome_is_breached_not_pending():
    outcome = _outcome(
        "B-2", Pathway.ON_CALL, "Alice", OutcomeStatus.PENDING, 420, False, ts(3, 15), shift_ended=True
    )
    summary = aggregate([outcome])
    assert (summary.overall.met, summary.overall.breached, summary.overall.pending) == (0, 1, 0)
    assert summary.actors(COMBINED)["Alice"].breached == 1


def test_unstaffed_weekday_gap_is_not_off_hours():
    outcomes = [
        _outcome(
            "C-1",
            Pathway.ON_CALL,
            "Alice",
            OutcomeStatus.RESPONDED,
            30,
            True,
            ts(4, 9),
            coverage=GapSentinel.NO_COVERAGE,
        ),
        _outcome(
            "C-2",
            Pathway.ON_CALL,
            "Alice",
            OutcomeStatus.RESPONDED,
            30,
            True,
            ts(1, 9),
            coverage=GapSentinel.WEEKEND,
        ),
    ]
    summary = aggregate(outcomes)
    assert summary.by_coverage["covered"].total == 1
    assert summary.by_coverage["off-hours"].total == 1
    assert GapSentinel.NO_COVERAGE.is_off_hours is False
    assert GapSentinel.BEFORE_SCHEDULE_START.is_off_hours is True
