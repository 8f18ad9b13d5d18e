import pytest
from helpers import ts

from sla_app.analytics.aggregations.compliance import AggregateSummary, aggregate
from sla_app.analytics.aggregations.tables import (
    actor_table,
    breakdown_table,
    histogram_table,
    outcomes_to_dataframe,
)
from sla_app.analytics.aggregations.trends import compare_summaries, target_gap
from sla_app.core.config import OUTCOME_COLUMNS
from sla_app.core.models import OutcomeStatus, Pathway, SLAOutcome


def _o(key, pathway, who, minutes, met, created):
    return SLAOutcome(
        ticket_key=key,
        pathway=pathway,
        responsible=who,
        status=OutcomeStatus.RESPONDED,
        business_minutes=minutes,
        met=met,
        goal_minutes=120,
        created_at=created,
    )


def _current():
    return [
        _o("C-1", Pathway.ON_CALL, "Alice", 30, True, ts(3, 14)),
        _o("C-2", Pathway.ON_CALL, "Alice", 90, True, ts(4, 14)),
        _o("C-3", Pathway.ON_CALL, "Bob", 150, False, ts(3, 15)),
        _o("C-4", Pathway.ASSIGNEE, "Carol", 45, True, ts(3, 16)),
    ]


def _previous():
    return [
        _o("P-1", Pathway.ON_CALL, "Alice", 200, False, ts(27, 14, month=10)),
        _o("P-2", Pathway.ON_CALL, "Bob", 20, True, ts(28, 14, month=10)),
    ]


def test_outcomes_dataframe_columns():
    df = outcomes_to_dataframe(_current())
    assert list(df.columns) == list(OUTCOME_COLUMNS)
    assert len(df) == 4
    assert str(df["created_at"].dt.tz) == "UTC"
    assert list(outcomes_to_dataframe([]).columns) == list(OUTCOME_COLUMNS)


def test_actor_table_sorted_by_compliance_then_volume():
    table = actor_table(aggregate(_current()))
    assert table["Actor"].tolist() == ["Alice", "Carol", "Bob"]
    assert table["Compliance %"].tolist() == [100.0, 100.0, 0.0]
    assert table["Tickets"].tolist() == [2, 1, 1]
    assert table.loc[0, "Avg response"] == "1h 0m"
    assert table.loc[1, "Avg response"] == "45m"


def test_actor_table_per_pathway():
    table = actor_table(aggregate(_current()), Pathway.ASSIGNEE)
    assert table["Actor"].tolist() == ["Carol"]
    assert actor_table(AggregateSummary()).empty


def test_breakdown_tables():
    summary = aggregate(_current())
    by_day = breakdown_table(summary, "day")
    assert by_day["Day"].tolist() == ["Monday", "Tuesday"]
    assert by_day["Tickets"].tolist() == [2, 1]
    by_hour = breakdown_table(summary, "hour")
    assert by_hour["Hour"].tolist() == ["14:00", "15:00"]
    with pytest.raises(ValueError):
        breakdown_table(summary, "month")


def test_histogram_table_shares():
    table = histogram_table(aggregate(_current()))
    row = table.set_index("bucket").loc["Under 1 hour"]
    assert row["count"] == 2
    assert row["share_pct"] == 50.0
    empty = histogram_table(AggregateSummary())
    assert empty["count"].sum() == 0


def test_compare_summaries():
    result = compare_summaries(aggregate(_current()), aggregate(_previous()))
    assert result["has_previous"] is True
    assert result["compliance_change"] == 25.0
    assert result["improved"] is True
    assert result["ticket_change"] == 2
    assert result["ticket_growth_pct"] == 100.0
    # Carol has no previous period to compare against
    assert [a["actor"] for a in result["actors"]] == ["Alice", "Bob"]
    assert result["actors"][1]["change"] == -100.0
    assert result["actors"][1]["improved"] is False


def test_compare_without_previous():
    assert compare_summaries(aggregate(_current()), None) == {"has_previous": False}


def test_target_gap():
    summary = aggregate(_current())
    assert target_gap(summary) == 15.0
    assert target_gap(summary, 70.0) == 0.0
