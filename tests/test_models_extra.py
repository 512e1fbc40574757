from __future__ import annotations

from datetime import date, datetime, timezone
import pytest
from pydantic import ValidationError
from crm_reports.models import (
    DateRange,
    FilterCondition,
    FilterGroup,
    LabelResolvers,
    ReportFilters,
    SavedFilter,
)


def test_filter_group_parses_nested_tree() -> None:
    group = FilterGroup.model_validate({
        "combinator": "or",
        "conditions": [
            {"field": "status", "operator": "equals", "value": "Planning"},
            {
                "combinator": "AND",
                "conditions": [{"field": "budget", "operator": "greaterThan", "value": 1000}],
            },
        ],
    })
    assert group.combinator == "OR"
    assert isinstance(group.conditions[0], FilterCondition)
    assert isinstance(group.conditions[1], FilterGroup)
    assert group.conditions[1].conditions[0].field == "budget"


def test_filter_condition_is_lenient() -> None:
    cond = FilterCondition.model_validate({"field": 12, "operator": "sortOf", "value": [1]})
    assert cond.field is None
    assert cond.operator == "sortOf"


def test_saved_filter_is_frozen_and_accepts_camel_case() -> None:
    sf = SavedFilter.model_validate({
        "id": "filter-1",
        "name": "Open",
        "group": {"combinator": "AND", "conditions": []},
        "createdAt": datetime(2024, 1, 2, tzinfo=timezone.utc),
    })
    assert sf.created_at.year == 2024
    with pytest.raises(ValidationError):
        sf.name = "Closed"  # type: ignore[misc]


def test_report_filters_from_flat_mapping() -> None:
    rf = ReportFilters.from_mapping({
        "dateRange": {"start": "2024-01-01", "end": ""},
        "status": "Open",
        "type": "all",
    })
    assert rf.date_range == DateRange(start=date(2024, 1, 1), end=None)
    assert rf.equals == {"status": "Open", "type": "all"}


def test_report_filters_reject_bad_dates() -> None:
    with pytest.raises(ValidationError):
        ReportFilters.from_mapping({"date_range": {"start": "soon"}})


def test_label_resolvers_stringify_ids() -> None:
    labels = LabelResolvers(tables={"clients": {7: "Acme"}})  # type: ignore[dict-item]
    assert labels.resolve("clients", 7) == "Acme"
    assert labels.resolve("clients", "8") is None
    assert labels.resolve("team_members", "u1") is None
