from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import Any

import pytest
from crm_reports.filters import engine
from crm_reports.filters.engine import apply_filter_logic, describe_problems, evaluate
from crm_reports.models import FilterCondition, FilterGroup

PROJECTS = [
    {"id": "p1", "name": "Community Garden", "status": "Planning", "budget": 5000, "endDate": "2024-03-31"},
    {"id": "p2", "name": "Winter Gala", "status": "In Progress", "budget": 12000, "endDate": "2024-01-31T23:30:00Z"},
    {"id": "p3", "name": "Food Drive", "status": "Completed", "budget": "n/a", "endDate": ""},
    {"id": "p4", "name": "Literacy Program", "status": "On Hold", "budget": 800},
]


def cond(field: str, operator: str, value: Any = None) -> dict[str, Any]:
    return {"field": field, "operator": operator, "value": value}


def ids(records: list[dict[str, Any]]) -> list[str]:
    return [r["id"] for r in records]


def test_no_filter_is_identity() -> None:
    assert apply_filter_logic(PROJECTS, None) == PROJECTS
    assert evaluate(PROJECTS[0], None) is True


@pytest.mark.parametrize("combinator", ["AND", "OR"])
def test_empty_group_passes_everything(combinator: str) -> None:
    group = FilterGroup(combinator=combinator, conditions=[])
    assert apply_filter_logic(PROJECTS, group) == PROJECTS


def test_and_short_circuits_on_first_false(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[str | None] = []
    original = engine._evaluate_condition

    def tracking(record: Any, condition: FilterCondition) -> bool:
        seen.append(condition.field)
        return original(record, condition)

    monkeypatch.setattr(engine, "_evaluate_condition", tracking)
    group = {"combinator": "AND", "conditions": [cond("status", "equals", "Closed"), cond("name", "contains", "x")]}
    assert evaluate(PROJECTS[0], group) is False
    assert seen == ["status"]


def test_or_short_circuits_on_first_true(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[str | None] = []
    original = engine._evaluate_condition

    def tracking(record: Any, condition: FilterCondition) -> bool:
        seen.append(condition.field)
        return original(record, condition)

    monkeypatch.setattr(engine, "_evaluate_condition", tracking)
    group = {"combinator": "OR", "conditions": [cond("status", "equals", "Planning"), cond("name", "contains", "x")]}
    assert evaluate(PROJECTS[0], group) is True
    assert seen == ["status"]


def test_nested_groups() -> None:
    group = {
        "combinator": "OR",
        "conditions": [
            {
                "combinator": "AND",
                "conditions": [cond("status", "equals", "Planning"), cond("budget", "greaterThan", 1000)],
            },
            cond("name", "contains", "gala"),
        ],
    }
    assert ids(apply_filter_logic(PROJECTS, group)) == ["p1", "p2"]


def test_equals_normalizes_numbers_dates_and_keeps_case() -> None:
    assert evaluate(PROJECTS[0], {"conditions": [cond("budget", "equals", "5000")]})
    assert evaluate({"d": "2024-01-05"}, {"conditions": [cond("d", "equals", "2024-01-05T00:00:00")]})
    assert not evaluate(PROJECTS[0], {"conditions": [cond("status", "equals", "planning")]})
    assert evaluate(PROJECTS[0], {"conditions": [cond("status", "notEquals", "planning")]})


def test_contains_is_case_insensitive_and_stringifies() -> None:
    assert evaluate(PROJECTS[0], {"conditions": [cond("name", "contains", "GARDEN")]})
    assert evaluate({"code": 12345}, {"conditions": [cond("code", "contains", "234")]})
    assert not evaluate({}, {"conditions": [cond("name", "contains", "a")]})
    assert evaluate(PROJECTS[0], {"conditions": [cond("name", "notContains", "gala")]})


def test_text_prefix_and_suffix() -> None:
    assert evaluate(PROJECTS[1], {"conditions": [cond("name", "startsWith", "winter")]})
    assert evaluate(PROJECTS[1], {"conditions": [cond("name", "endsWith", "GALA")]})


def test_greater_and_less_than() -> None:
    group = {"conditions": [cond("budget", "greaterThan", "1000")]}
    # "n/a" and a missing budget are non-matches, not errors
    assert ids(apply_filter_logic(PROJECTS, group)) == ["p1", "p2"]
    assert ids(apply_filter_logic(PROJECTS, {"conditions": [cond("budget", "lessThan", 1000)]})) == ["p4"]
    assert evaluate({"d": "2024-03-01"}, {"conditions": [cond("d", "greaterThan", "2024-02-01")]})


def test_before_and_after_ignore_time_of_day() -> None:
    gala = PROJECTS[1]
    assert not evaluate(gala, {"conditions": [cond("endDate", "before", "2024-01-31")]})
    assert not evaluate(gala, {"conditions": [cond("endDate", "after", "2024-01-31")]})
    assert evaluate(gala, {"conditions": [cond("endDate", "after", "2024-01-30")]})
    assert ids(apply_filter_logic(PROJECTS, {"conditions": [cond("endDate", "before", "2024-02-15")]})) == ["p2"]


def test_is_empty_and_is_not_empty() -> None:
    assert ids(apply_filter_logic(PROJECTS, {"conditions": [cond("endDate", "isEmpty")]})) == ["p3", "p4"]
    assert ids(apply_filter_logic(PROJECTS, {"conditions": [cond("endDate", "isNotEmpty")]})) == ["p1", "p2"]
    assert not evaluate({"n": 0}, {"conditions": [cond("n", "isEmpty")]})
    assert evaluate({"n": None}, {"conditions": [cond("n", "isEmpty")]})


def test_in_and_between() -> None:
    group = {"conditions": [cond("status", "in", ["Planning", "On Hold"])]}
    assert ids(apply_filter_logic(PROJECTS, group)) == ["p1", "p4"]
    group = {"conditions": [cond("budget", "between", [800, 5000])]}
    assert ids(apply_filter_logic(PROJECTS, group)) == ["p1", "p4"]
    assert not evaluate(PROJECTS[0], {"conditions": [cond("budget", "between", 5000)]})


def test_unknown_operator_fails_closed(caplog: pytest.LogCaptureFixture) -> None:
    group = {"combinator": "AND", "conditions": [cond("status", "fuzzyMatch", "Plan")]}
    with caplog.at_level(logging.WARNING):
        assert evaluate(PROJECTS[0], group) is False
    assert "unknown operator" in caplog.text


def test_bad_leaf_only_fails_its_own_branch() -> None:
    group = {
        "combinator": "OR",
        "conditions": [
            {"operator": "equals", "value": "Planning"},
            cond("status", "fuzzyMatch", "x"),
            cond("status", "equals", "Completed"),
        ],
    }
    assert ids(apply_filter_logic(PROJECTS, group)) == ["p3"]


def test_unknown_combinator_matches_nothing() -> None:
    group = {"combinator": "XOR", "conditions": [cond("status", "equals", "Planning")]}
    assert apply_filter_logic(PROJECTS, group) == []
    assert describe_problems(FilterGroup.model_validate(group)) == ["root: unknown combinator 'XOR'"]


def test_unparsable_tree_matches_nothing() -> None:
    assert apply_filter_logic(PROJECTS, {"conditions": "status=Planning"}) == []
    assert apply_filter_logic(PROJECTS, 42) == []  # type: ignore[arg-type]


def test_filter_keeps_order_and_duplicates() -> None:
    records = [PROJECTS[3], PROJECTS[0], PROJECTS[3]]
    group = FilterGroup(conditions=[FilterCondition(field="status", operator="equals", value="On Hold")])
    assert ids(apply_filter_logic(records, group)) == ["p4", "p4"]


def test_object_records_are_read_by_attribute() -> None:
    record = SimpleNamespace(status="Planning", budget=5000)
    assert evaluate(record, {"conditions": [cond("status", "equals", "Planning")]})


def test_describe_problems_reports_paths() -> None:
    group = FilterGroup.model_validate({
        "conditions": [
            cond("status", "equals", "Planning"),
            {"conditions": [{"operator": "equals", "value": 1}]},
        ]
    })
    assert describe_problems(group) == ["root.conditions[1].conditions[0]: condition has no field"]


def nest(node: FilterCondition | FilterGroup, depth: int, combinator: str = "AND") -> FilterGroup:
    group = FilterGroup(combinator=combinator, conditions=[node])
    for _ in range(depth - 1):
        group = FilterGroup(combinator=combinator, conditions=[group])
    return group


@pytest.mark.parametrize("depth", [600, 3000])
def test_deeply_nested_groups_evaluate(depth: int) -> None:
    leaf = FilterCondition(field="status", operator="equals", value="Planning")
    group = nest(leaf, depth)
    assert evaluate(PROJECTS[0], group) is True
    assert ids(apply_filter_logic(PROJECTS, group)) == ["p1"]


def test_deep_or_keeps_short_circuit_order() -> None:
    bad = nest(FilterCondition(field="status", operator="equals", value="Nope"), 1000)
    good = nest(FilterCondition(field="status", operator="equals", value="Planning"), 1000)
    group = FilterGroup(combinator="OR", conditions=[bad, good])
    assert evaluate(PROJECTS[0], group) is True
    assert evaluate(PROJECTS[1], group) is False


def test_describe_problems_on_deep_tree() -> None:
    group = nest(FilterCondition(field="status", operator="fuzzyMatch", value="x"), 2000)
    problems = describe_problems(group)
    assert len(problems) == 1
    assert problems[0].endswith("conditions[0]: unknown operator 'fuzzyMatch'")
    assert evaluate(PROJECTS[0], group) is False


def test_describe_problems_keeps_tree_order() -> None:
    group = FilterGroup.model_validate({
        "combinator": "XOR",
        "conditions": [
            {"conditions": [cond("a", "nope")]},
            {"operator": "equals"},
        ],
    })
    assert describe_problems(group) == [
        "root: unknown combinator 'XOR'",
        "root.conditions[0].conditions[0]: unknown operator 'nope'",
        "root.conditions[1]: condition has no field",
    ]
