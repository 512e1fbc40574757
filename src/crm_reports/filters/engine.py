"""Declarative filter evaluation for list views.

A filter is a `FilterGroup` tree: each node is either a `FilterCondition`
leaf or a nested group joined by ``AND``/``OR``. `evaluate` decides a single
record and `apply_filter_logic` filters a collection, keeping the original
order.

Evaluation never raises. An unknown operator, unknown combinator or a
condition missing its field is a non-match for that node only, so one bad
saved filter cannot break a whole list view. Problems are reported through
the module logger.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from crm_reports.models import FilterCondition, FilterGroup
from crm_reports.normalize import (
    as_date,
    as_datetime,
    as_number,
    get_field,
    is_empty,
    values_equal,
)

log = logging.getLogger(__name__)

COMBINATORS = ("AND", "OR")


# --------------------------------------------------
# Operators
# --------------------------------------------------
def _compare(left: Any, right: Any) -> int | None:
    """Three-way compare as numbers, else as instants; None if incomparable."""
    a, b = as_number(left), as_number(right)
    if a is not None and b is not None:
        return (a > b) - (a < b)
    a_dt, b_dt = as_datetime(left), as_datetime(right)
    if a_dt is not None and b_dt is not None:
        return (a_dt > b_dt) - (a_dt < b_dt)
    return None


def _compare_dates(left: Any, right: Any) -> int | None:
    a, b = as_date(left), as_date(right)
    if a is None or b is None:
        return None
    return (a > b) - (a < b)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).casefold()


def _contains(field_value: Any, value: Any) -> bool:
    haystack, needle = _text(field_value), _text(value)
    if haystack is None or needle is None:
        return False
    return needle in haystack


def _starts_with(field_value: Any, value: Any) -> bool:
    haystack, needle = _text(field_value), _text(value)
    return haystack is not None and needle is not None and haystack.startswith(needle)


def _ends_with(field_value: Any, value: Any) -> bool:
    haystack, needle = _text(field_value), _text(value)
    return haystack is not None and needle is not None and haystack.endswith(needle)


def _greater_than(field_value: Any, value: Any) -> bool:
    return _compare(field_value, value) == 1


def _less_than(field_value: Any, value: Any) -> bool:
    return _compare(field_value, value) == -1


def _before(field_value: Any, value: Any) -> bool:
    return _compare_dates(field_value, value) == -1


def _after(field_value: Any, value: Any) -> bool:
    return _compare_dates(field_value, value) == 1


def _one_of(field_value: Any, value: Any) -> bool:
    if not isinstance(value, (list, tuple, set, frozenset)):
        return False
    return any(values_equal(field_value, item) for item in value)


def _between(field_value: Any, value: Any) -> bool:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return False
    low, high = value
    lower = _compare(field_value, low)
    upper = _compare(field_value, high)
    return lower is not None and upper is not None and lower >= 0 and upper <= 0


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": values_equal,
    "notEquals": lambda fv, v: not values_equal(fv, v),
    "contains": _contains,
    "notContains": lambda fv, v: not _contains(fv, v),
    "startsWith": _starts_with,
    "endsWith": _ends_with,
    "greaterThan": _greater_than,
    "lessThan": _less_than,
    "before": _before,
    "after": _after,
    "isEmpty": lambda fv, _: is_empty(fv),
    "isNotEmpty": lambda fv, _: not is_empty(fv),
    "in": _one_of,
    "between": _between,
}


# --------------------------------------------------
# Tree handling
# --------------------------------------------------
def coerce_group(group: FilterGroup | Mapping[str, Any] | None) -> FilterGroup | None:
    """Return `group` as a `FilterGroup`, parsing plain dicts.

    Raises:
        pydantic.ValidationError: if a dict cannot be parsed as a filter tree.
        TypeError: if `group` is neither a model, a mapping nor ``None``.
    """
    if group is None or isinstance(group, FilterGroup):
        return group
    if isinstance(group, Mapping):
        return FilterGroup.model_validate(dict(group))
    raise TypeError(f"Unsupported filter group type: {type(group).__name__}")


def describe_problems(group: FilterGroup | None, path: str = "root") -> list[str]:
    """List every node of `group` that will fail closed during evaluation.

    Args:
        group: Filter tree to inspect.
        path: Label of `group` used as a prefix in the messages.

    Returns:
        Human-readable problem descriptions in tree order; empty when the
        tree is sound.
    """
    if group is None:
        return []

    problems: list[str] = []
    stack: list[tuple[str, FilterCondition | FilterGroup]] = [(path, group)]
    while stack:
        node_path, node = stack.pop()
        if isinstance(node, FilterGroup):
            if node.combinator not in COMBINATORS:
                problems.append(f"{node_path}: unknown combinator {node.combinator!r}")
            children = [(f"{node_path}.conditions[{i}]", c) for i, c in enumerate(node.conditions)]
            stack.extend(reversed(children))
        elif node.field is None:
            problems.append(f"{node_path}: condition has no field")
        elif node.operator not in OPERATORS:
            problems.append(f"{node_path}: unknown operator {node.operator!r}")
    return problems


def _evaluate_condition(record: Any, condition: FilterCondition) -> bool:
    if condition.field is None:
        return False
    op = OPERATORS.get(condition.operator or "")
    if op is None:
        return False

    try:
        return bool(op(get_field(record, condition.field), condition.value))
    except Exception:
        log.warning(
            "Filter condition %s %s failed; treating as non-match",
            condition.field,
            condition.operator,
            exc_info=True,
        )
        return False


def _evaluate_group(record: Any, group: FilterGroup) -> bool:
    """Short-circuit AND/OR evaluation using an explicit stack.

    Each frame is ``[group, next_child_index]``. `value` carries the result of
    the child that just finished back to its parent frame.
    """
    stack: list[list[Any]] = [[group, 0]]
    value: bool | None = None
    while stack:
        frame = stack[-1]
        current, i = frame
        combinator = current.combinator

        if value is not None:
            if (combinator == "AND" and not value) or (combinator == "OR" and value):
                stack.pop()
                continue
            value = None

        if not current.conditions:
            value = True
            stack.pop()
            continue
        if combinator not in COMBINATORS:
            value = False
            stack.pop()
            continue
        if i >= len(current.conditions):
            value = combinator == "AND"
            stack.pop()
            continue

        node = current.conditions[i]
        frame[1] = i + 1
        if isinstance(node, FilterGroup):
            stack.append([node, 0])
        else:
            value = _evaluate_condition(record, node)
    return bool(value)


def _prepare(group: Any) -> tuple[bool, FilterGroup | None]:
    """Coerce and sanity-check `group`; returns (usable, group)."""
    try:
        parsed = coerce_group(group)
    except (ValidationError, TypeError, RecursionError) as exc:
        log.warning("Malformed filter group ignored; matching nothing: %s", exc)
        return False, None

    for problem in describe_problems(parsed):
        log.warning("Filter node fails closed: %s", problem)
    return True, parsed


# --------------------------------------------------
# Public API
# --------------------------------------------------
def evaluate(record: Any, group: FilterGroup | Mapping[str, Any] | None) -> bool:
    """Return True when `record` satisfies `group`.

    Args:
        record: Mapping (or object) holding the record's fields.
        group: Filter tree, its dict form, or ``None`` for "no active filter".

    Returns:
        True for ``None`` and for a group with no conditions; otherwise the
        short-circuit AND/OR evaluation of the tree.
    """
    usable, parsed = _prepare(group)
    if not usable:
        return False
    if parsed is None:
        return True
    return _evaluate_group(record, parsed)


def apply_filter_logic(
    records: Iterable[Any],
    group: FilterGroup | Mapping[str, Any] | None,
) -> list[Any]:
    """Return the records that satisfy `group`, in their original order.

    No reordering and no deduplication. With ``group=None`` every record is
    returned.
    """
    items = list(records)
    usable, parsed = _prepare(group)
    if not usable:
        return []
    if parsed is None:
        return items

    out = [r for r in items if _evaluate_group(r, parsed)]
    log.debug("Filter kept %d of %d records", len(out), len(items))
    return out
