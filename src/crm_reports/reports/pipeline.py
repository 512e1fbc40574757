"""Report pipeline: filter → group → metric → label → order.

Turns a flat record collection into a short, ordered list of `ReportPoint`s
that the Reports view renders as a bar/line/pie chart or as a table.

Expectations:
- Input: a list of records (mappings) from one data source, the report
  filters, a ``group_by`` field, a metric name and the label lookup tables.
- Output: ``list[ReportPoint]``. A missing or invalid configuration yields an
  empty list; no exception leaves `compute_report`.

Each stage is a pure function and can be called on its own. Inputs are never
mutated.
"""
from __future__ import annotations

import locale
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from numbers import Number
from typing import Any, NamedTuple

import pandas as pd
from pydantic import ValidationError

from crm_reports.models import (
    DataSourceConfig,
    LabelResolvers,
    ReportFilters,
    ReportPoint,
)
from crm_reports.normalize import as_date, as_number, get_field, is_empty, values_equal
from crm_reports.reports.sources import GENERIC_SOURCE, MONTH, get_source

log = logging.getLogger(__name__)

METRICS = ("count", "totalAmount", "avgAmount", "taskCount")
UNCONSTRAINED = "all"


@dataclass(frozen=True)
class GroupedBucket:
    """Records sharing one group key.

    Attributes:
        key: Text form of the group value (see `bucket_key`), or a
            ``YYYY-MM`` string when grouping by month.
        items: Records of the bucket in their original order.
    """
    key: Any
    items: tuple[Any, ...]


class _Row(NamedTuple):
    key: Any
    point: ReportPoint
    resolved: bool


# =========================================================
# FILTER STAGE
# =========================================================

def _is_unconstrained(value: Any) -> bool:
    return value is None or value == "" or value == UNCONSTRAINED


def filter_records(
    records: Iterable[Any],
    filters: ReportFilters,
    source: DataSourceConfig,
) -> list[Any]:
    """Apply the inclusive date range and the equality filters.

    The date range reads `source.date_field` and compares calendar dates, so
    a record dated ``2024-01-31T18:00`` passes ``end=2024-01-31``. Records
    whose date is missing or unparsable fail a bound that is set. Sources
    without a date field ignore the range.

    Args:
        records: Base collection.
        filters: Date range and field → value equality filters.
        source: Data source configuration.

    Returns:
        The surviving records, in their original order.
    """
    start = filters.date_range.start
    end = filters.date_range.end
    bounded = (start is not None or end is not None) and bool(source.date_field)
    equals = {k: v for k, v in filters.equals.items() if not _is_unconstrained(v)}

    out: list[Any] = []
    for rec in records:
        if bounded:
            day = as_date(get_field(rec, source.date_field))
            if day is None:
                continue
            if start is not None and day < start:
                continue
            if end is not None and day > end:
                continue
        if all(values_equal(get_field(rec, k), v) for k, v in equals.items()):
            out.append(rec)
    return out


# =========================================================
# GROUP STAGE
# =========================================================

def month_key(value: Any) -> str | None:
    """Return the zero-padded ``YYYY-MM`` bucket of a date value."""
    day = as_date(value)
    if day is None:
        return None
    return f"{day.year:04d}-{day.month:02d}"


def bucket_key(value: Any) -> str | None:
    """Return the text key a group-by value is bucketed under.

    Values sharing a display form share a bucket: ``1``, ``1.0`` and ``"1"``
    all land in ``"1"``, while ``True`` becomes ``"true"`` and stays apart
    from ``1``. ``None`` and NaN have no key.
    """
    if is_empty(value) and not isinstance(value, str):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Number):
        number = as_number(value)
        if number is None:
            return None
        return str(_tidy(number))
    return str(value)


def group_records(
    records: Sequence[Any],
    group_by: str | None,
    source: DataSourceConfig,
) -> list[GroupedBucket]:
    """Partition records into buckets keyed by the `group_by` field.

    ``group_by="month"`` derives a ``YYYY-MM`` key from `source.date_field`.
    Records with a null key are dropped. Buckets come out in first-seen key
    order.
    """
    if not group_by or not records:
        return []

    if group_by == MONTH:
        date_field = source.date_field
        keys = [month_key(get_field(r, date_field)) if date_field else None for r in records]
    else:
        keys = [bucket_key(get_field(r, group_by)) for r in records]

    frame = pd.DataFrame({"key": pd.Series(keys, dtype=object)})
    buckets: list[GroupedBucket] = []
    for key, part in frame.groupby("key", sort=False, dropna=True):
        buckets.append(
            GroupedBucket(key=key, items=tuple(records[i] for i in part.index))
        )
    return buckets


# =========================================================
# METRIC STAGE
# =========================================================

def _tidy(number: float) -> int | float:
    return int(number) if float(number).is_integer() else float(number)


def _amounts(items: Sequence[Any], field: str) -> pd.Series:
    # non-numeric amounts contribute 0 instead of poisoning the sum with NaN
    values = [as_number(get_field(i, field)) for i in items]
    return pd.Series(values, dtype=float).fillna(0.0)


def _task_count(value: Any) -> int:
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value)
    return 0


def compute_metric(bucket: GroupedBucket, metric: str, source: DataSourceConfig) -> int | float:
    """Reduce a bucket to a single number.

    Metrics:
        count: number of records.
        totalAmount: sum of `source.amount_field`.
        avgAmount: mean of `source.amount_field` (0 for an empty bucket).
        taskCount: total length of the nested `source.tasks_field` lists.

    Unknown metrics fall back to ``count``.
    """
    items = bucket.items
    if metric in ("totalAmount", "avgAmount"):
        total = float(_amounts(items, source.amount_field).sum())
        if metric == "totalAmount":
            return _tidy(total)
        return _tidy(total / len(items)) if items else 0
    if metric == "taskCount":
        return int(sum(_task_count(get_field(i, source.tasks_field)) for i in items))
    return len(items)


# =========================================================
# LABEL STAGE
# =========================================================

def month_label(key: str) -> str:
    """Render a ``YYYY-MM`` key as a localized ``"Mon YYYY"`` label."""
    try:
        year, month = (int(part) for part in str(key).split("-", 1))
        return datetime(year, month, 1).strftime("%b %Y")
    except ValueError:
        return str(key)


def label_for(
    key: Any,
    group_by: str,
    labels: LabelResolvers,
    source: DataSourceConfig,
) -> tuple[str, bool]:
    """Return ``(display_name, resolved)`` for a bucket key.

    Unresolved ids fall back to the raw key, never to a blank label.
    """
    if group_by == MONTH:
        return month_label(key), True
    table = source.label_tables.get(group_by)
    if table:
        name = labels.resolve(table, key)
        if name:
            return name, True
    return str(key), False


# =========================================================
# ORDER STAGE
# =========================================================

def order_points(rows: Sequence[_Row], group_by: str) -> list[ReportPoint]:
    """Order points for display.

    Month buckets are chronological. When every key is unresolved and reads
    as a number the buckets sort numerically. Otherwise they sort by display
    name with locale-aware collation. The sort is stable, so ties keep
    first-seen order.
    """
    if group_by == MONTH:
        ordered = sorted(rows, key=lambda r: str(r.key))
    elif rows and all(not r.resolved and as_number(r.key) is not None for r in rows):
        ordered = sorted(rows, key=lambda r: as_number(r.key))
    else:
        ordered = sorted(rows, key=lambda r: locale.strxfrm(r.point.name))
    return [r.point for r in ordered]


# =========================================================
# PIPELINE
# =========================================================

def resolve_source(source: DataSourceConfig | str | None) -> DataSourceConfig | None:
    if source is None:
        return GENERIC_SOURCE
    if isinstance(source, DataSourceConfig):
        return source
    return get_source(str(source))


def resolve_filters(filters: ReportFilters | Mapping[str, Any] | None) -> ReportFilters:
    """Coerce caller filters into `ReportFilters`.

    Raises:
        pydantic.ValidationError: if a mapping holds invalid dates.
    """
    if filters is None:
        return ReportFilters()
    if isinstance(filters, ReportFilters):
        return filters
    return ReportFilters.from_mapping(dict(filters))


def resolve_labels(labels: LabelResolvers | Mapping[str, Any] | None) -> LabelResolvers:
    """Coerce caller lookup tables into `LabelResolvers`.

    Accepts ``{"tables": {...}}`` or the bare ``{"clients": {...}}`` form.
    """
    if labels is None:
        return LabelResolvers()
    if isinstance(labels, LabelResolvers):
        return labels
    data = dict(labels)
    if set(data) == {"tables"}:
        return LabelResolvers.model_validate(data)
    return LabelResolvers(tables=data)


def compute_report(
    records: Iterable[Any],
    filters: ReportFilters | Mapping[str, Any] | None = None,
    group_by: str | None = None,
    metric: str | None = None,
    labels: LabelResolvers | Mapping[str, Any] | None = None,
    source: DataSourceConfig | str | None = None,
) -> list[ReportPoint]:
    """Run the full report pipeline.

    Args:
        records: Base collection of the data source.
        filters: Date range and equality filters (model or dict form).
        group_by: Field to group by, or ``"month"``.
        metric: One of ``count``, ``totalAmount``, ``avgAmount``, ``taskCount``.
        labels: Id → display-name lookup tables.
        source: Data source tag (e.g. ``"donations"``) or configuration;
            defaults to generic records dated by a ``date`` field.

    Returns:
        Ordered report points; empty when the configuration is incomplete
        or invalid.
    """
    cfg = resolve_source(source)
    if cfg is None:
        log.warning("Unknown data source %r; no report data", source)
        return []

    if not group_by:
        log.info("No group-by selected for %s; no report data", cfg.name)
        return []
    if cfg.groupable_fields and group_by not in cfg.groupable_fields:
        log.warning("%s cannot be grouped by %r; no report data", cfg.name, group_by)
        return []

    if not metric:
        log.info("No metric selected for %s; no report data", cfg.name)
        return []
    if metric not in METRICS:
        log.info("Unknown metric %r; falling back to count", metric)
        metric = "count"

    try:
        report_filters = resolve_filters(filters)
    except (ValidationError, TypeError, ValueError) as exc:
        log.warning("Invalid report filters for %s: %s", cfg.name, exc)
        return []

    try:
        resolvers = resolve_labels(labels)
    except (ValidationError, TypeError, ValueError) as exc:
        log.warning("Invalid label tables ignored; showing raw keys: %s", exc)
        resolvers = LabelResolvers()

    try:
        kept = filter_records(records, report_filters, cfg)
        buckets = group_records(kept, group_by, cfg)

        rows: list[_Row] = []
        for bucket in buckets:
            name, resolved = label_for(bucket.key, group_by, resolvers, cfg)
            value = compute_metric(bucket, metric, cfg)
            rows.append(_Row(bucket.key, ReportPoint(name=name, value=value), resolved))

        points = order_points(rows, group_by)
    except Exception:
        log.exception("Report computation failed for %s", cfg.name)
        return []

    log.debug(
        "Report %s by %s (%s): %d records → %d points",
        cfg.name,
        group_by,
        metric,
        len(kept),
        len(points),
    )
    return points
