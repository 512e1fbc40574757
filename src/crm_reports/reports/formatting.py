"""Presentation helpers for report points (table view and chart layer)."""
from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from crm_reports.models import ReportPoint
from crm_reports.reports.sources import MONTH


def is_currency_metric(metric: str | None) -> bool:
    """True for metrics whose values are money (``totalAmount``, ``avgAmount``)."""
    name = (metric or "").lower()
    return "amount" in name or "total" in name


def format_currency(value: float) -> str:
    """Format a USD amount with no forced cents: ``$1,500`` or ``$1,500.5``."""
    text = f"{abs(value):,.2f}".rstrip("0").rstrip(".")
    sign = "-" if value < 0 else ""
    return f"{sign}${text}"


def format_value(value: int | float, metric: str | None) -> str:
    if is_currency_metric(metric):
        return format_currency(value)
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.2f}"
    return f"{int(value):,}"


def points_to_frame(points: Sequence[ReportPoint], metric: str | None = None) -> pd.DataFrame:
    """Return report points as a DataFrame with `name` and `value` columns.

    When `metric` is given a `display` column holds the formatted value.
    Row order follows `points`.
    """
    df = pd.DataFrame([p.model_dump() for p in points], columns=["name", "value"])
    if metric is not None:
        df["display"] = [format_value(v, metric) for v in df["value"]]
    return df


def suggested_chart_type(group_by: str | None) -> str:
    """Line charts for time series, bar charts otherwise."""
    return "line" if group_by == MONTH else "bar"
