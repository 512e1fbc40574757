from __future__ import annotations

from crm_reports.models import ReportPoint
from crm_reports.reports.formatting import (
    format_currency,
    format_value,
    is_currency_metric,
    points_to_frame,
    suggested_chart_type,
)


def test_currency_formatting() -> None:
    assert format_currency(1500) == "$1,500"
    assert format_currency(1500.5) == "$1,500.5"
    assert format_currency(-20) == "-$20"


def test_format_value_by_metric() -> None:
    assert is_currency_metric("totalAmount")
    assert not is_currency_metric("count")
    assert format_value(2500, "avgAmount") == "$2,500"
    assert format_value(1234, "count") == "1,234"
    assert format_value(2.5, "taskCount") == "2.50"


def test_points_to_frame_keeps_order() -> None:
    points = [ReportPoint(name="Jan 2024", value=100), ReportPoint(name="Feb 2024", value=50)]
    df = points_to_frame(points, "totalAmount")
    assert list(df["name"]) == ["Jan 2024", "Feb 2024"]
    assert list(df["display"]) == ["$100", "$50"]
    assert list(points_to_frame([]).columns) == ["name", "value"]


def test_suggested_chart_type() -> None:
    assert suggested_chart_type("month") == "line"
    assert suggested_chart_type("campaign") == "bar"
