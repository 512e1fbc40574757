"""Value normalization shared by the filter engine and the report pipeline.

Record values arrive untyped (numbers, ISO date strings, enum-like strings,
``None``). The helpers here coerce them to comparable primitives and return
``None`` instead of raising when a value cannot be coerced.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from numbers import Number
from typing import Any


def get_field(record: Any, field: str, default: Any = None) -> Any:
    """Read `field` from a mapping record, or an attribute of an object record."""
    if isinstance(record, Mapping):
        return record.get(field, default)
    return getattr(record, field, default)


def is_empty(value: Any) -> bool:
    """Return True for ``None``, NaN and the empty string."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value == ""


def as_number(value: Any) -> float | None:
    """Coerce ints, floats, decimals and numeric strings to float.

    Booleans, NaN, infinities and anything else return ``None``.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    elif hasattr(value, "item"):
        # numpy scalars
        try:
            return as_number(value.item())
        except (TypeError, ValueError):
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def as_datetime(value: Any) -> datetime | None:
    """Parse dates, datetimes and ISO-8601 strings into naive UTC datetimes.

    Plain dates become midnight. Aware datetimes are converted to UTC before
    dropping the offset so that instants stay comparable with naive values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, datetime.min.time())
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    elif hasattr(value, "to_pydatetime"):
        # pandas.Timestamp
        try:
            dt = value.to_pydatetime()
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def as_date(value: Any) -> date | None:
    """Return the calendar date of a value, ignoring time of day.

    The date is taken as written: ``2024-01-31T23:30:00-05:00`` is the 31st.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        # the leading YYYY-MM-DD of an ISO string is its local calendar date
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
        dt = as_datetime(text)
        return dt.date() if dt is not None else None
    dt = as_datetime(value)
    return dt.date() if dt is not None else None


def values_equal(left: Any, right: Any) -> bool:
    """Equality after normalizing both sides to comparable primitives.

    Numbers compare numerically (``5 == "5.0"``), dates compare as instants,
    and anything else compares as case-sensitive strings. ``None`` only
    equals ``None``.
    """
    if left is None or right is None:
        return left is None and right is None
    if isinstance(left, bool) or isinstance(right, bool):
        return str(left).lower() == str(right).lower()

    if _is_numeric(left) or _is_numeric(right):
        a, b = as_number(left), as_number(right)
        if a is not None and b is not None:
            return a == b
        return False

    if _is_temporal(left) or _is_temporal(right) or (_looks_like_date(left) and _looks_like_date(right)):
        a_dt, b_dt = as_datetime(left), as_datetime(right)
        if a_dt is not None and b_dt is not None:
            return a_dt == b_dt

    return str(left) == str(right)


def _is_numeric(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _is_temporal(value: Any) -> bool:
    return isinstance(value, (date, datetime)) or hasattr(value, "to_pydatetime")


def _looks_like_date(value: Any) -> bool:
    return (
        isinstance(value, str)
        and len(value) >= 10
        and value[4:5] == "-"
        and value[7:8] == "-"
        and as_datetime(value) is not None
    )
