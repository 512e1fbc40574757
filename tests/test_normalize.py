from __future__ import annotations

from decimal import Decimal

import numpy as np
from crm_reports.normalize import as_number, is_empty, values_equal


def test_numpy_scalars_compare_numerically() -> None:
    assert values_equal(np.int64(5), "5.0")
    assert values_equal("5.0", np.int64(5))
    assert values_equal(np.float64(2.5), Decimal("2.5"))
    assert not values_equal(np.int64(5), "five")


def test_as_number_rejects_bools_and_nan() -> None:
    assert as_number(True) is None
    assert as_number(float("nan")) is None
    assert as_number("1,250") == 1250.0


def test_is_empty() -> None:
    assert is_empty(None)
    assert is_empty("")
    assert not is_empty(0)
    assert not is_empty(False)
