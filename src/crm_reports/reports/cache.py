"""Memoization of report results keyed by their full input tuple.

`compute_report` is a pure function of (records, filters, group_by, metric,
labels, source), so identical inputs can reuse the previous result. The
dashboard keeps one `ReportCache` per process and shares it across reruns.
"""
from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections import OrderedDict
from typing import Any

from pydantic import BaseModel

from crm_reports.config import get_settings
from crm_reports.models import ReportPoint
from crm_reports.reports.pipeline import compute_report

log = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return str(value)


def fingerprint(*parts: Any) -> str:
    """Return a stable SHA-256 hex digest of the given inputs.

    Raises:
        ValueError: if the inputs contain a reference cycle.
    """
    payload = json.dumps(parts, sort_keys=True, default=_jsonable, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ReportCache:
    """Bounded LRU cache of report results.

    - Keys are fingerprints of the whole input tuple, so a change to any
      record invalidates the entry.
    - Cached points are copied on the way out; callers cannot mutate them.
    - Thread-safe (Streamlit reruns may overlap).
    """

    def __init__(self, maxsize: int = 64):
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()
        self._items: OrderedDict[str, list[ReportPoint]] = OrderedDict()

    @classmethod
    def from_settings(cls) -> "ReportCache":
        return cls(get_settings().report_cache_size)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def get_or_compute(
        self,
        records: Any,
        filters: Any = None,
        group_by: str | None = None,
        metric: str | None = None,
        labels: Any = None,
        source: Any = None,
    ) -> list[ReportPoint]:
        """Return the cached report for these inputs, computing it on a miss."""
        records = list(records)
        try:
            key = fingerprint(records, filters, group_by, metric, labels, source)
        except (TypeError, ValueError):
            log.warning("Report inputs cannot be fingerprinted; computing uncached", exc_info=True)
            return compute_report(records, filters, group_by, metric, labels, source)

        with self._lock:
            cached = self._items.get(key)
            if cached is not None:
                self._items.move_to_end(key)
                self.hits += 1
                return [p.model_copy() for p in cached]
            self.misses += 1

        points = compute_report(records, filters, group_by, metric, labels, source)

        with self._lock:
            self._items[key] = [p.model_copy() for p in points]
            self._items.move_to_end(key)
            while len(self._items) > self.maxsize:
                self._items.popitem(last=False)
        return points
