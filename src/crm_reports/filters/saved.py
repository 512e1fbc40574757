"""In-memory registry of saved (named) filter trees.

The registry is append-only: a saved filter is frozen and can only be
superseded by saving a new one under another id.
"""
from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Mapping
from datetime import datetime, timezone
from typing import Any

from crm_reports.filters.engine import coerce_group
from crm_reports.models import FilterGroup, SavedFilter

log = logging.getLogger(__name__)


class SavedFilterRegistry:
    """Keeps `SavedFilter`s in the order they were saved.

    Ids follow the ``filter-<epoch milliseconds>`` scheme; a numeric suffix
    is appended when two filters are saved within the same millisecond.
    """

    def __init__(self) -> None:
        self._filters: dict[str, SavedFilter] = {}

    def _next_id(self) -> str:
        base = f"filter-{time.time_ns() // 1_000_000}"
        candidate = base
        n = 1
        while candidate in self._filters:
            n += 1
            candidate = f"{base}-{n}"
        return candidate

    def save(self, name: str, group: FilterGroup | Mapping[str, Any]) -> SavedFilter:
        """Save `group` under `name` and return the new `SavedFilter`.

        Raises:
            ValueError: if `name` is blank.
            pydantic.ValidationError: if `group` is a dict that is not a filter tree.
        """
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValueError("Saved filter name must not be blank")

        parsed = coerce_group(group) or FilterGroup()
        saved = SavedFilter(
            id=self._next_id(),
            name=clean_name,
            group=parsed.model_copy(deep=True),
            created_at=datetime.now(timezone.utc),
        )
        self._filters[saved.id] = saved
        log.info("Saved filter %s (%s)", saved.id, saved.name)
        return saved

    def get(self, filter_id: str) -> SavedFilter | None:
        return self._filters.get(filter_id)

    def list(self) -> list[SavedFilter]:
        return list(self._filters.values())

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[SavedFilter]:
        return iter(self.list())
