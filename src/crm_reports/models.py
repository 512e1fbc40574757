"""Pydantic models shared by the filter engine and the report pipeline.

These models describe the declarative filter tree built by list views, the
saved-filter registry entries, the report configuration handed over by the
Reports view, and the `ReportPoint` rows it gets back.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
)

# =========================================================
# FILTER TREE
# =========================================================

class FilterCondition(BaseModel):
    """A single leaf test against one field of a record.

    Fields are parsed leniently: an unknown operator or a non-string field
    name is kept (or blanked) rather than rejected, so that one bad leaf only
    fails its own test at evaluation time.

    Attributes:
        field: Record field the condition reads.
        operator: Operator name, e.g. ``equals`` or ``before``.
        value: Right-hand operand; ignored by ``isEmpty``/``isNotEmpty``.
    """
    model_config = ConfigDict(extra="ignore")
    field: str | None = None
    operator: str | None = None
    value: Any = None

    @field_validator("field", "operator", mode="before")
    @classmethod
    def _blank_non_strings(cls, v: Any) -> str | None:
        if not isinstance(v, str):
            return None
        return v.strip() or None


def _node_kind(v: Any) -> str:
    if isinstance(v, dict):
        return "group" if "conditions" in v else "condition"
    return "group" if isinstance(v, FilterGroup) else "condition"


FilterNode = Annotated[
    Union[
        Annotated[FilterCondition, Tag("condition")],
        Annotated["FilterGroup", Tag("group")],
    ],
    Discriminator(_node_kind),
]


class FilterGroup(BaseModel):
    """A boolean combination (AND/OR) of conditions and nested groups."""
    model_config = ConfigDict(extra="ignore")
    combinator: str = "AND"
    conditions: list[FilterNode] = Field(default_factory=list)

    @field_validator("combinator", mode="before")
    @classmethod
    def _normalize_combinator(cls, v: Any) -> str:
        if v is None:
            return "AND"
        if not isinstance(v, str):
            return ""
        return v.strip().upper()


FilterGroup.model_rebuild()


class SavedFilter(BaseModel):
    """A named filter tree kept by the caller's in-memory registry."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    id: str
    name: str
    group: FilterGroup
    created_at: datetime = Field(..., alias="createdAt")


class FilterOption(BaseModel):
    """A selectable value offered by a ``select`` filter field."""
    model_config = ConfigDict(frozen=True)
    value: str
    label: str


class FilterFieldConfig(BaseModel):
    """Declares a field a list view exposes in its filter builder."""
    model_config = ConfigDict(frozen=True)
    field: str
    label: str
    type: Literal["text", "select", "date", "number"] = "text"
    options: tuple[FilterOption, ...] = ()

# =========================================================
# REPORTING
# =========================================================

class DateRange(BaseModel):
    """Inclusive calendar-date bounds; either side may be left open."""
    model_config = ConfigDict(extra="forbid")
    start: date | None = None
    end: date | None = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def _empty_is_open(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, datetime):
            return v.date()
        return v


class ReportFilters(BaseModel):
    """Date-range bound plus exact-match field filters for a report.

    Attributes:
        date_range: Bounds applied to the data source's date field.
        equals: Field → required value. ``"all"`` or an empty value leaves
            the field unconstrained.
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    date_range: DateRange = Field(default_factory=DateRange, alias="dateRange")
    equals: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ReportFilters":
        """Build filters from either the nested shape or the flat UI shape.

        The flat shape is ``{"dateRange": {...}, "status": "Open", ...}``:
        every key other than the date range is an equality filter.
        """
        rest = dict(data)
        date_range = rest.pop("date_range", None)
        camel_range = rest.pop("dateRange", None)
        date_range = date_range or camel_range or {}
        equals = dict(rest.pop("equals", None) or {})
        equals.update(rest)
        return cls.model_validate({"date_range": date_range, "equals": equals})


class LabelResolvers(BaseModel):
    """Id → display-name lookup tables, keyed by table name.

    Example: ``{"clients": {"c1": "Acme"}, "team_members": {"u1": "Ana"}}``.
    """
    model_config = ConfigDict(extra="forbid")
    tables: dict[str, dict[str, str]] = Field(default_factory=dict)

    @field_validator("tables", mode="before")
    @classmethod
    def _stringify_ids(cls, v: Any) -> Any:
        # ids may be numeric in the source collections
        if not isinstance(v, dict):
            return v
        return {
            str(table): (
                {str(k): str(name) for k, name in lookup.items() if name is not None}
                if isinstance(lookup, dict)
                else lookup
            )
            for table, lookup in v.items()
        }

    def resolve(self, table: str, key: Any) -> str | None:
        lookup = self.tables.get(table)
        if not lookup:
            return None
        name = lookup.get(str(key))
        return name or None


class DataSourceConfig(BaseModel):
    """Static description of one reportable collection.

    Attributes:
        name: Data source tag, e.g. ``donations``.
        label: Human-readable name.
        date_field: Field used by the date-range filter and month grouping.
        amount_field: Numeric field summed by amount metrics.
        tasks_field: Nested list counted by the ``taskCount`` metric.
        groupable_fields: Allowed ``group_by`` values; empty allows any field.
        metrics: Metrics offered for this source (first is the default).
        filter_fields: Filters offered for this source.
        label_tables: Group field → `LabelResolvers` table used for its labels.
    """
    model_config = ConfigDict(frozen=True)
    name: str
    label: str = ""
    date_field: str | None = None
    amount_field: str = "amount"
    tasks_field: str = "tasks"
    groupable_fields: tuple[str, ...] = ()
    metrics: tuple[str, ...] = ()
    filter_fields: tuple[FilterFieldConfig, ...] = ()
    label_tables: dict[str, str] = Field(default_factory=dict)


class ReportPoint(BaseModel):
    """One named value of a report, rendered as a bar/slice/point or table row."""
    model_config = ConfigDict(extra="forbid")
    name: str
    value: int | float
