"""Static configuration of the reportable CRM collections.

Each data source declares its date field, the fields it can be grouped by,
the metrics it offers and the filters its report builder shows. The pipeline
reads this table instead of branching on the source name, so adding a source
is a configuration change.
"""

from __future__ import annotations

from crm_reports.filters.fields import (
    ACTIVITY_TYPES,
    CASE_PRIORITIES,
    PROJECT_STATUSES,
    options_for,
)
from crm_reports.models import DataSourceConfig, FilterFieldConfig

MONTH = "month"

METRIC_LABELS = {
    "count": "Count",
    "totalAmount": "Total Amount",
    "avgAmount": "Average Amount",
    "taskCount": "Total Tasks",
}

GROUP_LABELS = {
    "campaign": "Campaign",
    "clientId": "Client",
    "month": "Month",
    "type": "Type",
    "createdById": "Team Member",
    "status": "Status",
    "priority": "Priority",
    "assignedToId": "Assignee",
}

_DATE_RANGE = FilterFieldConfig(field="dateRange", label="Date Range", type="date")

_PEOPLE_TABLES = {
    "clientId": "clients",
    "createdById": "team_members",
    "assignedToId": "team_members",
}

DATA_SOURCES: dict[str, DataSourceConfig] = {
    "donations": DataSourceConfig(
        name="donations",
        label="Donations",
        date_field="donationDate",
        groupable_fields=("campaign", "clientId", MONTH),
        metrics=("totalAmount", "count", "avgAmount"),
        filter_fields=(_DATE_RANGE,),
        label_tables=_PEOPLE_TABLES,
    ),
    "activities": DataSourceConfig(
        name="activities",
        label="Activities",
        date_field="activityDate",
        groupable_fields=("type", "createdById", "clientId", MONTH),
        metrics=("count",),
        filter_fields=(
            _DATE_RANGE,
            FilterFieldConfig(field="type", label="Type", type="select", options=options_for(ACTIVITY_TYPES)),
        ),
        label_tables=_PEOPLE_TABLES,
    ),
    "projects": DataSourceConfig(
        name="projects",
        label="Projects",
        date_field="startDate",
        groupable_fields=("status", "clientId"),
        metrics=("count", "taskCount"),
        filter_fields=(
            FilterFieldConfig(field="status", label="Status", type="select", options=options_for(PROJECT_STATUSES)),
        ),
        label_tables=_PEOPLE_TABLES,
    ),
    "cases": DataSourceConfig(
        name="cases",
        label="Cases",
        date_field="createdAt",
        groupable_fields=("status", "priority", "assignedToId", MONTH),
        metrics=("count",),
        filter_fields=(
            _DATE_RANGE,
            FilterFieldConfig(field="priority", label="Priority", type="select", options=options_for(CASE_PRIORITIES)),
        ),
        label_tables=_PEOPLE_TABLES,
    ),
}

# Used when a caller reports over records that are not one of the CRM
# collections: dates live in `date` and any field may be grouped.
GENERIC_SOURCE = DataSourceConfig(
    name="records",
    label="Records",
    date_field="date",
    metrics=tuple(METRIC_LABELS),
    label_tables=_PEOPLE_TABLES,
)


def get_source(name: str) -> DataSourceConfig | None:
    """Return the configuration for data source `name`, or None if unknown."""
    return DATA_SOURCES.get(name)


def default_group_by(source: DataSourceConfig) -> str:
    """First groupable field of `source` (empty when it allows any field)."""
    return source.groupable_fields[0] if source.groupable_fields else ""


def default_metric(source: DataSourceConfig) -> str:
    return source.metrics[0] if source.metrics else "count"
