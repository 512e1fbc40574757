"""Filterable-field declarations for the CRM list views.

Each list view hands its table to the filter builder so users can only build
conditions on fields that exist, with the right input type.
"""

from crm_reports.models import FilterFieldConfig, FilterOption

PROJECT_STATUSES = ("Planning", "In Progress", "Completed", "On Hold")
ACTIVITY_TYPES = ("Call", "Email", "Meeting", "Note")
ACTIVITY_STATUSES = ("Scheduled", "Completed")
CASE_STATUSES = ("New", "In Progress", "Resolved", "Closed")
CASE_PRIORITIES = ("Low", "Medium", "High")


def options_for(values: tuple[str, ...]) -> tuple[FilterOption, ...]:
    return tuple(FilterOption(value=v, label=v) for v in values)


PROJECT_FILTER_FIELDS: tuple[FilterFieldConfig, ...] = (
    FilterFieldConfig(field="status", label="Status", type="select", options=options_for(PROJECT_STATUSES)),
    FilterFieldConfig(field="name", label="Project Name", type="text"),
    FilterFieldConfig(field="endDate", label="End Date", type="date"),
)

ACTIVITY_FILTER_FIELDS: tuple[FilterFieldConfig, ...] = (
    FilterFieldConfig(field="type", label="Type", type="select", options=options_for(ACTIVITY_TYPES)),
    FilterFieldConfig(field="status", label="Status", type="select", options=options_for(ACTIVITY_STATUSES)),
    FilterFieldConfig(field="activityDate", label="Activity Date", type="date"),
)

CASE_FILTER_FIELDS: tuple[FilterFieldConfig, ...] = (
    FilterFieldConfig(field="status", label="Status", type="select", options=options_for(CASE_STATUSES)),
    FilterFieldConfig(field="priority", label="Priority", type="select", options=options_for(CASE_PRIORITIES)),
    FilterFieldConfig(field="createdAt", label="Created", type="date"),
)

LIST_VIEW_FILTER_FIELDS: dict[str, tuple[FilterFieldConfig, ...]] = {
    "projects": PROJECT_FILTER_FIELDS,
    "activities": ACTIVITY_FILTER_FIELDS,
    "cases": CASE_FILTER_FIELDS,
}
