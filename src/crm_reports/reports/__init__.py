"""Reporting pipeline for the CRM Reports view.

Filters, groups and reduces a data source's records into ordered
`ReportPoint`s, using the static data source table in `sources`.
"""

from .cache import ReportCache
from .pipeline import GroupedBucket, compute_report
from .sources import DATA_SOURCES, GENERIC_SOURCE, get_source

__all__ = [
    "compute_report",
    "DATA_SOURCES",
    "GENERIC_SOURCE",
    "get_source",
    "GroupedBucket",
    "ReportCache",
]
