"""crm_reports package.

Contains the two pieces of the CRM with real data-transformation logic: a
declarative filter predicate engine used by list views, and the reporting
pipeline that turns project/donation/activity/case records into chart-ready
points for the Reports view.

Architecture:
- Records arrive as in-memory lists of plain mappings (JSON file or MongoDB)
- Pydantic models describe filter trees, saved filters and report points
- Pandas is used for the group/metric stages of the report pipeline
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
