"""Filter predicate engine used by the CRM list views.

Evaluates declarative AND/OR filter trees against in-memory records and
keeps the registry of named, saved filters.
"""

from .engine import apply_filter_logic, coerce_group, describe_problems, evaluate
from .saved import SavedFilterRegistry

__all__ = [
    "apply_filter_logic",
    "coerce_group",
    "describe_problems",
    "evaluate",
    "SavedFilterRegistry",
]
