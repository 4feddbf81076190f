"""
Trial Query Module

This module provides search, filter, sort and pagination over in-memory
clinical trial records for the trial listing.
"""

from .engine import (
    # Main classes
    TrialQueryEngine,
    QueryResult,

    # Convenience functions
    build_alias_index,
    compare,
    evaluate_match,
    paginate,
    run_query,
)
from .alias_index import AliasIndex
from .field_resolver import FieldKind, TrialField, resolve
from .filters import DEFAULT_FILTERS, FILTER_TABLE, MatchMode, empty_filters, matches_filters
from .operators import Operator, OperatorEvaluator
from .pager import Page
from .records import latest_versions, unique_field_values
from .sorting import SortDirection, sort_records, toggle_sort

__all__ = [
    "TrialQueryEngine",
    "QueryResult",
    "build_alias_index",
    "compare",
    "evaluate_match",
    "paginate",
    "run_query",
    "AliasIndex",
    "FieldKind",
    "TrialField",
    "resolve",
    "DEFAULT_FILTERS",
    "FILTER_TABLE",
    "MatchMode",
    "empty_filters",
    "matches_filters",
    "Operator",
    "OperatorEvaluator",
    "Page",
    "latest_versions",
    "unique_field_values",
    "SortDirection",
    "sort_records",
    "toggle_sort",
]
