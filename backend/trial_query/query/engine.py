"""
Trial query engine.

Pure function of (records, query state) -> (matching records, ordering,
page). A record survives when it matches the free-text term AND the
advanced criteria chain AND the filter selections; survivors are stably
sorted by the single active sort key and then paginated.

Nothing is cached between calls. The drug alias index is built by the
caller (``build_alias_index``) and passed in; the engine only reads it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from ..schemas.query import Criterion, QueryState
from ..schemas.trial import TrialRecord
from .alias_index import AliasIndex, build_alias_index
from .combinator import evaluate_criteria
from .field_resolver import UserNames
from .filters import matches_filters, unknown_filter_keys
from .operators import OperatorEvaluator
from .pager import Page, paginate
from .records import coerce_records, latest_versions
from .search import matches_search_term
from .sorting import compare, sort_records

logger = logging.getLogger(__name__)

CriterionLike = Union[Criterion, Mapping[str, Any]]


def _criteria(criteria: Optional[Iterable[CriterionLike]]) -> List[Criterion]:
    return [
        c if isinstance(c, Criterion) else Criterion.model_validate(c)
        for c in criteria or []
    ]


@dataclass
class QueryResult:
    """Outcome of one query pass."""
    trials: List[TrialRecord] = field(default_factory=list)  # current page
    total_items: int = 0
    total_pages: int = 0
    page_index: int = 0
    page_size: int = 10
    matched: List[TrialRecord] = field(default_factory=list)  # all survivors, sorted


class TrialQueryEngine:
    """
    Evaluates query state against in-memory trial records.

    The engine holds only read-only collaborators (alias index and the
    optional user-name directory); every call recomputes from scratch.
    """

    def __init__(self, alias_index: Optional[AliasIndex] = None, user_names: UserNames = None):
        self.alias_index = alias_index if alias_index is not None else AliasIndex()
        self.user_names = user_names
        self.evaluator = OperatorEvaluator(self.alias_index, user_names)

    def matches(
        self,
        record: TrialRecord,
        term: str = "",
        criteria: Optional[Iterable[CriterionLike]] = None,
        filters: Optional[Mapping[str, Sequence[str]]] = None
    ) -> bool:
        """True iff free-text, criteria and filters all accept ``record``."""
        if not matches_search_term(record, term):
            return False
        if not evaluate_criteria(record, _criteria(criteria), self.evaluator):
            return False
        return matches_filters(record, filters, self.alias_index, self.user_names)

    def filter_records(self, records: Iterable[TrialRecord], state: QueryState) -> List[TrialRecord]:
        """Records matching ``state``, in input order."""
        for key in unknown_filter_keys(state.filters):
            logger.warning(f"Ignoring unknown filter key '{key}'")

        return [
            record for record in records
            if self.matches(record, state.term, state.criteria, state.filters)
        ]

    def run(
        self,
        records: Iterable[Union[TrialRecord, Mapping[str, Any]]],
        state: Union[QueryState, Mapping[str, Any], None] = None,
        page_index: int = 0,
        page_size: int = 10,
        latest_only: bool = False
    ) -> QueryResult:
        """
        Full pipeline: (optional version collapse) -> match -> sort -> page.

        Args:
            records: trial records or raw record dicts
            state: term, criteria, filters and sort key
            page_index: zero-based page to return
            page_size: records per page
            latest_only: keep only the newest version of edited records

        Returns:
            QueryResult with the requested page and totals
        """
        if state is None:
            state = QueryState()
        elif not isinstance(state, QueryState):
            state = QueryState.model_validate(state)

        trials = coerce_records(records)
        if latest_only:
            trials = latest_versions(trials)

        matched = self.filter_records(trials, state)
        ordered = sort_records(matched, state.sort, self.user_names)
        page: Page[TrialRecord] = paginate(ordered, page_index, page_size)

        logger.info(
            f"Query matched {len(matched)} of {len(trials)} trials "
            f"(page {page.page_index + 1}/{max(page.total_pages, 1)})"
        )

        return QueryResult(
            trials=page.items,
            total_items=page.total_items,
            total_pages=page.total_pages,
            page_index=page.page_index,
            page_size=page.page_size,
            matched=ordered,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def evaluate_match(
    record: TrialRecord,
    term: str = "",
    criteria: Optional[Iterable[CriterionLike]] = None,
    filters: Optional[Mapping[str, Sequence[str]]] = None,
    alias_index: Optional[AliasIndex] = None
) -> bool:
    """
    Convenience function to test one record against a query.

    Example:
        evaluate_match(
            record,
            term="breast",
            criteria=[{"field": "countries", "operator": "contains", "value": "France"}],
            filters={"statuses": ["Open"]},
        )
    """
    return TrialQueryEngine(alias_index).matches(record, term, criteria, filters)


def run_query(
    records: Iterable[Union[TrialRecord, Mapping[str, Any]]],
    state: Union[QueryState, Mapping[str, Any], None] = None,
    alias_index: Optional[AliasIndex] = None,
    page_index: int = 0,
    page_size: int = 10,
    latest_only: bool = False
) -> QueryResult:
    return TrialQueryEngine(alias_index).run(records, state, page_index, page_size, latest_only)


__all__ = [
    "QueryResult",
    "TrialQueryEngine",
    "build_alias_index",
    "compare",
    "evaluate_match",
    "paginate",
    "run_query",
]
