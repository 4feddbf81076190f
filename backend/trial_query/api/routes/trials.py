import logging

from fastapi import APIRouter, HTTPException

from ...core.config import settings
from ...query import TrialQueryEngine, build_alias_index, unique_field_values
from ...query.field_resolver import parse_field
from ...schemas.query import (
    FieldValuesRequest,
    FieldValuesResponse,
    QueryRequest,
    QueryResponse,
    QueryState,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/query", response_model=QueryResponse)
async def query_trials(request: QueryRequest):
    """
    Search, filter, sort and paginate the supplied trial records.

    The endpoint is stateless: the caller sends the records and the drug
    catalog with every request, and the alias index is rebuilt each time.
    """
    page_size = request.page_size or settings.DEFAULT_PAGE_SIZE
    page_size = min(page_size, settings.MAX_PAGE_SIZE)

    alias_index = build_alias_index(request.drug_catalog)
    engine = TrialQueryEngine(alias_index)

    state = QueryState(
        term=request.term,
        criteria=request.criteria,
        filters=request.filters,
        sort=request.sort,
    )
    result = engine.run(
        request.records,
        state,
        page_index=request.page_index,
        page_size=page_size,
        latest_only=request.latest_only,
    )

    return QueryResponse(
        trials=result.trials,
        total_items=result.total_items,
        total_pages=result.total_pages,
        page_index=result.page_index,
        page_size=result.page_size,
    )


@router.post("/field-values", response_model=FieldValuesResponse)
async def field_values(request: FieldValuesRequest):
    """Distinct values of one field across the supplied records (for dropdowns)."""
    if parse_field(request.field) is None:
        raise HTTPException(status_code=400, detail=f"Unknown field '{request.field}'")

    options = unique_field_values(request.records, request.field)
    logger.debug(f"{len(options)} options for field '{request.field}'")
    return FieldValuesResponse(field=request.field, options=options)
