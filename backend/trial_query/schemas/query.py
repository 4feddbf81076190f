from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional, Union

from .trial import DrugCatalogEntry, TrialRecord


class Criterion(BaseModel):
    """One advanced-search clause, chained to the next one via ``logic``."""
    id: Optional[str] = None
    field: str
    operator: str = Field("contains", description="contains, is, is_not, starts_with, ...")
    value: Union[str, List[str]] = ""
    logic: Literal["AND", "OR"] = "AND"


class SortKey(BaseModel):
    """Single active sort column; an empty field keeps input order."""
    field: str = ""
    direction: Literal["asc", "desc"] = "asc"


class QueryState(BaseModel):
    """Everything the listing page feeds into one evaluation pass."""
    term: str = ""
    criteria: List[Criterion] = Field(default_factory=list)
    filters: Dict[str, List[str]] = Field(default_factory=dict)
    sort: SortKey = Field(default_factory=SortKey)


class QueryRequest(QueryState):
    """Request body for the stateless query endpoint."""
    records: List[TrialRecord] = Field(default_factory=list)
    drug_catalog: List[DrugCatalogEntry] = Field(default_factory=list)
    latest_only: bool = Field(False, description="Collapse superseded record versions first")
    page_index: int = Field(0, description="Zero-based page index")
    page_size: Optional[int] = None


class QueryResponse(BaseModel):
    trials: List[TrialRecord] = Field(default_factory=list)
    total_items: int = 0
    total_pages: int = 0
    page_index: int = 0
    page_size: int = 0


class FieldValuesRequest(BaseModel):
    field: str
    records: List[TrialRecord] = Field(default_factory=list)


class FieldOption(BaseModel):
    value: str
    label: str


class FieldValuesResponse(BaseModel):
    field: str
    options: List[FieldOption] = Field(default_factory=list)
