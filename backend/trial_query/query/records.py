"""
Record helpers around the query engine: validation of raw dicts, collapsing
superseded record versions, and dropdown option lists.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Union

from ..schemas.query import FieldOption
from ..schemas.trial import TrialRecord
from .field_resolver import parse_field, resolve

logger = logging.getLogger(__name__)

RawRecord = Union[TrialRecord, Mapping[str, Any]]


def coerce_record(raw: RawRecord) -> TrialRecord:
    """Validate a raw record; raises ``pydantic.ValidationError`` on bad structure."""
    if isinstance(raw, TrialRecord):
        return raw
    return TrialRecord.model_validate(raw)


def coerce_records(raw_records: Iterable[RawRecord]) -> List[TrialRecord]:
    return [coerce_record(raw) for raw in raw_records or []]


def latest_versions(records: Iterable[TrialRecord]) -> List[TrialRecord]:
    """
    Collapse edited copies onto their originals.

    Records are grouped by title (falling back to ``trial_id``). A record
    carrying ``overview.original_trial_id`` is an updated version and
    replaces whatever was kept for its group; an original only fills an
    empty slot. Groups keep the position of their first record.
    """
    kept: Dict[str, TrialRecord] = {}
    for record in records:
        key = record.overview.title or record.trial_id or ""
        if record.overview.original_trial_id:
            kept[key] = record
        elif key not in kept:
            kept[key] = record

    logger.debug(f"Latest versions: {len(kept)} kept")
    return list(kept.values())


def unique_field_values(records: Iterable[TrialRecord], field_name: str) -> List[FieldOption]:
    """Sorted distinct, non-empty (trimmed) values of a field, as dropdown options."""
    field = parse_field(field_name)
    if field is None:
        logger.warning(f"No dropdown values for unknown field '{field_name}'")
        return []

    values = set()
    for record in records:
        text = resolve(record, field).text.strip()
        if text:
            values.add(text)

    return [FieldOption(value=value, label=value) for value in sorted(values)]
