"""
Sort comparator for the trial listing.

One active sort key at a time. Values are compared by type:

- Yes/No columns (results available, endpoints met, healthy volunteers)
  by ordinal: Yes=1, No=2, anything else=3, so ascending shows Yes first
  and unset last
- numbers and dates (as timestamps) numerically, absent values as 0
- text case-insensitively
- mixed types as strings

Sorting is stable and has no tie-break key: equal values keep their input
order, in both directions.
"""

import functools
import logging
from enum import Enum
from typing import List, Optional, Sequence, Union

from ..schemas.query import SortKey
from ..schemas.trial import TrialRecord
from .field_resolver import FIELD_TABLE, FieldKind, TrialField, UserNames, parse_sort_field, resolve
from .values import NumberValue, TimestampValue, TriStateValue, parse_number_or_zero

logger = logging.getLogger(__name__)

SortValue = Union[int, float, str]


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


def sort_value(record: TrialRecord, field: Optional[TrialField], user_names: UserNames = None) -> SortValue:
    """Comparable value of ``field`` on ``record``."""
    if field is None:
        return ""

    value = resolve(record, field, user_names)
    kind = FIELD_TABLE[field].kind

    if kind == FieldKind.TRI_STATE and isinstance(value, TriStateValue):
        return int(value.state)
    if isinstance(value, NumberValue):
        return parse_number_or_zero(value.number)
    if isinstance(value, TimestampValue):
        return value.timestamp if value.timestamp is not None else 0
    return value.text


def _compare_values(left: SortValue, right: SortValue) -> int:
    both_numeric = isinstance(left, (int, float)) and isinstance(right, (int, float))
    if not both_numeric:
        # Text and mixed pairs compare as case-folded strings
        left, right = str(left).casefold(), str(right).casefold()
    return (left > right) - (left < right)


def _direction(sort_key: SortKey) -> int:
    return -1 if sort_key.direction == SortDirection.DESC.value else 1


def compare(record_a: TrialRecord, record_b: TrialRecord, sort_key: SortKey, user_names: UserNames = None) -> int:
    """
    Three-way comparison of two records under ``sort_key``.

    Returns -1, 0 or 1. An empty sort field compares everything equal.
    """
    if not sort_key.field:
        return 0
    field = parse_sort_field(sort_key.field)
    result = _compare_values(
        sort_value(record_a, field, user_names),
        sort_value(record_b, field, user_names)
    )
    return result * _direction(sort_key)


def sort_records(
    records: Sequence[TrialRecord],
    sort_key: Optional[SortKey],
    user_names: UserNames = None
) -> List[TrialRecord]:
    """Stable sort; returns a new list and never reorders ``records`` in place."""
    if sort_key is None or not sort_key.field:
        return list(records)

    field = parse_sort_field(sort_key.field)
    if field is None:
        logger.debug(f"Unknown sort field '{sort_key.field}', keeping input order")
        return list(records)

    direction = _direction(sort_key)
    keyed = [(sort_value(record, field, user_names), record) for record in records]
    keyed.sort(key=functools.cmp_to_key(lambda a, b: _compare_values(a[0], b[0]) * direction))
    return [record for _, record in keyed]


def toggle_sort(current: Optional[SortKey], field: str) -> SortKey:
    """Column-header click: same column flips direction, a new one starts ascending."""
    if current is not None and current.field == field:
        flipped = SortDirection.ASC if current.direction == SortDirection.DESC.value else SortDirection.DESC
        return SortKey(field=field, direction=flipped.value)
    return SortKey(field=field, direction=SortDirection.ASC.value)
