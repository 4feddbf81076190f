"""
Tests for the listing sort comparator and pager.

Run with: python -m pytest backend/trial_query/query/test_sorting.py -v
"""

import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from trial_query.query.pager import paginate
from trial_query.query.sorting import compare, sort_records, toggle_sort
from trial_query.schemas.query import SortKey
from trial_query.schemas.trial import TrialRecord


def _trial(trial_id, overview=None, **sections):
    data = {"trial_id": trial_id, "overview": overview or {}}
    for name, section in sections.items():
        data[name] = [section]
    return TrialRecord.model_validate(data)


def _ids(records):
    return [record.trial_id for record in records]


def test_yes_no_sort_order():
    """Ascending: Yes, No, then unset; descending is the exact reverse."""
    records = [
        _trial("unset"),
        _trial("no", results={"results_available": "No"}),
        _trial("yes", results={"results_available": True}),
    ]

    ascending = sort_records(records, SortKey(field="resultsAvailable", direction="asc"))
    assert _ids(ascending) == ["yes", "no", "unset"], f"Got {_ids(ascending)}"

    descending = sort_records(records, SortKey(field="resultsAvailable", direction="desc"))
    assert _ids(descending) == ["unset", "no", "yes"], f"Got {_ids(descending)}"


def test_numeric_and_date_sorts():
    records = [
        _trial("a", criteria={"age_from": "18"}),
        _trial("b"),
        _trial("c", criteria={"age_from": 5}),
    ]
    # Missing ages sort as 0
    assert _ids(sort_records(records, SortKey(field="ageFrom"))) == ["b", "c", "a"]
    assert _ids(sort_records(records, SortKey(field="ageFrom", direction="desc"))) == ["a", "c", "b"]

    records = [
        _trial("late", timing={"start_date_estimated": "2024-01-01"}),
        _trial("early", timing={"start_date_estimated": "2023-06-01"}),
    ]
    assert _ids(sort_records(records, SortKey(field="startDateEstimated"))) == ["early", "late"]

    # Dates whose UTC instant overflows sort like missing dates (0)
    records.append(_trial("overflow", timing={"start_date_estimated": "0001-01-01T00:00:00+01:00"}))
    assert _ids(sort_records(records, SortKey(field="startDateEstimated"))) == ["overflow", "early", "late"]


def test_text_sort_is_case_insensitive():
    records = [
        _trial("1", {"title": "beta"}),
        _trial("2", {"title": "Alpha"}),
        _trial("3", {"title": "gamma"}),
    ]
    assert _ids(sort_records(records, SortKey(field="title"))) == ["2", "1", "3"]
    assert _ids(sort_records(records, SortKey(field="title", direction="desc"))) == ["3", "1", "2"]


def test_sort_is_stable_in_both_directions():
    records = [
        _trial("first", {"title": "Same"}),
        _trial("other", {"title": "Different"}),
        _trial("second", {"title": "same"}),
    ]
    assert _ids(sort_records(records, SortKey(field="title"))) == ["other", "first", "second"]
    assert _ids(sort_records(records, SortKey(field="title", direction="desc"))) == ["first", "second", "other"]


def test_no_sort_field_keeps_input_order():
    records = [_trial("b", {"title": "B"}), _trial("a", {"title": "A"})]
    assert _ids(sort_records(records, SortKey())) == ["b", "a"]
    assert _ids(sort_records(records, SortKey(field="noSuchColumn"))) == ["b", "a"]
    assert _ids(sort_records(records, None)) == ["b", "a"]


def test_compare_three_way():
    alpha = _trial("1", {"title": "Alpha"})
    beta = _trial("2", {"title": "Beta"})

    assert compare(alpha, beta, SortKey(field="title")) == -1
    assert compare(alpha, beta, SortKey(field="title", direction="desc")) == 1
    assert compare(alpha, alpha, SortKey(field="title")) == 0
    assert compare(alpha, beta, SortKey()) == 0


def test_toggle_sort():
    current = toggle_sort(None, "title")
    assert current == SortKey(field="title", direction="asc")

    current = toggle_sort(current, "title")
    assert current.direction == "desc"

    current = toggle_sort(current, "title")
    assert current.direction == "asc"

    current = toggle_sort(SortKey(field="title", direction="desc"), "status")
    assert current == SortKey(field="status", direction="asc")


def test_paginate():
    page = paginate(list(range(23)), 2, 10)
    assert page.items == [20, 21, 22]
    assert page.total_pages == 3
    assert page.total_items == 23
    assert page.has_previous and not page.has_next

    assert paginate(list(range(23)), 5, 10).items == []
    assert paginate([], 0, 10).total_pages == 0

    # Out-of-range arguments are clamped
    page = paginate(list(range(5)), -3, 0)
    assert page.page_index == 0
    assert page.page_size == 1
    assert page.items == [0]
    assert page.total_pages == 5
