"""
End-to-end tests for the trial query engine.

Run with: python -m pytest backend/trial_query/query/test_engine.py -v
"""

import logging
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from trial_query.query import (
    DEFAULT_FILTERS,
    TrialQueryEngine,
    build_alias_index,
    evaluate_match,
    latest_versions,
    run_query,
    unique_field_values,
)
from trial_query.schemas.query import QueryState, SortKey
from trial_query.schemas.trial import TrialRecord

CATALOG = [
    {"drug_id": "d-1", "overview": {"drug_name": "Keytruda", "generic_name": "Pembrolizumab"}},
]


def _trial(trial_id, overview=None, **sections):
    data = {"trial_id": trial_id, "overview": overview or {}}
    for name, section in sections.items():
        data[name] = [section]
    return TrialRecord.model_validate(data)


TRIALS = [
    _trial("TB-1", {"title": "Pembrolizumab in NSCLC", "primary_drugs": "Pembrolizumab",
                    "countries": "France, Germany", "status": "Open", "disease_type": "NSCLC"},
           results={"results_available": "Yes"}),
    _trial("TB-2", {"title": "Aspirin prevention", "primary_drugs": "Aspirin",
                    "countries": "Spain", "status": "Closed"}),
    _trial("TB-3", {"title": "Keytruda combination", "primary_drugs": "Keytruda, Carboplatin",
                    "countries": "France", "status": "Open"},
           results={"results_available": "No"}),
    _trial("TB-4"),
]


def _ids(records):
    return [record.trial_id for record in records]


def test_empty_query_matches_everything():
    for trial in TRIALS:
        assert evaluate_match(trial, "", [], {}) is True
        assert evaluate_match(trial, "   ", [], DEFAULT_FILTERS) is True


def test_drug_alias_equivalence():
    """A criterion naming one alias matches records storing any alias."""
    index = build_alias_index(CATALOG)
    criteria = [{"field": "primary_drugs", "operator": "is", "value": "Keytruda"}]

    matched = [t.trial_id for t in TRIALS if evaluate_match(t, "", criteria, {}, index)]
    assert matched == ["TB-1", "TB-3"], f"Got {matched}"

    # A drug absent from the catalog matches nothing, even itself
    criteria = [{"field": "primary_drugs", "operator": "is", "value": "Aspirin"}]
    assert not any(evaluate_match(t, "", criteria, {}, index) for t in TRIALS)


def test_search_term_criteria_and_filters_are_anded():
    engine = TrialQueryEngine(build_alias_index(CATALOG))

    state = QueryState(term="nsclc")
    assert _ids(engine.filter_records(TRIALS, state)) == ["TB-1"]

    state = QueryState(
        criteria=[{"field": "countries", "operator": "contains", "value": "France"}],
        filters={"statuses": ["Open"]},
    )
    assert _ids(engine.filter_records(TRIALS, state)) == ["TB-1", "TB-3"]

    state = QueryState(
        term="keytruda",
        criteria=[{"field": "countries", "operator": "contains", "value": "France"}],
        filters={"statuses": ["Open"]},
    )
    assert _ids(engine.filter_records(TRIALS, state)) == ["TB-3"]


def test_run_query_sorts_and_pages():
    state = {"sort": {"field": "resultsAvailable", "direction": "asc"}}
    result = run_query(TRIALS, state, page_index=0, page_size=3)

    assert _ids(result.trials) == ["TB-1", "TB-3", "TB-2"]
    assert result.total_items == 4
    assert result.total_pages == 2
    assert _ids(result.matched) == ["TB-1", "TB-3", "TB-2", "TB-4"]

    second = run_query(TRIALS, state, page_index=1, page_size=3)
    assert _ids(second.trials) == ["TB-4"]


def test_run_query_accepts_raw_dicts():
    records = [{"trial_id": "TB-9", "overview": {"title": "Raw"}}]
    result = run_query(records, {"term": "raw"})
    assert _ids(result.trials) == ["TB-9"]


def test_query_is_idempotent():
    index = build_alias_index(CATALOG)
    state = QueryState(
        term="",
        criteria=[{"field": "primary_drugs", "operator": "contains", "value": "pembrolizumab"}],
        sort=SortKey(field="title", direction="desc"),
    )
    first = run_query(TRIALS, state, index)
    second = run_query(TRIALS, state, index)
    assert _ids(first.matched) == _ids(second.matched) == ["TB-1", "TB-3"]


def test_latest_versions_replace_originals():
    original = _trial("TB-10", {"title": "Study A"})
    other = _trial("TB-11", {"title": "Study B"})
    updated = _trial("TB-12", {"title": "Study A", "original_trial_id": "TB-10"})

    assert _ids(latest_versions([original, other, updated])) == ["TB-12", "TB-11"]
    assert _ids(latest_versions([updated, original])) == ["TB-12"]

    result = run_query([original, other, updated], latest_only=True)
    assert result.total_items == 2


def test_unique_field_values():
    options = unique_field_values(TRIALS, "status")
    assert [option.value for option in options] == ["Closed", "Open"]
    assert unique_field_values(TRIALS, "no_such_field") == []


def test_unknown_filter_key_warns_once(caplog):
    engine = TrialQueryEngine()
    with caplog.at_level(logging.WARNING, logger="trial_query.query.engine"):
        matched = engine.filter_records(TRIALS, QueryState(filters={"colour": ["blue"]}))

    assert len(matched) == len(TRIALS)
    warnings = [r for r in caplog.records if "colour" in r.getMessage()]
    assert len(warnings) == 1


def test_out_of_range_dates_do_not_break_queries():
    records = [
        {"trial_id": "TB-20", "overview": {"created_at": "9999-12-31T23:00:00-05:00"}},
        {"trial_id": "TB-21", "timing": [{"start_date_estimated": "0001-01-01T00:00:00+01:00"}]},
        {"trial_id": "TB-22", "timing": [{"start_date_estimated": "2024-01-01"}]},
    ]

    result = run_query(records, {
        "criteria": [{"field": "created_at", "operator": "is_not", "value": "2024-01-05"}],
        "sort": {"field": "startDateEstimated", "direction": "desc"},
    })
    assert _ids(result.matched) == ["TB-22", "TB-20", "TB-21"]

    state = {"criteria": [{"field": "created_at", "operator": "is", "value": "2024-01-05"}]}
    assert run_query(records, state).total_items == 0
