"""
Tests for the filter-panel matcher.

Run with: python -m pytest backend/trial_query/query/test_filters.py -v
"""

import logging
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from trial_query.query.alias_index import build_alias_index
from trial_query.query.filters import (
    DEFAULT_FILTERS,
    FILTER_TABLE,
    MatchMode,
    check_drug_aliases,
    check_exact,
    check_numeric,
    check_partial,
    check_results_presence,
    check_tags,
    empty_filters,
    matches_filters,
)
from trial_query.schemas.trial import TrialRecord

INDEX = build_alias_index([
    {"overview": {"drug_name": "Keytruda", "generic_name": "Pembrolizumab"}},
])


def _trial(**sections):
    overview = sections.pop("overview", {})
    data = {"trial_id": "TB-000001", "overview": overview}
    for name, section in sections.items():
        data[name] = [section]
    return TrialRecord.model_validate(data)


def test_filter_table_modes():
    assert FILTER_TABLE["statuses"].mode == MatchMode.EXACT
    assert FILTER_TABLE["countries"].mode == MatchMode.PARTIAL
    assert FILTER_TABLE["primaryDrugs"].mode == MatchMode.ALIAS
    assert FILTER_TABLE["totalSites"].mode == MatchMode.NUMERIC_RANGE
    assert set(DEFAULT_FILTERS) == set(FILTER_TABLE)
    assert all(values == [] for values in empty_filters().values())


def test_check_exact():
    assert check_exact([], "anything") is True
    assert check_exact(["Open"], None) is False
    assert check_exact(["Open"], "Open") is True
    assert check_exact(["Phase I/II"], "phase_1_2") is True
    assert check_exact(["Phase 2"], "phase_ii") is True
    assert check_exact(["OPEN"], "open") is True
    assert check_exact(["development_in_progress"], "Development In Progress (DIP)") is True
    assert check_exact(["Solid Tumor, Unspecified"], "solid_tumor_unspecified") is True
    assert check_exact(["Closed"], "Open") is False


def test_check_partial():
    assert check_partial(["germany"], "France, Germany") is True
    assert check_partial(["solid tumor"], "Solid_Tumor_Unspecified") is True
    assert check_partial(["non-small cell"], "Non Small Cell Lung Cancer") is True
    assert check_partial(["Spain"], "France, Germany") is False
    assert check_partial(["Spain"], "") is False


def test_check_numeric_ranges():
    assert check_numeric(["25"], 25) is True
    assert check_numeric(["10-50"], 25) is True
    assert check_numeric(["10-50"], 51) is False
    assert check_numeric(["1000+"], "1,500") is True
    assert check_numeric(["<10"], 12) is False
    assert check_numeric([">10"], 12) is True
    assert check_numeric(["<10", "100+"], 150) is True
    assert check_numeric(["10-50"], None) is False


def test_check_tags():
    assert check_tags(["first in class"], "first_in_class, biomarker_driven") is True
    assert check_tags(["Biomarker_Driven"], "biomarker_driven") is True
    assert check_tags(["rare disease"], "first_in_class") is False


def test_check_drug_aliases():
    assert check_drug_aliases(["Keytruda"], "Pembrolizumab, Carboplatin", INDEX) is True
    assert check_drug_aliases(["Carboplatin"], "Pembrolizumab, Carboplatin", INDEX) is True
    # No substring matches
    assert check_drug_aliases(["Pembro"], "Pembrolizumab", INDEX) is False
    assert check_drug_aliases(["Keytruda"], None, INDEX) is False


def test_check_results_presence():
    assert check_results_presence(["Yes"], "Positive") is True
    assert check_results_presence(["Yes"], "") is False
    assert check_results_presence(["No"], "") is True
    assert check_results_presence(["No"], "Positive") is False
    assert check_results_presence(["Yes", "No"], "") is True


def test_matches_filters_and_across_or_within():
    trial = _trial(
        overview={"status": "Open", "countries": "France, Germany", "primary_drugs": "Pembrolizumab"},
        sites={"total": "1,200"},
        results={"trial_outcome": "Positive"},
    )

    assert matches_filters(trial, {}) is True
    assert matches_filters(trial, empty_filters()) is True
    assert matches_filters(trial, DEFAULT_FILTERS) is True
    assert matches_filters(trial, {"statuses": ["Closed", "Open"], "countries": ["Germany"]}) is True
    assert matches_filters(trial, {"statuses": ["Open"], "countries": ["Spain"]}) is False
    assert matches_filters(trial, {"totalSites": ["1000+"]}) is True
    assert matches_filters(trial, {"resultsAvailable": ["Yes"]}) is True
    assert matches_filters(trial, {"primaryDrugs": ["Keytruda"]}, INDEX) is True
    assert matches_filters(trial, {"primaryDrugs": ["Keytruda"]}) is False


def test_unknown_filter_key_is_ignored(caplog):
    trial = _trial(overview={"status": "Open"})
    with caplog.at_level(logging.DEBUG, logger="trial_query.query.filters"):
        assert matches_filters(trial, {"colour": ["blue"]}) is True
    assert "colour" in caplog.text
