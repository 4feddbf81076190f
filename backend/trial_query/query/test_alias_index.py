"""
Tests for the drug alias index.

Run with: python -m pytest backend/trial_query/query/test_alias_index.py -v
"""

import sys
from pathlib import Path

import pytest

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from trial_query.query.alias_index import AliasIndex, build_alias_index


def _drug(drug_name=None, generic_name=None, other_name=None):
    return {
        "drug_id": drug_name or generic_name,
        "overview": {"drug_name": drug_name, "generic_name": generic_name, "other_name": other_name},
    }


CATALOG = [
    _drug("Keytruda", "Pembrolizumab", "MK-3475"),
    _drug("Opdivo", "Nivolumab"),
]


def test_equivalence_class_contains_all_names():
    index = build_alias_index(CATALOG)

    assert index.equivalence_class("KEYTRUDA") == {"keytruda", "pembrolizumab", "mk 3475"}
    assert index.equivalence_class("mk-3475") == {"keytruda", "pembrolizumab", "mk 3475"}
    assert index.equivalence_class("Aspirin") == frozenset()
    assert index.equivalence_class("") == frozenset()
    assert "Opdivo" in index
    assert len(index) == 5


def test_matches_whole_value_or_comma_token():
    index = build_alias_index(CATALOG)

    assert index.matches("Pembrolizumab", "Keytruda")
    assert index.matches("Keytruda", "Pembrolizumab, Carboplatin")
    assert index.matches("nivolumab", "Ipilimumab,Opdivo")
    # Exact names only, no substring matching
    assert not index.matches("Keytruda", "Keytrudax")
    assert not index.matches("Keytruda", "Nivolumab")


def test_unknown_drug_matches_nothing():
    index = build_alias_index(CATALOG)
    assert not index.matches("Aspirin", "Aspirin")


def test_aliasing_is_not_transitive():
    """Names only group with names listed on the same catalog entry."""
    index = build_alias_index([_drug("Alpha", "Beta"), _drug("Beta", "Gamma")])

    assert index.equivalence_class("Beta") == {"alpha", "beta", "gamma"}
    assert index.equivalence_class("Alpha") == {"alpha", "beta"}
    assert index.matches("Beta", "Gamma")
    assert not index.matches("Alpha", "Gamma")


def test_empty_catalog_and_nameless_entries():
    assert build_alias_index([]).is_empty()
    assert build_alias_index([{"drug_id": "d-1"}]).is_empty()
    assert AliasIndex().is_empty()


def test_index_is_read_only():
    index = build_alias_index(CATALOG)
    with pytest.raises(TypeError):
        index.classes["aspirin"] = frozenset({"aspirin"})
