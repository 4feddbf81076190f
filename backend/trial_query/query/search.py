"""
Free-text search box: case-insensitive substring over the listing's
searchable fields.
"""

from typing import Any, List

from ..schemas.trial import TrialRecord
from .field_resolver import lookup_path
from .normalizer import to_text

# (section, attribute); list-valued attributes contribute every entry
SEARCHABLE_FIELDS = [
    ("", "trial_id"),
    ("overview", "trial_id"),
    ("overview", "id"),
    ("overview", "title"),
    ("overview", "therapeutic_area"),
    ("overview", "disease_type"),
    ("overview", "sponsor_collaborators"),
    ("overview", "sponsor_field_activity"),
    ("overview", "associated_cro"),
    ("overview", "primary_drugs"),
    ("overview", "other_drugs"),
    ("overview", "patient_segment"),
    ("overview", "line_of_therapy"),
    ("overview", "trial_tags"),
    ("overview", "countries"),
    ("overview", "region"),
    ("overview", "trial_record_status"),
    ("overview", "trial_phase"),
    ("overview", "status"),
    ("overview", "trial_identifier"),
    ("overview", "reference_links"),
    ("outcomes", "purpose_of_trial"),
    ("outcomes", "summary"),
    ("outcomes", "primary_outcome_measure"),
    ("outcomes", "other_outcome_measure"),
    ("outcomes", "study_design_keywords"),
    ("outcomes", "study_design"),
    ("outcomes", "treatment_regimen"),
    ("criteria", "inclusion_criteria"),
    ("criteria", "exclusion_criteria"),
    ("criteria", "subject_type"),
    ("criteria", "sex"),
    ("criteria", "healthy_volunteers"),
    ("criteria", "age_from"),
    ("criteria", "age_to"),
    ("results", "trial_outcome"),
    ("results", "trial_results"),
    ("results", "adverse_event_reported"),
    ("results", "adverse_event_type"),
    ("results", "treatment_for_adverse_events"),
    ("sites", "notes"),
    ("sites", "total"),
]


def _field_texts(raw: Any) -> List[str]:
    if isinstance(raw, (list, tuple)):
        return [to_text(item) for item in raw]
    return [to_text(raw)]


def searchable_text(record: TrialRecord) -> str:
    """Lower-cased, space-joined text of every searchable field."""
    parts = []
    for section, attribute in SEARCHABLE_FIELDS:
        path = (section, attribute) if section else (attribute,)
        parts.extend(text for text in _field_texts(lookup_path(record, path)) if text)
    return " ".join(parts).lower().strip()


def matches_search_term(record: TrialRecord, term: str) -> bool:
    """An empty or whitespace-only term matches every record."""
    if not term or not term.strip():
        return True
    return term.strip().lower() in searchable_text(record)
