"""
Field Resolver

Maps a logical field name (as used by advanced-search criteria, filters and
sort columns) to the typed value of that field on a trial record.

Trial records are denormalized: the same logical field can live in
different places depending on how the record was created (a display
identifier may be ``overview.trial_id``, the record's own ``trial_id`` or
the first entry of ``overview.trial_identifier``). Each field therefore has
an ordered list of extraction paths; the first one yielding a non-empty
value wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from ..schemas.trial import TrialRecord
from .normalizer import to_text
from .values import (
    FieldValue,
    NumberValue,
    TextValue,
    TimestampValue,
    TriState,
    TriStateValue,
    UnknownFieldValue,
    parse_number,
    to_timestamp,
    tri_state,
)

logger = logging.getLogger(__name__)


class FieldKind(str, Enum):
    """Comparison category of a field; drives operator semantics."""
    TEXT = "text"                              # generic substring semantics
    FREE_TEXT = "free_text"                    # multi-line notes/content
    CATEGORICAL_SINGLE = "categorical_single"  # never more than one token
    CATEGORICAL_MULTI = "categorical_multi"    # comma/semicolon separated tokens
    TAGS = "tags"                              # free-form multi-word labels
    TRI_STATE = "tri_state"                    # Yes / No / unset
    NUMERIC = "numeric"
    DATE = "date"
    DRUG = "drug"                              # alias-resolved drug names
    IDENTIFIER = "identifier"                  # any of the trial's identifiers


class TrialField(str, Enum):
    # Overview
    TITLE = "title"
    THERAPEUTIC_AREA = "therapeutic_area"
    TRIAL_IDENTIFIER = "trial_identifier"
    TRIAL_ID = "trial_id"
    TRIAL_PHASE = "trial_phase"
    STATUS = "status"
    PRIMARY_DRUGS = "primary_drugs"
    OTHER_DRUGS = "other_drugs"
    DISEASE_TYPE = "disease_type"
    PATIENT_SEGMENT = "patient_segment"
    LINE_OF_THERAPY = "line_of_therapy"
    SPONSOR_COLLABORATORS = "sponsor_collaborators"
    SPONSOR_FIELD_ACTIVITY = "sponsor_field_activity"
    ASSOCIATED_CRO = "associated_cro"
    COUNTRIES = "countries"
    REGION = "region"
    TRIAL_RECORD_STATUS = "trial_record_status"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    REFERENCE_LINKS = "reference_links"
    TRIAL_TAGS = "trial_tags"

    # Outcomes
    PURPOSE_OF_TRIAL = "purpose_of_trial"
    SUMMARY = "summary"
    PRIMARY_OUTCOME_MEASURE = "primary_outcome_measure"
    OTHER_OUTCOME_MEASURE = "other_outcome_measure"
    STUDY_DESIGN_KEYWORDS = "study_design_keywords"
    STUDY_DESIGN = "study_design"
    TREATMENT_REGIMEN = "treatment_regimen"
    NUMBER_OF_ARMS = "number_of_arms"

    # Eligibility
    INCLUSION_CRITERIA = "inclusion_criteria"
    EXCLUSION_CRITERIA = "exclusion_criteria"
    AGE_FROM = "age_from"
    AGE_TO = "age_to"
    SUBJECT_TYPE = "subject_type"
    SEX = "sex"
    HEALTHY_VOLUNTEERS = "healthy_volunteers"
    TARGET_NO_VOLUNTEERS = "target_no_volunteers"
    ACTUAL_ENROLLED_VOLUNTEERS = "actual_enrolled_volunteers"

    # Timing
    START_DATE_ESTIMATED = "start_date_estimated"
    TRIAL_END_DATE_ESTIMATED = "trial_end_date_estimated"
    ACTUAL_START_DATE = "actual_start_date"
    ACTUAL_TRIAL_END_DATE = "actual_trial_end_date"
    ACTUAL_ENROLLMENT_CLOSED_DATE = "actual_enrollment_closed_date"
    ACTUAL_RESULT_PUBLISHED_DATE = "actual_result_published_date"
    ESTIMATED_ENROLLMENT_CLOSED_DATE = "estimated_enrollment_closed_date"
    ESTIMATED_RESULT_PUBLISHED_DATE = "estimated_result_published_date"

    # Results
    TRIAL_OUTCOME = "trial_outcome"
    TRIAL_RESULTS = "trial_results"
    ADVERSE_EVENT_REPORTED = "adverse_event_reported"
    ADVERSE_EVENT_TYPE = "adverse_event_type"
    TREATMENT_FOR_ADVERSE_EVENTS = "treatment_for_adverse_events"
    RESULTS_AVAILABLE = "results_available"
    ENDPOINTS_MET = "endpoints_met"

    # Sites
    TOTAL_SITES = "total_sites"
    SITE_NOTES = "site_notes"

    # Logs
    INTERNAL_NOTE = "internal_note"
    NEXT_REVIEW_DATE = "next_review_date"
    LAST_MODIFIED_DATE = "last_modified_date"
    LAST_MODIFIED_USER = "last_modified_user"
    FULL_REVIEW_USER = "full_review_user"


# Older field names still sent by saved queries
FIELD_ALIASES: Dict[str, TrialField] = {
    "regions": TrialField.REGION,
    "target_enrolled_volunteers": TrialField.TARGET_NO_VOLUNTEERS,
    "estimated_start_date": TrialField.START_DATE_ESTIMATED,
    "estimated_trial_end_date": TrialField.TRIAL_END_DATE_ESTIMATED,
    "total_number_of_sites": TrialField.TOTAL_SITES,
}

# Sub-record arrays: readers always take element 0
_SECTIONS = {"outcomes", "criteria", "timing", "results", "sites", "other", "logs", "notes"}

Path = Tuple[Union[str, int], ...]
UserNames = Optional[Mapping[str, str]]
Extractor = Callable[[TrialRecord, UserNames], Any]


@dataclass(frozen=True)
class FieldSpec:
    kind: FieldKind
    paths: Tuple[Path, ...] = ()
    extractor: Optional[Extractor] = None
    coerce_yes_no: bool = False  # text is always "Yes" or "No"


# =============================================================================
# PATH LOOKUP
# =============================================================================

def lookup_path(node: Any, path: Path) -> Any:
    for step in path:
        if node is None:
            return None
        if isinstance(step, int):
            node = node[step] if isinstance(node, (list, tuple)) and len(node) > step else None
            continue
        if isinstance(node, Mapping):
            node = node.get(step)
        else:
            node = getattr(node, step, None)
        if step in _SECTIONS and isinstance(node, (list, tuple)):
            node = node[0] if node else None
    return node


def _first_present(record: TrialRecord, paths: Tuple[Path, ...]) -> Any:
    for path in paths:
        value = lookup_path(record, path)
        if value is not None and to_text(value).strip() != "":
            return value
    return None


# =============================================================================
# COMPUTED FIELDS
# =============================================================================

def _display_user(user_id: Optional[str], user_names: UserNames) -> str:
    if not user_id or not user_id.strip():
        return ""
    if user_names and user_id in user_names:
        return user_names[user_id]
    if user_id.lower() in ("admin", "administrator"):
        return "Admin"
    return user_id


def _log_users(attribute: str) -> Extractor:
    def extract(record: TrialRecord, user_names: UserNames) -> str:
        users = []
        for log in record.logs:
            name = _display_user(getattr(log, attribute, None), user_names)
            if name and name not in users:
                users.append(name)
        return ", ".join(users)
    return extract


def _last_modified_date(record: TrialRecord, user_names: UserNames) -> str:
    dates = [log.last_modified_date for log in record.logs if log.last_modified_date]
    if not dates:
        return ""
    # Most recent first; unparseable dates sort below parseable ones
    return max(dates, key=lambda d: (to_timestamp(d) is not None, to_timestamp(d) or 0.0, d))


def _trial_tags(record: TrialRecord, user_names: UserNames) -> str:
    # The listing shows disease type alongside tags, so both are searched
    tags = record.overview.trial_tags or ""
    disease_type = record.overview.disease_type or ""
    return f"{tags} {disease_type}".strip()


def identifier_search_text(record: TrialRecord) -> str:
    """All identifiers of a trial joined with spaces (for id searches)."""
    overview = record.overview
    candidates = [
        overview.trial_id,
        record.trial_id,
        getattr(record, "nct_id", None),
        getattr(record, "protocol_id", None),
        " ".join(overview.trial_identifier or []),
        to_text(getattr(record, "other_ids", None)),
    ]
    return " ".join(to_text(c) for c in candidates if c)


# =============================================================================
# FIELD TABLE
# =============================================================================

def _at(*path: Union[str, int]) -> Tuple[Path, ...]:
    return (tuple(path),)


F = TrialField
K = FieldKind

FIELD_TABLE: Dict[TrialField, FieldSpec] = {
    F.TITLE: FieldSpec(K.TEXT, _at("overview", "title")),
    F.THERAPEUTIC_AREA: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "therapeutic_area")),
    F.TRIAL_IDENTIFIER: FieldSpec(K.TEXT, _at("overview", "trial_identifier")),
    F.TRIAL_ID: FieldSpec(K.IDENTIFIER, (
        ("overview", "trial_id"),
        ("trial_id",),
        ("overview", "trial_identifier", 0),
    )),
    F.TRIAL_PHASE: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "trial_phase")),
    F.STATUS: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "status")),
    F.PRIMARY_DRUGS: FieldSpec(K.DRUG, _at("overview", "primary_drugs")),
    F.OTHER_DRUGS: FieldSpec(K.DRUG, _at("overview", "other_drugs")),
    F.DISEASE_TYPE: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "disease_type")),
    F.PATIENT_SEGMENT: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "patient_segment")),
    F.LINE_OF_THERAPY: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "line_of_therapy")),
    F.SPONSOR_COLLABORATORS: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "sponsor_collaborators")),
    F.SPONSOR_FIELD_ACTIVITY: FieldSpec(K.TEXT, _at("overview", "sponsor_field_activity")),
    F.ASSOCIATED_CRO: FieldSpec(K.TEXT, _at("overview", "associated_cro")),
    F.COUNTRIES: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "countries")),
    F.REGION: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "region")),
    F.TRIAL_RECORD_STATUS: FieldSpec(K.CATEGORICAL_MULTI, _at("overview", "trial_record_status")),
    F.CREATED_AT: FieldSpec(K.DATE, _at("overview", "created_at")),
    F.UPDATED_AT: FieldSpec(K.DATE, _at("overview", "updated_at")),
    F.REFERENCE_LINKS: FieldSpec(K.TEXT, _at("overview", "reference_links")),
    F.TRIAL_TAGS: FieldSpec(K.TAGS, extractor=_trial_tags),

    F.PURPOSE_OF_TRIAL: FieldSpec(K.FREE_TEXT, _at("outcomes", "purpose_of_trial")),
    F.SUMMARY: FieldSpec(K.FREE_TEXT, _at("outcomes", "summary")),
    F.PRIMARY_OUTCOME_MEASURE: FieldSpec(K.FREE_TEXT, _at("outcomes", "primary_outcome_measure")),
    F.OTHER_OUTCOME_MEASURE: FieldSpec(K.FREE_TEXT, _at("outcomes", "other_outcome_measure")),
    F.STUDY_DESIGN_KEYWORDS: FieldSpec(K.TEXT, _at("outcomes", "study_design_keywords")),
    F.STUDY_DESIGN: FieldSpec(K.TEXT, _at("outcomes", "study_design")),
    F.TREATMENT_REGIMEN: FieldSpec(K.FREE_TEXT, _at("outcomes", "treatment_regimen")),
    F.NUMBER_OF_ARMS: FieldSpec(K.NUMERIC, _at("outcomes", "number_of_arms")),

    F.INCLUSION_CRITERIA: FieldSpec(K.FREE_TEXT, _at("criteria", "inclusion_criteria")),
    F.EXCLUSION_CRITERIA: FieldSpec(K.FREE_TEXT, _at("criteria", "exclusion_criteria")),
    F.AGE_FROM: FieldSpec(K.NUMERIC, _at("criteria", "age_from")),
    F.AGE_TO: FieldSpec(K.NUMERIC, _at("criteria", "age_to")),
    F.SUBJECT_TYPE: FieldSpec(K.TEXT, _at("criteria", "subject_type")),
    F.SEX: FieldSpec(K.CATEGORICAL_SINGLE, _at("criteria", "sex")),
    F.HEALTHY_VOLUNTEERS: FieldSpec(K.TRI_STATE, _at("criteria", "healthy_volunteers")),
    F.TARGET_NO_VOLUNTEERS: FieldSpec(K.NUMERIC, _at("criteria", "target_no_volunteers")),
    F.ACTUAL_ENROLLED_VOLUNTEERS: FieldSpec(K.NUMERIC, _at("criteria", "actual_enrolled_volunteers")),

    F.START_DATE_ESTIMATED: FieldSpec(K.DATE, _at("timing", "start_date_estimated")),
    F.TRIAL_END_DATE_ESTIMATED: FieldSpec(K.DATE, _at("timing", "trial_end_date_estimated")),
    F.ACTUAL_START_DATE: FieldSpec(K.DATE, _at("timing", "start_date_actual")),
    F.ACTUAL_TRIAL_END_DATE: FieldSpec(K.DATE, _at("timing", "trial_end_date_actual")),
    F.ACTUAL_ENROLLMENT_CLOSED_DATE: FieldSpec(K.DATE, _at("timing", "enrollment_closed_actual")),
    F.ACTUAL_RESULT_PUBLISHED_DATE: FieldSpec(K.DATE, _at("timing", "result_published_date_actual")),
    F.ESTIMATED_ENROLLMENT_CLOSED_DATE: FieldSpec(K.DATE, _at("timing", "enrollment_closed_estimated")),
    F.ESTIMATED_RESULT_PUBLISHED_DATE: FieldSpec(K.DATE, _at("timing", "result_published_date_estimated")),

    F.TRIAL_OUTCOME: FieldSpec(K.CATEGORICAL_MULTI, _at("results", "trial_outcome")),
    F.TRIAL_RESULTS: FieldSpec(K.TEXT, _at("results", "trial_results")),
    F.ADVERSE_EVENT_REPORTED: FieldSpec(K.CATEGORICAL_SINGLE, _at("results", "adverse_event_reported")),
    F.ADVERSE_EVENT_TYPE: FieldSpec(K.TEXT, _at("results", "adverse_event_type")),
    F.TREATMENT_FOR_ADVERSE_EVENTS: FieldSpec(K.TEXT, _at("results", "treatment_for_adverse_events")),
    F.RESULTS_AVAILABLE: FieldSpec(K.TRI_STATE, _at("results", "results_available"), coerce_yes_no=True),
    F.ENDPOINTS_MET: FieldSpec(K.TRI_STATE, _at("results", "endpoints_met"), coerce_yes_no=True),

    F.TOTAL_SITES: FieldSpec(K.NUMERIC, _at("sites", "total")),
    F.SITE_NOTES: FieldSpec(K.FREE_TEXT, _at("sites", "notes")),

    F.INTERNAL_NOTE: FieldSpec(K.FREE_TEXT, _at("logs", "internal_note")),
    F.NEXT_REVIEW_DATE: FieldSpec(K.DATE, _at("logs", "next_review_date")),
    F.LAST_MODIFIED_DATE: FieldSpec(K.DATE, extractor=_last_modified_date),
    F.LAST_MODIFIED_USER: FieldSpec(K.TEXT, extractor=_log_users("last_modified_user")),
    F.FULL_REVIEW_USER: FieldSpec(K.TEXT, extractor=_log_users("full_review_user")),
}

# Listing column keys (as used by the sort menu) -> field
SORT_COLUMNS: Dict[str, TrialField] = {
    "trialId": F.TRIAL_ID,
    "title": F.TITLE,
    "therapeuticArea": F.THERAPEUTIC_AREA,
    "diseaseType": F.DISEASE_TYPE,
    "primaryDrug": F.PRIMARY_DRUGS,
    "trialPhase": F.TRIAL_PHASE,
    "patientSegment": F.PATIENT_SEGMENT,
    "lineOfTherapy": F.LINE_OF_THERAPY,
    "countries": F.COUNTRIES,
    "sponsorsCollaborators": F.SPONSOR_COLLABORATORS,
    "fieldOfActivity": F.SPONSOR_FIELD_ACTIVITY,
    "associatedCro": F.ASSOCIATED_CRO,
    "trialTags": F.TRIAL_TAGS,
    "otherDrugs": F.OTHER_DRUGS,
    "regions": F.REGION,
    "trialRecordStatus": F.TRIAL_RECORD_STATUS,
    "status": F.STATUS,
    "inclusionCriteria": F.INCLUSION_CRITERIA,
    "exclusionCriteria": F.EXCLUSION_CRITERIA,
    "ageFrom": F.AGE_FROM,
    "ageTo": F.AGE_TO,
    "subjectType": F.SUBJECT_TYPE,
    "sex": F.SEX,
    "healthyVolunteers": F.HEALTHY_VOLUNTEERS,
    "targetNoVolunteers": F.TARGET_NO_VOLUNTEERS,
    "actualEnrolledVolunteers": F.ACTUAL_ENROLLED_VOLUNTEERS,
    "purposeOfTrial": F.PURPOSE_OF_TRIAL,
    "summary": F.SUMMARY,
    "primaryOutcomeMeasures": F.PRIMARY_OUTCOME_MEASURE,
    "otherOutcomeMeasures": F.OTHER_OUTCOME_MEASURE,
    "studyDesignKeywords": F.STUDY_DESIGN_KEYWORDS,
    "studyDesign": F.STUDY_DESIGN,
    "treatmentRegimen": F.TREATMENT_REGIMEN,
    "numberOfArms": F.NUMBER_OF_ARMS,
    "startDateEstimated": F.START_DATE_ESTIMATED,
    "trialEndDateEstimated": F.TRIAL_END_DATE_ESTIMATED,
    "actualStartDate": F.ACTUAL_START_DATE,
    "actualEnrollmentClosedDate": F.ACTUAL_ENROLLMENT_CLOSED_DATE,
    "actualTrialCompletionDate": F.ACTUAL_TRIAL_END_DATE,
    "actualPublishedDate": F.ACTUAL_RESULT_PUBLISHED_DATE,
    "estimatedEnrollmentClosedDate": F.ESTIMATED_ENROLLMENT_CLOSED_DATE,
    "estimatedResultPublishedDate": F.ESTIMATED_RESULT_PUBLISHED_DATE,
    "resultsAvailable": F.RESULTS_AVAILABLE,
    "endpointsMet": F.ENDPOINTS_MET,
    "trialOutcome": F.TRIAL_OUTCOME,
    "totalSites": F.TOTAL_SITES,
    "referenceLinks": F.REFERENCE_LINKS,
    "nextReviewDate": F.NEXT_REVIEW_DATE,
    "lastModifiedDate": F.LAST_MODIFIED_DATE,
}


# =============================================================================
# RESOLUTION
# =============================================================================

def parse_field(name: Union[str, TrialField, None]) -> Optional[TrialField]:
    """Field for a criterion/filter field name; None when unknown."""
    if isinstance(name, TrialField):
        return name
    if not name:
        return None
    key = name.strip()
    if key in FIELD_ALIASES:
        return FIELD_ALIASES[key]
    try:
        return TrialField(key)
    except ValueError:
        return None


def parse_sort_field(name: Union[str, TrialField, None]) -> Optional[TrialField]:
    """Field for a listing column key or a plain field name."""
    if isinstance(name, str) and name in SORT_COLUMNS:
        return SORT_COLUMNS[name]
    return parse_field(name)


def field_kind(field: TrialField) -> FieldKind:
    return FIELD_TABLE[field].kind


def _typed(spec: FieldSpec, raw: Any) -> FieldValue:
    text = to_text(raw)
    if spec.kind == FieldKind.NUMERIC:
        return NumberValue(text, parse_number(raw))
    if spec.kind == FieldKind.DATE:
        return TimestampValue(text, to_timestamp(raw))
    if spec.kind == FieldKind.TRI_STATE:
        state = tri_state(raw)
        if spec.coerce_yes_no:
            text = "Yes" if state == TriState.YES else "No"
        return TriStateValue(text, state)
    return TextValue(text)


def resolve(
    record: TrialRecord,
    field_name: Union[str, TrialField],
    user_names: UserNames = None
) -> FieldValue:
    """
    Resolve the typed value of ``field_name`` on ``record``.

    Unknown names resolve to ``UnknownFieldValue`` (empty text) rather than
    raising; callers that must reject typos validate names themselves.
    """
    field = parse_field(field_name)
    if field is None:
        logger.debug(f"Unknown field '{field_name}' resolves to an empty value")
        return UnknownFieldValue(str(field_name or ""))

    spec = FIELD_TABLE[field]
    if spec.extractor is not None:
        raw = spec.extractor(record, user_names)
    else:
        raw = _first_present(record, spec.paths)
    return _typed(spec, raw)
