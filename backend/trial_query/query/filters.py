"""
Filter-State Matcher

The listing's filter panel is a fixed set of multi-select dropdowns, one per
filter key. A record passes when, for every key with a non-empty selection,
its field value matches at least one selected value (AND across keys, OR
within a key). Keys with an empty selection impose no constraint.

How a selected value is compared depends on the key's match mode:

    EXACT             enum-like values (status, phase, sex, ...)
    PARTIAL           text and multi-valued fields (countries, notes, ...)
    NUMERIC_RANGE     counts; accepts "25", "10-50", "1000+", "<10", ">10"
    ALIAS             drug names, through the drug alias index
    TAGS              trial tags, underscores read as spaces
    RESULTS_PRESENCE  "Yes"/"No": whether the record has reported results
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..schemas.trial import TrialRecord
from .alias_index import AliasIndex
from .field_resolver import TrialField, UserNames, resolve
from .normalizer import normalize_phase, normalize_value, phases_equivalent, snake_case, split_tokens, to_text
from .values import NumberValue, parse_number

logger = logging.getLogger(__name__)


class MatchMode(str, Enum):
    EXACT = "exact"
    PARTIAL = "partial"
    NUMERIC_RANGE = "numeric_range"
    ALIAS = "alias"
    TAGS = "tags"
    RESULTS_PRESENCE = "results_presence"


@dataclass(frozen=True)
class FilterRule:
    key: str
    field: TrialField
    mode: MatchMode


F = TrialField
M = MatchMode

_RULES = [
    # Overview
    FilterRule("therapeuticAreas", F.THERAPEUTIC_AREA, M.PARTIAL),
    FilterRule("statuses", F.STATUS, M.EXACT),
    FilterRule("diseaseTypes", F.DISEASE_TYPE, M.PARTIAL),
    FilterRule("primaryDrugs", F.PRIMARY_DRUGS, M.ALIAS),
    FilterRule("trialPhases", F.TRIAL_PHASE, M.EXACT),
    FilterRule("countries", F.COUNTRIES, M.PARTIAL),
    FilterRule("sponsorsCollaborators", F.SPONSOR_COLLABORATORS, M.PARTIAL),
    FilterRule("trialRecordStatus", F.TRIAL_RECORD_STATUS, M.EXACT),
    FilterRule("patientSegments", F.PATIENT_SEGMENT, M.PARTIAL),
    FilterRule("lineOfTherapy", F.LINE_OF_THERAPY, M.PARTIAL),
    FilterRule("trialTags", F.TRIAL_TAGS, M.TAGS),
    FilterRule("otherDrugs", F.OTHER_DRUGS, M.ALIAS),
    FilterRule("regions", F.REGION, M.PARTIAL),
    FilterRule("sponsorFieldActivity", F.SPONSOR_FIELD_ACTIVITY, M.PARTIAL),
    FilterRule("associatedCro", F.ASSOCIATED_CRO, M.PARTIAL),
    # Eligibility
    FilterRule("sex", F.SEX, M.EXACT),
    FilterRule("healthyVolunteers", F.HEALTHY_VOLUNTEERS, M.EXACT),
    FilterRule("subjectType", F.SUBJECT_TYPE, M.EXACT),
    FilterRule("inclusionCriteria", F.INCLUSION_CRITERIA, M.PARTIAL),
    FilterRule("exclusionCriteria", F.EXCLUSION_CRITERIA, M.PARTIAL),
    FilterRule("ageFrom", F.AGE_FROM, M.EXACT),
    FilterRule("ageTo", F.AGE_TO, M.EXACT),
    FilterRule("targetNoVolunteers", F.TARGET_NO_VOLUNTEERS, M.NUMERIC_RANGE),
    FilterRule("actualEnrolledVolunteers", F.ACTUAL_ENROLLED_VOLUNTEERS, M.NUMERIC_RANGE),
    # Outcomes
    FilterRule("purposeOfTrial", F.PURPOSE_OF_TRIAL, M.PARTIAL),
    FilterRule("summary", F.SUMMARY, M.PARTIAL),
    FilterRule("primaryOutcomeMeasures", F.PRIMARY_OUTCOME_MEASURE, M.PARTIAL),
    FilterRule("otherOutcomeMeasures", F.OTHER_OUTCOME_MEASURE, M.PARTIAL),
    FilterRule("studyDesignKeywords", F.STUDY_DESIGN_KEYWORDS, M.PARTIAL),
    FilterRule("studyDesign", F.STUDY_DESIGN, M.PARTIAL),
    FilterRule("treatmentRegimen", F.TREATMENT_REGIMEN, M.PARTIAL),
    FilterRule("numberOfArms", F.NUMBER_OF_ARMS, M.NUMERIC_RANGE),
    # Timing
    FilterRule("startDateEstimated", F.START_DATE_ESTIMATED, M.EXACT),
    FilterRule("trialEndDateEstimated", F.TRIAL_END_DATE_ESTIMATED, M.EXACT),
    # Results
    FilterRule("trialOutcome", F.TRIAL_OUTCOME, M.PARTIAL),
    FilterRule("trialOutcomeContent", F.TRIAL_OUTCOME, M.PARTIAL),
    FilterRule("adverseEventsReported", F.ADVERSE_EVENT_REPORTED, M.EXACT),
    FilterRule("adverseEventReported", F.ADVERSE_EVENT_REPORTED, M.EXACT),
    FilterRule("adverseEventType", F.ADVERSE_EVENT_TYPE, M.PARTIAL),
    FilterRule("treatmentForAdverseEvents", F.TREATMENT_FOR_ADVERSE_EVENTS, M.PARTIAL),
    FilterRule("resultsAvailable", F.TRIAL_OUTCOME, M.RESULTS_PRESENCE),
    # Sites
    FilterRule("totalSites", F.TOTAL_SITES, M.NUMERIC_RANGE),
    FilterRule("siteNotes", F.SITE_NOTES, M.PARTIAL),
]

FILTER_TABLE: Dict[str, FilterRule] = {rule.key: rule for rule in _RULES}

# Fresh filter state: every key present, nothing selected
DEFAULT_FILTERS: Mapping[str, Sequence[str]] = {key: () for key in FILTER_TABLE}


def empty_filters() -> Dict[str, List[str]]:
    return {key: [] for key in FILTER_TABLE}


# =============================================================================
# PER-MODE CHECKS
# =============================================================================

# JavaScript-style \w (ASCII letters, digits, underscore)
_PUNCTUATION = re.compile(r"[^\w\s]", re.ASCII)
_SPACES = re.compile(r"\s+")
_NON_ALNUM_ASCII = re.compile(r"[^a-z0-9]+")
_COMMA = re.compile(r",")


def _loose(text: str) -> str:
    return _SPACES.sub(" ", _PUNCTUATION.sub(" ", text)).strip()


def check_exact(selected: Sequence[str], value: Any) -> bool:
    """
    Dropdown equality, trying progressively looser representations:
    direct, case-insensitive phase label, snake_case without and with
    parentheticals, and finally the normalized comparison form.
    """
    if not selected:
        return True
    text = to_text(value)
    if not text:
        return False

    if text in selected:
        return True

    # Case-insensitive, with phase spellings folded on both sides
    if any(phases_equivalent(text, option) for option in selected):
        return True

    lower = normalize_phase(text).lower()

    # "Development In Progress (DIP)" -> "development_in_progress"
    if snake_case(lower) in selected:
        return True
    if snake_case(lower, keep_parentheticals=True) in selected:
        return True

    normalized = normalize_value(text)
    return any(normalize_value(option) == normalized for option in selected)


def check_partial(selected: Sequence[str], value: Any) -> bool:
    """Substring match in either representation; normalized forms match both ways."""
    if not selected:
        return True
    text = to_text(value)
    if not text:
        return False

    lower = text.lower()
    normalized = _loose(lower.replace("_", " "))
    loose = _loose(lower)
    snake = _NON_ALNUM_ASCII.sub("_", lower)

    for option in selected:
        option_lower = option.lower()
        if option_lower in lower:
            return True

        option_normalized = _loose(option_lower.replace("_", " "))
        if option_normalized in normalized or normalized in option_normalized:
            return True

        option_loose = _loose(option_lower)
        if option_loose and option_loose in loose:
            return True

        option_snake = _NON_ALNUM_ASCII.sub("_", option_lower)
        if option_snake and option_snake in snake:
            return True

    return False


def _int_bound(raw: str) -> Optional[int]:
    number = parse_number(raw.strip())
    return int(number) if number is not None else None


def _in_range(option: str, number: float) -> bool:
    if "-" in option:
        low, _, high = option.partition("-")
        low_bound, high_bound = _int_bound(low), _int_bound(high)
        return low_bound is not None and high_bound is not None and low_bound <= number <= high_bound
    if option.endswith("+"):
        bound = _int_bound(option[:-1])
        return bound is not None and number >= bound
    if option.startswith("<"):
        bound = _int_bound(option[1:])
        return bound is not None and number < bound
    if option.startswith(">"):
        bound = _int_bound(option[1:])
        return bound is not None and number > bound
    return False


def check_numeric(selected: Sequence[str], value: Any) -> bool:
    """Literal value or range tokens: "10-50", "1000+", "<10", ">10"."""
    if not selected:
        return True
    number = value.number if isinstance(value, NumberValue) else parse_number(value)
    if number is None:
        return False

    literal = to_text(number)
    for option in selected:
        option = option.strip()
        if option == literal:
            return True
        if _in_range(option, number):
            return True
    return False


def check_tags(selected: Sequence[str], value: Any) -> bool:
    if not selected:
        return True
    text = to_text(value)
    if not text:
        return False

    lower = text.lower()
    spaced = lower.replace("_", " ")
    for option in selected:
        option_lower = option.lower()
        if option_lower.replace("_", " ") in spaced or option_lower in lower:
            return True
    return False


def check_drug_aliases(selected: Sequence[str], value: Any, alias_index: AliasIndex) -> bool:
    """
    A selected drug matches when the record names it (or any of its aliases)
    as a whole comma-separated entry. No substring matching, so selecting
    "Ab" never pulls in "Abemaciclib".
    """
    if not selected:
        return True
    text = to_text(value)
    if not text:
        return False

    drugs = {normalize_value(drug) for drug in split_tokens(text, _COMMA)}
    drugs.add(normalize_value(text))
    for option in selected:
        if normalize_value(option) in drugs:
            return True
        if alias_index.matches(option, text):
            return True
    return False


def check_results_presence(selected: Sequence[str], value: Any) -> bool:
    """"Yes" keeps trials with a reported outcome, "No" those without; both keep all."""
    if not selected:
        return True
    has_results = bool(to_text(value).strip())
    wants_yes = "Yes" in selected
    wants_no = "No" in selected

    if wants_yes and not wants_no:
        return has_results
    if wants_no and not wants_yes:
        return not has_results
    return True


# =============================================================================
# FILTER STATE
# =============================================================================

_CHECKS: Dict[MatchMode, Callable[[Sequence[str], Any], bool]] = {
    MatchMode.EXACT: check_exact,
    MatchMode.PARTIAL: check_partial,
    MatchMode.NUMERIC_RANGE: check_numeric,
    MatchMode.TAGS: check_tags,
    MatchMode.RESULTS_PRESENCE: check_results_presence,
}


def unknown_filter_keys(filters: Optional[Mapping[str, Sequence[str]]]) -> List[str]:
    return [key for key in (filters or {}) if key not in FILTER_TABLE]


def matches_filters(
    record: TrialRecord,
    filters: Optional[Mapping[str, Sequence[str]]],
    alias_index: Optional[AliasIndex] = None,
    user_names: UserNames = None
) -> bool:
    """
    True when ``record`` satisfies every non-empty filter selection.

    Unknown keys are ignored rather than rejected; the engine warns about
    them once per query (see ``unknown_filter_keys``).
    """
    if not filters:
        return True
    alias_index = alias_index if alias_index is not None else AliasIndex()

    for key, selected in filters.items():
        if not selected:
            continue

        rule = FILTER_TABLE.get(key)
        if rule is None:
            logger.debug(f"Skipping unknown filter key '{key}'")
            continue

        value = resolve(record, rule.field, user_names)
        if rule.mode == MatchMode.ALIAS:
            matched = check_drug_aliases(selected, value.text, alias_index)
        elif rule.mode == MatchMode.NUMERIC_RANGE:
            matched = check_numeric(selected, value)
        else:
            matched = _CHECKS[rule.mode](selected, value.text)

        if not matched:
            return False

    return True
