"""
Value normalization for record comparisons.

Stored trial values come in several on-disk formats for the same concept
("Solid Tumor, Unspecified", "solid_tumor_unspecified", "Phase I/II",
"phase_1_2", ...). Every comparison in the query engine goes through the
helpers here so that both sides are brought to the same representation.
Normalized strings are only ever compared, never stored.
"""

import re
from typing import Any, List, Tuple

_PARENTHETICAL = re.compile(r"\([^)]*\)")
_NON_ALNUM = re.compile(r"[\W_]+", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")
_TOKEN_SEPARATORS = re.compile(r"[,;]+")


def to_text(raw: Any) -> str:
    """Coerce a raw record value to a display string ("" for absent)."""
    if raw is None:
        return ""
    if isinstance(raw, bool):
        return "Yes" if raw else "No"
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    if isinstance(raw, (list, tuple)):
        return ", ".join(part for part in (to_text(item) for item in raw) if part)
    return str(raw)


def normalize_value(raw: Any) -> str:
    """
    Canonical comparison form.

    lower-case -> strip "(...)" -> runs of non-alphanumerics become one
    space -> trim. "Development In Progress (DIP)" and
    "development_in_progress" both become "development in progress".
    """
    text = to_text(raw).lower()
    text = _PARENTHETICAL.sub(" ", text)
    return _NON_ALNUM.sub(" ", text).strip()


def snake_case(raw: Any, keep_parentheticals: bool = False) -> str:
    """snake_case form used for enum-coded values stored on disk."""
    text = to_text(raw).lower()
    if not keep_parentheticals:
        text = _PARENTHETICAL.sub(" ", text)
    return _NON_ALNUM.sub("_", text).strip("_")


def comparison_forms(raw: Any) -> Tuple[str, str]:
    """Both representations tried before declaring no match."""
    return normalize_value(raw), snake_case(raw)


def forms_match(left: Any, right: Any) -> bool:
    """True when either representation of the two values is equal."""
    left_norm, left_snake = comparison_forms(left)
    right_norm, right_snake = comparison_forms(right)
    return left_norm == right_norm or left_snake == right_snake


def collapse_whitespace(text: Any) -> str:
    """Fold tabs/newlines and repeated spaces into single spaces."""
    return _WHITESPACE.sub(" ", to_text(text)).strip()


def split_tokens(raw: Any, separators: "re.Pattern[str]" = _TOKEN_SEPARATORS) -> List[str]:
    """Split a comma/semicolon separated value into stripped, non-empty tokens."""
    return [token.strip() for token in separators.split(to_text(raw)) if token.strip()]


# Phase labels as they appear in dropdowns vs. as stored in the database
_PHASE_LABELS = {
    "phase i": "Phase I",
    "phase 1": "Phase I",
    "phase 1/2": "Phase I/II",
    "phase i/ii": "Phase I/II",
    "phase ii": "Phase II",
    "phase 2": "Phase II",
    "phase 2/3": "Phase II/III",
    "phase ii/iii": "Phase II/III",
    "phase iii": "Phase III",
    "phase 3": "Phase III",
    "phase iv": "Phase IV",
    "phase 4": "Phase IV",
    "pre-clinical": "Pre-clinical",
    "not applicable": "Not Applicable",
    "n/a": "Not Applicable",
    "phase_i": "Phase I",
    "phase_1": "Phase I",
    "phase_i_ii": "Phase I/II",
    "phase_1_2": "Phase I/II",
    "phase_ii": "Phase II",
    "phase_2": "Phase II",
    "phase_ii_iii": "Phase II/III",
    "phase_2_3": "Phase II/III",
    "phase_iii": "Phase III",
    "phase_3": "Phase III",
    "phase_iii_iv": "Phase III/IV",
    "phase_3_4": "Phase III/IV",
    "phase_iv": "Phase IV",
    "phase_4": "Phase IV",
}


def normalize_phase(phase: Any) -> str:
    """Map phase spellings ("phase_1_2", "Phase 1/2") to one display label."""
    text = to_text(phase)
    if not text:
        return ""
    return _PHASE_LABELS.get(text.lower().strip(), text)


def phases_equivalent(left: Any, right: Any) -> bool:
    if not to_text(left) or not to_text(right):
        return False
    return normalize_phase(left).lower() == normalize_phase(right).lower()
