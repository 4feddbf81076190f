"""
Typed comparison values produced by the field resolver.

Each resolved field carries its declared type as a tag instead of relying on
runtime coercion: free text, numbers, timestamps and Yes/No/unset flags.
Every variant keeps ``text`` (the display-grade string) so that text
operators can be applied to any field.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from .normalizer import to_text


class TriState(int, Enum):
    """Sort ordinal of Yes/No flags: Yes first, then No, then unset."""
    YES = 1
    NO = 2
    UNSET = 3


@dataclass(frozen=True)
class TextValue:
    text: str


@dataclass(frozen=True)
class NumberValue:
    text: str
    number: Optional[float]  # None when the stored value is not numeric


@dataclass(frozen=True)
class TimestampValue:
    text: str
    timestamp: Optional[float]  # seconds since epoch, None when unparseable


@dataclass(frozen=True)
class TriStateValue:
    text: str
    state: TriState


@dataclass(frozen=True)
class UnknownFieldValue:
    field: str
    text: str = ""


FieldValue = Union[TextValue, NumberValue, TimestampValue, TriStateValue, UnknownFieldValue]


# =============================================================================
# NUMBERS
# =============================================================================

# Leading number, like JavaScript's parseFloat ("18 Years" -> 18)
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_THOUSANDS = re.compile(r"(?<=\d),(?=\d{3})")


def parse_number(raw: Any) -> Optional[float]:
    """Lenient float parse; None when no number can be read."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return None if math.isnan(value) else value

    text = _THOUSANDS.sub("", str(raw).strip())
    match = _LEADING_NUMBER.match(text)
    if not match:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def parse_number_or_zero(raw: Any) -> float:
    value = parse_number(raw)
    return 0.0 if value is None else value


# =============================================================================
# YES / NO FLAGS
# =============================================================================

def tri_state(raw: Any) -> TriState:
    if raw is True:
        return TriState.YES
    if raw is False:
        return TriState.NO
    text = to_text(raw).strip().lower()
    if text == "yes":
        return TriState.YES
    if text == "no":
        return TriState.NO
    return TriState.UNSET


# =============================================================================
# DATES
# =============================================================================

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y/%m/%d",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%Y-%m",
    "%B %Y",
]


def parse_date(raw: Any) -> Optional[datetime]:
    """
    Parse a stored or user-entered date to an aware UTC datetime.

    ISO-8601 (with or without time and zone) is tried first, then the
    common display formats. Naive values are taken as UTC. Instants that
    fall outside the representable range count as unparseable.
    """
    text = to_text(raw).strip()
    if not text:
        return None

    iso_text = text[:-1] + "+00:00" if text[-1] in "Zz" else text
    parsed = None
    try:
        parsed = datetime.fromisoformat(iso_text)
    except ValueError:
        for fmt in _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError, OSError):
        # Offset pushes the instant outside years 1..9999
        return None


def to_timestamp(raw: Any) -> Optional[float]:
    parsed = parse_date(raw)
    if parsed is None:
        return None
    try:
        return parsed.timestamp()
    except (OverflowError, ValueError, OSError):
        return None


def to_day_string(moment: datetime) -> str:
    """Canonical YYYY-MM-DD (UTC) used for day-granular equality."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%d")
