"""
Advanced-search operator evaluation.

A criterion is (field, operator, value). What an operator means depends on
the kind of field it is applied to: "is France" on a multi-country field is
stricter than "contains France", "is" on a date ignores the time of day,
and drug fields only ever match through the drug alias index.

Evaluation never raises. Unparseable numbers or dates make the predicate
false (except ``is_not`` against a missing date, which holds).
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from ..schemas.query import Criterion
from ..schemas.trial import TrialRecord
from .alias_index import AliasIndex
from .field_resolver import (
    FIELD_TABLE,
    FieldKind,
    UserNames,
    identifier_search_text,
    parse_field,
    resolve,
)
from .normalizer import (
    collapse_whitespace,
    forms_match,
    normalize_value,
    split_tokens,
    to_text,
)
from .values import FieldValue, NumberValue, parse_date, parse_number, to_day_string

logger = logging.getLogger(__name__)


class Operator(str, Enum):
    CONTAINS = "contains"
    IS = "is"
    IS_NOT = "is_not"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    GREATER_THAN_EQUAL = "greater_than_equal"
    LESS_THAN = "less_than"
    LESS_THAN_EQUAL = "less_than_equal"
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"


RELATIVE_OPERATORS = {
    Operator.GREATER_THAN,
    Operator.GREATER_THAN_EQUAL,
    Operator.LESS_THAN,
    Operator.LESS_THAN_EQUAL,
}
NUMERIC_OPERATORS = RELATIVE_OPERATORS | {Operator.EQUALS, Operator.NOT_EQUALS}
NEGATIVE_OPERATORS = {Operator.IS_NOT, Operator.NOT_EQUALS}

# Stored placeholders meaning "no drug"
_EMPTY_DRUG_VALUES = {"", "n/a", "na"}


def parse_operator(raw: Union[str, Operator, None]) -> Optional[Operator]:
    if isinstance(raw, Operator):
        return raw
    try:
        return Operator((raw or "").strip().lower())
    except ValueError:
        return None


def query_terms(value: Union[str, List[str], None]) -> List[str]:
    """Criterion value as a list of stripped terms."""
    if isinstance(value, (list, tuple)):
        return [to_text(v).strip() for v in value]
    return [to_text(value).strip()]


def _compare_numbers(left: Optional[float], right: Optional[float], operator: Operator) -> bool:
    if left is None or right is None:
        return False
    if operator == Operator.GREATER_THAN:
        return left > right
    if operator == Operator.GREATER_THAN_EQUAL:
        return left >= right
    if operator == Operator.LESS_THAN:
        return left < right
    if operator == Operator.LESS_THAN_EQUAL:
        return left <= right
    if operator == Operator.EQUALS:
        return left == right
    if operator == Operator.NOT_EQUALS:
        return left != right
    return False


class OperatorEvaluator:
    """
    Evaluates single criteria against trial records.

    1. Resolve the field value (typed) from the record
    2. Pick the evaluator for the field's kind
    3. Apply the operator with that kind's semantics
    """

    def __init__(self, alias_index: Optional[AliasIndex] = None, user_names: UserNames = None):
        self.alias_index = alias_index if alias_index is not None else AliasIndex()
        self.user_names = user_names

        self._evaluators: Dict[FieldKind, Callable[..., bool]] = {
            FieldKind.CATEGORICAL_SINGLE: self._evaluate_single_valued,
            FieldKind.TRI_STATE: self._evaluate_single_valued,
            FieldKind.CATEGORICAL_MULTI: self._evaluate_multi_valued,
            FieldKind.TAGS: self._evaluate_tags,
            FieldKind.NUMERIC: self._evaluate_numeric,
            FieldKind.DATE: self._evaluate_date,
            FieldKind.DRUG: self._evaluate_drug,
            FieldKind.FREE_TEXT: self._evaluate_free_text,
            FieldKind.IDENTIFIER: self._evaluate_identifier,
            FieldKind.TEXT: self._evaluate_generic,
        }

    # -------------------------------------------------------------------------
    # MAIN EVALUATION ENTRY POINT
    # -------------------------------------------------------------------------

    def evaluate(self, record: TrialRecord, criterion: Criterion) -> bool:
        """True when ``record`` satisfies the single ``criterion``."""
        operator = parse_operator(criterion.operator)
        if operator is None:
            logger.debug(f"Unknown operator '{criterion.operator}', using contains")
            operator = Operator.CONTAINS

        terms = query_terms(criterion.value)
        field = parse_field(criterion.field)
        value = resolve(record, criterion.field, self.user_names)

        if field is None:
            return self._evaluate_generic(value, terms, operator, record)

        evaluator = self._evaluators[FIELD_TABLE[field].kind]
        return evaluator(value, terms, operator, record)

    # -------------------------------------------------------------------------
    # GENERIC (DEFAULT) SEMANTICS
    # -------------------------------------------------------------------------

    def _evaluate_generic(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        return self._text_operator(value.text, terms[0] if terms else "", operator)

    def _text_operator(self, field_text: str, query: str, operator: Operator) -> bool:
        """Substring-style semantics over lower-cased and normalized text."""
        if operator in NUMERIC_OPERATORS:
            return _compare_numbers(parse_number(field_text), parse_number(query), operator)

        target = field_text.lower()
        search = query.lower()
        norm_target = normalize_value(field_text)
        norm_search = normalize_value(query)

        if operator == Operator.IS:
            return target == search or (norm_search != "" and norm_target == norm_search)
        if operator == Operator.STARTS_WITH:
            return target.startswith(search) or (norm_search != "" and norm_target.startswith(norm_search))
        if operator == Operator.ENDS_WITH:
            return target.endswith(search) or (norm_search != "" and norm_target.endswith(norm_search))

        contained = search in target or (norm_search != "" and norm_search in norm_target)
        if operator == Operator.IS_NOT:
            return not contained
        return contained

    # -------------------------------------------------------------------------
    # CATEGORICAL FIELDS
    # -------------------------------------------------------------------------

    def _evaluate_single_valued(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        """Sex, Yes/No flags: one token only, so "contains" is exact too."""
        query = terms[0] if terms else ""
        if operator in (Operator.IS, Operator.CONTAINS):
            return forms_match(value.text, query)
        if operator == Operator.IS_NOT:
            return not forms_match(value.text, query)
        return self._text_operator(value.text, query, operator)

    def _evaluate_multi_valued(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        """
        Comma/semicolon separated values ("France, Germany").

        contains -> token membership; is -> the whole field equals the query
        ("is France" does not match "France, Germany"); is_not -> no token
        equals the query.
        """
        query = terms[0] if terms else ""
        tokens = split_tokens(value.text)
        has_token = any(forms_match(token, query) for token in tokens)

        if operator == Operator.CONTAINS:
            return has_token
        if operator == Operator.IS:
            return forms_match(value.text, query)
        if operator == Operator.IS_NOT:
            return not has_token
        return self._text_operator(value.text, query, operator)

    def _evaluate_tags(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        """Tags are free-form multi-word labels: substring, all listed tags."""
        if operator not in (Operator.IS, Operator.CONTAINS, Operator.IS_NOT):
            return self._text_operator(value.text, terms[0] if terms else "", operator)

        target = value.text.lower()
        norm_target = normalize_value(value.text)

        def present(tag: str) -> bool:
            norm_tag = normalize_value(tag)
            return tag.lower() in target or (norm_tag != "" and norm_tag in norm_target)

        wanted = [tag for tag in terms if tag] or [""]
        if operator == Operator.IS_NOT:
            return not any(present(tag) for tag in wanted)
        return all(present(tag) for tag in wanted)

    # -------------------------------------------------------------------------
    # NUMERIC AND DATE FIELDS
    # -------------------------------------------------------------------------

    def _evaluate_numeric(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        query = terms[0] if terms else ""
        if operator in NUMERIC_OPERATORS:
            number = value.number if isinstance(value, NumberValue) else parse_number(value.text)
            return _compare_numbers(number, parse_number(query), operator)
        return self._text_operator(value.text, query, operator)

    def _evaluate_date(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        """
        is / is_not compare calendar days (YYYY-MM-DD, UTC); relative
        operators compare full timestamps. A missing field date "is not"
        any date.
        """
        search_date = parse_date(terms[0] if terms else "")
        if search_date is None:
            return False

        field_date = parse_date(value.text)
        if field_date is None:
            return operator == Operator.IS_NOT

        if operator == Operator.IS:
            return to_day_string(field_date) == to_day_string(search_date)
        if operator == Operator.IS_NOT:
            return to_day_string(field_date) != to_day_string(search_date)
        if operator in RELATIVE_OPERATORS:
            return _compare_numbers(field_date.timestamp(), search_date.timestamp(), operator)
        return False

    # -------------------------------------------------------------------------
    # DRUG FIELDS (ALIAS-RESOLVED)
    # -------------------------------------------------------------------------

    def _evaluate_drug(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        """
        Matches only through the alias index: the record's drug (or one of
        its comma-separated drugs) must equal a known variant of the query.
        No index, no class for the query, or an empty query -> no match.
        """
        query = terms[0] if terms else ""
        if not query:
            return False
        if self.alias_index.is_empty():
            return False

        if value.text.strip().lower() in _EMPTY_DRUG_VALUES:
            # A trial without a drug "is not" any specific drug
            return operator in NEGATIVE_OPERATORS

        if not self.alias_index.equivalence_class(query):
            logger.debug(f"No alias class for drug '{query}'; record does not match")
            return False

        matched = self.alias_index.matches(query, value.text)
        if operator in NEGATIVE_OPERATORS:
            return not matched
        return matched

    # -------------------------------------------------------------------------
    # FREE TEXT AND IDENTIFIERS
    # -------------------------------------------------------------------------

    def _evaluate_free_text(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        """Notes/content: stored newlines and tabs compare as single spaces."""
        query = terms[0] if terms else ""
        if operator in NUMERIC_OPERATORS:
            return self._text_operator(value.text, query, operator)

        target = collapse_whitespace(value.text).lower()
        search = collapse_whitespace(query).lower()

        if operator == Operator.IS:
            return target == search
        if operator == Operator.IS_NOT:
            return search not in target
        if operator == Operator.STARTS_WITH:
            return target.startswith(search)
        if operator == Operator.ENDS_WITH:
            return target.endswith(search)
        return search in target

    def _evaluate_identifier(
        self,
        value: FieldValue,
        terms: List[str],
        operator: Operator,
        record: TrialRecord
    ) -> bool:
        """Searches every identifier of the trial; "is" behaves like "contains"."""
        ids_text = identifier_search_text(record)
        if operator == Operator.IS:
            operator = Operator.CONTAINS
        return self._text_operator(ids_text, terms[0] if terms else "", operator)


def evaluate_criterion(
    record: TrialRecord,
    criterion: Union[Criterion, Dict[str, Any]],
    alias_index: Optional[AliasIndex] = None
) -> bool:
    """
    Convenience function to evaluate a single criterion.

    Example:
        evaluate_criterion(
            record,
            {"field": "countries", "operator": "contains", "value": "France"}
        )
    """
    if not isinstance(criterion, Criterion):
        criterion = Criterion.model_validate(criterion)
    return OperatorEvaluator(alias_index).evaluate(record, criterion)
