"""
Advanced-search criteria chaining.

Criteria are combined strictly left to right with no operator precedence:
``[A AND B OR C]`` is ``(A and B) or C`` and ``[A OR B AND C]`` is
``(A or B) and C``.
"""

from enum import Enum
from typing import Iterable, List, Sequence, Tuple

from ..schemas.query import Criterion
from ..schemas.trial import TrialRecord
from .operators import OperatorEvaluator


class LogicOperator(str, Enum):
    AND = "AND"
    OR = "OR"


def fold_results(results: Sequence[Tuple[bool, LogicOperator]]) -> bool:
    """
    Left-fold ``(result, logic)`` pairs.

    The logic on element i joins it to element i+1; the logic of the last
    element is ignored. An empty sequence is vacuously True.
    """
    if not results:
        return True

    combined, pending = results[0]
    for result, logic in results[1:]:
        if pending == LogicOperator.OR:
            combined = combined or result
        else:
            combined = combined and result
        pending = logic
    return combined


def evaluate_criteria(
    record: TrialRecord,
    criteria: Iterable[Criterion],
    evaluator: OperatorEvaluator
) -> bool:
    """Evaluate every criterion on ``record`` and fold the results."""
    results: List[Tuple[bool, LogicOperator]] = [
        (evaluator.evaluate(record, criterion), LogicOperator(criterion.logic))
        for criterion in criteria
    ]
    return fold_results(results)
