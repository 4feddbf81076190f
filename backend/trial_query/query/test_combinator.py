import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from trial_query.query.combinator import LogicOperator, evaluate_criteria, fold_results
from trial_query.query.operators import OperatorEvaluator
from trial_query.schemas.query import Criterion
from trial_query.schemas.trial import TrialRecord

AND = LogicOperator.AND
OR = LogicOperator.OR


def test_empty_chain_is_true():
    assert fold_results([]) is True


def test_left_fold_without_precedence():
    """[T AND F OR F] folds to False."""
    assert fold_results([(True, AND), (False, OR), (False, AND)]) is False
    # Boolean precedence would read T OR (F AND F) = True
    assert fold_results([(True, OR), (False, AND), (False, AND)]) is False
    assert fold_results([(False, OR), (True, AND)]) is True
    # Logic on the last element is ignored
    assert fold_results([(True, OR)]) is True


def test_evaluate_criteria_on_record():
    trial = TrialRecord.model_validate({
        "trial_id": "TB-000001",
        "overview": {"countries": "France, Germany", "status": "Open"},
    })
    evaluator = OperatorEvaluator()

    criteria = [
        Criterion(field="countries", operator="contains", value="Spain", logic="OR"),
        Criterion(field="status", operator="is", value="Open", logic="AND"),
    ]
    assert evaluate_criteria(trial, criteria, evaluator) is True

    criteria = [
        Criterion(field="status", operator="is", value="Open", logic="OR"),
        Criterion(field="countries", operator="contains", value="Germany", logic="AND"),
        Criterion(field="countries", operator="contains", value="Spain"),
    ]
    # (True OR True) AND False
    assert evaluate_criteria(trial, criteria, evaluator) is False
