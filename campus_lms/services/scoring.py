from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Mapping, Optional

from campus_lms.core.config import LATE_PENALTY_MAX, LETTER_GRADE_THRESHOLDS
from campus_lms.core.errors import ScoreOutOfRange
from campus_lms.services.grading_policy import (
    CurveRule,
    QuestionRulesPolicy,
    RubricPolicy,
    ScoringPolicy,
)

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ScoreResult:
    raw_score: Decimal
    curved_score: Decimal
    final_score: Decimal
    max_score: Decimal
    late_deduction: Decimal  # fraction removed for lateness, 0..1
    grade: str


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_decimal(value, what: str = "score") -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ScoreOutOfRange(f"{what} must be a number, got {value!r}")
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ScoreOutOfRange(f"{what} must be a number, got {value!r}")
    if not result.is_finite():
        raise ScoreOutOfRange(f"{what} must be finite")
    return result


def _check_range(value: Decimal, maximum: Decimal, what: str) -> None:
    if value < ZERO or value > maximum:
        raise ScoreOutOfRange(f"{what} must be between 0 and {maximum}, got {value}")


def sum_criterion_scores(policy: RubricPolicy, scores: Mapping[str, object]) -> Decimal:
    known = {c.key for c in policy.criteria}
    unknown = sorted(set(scores) - known)
    if unknown:
        raise ScoreOutOfRange(f"Unknown rubric criteria: {', '.join(unknown)}")

    total = ZERO
    for criterion in policy.criteria:
        if criterion.key not in scores:
            raise ScoreOutOfRange(f"Rubric criterion {criterion.key!r} has no score")
        value = to_decimal(scores[criterion.key], f"score for {criterion.key!r}")
        _check_range(value, criterion.max_points, f"score for {criterion.key!r}")
        total += value
    return total


def sum_question_scores(policy: QuestionRulesPolicy, scores: Mapping[str, object]) -> Decimal:
    # unanswered / unscored questions count as 0
    total = ZERO
    for question_id, raw in scores.items():
        rule = policy.rule_for(question_id)
        if rule is None:
            raise ScoreOutOfRange(f"Question {question_id!r} is not part of this quiz's grading rules")
        value = to_decimal(raw, f"score for question {question_id!r}")
        _check_range(value, rule.points, f"score for question {question_id!r}")
        total += value
    return total


def apply_curve(score: Decimal, curve: Optional[CurveRule], max_score: Decimal) -> Decimal:
    if curve is None:
        return score
    if curve.kind == "linear":
        curved = score + curve.amount
    else:
        curved = score * curve.amount
    return min(max(curved, ZERO), max_score)


def late_deduction(late_days: int | None, rate, cap: Decimal = LATE_PENALTY_MAX) -> Decimal:
    if not late_days or late_days <= 0:
        return ZERO
    rate = to_decimal(rate or 0, "late penalty")
    if rate <= ZERO:
        return ZERO
    return min(rate * late_days, cap)


def letter_grade(
    percentage: Decimal,
    thresholds: Iterable[tuple[Decimal, str]] = LETTER_GRADE_THRESHOLDS,
) -> str:
    ordered = sorted(thresholds, key=lambda t: t[0], reverse=True)
    for minimum, label in ordered:
        if percentage >= minimum:
            return label
    return ordered[-1][1]


def compute_score(
    policy: ScoringPolicy,
    *,
    raw_score=None,
    criterion_scores: Optional[Mapping[str, object]] = None,
    question_scores: Optional[Mapping[str, object]] = None,
    late_days: int | None = 0,
    late_penalty_rate=0,
    thresholds: Optional[Iterable[tuple[Decimal, str]]] = None,
    penalty_cap: Decimal = LATE_PENALTY_MAX,
) -> ScoreResult:
    """
    Turn raw grading input into a final score and letter grade.

    1. sum rubric / question scores (each within its max) or take ``raw_score``
    2. apply the policy curve, clamped to [0, max_score]
    3. subtract the late penalty: curved * (1 - rate * late_days), floored at 0
    4. map final / max_score to a letter

    Everything is Decimal; stored values are rounded half-up to cents.
    """
    inputs = [x is not None for x in (raw_score, criterion_scores, question_scores)]
    if sum(inputs) != 1:
        raise ScoreOutOfRange("Provide exactly one of raw score, rubric scores or question scores")

    max_score = policy.max_score

    if criterion_scores is not None:
        if not isinstance(policy, RubricPolicy):
            raise ScoreOutOfRange("Rubric scores given but this item is not graded by rubric")
        raw = sum_criterion_scores(policy, criterion_scores)
    elif question_scores is not None:
        if not isinstance(policy, QuestionRulesPolicy):
            raise ScoreOutOfRange("Question scores given but this item has no question rules")
        raw = sum_question_scores(policy, question_scores)
    else:
        raw = to_decimal(raw_score, "raw score")
        _check_range(raw, max_score, "raw score")

    curved = apply_curve(raw, policy.curve, max_score)

    deduction = late_deduction(late_days, late_penalty_rate, penalty_cap)
    final = max(curved * (ONE - deduction), ZERO)

    final = quantize(final)
    percentage = final / max_score * HUNDRED
    grade = letter_grade(percentage, thresholds or LETTER_GRADE_THRESHOLDS)

    return ScoreResult(
        raw_score=quantize(raw),
        curved_score=quantize(curved),
        final_score=final,
        max_score=quantize(max_score),
        late_deduction=deduction,
        grade=grade,
    )
