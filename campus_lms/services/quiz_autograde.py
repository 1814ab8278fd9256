"""
Automatic grading of quiz answers against the quiz's question definitions.

Each graded question yields a fraction in [0, 1] which is multiplied by the
points its grading rule assigns. Question types that need a human
(essay, ordering, fill_in_blank) are reported with ``needs_manual=True`` and
score 0 until a grader fills them in.
"""
import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Optional

from campus_lms.services.grading_policy import QuestionRule, QuestionRulesPolicy
from campus_lms.services.scoring import quantize

logger = logging.getLogger(__name__)

MANUAL_TYPES = {"essay", "ordering", "fill_in_blank"}


@dataclass
class QuestionResult:
    question_id: str
    question_type: str
    score: Decimal
    max_points: Decimal
    is_correct: bool
    needs_manual: bool = False
    feedback: Optional[str] = None

    def to_json(self) -> dict:
        data = asdict(self)
        data["score"] = str(self.score)
        data["max_points"] = str(self.max_points)
        return data


def _answer_for(answers: list[dict], question_id: str) -> Optional[dict]:
    for answer in answers:
        if isinstance(answer, dict) and answer.get("questionId") == question_id:
            return answer
    return None


def _feedback(question: dict, key: str, default: str) -> str:
    custom = question.get("feedback") or {}
    return custom.get(key) or default


def grade_multiple_choice(question: dict, answer: dict) -> tuple[Decimal, str]:
    correct = next((o for o in question.get("options", []) if o.get("correct")), None)
    if correct is None:
        return Decimal("0"), "No correct answer defined"
    if answer.get("selectedAnswerId") == correct.get("id"):
        return Decimal("1"), _feedback(question, "correct", "Correct!")
    return Decimal("0"), _feedback(
        question, "incorrect", f"Incorrect. The correct answer is: {correct.get('text', correct.get('id'))}"
    )


def grade_true_false(question: dict, answer: dict) -> tuple[Decimal, str]:
    selected = answer.get("selectedAnswerId")
    if isinstance(selected, str):
        selected = selected.strip().lower() == "true"
    expected = bool(question.get("correctAnswer"))
    if selected == expected:
        return Decimal("1"), _feedback(question, "correct", "Correct!")
    return Decimal("0"), _feedback(
        question, "incorrect", f"Incorrect. The correct answer is: {'True' if expected else 'False'}"
    )


def grade_multiple_answer(question: dict, answer: dict, partial_credit: bool) -> tuple[Decimal, str]:
    selected = answer.get("selectedAnswerIds", answer.get("selectedAnswerId"))
    if selected is None:
        selected = []
    elif not isinstance(selected, list):
        selected = [selected]

    correct_ids = {o.get("id") for o in question.get("options", []) if o.get("correct")}
    if not correct_ids:
        return Decimal("0"), "No correct answers defined"

    right = len([s for s in selected if s in correct_ids])
    wrong = len([s for s in selected if s not in correct_ids])

    if partial_credit or question.get("partialCredit"):
        fraction = max(Decimal("0"), Decimal(right - wrong) / Decimal(len(correct_ids)))
    else:
        fraction = Decimal("1") if right == len(correct_ids) and wrong == 0 else Decimal("0")

    if fraction == 1:
        return fraction, _feedback(question, "correct", "All answers correct!")
    if fraction > 0:
        return fraction, _feedback(
            question, "incorrect", f"Partially correct ({right} correct, {wrong} incorrect)"
        )
    return fraction, _feedback(question, "incorrect", "Incorrect.")


def grade_matching(question: dict, answer: dict) -> tuple[Decimal, str]:
    matches = question.get("matches") or []
    if not matches:
        return Decimal("0"), "No matches defined"
    given = answer.get("matchingAnswers") or {}
    right = sum(1 for m in matches if given.get(m.get("id")) == m.get("correctMatchId"))
    return Decimal(right) / Decimal(len(matches)), f"Matched {right} of {len(matches)} items correctly"


def grade_short_answer(question: dict, answer: dict) -> tuple[Decimal, str]:
    text = (answer.get("textAnswer") or "").strip()
    if not text:
        return Decimal("0"), "No answer provided"

    case_sensitive = bool(question.get("caseSensitive"))
    accepted = []
    if question.get("expectedAnswer"):
        accepted.append(question["expectedAnswer"])
    accepted.extend(question.get("acceptableAnswers") or [])
    if not accepted:
        return Decimal("0"), "No expected answer defined"

    def norm(value: str) -> str:
        value = value.strip()
        return value if case_sensitive else value.lower()

    if norm(text) in {norm(a) for a in accepted}:
        return Decimal("1"), _feedback(question, "correct", "Correct!")
    return Decimal("0"), _feedback(question, "incorrect", "Incorrect.")


def grade_question(question: dict, answer: Optional[dict], rule: QuestionRule) -> QuestionResult:
    qtype = question.get("type", "")
    result = QuestionResult(
        question_id=rule.question_id,
        question_type=qtype,
        score=Decimal("0"),
        max_points=rule.points,
        is_correct=False,
    )

    if qtype in MANUAL_TYPES or not rule.auto_grade:
        result.needs_manual = True
        result.feedback = "Manual grading required for this question"
        return result

    if answer is None:
        result.feedback = "No answer provided"
        return result

    if qtype == "multiple_choice":
        fraction, feedback = grade_multiple_choice(question, answer)
    elif qtype == "true_false":
        fraction, feedback = grade_true_false(question, answer)
    elif qtype == "multiple_answer":
        fraction, feedback = grade_multiple_answer(question, answer, rule.partial_credit)
    elif qtype == "matching":
        fraction, feedback = grade_matching(question, answer)
    elif qtype == "short_answer":
        fraction, feedback = grade_short_answer(question, answer)
    else:
        logger.warning("Unknown question type %r on question %s", qtype, rule.question_id)
        result.needs_manual = True
        result.feedback = f"Unsupported question type {qtype!r}"
        return result

    result.score = quantize(fraction * rule.points)
    result.is_correct = fraction == 1
    result.feedback = feedback
    return result


def autograde(questions: list[dict], answers: Any, policy: QuestionRulesPolicy) -> list[QuestionResult]:
    """Grade every question the policy has a rule for, in rule order."""
    by_id = {str(q.get("id")): q for q in (questions or []) if isinstance(q, dict)}
    answers = answers if isinstance(answers, list) else []

    results = []
    for rule in policy.rules:
        question = by_id.get(rule.question_id)
        if question is None:
            # rule points at a question that was removed from the quiz
            results.append(
                QuestionResult(
                    question_id=rule.question_id,
                    question_type="missing",
                    score=Decimal("0"),
                    max_points=rule.points,
                    is_correct=False,
                    needs_manual=True,
                    feedback="Question no longer exists",
                )
            )
            continue
        results.append(grade_question(question, _answer_for(answers, rule.question_id), rule))
    return results


def merge_scores(results: list[QuestionResult], overrides: Optional[dict] = None) -> dict[str, object]:
    """Auto-graded scores keyed by question id, with grader overrides on top."""
    scores: dict[str, object] = {r.question_id: r.score for r in results}
    for question_id, score in (overrides or {}).items():
        scores[question_id] = score
    return scores
