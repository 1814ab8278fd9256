"""
Resolve the scoring policy of a gradable content item.

A policy is one of three frozen dataclasses: ``RubricPolicy``,
``QuestionRulesPolicy`` or ``FlatPointsPolicy``. ``resolve`` is a pure
function of its inputs, so resolving the same config twice gives equal
policies.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from campus_lms.core.errors import MissingGradingConfig
from campus_lms.models.enums import ContentType

CURVE_KINDS = ("linear", "scale")


@dataclass(frozen=True)
class CurveRule:
    kind: str  # "linear" adds amount, "scale" multiplies by amount
    amount: Decimal


@dataclass(frozen=True)
class RubricCriterion:
    key: str
    title: str
    max_points: Decimal


@dataclass(frozen=True)
class QuestionRule:
    question_id: str
    points: Decimal
    auto_grade: bool = True
    partial_credit: bool = False


@dataclass(frozen=True)
class RubricPolicy:
    criteria: tuple[RubricCriterion, ...]
    max_score: Decimal
    curve: Optional[CurveRule] = None
    weight: Decimal = Decimal("0")

    kind = "rubric"


@dataclass(frozen=True)
class QuestionRulesPolicy:
    rules: tuple[QuestionRule, ...]
    max_score: Decimal
    curve: Optional[CurveRule] = None
    weight: Decimal = Decimal("0")

    kind = "questions"

    def rule_for(self, question_id: str) -> Optional[QuestionRule]:
        for rule in self.rules:
            if rule.question_id == question_id:
                return rule
        return None


@dataclass(frozen=True)
class FlatPointsPolicy:
    max_score: Decimal
    curve: Optional[CurveRule] = None
    weight: Decimal = Decimal("0")

    kind = "flat"


ScoringPolicy = Union[RubricPolicy, QuestionRulesPolicy, FlatPointsPolicy]


def _decimal(value: Any, what: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise MissingGradingConfig(f"{what} must be a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise MissingGradingConfig(f"{what} must be a number, got {value!r}")
    if not result.is_finite():
        raise MissingGradingConfig(f"{what} must be finite, got {value!r}")
    return result


def parse_curve(is_curved: bool, settings: Any) -> Optional[CurveRule]:
    if not is_curved:
        return None
    if not isinstance(settings, dict):
        raise MissingGradingConfig("Curve is enabled but curve settings are missing")

    kind = settings.get("type", "linear")
    if kind not in CURVE_KINDS:
        raise MissingGradingConfig(f"Unknown curve type {kind!r}")

    raw = settings.get("amount")
    if raw is None:
        raw = settings.get("shift") if kind == "linear" else settings.get("factor")
    amount = _decimal(raw, "curve amount")
    if kind == "scale" and amount < 0:
        raise MissingGradingConfig("curve scaling factor must not be negative")
    return CurveRule(kind=kind, amount=amount)


def parse_rubric(schema: Any) -> tuple[RubricCriterion, ...]:
    if not isinstance(schema, list):
        raise MissingGradingConfig("rubric schema must be a list of criteria")

    criteria = []
    seen = set()
    for index, entry in enumerate(schema):
        if not isinstance(entry, dict) or not entry.get("key"):
            raise MissingGradingConfig(f"rubric criterion #{index} has no key")
        key = str(entry["key"])
        if key in seen:
            raise MissingGradingConfig(f"duplicate rubric criterion {key!r}")
        seen.add(key)

        points = entry.get("points", entry.get("maxPoints"))
        max_points = _decimal(points, f"points of rubric criterion {key!r}")
        if max_points <= 0:
            raise MissingGradingConfig(f"rubric criterion {key!r} must be worth more than 0 points")

        criteria.append(
            RubricCriterion(key=key, title=str(entry.get("criteria") or key), max_points=max_points)
        )
    return tuple(criteria)


def parse_question_rules(rules: Any) -> tuple[QuestionRule, ...]:
    if not isinstance(rules, list):
        raise MissingGradingConfig("question rules must be a list")

    parsed = []
    seen = set()
    for index, entry in enumerate(rules):
        if not isinstance(entry, dict) or not entry.get("questionId"):
            raise MissingGradingConfig(f"question rule #{index} has no questionId")
        question_id = str(entry["questionId"])
        if question_id in seen:
            raise MissingGradingConfig(f"duplicate rule for question {question_id!r}")
        seen.add(question_id)

        points = _decimal(entry.get("points"), f"points of question {question_id!r}")
        if points <= 0:
            raise MissingGradingConfig(f"question {question_id!r} must be worth more than 0 points")

        parsed.append(
            QuestionRule(
                question_id=question_id,
                points=points,
                auto_grade=bool(entry.get("autoGrade", True)),
                partial_credit=bool(entry.get("partialCredit", False)),
            )
        )
    return tuple(parsed)


def resolve(content_type, grading_config, assignment_points) -> ScoringPolicy:
    """
    Pick the scoring policy for a content item.

    Assignments: rubric, then question rules, then the flat ``points`` field.
    Quizzes: rubric or question rules from their config, nothing else.
    Anything else is not gradable.
    """
    content_type = ContentType(content_type)

    if content_type not in (ContentType.ASSIGNMENT, ContentType.QUIZ):
        raise MissingGradingConfig(f"{content_type.value} content is not gradable")

    if grading_config is None:
        if content_type == ContentType.QUIZ:
            raise MissingGradingConfig("Quiz has no grading configuration")
        return _flat_points(assignment_points, curve=None, weight=Decimal("0"))

    curve = parse_curve(bool(grading_config.is_curved), grading_config.curve_settings)
    weight = _decimal(grading_config.weight or 0, "grading weight")
    if weight < 0:
        raise MissingGradingConfig("grading weight must not be negative")

    if grading_config.rubric_schema:
        criteria = parse_rubric(grading_config.rubric_schema)
        return RubricPolicy(
            criteria=criteria,
            max_score=sum((c.max_points for c in criteria), Decimal("0")),
            curve=curve,
            weight=weight,
        )

    if grading_config.question_rules:
        rules = parse_question_rules(grading_config.question_rules)
        return QuestionRulesPolicy(
            rules=rules,
            max_score=sum((r.points for r in rules), Decimal("0")),
            curve=curve,
            weight=weight,
        )

    if content_type == ContentType.QUIZ:
        raise MissingGradingConfig("Quiz grading configuration defines no question rules")

    return _flat_points(assignment_points, curve=curve, weight=weight)


def _flat_points(points, curve, weight) -> FlatPointsPolicy:
    if points is None:
        raise MissingGradingConfig("Assignment has neither a rubric nor a points value")
    max_score = _decimal(points, "assignment points")
    if max_score <= 0:
        raise MissingGradingConfig("Assignment points must be greater than 0")
    return FlatPointsPolicy(max_score=max_score, curve=curve, weight=weight)


def resolve_for_content(content) -> ScoringPolicy:
    """``resolve`` fed from a ModuleContent row and its assignment/quiz."""
    gradable = content.gradable
    if gradable is None:
        if content.content_type in (ContentType.ASSIGNMENT, ContentType.QUIZ):
            raise MissingGradingConfig(f"{content.content_type.value} content has no settings")
        raise MissingGradingConfig(f"{ContentType(content.content_type).value} content is not gradable")
    return resolve(content.content_type, gradable.grading_config, gradable.points)
