import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from campus_lms.core.errors import MissingGradingConfig
from campus_lms.models.enrollment import Enrollment
from campus_lms.models.enums import GRADABLE_CONTENT_TYPES
from campus_lms.models.grade_record import GradeRecord
from campus_lms.models.module import Module
from campus_lms.models.submission import Submission
from campus_lms.models.user import User
from campus_lms.services.grading_policy import resolve_for_content
from campus_lms.services.scoring import HUNDRED, quantize

logger = logging.getLogger(__name__)


def gradable_items(module: Module) -> list[dict]:
    items = []
    for section in module.sections:
        for content in section.contents:
            if content.deleted_at is not None or content.content_type not in GRADABLE_CONTENT_TYPES:
                continue
            try:
                policy = resolve_for_content(content)
            except MissingGradingConfig as exc:
                # misconfigured items still show up, they just carry no weight
                logger.warning("Content %s left out of weighting: %s", content.id, exc)
                weight, max_score = Decimal("0"), None
            else:
                weight, max_score = policy.weight, policy.max_score
            items.append(
                {
                    "content_id": content.id,
                    "title": content.title,
                    "content_type": content.content_type.value,
                    "weight": weight,
                    "max_score": max_score,
                }
            )
    return items


def weighted_percentage(entries: list[dict]) -> Decimal | None:
    """
    Weighted average of graded entries, as a percentage.

    Entries with weight 0 only count when no entry carries weight, in which
    case every graded entry counts equally.
    """
    graded = [e for e in entries if e["final_score"] is not None and e["max_score"]]
    if not graded:
        return None

    weighted = [e for e in graded if e["weight"] > 0]
    if weighted:
        total_weight = sum((e["weight"] for e in weighted), Decimal("0"))
        score = sum((e["weight"] * e["final_score"] / e["max_score"] for e in weighted), Decimal("0"))
        return quantize(score / total_weight * HUNDRED)

    score = sum((e["final_score"] / e["max_score"] for e in graded), Decimal("0"))
    return quantize(score / len(graded) * HUNDRED)


def module_gradebook(db: Session, module: Module, student_id: int | None = None) -> list[dict]:
    items = gradable_items(module)
    content_ids = [i["content_id"] for i in items]

    students_q = (
        db.query(User)
        .join(Enrollment, Enrollment.student_id == User.id)
        .filter(Enrollment.course_id == module.course_id)
    )
    if student_id is not None:
        students_q = students_q.filter(User.id == student_id)
    students = students_q.order_by(User.email.asc()).all()

    rows = (
        db.query(Submission, GradeRecord)
        .outerjoin(GradeRecord, GradeRecord.submission_id == Submission.id)
        .filter(Submission.content_id.in_(content_ids), Submission.deleted_at.is_(None))
        .all()
        if content_ids
        else []
    )
    by_key = {(sub.student_id, sub.content_id): (sub, record) for sub, record in rows}

    result = []
    for student in students:
        entries = []
        for item in items:
            sub, record = by_key.get((student.id, item["content_id"]), (None, None))
            entries.append(
                {
                    **item,
                    "state": sub.state.value if sub is not None else "missing",
                    "final_score": record.final_score if record is not None else None,
                    "max_score": record.max_score if record is not None else item["max_score"],
                    "grade": record.grade if record is not None else None,
                }
            )
        result.append(
            {
                "student_id": student.id,
                "student_email": student.email,
                "items": entries,
                "weighted_percentage": weighted_percentage(entries),
            }
        )
    return result
