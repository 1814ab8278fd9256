from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from campus_lms.core.clock import Clock, get_clock
from campus_lms.core.current_user import get_current_user
from campus_lms.core.deps import get_db
from campus_lms.core.permissions import is_grader, require_instructor
from campus_lms.models.user import User
from campus_lms.routers.lookups import (
    course_id_of,
    ensure_accepts_submissions,
    ensure_content_exists,
    ensure_grader_for,
    ensure_module_exists,
    ensure_student_enrolled,
    ensure_submission_exists,
)
from campus_lms.schemas.gradebook import GradebookRow
from campus_lms.schemas.submission import (
    GradeRecordRead,
    GradeSubmission,
    LockSweepResult,
    ReturnForRevision,
    SubmissionRead,
)
from campus_lms.services import grading as grading_service
from campus_lms.services.gradebook import module_gradebook

router = APIRouter()


def _graded_submission(db: Session, submission_id: int, instructor: User):
    sub = ensure_submission_exists(db, submission_id)
    content = sub.content_item
    ensure_grader_for(db, course_id_of(content), instructor)
    return sub, content


@router.post("/submissions/{submission_id}/review", response_model=SubmissionRead)
def open_review(
    submission_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    sub, _content = _graded_submission(db, submission_id, instructor)
    return grading_service.open_for_review(db, sub)


@router.post("/submissions/{submission_id}/grade", response_model=GradeRecordRead)
def grade_submission(
    submission_id: int,
    payload: GradeSubmission,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    sub, content = _graded_submission(db, submission_id, instructor)
    return grading_service.grade_submission(
        db,
        sub,
        content,
        instructor.id,
        clock.now(),
        raw_score=payload.raw_score,
        criterion_scores=payload.rubric_scores,
        question_scores=payload.question_scores,
        feedback=payload.feedback,
    )


@router.post("/submissions/{submission_id}/return", response_model=SubmissionRead)
def return_submission(
    submission_id: int,
    payload: ReturnForRevision,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    sub, content = _graded_submission(db, submission_id, instructor)
    return grading_service.return_for_revision(db, sub, content, payload.feedback)


@router.post("/contents/{content_id}/lock-sweep", response_model=LockSweepResult)
def run_lock_sweep(
    content_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    content = ensure_content_exists(db, content_id)
    ensure_accepts_submissions(content)
    ensure_grader_for(db, course_id_of(content), instructor)

    locked = grading_service.lock_sweep(db, content, clock.now())
    return LockSweepResult(locked=[sub.id for sub in locked])


@router.get("/modules/{module_id}/gradebook", response_model=list[GradebookRow])
def get_module_gradebook(
    module_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    module = ensure_module_exists(db, module_id)

    if is_grader(me):
        ensure_grader_for(db, module.course_id, me)
        return module_gradebook(db, module)

    if me.role != "student":
        raise HTTPException(status_code=403, detail="Not allowed")
    ensure_student_enrolled(db, module.course_id, me.id)
    return module_gradebook(db, module, student_id=me.id)
