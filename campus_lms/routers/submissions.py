from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from campus_lms.core.clock import Clock, get_clock
from campus_lms.core.current_user import get_current_user
from campus_lms.core.deps import get_db
from campus_lms.core.permissions import require_instructor
from campus_lms.db.repositories import SubmissionRepository
from campus_lms.models.user import User
from campus_lms.routers.lookups import (
    course_id_of,
    ensure_accepts_submissions,
    ensure_content_exists,
    ensure_grader_for,
    ensure_student_enrolled,
)
from campus_lms.schemas.submission import DraftSave, SubmissionRead, SubmissionWithGrade
from campus_lms.services import submissions as submission_service

router = APIRouter()


def _student_content(db: Session, content_id: int, me: User):
    content = ensure_content_exists(db, content_id)
    ensure_accepts_submissions(content)

    if me.role != "student":
        raise HTTPException(status_code=403, detail="Only students can submit")
    ensure_student_enrolled(db, course_id_of(content), me.id)
    return content


@router.put("/contents/{content_id}/submissions/me", response_model=SubmissionRead)
def save_my_draft(
    content_id: int,
    payload: DraftSave,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    content = _student_content(db, content_id, me)
    return submission_service.save_draft(
        db,
        content,
        me.id,
        payload.content,
        clock.now(),
        group_snapshot=payload.group_snapshot,
    )


@router.post("/contents/{content_id}/submissions/me/submit", response_model=SubmissionWithGrade)
def submit_mine(
    content_id: int,
    payload: DraftSave | None = None,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    content = _student_content(db, content_id, me)
    return submission_service.submit(
        db,
        content,
        me.id,
        clock.now(),
        payload=payload.content if payload is not None else None,
        group_snapshot=payload.group_snapshot if payload is not None else None,
    )


@router.get("/contents/{content_id}/submissions/me", response_model=SubmissionWithGrade)
def get_mine(
    content_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    content = _student_content(db, content_id, me)
    sub = SubmissionRepository(db).find_by_parent_and_student(content.id, me.id)
    if sub is None or sub.deleted_at is not None:
        raise HTTPException(status_code=404, detail="No submission yet")
    return sub


@router.delete("/contents/{content_id}/submissions/me", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_draft(
    content_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    content = _student_content(db, content_id, me)
    if submission_service.delete_draft(db, content, me.id, clock.now()) is None:
        raise HTTPException(status_code=404, detail="No draft to delete")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/contents/{content_id}/submissions", response_model=list[SubmissionWithGrade])
def list_submissions_for_content(
    content_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    content = ensure_content_exists(db, content_id)
    ensure_accepts_submissions(content)
    ensure_grader_for(db, course_id_of(content), instructor)
    return SubmissionRepository(db).list_for_content(content.id)
