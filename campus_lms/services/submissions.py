"""
Student side of the submission lifecycle: drafts, submitting, deleting drafts.

Every public function runs one transaction and either commits all of its
changes or none.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from campus_lms.core.errors import (
    AttemptLimitExceeded,
    ContentNotPublished,
    InvalidGroupSubmission,
    InvalidStateTransition,
)
from campus_lms.db.repositories import GradeRecordRepository, SubmissionRepository, commit
from campus_lms.models.enums import AssignmentMode, ContentType, SubmissionState
from campus_lms.models.module_content import ModuleContent
from campus_lms.models.submission import Submission
from campus_lms.services import submission_states as states
from campus_lms.services.grading import try_auto_finalize_quiz
from campus_lms.services.publish_window import item_is_visible

logger = logging.getLogger(__name__)


def ensure_visible(content: ModuleContent, now: datetime) -> None:
    if not item_is_visible(content, now):
        raise ContentNotPublished(f"'{content.title}' is not published")


def validate_group_snapshot(content: ModuleContent, student_id: int, group_snapshot) -> None:
    gradable = content.gradable
    mode = getattr(gradable, "mode", AssignmentMode.INDIVIDUAL)

    if group_snapshot is None:
        if mode == AssignmentMode.GROUP:
            raise InvalidGroupSubmission("This assignment requires a group submission")
        return

    if mode != AssignmentMode.GROUP:
        raise InvalidGroupSubmission("This assignment does not allow group submissions")

    members = group_snapshot.get("members") or []
    member_ids = {m.get("id") if isinstance(m, dict) else m for m in members}
    if student_id not in member_ids:
        raise InvalidGroupSubmission("Student is not a member of the submitted group")


def _stage_draft(
    db: Session,
    content: ModuleContent,
    student_id: int,
    payload,
    group_snapshot,
    now: datetime,
) -> tuple[Submission, SubmissionState | None]:
    """
    Bring the student's submission into ``draft`` with ``payload`` applied.

    Returns the submission and the state it had in the database (None for a
    new row), which the caller hands to ``SubmissionRepository.claim``.
    """
    ensure_visible(content, now)
    gradable = content.gradable
    repo = SubmissionRepository(db)

    sub = repo.find_by_parent_and_student(content.id, student_id)

    if sub is None:
        validate_group_snapshot(content, student_id, group_snapshot)
        sub = Submission(
            content_id=content.id,
            student_id=student_id,
            state=SubmissionState.DRAFT,
            attempt_number=1,
            content=payload,
            group_snapshot=group_snapshot,
        )
        repo.save(sub)
        logger.info("Created draft submission %s for content %s student %s", sub.id, content.id, student_id)
        return sub, None

    expected = SubmissionState(sub.state)

    if sub.deleted_at is not None:
        if GradeRecordRepository(db).find_by_submission(sub.id) is not None:
            raise InvalidStateTransition(expected.value, "draft", "submission was deleted after grading")
        sub.deleted_at = None
        sub.state = SubmissionState.DRAFT
        sub.submitted_at = None
        sub.late_days = None
    elif expected == SubmissionState.RETURNED_FOR_REVISION:
        # first student write after a return starts the next attempt
        states.reopen(sub, gradable.max_attempts)
        logger.info("Submission %s reopened for attempt %s", sub.id, sub.attempt_number)
    elif expected != SubmissionState.DRAFT:
        if states.attempts_exhausted(sub.attempt_number, gradable.max_attempts):
            raise AttemptLimitExceeded(sub.attempt_number, gradable.max_attempts)
        raise InvalidStateTransition(expected.value, SubmissionState.DRAFT.value)

    if group_snapshot is not None or sub.group_snapshot is None:
        validate_group_snapshot(content, student_id, group_snapshot or sub.group_snapshot)
    if payload is not None:
        sub.content = payload
    if group_snapshot is not None:
        sub.group_snapshot = group_snapshot

    return sub, expected


def save_draft(
    db: Session,
    content: ModuleContent,
    student_id: int,
    payload,
    now: datetime,
    group_snapshot=None,
) -> Submission:
    sub, expected = _stage_draft(db, content, student_id, payload, group_snapshot, now)
    if expected is not None:
        SubmissionRepository(db).claim(sub, expected)
    commit(db)
    db.refresh(sub)
    return sub


def submit(
    db: Session,
    content: ModuleContent,
    student_id: int,
    now: datetime,
    payload=None,
    group_snapshot=None,
) -> Submission:
    """Finalize the student's draft: draft -> submitted, or -> late past the due date."""
    repo = SubmissionRepository(db)
    gradable = content.gradable

    sub = repo.find_by_parent_and_student(content.id, student_id)
    needs_staging = (
        payload is not None
        or sub is None
        or sub.deleted_at is not None
        or sub.state == SubmissionState.RETURNED_FOR_REVISION
    )
    if needs_staging:
        sub, staged_from = _stage_draft(db, content, student_id, payload, group_snapshot, now)
        if staged_from is not None:
            repo.claim(sub, staged_from)
        expected = SubmissionState.DRAFT
    else:
        ensure_visible(content, now)
        expected = SubmissionState(sub.state)
        if expected != SubmissionState.DRAFT and states.attempts_exhausted(
            sub.attempt_number, gradable.max_attempts
        ):
            raise AttemptLimitExceeded(sub.attempt_number, gradable.max_attempts)

    if not sub.content:
        raise InvalidStateTransition(
            SubmissionState(sub.state).value, SubmissionState.SUBMITTED.value, "submission has no content"
        )
    if gradable.max_attempts and sub.attempt_number > gradable.max_attempts:
        raise AttemptLimitExceeded(sub.attempt_number, gradable.max_attempts)

    target = states.submit(sub, gradable.due_at, now, allow_late=gradable.allow_late_submission)
    repo.claim(sub, expected)
    logger.info(
        "Submission %s -> %s (attempt %s, late_days=%s)",
        sub.id,
        target.value,
        sub.attempt_number,
        sub.late_days,
    )

    if content.content_type == ContentType.QUIZ:
        try_auto_finalize_quiz(db, sub, content, now)

    commit(db)
    db.refresh(sub)
    return sub


def delete_draft(db: Session, content: ModuleContent, student_id: int, now: datetime) -> Submission | None:
    repo = SubmissionRepository(db)
    sub = repo.find_by_parent_and_student(content.id, student_id)
    if sub is None or sub.deleted_at is not None:
        return None

    if sub.state != SubmissionState.DRAFT:
        raise InvalidStateTransition(SubmissionState(sub.state).value, "deleted", "only drafts can be deleted")
    if GradeRecordRepository(db).find_by_submission(sub.id) is not None:
        raise InvalidStateTransition(sub.state.value, "deleted", "graded submissions cannot be deleted")

    sub.deleted_at = now
    repo.claim(sub, SubmissionState.DRAFT)
    commit(db)
    logger.info("Submission %s soft deleted", sub.id)
    return sub
