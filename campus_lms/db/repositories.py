"""
Thin data-access objects over the SQLAlchemy session.

Services never commit halfway: they stage changes through these objects and
call ``commit`` once, so a state change and the grade record written with it
land together or not at all.
"""
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_lms.core.errors import InvalidStateTransition
from campus_lms.models.enums import SubmissionState
from campus_lms.models.grade_record import GradeRecord
from campus_lms.models.module_content import ModuleContent
from campus_lms.models.submission import Submission

logger = logging.getLogger(__name__)


def commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


class SubmissionRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, submission_id: int, include_deleted: bool = False) -> Submission | None:
        query = self.db.query(Submission).filter(Submission.id == submission_id)
        if not include_deleted:
            query = query.filter(Submission.deleted_at.is_(None))
        return query.first()

    def find_by_parent_and_student(self, content_id: int, student_id: int) -> Submission | None:
        # soft-deleted rows are returned too: the (content, student) pair is unique
        return (
            self.db.query(Submission)
            .filter(Submission.content_id == content_id, Submission.student_id == student_id)
            .first()
        )

    def list_for_content(self, content_id: int) -> list[Submission]:
        return (
            self.db.query(Submission)
            .filter(Submission.content_id == content_id, Submission.deleted_at.is_(None))
            .order_by(Submission.submitted_at.is_(None), Submission.submitted_at.asc(), Submission.id.asc())
            .all()
        )

    def save(self, submission: Submission) -> Submission:
        self.db.add(submission)
        try:
            self.db.flush()
        except IntegrityError:
            # another request created the (content, student) row first
            self.db.rollback()
            logger.warning(
                "Submission for content %s student %s created concurrently",
                submission.content_id,
                submission.student_id,
            )
            raise InvalidStateTransition(
                "missing",
                SubmissionState(submission.state).value,
                "submission was created concurrently",
            )
        return submission

    def claim(self, submission: Submission, expected_state: SubmissionState) -> None:
        """
        Move the stored row from ``expected_state`` to the object's new state.

        The UPDATE only matches while the row still holds the state that was
        read, so a concurrent writer that got there first makes this fail with
        InvalidStateTransition instead of being silently overwritten.
        """
        requested = SubmissionState(submission.state)
        result = self.db.execute(
            update(Submission)
            .where(Submission.id == submission.id, Submission.state == expected_state)
            .values(state=requested)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            current = self.db.execute(
                select(Submission.state).where(Submission.id == submission.id)
            ).scalar_one_or_none()
            logger.warning(
                "Submission %s changed concurrently: expected %s, found %s",
                submission.id,
                SubmissionState(expected_state).value,
                current,
            )
            raise InvalidStateTransition(
                SubmissionState(current).value if current else "missing",
                requested.value,
                "submission was modified concurrently",
            )
        self.db.flush()


class GradeRecordRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_by_submission(self, submission_id: int) -> GradeRecord | None:
        return self.db.query(GradeRecord).filter(GradeRecord.submission_id == submission_id).first()

    def save(self, record: GradeRecord) -> GradeRecord:
        self.db.add(record)
        self.db.flush()
        return record


class ModuleContentRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, content_id: int, include_deleted: bool = False) -> ModuleContent | None:
        query = self.db.query(ModuleContent).filter(ModuleContent.id == content_id)
        if not include_deleted:
            query = query.filter(ModuleContent.deleted_at.is_(None))
        return query.first()

    def next_order(self, section_id: int) -> int:
        current = (
            self.db.query(func.max(ModuleContent.order))
            .filter(ModuleContent.module_section_id == section_id)
            .scalar()
        )
        return 0 if current is None else current + 1
