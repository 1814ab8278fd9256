"""
Course rosters.

Enrollment is what lets a student see published module content and submit
work, so both sides can manage it: a student joins a course directly, and
the course instructor adds or lists students by email.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_lms.core.current_user import get_current_user
from campus_lms.core.deps import get_db
from campus_lms.core.permissions import require_instructor
from campus_lms.models.enrollment import Enrollment
from campus_lms.models.user import User
from campus_lms.routers.lookups import ensure_course_exists, ensure_grader_for
from campus_lms.schemas.course import EnrollmentRead, RosterAdd, SelfEnrollment

logger = logging.getLogger(__name__)

router = APIRouter()


def enrollment_read(enrollment: Enrollment) -> EnrollmentRead:
    return EnrollmentRead(
        id=enrollment.id,
        course_id=enrollment.course_id,
        student_id=enrollment.student_id,
        student_email=enrollment.student.email,
        enrolled_at=enrollment.enrolled_at,
    )


def _enroll(db: Session, course_id: int, student: User) -> Enrollment:
    enrollment = Enrollment(student_id=student.id, course_id=course_id)
    db.add(enrollment)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Already enrolled")

    db.refresh(enrollment)
    logger.info("Enrolled student %s in course %s", student.id, course_id)
    return enrollment


@router.post("/enrollments", response_model=EnrollmentRead, status_code=status.HTTP_201_CREATED)
def enroll_me(
    payload: SelfEnrollment,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    ensure_course_exists(db, payload.course_id)
    if me.role != "student":
        raise HTTPException(status_code=403, detail="Only students can enroll")
    return enrollment_read(_enroll(db, payload.course_id, me))


@router.post(
    "/courses/{course_id}/enrollments",
    response_model=EnrollmentRead,
    status_code=status.HTTP_201_CREATED,
)
def add_to_roster(
    course_id: int,
    payload: RosterAdd,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    ensure_grader_for(db, course_id, instructor)

    student = db.query(User).filter(User.email == payload.student_email.lower()).first()
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    if student.role != "student":
        raise HTTPException(status_code=400, detail="Only students can be enrolled")

    return enrollment_read(_enroll(db, course_id, student))


@router.get("/courses/{course_id}/enrollments", response_model=list[EnrollmentRead])
def course_roster(
    course_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    ensure_grader_for(db, course_id, instructor)
    enrollments = (
        db.query(Enrollment)
        .join(User, User.id == Enrollment.student_id)
        .filter(Enrollment.course_id == course_id)
        .order_by(User.email.asc())
        .all()
    )
    return [enrollment_read(e) for e in enrollments]
