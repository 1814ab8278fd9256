import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from campus_lms.core.current_user import get_current_user
from campus_lms.core.deps import get_db
from campus_lms.core.permissions import is_grader, require_instructor
from campus_lms.models.course import Course
from campus_lms.models.enrollment import Enrollment
from campus_lms.models.user import User
from campus_lms.schemas.course import CourseCreate, CourseRead

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[CourseRead])
def list_courses(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    """Courses taught by an instructor, or the courses a student is enrolled in."""
    query = db.query(Course)
    if me.role == "admin":
        pass
    elif is_grader(me):
        query = query.filter(Course.instructor_id == me.id)
    else:
        query = query.join(Enrollment, Enrollment.course_id == Course.id).filter(
            Enrollment.student_id == me.id
        )
    return query.order_by(Course.id.asc()).all()


@router.post("", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    course = Course(
        title=payload.title,
        description=payload.description,
        instructor_id=instructor.id,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Instructor %s created course %s", instructor.id, course.id)
    return course
