from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from campus_lms.core.permissions import is_grader
from campus_lms.db.repositories import ModuleContentRepository, SubmissionRepository
from campus_lms.models.course import Course
from campus_lms.models.enrollment import Enrollment
from campus_lms.models.enums import GRADABLE_CONTENT_TYPES
from campus_lms.models.module import Module, ModuleSection
from campus_lms.models.module_content import ModuleContent
from campus_lms.models.submission import Submission
from campus_lms.models.user import User


def ensure_course_exists(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def ensure_module_exists(db: Session, module_id: int) -> Module:
    module = db.query(Module).filter(Module.id == module_id).first()
    if not module:
        raise HTTPException(status_code=404, detail="Module not found")
    return module


def ensure_section_exists(db: Session, section_id: int) -> ModuleSection:
    section = db.query(ModuleSection).filter(ModuleSection.id == section_id).first()
    if not section:
        raise HTTPException(status_code=404, detail="Section not found")
    return section


def ensure_content_exists(db: Session, content_id: int) -> ModuleContent:
    content = ModuleContentRepository(db).find_by_id(content_id)
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    return content


def ensure_submission_exists(db: Session, submission_id: int) -> Submission:
    sub = SubmissionRepository(db).find_by_id(submission_id)
    if not sub:
        raise HTTPException(status_code=404, detail="Submission not found")
    return sub


def course_id_of(content: ModuleContent) -> int:
    return content.section.module.course_id


def ensure_course_instructor(course: Course, user: User) -> None:
    if user.role == "admin":
        return
    if course.instructor_id != user.id:
        raise HTTPException(status_code=403, detail="Not course instructor")


def ensure_grader_for(db: Session, course_id: int, user: User) -> Course:
    if not is_grader(user):
        raise HTTPException(status_code=403, detail="Instructor role required")
    course = ensure_course_exists(db, course_id)
    ensure_course_instructor(course, user)
    return course


def ensure_student_enrolled(db: Session, course_id: int, student_id: int) -> None:
    enrolled = (
        db.query(Enrollment)
        .filter(Enrollment.course_id == course_id, Enrollment.student_id == student_id)
        .first()
        is not None
    )
    if not enrolled:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")


def ensure_accepts_submissions(content: ModuleContent) -> None:
    if content.content_type not in GRADABLE_CONTENT_TYPES or content.gradable is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This content does not accept submissions",
        )
