from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None


class CourseRead(BaseModel):
    id: int
    title: str
    description: str | None = None
    instructor_id: int

    class Config:
        from_attributes = True


class SelfEnrollment(BaseModel):
    course_id: int


class RosterAdd(BaseModel):
    student_email: EmailStr


class EnrollmentRead(BaseModel):
    id: int
    course_id: int
    student_id: int
    student_email: str
    enrolled_at: datetime
