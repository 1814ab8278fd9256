from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from campus_lms.db.base_class import Base
from campus_lms.models.enums import SubmissionState, enum_values


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)

    content_id = Column(Integer, ForeignKey("module_contents.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    state = Column(
        Enum(SubmissionState, native_enum=False, values_callable=enum_values, length=32),
        nullable=False,
        default=SubmissionState.DRAFT,
    )
    attempt_number = Column(Integer, nullable=False, default=1)

    content = Column(JSON, nullable=True)
    group_snapshot = Column(JSON, nullable=True)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    late_days = Column(Integer, nullable=True)
    return_feedback = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("content_id", "student_id", name="uq_submission_content_student"),
        CheckConstraint("attempt_number >= 1", name="ck_submission_attempt_positive"),
        CheckConstraint("late_days IS NULL OR late_days >= 0", name="ck_submission_late_days"),
    )

    content_item = relationship("ModuleContent", back_populates="submissions")
    student = relationship("User", back_populates="submissions")
    grade_record = relationship("GradeRecord", back_populates="submission", uselist=False)
