from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from campus_lms.core.config import DEFAULT_MAX_ATTEMPTS
from campus_lms.db.base_class import Base
from campus_lms.models.enums import AssignmentMode, ContentType, enum_values


class ModuleContent(Base):
    __tablename__ = "module_contents"

    id = Column(Integer, primary_key=True, index=True)
    module_section_id = Column(
        Integer, ForeignKey("module_sections.id", ondelete="CASCADE"), nullable=False, index=True
    )

    title = Column(String(255), nullable=False)
    content_type = Column(
        Enum(ContentType, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
    )
    order = Column(Integer, nullable=False)
    body = Column(JSON, nullable=True)  # lesson text, url, video link... opaque to this service

    published_at = Column(DateTime(timezone=True), nullable=True)
    unpublished_at = Column(DateTime(timezone=True), nullable=True)
    to_publish_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("module_section_id", "order", name="uq_module_content_section_order"),
    )

    section = relationship("ModuleSection", back_populates="contents")
    assignment = relationship(
        "Assignment", back_populates="content", uselist=False, cascade="all, delete-orphan"
    )
    quiz = relationship("Quiz", back_populates="content", uselist=False, cascade="all, delete-orphan")
    submissions = relationship("Submission", back_populates="content_item")

    @property
    def gradable(self):
        """The Assignment or Quiz row behind this item, if any."""
        if self.content_type == ContentType.ASSIGNMENT:
            return self.assignment
        if self.content_type == ContentType.QUIZ:
            return self.quiz
        return None


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(
        Integer, ForeignKey("module_contents.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    instructions = Column(Text, nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=True)
    points = Column(Integer, nullable=True)

    mode = Column(
        Enum(AssignmentMode, native_enum=False, values_callable=enum_values, length=20),
        nullable=False,
        default=AssignmentMode.INDIVIDUAL,
    )
    max_attempts = Column(Integer, nullable=False, default=DEFAULT_MAX_ATTEMPTS)
    allow_resubmission = Column(Boolean, nullable=False, default=False)
    allow_late_submission = Column(Boolean, nullable=False, default=True)
    late_penalty = Column(Numeric(6, 4), nullable=False, default=0)  # fraction per day

    content = relationship("ModuleContent", back_populates="assignment")
    grading_config = relationship(
        "GradingConfig", back_populates="assignment", uselist=False, cascade="all, delete-orphan"
    )


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    content_id = Column(
        Integer, ForeignKey("module_contents.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    due_at = Column(DateTime(timezone=True), nullable=True)
    max_attempts = Column(Integer, nullable=False, default=DEFAULT_MAX_ATTEMPTS)
    allow_late_submission = Column(Boolean, nullable=False, default=True)
    late_penalty = Column(Numeric(6, 4), nullable=False, default=0)

    # [{"id": "q1", "type": "multiple_choice", "options": [...], ...}]
    questions = Column(JSON, nullable=False, default=list)

    content = relationship("ModuleContent", back_populates="quiz")
    grading_config = relationship(
        "GradingConfig", back_populates="quiz", uselist=False, cascade="all, delete-orphan"
    )

    # quizzes have no flat points and always allow another attempt while attempts remain
    points = None
    allow_resubmission = True
    mode = AssignmentMode.INDIVIDUAL
