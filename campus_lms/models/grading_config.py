from sqlalchemy import JSON, Boolean, CheckConstraint, Column, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship

from campus_lms.db.base_class import Base


class GradingConfig(Base):
    """Scoring policy owned by exactly one assignment or quiz."""

    __tablename__ = "grading_configs"

    id = Column(Integer, primary_key=True, index=True)

    assignment_id = Column(
        Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=True, unique=True
    )
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=True, unique=True)

    weight = Column(Numeric(6, 2), nullable=False, default=0)
    is_curved = Column(Boolean, nullable=False, default=False)
    curve_settings = Column(JSON, nullable=True)  # {"type": "linear", "amount": 5}
    rubric_schema = Column(JSON, nullable=True)  # [{"key", "criteria", "points"}]
    question_rules = Column(JSON, nullable=True)  # [{"questionId", "points", "autoGrade"}]

    __table_args__ = (
        CheckConstraint(
            "(assignment_id IS NULL) <> (quiz_id IS NULL)",
            name="ck_grading_config_single_parent",
        ),
    )

    assignment = relationship("Assignment", back_populates="grading_config")
    quiz = relationship("Quiz", back_populates="grading_config")
