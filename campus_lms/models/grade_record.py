from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from campus_lms.db.base_class import Base


class GradeRecord(Base):
    __tablename__ = "grade_records"

    id = Column(Integer, primary_key=True, index=True)

    # no cascade: a grade record pins its submission (audit trail)
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False, unique=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    grader_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    raw_score = Column(Numeric(10, 2), nullable=False)
    final_score = Column(Numeric(10, 2), nullable=False)
    max_score = Column(Numeric(10, 2), nullable=False)
    grade = Column(String(8), nullable=False)
    feedback = Column(Text, nullable=True)

    rubric_scores = Column(JSON, nullable=True)
    question_scores = Column(JSON, nullable=True)

    graded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    submission = relationship("Submission", back_populates="grade_record")
