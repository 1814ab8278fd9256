from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator

from campus_lms.core.config import RETURN_FEEDBACK_MAX_LENGTH
from campus_lms.models.enums import SubmissionState


class DraftSave(BaseModel):
    content: Any = None
    group_snapshot: Optional[dict[str, Any]] = None


class SubmissionRead(BaseModel):
    id: int
    content_id: int
    student_id: int
    state: SubmissionState
    attempt_number: int
    content: Any = None
    group_snapshot: Optional[dict[str, Any]] = None
    submitted_at: Optional[datetime] = None
    late_days: Optional[int] = None
    return_feedback: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GradeSubmission(BaseModel):
    raw_score: Optional[Decimal] = None
    rubric_scores: Optional[dict[str, Decimal]] = None
    question_scores: Optional[dict[str, Decimal]] = None
    feedback: Optional[str] = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def one_score_source(self):
        given = [
            x for x in (self.raw_score, self.rubric_scores) if x is not None
        ]
        if len(given) > 1:
            raise ValueError("give either raw_score or rubric_scores, not both")
        return self


class ReturnForRevision(BaseModel):
    feedback: str = Field(min_length=1, max_length=RETURN_FEEDBACK_MAX_LENGTH)


class GradeRecordRead(BaseModel):
    id: int
    submission_id: int
    student_id: int
    grader_id: Optional[int] = None
    raw_score: Decimal
    final_score: Decimal
    max_score: Decimal
    grade: str
    feedback: Optional[str] = None
    rubric_scores: Optional[dict[str, Any]] = None
    question_scores: Optional[list[dict[str, Any]]] = None
    graded_at: datetime

    class Config:
        from_attributes = True


class SubmissionWithGrade(SubmissionRead):
    grade_record: Optional[GradeRecordRead] = None


class LockSweepResult(BaseModel):
    locked: list[int]
