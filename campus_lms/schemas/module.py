from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from campus_lms.models.enums import AssignmentMode


class ModuleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class ModuleRead(BaseModel):
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    published_at: Optional[datetime] = None
    unpublished_at: Optional[datetime] = None
    to_publish_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SectionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    order: Optional[int] = Field(default=None, ge=0)


class SectionRead(BaseModel):
    id: int
    module_id: int
    title: str
    order: int

    class Config:
        from_attributes = True


class GradingConfigIn(BaseModel):
    weight: Decimal = Field(default=Decimal("0"), ge=0)
    is_curved: bool = False
    curve_settings: Optional[dict[str, Any]] = None
    rubric_schema: Optional[list[dict[str, Any]]] = None
    question_rules: Optional[list[dict[str, Any]]] = None


class GradingConfigRead(GradingConfigIn):
    id: int
    assignment_id: Optional[int] = None
    quiz_id: Optional[int] = None

    class Config:
        from_attributes = True


class AssignmentSettings(BaseModel):
    instructions: Optional[str] = None
    due_at: Optional[datetime] = None
    points: Optional[int] = Field(default=None, gt=0)
    mode: AssignmentMode = AssignmentMode.INDIVIDUAL
    max_attempts: int = Field(default=1, ge=0)  # 0 = unlimited
    allow_resubmission: bool = False
    allow_late_submission: bool = True
    late_penalty: Decimal = Field(default=Decimal("0"), ge=0, le=1)


class QuizSettings(BaseModel):
    due_at: Optional[datetime] = None
    max_attempts: int = Field(default=1, ge=0)
    allow_late_submission: bool = True
    late_penalty: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    questions: list[dict[str, Any]] = Field(default_factory=list)


class _ContentBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    order: Optional[int] = Field(default=None, ge=0)
    body: Optional[dict[str, Any]] = None


class AssignmentContentCreate(_ContentBase):
    content_type: Literal["ASSIGNMENT"]
    assignment: AssignmentSettings = Field(default_factory=AssignmentSettings)
    grading: Optional[GradingConfigIn] = None


class QuizContentCreate(_ContentBase):
    content_type: Literal["QUIZ"]
    quiz: QuizSettings = Field(default_factory=QuizSettings)
    grading: Optional[GradingConfigIn] = None


class PlainContentCreate(_ContentBase):
    content_type: Literal["LESSON", "DISCUSSION", "FILE", "URL", "VIDEO"]


ContentCreate = Annotated[
    Union[AssignmentContentCreate, QuizContentCreate, PlainContentCreate],
    Field(discriminator="content_type"),
]


class ContentRead(BaseModel):
    id: int
    module_section_id: int
    title: str
    content_type: str
    order: int
    body: Optional[dict[str, Any]] = None
    published_at: Optional[datetime] = None
    unpublished_at: Optional[datetime] = None
    to_publish_at: Optional[datetime] = None
    publish_state: str = "draft"
    due_at: Optional[datetime] = None
    max_attempts: Optional[int] = None


class ScheduleRequest(BaseModel):
    publish_at: datetime


class PromoteResult(BaseModel):
    promoted: int


class CurveRead(BaseModel):
    type: str
    amount: Decimal


class CriterionRead(BaseModel):
    key: str
    title: str
    max_points: Decimal


class QuestionRuleRead(BaseModel):
    question_id: str
    points: Decimal
    auto_grade: bool
    partial_credit: bool


class ScoringPolicyRead(BaseModel):
    kind: str  # "rubric" | "questions" | "flat"
    max_score: Decimal
    weight: Decimal
    curve: Optional[CurveRead] = None
    criteria: Optional[list[CriterionRead]] = None
    questions: Optional[list[QuestionRuleRead]] = None
