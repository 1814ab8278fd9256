from decimal import Decimal

from pydantic import BaseModel


class GradebookEntry(BaseModel):
    content_id: int
    title: str
    content_type: str
    weight: Decimal
    state: str  # submission state, or "missing"
    final_score: Decimal | None = None
    max_score: Decimal | None = None
    grade: str | None = None


class GradebookRow(BaseModel):
    student_id: int
    student_email: str
    items: list[GradebookEntry]
    weighted_percentage: Decimal | None = None
