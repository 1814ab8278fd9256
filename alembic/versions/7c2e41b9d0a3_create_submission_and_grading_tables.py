"""create course, module content, submission and grading tables

Revision ID: 7c2e41b9d0a3
Revises:
Create Date: 2026-03-01 10:14:32.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '7c2e41b9d0a3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONTENT_TYPES = ("ASSIGNMENT", "QUIZ", "LESSON", "DISCUSSION", "FILE", "URL", "VIDEO")
SUBMISSION_STATES = (
    "draft",
    "submitted",
    "late",
    "under_review",
    "returned_for_revision",
    "graded",
    "locked",
)


def _publish_columns():
    return [
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unpublished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("to_publish_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("instructor_id", sa.Integer(), nullable=False),
    )
    op.create_index("ix_courses_id", "courses", ["id"])
    op.create_index("ix_courses_instructor_id", "courses", ["instructor_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("student_id", "course_id", name="uq_enrollments_student_course"),
    )
    op.create_index("ix_enrollments_id", "enrollments", ["id"])
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])

    op.create_table(
        "modules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_publish_columns(),
    )
    op.create_index("ix_modules_id", "modules", ["id"])
    op.create_index("ix_modules_course_id", "modules", ["course_id"])

    op.create_table(
        "module_sections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("module_id", sa.Integer(), sa.ForeignKey("modules.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        *_publish_columns(),
    )
    op.create_index("ix_module_sections_id", "module_sections", ["id"])
    op.create_index("ix_module_sections_module_id", "module_sections", ["module_id"])

    op.create_table(
        "module_contents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "module_section_id",
            sa.Integer(),
            sa.ForeignKey("module_sections.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content_type", sa.Enum(*CONTENT_TYPES, native_enum=False, length=20), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("body", sa.JSON(), nullable=True),
        *_publish_columns(),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("module_section_id", "order", name="uq_module_content_section_order"),
    )
    op.create_index("ix_module_contents_id", "module_contents", ["id"])
    op.create_index("ix_module_contents_module_section_id", "module_contents", ["module_section_id"])

    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "content_id",
            sa.Integer(),
            sa.ForeignKey("module_contents.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("points", sa.Integer(), nullable=True),
        sa.Column("mode", sa.Enum("INDIVIDUAL", "GROUP", native_enum=False, length=20), nullable=False),
        sa.Column("max_attempts", sa.Integer(), nullable=False),
        sa.Column("allow_resubmission", sa.Boolean(), nullable=False),
        sa.Column("allow_late_submission", sa.Boolean(), nullable=False),
        sa.Column("late_penalty", sa.Numeric(6, 4), nullable=False),
    )
    op.create_index("ix_assignments_id", "assignments", ["id"])

    op.create_table(
        "quizzes",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "content_id",
            sa.Integer(),
            sa.ForeignKey("module_contents.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_attempts", sa.Integer(), nullable=False),
        sa.Column("allow_late_submission", sa.Boolean(), nullable=False),
        sa.Column("late_penalty", sa.Numeric(6, 4), nullable=False),
        sa.Column("questions", sa.JSON(), nullable=False),
    )
    op.create_index("ix_quizzes_id", "quizzes", ["id"])

    op.create_table(
        "grading_configs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "assignment_id",
            sa.Integer(),
            sa.ForeignKey("assignments.id", ondelete="CASCADE"),
            nullable=True,
            unique=True,
        ),
        sa.Column(
            "quiz_id",
            sa.Integer(),
            sa.ForeignKey("quizzes.id", ondelete="CASCADE"),
            nullable=True,
            unique=True,
        ),
        sa.Column("weight", sa.Numeric(6, 2), nullable=False),
        sa.Column("is_curved", sa.Boolean(), nullable=False),
        sa.Column("curve_settings", sa.JSON(), nullable=True),
        sa.Column("rubric_schema", sa.JSON(), nullable=True),
        sa.Column("question_rules", sa.JSON(), nullable=True),
        sa.CheckConstraint(
            "(assignment_id IS NULL) <> (quiz_id IS NULL)",
            name="ck_grading_config_single_parent",
        ),
    )
    op.create_index("ix_grading_configs_id", "grading_configs", ["id"])

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("content_id", sa.Integer(), sa.ForeignKey("module_contents.id"), nullable=False),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("state", sa.Enum(*SUBMISSION_STATES, native_enum=False, length=32), nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("content", sa.JSON(), nullable=True),
        sa.Column("group_snapshot", sa.JSON(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("late_days", sa.Integer(), nullable=True),
        sa.Column("return_feedback", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("content_id", "student_id", name="uq_submission_content_student"),
        sa.CheckConstraint("attempt_number >= 1", name="ck_submission_attempt_positive"),
        sa.CheckConstraint("late_days IS NULL OR late_days >= 0", name="ck_submission_late_days"),
    )
    op.create_index("ix_submissions_id", "submissions", ["id"])
    op.create_index("ix_submissions_content_id", "submissions", ["content_id"])
    op.create_index("ix_submissions_student_id", "submissions", ["student_id"])

    op.create_table(
        "grade_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("submission_id", sa.Integer(), sa.ForeignKey("submissions.id"), nullable=False, unique=True),
        sa.Column("student_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("grader_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("raw_score", sa.Numeric(10, 2), nullable=False),
        sa.Column("final_score", sa.Numeric(10, 2), nullable=False),
        sa.Column("max_score", sa.Numeric(10, 2), nullable=False),
        sa.Column("grade", sa.String(8), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("rubric_scores", sa.JSON(), nullable=True),
        sa.Column("question_scores", sa.JSON(), nullable=True),
        sa.Column("graded_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_grade_records_id", "grade_records", ["id"])
    op.create_index("ix_grade_records_student_id", "grade_records", ["student_id"])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "grade_records",
        "submissions",
        "grading_configs",
        "quizzes",
        "assignments",
        "module_contents",
        "module_sections",
        "modules",
        "enrollments",
        "courses",
        "users",
    ):
        op.drop_table(table)
