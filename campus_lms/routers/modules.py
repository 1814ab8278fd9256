import logging

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_lms.core.clock import Clock, get_clock
from campus_lms.core.current_user import get_current_user
from campus_lms.core.deps import get_db
from campus_lms.core.permissions import is_grader, require_instructor
from campus_lms.db.repositories import ModuleContentRepository
from campus_lms.models.enums import ContentType
from campus_lms.models.grading_config import GradingConfig
from campus_lms.models.module import Module, ModuleSection
from campus_lms.models.module_content import Assignment, ModuleContent, Quiz
from campus_lms.models.user import User
from campus_lms.routers.lookups import (
    course_id_of,
    ensure_accepts_submissions,
    ensure_content_exists,
    ensure_course_exists,
    ensure_course_instructor,
    ensure_grader_for,
    ensure_module_exists,
    ensure_section_exists,
    ensure_student_enrolled,
)
from campus_lms.schemas.module import (
    AssignmentContentCreate,
    ContentCreate,
    ContentRead,
    CriterionRead,
    CurveRead,
    GradingConfigIn,
    GradingConfigRead,
    ModuleCreate,
    ModuleRead,
    QuestionRuleRead,
    QuizContentCreate,
    ScoringPolicyRead,
    SectionCreate,
    SectionRead,
)
from campus_lms.services import grading_policy
from campus_lms.services.publish_window import item_is_visible, publish_state

logger = logging.getLogger(__name__)

router = APIRouter()


def content_read(content: ModuleContent, now) -> ContentRead:
    gradable = content.gradable
    return ContentRead(
        id=content.id,
        module_section_id=content.module_section_id,
        title=content.title,
        content_type=ContentType(content.content_type).value,
        order=content.order,
        body=content.body,
        published_at=content.published_at,
        unpublished_at=content.unpublished_at,
        to_publish_at=content.to_publish_at,
        publish_state=publish_state(
            now, content.published_at, content.unpublished_at, content.to_publish_at
        ),
        due_at=gradable.due_at if gradable is not None else None,
        max_attempts=gradable.max_attempts if gradable is not None else None,
    )


def _checked_config(content_type: ContentType, payload: GradingConfigIn, points) -> GradingConfig:
    """Build a config row, refusing shapes the resolver would reject later."""
    config = GradingConfig(
        weight=payload.weight,
        is_curved=payload.is_curved,
        curve_settings=payload.curve_settings,
        rubric_schema=payload.rubric_schema,
        question_rules=payload.question_rules,
    )
    grading_policy.resolve(content_type, config, points)
    return config


@router.post(
    "/courses/{course_id}/modules",
    response_model=ModuleRead,
    status_code=status.HTTP_201_CREATED,
)
def create_module(
    course_id: int,
    payload: ModuleCreate,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    course = ensure_course_exists(db, course_id)
    ensure_course_instructor(course, instructor)

    module = Module(course_id=course.id, title=payload.title, description=payload.description)
    db.add(module)
    db.commit()
    db.refresh(module)
    return module


@router.get("/courses/{course_id}/modules", response_model=list[ModuleRead])
def list_modules(
    course_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    course = ensure_course_exists(db, course_id)
    modules = db.query(Module).filter(Module.course_id == course_id).order_by(Module.id.asc()).all()

    if is_grader(me):
        ensure_course_instructor(course, me)
        return modules

    ensure_student_enrolled(db, course_id, me.id)
    now = clock.now()
    return [m for m in modules if item_is_visible(m, now)]


@router.post(
    "/modules/{module_id}/sections",
    response_model=SectionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_section(
    module_id: int,
    payload: SectionCreate,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    module = ensure_module_exists(db, module_id)
    ensure_grader_for(db, module.course_id, instructor)

    order = payload.order
    if order is None:
        order = len(module.sections)

    section = ModuleSection(module_id=module.id, title=payload.title, order=order)
    db.add(section)
    db.commit()
    db.refresh(section)
    return section


@router.post(
    "/sections/{section_id}/contents",
    response_model=ContentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_content(
    section_id: int,
    payload: ContentCreate = Body(...),
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    section = ensure_section_exists(db, section_id)
    ensure_grader_for(db, section.module.course_id, instructor)

    repo = ModuleContentRepository(db)
    content_type = ContentType(payload.content_type)
    order = payload.order if payload.order is not None else repo.next_order(section.id)

    content = ModuleContent(
        module_section_id=section.id,
        title=payload.title,
        content_type=content_type,
        order=order,
        body=payload.body,
    )

    if isinstance(payload, AssignmentContentCreate):
        settings = payload.assignment
        config = (
            _checked_config(content_type, payload.grading, settings.points)
            if payload.grading is not None
            else None
        )
        content.assignment = Assignment(
            instructions=settings.instructions,
            due_at=settings.due_at,
            points=settings.points,
            mode=settings.mode,
            max_attempts=settings.max_attempts,
            allow_resubmission=settings.allow_resubmission,
            allow_late_submission=settings.allow_late_submission,
            late_penalty=settings.late_penalty,
            grading_config=config,
        )
    elif isinstance(payload, QuizContentCreate):
        settings = payload.quiz
        config = (
            _checked_config(content_type, payload.grading, None)
            if payload.grading is not None
            else None
        )
        content.quiz = Quiz(
            due_at=settings.due_at,
            max_attempts=settings.max_attempts,
            allow_late_submission=settings.allow_late_submission,
            late_penalty=settings.late_penalty,
            questions=settings.questions,
            grading_config=config,
        )

    db.add(content)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=f"Order {order} is already used in this section")

    db.refresh(content)
    logger.info("Created %s content %s in section %s", content_type.value, content.id, section.id)
    return content_read(content, clock.now())


@router.get("/modules/{module_id}/contents", response_model=list[ContentRead])
def list_module_contents(
    module_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    module = ensure_module_exists(db, module_id)
    now = clock.now()

    contents = [
        content
        for section in module.sections
        for content in section.contents
        if content.deleted_at is None
    ]

    if is_grader(me):
        ensure_grader_for(db, module.course_id, me)
        return [content_read(c, now) for c in contents]

    ensure_student_enrolled(db, module.course_id, me.id)
    return [content_read(c, now) for c in contents if item_is_visible(c, now)]


@router.put("/contents/{content_id}/grading-config", response_model=GradingConfigRead)
def put_grading_config(
    content_id: int,
    payload: GradingConfigIn,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    content = ensure_content_exists(db, content_id)
    ensure_grader_for(db, course_id_of(content), instructor)
    ensure_accepts_submissions(content)

    gradable = content.gradable
    fresh = _checked_config(content.content_type, payload, gradable.points)

    config = gradable.grading_config
    if config is None:
        gradable.grading_config = fresh
        config = fresh
    else:
        for field in ("weight", "is_curved", "curve_settings", "rubric_schema", "question_rules"):
            setattr(config, field, getattr(fresh, field))

    db.commit()
    db.refresh(config)
    return config


@router.get("/contents/{content_id}/scoring-policy", response_model=ScoringPolicyRead)
def get_scoring_policy(
    content_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
):
    content = ensure_content_exists(db, content_id)
    ensure_grader_for(db, course_id_of(content), instructor)

    policy = grading_policy.resolve_for_content(content)
    summary = ScoringPolicyRead(kind=policy.kind, max_score=policy.max_score, weight=policy.weight)
    if policy.curve is not None:
        summary.curve = CurveRead(type=policy.curve.kind, amount=policy.curve.amount)
    if isinstance(policy, grading_policy.RubricPolicy):
        summary.criteria = [
            CriterionRead(key=c.key, title=c.title, max_points=c.max_points) for c in policy.criteria
        ]
    elif isinstance(policy, grading_policy.QuestionRulesPolicy):
        summary.questions = [
            QuestionRuleRead(
                question_id=r.question_id,
                points=r.points,
                auto_grade=r.auto_grade,
                partial_credit=r.partial_credit,
            )
            for r in policy.rules
        ]
    return summary
