from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_lms.core.clock import Clock, get_clock
from campus_lms.core.deps import get_db
from campus_lms.core.permissions import require_instructor
from campus_lms.models.user import User
from campus_lms.routers.lookups import (
    course_id_of,
    ensure_content_exists,
    ensure_grader_for,
    ensure_module_exists,
)
from campus_lms.routers.modules import content_read
from campus_lms.schemas.module import ContentRead, ModuleRead, PromoteResult, ScheduleRequest
from campus_lms.services import publishing

router = APIRouter()


@router.post("/modules/{module_id}/publish", response_model=ModuleRead)
def publish_module(
    module_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    module = ensure_module_exists(db, module_id)
    ensure_grader_for(db, module.course_id, instructor)
    return publishing.publish_module(db, module, clock.now())


@router.post("/modules/{module_id}/unpublish", response_model=ModuleRead)
def unpublish_module(
    module_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    module = ensure_module_exists(db, module_id)
    ensure_grader_for(db, module.course_id, instructor)
    return publishing.unpublish_module(db, module, clock.now())


@router.post("/contents/{content_id}/publish", response_model=ContentRead)
def publish_content(
    content_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    content = ensure_content_exists(db, content_id)
    ensure_grader_for(db, course_id_of(content), instructor)
    now = clock.now()
    return content_read(publishing.publish_content(db, content, now), now)


@router.post("/contents/{content_id}/unpublish", response_model=ContentRead)
def unpublish_content(
    content_id: int,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    content = ensure_content_exists(db, content_id)
    ensure_grader_for(db, course_id_of(content), instructor)
    now = clock.now()
    return content_read(publishing.unpublish_content(db, content, now), now)


@router.post("/contents/{content_id}/schedule", response_model=ContentRead)
def schedule_content(
    content_id: int,
    payload: ScheduleRequest,
    db: Session = Depends(get_db),
    instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    content = ensure_content_exists(db, content_id)
    ensure_grader_for(db, course_id_of(content), instructor)
    now = clock.now()
    return content_read(publishing.schedule_content(db, content, payload.publish_at, now), now)


@router.post("/publishing/promote-scheduled", response_model=PromoteResult)
def promote_scheduled(
    db: Session = Depends(get_db),
    _instructor: User = Depends(require_instructor),
    clock: Clock = Depends(get_clock),
):
    return PromoteResult(promoted=publishing.promote_scheduled(db, clock.now()))
