import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from campus_lms.core.clock import as_utc
from campus_lms.db.repositories import commit
from campus_lms.models.module import Module, ModuleSection
from campus_lms.models.module_content import ModuleContent

logger = logging.getLogger(__name__)

PUBLISHABLE = (Module, ModuleSection, ModuleContent)


def _published(now: datetime) -> dict:
    return {"published_at": now, "unpublished_at": None, "to_publish_at": None}


def _apply(item, values: dict) -> None:
    for key, value in values.items():
        setattr(item, key, value)


def publish_module(db: Session, module: Module, now: datetime) -> Module:
    """Publish a module together with all of its sections and contents."""
    values = _published(now)
    _apply(module, values)
    for section in module.sections:
        _apply(section, values)
        for content in section.contents:
            if content.deleted_at is None:
                _apply(content, values)
    commit(db)
    logger.info("Published module %s", module.id)
    return module


def unpublish_module(db: Session, module: Module, now: datetime) -> Module:
    values = {"unpublished_at": now, "to_publish_at": None}
    _apply(module, values)
    for section in module.sections:
        _apply(section, values)
        for content in section.contents:
            _apply(content, values)
    commit(db)
    logger.info("Unpublished module %s", module.id)
    return module


def publish_content(db: Session, content: ModuleContent, now: datetime) -> ModuleContent:
    _apply(content, _published(now))
    commit(db)
    logger.info("Published content %s", content.id)
    return content


def unpublish_content(db: Session, content: ModuleContent, now: datetime) -> ModuleContent:
    _apply(content, {"unpublished_at": now, "to_publish_at": None})
    commit(db)
    logger.info("Unpublished content %s", content.id)
    return content


def schedule_content(db: Session, content: ModuleContent, at: datetime, now: datetime) -> ModuleContent:
    # a schedule in the past is just a publish
    if as_utc(at) <= as_utc(now):
        return publish_content(db, content, now)
    content.to_publish_at = as_utc(at)
    commit(db)
    logger.info("Scheduled content %s for %s", content.id, at.isoformat())
    return content


def promote_scheduled(db: Session, now: datetime) -> int:
    """
    Copy every due ``to_publish_at`` into ``published_at``.

    Meant to be called periodically by an external job. Each promoted row has
    its ``to_publish_at`` cleared in the same statement, so calling this twice
    for the same instant promotes nothing the second time.
    """
    promoted = 0
    for model in PUBLISHABLE:
        result = db.execute(
            update(model)
            .where(model.to_publish_at.is_not(None), model.to_publish_at <= now)
            .values(published_at=model.to_publish_at, unpublished_at=None, to_publish_at=None)
            .execution_options(synchronize_session=False)
        )
        promoted += result.rowcount or 0
    commit(db)
    db.expire_all()
    if promoted:
        logger.info("Promoted %s scheduled item(s) to published", promoted)
    return promoted
