from datetime import datetime

from campus_lms.core.clock import as_utc


def is_visible(
    now: datetime,
    published_at: datetime | None,
    unpublished_at: datetime | None,
    to_publish_at: datetime | None = None,
) -> bool:
    """
    Whether an item is visible to students at ``now``.

    Visible once ``published_at`` has passed and until ``unpublished_at``.
    ``to_publish_at`` only marks the item as scheduled; something else has to
    copy it into ``published_at`` (see ``publishing.promote_scheduled``).
    """
    if published_at is None:
        return False

    now = as_utc(now)
    if now < as_utc(published_at):
        return False

    return unpublished_at is None or now < as_utc(unpublished_at)


def is_scheduled(
    now: datetime,
    published_at: datetime | None,
    to_publish_at: datetime | None,
) -> bool:
    if to_publish_at is None:
        return False
    if published_at is not None and as_utc(published_at) <= as_utc(now):
        return False
    return as_utc(to_publish_at) > as_utc(now)


def publish_state(
    now: datetime,
    published_at: datetime | None,
    unpublished_at: datetime | None,
    to_publish_at: datetime | None,
) -> str:
    # "published" | "scheduled" | "unpublished" | "draft", for UI badges
    if is_visible(now, published_at, unpublished_at, to_publish_at):
        return "published"
    if is_scheduled(now, published_at, to_publish_at):
        return "scheduled"
    if unpublished_at is not None and as_utc(unpublished_at) <= as_utc(now):
        return "unpublished"
    return "draft"


def item_is_visible(item, now: datetime) -> bool:
    return is_visible(now, item.published_at, item.unpublished_at, item.to_publish_at)
