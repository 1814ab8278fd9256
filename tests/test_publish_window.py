from datetime import datetime, timedelta, timezone

from campus_lms.services.publish_window import is_scheduled, is_visible, publish_state

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)


def test_unpublished_item_is_hidden():
    assert not is_visible(T0, None, None, None)


def test_visible_from_published_at():
    assert not is_visible(T0 - HOUR, T0, None)
    assert is_visible(T0, T0, None)
    assert is_visible(T0 + HOUR, T0, None)


def test_hidden_from_unpublished_at():
    assert is_visible(T0 + HOUR, T0, T0 + 2 * HOUR)
    assert not is_visible(T0 + 2 * HOUR, T0, T0 + 2 * HOUR)
    assert not is_visible(T0 + 3 * HOUR, T0, T0 + 2 * HOUR)


def test_to_publish_at_alone_does_not_make_visible():
    assert not is_visible(T0 + 5 * HOUR, None, None, T0)


def test_future_schedule_does_not_hide_published_item():
    assert is_visible(T0, T0 - HOUR, None, T0 + HOUR)


def test_visibility_is_monotonic_while_never_unpublished():
    published_at = T0
    became_visible = False
    for step in range(-48, 48):
        now = T0 + step * HOUR
        visible = is_visible(now, published_at, None, T0 + 10 * HOUR)
        if became_visible:
            assert visible
        became_visible = became_visible or visible
    assert became_visible


def test_naive_and_aware_timestamps_compare():
    assert is_visible(T0 + HOUR, T0.replace(tzinfo=None), None)
    other_zone = timezone(timedelta(hours=-5))
    assert not is_visible(T0.astimezone(other_zone) - HOUR, T0, None)


def test_is_scheduled():
    assert is_scheduled(T0, None, T0 + HOUR)
    assert not is_scheduled(T0, None, T0 - HOUR)
    assert not is_scheduled(T0, T0 - HOUR, T0 + HOUR)
    assert not is_scheduled(T0, None, None)


def test_publish_state_badges():
    assert publish_state(T0, None, None, None) == "draft"
    assert publish_state(T0, None, None, T0 + HOUR) == "scheduled"
    assert publish_state(T0, T0 - HOUR, None, None) == "published"
    assert publish_state(T0, T0 - 2 * HOUR, T0 - HOUR, None) == "unpublished"
