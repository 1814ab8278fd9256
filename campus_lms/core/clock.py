from datetime import datetime, timezone


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite often returns naive datetimes; treat as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(Clock):
    """Clock pinned to a fixed instant; ``advance`` moves it forward."""

    def __init__(self, at: datetime):
        self._at = as_utc(at)

    def now(self) -> datetime:
        return self._at

    def advance(self, delta) -> None:
        self._at = self._at + delta


system_clock = Clock()


def get_clock() -> Clock:
    return system_clock
