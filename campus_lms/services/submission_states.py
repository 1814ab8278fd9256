"""
Submission lifecycle.

    draft -> submitted | late -> under_review -> graded -> returned_for_revision
          ^                                                        |
          +-------------------- (attempt + 1) ---------------------+

Any state may move to ``locked`` once attempts are exhausted or the content's
publish window closed. Functions here mutate the object they are given and
never touch the database; ``db.repositories.SubmissionRepository.claim``
persists the result guarded by the state that was read.
"""
import logging
import math
from datetime import datetime, timedelta

from campus_lms.core.clock import as_utc
from campus_lms.core.config import GRACE_PERIOD_MINUTES, RETURN_FEEDBACK_MAX_LENGTH
from campus_lms.core.errors import (
    AttemptLimitExceeded,
    InvalidStateTransition,
    LateSubmissionNotAllowed,
)
from campus_lms.models.enums import SubmissionState as S

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)

TRANSITIONS: dict[S, frozenset[S]] = {
    S.DRAFT: frozenset({S.SUBMITTED, S.LATE, S.LOCKED}),
    S.SUBMITTED: frozenset({S.UNDER_REVIEW, S.LOCKED}),
    S.LATE: frozenset({S.UNDER_REVIEW, S.LOCKED}),
    S.UNDER_REVIEW: frozenset({S.GRADED, S.LOCKED}),
    S.GRADED: frozenset({S.RETURNED_FOR_REVISION, S.LOCKED}),
    S.RETURNED_FOR_REVISION: frozenset({S.DRAFT, S.LOCKED}),
    S.LOCKED: frozenset(),
}

# states in which the student still has something to do
STUDENT_ACTIONABLE = frozenset({S.DRAFT, S.RETURNED_FOR_REVISION})


def can_transition(current, requested) -> bool:
    return S(requested) in TRANSITIONS[S(current)]


def ensure_transition(current, requested, reason: str | None = None) -> None:
    if not can_transition(current, requested):
        logger.warning("Rejected submission transition %s -> %s", S(current).value, S(requested).value)
        raise InvalidStateTransition(S(current).value, S(requested).value, reason)


def attempts_exhausted(attempt_number: int, max_attempts: int | None) -> bool:
    # max_attempts of 0 / None means unlimited
    return bool(max_attempts) and attempt_number >= max_attempts


def compute_late_days(due_at: datetime | None, submitted_at: datetime) -> int:
    """Whole days past due, rounded up. 0 when on time or inside the grace period."""
    if due_at is None:
        return 0
    due = as_utc(due_at)
    submitted = as_utc(submitted_at)
    if submitted <= due + timedelta(minutes=GRACE_PERIOD_MINUTES):
        return 0
    return math.ceil((submitted - due) / ONE_DAY)


def submit(sub, due_at: datetime | None, now: datetime, allow_late: bool = True) -> S:
    """draft -> submitted, or draft -> late with ``late_days`` recorded."""
    late_days = compute_late_days(due_at, now)
    target = S.LATE if late_days > 0 else S.SUBMITTED
    ensure_transition(sub.state, target)

    if late_days > 0 and not allow_late:
        raise LateSubmissionNotAllowed("Late submissions are not allowed for this item")

    sub.state = target
    sub.submitted_at = now
    sub.late_days = late_days if late_days > 0 else None
    return target


def open_for_review(sub) -> bool:
    """submitted|late -> under_review. Returns False when there was nothing to do."""
    if S(sub.state) in (S.UNDER_REVIEW, S.GRADED):
        return False
    ensure_transition(sub.state, S.UNDER_REVIEW)
    sub.state = S.UNDER_REVIEW
    return True


def mark_graded(sub) -> None:
    # graded -> graded is a re-grade, not a transition
    if S(sub.state) == S.GRADED:
        return
    ensure_transition(sub.state, S.GRADED)
    sub.state = S.GRADED


def return_for_revision(
    sub,
    feedback: str | None,
    max_attempts: int | None,
    allow_resubmission: bool,
) -> None:
    ensure_transition(sub.state, S.RETURNED_FOR_REVISION)

    if not feedback or not feedback.strip():
        raise InvalidStateTransition(
            S(sub.state).value, S.RETURNED_FOR_REVISION.value, "feedback is required"
        )
    if len(feedback) > RETURN_FEEDBACK_MAX_LENGTH:
        raise InvalidStateTransition(
            S(sub.state).value,
            S.RETURNED_FOR_REVISION.value,
            f"feedback is limited to {RETURN_FEEDBACK_MAX_LENGTH} characters",
        )
    if not allow_resubmission:
        raise InvalidStateTransition(
            S(sub.state).value, S.RETURNED_FOR_REVISION.value, "resubmission is not allowed"
        )
    if attempts_exhausted(sub.attempt_number, max_attempts):
        raise AttemptLimitExceeded(sub.attempt_number, max_attempts)

    sub.state = S.RETURNED_FOR_REVISION
    sub.return_feedback = feedback


def reopen(sub, max_attempts: int | None) -> None:
    """returned_for_revision -> draft, starting the next attempt."""
    if attempts_exhausted(sub.attempt_number, max_attempts):
        raise AttemptLimitExceeded(sub.attempt_number, max_attempts)
    ensure_transition(sub.state, S.DRAFT)

    sub.state = S.DRAFT
    sub.attempt_number += 1
    sub.submitted_at = None
    sub.late_days = None


def lock(sub) -> None:
    ensure_transition(sub.state, S.LOCKED)
    sub.state = S.LOCKED


def should_lock(sub, max_attempts: int | None, window_open: bool) -> bool:
    state = S(sub.state)
    if state == S.LOCKED:
        return False
    if not window_open and state in STUDENT_ACTIONABLE:
        return True
    return state == S.GRADED and attempts_exhausted(sub.attempt_number, max_attempts)
