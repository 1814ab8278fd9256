"""
Grader side of the submission lifecycle: review, scoring, returns and locking.
"""
import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from campus_lms.core.errors import MissingGradingConfig, ScoreOutOfRange
from campus_lms.db.repositories import GradeRecordRepository, SubmissionRepository, commit
from campus_lms.models.enums import ContentType, SubmissionState
from campus_lms.models.grade_record import GradeRecord
from campus_lms.models.module_content import ModuleContent
from campus_lms.models.submission import Submission
from campus_lms.services import submission_states as states
from campus_lms.services.grading_policy import QuestionRulesPolicy, resolve_for_content
from campus_lms.services.publish_window import item_is_visible
from campus_lms.services.quiz_autograde import autograde, merge_scores
from campus_lms.services.scoring import ScoreResult, compute_score

logger = logging.getLogger(__name__)

GRADABLE_STATES = (
    SubmissionState.SUBMITTED,
    SubmissionState.LATE,
    SubmissionState.UNDER_REVIEW,
    SubmissionState.GRADED,
)


def open_for_review(db: Session, sub: Submission) -> Submission:
    expected = SubmissionState(sub.state)
    if states.open_for_review(sub):
        SubmissionRepository(db).claim(sub, expected)
        commit(db)
        db.refresh(sub)
        logger.info("Submission %s opened for review", sub.id)
    return sub


def _quiz_answers(sub: Submission):
    if isinstance(sub.content, dict):
        return sub.content.get("answers") or []
    return sub.content if isinstance(sub.content, list) else []


def _score(
    sub: Submission,
    content: ModuleContent,
    raw_score=None,
    criterion_scores=None,
    question_scores=None,
) -> tuple[ScoreResult, list | None, dict | None]:
    gradable = content.gradable
    policy = resolve_for_content(content)

    question_json = None
    if isinstance(policy, QuestionRulesPolicy) and raw_score is None:
        results = autograde(getattr(gradable, "questions", None) or [], _quiz_answers(sub), policy)
        question_scores = merge_scores(results, question_scores)
        question_json = []
        for result in results:
            row = result.to_json()
            if result.question_id in question_scores:
                row["score"] = str(question_scores[result.question_id])
            question_json.append(row)
    elif raw_score is None and criterion_scores is None and question_scores is None:
        raise ScoreOutOfRange("A raw score or rubric scores are required")

    result = compute_score(
        policy,
        raw_score=raw_score,
        criterion_scores=criterion_scores,
        question_scores=question_scores,
        late_days=sub.late_days or 0,
        late_penalty_rate=gradable.late_penalty or Decimal("0"),
    )

    rubric_json = None
    if criterion_scores is not None:
        rubric_json = {key: str(value) for key, value in criterion_scores.items()}
    return result, question_json, rubric_json


def _write_grade(
    db: Session,
    sub: Submission,
    content: ModuleContent,
    grader_id: int | None,
    feedback: str | None,
    now: datetime,
    **score_inputs,
) -> GradeRecord:
    """Stage the grade record and the ``graded`` state in the open transaction."""
    expected = SubmissionState(sub.state)
    if expected not in GRADABLE_STATES:
        states.ensure_transition(expected, SubmissionState.GRADED)

    result, question_json, rubric_json = _score(sub, content, **score_inputs)

    if expected in (SubmissionState.SUBMITTED, SubmissionState.LATE):
        # grading an item nobody opened yet passes through review implicitly
        states.open_for_review(sub)
    states.mark_graded(sub)
    if expected != SubmissionState.GRADED:
        # must run before anything flushes the new state
        SubmissionRepository(db).claim(sub, expected)

    records = GradeRecordRepository(db)
    record = records.find_by_submission(sub.id)
    regrade = record is not None
    if record is None:
        record = GradeRecord(submission_id=sub.id, student_id=sub.student_id)

    record.grader_id = grader_id
    record.raw_score = result.raw_score
    record.final_score = result.final_score
    record.max_score = result.max_score
    record.grade = result.grade
    record.feedback = feedback
    record.rubric_scores = rubric_json
    record.question_scores = question_json
    record.graded_at = now
    records.save(record)

    logger.info(
        "%s submission %s: raw=%s final=%s/%s grade=%s late_days=%s",
        "Re-graded" if regrade else "Graded",
        sub.id,
        result.raw_score,
        result.final_score,
        result.max_score,
        result.grade,
        sub.late_days,
    )
    return record


def grade_submission(
    db: Session,
    sub: Submission,
    content: ModuleContent,
    grader_id: int,
    now: datetime,
    raw_score=None,
    criterion_scores=None,
    question_scores=None,
    feedback: str | None = None,
) -> GradeRecord:
    record = _write_grade(
        db,
        sub,
        content,
        grader_id,
        feedback,
        now,
        raw_score=raw_score,
        criterion_scores=criterion_scores,
        question_scores=question_scores,
    )
    commit(db)
    db.refresh(record)
    db.refresh(sub)
    return record


def try_auto_finalize_quiz(db: Session, sub: Submission, content: ModuleContent, now: datetime):
    """
    Grade a freshly submitted quiz straight away when every question is
    auto-gradable. Runs inside the caller's transaction; returns the staged
    record or None when a human still has to look at it.
    """
    if content.content_type != ContentType.QUIZ:
        return None
    try:
        policy = resolve_for_content(content)
    except MissingGradingConfig as exc:
        # the submission stands; grading reports the problem to the author
        logger.warning("Quiz submission %s left for manual grading: %s", sub.id, exc)
        return None
    if not isinstance(policy, QuestionRulesPolicy):
        return None

    results = autograde(content.quiz.questions or [], _quiz_answers(sub), policy)
    if any(r.needs_manual for r in results):
        logger.info("Quiz submission %s needs manual grading", sub.id)
        return None

    return _write_grade(db, sub, content, None, None, now)


def return_for_revision(db: Session, sub: Submission, content: ModuleContent, feedback: str) -> Submission:
    gradable = content.gradable
    expected = SubmissionState(sub.state)
    states.return_for_revision(sub, feedback, gradable.max_attempts, gradable.allow_resubmission)
    SubmissionRepository(db).claim(sub, expected)
    commit(db)
    db.refresh(sub)
    logger.info("Submission %s returned for revision after attempt %s", sub.id, sub.attempt_number)
    return sub


def lock_sweep(db: Session, content: ModuleContent, now: datetime) -> list[Submission]:
    """Lock every submission of ``content`` that can no longer move forward."""
    gradable = content.gradable
    window_open = item_is_visible(content, now)
    repo = SubmissionRepository(db)

    locked = []
    for sub in repo.list_for_content(content.id):
        if not states.should_lock(sub, gradable.max_attempts, window_open):
            continue
        expected = SubmissionState(sub.state)
        states.lock(sub)
        repo.claim(sub, expected)
        locked.append(sub)

    commit(db)
    if locked:
        logger.info("Locked %s submission(s) of content %s", len(locked), content.id)
    return locked
