from datetime import timedelta
from decimal import Decimal

import pytest

from campus_lms.core.errors import InvalidStateTransition
from campus_lms.db.repositories import SubmissionRepository
from campus_lms.models.enums import SubmissionState
from campus_lms.models.grade_record import GradeRecord
from campus_lms.models.module_content import Assignment, Quiz
from campus_lms.models.submission import Submission
from campus_lms.services import submission_states as states
from tests.conftest import NOW, QUIZ_QUESTIONS, TestingSessionLocal, auth_header, login


def submit(client, token, content_id, content):
    r = client.post(
        f"/contents/{content_id}/submissions/me/submit",
        headers=auth_header(token),
        json={"content": content},
    )
    assert r.status_code == 200, r.text
    return r.json()


def grade(client, token, submission_id, **payload):
    return client.post(
        f"/submissions/{submission_id}/grade",
        headers=auth_header(token),
        json=payload,
    )


def return_for_revision(client, token, submission_id, feedback="Please revise"):
    return client.post(
        f"/submissions/{submission_id}/return",
        headers=auth_header(token),
        json={"feedback": feedback},
    )


def test_grade_flat_points_assignment(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    sub = submit(client, student, seed_data["hw1"], {"text": "answer"})

    r = grade(client, instructor, sub["id"], raw_score=87.5, feedback="Nice")
    assert r.status_code == 200, r.text
    record = r.json()
    assert Decimal(record["final_score"]) == Decimal("87.50")
    assert Decimal(record["max_score"]) == Decimal("100")
    assert record["grade"] == "B"
    assert record["grader_id"] == seed_data["instructor1"]

    mine = client.get(f"/contents/{seed_data['hw1']}/submissions/me", headers=auth_header(student)).json()
    assert mine["state"] == "graded"
    assert mine["grade_record"]["feedback"] == "Nice"


def test_review_then_grade(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    sub = submit(client, student, seed_data["hw1"], {"text": "answer"})

    r = client.post(f"/submissions/{sub['id']}/review", headers=auth_header(instructor))
    assert r.status_code == 200, r.text
    assert r.json()["state"] == "under_review"

    # opening again is informational only
    r = client.post(f"/submissions/{sub['id']}/review", headers=auth_header(instructor))
    assert r.status_code == 200
    assert r.json()["state"] == "under_review"

    r = grade(client, instructor, sub["id"], raw_score=95)
    assert r.status_code == 200, r.text
    assert r.json()["grade"] == "A"


def test_rubric_grade_with_late_penalty(client, seed_data):
    db = TestingSessionLocal()
    try:
        essay = db.query(Assignment).filter(Assignment.content_id == seed_data["essay"]).first()
        essay.due_at = NOW - timedelta(days=2)
        db.commit()
    finally:
        db.close()

    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    sub = submit(client, student, seed_data["essay"], {"text": "my essay"})
    assert sub["state"] == "late"
    assert sub["late_days"] == 2

    r = grade(client, instructor, sub["id"], rubric_scores={"thesis": 9, "evidence": 9})
    assert r.status_code == 200, r.text
    record = r.json()
    assert Decimal(record["raw_score"]) == Decimal("18")
    assert Decimal(record["final_score"]) == Decimal("16.20")
    assert Decimal(record["max_score"]) == Decimal("20")
    assert record["grade"] == "B"
    assert record["rubric_scores"] == {"thesis": "9", "evidence": "9"}


def test_out_of_range_scores_leave_submission_untouched(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    hw = submit(client, student, seed_data["hw1"], {"text": "a"})
    essay = submit(client, student, seed_data["essay"], {"text": "b"})

    r = grade(client, instructor, hw["id"], raw_score=101)
    assert r.status_code == 422
    assert r.json()["error"] == "ScoreOutOfRange"

    r = grade(client, instructor, essay["id"], rubric_scores={"thesis": 11, "evidence": 1})
    assert r.status_code == 422
    assert r.json()["error"] == "ScoreOutOfRange"

    r = grade(client, instructor, hw["id"])
    assert r.status_code == 422

    subs = client.get(f"/contents/{seed_data['hw1']}/submissions", headers=auth_header(instructor)).json()
    assert [s["state"] for s in subs] == ["submitted"]


def test_draft_cannot_be_graded(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    draft = client.put(
        f"/contents/{seed_data['hw1']}/submissions/me",
        headers=auth_header(student),
        json={"content": {"text": "wip"}},
    ).json()

    r = grade(client, instructor, draft["id"], raw_score=50)
    assert r.status_code == 409
    assert r.json()["error"] == "InvalidStateTransition"


def test_regrade_updates_the_same_record(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    sub = submit(client, student, seed_data["hw1"], {"text": "a"})

    first = grade(client, instructor, sub["id"], raw_score=50).json()
    second = grade(client, instructor, sub["id"], raw_score=70).json()

    assert second["id"] == first["id"]
    assert Decimal(second["final_score"]) == Decimal("70")

    db = TestingSessionLocal()
    try:
        assert db.query(GradeRecord).count() == 1
    finally:
        db.close()


def test_only_the_course_instructor_grades(client, seed_data):
    student = login(client, "student1@example.com")
    other = login(client, "instructor2@example.com")
    sub = submit(client, student, seed_data["hw1"], {"text": "a"})

    assert grade(client, other, sub["id"], raw_score=10).status_code == 403
    assert grade(client, student, sub["id"], raw_score=10).status_code == 403


def test_resubmission_cycle_until_attempt_limit(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    content_id = seed_data["hw1"]

    sub = submit(client, student, content_id, {"text": "v1"})
    attempts = [sub["attempt_number"]]

    for version in (2, 3):
        assert grade(client, instructor, sub["id"], raw_score=40).status_code == 200
        r = return_for_revision(client, instructor, sub["id"], f"Try again ({version})")
        assert r.status_code == 200, r.text
        assert r.json()["state"] == "returned_for_revision"
        assert r.json()["return_feedback"] == f"Try again ({version})"

        draft = client.put(
            f"/contents/{content_id}/submissions/me",
            headers=auth_header(student),
            json={"content": {"text": f"v{version}"}},
        )
        assert draft.status_code == 200, draft.text
        assert draft.json()["state"] == "draft"
        assert draft.json()["submitted_at"] is None

        sub = submit(client, student, content_id, {"text": f"v{version} final"})
        attempts.append(sub["attempt_number"])

    assert attempts == [1, 2, 3]

    assert grade(client, instructor, sub["id"], raw_score=90).status_code == 200
    r = return_for_revision(client, instructor, sub["id"])
    assert r.status_code == 409
    assert r.json()["error"] == "AttemptLimitExceeded"

    r = client.put(
        f"/contents/{content_id}/submissions/me",
        headers=auth_header(student),
        json={"content": {"text": "v4"}},
    )
    assert r.status_code == 409
    assert r.json()["error"] == "AttemptLimitExceeded"


def test_submit_directly_after_return_starts_next_attempt(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    sub = submit(client, student, seed_data["hw1"], {"text": "v1"})
    grade(client, instructor, sub["id"], raw_score=40)
    return_for_revision(client, instructor, sub["id"])

    r = client.post(
        f"/contents/{seed_data['hw1']}/submissions/me/submit",
        headers=auth_header(student),
    )
    assert r.status_code == 200, r.text
    assert r.json()["state"] == "submitted"
    assert r.json()["attempt_number"] == 2
    # the previous grade stays on record until the new attempt is graded
    assert r.json()["grade_record"] is not None


def test_return_refused_when_resubmission_disabled(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    sub = submit(client, student, seed_data["essay"], {"text": "only shot"})
    grade(client, instructor, sub["id"], rubric_scores={"thesis": 5, "evidence": 5})

    r = return_for_revision(client, instructor, sub["id"])
    assert r.status_code == 409
    assert r.json()["error"] == "InvalidStateTransition"


def test_return_feedback_is_validated(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    sub = submit(client, student, seed_data["hw1"], {"text": "a"})
    grade(client, instructor, sub["id"], raw_score=40)

    assert return_for_revision(client, instructor, sub["id"], "").status_code == 422
    assert return_for_revision(client, instructor, sub["id"], "x" * 1001).status_code == 422


def test_quiz_is_graded_on_submit_when_fully_automatic(client, seed_data):
    student = login(client, "student1@example.com")
    answers = [
        {"questionId": "q1", "selectedAnswerId": "a"},
        {"questionId": "q2", "selectedAnswerId": False},
    ]

    sub = submit(client, student, seed_data["quiz"], {"answers": answers})

    assert sub["state"] == "graded"
    record = sub["grade_record"]
    assert Decimal(record["final_score"]) == Decimal("5")
    assert Decimal(record["max_score"]) == Decimal("10")
    assert record["grader_id"] is None
    assert [q["is_correct"] for q in record["question_scores"]] == [True, False]


def test_quiz_with_manual_question_waits_for_grader(client, seed_data):
    db = TestingSessionLocal()
    try:
        quiz = db.query(Quiz).filter(Quiz.content_id == seed_data["quiz"]).first()
        quiz.questions = quiz.questions + [{"id": "q3", "type": "essay", "text": "Explain"}]
        quiz.grading_config.question_rules = quiz.grading_config.question_rules + [
            {"questionId": "q3", "points": 10}
        ]
        db.commit()
    finally:
        db.close()

    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    answers = [
        {"questionId": "q1", "selectedAnswerId": "a"},
        {"questionId": "q2", "selectedAnswerId": True},
        {"questionId": "q3", "textAnswer": "Because..."},
    ]
    sub = submit(client, student, seed_data["quiz"], {"answers": answers})
    assert sub["state"] == "submitted"
    assert sub["grade_record"] is None

    r = grade(client, instructor, sub["id"], question_scores={"q3": 7})
    assert r.status_code == 200, r.text
    record = r.json()
    assert Decimal(record["final_score"]) == Decimal("17")
    assert Decimal(record["max_score"]) == Decimal("20")
    assert record["grade"] == "B"


def test_lock_sweep_after_unpublish(client, seed_data):
    s1 = login(client, "student1@example.com")
    s2 = login(client, "student2@example.com")
    instructor = login(client, "instructor1@example.com")
    content_id = seed_data["hw1"]

    draft = client.put(
        f"/contents/{content_id}/submissions/me",
        headers=auth_header(s1),
        json={"content": {"text": "unfinished"}},
    ).json()
    submitted = submit(client, s2, content_id, {"text": "done"})

    client.post(f"/contents/{content_id}/unpublish", headers=auth_header(instructor))

    r = client.post(f"/contents/{content_id}/lock-sweep", headers=auth_header(instructor))
    assert r.status_code == 200, r.text
    assert r.json()["locked"] == [draft["id"]]

    subs = {s["id"]: s["state"] for s in client.get(
        f"/contents/{content_id}/submissions", headers=auth_header(instructor)
    ).json()}
    assert subs == {draft["id"]: "locked", submitted["id"]: "submitted"}

    # a second sweep has nothing left to do
    r = client.post(f"/contents/{content_id}/lock-sweep", headers=auth_header(instructor))
    assert r.json()["locked"] == []


def test_lock_sweep_locks_graded_work_with_no_attempts_left(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    sub = submit(client, student, seed_data["essay"], {"text": "only shot"})
    grade(client, instructor, sub["id"], rubric_scores={"thesis": 8, "evidence": 8})

    r = client.post(f"/contents/{seed_data['essay']}/lock-sweep", headers=auth_header(instructor))
    assert r.json()["locked"] == [sub["id"]]

    r = grade(client, instructor, sub["id"], rubric_scores={"thesis": 9, "evidence": 9})
    assert r.status_code == 409


def test_stale_state_write_is_rejected(client, seed_data):
    student = login(client, "student1@example.com")
    sub_id = submit(client, student, seed_data["hw1"], {"text": "a"})["id"]

    first = TestingSessionLocal()
    second = TestingSessionLocal()
    try:
        mine = first.query(Submission).filter(Submission.id == sub_id).one()
        theirs = second.query(Submission).filter(Submission.id == sub_id).one()

        states.open_for_review(mine)
        SubmissionRepository(first).claim(mine, SubmissionState.SUBMITTED)
        first.commit()

        states.open_for_review(theirs)
        with pytest.raises(InvalidStateTransition) as exc:
            SubmissionRepository(second).claim(theirs, SubmissionState.SUBMITTED)
        assert exc.value.current == "under_review"
    finally:
        first.close()
        second.close()


def test_concurrent_first_save_is_rejected(client, seed_data):
    student = login(client, "student1@example.com")
    r = client.put(
        f"/contents/{seed_data['hw1']}/submissions/me",
        headers=auth_header(student),
        json={"content": {"text": "from the other tab"}},
    )
    assert r.status_code == 200, r.text

    # a second request that read "no submission yet" before the first committed
    late_writer = TestingSessionLocal()
    try:
        duplicate = Submission(
            content_id=seed_data["hw1"],
            student_id=seed_data["student1"],
            state=SubmissionState.DRAFT,
            attempt_number=1,
            content={"text": "from this tab"},
        )
        with pytest.raises(InvalidStateTransition) as exc:
            SubmissionRepository(late_writer).save(duplicate)
        assert exc.value.status_code == 409
        assert exc.value.current == "missing"
        assert "created concurrently" in exc.value.message
    finally:
        late_writer.close()

    r = client.get(f"/contents/{seed_data['hw1']}/submissions/me", headers=auth_header(student))
    assert r.json()["content"] == {"text": "from the other tab"}


def test_quiz_without_grading_config_still_accepts_submissions(client, seed_data):
    instructor = login(client, "instructor1@example.com")
    student = login(client, "student1@example.com")

    r = client.post(
        f"/sections/{seed_data['section']}/contents",
        headers=auth_header(instructor),
        json={"title": "Pop quiz", "content_type": "QUIZ", "quiz": {"questions": QUIZ_QUESTIONS}},
    )
    assert r.status_code == 201, r.text
    quiz_id = r.json()["id"]
    r = client.post(f"/contents/{quiz_id}/publish", headers=auth_header(instructor))
    assert r.status_code == 200, r.text

    body = submit(client, student, quiz_id, {"answers": [{"questionId": "q1", "answer": "a"}]})
    assert body["state"] == "submitted"
    assert body["grade_record"] is None

    r = client.get(f"/contents/{quiz_id}/submissions/me", headers=auth_header(student))
    assert r.status_code == 200
    assert r.json()["content"]["answers"][0]["answer"] == "a"

    r = grade(client, instructor, body["id"])
    assert r.status_code == 422
    assert r.json()["error"] == "MissingGradingConfig"
