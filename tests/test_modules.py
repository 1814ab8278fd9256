from datetime import timedelta
from decimal import Decimal

from tests.conftest import NOW, auth_header, login


def titles(response):
    assert response.status_code == 200, response.text
    return [item["title"] for item in response.json()]


def test_student_sees_only_published_contents(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    url = f"/modules/{seed_data['module']}/contents"

    assert titles(client.get(url, headers=auth_header(student))) == ["HW1", "Essay", "Quiz 1", "Intro"]

    everything = client.get(url, headers=auth_header(instructor)).json()
    badges = {item["title"]: item["publish_state"] for item in everything}
    assert badges["HW2"] == "draft"
    assert badges["HW1"] == "published"
    assert [item["order"] for item in everything] == [0, 1, 2, 3, 4]


def test_outsiders_cannot_list_contents(client, seed_data):
    outsider = login(client, "student3@example.com")

    r = client.get(f"/modules/{seed_data['module']}/contents", headers=auth_header(outsider))
    assert r.status_code == 403


def test_publish_and_unpublish_content(client, seed_data, clock):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    url = f"/modules/{seed_data['module']}/contents"

    r = client.post(f"/contents/{seed_data['hw2']}/publish", headers=auth_header(instructor))
    assert r.status_code == 200, r.text
    assert r.json()["publish_state"] == "published"
    assert "HW2" in titles(client.get(url, headers=auth_header(student)))

    clock.advance(timedelta(hours=1))
    r = client.post(f"/contents/{seed_data['hw2']}/unpublish", headers=auth_header(instructor))
    assert r.json()["publish_state"] == "unpublished"
    assert "HW2" not in titles(client.get(url, headers=auth_header(student)))


def test_schedule_then_promote(client, seed_data, clock):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")
    url = f"/modules/{seed_data['module']}/contents"

    r = client.post(
        f"/contents/{seed_data['hw2']}/schedule",
        headers=auth_header(instructor),
        json={"publish_at": (NOW + timedelta(hours=1)).isoformat()},
    )
    assert r.status_code == 200, r.text
    assert r.json()["publish_state"] == "scheduled"

    # nothing is due yet
    r = client.post("/publishing/promote-scheduled", headers=auth_header(instructor))
    assert r.json() == {"promoted": 0}

    clock.advance(timedelta(hours=2))
    # scheduled items stay hidden until promoted
    assert "HW2" not in titles(client.get(url, headers=auth_header(student)))

    r = client.post("/publishing/promote-scheduled", headers=auth_header(instructor))
    assert r.status_code == 200, r.text
    assert r.json() == {"promoted": 1}
    assert "HW2" in titles(client.get(url, headers=auth_header(student)))

    r = client.post("/publishing/promote-scheduled", headers=auth_header(instructor))
    assert r.json() == {"promoted": 0}


def test_schedule_in_the_past_publishes_now(client, seed_data):
    instructor = login(client, "instructor1@example.com")

    r = client.post(
        f"/contents/{seed_data['hw2']}/schedule",
        headers=auth_header(instructor),
        json={"publish_at": (NOW - timedelta(days=1)).isoformat()},
    )
    assert r.status_code == 200, r.text
    assert r.json()["publish_state"] == "published"


def test_build_and_publish_a_module(client, seed_data):
    student = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")

    r = client.post(
        f"/courses/{seed_data['course']}/modules",
        headers=auth_header(instructor),
        json={"title": "Week 2"},
    )
    assert r.status_code == 201, r.text
    module_id = r.json()["id"]

    r = client.post(f"/modules/{module_id}/sections", headers=auth_header(instructor), json={"title": "Lab"})
    assert r.status_code == 201, r.text
    section_id = r.json()["id"]

    r = client.post(
        f"/sections/{section_id}/contents",
        headers=auth_header(instructor),
        json={
            "title": "Lab report",
            "content_type": "ASSIGNMENT",
            "assignment": {"points": 20, "due_at": (NOW + timedelta(days=3)).isoformat(), "max_attempts": 2},
            "grading": {"weight": 10, "is_curved": True, "curve_settings": {"type": "linear", "amount": 2}},
        },
    )
    assert r.status_code == 201, r.text
    assert r.json()["max_attempts"] == 2
    assert r.json()["order"] == 0
    content_id = r.json()["id"]

    r = client.post(
        f"/sections/{section_id}/contents",
        headers=auth_header(instructor),
        json={"title": "Slides", "content_type": "FILE", "body": {"url": "https://example.com/s.pdf"}},
    )
    assert r.status_code == 201, r.text
    assert r.json()["order"] == 1

    modules = client.get(f"/courses/{seed_data['course']}/modules", headers=auth_header(student))
    assert titles(modules) == ["Week 1"]

    r = client.post(f"/modules/{module_id}/publish", headers=auth_header(instructor))
    assert r.status_code == 200, r.text

    modules = client.get(f"/courses/{seed_data['course']}/modules", headers=auth_header(student))
    assert titles(modules) == ["Week 1", "Week 2"]
    contents = client.get(f"/modules/{module_id}/contents", headers=auth_header(student))
    assert titles(contents) == ["Lab report", "Slides"]

    policy = client.get(f"/contents/{content_id}/scoring-policy", headers=auth_header(instructor))
    assert policy.status_code == 200, policy.text
    assert policy.json()["kind"] == "flat"
    assert policy.json()["curve"]["type"] == "linear"

    r = client.post(f"/modules/{module_id}/unpublish", headers=auth_header(instructor))
    assert r.status_code == 200
    modules = client.get(f"/courses/{seed_data['course']}/modules", headers=auth_header(student))
    assert titles(modules) == ["Week 1"]


def test_content_order_is_unique_per_section(client, seed_data):
    instructor = login(client, "instructor1@example.com")

    r = client.post(
        f"/sections/{seed_data['section']}/contents",
        headers=auth_header(instructor),
        json={"title": "Clash", "content_type": "LESSON", "order": 0},
    )
    assert r.status_code == 409


def test_bad_grading_config_is_rejected_at_creation(client, seed_data):
    instructor = login(client, "instructor1@example.com")

    r = client.post(
        f"/sections/{seed_data['section']}/contents",
        headers=auth_header(instructor),
        json={
            "title": "Broken",
            "content_type": "ASSIGNMENT",
            "assignment": {"points": 10},
            "grading": {"rubric_schema": [{"criteria": "no key", "points": 5}]},
        },
    )
    assert r.status_code == 422
    assert r.json()["error"] == "MissingGradingConfig"


def test_quiz_without_grading_config_reports_missing(client, seed_data):
    instructor = login(client, "instructor1@example.com")

    r = client.post(
        f"/sections/{seed_data['section']}/contents",
        headers=auth_header(instructor),
        json={"title": "Pop quiz", "content_type": "QUIZ", "quiz": {"questions": []}},
    )
    assert r.status_code == 201, r.text
    quiz_id = r.json()["id"]

    r = client.get(f"/contents/{quiz_id}/scoring-policy", headers=auth_header(instructor))
    assert r.status_code == 422
    assert r.json()["error"] == "MissingGradingConfig"

    r = client.put(
        f"/contents/{quiz_id}/grading-config",
        headers=auth_header(instructor),
        json={"weight": 5, "question_rules": [{"questionId": "q1", "points": 4}]},
    )
    assert r.status_code == 200, r.text
    assert r.json()["question_rules"] == [{"questionId": "q1", "points": 4}]

    r = client.get(f"/contents/{quiz_id}/scoring-policy", headers=auth_header(instructor))
    assert r.status_code == 200
    assert r.json()["kind"] == "questions"


def test_grading_config_update_replaces_rubric(client, seed_data):
    instructor = login(client, "instructor1@example.com")

    r = client.put(
        f"/contents/{seed_data['essay']}/grading-config",
        headers=auth_header(instructor),
        json={"weight": 60, "rubric_schema": [{"key": "overall", "points": 50}]},
    )
    assert r.status_code == 200, r.text

    policy = client.get(f"/contents/{seed_data['essay']}/scoring-policy", headers=auth_header(instructor)).json()
    assert [c["key"] for c in policy["criteria"]] == ["overall"]
    assert Decimal(policy["max_score"]) == Decimal("50")


def test_students_cannot_author(client, seed_data):
    student = login(client, "student1@example.com")

    r = client.post(
        f"/courses/{seed_data['course']}/modules",
        headers=auth_header(student),
        json={"title": "Mine"},
    )
    assert r.status_code == 403

    r = client.post("/publishing/promote-scheduled", headers=auth_header(student))
    assert r.status_code == 403
