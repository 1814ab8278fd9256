from decimal import Decimal

from campus_lms.services.gradebook import weighted_percentage
from tests.conftest import auth_header, login


def submit(client, token, content_id, content):
    r = client.post(
        f"/contents/{content_id}/submissions/me/submit",
        headers=auth_header(token),
        json={"content": content},
    )
    assert r.status_code == 200, r.text
    return r.json()["id"]


def entry(weight, final_score, max_score):
    return {
        "weight": Decimal(weight),
        "final_score": None if final_score is None else Decimal(final_score),
        "max_score": Decimal(max_score),
    }


def test_weighted_percentage_uses_weights():
    entries = [entry("40", "80", "100"), entry("60", "18", "20"), entry("0", "1", "10")]
    assert weighted_percentage(entries) == Decimal("86.00")


def test_weighted_percentage_ignores_ungraded_items():
    entries = [entry("40", "80", "100"), entry("60", None, "20")]
    assert weighted_percentage(entries) == Decimal("80.00")
    assert weighted_percentage([entry("40", None, "100")]) is None


def test_unweighted_items_average_evenly():
    entries = [entry("0", "5", "10"), entry("0", "10", "10")]
    assert weighted_percentage(entries) == Decimal("75.00")


def test_instructor_sees_every_enrolled_student(client, seed_data):
    s1 = login(client, "student1@example.com")
    instructor = login(client, "instructor1@example.com")

    hw = submit(client, s1, seed_data["hw1"], {"text": "a"})
    essay = submit(client, s1, seed_data["essay"], {"text": "b"})
    client.post(f"/submissions/{hw}/grade", headers=auth_header(instructor), json={"raw_score": 80})
    client.post(
        f"/submissions/{essay}/grade",
        headers=auth_header(instructor),
        json={"rubric_scores": {"thesis": 9, "evidence": 9}},
    )

    r = client.get(f"/modules/{seed_data['module']}/gradebook", headers=auth_header(instructor))
    assert r.status_code == 200, r.text
    rows = {row["student_email"]: row for row in r.json()}
    assert set(rows) == {"student1@example.com", "student2@example.com"}

    first = rows["student1@example.com"]
    assert Decimal(first["weighted_percentage"]) == Decimal("86.00")
    items = {item["title"]: item for item in first["items"]}
    assert set(items) == {"HW1", "Essay", "Quiz 1", "HW2"}
    assert items["HW1"]["state"] == "graded"
    assert items["Quiz 1"]["state"] == "missing"
    assert items["Essay"]["grade"] == "A"

    second = rows["student2@example.com"]
    assert second["weighted_percentage"] is None
    assert all(item["state"] == "missing" for item in second["items"])


def test_student_sees_only_own_row(client, seed_data):
    s1 = login(client, "student1@example.com")

    r = client.get(f"/modules/{seed_data['module']}/gradebook", headers=auth_header(s1))
    assert r.status_code == 200, r.text
    rows = r.json()
    assert [row["student_email"] for row in rows] == ["student1@example.com"]


def test_gradebook_access_rules(client, seed_data):
    outsider = login(client, "student3@example.com")
    other_instructor = login(client, "instructor2@example.com")

    r = client.get(f"/modules/{seed_data['module']}/gradebook", headers=auth_header(outsider))
    assert r.status_code == 403

    r = client.get(f"/modules/{seed_data['module']}/gradebook", headers=auth_header(other_instructor))
    assert r.status_code == 403

    r = client.get("/modules/999999/gradebook", headers=auth_header(other_instructor))
    assert r.status_code == 404
