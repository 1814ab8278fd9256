import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from campus_lms.core.clock import FrozenClock, get_clock
from campus_lms.core.deps import get_db
from campus_lms.core.security import hash_password
from campus_lms.db.base import Base
from campus_lms.main import app
from campus_lms.models.course import Course
from campus_lms.models.enrollment import Enrollment
from campus_lms.models.enums import ContentType
from campus_lms.models.grade_record import GradeRecord
from campus_lms.models.grading_config import GradingConfig
from campus_lms.models.module import Module, ModuleSection
from campus_lms.models.module_content import Assignment, ModuleContent, Quiz
from campus_lms.models.submission import Submission
from campus_lms.models.user import User

TEST_DB_FILE = "test_campus_lms.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

# every test starts at this instant; move it with the ``clock`` fixture
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def login(client, email: str, password: str = "password123") -> str:
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["access_token"]


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


QUIZ_QUESTIONS = [
    {
        "id": "q1",
        "type": "multiple_choice",
        "text": "2 + 2 = ?",
        "options": [
            {"id": "a", "text": "4", "correct": True},
            {"id": "b", "text": "5"},
        ],
    },
    {"id": "q2", "type": "true_false", "text": "The sky is blue", "correctAnswer": True},
]


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture(autouse=True)
def seed_data():
    """
    Seed a clean dataset for each test and hand back the ids.

    One course taught by instructor1 with student1 and student2 enrolled, and
    one published module holding: HW1 (flat 100 points, 3 attempts), Essay
    (rubric of 20 points, 1 attempt), Quiz 1 (two auto-graded questions),
    a lesson, and HW2 which is not published.
    """
    db = TestingSessionLocal()
    try:
        # Clear tables (child -> parent)
        for model in (
            GradeRecord,
            Submission,
            GradingConfig,
            Assignment,
            Quiz,
            ModuleContent,
            ModuleSection,
            Module,
            Enrollment,
            Course,
            User,
        ):
            db.query(model).delete()
        db.commit()

        # Users
        users = {
            name: User(
                email=f"{name}@example.com",
                full_name=name.title(),
                role=role,
                hashed_password=hash_password("password123"),
            )
            for name, role in (
                ("student1", "student"),
                ("student2", "student"),
                ("student3", "student"),
                ("instructor1", "instructor"),
                ("instructor2", "instructor"),
            )
        }
        db.add_all(users.values())
        db.commit()

        # Course + enrollments (student3 stays out)
        course = Course(title="CS5004", instructor_id=users["instructor1"].id)
        db.add(course)
        db.commit()
        db.add_all(
            [
                Enrollment(course_id=course.id, student_id=users["student1"].id),
                Enrollment(course_id=course.id, student_id=users["student2"].id),
            ]
        )

        published = NOW - timedelta(days=7)
        module = Module(course_id=course.id, title="Week 1", published_at=published)
        section = ModuleSection(module=module, title="Readings", order=0, published_at=published)

        hw1 = ModuleContent(
            section=section,
            title="HW1",
            content_type=ContentType.ASSIGNMENT,
            order=0,
            published_at=published,
            assignment=Assignment(
                due_at=NOW + timedelta(days=1),
                points=100,
                max_attempts=3,
                allow_resubmission=True,
                late_penalty=Decimal("0.05"),
                grading_config=GradingConfig(weight=Decimal("40")),
            ),
        )
        essay = ModuleContent(
            section=section,
            title="Essay",
            content_type=ContentType.ASSIGNMENT,
            order=1,
            published_at=published,
            assignment=Assignment(
                due_at=NOW + timedelta(days=2),
                max_attempts=1,
                allow_resubmission=False,
                late_penalty=Decimal("0.05"),
                grading_config=GradingConfig(
                    weight=Decimal("60"),
                    rubric_schema=[
                        {"key": "thesis", "criteria": "Thesis", "points": 10},
                        {"key": "evidence", "criteria": "Evidence", "points": 10},
                    ],
                ),
            ),
        )
        quiz = ModuleContent(
            section=section,
            title="Quiz 1",
            content_type=ContentType.QUIZ,
            order=2,
            published_at=published,
            quiz=Quiz(
                due_at=NOW + timedelta(days=1),
                max_attempts=2,
                questions=QUIZ_QUESTIONS,
                grading_config=GradingConfig(
                    weight=Decimal("0"),
                    question_rules=[
                        {"questionId": "q1", "points": 5},
                        {"questionId": "q2", "points": 5},
                    ],
                ),
            ),
        )
        lesson = ModuleContent(
            section=section,
            title="Intro",
            content_type=ContentType.LESSON,
            order=3,
            published_at=published,
            body={"text": "Welcome"},
        )
        hw2 = ModuleContent(
            section=section,
            title="HW2",
            content_type=ContentType.ASSIGNMENT,
            order=4,
            assignment=Assignment(due_at=NOW + timedelta(days=7), points=50),
        )
        db.add(module)
        db.commit()

        ids = {name: user.id for name, user in users.items()}
        ids.update(
            course=course.id,
            module=module.id,
            section=section.id,
            hw1=hw1.id,
            essay=essay.id,
            quiz=quiz.id,
            lesson=lesson.id,
            hw2=hw2.id,
        )
        yield ids
    finally:
        db.close()


@pytest.fixture()
def clock():
    return FrozenClock(NOW)


@pytest.fixture()
def client(clock):
    """Test client that uses the test DB session and a frozen clock."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
