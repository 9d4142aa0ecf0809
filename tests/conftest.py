"""
Test fixtures for the academic platform API.

Provides app, client, auth_client and db fixtures with file-based SQLite,
plus a seeded student account and small factories for related records.
"""

from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

TEST_PASSWORD = "testpass123"


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    db_file = str(tmp_path / "test.db")
    app = create_app({
        "TESTING": True,
        "DATABASE": db_file,
        "SECRET_KEY": "test-secret-key",
        "JWT_SECRET": "test-jwt-secret",
    })

    with app.app_context():
        from database import init_db, run_migrations

        init_db()
        run_migrations()

        yield app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def db(app):
    """Direct database access for store tests."""
    from database import get_db
    yield get_db()


@pytest.fixture
def user(app):
    """A seeded student account; ``password`` holds the plaintext."""
    from db_stores import UserStoreDB

    doc = UserStoreDB.insert({
        "userName": "student1",
        "firstName": "Test",
        "lastName": "Student",
        "email": "test@example.com",
        "password": generate_password_hash(TEST_PASSWORD),
        "role": "student",
    })
    return {**doc, "password": TEST_PASSWORD}


@pytest.fixture
def other_user(app):
    from db_stores import UserStoreDB

    return UserStoreDB.insert({
        "firstName": "Other",
        "lastName": "Person",
        "email": "other@example.com",
        "password": generate_password_hash("otherpass123"),
    })


def _bearer(app, user_id: str) -> dict:
    token = app.extensions["authenticator"].issue_token(user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(app, user):
    return _bearer(app, user["_id"])


@pytest.fixture
def other_headers(app, other_user):
    return _bearer(app, other_user["_id"])


@pytest.fixture
def auth_client(app, auth_headers):
    """Test client that sends the seeded user's bearer token on every request."""
    client = app.test_client()
    client.environ_base["HTTP_AUTHORIZATION"] = auth_headers["Authorization"]
    return client


@pytest.fixture
def teacher(app, user):
    from db_stores import TeacherStoreDB

    return TeacherStoreDB.insert({
        "first_name": "Ada",
        "last_name": "Lovelace",
        "phone": "555-0100",
        "school_email": "ada@school.edu",
        "uid": user["_id"],
    })


@pytest.fixture
def semester(app, user):
    from db_stores import SemesterStoreDB

    return SemesterStoreDB.insert({
        "title": "Fall 2026",
        "startDate": "2026-09-01",
        "endDate": "2026-12-20",
        "uid": user["_id"],
    })


@pytest.fixture
def subject(app, user, teacher, semester):
    from db_stores import SubjectStoreDB

    return SubjectStoreDB.insert({
        "subjectTitle": "Biology",
        "targetGrade": 90,
        "room": "B12",
        "uid": user["_id"],
        "t_uid": teacher["_id"],
        "semester_id": semester["_id"],
    })


@pytest.fixture
def grade(app, user, subject):
    from db_stores import GradeStoreDB

    return GradeStoreDB.insert({
        "grade": 42,
        "outOf": 50,
        "s_id": subject["_id"],
        "uid": user["_id"],
    })


@pytest.fixture
def assignment(app, user, subject):
    from db_stores import AssignmentStoreDB

    return AssignmentStoreDB.insert({
        "name": "Lab report",
        "s_id": subject["_id"],
        "uid": user["_id"],
        "due_date": "2026-10-01",
    })

