"""
Test fixtures for StudySync.

Provides app, client, db, and logged-in teacher/student clients backed by a
file-based SQLite database seeded with reference data and five accounts.
"""

from __future__ import annotations

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from models import Requester  # noqa: E402

PASSWORD = "Secret123"

TEACHER_EMAIL = "anitha@mgits.ac.in"
OTHER_TEACHER_EMAIL = "rajesh@mgits.ac.in"
CSE_STUDENT_EMAIL = "23cs001@mgits.ac.in"
CSE_PEER_EMAIL = "23cs002@mgits.ac.in"
ECE_STUDENT_EMAIL = "23ec001@mgits.ac.in"

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n%%EOF\n"


@pytest.fixture
def app(tmp_path):
    """Create app with file-based SQLite for testing."""
    from app import create_app

    db_file = str(tmp_path / "test.db")
    app = create_app({
        "TESTING": True,
        "DATABASE": db_file,
        "SECRET_KEY": "test-secret-key",
    })

    with app.app_context():
        from auth import register
        from database import get_db, init_db, run_migrations
        from seed_demo_data import seed_reference

        init_db()
        run_migrations()
        seed_reference(get_db())

        register(TEACHER_EMAIL, PASSWORD, "teacher")
        register(OTHER_TEACHER_EMAIL, PASSWORD, "teacher")
        register(CSE_STUDENT_EMAIL, PASSWORD, "student", "CSE", 3)
        register(CSE_PEER_EMAIL, PASSWORD, "student", "CSE", 3)
        register(ECE_STUDENT_EMAIL, PASSWORD, "student", "ECE", 3)

    yield app


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return app.test_client()


@pytest.fixture
def db(app):
    """App context plus its connection, for store-level tests."""
    with app.app_context():
        from database import get_db
        yield get_db()


def login(app, email: str, role: str):
    client = app.test_client()
    resp = client.post("/login", json={"email": email, "password": PASSWORD, "role": role})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def teacher_client(app):
    """Authenticated test client logged in as a teacher."""
    return login(app, TEACHER_EMAIL, "teacher")


@pytest.fixture
def student_client(app):
    """Authenticated test client logged in as a CSE semester-3 student."""
    return login(app, CSE_STUDENT_EMAIL, "student")


@pytest.fixture
def ece_client(app):
    """Authenticated test client logged in as an ECE semester-3 student."""
    return login(app, ECE_STUDENT_EMAIL, "student")


@pytest.fixture
def teacher():
    return Requester(TEACHER_EMAIL, "teacher")


@pytest.fixture
def other_teacher():
    return Requester(OTHER_TEACHER_EMAIL, "teacher")


@pytest.fixture
def student():
    return Requester(CSE_STUDENT_EMAIL, "student", "CSE", 3)


@pytest.fixture
def peer():
    return Requester(CSE_PEER_EMAIL, "student", "CSE", 3)


@pytest.fixture
def ece_student():
    return Requester(ECE_STUDENT_EMAIL, "student", "ECE", 3)


@pytest.fixture
def pdf_bytes():
    return PDF_BYTES
