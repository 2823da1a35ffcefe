"""
Test configuration and setup for VidyaSetu
"""

import pytest
import os
import tempfile
from pathlib import Path

# Set test environment variables before any vidyasetu import
_session_dir = Path(tempfile.mkdtemp(prefix="vidyasetu_test_"))

os.environ["VIDYASETU_TEST_MODE"] = "1"
os.environ["VIDYASETU_SECURITY_DIR"] = str(_session_dir / "security")
os.environ["VIDYASETU_LOGGING_DIRECTORY"] = str(_session_dir / "logs")
os.environ["VIDYASETU_UPLOADS_DIRECTORY"] = str(_session_dir / "uploads")
os.environ["VIDYASETU_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"
# Generate a valid Fernet key for testing
from cryptography.fernet import Fernet

os.environ["VIDYASETU_ENCRYPTION_KEY"] = Fernet.generate_key().decode()

# Reset settings service to ensure it loads env-test.properties
from vidyasetu.core.services.settings_config_service import reset_settings_service

reset_settings_service()

PASSWORD = "Password123!"


@pytest.fixture
def test_db_path(tmp_path):
    return tmp_path / "test.db"


@pytest.fixture(autouse=True)
def db_service(test_db_path):
    """Fresh database (and upload storage) for every test"""
    from vidyasetu.core.services.database import init_db_service
    from vidyasetu.core.services.file_service import reset_file_service

    service = init_db_service(str(test_db_path))
    reset_file_service()

    yield service

    # Dispose the engine so the temp database file can be removed
    service.close()


@pytest.fixture
def db_session(db_service):
    session = db_service.get_session()
    yield session
    session.close()


@pytest.fixture
def client():
    """FastAPI TestClient over the per-test database."""
    from fastapi.testclient import TestClient
    from vidyasetu.api.main import app

    return TestClient(app)


def _create_user(db_service, name, email, role, **extra):
    from vidyasetu.core.models import User
    from vidyasetu.core.security import hash_password

    with db_service.get_session() as session:
        user = User(
            name=name,
            email=email,
            role=role,
            password_hash=hash_password(PASSWORD),
            **extra,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        session.expunge(user)
        return user


@pytest.fixture
def test_teacher(db_service):
    from vidyasetu.core.models import UserRole

    return _create_user(db_service, "API Teacher", "teacher@test.com", UserRole.TEACHER)


@pytest.fixture
def other_teacher(db_service):
    from vidyasetu.core.models import UserRole

    return _create_user(db_service, "Other Teacher", "other@test.com", UserRole.TEACHER)


@pytest.fixture
def test_student(db_service):
    from vidyasetu.core.models import UserRole

    return _create_user(
        db_service, "API Student", "student@test.com", UserRole.STUDENT, grade="8"
    )


@pytest.fixture
def test_admin(db_service):
    from vidyasetu.core.models import UserRole

    return _create_user(db_service, "API Admin", "admin@test.com", UserRole.ADMIN)


def _login(client, email):
    resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["token"]


@pytest.fixture
def teacher_token(client, test_teacher):
    return _login(client, test_teacher.email)


@pytest.fixture
def student_token(client, test_student):
    return _login(client, test_student.email)


@pytest.fixture
def admin_token(client, test_admin):
    return _login(client, test_admin.email)


@pytest.fixture
def teacher_headers(teacher_token):
    return {"Authorization": f"Bearer {teacher_token}"}


@pytest.fixture
def other_teacher_headers(client, other_teacher):
    return {"Authorization": f"Bearer {_login(client, other_teacher.email)}"}


@pytest.fixture
def student_headers(student_token):
    return {"Authorization": f"Bearer {student_token}"}


@pytest.fixture
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def make_content(client):
    """Create content through the API; published unless told otherwise."""

    def _make(headers, publish=True, **fields):
        form = {
            "title": "Fractions Made Easy",
            "description": "Adding and subtracting fractions with unlike denominators.",
            "subject": "Mathematics",
            "grade": "6",
            "content_type": "text",
            "text_content": "Find a common denominator first.",
            "tags": "fractions, arithmetic",
        }
        form.update({k: str(v) for k, v in fields.items()})
        resp = client.post("/api/content", data=form, headers=headers)
        assert resp.status_code == 201, resp.text
        content = resp.json()["data"]
        if publish:
            resp = client.patch(f"/api/content/{content['id']}/publish", headers=headers)
            assert resp.status_code == 200, resp.text
            content = resp.json()["data"]
        return content

    return _make


def algebra_questions():
    return [
        {
            "question_text": "Solve for x: 2x + 3 = 11",
            "question_type": "mcq",
            "options": [
                {"text": "x = 4", "is_correct": True},
                {"text": "x = 7", "is_correct": False},
            ],
            "correct_answer": "x = 4",
            "explanation": "Subtract 3, then divide by 2.",
        },
        {
            "question_text": "Zero is an even number.",
            "question_type": "true-false",
            "options": [
                {"text": "True", "is_correct": True},
                {"text": "False", "is_correct": False},
            ],
            "correct_answer": "True",
        },
        {
            "question_text": "Simplify: 3x + 5x",
            "question_type": "short-answer",
            "correct_answer": "8x",
        },
    ]


@pytest.fixture
def make_quiz(client):
    """Create a quiz through the API; published unless told otherwise."""

    def _make(headers, questions=None, publish=True, **fields):
        payload = {
            "title": "Algebra Basics",
            "description": "Check your understanding of linear equations.",
            "subject": "Mathematics",
            "grade": "8",
            "questions": questions if questions is not None else algebra_questions(),
        }
        payload.update(fields)
        resp = client.post("/api/quizzes", json=payload, headers=headers)
        assert resp.status_code == 201, resp.text
        quiz = resp.json()["data"]
        if publish:
            resp = client.patch(f"/api/quizzes/{quiz['id']}/publish", headers=headers)
            assert resp.status_code == 200, resp.text
            quiz = resp.json()["data"]
        return quiz

    return _make


@pytest.fixture
def quiz_questions():
    return algebra_questions()
