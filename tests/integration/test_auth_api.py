"""
Auth API: registration policy, login, token validation and profile updates
"""

import jwt
from datetime import datetime, timezone


def _register(client, headers=None, **overrides):
    payload = {
        "name": "Meera Rao",
        "email": "meera@test.com",
        "password": "Str0ng!Pass",
        "role": "student",
        "grade": "7",
        "school": "Kendriya Vidyalaya",
        "location": "Mysuru",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload, headers=headers or {})


def test_register_returns_token_and_user(client):
    resp = _register(client)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["token"]
    user = body["data"]["user"]
    assert user["email"] == "meera@test.com"
    assert user["role"] == "student"
    assert user["grade"] == "7"
    assert "password_hash" not in user


def test_register_normalizes_email_and_rejects_duplicates(client):
    assert _register(client, email="Meera@Test.com").status_code == 201
    resp = _register(client, email="meera@test.com")
    assert resp.status_code == 400, resp.text
    assert resp.json()["errors"][0]["field"] == "email"


def test_register_enforces_password_policy(client):
    resp = _register(client, password="weakpass")
    assert resp.status_code == 400, resp.text
    body = resp.json()
    assert body["success"] is False
    assert body["errors"][0]["field"] == "password"


def test_register_rejects_unknown_role(client):
    resp = _register(client, role="principal")
    assert resp.status_code == 400, resp.text
    assert resp.json()["errors"][0]["field"] == "role"


def test_admin_registration_requires_admin_caller(client, teacher_headers, admin_headers):
    assert _register(client, role="admin").status_code == 403
    assert _register(client, headers=teacher_headers, role="admin").status_code == 403

    resp = _register(client, headers=admin_headers, role="admin", email="root@test.com")
    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["user"]["role"] == "admin"


def test_login_success_and_failure(client, test_teacher):
    resp = client.post(
        "/api/auth/login", json={"email": "TEACHER@test.com", "password": "Password123!"}
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["user"]["role"] == "teacher"
    assert data["user"]["last_login"] is not None
    assert data["expires_at"]

    resp = client.post(
        "/api/auth/login", json={"email": test_teacher.email, "password": "Wrong123!"}
    )
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Invalid email or password"}


def test_deactivated_account_cannot_log_in(client, test_student, admin_headers):
    resp = client.put(
        f"/api/users/{test_student.id}", json={"is_active": False}, headers=admin_headers
    )
    assert resp.status_code == 200, resp.text

    resp = client.post(
        "/api/auth/login", json={"email": test_student.email, "password": "Password123!"}
    )
    assert resp.status_code == 401


def test_me_requires_valid_token(client, teacher_headers):
    resp = client.get("/api/auth/me", headers=teacher_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["email"] == "teacher@test.com"

    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_token_without_exp_is_rejected(client, test_teacher):
    from vidyasetu.core.services.auth import AuthService

    auth_service = AuthService()
    token = jwt.encode(
        {
            "user_id": test_teacher.id,
            "email": test_teacher.email,
            "role": "teacher",
            "iat": datetime.now(timezone.utc),
        },
        auth_service.jwt_secret,
        algorithm=auth_service.jwt_algorithm,
    )

    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401, resp.text


def test_update_profile(client, student_headers, test_teacher):
    resp = client.put(
        "/api/auth/profile",
        json={"name": "  Ravi K  ", "school": "New School", "location": "Delhi"},
        headers=student_headers,
    )
    assert resp.status_code == 200, resp.text
    user = resp.json()["data"]
    assert user["name"] == "Ravi K"
    assert user["school"] == "New School"
    assert user["grade"] == "8"

    resp = client.put(
        "/api/auth/profile", json={"email": test_teacher.email}, headers=student_headers
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "email"
