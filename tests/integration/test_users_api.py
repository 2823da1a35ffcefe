"""
Admin user management and platform statistics
"""

from datetime import datetime, timezone

import pytest


@pytest.mark.parametrize("path", ["/api/users", "/api/users/admin/statistics", "/api/users/1"])
def test_user_routes_are_admin_only(client, teacher_headers, student_headers, path):
    assert client.get(path).status_code == 401
    assert client.get(path, headers=teacher_headers).status_code == 403
    resp = client.get(path, headers=student_headers)
    assert resp.status_code == 403
    assert resp.json() == {"success": False, "message": "Not authorized"}


def test_list_users_filters_and_paginates(
    client, admin_headers, test_teacher, other_teacher, test_student
):
    resp = client.get("/api/users", headers=admin_headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["pagination"] == {"total": 4, "page": 1, "pages": 1, "limit": 20}
    assert all("password_hash" not in u for u in body["data"])

    teachers = client.get("/api/users?role=teacher", headers=admin_headers).json()["data"]
    assert {u["email"] for u in teachers} == {"teacher@test.com", "other@test.com"}

    found = client.get("/api/users?search=OTHER", headers=admin_headers).json()["data"]
    assert [u["name"] for u in found] == ["Other Teacher"]

    by_email = client.get("/api/users?search=student@", headers=admin_headers).json()["data"]
    assert [u["email"] for u in by_email] == ["student@test.com"]

    page = client.get("/api/users?limit=3&page=2", headers=admin_headers).json()
    assert len(page["data"]) == 1
    assert page["pagination"]["pages"] == 2

    assert client.get("/api/users?role=principal", headers=admin_headers).status_code == 400


def test_get_user(client, admin_headers, test_student):
    resp = client.get(f"/api/users/{test_student.id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["grade"] == "8"

    missing = client.get("/api/users/424242", headers=admin_headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "User not found"


def test_update_user(client, admin_headers, test_student, test_teacher):
    url = f"/api/users/{test_student.id}"

    resp = client.put(
        url, json={"role": "teacher", "school": "Govt. High School", "name": None},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["role"] == "teacher"
    assert data["school"] == "Govt. High School"
    assert data["name"] == "API Student"

    clash = client.put(url, json={"email": test_teacher.email}, headers=admin_headers)
    assert clash.status_code == 400
    assert clash.json()["errors"] == [{"field": "email", "message": "Email already in use"}]

    assert client.put(url, json={"email": "not-an-email"}, headers=admin_headers).status_code == 400
    assert client.put("/api/users/424242", json={}, headers=admin_headers).status_code == 404


def test_deactivated_user_cannot_log_in(client, admin_headers, test_student):
    client.put(f"/api/users/{test_student.id}", json={"is_active": False}, headers=admin_headers)
    resp = client.post(
        "/api/auth/login", json={"email": test_student.email, "password": "Password123!"}
    )
    assert resp.status_code == 401


def test_delete_user_keeps_their_content(
    client, admin_headers, test_teacher, teacher_headers, make_content
):
    content = make_content(teacher_headers)

    resp = client.delete(f"/api/users/{test_teacher.id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "User deleted successfully"}

    assert client.get(f"/api/users/{test_teacher.id}", headers=admin_headers).status_code == 404
    assert client.get(f"/api/content/{content['id']}").status_code == 200


def test_platform_statistics(
    client, admin_headers, teacher_headers, student_headers, make_content, make_quiz
):
    make_content(teacher_headers)
    make_content(teacher_headers, publish=False, title="Draft")
    quiz = make_quiz(teacher_headers)
    make_quiz(teacher_headers, publish=False)
    client.post(
        f"/api/quizzes/{quiz['id']}/submit",
        json={
            "answers": [{"question_id": quiz["questions"][0]["id"], "user_answer": "x = 4"}],
            "started_at": datetime.now(timezone.utc).isoformat(),
        },
        headers=student_headers,
    )

    resp = client.get("/api/users/admin/statistics", headers=admin_headers)
    assert resp.status_code == 200, resp.text
    stats = resp.json()["data"]

    assert stats["users"] == {"total": 3, "students": 1, "teachers": 1, "admins": 1, "active": 3}
    assert stats["content"] == {
        "total": 2,
        "published": 1,
        "by_type": [{"content_type": "text", "count": 2}],
    }
    assert stats["quizzes"] == {"total": 2, "published": 1, "attempts": 1}
    assert len(stats["recent_users"]) == 3
    assert stats["recent_content"][0]["title"] == "Draft"
