"""
Content API: creation with uploads, listing filters, visibility, ownership,
likes and counters
"""

from pathlib import Path

from vidyasetu.core.services.settings_config_service import get_settings_service


def _upload_root() -> Path:
    return Path(get_settings_service().get_upload_defaults()["directory"])


def test_create_content_starts_unpublished(client, teacher_headers, test_teacher, make_content):
    content = make_content(teacher_headers, publish=False, tags=" fractions ,, arithmetic ")

    assert content["is_published"] is False
    assert content["created_by"] == test_teacher.id
    assert content["creator"]["name"] == "API Teacher"
    assert content["tags"] == ["fractions", "arithmetic"]
    assert content["views"] == 0
    assert content["downloads"] == 0
    assert content["likes"] == 0
    assert content["difficulty"] == "beginner"


def test_create_requires_fields_and_valid_enums(client, teacher_headers):
    resp = client.post(
        "/api/content",
        data={"description": "No title", "subject": "Mathematics", "grade": "6", "content_type": "text"},
        headers=teacher_headers,
    )
    assert resp.status_code == 400, resp.text
    assert {"field": "title", "message": "Field required"} in resp.json()["errors"]

    resp = client.post(
        "/api/content",
        data={
            "title": "Bad subject",
            "description": "x",
            "subject": "Astrology",
            "grade": "6",
            "content_type": "text",
        },
        headers=teacher_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "subject"


def test_blank_title_is_rejected_by_service(client, teacher_headers):
    resp = client.post(
        "/api/content",
        data={"title": "   ", "description": "d", "subject": "Science", "grade": "7", "content_type": "text"},
        headers=teacher_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["errors"] == [{"field": "title", "message": "Title is required"}]


def test_students_cannot_create_content(client, student_headers):
    resp = client.post(
        "/api/content",
        data={"title": "t", "description": "d", "subject": "Science", "grade": "7", "content_type": "text"},
        headers=student_headers,
    )
    assert resp.status_code == 403
    assert resp.json()["success"] is False


def test_upload_is_stored_and_served(client, teacher_headers):
    resp = client.post(
        "/api/content",
        data={"title": "Worksheet", "description": "Printable", "subject": "English", "grade": "5", "content_type": "pdf"},
        files={
            "file": ("worksheet.pdf", b"%PDF-1.4 demo", "application/pdf"),
            "thumbnail": ("cover.png", b"\x89PNG", "image/png"),
        },
        headers=teacher_headers,
    )
    assert resp.status_code == 201, resp.text
    content = resp.json()["data"]
    assert content["file_url"].startswith("/uploads/documents/file-")
    assert content["thumbnail"].startswith("/uploads/images/thumbnail-")
    assert content["file_size"] == len(b"%PDF-1.4 demo")

    served = client.get(content["file_url"])
    assert served.status_code == 200
    assert served.content == b"%PDF-1.4 demo"


def test_bad_upload_leaves_no_files(client, teacher_headers):
    before = set(_upload_root().rglob("*.mp4"))
    resp = client.post(
        "/api/content",
        data={"title": "Huge", "description": "Too big", "subject": "Science", "grade": "9", "content_type": "video"},
        files={"file": ("huge.mp4", b"0" * (1024 * 1024 + 1), "video/mp4")},
        headers=teacher_headers,
    )
    assert resp.status_code == 400, resp.text
    assert resp.json()["errors"][0]["field"] == "file"
    assert set(_upload_root().rglob("*.mp4")) == before

    resp = client.post(
        "/api/content",
        data={"title": "Wrong", "description": "Type", "subject": "Science", "grade": "9", "content_type": "video"},
        files={"file": ("clip.pdf", b"%PDF", "application/pdf")},
        headers=teacher_headers,
    )
    assert resp.status_code == 400


def test_failed_create_removes_already_stored_file(client, teacher_headers):
    before = set(_upload_root().rglob("*.pdf"))
    resp = client.post(
        "/api/content",
        data={"title": "x" * 201, "description": "Long title", "subject": "Science", "grade": "9", "content_type": "pdf"},
        files={"file": ("notes.pdf", b"%PDF", "application/pdf")},
        headers=teacher_headers,
    )
    assert resp.status_code == 400
    assert set(_upload_root().rglob("*.pdf")) == before


def test_listing_shows_only_published(client, teacher_headers, make_content):
    make_content(teacher_headers, title="Published one")
    make_content(teacher_headers, publish=False, title="Draft")

    resp = client.get("/api/content")
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert [c["title"] for c in body["data"]] == ["Published one"]
    assert body["pagination"] == {"total": 1, "page": 1, "pages": 1, "limit": 10}


def test_created_by_filter_includes_drafts_for_owner_only(
    client, teacher_headers, other_teacher_headers, test_teacher, make_content
):
    make_content(teacher_headers, title="Live")
    make_content(teacher_headers, publish=False, title="Draft")

    own = client.get(f"/api/content?created_by={test_teacher.id}", headers=teacher_headers)
    assert {c["title"] for c in own.json()["data"]} == {"Live", "Draft"}

    other = client.get(
        f"/api/content?created_by={test_teacher.id}", headers=other_teacher_headers
    )
    assert [c["title"] for c in other.json()["data"]] == ["Live"]

    anonymous = client.get(f"/api/content?created_by={test_teacher.id}")
    assert [c["title"] for c in anonymous.json()["data"]] == ["Live"]


def test_listing_filters_search_sort_and_pagination(client, teacher_headers, make_content):
    make_content(teacher_headers, title="Algebra intro", subject="Mathematics", tags="equations")
    make_content(teacher_headers, title="Plant cells", subject="Science", tags="biology")
    make_content(teacher_headers, title="Zoology", subject="Science", difficulty="advanced")

    science = client.get("/api/content?subject=Science&sort=title").json()
    assert [c["title"] for c in science["data"]] == ["Plant cells", "Zoology"]

    by_tag = client.get("/api/content?search=BIOLOGY").json()
    assert [c["title"] for c in by_tag["data"]] == ["Plant cells"]

    advanced = client.get("/api/content?difficulty=advanced").json()
    assert [c["title"] for c in advanced["data"]] == ["Zoology"]

    page = client.get("/api/content?limit=2&page=2&sort=-title").json()
    assert [c["title"] for c in page["data"]] == ["Algebra intro"]
    assert page["pagination"] == {"total": 3, "page": 2, "pages": 2, "limit": 2}

    assert client.get("/api/content?sort=password_hash").status_code == 400
    assert client.get("/api/content?limit=101").status_code == 400
    assert client.get("/api/content?page=0").status_code == 400


def test_search_treats_wildcards_literally(client, teacher_headers, make_content):
    make_content(teacher_headers, title="100% attendance")
    make_content(teacher_headers, title="Other")

    resp = client.get("/api/content", params={"search": "%"})
    assert [c["title"] for c in resp.json()["data"]] == ["100% attendance"]


def test_search_matches_non_ascii_tags(client, teacher_headers, make_content):
    make_content(teacher_headers, title="Varnamala", subject="Hindi", tags="गणित, भाषा")
    make_content(teacher_headers, title="Fractions")

    resp = client.get("/api/content", params={"search": "भाषा"})
    assert [c["title"] for c in resp.json()["data"]] == ["Varnamala"]
    assert resp.json()["data"][0]["tags"] == ["गणित", "भाषा"]


def test_get_counts_views(client, teacher_headers, make_content):
    content = make_content(teacher_headers)

    client.get(f"/api/content/{content['id']}")
    resp = client.get(f"/api/content/{content['id']}")
    assert resp.status_code == 200
    assert resp.json()["data"]["views"] == 2


def test_unpublished_content_visible_to_owner_and_admin_only(
    client, teacher_headers, other_teacher_headers, admin_headers, make_content
):
    draft = make_content(teacher_headers, publish=False)
    url = f"/api/content/{draft['id']}"

    assert client.get(url).status_code == 403
    assert client.get(url, headers=other_teacher_headers).status_code == 403
    assert client.get(url, headers=teacher_headers).status_code == 200
    assert client.get(url, headers=admin_headers).status_code == 200


def test_unknown_content_is_404(client, student_headers):
    resp = client.get("/api/content/424242")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Content not found"}
    assert client.post("/api/content/424242/like", headers=student_headers).status_code == 404


def test_non_owner_cannot_update_or_delete(
    client, teacher_headers, other_teacher_headers, make_content
):
    content = make_content(teacher_headers, title="Original")
    url = f"/api/content/{content['id']}"

    resp = client.put(url, json={"title": "Hijacked"}, headers=other_teacher_headers)
    assert resp.status_code == 403
    assert client.delete(url, headers=other_teacher_headers).status_code == 403
    assert client.patch(f"{url}/publish", headers=other_teacher_headers).status_code == 403

    current = client.get(url).json()["data"]
    assert current["title"] == "Original"
    assert current["is_published"] is True


def test_partial_update_by_owner_and_admin(client, teacher_headers, admin_headers, make_content):
    content = make_content(teacher_headers, duration=10)
    url = f"/api/content/{content['id']}"

    resp = client.put(url, json={"title": "Renamed", "tags": ["a", " b "]}, headers=teacher_headers)
    assert resp.status_code == 200, resp.text
    updated = resp.json()["data"]
    assert updated["title"] == "Renamed"
    assert updated["tags"] == ["a", "b"]
    assert updated["description"] == content["description"]
    assert updated["duration"] == 10

    resp = client.put(url, json={"grade": "All"}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["grade"] == "All"

    resp = client.put(url, json={"views": 1000, "created_by": 99}, headers=teacher_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["views"] == content["views"]


def test_like_toggles(client, teacher_headers, student_headers, admin_headers, make_content):
    content = make_content(teacher_headers)
    url = f"/api/content/{content['id']}/like"

    first = client.post(url, headers=student_headers).json()["data"]
    assert first == {"likes": 1, "liked": True}

    other = client.post(url, headers=admin_headers).json()["data"]
    assert other == {"likes": 2, "liked": True}

    again = client.post(url, headers=student_headers).json()["data"]
    assert again == {"likes": 1, "liked": False}

    detail = client.get(f"/api/content/{content['id']}", headers=student_headers).json()["data"]
    assert detail["likes"] == 1
    assert detail["liked"] is False


def test_like_and_download_require_authentication(client, teacher_headers, make_content):
    content = make_content(teacher_headers)
    assert client.post(f"/api/content/{content['id']}/like").status_code == 401
    assert client.post(f"/api/content/{content['id']}/download").status_code == 401


def test_download_counter_increments_every_call(client, teacher_headers, student_headers, make_content):
    content = make_content(teacher_headers)
    url = f"/api/content/{content['id']}/download"

    assert client.post(url, headers=student_headers).json()["data"] == {"downloads": 1}
    assert client.post(url, headers=student_headers).json()["data"] == {"downloads": 2}


def test_delete_removes_content_and_likes(
    client, db_session, teacher_headers, student_headers, make_content
):
    from vidyasetu.core.models import ContentLike

    content = make_content(teacher_headers)
    client.post(f"/api/content/{content['id']}/like", headers=student_headers)

    resp = client.delete(f"/api/content/{content['id']}", headers=teacher_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"success": True, "message": "Content deleted successfully"}
    assert client.get(f"/api/content/{content['id']}").status_code == 404
    assert db_session.query(ContentLike).count() == 0
