"""
Tests for upload storage: extension whitelist, size ceiling, naming and removal
"""

import asyncio
import io

import pytest
from fastapi import UploadFile

from vidyasetu.core.exceptions import ValidationError
from vidyasetu.core.services.file_service import FileStorageService

MB = 1024 * 1024


@pytest.fixture
def upload_root(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def storage(upload_root):
    return FileStorageService(base_dir=str(upload_root), max_file_size_mb=1)


def _upload(name, data, declare_size=True):
    return UploadFile(
        file=io.BytesIO(data),
        filename=name,
        size=len(data) if declare_size else None,
    )


def _stored_files(root):
    if not root.exists():
        return []
    return [p for p in root.rglob("*") if p.is_file()]


def test_saves_into_category_directory(storage, upload_root):
    stored = asyncio.run(storage.save_upload(_upload("notes.PDF", b"%PDF-1.4"), "pdf", "file"))

    assert stored.url.startswith("/uploads/documents/file-")
    assert stored.url.endswith(".pdf")
    assert stored.size == 8
    assert stored.path.read_bytes() == b"%PDF-1.4"
    assert stored.path.parent == upload_root / "documents"


def test_thumbnails_go_to_images(storage):
    stored = asyncio.run(
        storage.save_upload(_upload("cover.png", b"png"), "thumbnail", "thumbnail")
    )
    assert stored.url.startswith("/uploads/images/thumbnail-")


def test_rejects_disallowed_extension(storage, upload_root):
    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(storage.save_upload(_upload("movie.exe", b"x"), "video", "file"))
    assert exc_info.value.errors[0]["field"] == "file"
    assert _stored_files(upload_root) == []


def test_thumbnail_extension_error_names_thumbnail(storage):
    with pytest.raises(ValidationError) as exc_info:
        asyncio.run(storage.save_upload(_upload("cover.gif", b"x"), "thumbnail", "thumbnail"))
    assert exc_info.value.errors[0]["field"] == "thumbnail"


def test_declared_oversize_rejected_before_writing(storage, upload_root):
    with pytest.raises(ValidationError):
        asyncio.run(storage.save_upload(_upload("big.mp4", b"0" * (MB + 1)), "video", "file"))
    assert _stored_files(upload_root) == []


def test_streamed_oversize_leaves_nothing_on_disk(storage, upload_root):
    upload = _upload("big.mp3", b"0" * (MB + 1), declare_size=False)
    with pytest.raises(ValidationError):
        asyncio.run(storage.save_upload(upload, "audio", "file"))
    assert _stored_files(upload_root) == []


def test_delete_only_touches_files_under_the_upload_root(storage, upload_root):
    stored = asyncio.run(storage.save_upload(_upload("a.txt", b"hello"), "text", "file"))
    assert stored.url.startswith("/uploads/misc/")

    assert storage.delete("/uploads/../outside.txt") is False
    assert storage.delete("https://example.com/a.txt") is False
    assert storage.delete(stored.url) is True
    assert not stored.path.exists()
    assert storage.delete(stored.url) is False


class _BrokenStream(io.BytesIO):
    """Yields one chunk, then fails like a dropped connection"""

    def __init__(self, data):
        super().__init__(data)
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads > 1:
            raise OSError("connection reset")
        return super().read(size)


def test_failed_write_removes_partial_file(storage, upload_root):
    upload = UploadFile(file=_BrokenStream(b"partial"), filename="clip.mp4")
    with pytest.raises(OSError):
        asyncio.run(storage.save_upload(upload, "video", "file"))
    assert _stored_files(upload_root) == []
