"""
Upload storage for content files and thumbnails.

Files land under ``<uploads.directory>/<category>/`` and are served back by the
API under the ``/uploads`` static mount.
"""

import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

from fastapi import UploadFile

from ..exceptions import ValidationError
from ..models import ContentType
from .logging import get_logging_service
from .settings_config_service import get_settings_service

CHUNK_SIZE = 1024 * 1024
URL_PREFIX = "/uploads"

THUMBNAIL_FIELD = "thumbnail"

CATEGORY_DIRS: Dict[str, str] = {
    ContentType.VIDEO.value: "videos",
    ContentType.AUDIO.value: "audio",
    ContentType.PDF.value: "documents",
    ContentType.IMAGE.value: "images",
    THUMBNAIL_FIELD: "images",
}

ALLOWED_EXTENSIONS: Dict[str, Tuple[str, ...]] = {
    ContentType.VIDEO.value: (".mp4", ".avi", ".mov", ".wmv", ".webm"),
    ContentType.AUDIO.value: (".mp3", ".wav", ".ogg", ".m4a"),
    ContentType.PDF.value: (".pdf",),
    ContentType.IMAGE.value: (".jpg", ".jpeg", ".png", ".gif", ".webp"),
    ContentType.TEXT.value: (".txt", ".md"),
    THUMBNAIL_FIELD: (".jpg", ".jpeg", ".png", ".webp"),
}


@dataclass
class StoredFile:
    url: str
    path: Path
    size: int


class FileStorageService:
    """Validates and writes uploaded files to local disk"""

    def __init__(
        self, base_dir: Optional[str] = None, max_file_size_mb: Optional[int] = None
    ):
        defaults = get_settings_service().get_upload_defaults()
        self.base_dir = Path(base_dir or defaults["directory"])
        mb = max_file_size_mb if max_file_size_mb is not None else defaults["max_file_size_mb"]
        self.max_bytes = mb * 1024 * 1024
        self.logging = get_logging_service()
        self.logger = self.logging.get_logger("uploads")

    @staticmethod
    def category_dir(kind: str) -> str:
        return CATEGORY_DIRS.get(kind, "misc")

    def validate_extension(self, kind: str, filename: str) -> str:
        ext = os.path.splitext(filename or "")[1].lower()
        allowed = ALLOWED_EXTENSIONS.get(kind, ())
        if ext not in allowed:
            field = THUMBNAIL_FIELD if kind == THUMBNAIL_FIELD else "file"
            raise ValidationError.for_field(
                field,
                f"Invalid file type for {kind}. Allowed: {', '.join(allowed) or 'none'}",
            )
        return ext

    def _too_large(self, field: str) -> ValidationError:
        limit_mb = self.max_bytes // (1024 * 1024)
        return ValidationError.for_field(
            field, f"File exceeds the maximum upload size of {limit_mb}MB"
        )

    async def save_upload(self, upload: UploadFile, kind: str, field: str) -> StoredFile:
        """
        Store ``upload`` for the given kind (a content type value or "thumbnail").

        The declared size is checked before anything is written and the actual
        byte count is checked while streaming; an oversize file leaves nothing
        behind on disk.
        """
        ext = self.validate_extension(kind, upload.filename or "")
        if upload.size is not None and upload.size > self.max_bytes:
            raise self._too_large(field)

        directory = self.base_dir / self.category_dir(kind)
        directory.mkdir(parents=True, exist_ok=True)
        name = f"{field}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"
        path = directory / name

        written = 0
        try:
            with open(path, "wb") as out:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise self._too_large(field)
                    out.write(chunk)
        except Exception:
            path.unlink(missing_ok=True)
            raise
        finally:
            await upload.close()

        url = f"{URL_PREFIX}/{self.category_dir(kind)}/{name}"
        self.logger.info("upload.stored", url=url, size=written, kind=kind)
        return StoredFile(url=url, path=path, size=written)

    def delete(self, url: Optional[str]) -> bool:
        """Remove a previously stored file by its public URL."""
        if not url or not url.startswith(URL_PREFIX + "/"):
            return False
        relative = url[len(URL_PREFIX) + 1 :]
        path = (self.base_dir / relative).resolve()
        if self.base_dir.resolve() not in path.parents:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True


_file_service: Optional[FileStorageService] = None


def get_file_service() -> FileStorageService:
    global _file_service
    if _file_service is None:
        _file_service = FileStorageService()
    return _file_service


def reset_file_service():
    global _file_service
    _file_service = None
