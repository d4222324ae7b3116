"""Blob storage for post attachments and profile pictures.

Objects are addressed by a storage key (a path relative to ``MEDIA_ROOT``).
The rest of the application only handles keys and resolves them to URLs
through :func:`get_url` and :func:`get_public_url`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final
from uuid import uuid4

from fastapi import HTTPException, UploadFile, status

from app.config import get_settings

settings = get_settings()

_CHUNK_SIZE: Final[int] = 1024 * 1024  # 1 MiB


@dataclass(slots=True)
class StoredFile:
    """Represents a file persisted by the storage backend."""

    file_name: str
    content_type: str | None
    file_size: int
    key: str


def _media_root() -> Path:
    root = settings.media_root
    root.mkdir(parents=True, exist_ok=True)
    return root


async def _write_upload(target_dir: Path, file_name: str, upload: UploadFile) -> StoredFile:
    target_dir.mkdir(parents=True, exist_ok=True)
    absolute_path = target_dir / file_name

    total_size = 0
    try:
        with absolute_path.open("wb") as buffer:
            while True:
                chunk = await upload.read(_CHUNK_SIZE)
                if not chunk:
                    break
                total_size += len(chunk)
                if total_size > settings.max_upload_size:
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail="Upload exceeds allowed size",
                    )
                buffer.write(chunk)
    except HTTPException:
        if absolute_path.exists():
            absolute_path.unlink()
        raise
    finally:
        await upload.close()

    key = Path(os.path.relpath(absolute_path, _media_root())).as_posix()
    return StoredFile(
        file_name=upload.filename or file_name,
        content_type=upload.content_type,
        file_size=total_size,
        key=key,
    )


def _require_image(upload: UploadFile) -> None:
    if upload.content_type and not upload.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Upload must be an image file",
        )


async def store_post_attachment(post_id: int, upload: UploadFile) -> StoredFile:
    """Persist an image uploaded for ``post_id`` under the post's namespace."""

    _require_image(upload)
    extension = Path(upload.filename or "").suffix or ".bin"
    target_dir = _media_root() / "posts" / str(post_id)
    return await _write_upload(target_dir, f"{uuid4().hex}{extension}", upload)


async def store_profile_picture(user_id: int, upload: UploadFile) -> StoredFile:
    """Persist a profile picture; every upload gets a fresh key."""

    _require_image(upload)
    extension = Path(upload.filename or "").suffix or ".png"
    target_dir = _media_root() / "avatars" / str(user_id)
    return await _write_upload(target_dir, f"{uuid4().hex}{extension}", upload)


def resolve_path(key: str) -> Path:
    """Return an absolute path for a storage key."""

    root = _media_root().resolve()
    candidate = (root / key).resolve()
    if not candidate.is_relative_to(root):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file path")
    if not candidate.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return candidate


def get_url(key: str | None) -> str | None:
    """Construct the URL of a stored object, ``None`` for a missing key."""

    if not key:
        return None
    base = settings.media_base_url.rstrip("/")
    return f"{base}/{key.lstrip('/')}"


def get_public_url(key: str | None) -> str | None:
    """Construct a cacheable URL of a stored object."""

    if not key:
        return None
    base = settings.public_media_base_url.rstrip("/")
    return f"{base}/{key.lstrip('/')}"


def delete_object(key: str) -> None:
    """Remove a stored object. A missing object is not an error."""

    root = _media_root().resolve()
    candidate = (root / key).resolve()
    if not candidate.is_relative_to(root):
        raise ValueError(f"Storage key escapes media root: {key}")
    candidate.unlink(missing_ok=True)
