"""Serve stored media files."""

from __future__ import annotations

import mimetypes

from fastapi import APIRouter
from fastapi.responses import FileResponse

from app.core.storage import resolve_path

router = APIRouter(prefix="/media", tags=["media"])


def _file_response(key: str, *, cache_control: str) -> FileResponse:
    absolute_path = resolve_path(key)
    media_type, _ = mimetypes.guess_type(absolute_path.name)
    return FileResponse(
        absolute_path,
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": cache_control},
    )


@router.get("/public/{key:path}")
def fetch_public_media(key: str) -> FileResponse:
    return _file_response(key, cache_control="public, max-age=86400")


@router.get("/{key:path}")
def fetch_media(key: str) -> FileResponse:
    return _file_response(key, cache_control="private, max-age=3600")
