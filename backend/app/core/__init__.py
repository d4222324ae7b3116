"""Core utilities for the Penpal backend."""

from .errors import ConflictState, InvalidArgument, NotAuthorized, NotFound, ServiceError, Unauthenticated
from .storage import delete_object, get_public_url, get_url, resolve_path

__all__ = [
    "ServiceError",
    "Unauthenticated",
    "NotAuthorized",
    "NotFound",
    "InvalidArgument",
    "ConflictState",
    "get_url",
    "get_public_url",
    "delete_object",
    "resolve_path",
]
