"""Error taxonomy shared by the service layer.

Services raise these exceptions; :mod:`app.main` maps them to HTTP responses
with the ``status_code`` carried by each class.
"""

from __future__ import annotations

from fastapi import status


class ServiceError(Exception):
    """Base class for business-rule failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "service_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class Unauthenticated(ServiceError):
    """No resolvable caller identity."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"


class NotAuthorized(ServiceError):
    """The caller is known but may not act on the target entity."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "not_authorized"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InvalidArgument(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_argument"


class ConflictState(ServiceError):
    """The operation is invalid given the current state of the entity."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict_state"


__all__ = [
    "ServiceError",
    "Unauthenticated",
    "NotAuthorized",
    "NotFound",
    "InvalidArgument",
    "ConflictState",
]
