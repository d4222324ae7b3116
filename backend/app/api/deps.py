"""FastAPI dependencies for the API layer."""

from dataclasses import dataclass

from fastapi import Depends, Query
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.errors import Unauthenticated
from app.core.security import decode_access_token, resolve_caller_id
from app.database import get_db
from app.models import User

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_user_from_token(token: str, db: Session) -> User:
    """Resolve a user from a JWT token or raise ``Unauthenticated``."""

    payload = decode_access_token(token)
    sub = payload.get("sub")
    if sub is None:
        raise Unauthenticated("Could not validate credentials")

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise Unauthenticated("Could not validate credentials") from None

    user = db.get(User, user_id)
    if user is None:
        raise Unauthenticated("Could not validate credentials")
    return user


def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Retrieve the current user from the JWT token."""

    if not token:
        raise Unauthenticated("Not authenticated")
    return get_user_from_token(token, db)


def get_optional_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    """Like :func:`get_current_user` but ``None`` for anonymous or stale tokens."""

    user_id = resolve_caller_id(token)
    if user_id is None:
        return None
    return db.get(User, user_id)


@dataclass(slots=True)
class PageParams:
    cursor: str | None
    num_items: int


def get_page_params(
    cursor: str | None = Query(default=None, description="Continuation cursor from the previous page"),
    num_items: int = Query(default=settings.page_size_default, ge=1, le=settings.page_size_max),
) -> PageParams:
    return PageParams(cursor=cursor or None, num_items=num_items)


def get_locale_param(
    locale: str | None = Query(default=None, max_length=35, description="BCP 47 locale, e.g. en-US"),
) -> str | None:
    return locale
