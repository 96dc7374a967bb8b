"""Shared FastAPI dependencies."""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.auth.utils import decode_access_token
from app.cache import QueryCache, get_query_cache
from app.db.database import get_db
from app.db.models import User

__all__ = ["get_db", "get_current_user", "CurrentUser", "Cache"]


def _extract_token(request: Request) -> Optional[str]:
    """Read the token from the cookie, falling back to a Bearer header."""
    token = request.cookies.get("access_token")
    if token:
        return token
    auth_header = request.headers.get("authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def get_current_user(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Resolve the authenticated account or raise 401."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )
    token = _extract_token(request)
    if not token:
        raise credentials_exception

    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        raise credentials_exception

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if user is None or not user.is_active:
        raise credentials_exception
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
Cache = Annotated[QueryCache, Depends(get_query_cache)]
