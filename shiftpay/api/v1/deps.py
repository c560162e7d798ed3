"""Request guards: local credentials, access-token bearer auth, refresh-token sessions and role checks."""

from collections.abc import Callable
from typing import Annotated

import jwt
from fastapi import Body, Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from shiftpay.core.database import get_db
from shiftpay.core.security import decode_access_token
from shiftpay.models import User
from shiftpay.schemas.auth import (
    AuthenticatedUser,
    LoginRequest,
    RefreshSession,
    RefreshTokenRequest,
)
from shiftpay.services.auth import (
    to_authenticated_user,
    validate_refresh_token,
    validate_user,
)
from shiftpay.services.errors import ForbiddenError, UnauthorizedError
from shiftpay.services.refresh_tokens import INVALID_REFRESH_TOKEN_MESSAGE

security = HTTPBearer(auto_error=False)


def authenticate_local(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> AuthenticatedUser:
    """Dependency: username/password from the JSON body. 404 unknown user, 401 wrong password."""
    return validate_user(db, body.username, body.password)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> AuthenticatedUser:
    """
    Dependency: require a valid Bearer access token and return the caller.

    Roles come from a fresh lookup, not from the token claims. Raises 401 if the
    token is missing or invalid or the user no longer exists or is inactive.
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.PyJWTError:
        raise UnauthorizedError("Invalid or expired token")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid token payload")
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("User not found")
    return to_authenticated_user(user, session_id=payload.get("sid"))


def get_refresh_session(
    db: Annotated[Session, Depends(get_db)],
    body: Annotated[RefreshTokenRequest | None, Body()] = None,
    refresh_token_cookie: Annotated[str | None, Cookie(alias="refresh_token")] = None,
) -> RefreshSession:
    """
    Dependency: resolve the refresh token from the body field refresh_token,
    falling back to a refresh_token cookie when the body or the field is
    missing. Raises 401 if absent or not live.
    """
    raw_token = (body.refresh_token if body is not None else None) or refresh_token_cookie
    if not raw_token:
        raise UnauthorizedError(INVALID_REFRESH_TOKEN_MESSAGE)
    return validate_refresh_token(db, raw_token)


def require_roles(*role_names: str) -> Callable[..., AuthenticatedUser]:
    """Dependency factory: require one of role_names (case-insensitive). Raises 403 otherwise."""
    allowed = {name.lower() for name in role_names}

    def _require(
        current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    ) -> AuthenticatedUser:
        if not allowed.intersection(role.lower() for role in current_user.roles):
            raise ForbiddenError(f"Requires one of roles: {', '.join(sorted(role_names))}")
        return current_user

    return _require
