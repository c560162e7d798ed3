"""Auth endpoints: register, login, refresh, logout variants, active sessions and password reset."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shiftpay.api.v1.deps import (
    authenticate_local,
    get_current_user,
    get_refresh_session,
    require_roles,
)
from shiftpay.core.database import get_db
from shiftpay.models import User
from shiftpay.schemas.auth import (
    ActiveSessionsResponse,
    AuthenticatedUser,
    CleanupResponse,
    ForgotPasswordRequest,
    MessageResponse,
    RefreshSession,
    RegisteredUserResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPairResponse,
)
from shiftpay.services import auth as auth_service
from shiftpay.services.refresh_tokens import cleanup_expired_tokens
from shiftpay.services.seed import ADMIN_ROLE

router = APIRouter()


def _registered(user: User) -> RegisteredUserResponse:
    return RegisteredUserResponse(
        id=user.id,
        username=user.username,
        employee_id=user.employee_id,
        status=user.status,
        roles=user.role_names,
        branch_ids=sorted(b.id for b in user.employee.branches) if user.employee else [],
    )


@router.post(
    "/register",
    response_model=RegisteredUserResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> RegisteredUserResponse:
    """
    Self-registration with an employee profile. The account always gets the
    default role; role_ids are ignored here. 400 if the username is taken.
    """
    return _registered(auth_service.register(db, body))


@router.post(
    "/users",
    response_model=RegisteredUserResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    body: RegisterRequest,
    admin: Annotated[AuthenticatedUser, Depends(require_roles(ADMIN_ROLE))],
    db: Annotated[Session, Depends(get_db)],
) -> RegisteredUserResponse:
    """Create an account with the requested roles (admin only)."""
    return _registered(auth_service.register(db, body, caller_id=admin.id))


@router.post("/login", response_model=TokenPairResponse)
def login(
    identity: Annotated[AuthenticatedUser, Depends(authenticate_local)],
    db: Annotated[Session, Depends(get_db)],
) -> TokenPairResponse:
    """
    Authenticate with username and password; returns an access token and a refresh token.
    Include the access token in the Authorization header as: Bearer <access_token>
    """
    pair = auth_service.login(db, identity)
    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/refresh", response_model=TokenPairResponse)
def refresh(
    session: Annotated[RefreshSession, Depends(get_refresh_session)],
    db: Annotated[Session, Depends(get_db)],
) -> TokenPairResponse:
    """
    Exchange a refresh token for a new pair. The presented refresh token is
    rotated away and cannot be used again.
    """
    pair = auth_service.refresh_tokens_for_session(db, session)
    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Revoke the refresh token of the session this access token belongs to."""
    auth_service.logout(db, current_user.id, current_user.session_id)
    return MessageResponse(message="Logout successful")


@router.post("/logout-device", response_model=MessageResponse)
def logout_device(
    session: Annotated[RefreshSession, Depends(get_refresh_session)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Revoke the session of the presented refresh token only."""
    auth_service.logout(db, session.id, session.session_id)
    return MessageResponse(message="Device logged out")


@router.post("/logout-all", response_model=MessageResponse)
def logout_all(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Revoke every refresh token of the caller (log out on all devices)."""
    auth_service.logout(db, current_user.id)
    return MessageResponse(message="Logged out from all devices")


@router.api_route(
    "/active-sessions",
    methods=["GET", "POST"],
    response_model=ActiveSessionsResponse,
)
def active_sessions(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> ActiveSessionsResponse:
    """List the caller's live sessions, newest first."""
    return ActiveSessionsResponse(
        sessions=auth_service.list_active_sessions(db, current_user.id)
    )


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Always 200 with the same message, whether or not the username exists."""
    return MessageResponse(message=auth_service.forgot_password(db, body.username))


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Set a new password with a reset token. 401 with a generic message on any failure."""
    message = auth_service.reset_password(db, body.token, body.new_password)
    return MessageResponse(message=message)


@router.get("/me", response_model=AuthenticatedUser)
def me(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> AuthenticatedUser:
    return current_user


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup(
    _admin: Annotated[AuthenticatedUser, Depends(require_roles(ADMIN_ROLE))],
    db: Annotated[Session, Depends(get_db)],
) -> CleanupResponse:
    """Delete expired refresh and reset tokens (admin only)."""
    return CleanupResponse(
        refresh_tokens_deleted=cleanup_expired_tokens(db),
        reset_tokens_deleted=auth_service.cleanup_expired_reset_tokens(db),
    )
