"""Authentication service: login, refresh rotation, logout, password reset and registration."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, NamedTuple

import jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shiftpay.core.config import get_settings
from shiftpay.core.security import (
    as_utc,
    create_access_token,
    decode_refresh_token,
    generate_secret,
    hash_password,
    hash_token,
    utcnow,
    verify_password,
    verify_token,
)
from shiftpay.models import Branch, Employee, PasswordResetToken, Role, User
from shiftpay.schemas.auth import (
    GENERIC_FORGOT_PASSWORD_MESSAGE,
    AuthenticatedUser,
    RefreshSession,
    RegisterRequest,
    SessionInfo,
)
from shiftpay.services import refresh_tokens
from shiftpay.services.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)

if TYPE_CHECKING:
    from shiftpay.core.config import Settings

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Username or password does not match."
INVALID_RESET_TOKEN_MESSAGE = "Invalid or expired token."
PASSWORD_RESET_SUCCESS_MESSAGE = "Password has been reset successfully."
DUPLICATE_USERNAME_MESSAGE = "Username already exists"

# Reset tokens are "<record id>.<secret>" so the record is found by primary key.
RESET_TOKEN_SEPARATOR = "."


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str


def to_authenticated_user(user: User, session_id: str | None = None) -> AuthenticatedUser:
    """Build the public identity for a user row (current role names, no hash)."""
    return AuthenticatedUser(
        id=user.id,
        username=user.username,
        employee_id=user.employee_id,
        roles=user.role_names,
        session_id=session_id,
    )


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


def validate_user(db: Session, username: str, password: str) -> AuthenticatedUser:
    """
    Check username/password for the local login strategy.

    Raises NotFoundError for an unknown username, UnauthorizedError for a wrong
    password and ForbiddenError for an inactive account.
    """
    user = get_user_by_username(db, username)
    if user is None:
        raise NotFoundError(f"User with username {username} not found.")
    if not verify_password(password, user.password_hash):
        logger.info("Failed login: user_id=%s", user.id)
        raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)
    if not user.is_active:
        raise ForbiddenError("Account is inactive.")
    return to_authenticated_user(user)


def _load_active_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError(refresh_tokens.INVALID_REFRESH_TOKEN_MESSAGE)
    return user


def _issue_pair(user: User, issued: refresh_tokens.IssuedRefreshToken, now: datetime | None) -> TokenPair:
    access_token = create_access_token(
        user_id=user.id,
        username=user.username,
        roles=user.role_names,
        session_id=issued.record.session_id,
        now=now,
    )
    return TokenPair(access_token=access_token, refresh_token=issued.raw_token)


def login(db: Session, identity: AuthenticatedUser, now: datetime | None = None) -> TokenPair:
    """
    Issue an access token and a new refresh-token session for an already
    authenticated identity. Each login is a separate device session.
    """
    user = db.get(User, identity.id)
    if user is None:
        raise NotFoundError(f"User with ID {identity.id} not found.")
    issued = refresh_tokens.create_refresh_token(db, user, now=now)
    logger.info("Login: user_id=%s session_id=%s", user.id, issued.record.session_id)
    return _issue_pair(user, issued, now)


def validate_refresh_token(
    db: Session, raw_token: str, now: datetime | None = None
) -> RefreshSession:
    """
    Resolve a presented refresh token to its live record and owner.

    The record is looked up by the token's jti and the presented token is then
    checked against the stored hash. Every failure raises the same
    UnauthorizedError.
    """
    try:
        payload = decode_refresh_token(raw_token)
        user_id = int(payload["sub"])
        token_id = str(payload["jti"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise UnauthorizedError(refresh_tokens.INVALID_REFRESH_TOKEN_MESSAGE)

    record = refresh_tokens.get_live_token(db, token_id, now=now)
    if (
        record is None
        or record.user_id != user_id
        or not verify_token(raw_token, record.hashed_token)
    ):
        raise UnauthorizedError(refresh_tokens.INVALID_REFRESH_TOKEN_MESSAGE)

    user = _load_active_user(db, user_id)
    return RefreshSession(
        id=user.id,
        username=user.username,
        employee_id=user.employee_id,
        roles=user.role_names,
        session_id=record.session_id,
        token_id=record.id,
    )


def refresh_tokens_for_session(
    db: Session, session: RefreshSession, now: datetime | None = None
) -> TokenPair:
    """Rotate the session's refresh token and issue a matching access token."""
    user = _load_active_user(db, session.id)
    issued = refresh_tokens.rotate_refresh_token(db, session.token_id, user, now=now)
    return _issue_pair(user, issued, now)


def logout(db: Session, user_id: int, session_id: str | None = None) -> int:
    """
    Revoke one login session (session_id, stable across rotations) or every
    session of the user. Idempotent. Returns the number of records removed.
    """
    if session_id is not None:
        return refresh_tokens.revoke_session(db, session_id, user_id)
    return refresh_tokens.revoke_all_user_tokens(db, user_id)


def list_active_sessions(
    db: Session, user_id: int, now: datetime | None = None
) -> list[SessionInfo]:
    return [
        SessionInfo.model_validate(record)
        for record in refresh_tokens.get_user_active_tokens(db, user_id, now=now)
    ]


def deliver_reset_token(user: User, raw_token: str) -> None:
    """
    Out-of-band delivery of the reset link. No mail transport is configured;
    the event is logged and the token itself only at DEBUG in dev.
    """
    logger.info("Password reset token issued: user_id=%s", user.id)
    if get_settings().APP_ENV == "dev":
        logger.debug("Password reset token for %s: %s", user.username, raw_token)


def issue_password_reset_token(
    db: Session, user: User, now: datetime | None = None
) -> str:
    """Replace any reset token of the user with a new one; return the raw token."""
    settings = get_settings()
    issued_at = now or utcnow()
    db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user.id).delete(
        synchronize_session=False
    )
    record_id = uuid.uuid4().hex
    secret = generate_secret()
    db.add(
        PasswordResetToken(
            id=record_id,
            user_id=user.id,
            hashed_token=hash_token(secret),
            expires_at=issued_at + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
            created_at=issued_at,
        )
    )
    db.commit()
    return f"{record_id}{RESET_TOKEN_SEPARATOR}{secret}"


def forgot_password(db: Session, username: str, now: datetime | None = None) -> str:
    """Start a password reset. The returned message never reveals whether the user exists."""
    user = get_user_by_username(db, username)
    if user is not None and user.is_active:
        raw_token = issue_password_reset_token(db, user, now=now)
        deliver_reset_token(user, raw_token)
    return GENERIC_FORGOT_PASSWORD_MESSAGE


def reset_password(
    db: Session,
    raw_token: str,
    new_password: str,
    now: datetime | None = None,
) -> str:
    """
    Consume a reset token and set a new password. Any mismatch raises the same
    UnauthorizedError so callers cannot tell which check failed.
    """
    settings = get_settings()
    record_id, sep, secret = raw_token.partition(RESET_TOKEN_SEPARATOR)
    if not sep or not record_id or not secret:
        raise UnauthorizedError(INVALID_RESET_TOKEN_MESSAGE)
    record = db.get(PasswordResetToken, record_id)
    if (
        record is None
        or as_utc(record.expires_at) <= (now or utcnow())
        or not verify_token(secret, record.hashed_token)
    ):
        raise UnauthorizedError(INVALID_RESET_TOKEN_MESSAGE)

    user = db.get(User, record.user_id)
    if user is None:
        raise UnauthorizedError(INVALID_RESET_TOKEN_MESSAGE)
    user.password_hash = hash_password(new_password)
    user.updated_by = user.id
    db.delete(record)
    revoked = 0
    if settings.REVOKE_SESSIONS_ON_PASSWORD_RESET:
        revoked = refresh_tokens.revoke_all_user_tokens(db, user.id, commit=False)
    db.commit()
    logger.info("Password reset: user_id=%s sessions_revoked=%s", user.id, revoked)
    return PASSWORD_RESET_SUCCESS_MESSAGE


def cleanup_expired_reset_tokens(db: Session, now: datetime | None = None) -> int:
    """Delete expired password reset records. Idempotent."""
    cutoff = now or utcnow()
    deleted = (
        db.query(PasswordResetToken)
        .filter(PasswordResetToken.expires_at <= cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted > 0:
        logger.info("Reset token cleanup: cutoff=%s, tokens_deleted=%s", cutoff.isoformat(), deleted)
    return deleted


def _fetch_by_ids(db: Session, model: type, ids: list[int], label: str) -> list:
    wanted = sorted(set(ids))
    if not wanted:
        return []
    rows = db.query(model).filter(model.id.in_(wanted)).all()
    found = {row.id for row in rows}
    missing = [i for i in wanted if i not in found]
    if missing:
        raise NotFoundError(f"{label} with ID {missing[0]} not found.")
    return rows


def register(
    db: Session,
    body: RegisterRequest,
    caller_id: int | None = None,
    settings: "Settings | None" = None,
) -> User:
    """
    Create a user with its employee profile, branch links and roles in one commit.

    caller_id is the administrator creating the account and is recorded as
    created_by/updated_by. Self-registration passes None and always gets
    DEFAULT_ROLE_NAME: role_ids are honoured only for an administrator.
    Raises BadRequestError for a duplicate username and NotFoundError for an
    unknown role or branch id.
    """
    settings = settings or get_settings()
    if get_user_by_username(db, body.username) is not None:
        raise BadRequestError(DUPLICATE_USERNAME_MESSAGE)

    if body.role_ids and caller_id is None:
        logger.warning("Self-registration requested roles, ignored: username=%s", body.username)
    if body.role_ids and caller_id is not None:
        roles = _fetch_by_ids(db, Role, body.role_ids, "Role")
    else:
        default_role = db.query(Role).filter(Role.name == settings.DEFAULT_ROLE_NAME).first()
        if default_role is None:
            raise NotFoundError(
                f'Default "{settings.DEFAULT_ROLE_NAME}" role not found. Please seed the database.'
            )
        roles = [default_role]
    branches = _fetch_by_ids(db, Branch, body.branch_ids, "Branch")

    employee = Employee(
        full_name=body.full_name,
        phone_number=body.phone_number,
        email=body.email,
        address=body.address,
        date_of_birth=body.date_of_birth,
        probation_start_date=body.probation_start_date,
        official_start_date=body.official_start_date,
        branches=branches,
        created_by=caller_id,
        updated_by=caller_id,
    )
    user = User(
        username=body.username,
        password_hash=hash_password(body.password),
        employee=employee,
        roles=roles,
        created_by=caller_id,
        updated_by=caller_id,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise BadRequestError(DUPLICATE_USERNAME_MESSAGE) from e
    db.refresh(user)
    logger.info("Registered user: user_id=%s username=%s", user.id, user.username)
    return user
