"""Refresh token store: issue, look up, revoke, rotate and clean up server-side refresh-token records."""

import logging
import uuid
from datetime import datetime
from typing import NamedTuple

from sqlalchemy.orm import Session

from shiftpay.core.security import as_utc, hash_token, utcnow
from shiftpay.core.security import create_refresh_token as sign_refresh_token
from shiftpay.models import RefreshToken, User
from shiftpay.services.errors import UnauthorizedError

logger = logging.getLogger(__name__)

INVALID_REFRESH_TOKEN_MESSAGE = "Invalid or expired refresh token."


class IssuedRefreshToken(NamedTuple):
    """A newly minted refresh token. raw_token is handed out once and never stored."""

    raw_token: str
    record: RefreshToken


def is_live(record: RefreshToken, now: datetime | None = None) -> bool:
    """A record is live strictly before its expiry; at expires_at it is expired."""
    return as_utc(record.expires_at) > (now or utcnow())


def create_refresh_token(
    db: Session,
    user: User,
    now: datetime | None = None,
    commit: bool = True,
    session_id: str | None = None,
) -> IssuedRefreshToken:
    """
    Mint a signed refresh token whose jti is a new record id and persist its hash.

    A new login session is started unless session_id is given, in which case the
    record continues that session. With commit=False the record is only
    flushed, so the caller can make it part of a larger transaction.
    """
    issued_at = now or utcnow()
    token_id = str(uuid.uuid4())
    raw_token, expires_at = sign_refresh_token(
        user_id=user.id,
        username=user.username,
        token_id=token_id,
        now=issued_at,
    )
    record = RefreshToken(
        id=token_id,
        user_id=user.id,
        session_id=session_id or token_id,
        hashed_token=hash_token(raw_token),
        expires_at=expires_at,
        created_at=issued_at,
    )
    db.add(record)
    db.flush()
    if commit:
        db.commit()
    return IssuedRefreshToken(raw_token=raw_token, record=record)


def get_live_token(
    db: Session, token_id: str, now: datetime | None = None
) -> RefreshToken | None:
    """Return the record for token_id if it exists and has not expired."""
    record = db.get(RefreshToken, token_id)
    if record is None or not is_live(record, now):
        return None
    return record


def revoke_refresh_token(db: Session, token_id: str, user_id: int | None = None) -> int:
    """
    Delete one refresh-token record. When user_id is given the record must also
    belong to that user. Revoking an absent token is a no-op. Returns rows deleted.
    """
    query = db.query(RefreshToken).filter(RefreshToken.id == token_id)
    if user_id is not None:
        query = query.filter(RefreshToken.user_id == user_id)
    deleted = query.delete(synchronize_session=False)
    db.commit()
    logger.info("Revoked refresh token: token_id=%s deleted=%s", token_id, deleted)
    return deleted


def revoke_session(db: Session, session_id: str, user_id: int) -> int:
    """Delete the live record of one login session, whichever rotation it is on."""
    deleted = (
        db.query(RefreshToken)
        .filter(RefreshToken.session_id == session_id, RefreshToken.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Revoked session: session_id=%s deleted=%s", session_id, deleted)
    return deleted


def revoke_all_user_tokens(db: Session, user_id: int, commit: bool = True) -> int:
    """Delete every refresh-token record owned by user_id. Returns rows deleted."""
    deleted = (
        db.query(RefreshToken)
        .filter(RefreshToken.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.commit()
    logger.info("Revoked all refresh tokens: user_id=%s deleted=%s", user_id, deleted)
    return deleted


def get_user_active_tokens(
    db: Session, user_id: int, now: datetime | None = None
) -> list[RefreshToken]:
    """Live records for user_id, newest first."""
    return (
        db.query(RefreshToken)
        .filter(
            RefreshToken.user_id == user_id,
            RefreshToken.expires_at > (now or utcnow()),
        )
        .order_by(RefreshToken.created_at.desc(), RefreshToken.id)
        .all()
    )


def rotate_refresh_token(
    db: Session,
    old_token_id: str,
    user: User,
    now: datetime | None = None,
) -> IssuedRefreshToken:
    """
    Replace old_token_id with a freshly issued token in a single transaction.

    The replacement keeps the old record's session_id. The old row is removed
    with a conditional delete; if nothing was deleted the token was already
    rotated or revoked (possibly by a concurrent request) and the exchange is
    refused, so each refresh token is exchanged at most once.
    """
    owned = db.query(RefreshToken).filter(
        RefreshToken.id == old_token_id, RefreshToken.user_id == user.id
    )
    session_id = owned.with_entities(RefreshToken.session_id).scalar()
    deleted = owned.delete(synchronize_session=False) if session_id is not None else 0
    if deleted == 0:
        db.rollback()
        logger.warning(
            "Refresh token reuse or race: token_id=%s user_id=%s", old_token_id, user.id
        )
        raise UnauthorizedError(INVALID_REFRESH_TOKEN_MESSAGE)
    try:
        issued = create_refresh_token(
            db, user, now=now, commit=False, session_id=session_id
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "Rotated refresh token: user_id=%s session_id=%s old=%s new=%s",
        user.id,
        session_id,
        old_token_id,
        issued.record.id,
    )
    return issued


def cleanup_expired_tokens(db: Session, now: datetime | None = None) -> int:
    """
    Delete expired refresh-token records. Revoked tokens are deleted at
    revocation time. Idempotent: safe to run repeatedly.
    """
    cutoff = now or utcnow()
    deleted = (
        db.query(RefreshToken)
        .filter(RefreshToken.expires_at <= cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted > 0:
        logger.info(
            "Refresh token cleanup: cutoff=%s, tokens_deleted=%s",
            cutoff.isoformat(),
            deleted,
        )
    return deleted
