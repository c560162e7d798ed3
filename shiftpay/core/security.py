"""Password and token-secret hashing, and JWT creation/verification for access and refresh tokens."""

import hashlib
import secrets
from datetime import UTC, datetime
from typing import Any

import bcrypt
import jwt

from shiftpay.core.config import get_settings, parse_duration

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 1
USERNAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# bcrypt ignores input past 72 bytes.
_BCRYPT_MAX_BYTES = 72


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes read back from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _bcrypt_hash(data: bytes) -> str:
    rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(data[:_BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def _bcrypt_check(data: bytes, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(data[:_BCRYPT_MAX_BYTES], hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    return _bcrypt_hash(plain_password.encode("utf-8"))


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    return _bcrypt_check(plain_password.encode("utf-8"), hashed)


def _token_digest(token: str) -> bytes:
    # Signed refresh tokens are longer than 72 bytes; pre-hash so every byte counts.
    return hashlib.sha256(token.encode("utf-8")).hexdigest().encode("ascii")


def hash_token(token: str) -> str:
    """Hash a refresh or reset secret for storage. The raw secret is never persisted."""
    return _bcrypt_hash(_token_digest(token))


def verify_token(token: str, hashed: str) -> bool:
    """Verify a presented refresh or reset secret against its stored hash."""
    return _bcrypt_check(_token_digest(token), hashed)


def generate_secret(nbytes: int = 32) -> str:
    """Return a high-entropy URL-safe random secret."""
    return secrets.token_urlsafe(nbytes)


def create_access_token(
    user_id: int,
    username: str,
    roles: list[str],
    session_id: str | None = None,
    now: datetime | None = None,
) -> str:
    """
    Create a short-lived JWT access token.

    Claims: sub (user id), username, roles (role names), sid (id of the refresh
    token session it was issued with), type, iat, exp.
    """
    settings = get_settings()
    issued_at = now or utcnow()
    expire = issued_at + parse_duration(settings.JWT_ACCESS_EXPIRATION)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "username": username,
        "roles": list(roles),
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": expire,
    }
    if session_id is not None:
        payload["sid"] = session_id
    return jwt.encode(
        payload,
        settings.JWT_ACCESS_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def create_refresh_token(
    user_id: int,
    username: str,
    token_id: str,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """
    Create a long-lived JWT refresh token whose jti is the id of its stored record.
    Returns (token, expires_at).
    """
    if not token_id:
        raise ValueError("token_id (jti) is required for refresh tokens")
    settings = get_settings()
    issued_at = now or utcnow()
    expire = issued_at + parse_duration(settings.JWT_REFRESH_EXPIRATION)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "username": username,
        "jti": token_id,
        "type": REFRESH_TOKEN_TYPE,
        "iat": issued_at,
        "exp": expire,
    }
    token = jwt.encode(
        payload,
        settings.JWT_REFRESH_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )
    return token, expire


def _decode(token: str, secret: str, expected_type: str, required: list[str]) -> dict[str, Any]:
    settings = get_settings()
    payload = jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp", "iat", "sub", *required]},
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    return payload


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access JWT; return payload (sub, username, roles, sid, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    secret = get_settings().JWT_ACCESS_SECRET.get_secret_value()
    return _decode(token, secret, ACCESS_TOKEN_TYPE, [])


def decode_refresh_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a refresh JWT; return payload (sub, username, jti, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    secret = get_settings().JWT_REFRESH_SECRET.get_secret_value()
    return _decode(token, secret, REFRESH_TOKEN_TYPE, ["jti"])
