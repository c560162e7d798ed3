"""ORM models for server-side refresh-token and password-reset-token records."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from shiftpay.core.security import utcnow
from shiftpay.models.base import Base


class RefreshToken(Base):
    """
    One issued refresh credential. id is the JWT jti; only the hash of the raw
    token is stored. Revocation and rotation delete the row, so a record is
    valid iff it exists and has not expired. session_id is set at login and
    copied to every rotated replacement.
    """

    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id = Column(String(36), nullable=False, index=True)
    hashed_token = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="refresh_tokens")


class PasswordResetToken(Base):
    """Short-lived one-time reset secret (hash only). At most one per user."""

    __tablename__ = "password_reset_tokens"

    id = Column(String(36), primary_key=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hashed_token = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="password_reset_tokens")
