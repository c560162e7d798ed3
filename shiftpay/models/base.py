"""SQLAlchemy declarative Base and shared model configuration."""

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase

from shiftpay.core.security import utcnow


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


class AuditMixin:
    """Creation/modification metadata; created_by/updated_by hold the acting user id."""

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
    created_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
