"""Engine and sessions for the credential store (PostgreSQL via psycopg2)."""

import logging
from collections.abc import Generator
from typing import Literal

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from shiftpay.core.config import settings

logger = logging.getLogger(__name__)

DatabaseStatus = Literal["connected", "disconnected"]

# Connections are checked on checkout and recycled before PostgreSQL idles them out.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_recycle=1800,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; token and user writes commit explicitly in the services."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def database_status(db: Session) -> DatabaseStatus:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Credential store unreachable: %s", e)
        return "disconnected"
    return "connected"
