"""Shared helpers: in-memory SQLite credential store and user factories."""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from shiftpay.core.config import get_settings
from shiftpay.core.security import hash_password
from shiftpay.models import Base, Role, User
from shiftpay.models.user import USER_STATUS_ACTIVE
from shiftpay.services.seed import seed_defaults


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database shared across threads (TestClient runs sync routes in a pool)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    with factory() as db:
        seed_defaults(db, get_settings())
    return factory


def make_user(
    db: Session,
    username: str = "alice",
    password: str = "secret1",
    roles: tuple[str, ...] = ("Employee",),
    status: str = USER_STATUS_ACTIVE,
) -> User:
    user = User(
        username=username,
        password_hash=hash_password(password),
        status=status,
        roles=db.query(Role).filter(Role.name.in_(roles)).all(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
