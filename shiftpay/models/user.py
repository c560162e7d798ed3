"""ORM model for user accounts (credentials, status, role membership)."""

from sqlalchemy import Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from shiftpay.models.base import AuditMixin, Base

USER_STATUS_ACTIVE = "active"
USER_STATUS_INACTIVE = "inactive"

user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class User(AuditMixin, Base):
    """
    Login identity. username is globally unique; only the bcrypt hash of the
    password is stored. Deleting a user deletes its refresh and reset tokens.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    employee_id = Column(
        Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, unique=True
    )
    status = Column(String(16), nullable=False, default=USER_STATUS_ACTIVE)

    employee = relationship("Employee", back_populates="user")
    roles = relationship("Role", secondary=user_roles, back_populates="users", lazy="selectin")
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    password_reset_tokens = relationship(
        "PasswordResetToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def role_names(self) -> list[str]:
        return sorted(role.name for role in self.roles)

    @property
    def is_active(self) -> bool:
        return self.status == USER_STATUS_ACTIVE
