"""SQLAlchemy ORM models."""

from shiftpay.models.base import Base
from shiftpay.models.employee import Branch, Employee
from shiftpay.models.role import Permission, Role
from shiftpay.models.token import PasswordResetToken, RefreshToken
from shiftpay.models.user import User

__all__ = [
    "Base",
    "Branch",
    "Employee",
    "PasswordResetToken",
    "Permission",
    "RefreshToken",
    "Role",
    "User",
]
