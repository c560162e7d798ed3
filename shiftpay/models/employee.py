"""ORM models for employee profiles and the branches they work at."""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from shiftpay.models.base import AuditMixin, Base

employee_branches = Table(
    "employee_branches",
    Base.metadata,
    Column(
        "employee_id",
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("branch_id", Integer, ForeignKey("branches.id", ondelete="CASCADE"), primary_key=True),
)


class Branch(AuditMixin, Base):
    """Work location. Managed elsewhere; registration only links employees to it."""

    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    abbreviation = Column(String(32), nullable=True)
    address = Column(String(1024), nullable=True)

    employees = relationship("Employee", secondary=employee_branches, back_populates="branches")


class Employee(AuditMixin, Base):
    """Employee profile optionally linked to a login account."""

    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(32), nullable=False)
    email = Column(String(255), nullable=True)
    address = Column(String(1024), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    probation_start_date = Column(Date, nullable=True)
    official_start_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    user = relationship("User", back_populates="employee", uselist=False)
    branches = relationship("Branch", secondary=employee_branches, back_populates="employees")
