# autospa/models/employee.py
from sqlalchemy import (
    Column, String, Integer, Boolean, Date, DateTime, JSON, ForeignKey, UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from autospa.models.base import Base
import uuid


class Employee(Base):
    __tablename__ = "employees"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True, unique=True)

    role = Column(String(20), nullable=False, default="detailer")  # super_admin, admin, cashier, detailer
    status = Column(String(20), nullable=False, default="active")  # active, inactive, terminated
    bookable_for_appointments = Column(Boolean, default=True)

    # {"appointments.manage": true, "pos.promotions": false}
    permission_overrides = Column(JSON, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    schedules = relationship("EmployeeSchedule", back_populates="employee", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self):
        return f"<Employee(id={self.id}, role={self.role})>"


class EmployeeSchedule(Base):
    """Weekly working hours per employee (one row per weekday)"""
    __tablename__ = "employee_schedules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    employee_id = Column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(String(8), nullable=False)  # "HH:MM"
    end_time = Column(String(8), nullable=False)
    is_available = Column(Boolean, default=True)

    employee = relationship("Employee", back_populates="schedules")

    __table_args__ = (
        UniqueConstraint("employee_id", "day_of_week", name="uq_employee_schedules_employee_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_employee_schedules_day_of_week"),
    )


class BlockedDate(Base):
    """Days off. A row without employee_id closes the whole business."""
    __tablename__ = "blocked_dates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    date = Column(Date, nullable=False)
    employee_id = Column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=True
    )
    reason = Column(String(255), nullable=True)  # "Holiday", "Vacation", etc.

    __table_args__ = (
        Index("ix_blocked_dates_date", "date"),
    )
