# autospa/models/appointment.py
from sqlalchemy import Column, String, Text, Date, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from autospa.models.base import Base
import uuid


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # References
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=True)
    employee_id = Column(UUID(as_uuid=True), ForeignKey("employees.id"), nullable=True)
    service_id = Column(UUID(as_uuid=True), ForeignKey("services.id"), nullable=True)

    # Status tracking
    status = Column(String(20), nullable=False, default="pending")  # pending, confirmed, in_progress, completed, cancelled, no_show
    channel = Column(String(20), nullable=False, default="phone")  # online, phone, walk_in, portal

    # Schedule ("HH:MM" strings compare lexically in clock order)
    scheduled_date = Column(Date, nullable=False)
    scheduled_start_time = Column(String(5), nullable=False)
    scheduled_end_time = Column(String(5), nullable=False)

    job_notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "scheduled_start_time < scheduled_end_time",
            name="ck_appointments_start_before_end"
        ),
        Index("ix_appointments_date_status", "scheduled_date", "status"),
    )

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, date={self.scheduled_date}, "
            f"{self.scheduled_start_time}-{self.scheduled_end_time}, status={self.status})>"
        )
