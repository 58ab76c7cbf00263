# ============================================================================
# autospa/services/appointment/appointment_query_service.py
# Read side of appointments - no FastAPI dependencies
# ============================================================================
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional, Dict, Any
from uuid import UUID

from autospa.core.exceptions import NotFoundError
from autospa.models.appointment import Appointment


class AppointmentQueryService:
    """Listing and lookup of appointments for the dashboard"""

    @staticmethod
    def list_appointments(
            db: Session,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            status: Optional[str] = None,
            employee_id: Optional[UUID] = None,
            customer_id: Optional[UUID] = None,
            skip: int = 0,
            limit: int = 50
    ) -> Dict[str, Any]:
        """Get paginated list of appointments with filters."""
        query = db.query(Appointment)

        if start_date:
            query = query.filter(Appointment.scheduled_date >= start_date)
        if end_date:
            query = query.filter(Appointment.scheduled_date <= end_date)
        if status:
            query = query.filter(Appointment.status == status)
        if employee_id:
            query = query.filter(Appointment.employee_id == employee_id)
        if customer_id:
            query = query.filter(Appointment.customer_id == customer_id)

        query = query.order_by(Appointment.scheduled_date.asc(), Appointment.scheduled_start_time.asc())
        total = query.count()
        appointments = query.offset(skip).limit(limit).all()

        return {
            "total": total,
            "appointments": [serialize_appointment(appt) for appt in appointments],
        }

    @staticmethod
    def get_appointment(db: Session, appointment_id: UUID) -> Appointment:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment


def serialize_appointment(appt: Appointment) -> Dict[str, Any]:
    return {
        "id": str(appt.id),
        "customer_id": str(appt.customer_id) if appt.customer_id else None,
        "employee_id": str(appt.employee_id) if appt.employee_id else None,
        "service_id": str(appt.service_id) if appt.service_id else None,
        "status": appt.status,
        "channel": appt.channel,
        "scheduled_date": appt.scheduled_date.isoformat(),
        "scheduled_start_time": appt.scheduled_start_time,
        "scheduled_end_time": appt.scheduled_end_time,
        "job_notes": appt.job_notes,
        "internal_notes": appt.internal_notes,
        "cancellation_reason": appt.cancellation_reason,
        "cancelled_at": appt.cancelled_at,
        "created_at": appt.created_at,
        "updated_at": appt.updated_at,
    }
