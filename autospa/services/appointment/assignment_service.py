# autospa/services/appointment/assignment_service.py
"""Pick a detailer for a new appointment"""
import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from autospa.models.appointment import Appointment
from autospa.models.employee import Employee, EmployeeSchedule
from autospa.services.scheduling.time_utils import day_of_week, time_to_minutes

logger = logging.getLogger(__name__)


class AssignmentService:

    @staticmethod
    def find_available_detailer(
            db: Session,
            target_date: date,
            start_time: str,
            end_time: str
    ) -> Optional[UUID]:
        """
        Choose who works the job.

        1. Active, bookable detailers (oldest first).
        2. Narrow to those whose weekday schedule covers start..end; if nobody
           has a schedule for the day, every detailer is a candidate.
        3. A single candidate is assigned even if busy.
        4. Otherwise the first candidate without an overlapping appointment,
           or the first candidate when everyone is busy.
        5. No candidates: the active owner (super_admin), or None.
        """
        detailer_ids: List[UUID] = [
            row.id for row in db.query(Employee.id).filter(
                Employee.role == "detailer",
                Employee.status == "active",
                Employee.bookable_for_appointments.is_(True),
            ).order_by(Employee.created_at.asc(), Employee.id.asc()).all()
        ]

        if not detailer_ids:
            return AssignmentService._fallback_owner(db)

        schedules = db.query(EmployeeSchedule).filter(
            EmployeeSchedule.day_of_week == day_of_week(target_date),
            EmployeeSchedule.is_available.is_(True),
            EmployeeSchedule.employee_id.in_(detailer_ids),
        ).all()

        if schedules:
            start, end = time_to_minutes(start_time), time_to_minutes(end_time)
            covering = {
                s.employee_id for s in schedules
                if time_to_minutes(s.start_time) <= start and time_to_minutes(s.end_time) >= end
            }
            candidates = [eid for eid in detailer_ids if eid in covering]
        else:
            candidates = detailer_ids

        if not candidates:
            return AssignmentService._fallback_owner(db)

        if len(candidates) == 1:
            return candidates[0]

        busy = {
            row.employee_id for row in db.query(Appointment.employee_id).filter(
                Appointment.scheduled_date == target_date,
                Appointment.employee_id.in_(candidates),
                Appointment.status != "cancelled",
                Appointment.scheduled_start_time < end_time,
                Appointment.scheduled_end_time > start_time,
            ).all()
        }

        available = next((eid for eid in candidates if eid not in busy), None)
        if available is None:
            logger.info(f"All {len(candidates)} detailers busy on {target_date} {start_time}, assigning first")
            return candidates[0]
        return available

    @staticmethod
    def _fallback_owner(db: Session) -> Optional[UUID]:
        owner = db.query(Employee.id).filter(
            Employee.role == "super_admin",
            Employee.status == "active",
        ).order_by(Employee.created_at.asc()).first()

        if owner is None:
            logger.warning("No detailer or owner available for assignment")
            return None
        return owner.id
