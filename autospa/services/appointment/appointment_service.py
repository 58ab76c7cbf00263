# ============================================================================
# autospa/services/appointment/appointment_service.py
# ============================================================================
"""
Appointment writes: create, online booking, update.

Every path that sets or moves a date/time re-checks for overlaps inside the
same transaction as the write. On PostgreSQL writers for a given day are
serialised with a transaction-scoped advisory lock and the
ex_appointments_no_overlap exclusion constraint backs the check up.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autospa.config.settings import get_settings
from autospa.core.exceptions import NotFoundError, ScheduleConflict, TerminalStateError, ValidationError
from autospa.models.appointment import Appointment
from autospa.schemas.booking import AppointmentCreate, AppointmentUpdate, BookingSubmit
from autospa.schemas.events import DomainEvent
from autospa.services.appointment.appointment_query_service import serialize_appointment
from autospa.services.appointment.assignment_service import AssignmentService
from autospa.services.appointment.conflict import (
    INITIAL_STATUSES,
    RESCHEDULABLE_STATUSES,
    AppointmentStatus,
    ExistingAppointment,
    find_conflict,
    is_terminal,
    validate_transition,
)
from autospa.services.scheduling.time_utils import MINUTES_PER_DAY, minutes_to_time, time_to_minutes

logger = logging.getLogger(__name__)

NO_OVERLAP_CONSTRAINT = "ex_appointments_no_overlap"
ONLINE_CONFLICT_MESSAGE = "This time slot is no longer available"

# Advisory lock namespace for per-day booking locks
_BOOKING_LOCK_CLASS = 7301

_STATUS_EVENTS = {
    AppointmentStatus.CONFIRMED: "booking.confirmed",
    AppointmentStatus.CANCELLED: "booking.cancelled",
    AppointmentStatus.COMPLETED: "booking.completed",
}

_SCHEDULE_FIELDS = ("scheduled_date", "scheduled_start_time", "scheduled_end_time")


@dataclass
class AppointmentMutationResult:
    """The written appointment plus the domain events it produced"""
    appointment: Appointment
    events: List[DomainEvent] = field(default_factory=list)


def _buffer(buffer_minutes: Optional[int]) -> int:
    return get_settings().APPOINTMENT_BUFFER_MINUTES if buffer_minutes is None else buffer_minutes


class AppointmentService:
    """Handles appointment write operations"""

    @staticmethod
    def create_appointment(
            db: Session,
            data: AppointmentCreate,
            buffer_minutes: Optional[int] = None,
            conflict_message: Optional[str] = None
    ) -> AppointmentMutationResult:
        """Create a staff/walk-in appointment after a conflict check"""
        buffer_minutes = _buffer(buffer_minutes)

        if data.status not in {s.value for s in INITIAL_STATUSES}:
            raise ValidationError(f"New appointments cannot start as {data.status}")
        if time_to_minutes(data.scheduled_end_time) <= time_to_minutes(data.scheduled_start_time):
            raise ValidationError("End time must be after start time")

        return AppointmentService._insert(
            db,
            values=data.model_dump(),
            buffer_minutes=buffer_minutes,
            conflict_message=conflict_message,
        )

    @staticmethod
    def book_online(
            db: Session,
            data: BookingSubmit,
            buffer_minutes: Optional[int] = None
    ) -> AppointmentMutationResult:
        """
        Public booking. The stored end time includes the cleanup buffer, so
        the overlap check for this path uses the stored interval as-is.
        """
        buffer_minutes = _buffer(buffer_minutes)

        start = time_to_minutes(data.time)
        end = start + data.duration_minutes + buffer_minutes
        if end > MINUTES_PER_DAY - 1:
            raise ValidationError("Appointment must end before midnight")

        values = {
            "scheduled_date": data.date,
            "scheduled_start_time": data.time,
            "scheduled_end_time": minutes_to_time(end),
            "customer_id": data.customer_id,
            "service_id": data.service_id,
            "employee_id": None,
            "status": AppointmentStatus.PENDING.value,
            "channel": data.channel,
            "job_notes": data.notes,
        }

        return AppointmentService._insert(
            db,
            values=values,
            buffer_minutes=0,
            conflict_message=ONLINE_CONFLICT_MESSAGE,
        )

    @staticmethod
    def update_appointment(
            db: Session,
            appointment_id: UUID,
            data: AppointmentUpdate,
            buffer_minutes: Optional[int] = None,
            now: Optional[datetime] = None
    ) -> AppointmentMutationResult:
        """Apply a PATCH: status transition, reschedule, reassignment, notes"""
        buffer_minutes = _buffer(buffer_minutes)
        now = now or datetime.now(timezone.utc)

        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")

        changes = AppointmentService._diff(appointment, data)
        if not changes:
            return AppointmentMutationResult(appointment=appointment)

        current_status = appointment.status
        new_status = changes.get("status", current_status)

        if is_terminal(current_status):
            raise TerminalStateError(f"Appointment is {current_status} and can no longer be changed")

        if "status" in changes:
            validate_transition(current_status, new_status)

        old_schedule = {f: getattr(appointment, f) for f in _SCHEDULE_FIELDS}
        rescheduled = any(f in changes for f in _SCHEDULE_FIELDS)

        if rescheduled:
            if AppointmentStatus(current_status) not in RESCHEDULABLE_STATUSES:
                raise ValidationError(f"A {current_status} appointment cannot be rescheduled")

            new_date = changes.get("scheduled_date", appointment.scheduled_date)
            new_start = changes.get("scheduled_start_time", appointment.scheduled_start_time)
            new_end = changes.get("scheduled_end_time", appointment.scheduled_end_time)
            if time_to_minutes(new_end) <= time_to_minutes(new_start):
                raise ValidationError("End time must be after start time")

            if new_status != AppointmentStatus.CANCELLED.value:
                AppointmentService._lock_day(db, new_date)
                AppointmentService._check_conflict(
                    db, new_date, new_start, new_end, buffer_minutes,
                    exclude_id=appointment.id,
                )

        for key, value in changes.items():
            setattr(appointment, key, value)

        if changes.get("status") == AppointmentStatus.CANCELLED.value:
            appointment.cancelled_at = now

        AppointmentService._commit(db, conflict_message=None)
        db.refresh(appointment)

        events: List[DomainEvent] = []
        payload = serialize_appointment(appointment)
        if rescheduled:
            events.append(AppointmentService._event(
                "booking.rescheduled", appointment, now,
                {**payload, "previous": {k: _plain(v) for k, v in old_schedule.items()}},
            ))
        if "status" in changes:
            event_type = _STATUS_EVENTS.get(AppointmentStatus(new_status), "booking.status_changed")
            events.append(AppointmentService._event(
                event_type, appointment, now,
                {**payload, "previous_status": current_status},
            ))

        logger.info(f"Appointment {appointment.id} updated: {sorted(changes.keys())}")
        return AppointmentMutationResult(appointment=appointment, events=events)

    # ─── internals ─────────────────────────────────────────────

    @staticmethod
    def _insert(
            db: Session,
            values: Dict[str, Any],
            buffer_minutes: int,
            conflict_message: Optional[str]
    ) -> AppointmentMutationResult:
        target_date = values["scheduled_date"]
        start = values["scheduled_start_time"]
        end = values["scheduled_end_time"]

        AppointmentService._lock_day(db, target_date)
        AppointmentService._check_conflict(
            db, target_date, start, end, buffer_minutes, message=conflict_message
        )

        if not values.get("employee_id"):
            values["employee_id"] = AssignmentService.find_available_detailer(db, target_date, start, end)

        appointment = Appointment(**values)
        db.add(appointment)
        AppointmentService._commit(db, conflict_message=conflict_message)
        db.refresh(appointment)

        logger.info(
            f"Appointment {appointment.id} created for {target_date} {start}-{end} "
            f"({appointment.channel}, employee {appointment.employee_id})"
        )

        event = AppointmentService._event(
            "booking.created", appointment, datetime.now(timezone.utc), serialize_appointment(appointment)
        )
        return AppointmentMutationResult(appointment=appointment, events=[event])

    @staticmethod
    def _diff(appointment: Appointment, data: AppointmentUpdate) -> Dict[str, Any]:
        """Fields in the PATCH body whose value differs from the stored one"""
        changes: Dict[str, Any] = {}
        for key, value in data.model_dump(exclude_unset=True).items():
            # status and schedule fields are not nullable; null means "leave it"
            if value is None and (key == "status" or key in _SCHEDULE_FIELDS):
                continue
            current = getattr(appointment, key)
            if _plain(current) != _plain(value):
                changes[key] = value
        return changes

    @staticmethod
    def _lock_day(db: Session, target_date: date) -> None:
        if db.get_bind().dialect.name != "postgresql":
            return
        db.execute(
            text("SELECT pg_advisory_xact_lock(:lock_class, :day)"),
            {"lock_class": _BOOKING_LOCK_CLASS, "day": target_date.toordinal()},
        )

    @staticmethod
    def _check_conflict(
            db: Session,
            target_date: date,
            start: str,
            end: str,
            buffer_minutes: int,
            exclude_id: Optional[UUID] = None,
            message: Optional[str] = None
    ) -> None:
        rows = db.query(
            Appointment.id,
            Appointment.scheduled_start_time,
            Appointment.scheduled_end_time
        ).filter(
            Appointment.scheduled_date == target_date,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        ).all()

        existing = [ExistingAppointment(id=str(r.id), start_time=r[1], end_time=r[2]) for r in rows]
        conflict = find_conflict(
            start, end, existing, buffer_minutes,
            exclude_id=str(exclude_id) if exclude_id else None,
        )
        if conflict is not None:
            logger.info(f"Conflict on {target_date} {start}-{end} with appointment {conflict.id}")
            if message:
                raise ScheduleConflict(message, conflicting_id=conflict.id)
            raise ScheduleConflict(conflicting_id=conflict.id)

    @staticmethod
    def _commit(db: Session, conflict_message: Optional[str]) -> None:
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if _is_overlap_violation(e):
                logger.warning(f"Exclusion constraint rejected overlapping appointment: {e.orig}")
                if conflict_message:
                    raise ScheduleConflict(conflict_message)
                raise ScheduleConflict()
            raise

    @staticmethod
    def _event(event_type: str, appointment: Appointment, now: datetime, data: Dict[str, Any]) -> DomainEvent:
        return DomainEvent(
            event_type=event_type,
            appointment_id=str(appointment.id),
            occurred_at=now,
            data={k: _plain(v) for k, v in data.items()},
        )


def _plain(value: Any) -> Any:
    """JSON-friendly scalar for comparisons and event payloads"""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def _is_overlap_violation(error: IntegrityError) -> bool:
    # 23P01 = exclusion_violation
    return getattr(error.orig, "pgcode", None) == "23P01" or NO_OVERLAP_CONSTRAINT in str(error.orig)
