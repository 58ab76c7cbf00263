from typing import List, Optional
from datetime import date
from uuid import UUID
from sqlalchemy.orm import Session
from autospa.config.settings import get_settings
from autospa.core.cache import TTLCache
from autospa.models.appointment import Appointment
from autospa.models.employee import BlockedDate, Employee, EmployeeSchedule
from autospa.models.service import Service
from autospa.services.scheduling.availability_window import (
    AvailabilityWindow,
    BlockEntry,
    ScheduleEntry,
    resolve_availability_window,
)
from autospa.services.scheduling.slot_generator import BookedInterval, generate_slots
from autospa.services.scheduling.time_utils import day_of_week, time_to_minutes
from autospa.services.settings.business_settings_service import BusinessSettingsService
import logging

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Loads one day's scheduling snapshot and turns it into bookable slots"""

    @staticmethod
    def get_available_slots(
            db: Session,
            target_date: date,
            duration_minutes: int,
            cache: Optional[TTLCache] = None,
            buffer_minutes: Optional[int] = None
    ) -> List[str]:
        """
        Start times ("HH:MM") at which a job of duration_minutes (plus the
        cleanup buffer) fits on target_date.
        """
        settings = get_settings()
        if buffer_minutes is None:
            buffer_minutes = settings.APPOINTMENT_BUFFER_MINUTES

        snapshot = BusinessSettingsService.get_snapshot(db, cache)
        slot_interval = snapshot.booking_config.slot_interval_minutes or settings.DEFAULT_SLOT_INTERVAL_MINUTES

        window = AvailabilityService.get_window(db, target_date, cache)
        if window is None:
            logger.debug(f"Closed on {target_date}")
            return []

        booked = AvailabilityService._get_booked_intervals(db, target_date)

        slots = generate_slots(
            window,
            duration_minutes=duration_minutes,
            buffer_minutes=buffer_minutes,
            slot_interval_minutes=slot_interval,
            booked=booked,
        )
        logger.info(
            f"{len(slots)} slots on {target_date} for {duration_minutes}min "
            f"({len(booked)} booked, interval {slot_interval}min)"
        )
        return slots

    @staticmethod
    def get_window(
            db: Session,
            target_date: date,
            cache: Optional[TTLCache] = None
    ) -> Optional[AvailabilityWindow]:
        """Bookable window for the date, or None when closed"""
        snapshot = BusinessSettingsService.get_snapshot(db, cache)

        return resolve_availability_window(
            target_date,
            business_hours=snapshot.business_hours.to_day_hours(),
            schedules=AvailabilityService._get_schedules(db, target_date),
            blocked_dates=AvailabilityService._get_blocks(db, target_date),
        )

    @staticmethod
    def resolve_duration(
            db: Session,
            service_id: Optional[UUID],
            default_minutes: Optional[int] = None
    ) -> int:
        """Duration of a catalog service, falling back to the default"""
        if default_minutes is None:
            default_minutes = get_settings().DEFAULT_SERVICE_DURATION_MINUTES
        if service_id is None:
            return default_minutes

        service = db.query(Service).filter(Service.id == service_id).first()
        if not service or not service.base_duration_minutes:
            logger.warning(f"Service {service_id} has no duration, using {default_minutes}min")
            return default_minutes
        return service.base_duration_minutes

    @staticmethod
    def _get_schedules(db: Session, target_date: date) -> List[ScheduleEntry]:
        rows = db.query(EmployeeSchedule).join(
            Employee, Employee.id == EmployeeSchedule.employee_id
        ).filter(
            EmployeeSchedule.day_of_week == day_of_week(target_date),
            EmployeeSchedule.is_available.is_(True),
            Employee.status == "active",
            Employee.bookable_for_appointments.is_(True),
        ).all()

        return [
            ScheduleEntry(
                employee_id=str(row.employee_id),
                day_of_week=row.day_of_week,
                start_time=row.start_time,
                end_time=row.end_time,
                is_available=bool(row.is_available),
            )
            for row in rows
        ]

    @staticmethod
    def _get_blocks(db: Session, target_date: date) -> List[BlockEntry]:
        rows = db.query(BlockedDate).filter(BlockedDate.date == target_date).all()
        return [
            BlockEntry(date=row.date, employee_id=str(row.employee_id) if row.employee_id else None)
            for row in rows
        ]

    @staticmethod
    def _get_booked_intervals(db: Session, target_date: date) -> List[BookedInterval]:
        rows = db.query(
            Appointment.scheduled_start_time,
            Appointment.scheduled_end_time
        ).filter(
            Appointment.scheduled_date == target_date,
            Appointment.status != "cancelled",
        ).all()

        return [
            BookedInterval(time_to_minutes(start), time_to_minutes(end))
            for start, end in rows
        ]
