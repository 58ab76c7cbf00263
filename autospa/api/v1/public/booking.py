# ============================================================================
# autospa/api/v1/public/booking.py
# Public booking wizard - no authentication
# ============================================================================
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from autospa.api.dependencies import get_event_dispatcher, get_settings_cache
from autospa.config.database import get_db
from autospa.core.cache import TTLCache
from autospa.core.events import EventDispatcher
from autospa.core.exceptions import ValidationError
from autospa.schemas.booking import AppointmentResponse, BookingSubmit, SlotsResponse
from autospa.services.appointment.appointment_query_service import serialize_appointment
from autospa.services.appointment.appointment_service import AppointmentService
from autospa.services.availability.availability_service import AvailabilityService
from autospa.services.scheduling.time_utils import parse_date

router = APIRouter(prefix="/book", tags=["public-booking"])


@router.get("/slots", response_model=SlotsResponse)
async def get_available_slots(
        date: Optional[str] = Query(None, description="Date (YYYY-MM-DD)"),
        duration: Optional[str] = Query(None, description="Service duration in minutes"),
        service_id: Optional[UUID] = Query(None, description="Use this service's duration when duration is omitted"),
        db: Session = Depends(get_db),
        cache: TTLCache = Depends(get_settings_cache)
):
    """Bookable start times for one date"""
    if not date or (duration is None and service_id is None):
        raise ValidationError("Missing date or duration parameter")

    target_date = parse_date(date)

    if duration is not None:
        try:
            duration_minutes = int(duration)
        except ValueError:
            raise ValidationError("Invalid duration")
        if duration_minutes < 1:
            raise ValidationError("Invalid duration")
    else:
        duration_minutes = AvailabilityService.resolve_duration(db, service_id)

    slots = AvailabilityService.get_available_slots(
        db,
        target_date=target_date,
        duration_minutes=duration_minutes,
        cache=cache,
    )
    return SlotsResponse(slots=slots)


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def submit_booking(
        booking: BookingSubmit,
        db: Session = Depends(get_db),
        dispatcher: EventDispatcher = Depends(get_event_dispatcher)
):
    """
    Book a slot. Returns 409 "This time slot is no longer available" when
    someone else took it after the slots were listed.
    """
    result = AppointmentService.book_online(db, booking)
    dispatcher.dispatch(result.events)
    return serialize_appointment(result.appointment)
