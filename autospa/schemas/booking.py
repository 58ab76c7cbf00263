# autospa/schemas/booking.py
from __future__ import annotations
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Literal
import datetime as dt
from datetime import date, datetime
from uuid import UUID

from autospa.core.exceptions import InvalidTimeFormat
from autospa.services.scheduling.time_utils import normalize_time, time_to_minutes

AppointmentStatusLiteral = Literal["pending", "confirmed", "in_progress", "completed", "cancelled", "no_show"]


def _clock(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    try:
        return normalize_time(v)
    except InvalidTimeFormat:
        raise ValueError("Time must be in HH:MM format")


class SlotsResponse(BaseModel):
    """Bookable start times for one date, ascending"""
    slots: List[str] = Field(default_factory=list)


class BookingSubmit(BaseModel):
    """Public booking wizard submission"""
    date: dt.date = Field(..., description="Appointment date (YYYY-MM-DD)")
    time: str = Field(..., description="Start time (HH:MM)")
    duration_minutes: int = Field(..., ge=1, description="Service duration in minutes")
    service_id: Optional[UUID] = Field(None, description="Primary service")
    customer_id: Optional[UUID] = Field(None, description="Existing customer")
    notes: Optional[str] = Field(None, max_length=2000)
    channel: Literal["online", "portal"] = "online"

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _clock(v)


class AppointmentCreate(BaseModel):
    """Staff / walk-in appointment creation"""
    scheduled_date: date
    scheduled_start_time: str = Field(..., description="Start time (HH:MM)")
    scheduled_end_time: str = Field(..., description="End time (HH:MM)")
    customer_id: Optional[UUID] = None
    employee_id: Optional[UUID] = None
    service_id: Optional[UUID] = None
    status: Literal["pending", "confirmed"] = "pending"
    channel: Literal["online", "portal", "phone", "walk_in"] = "walk_in"
    job_notes: Optional[str] = None
    internal_notes: Optional[str] = None

    @field_validator("scheduled_start_time", "scheduled_end_time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        return _clock(v)

    @model_validator(mode="after")
    def end_after_start(self) -> "AppointmentCreate":
        if time_to_minutes(self.scheduled_end_time) <= time_to_minutes(self.scheduled_start_time):
            raise ValueError("End time must be after start time")
        return self


class AppointmentUpdate(BaseModel):
    """PATCH body - only provided fields are applied"""
    status: Optional[AppointmentStatusLiteral] = None
    scheduled_date: Optional[date] = None
    scheduled_start_time: Optional[str] = None
    scheduled_end_time: Optional[str] = None
    employee_id: Optional[UUID] = None
    job_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @field_validator("scheduled_start_time", "scheduled_end_time")
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        return _clock(v)


class AppointmentResponse(BaseModel):
    id: str
    customer_id: Optional[str] = None
    employee_id: Optional[str] = None
    service_id: Optional[str] = None
    status: str
    channel: Optional[str] = None
    scheduled_date: str
    scheduled_start_time: str
    scheduled_end_time: str
    job_notes: Optional[str] = None
    internal_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentListResponse(BaseModel):
    total: int
    appointments: List[AppointmentResponse]
