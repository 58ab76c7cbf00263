# autospa/schemas/events.py
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional
from datetime import datetime, timezone
from uuid import uuid4

DomainEventType = Literal[
    "booking.created",
    "booking.rescheduled",
    "booking.confirmed",
    "booking.cancelled",
    "booking.completed",
    "booking.status_changed",
]


class DomainEvent(BaseModel):
    """
    Something that happened to an appointment. Returned alongside the
    mutation result; delivery is the dispatcher's job.
    """
    event_id: str = Field(default_factory=lambda: uuid4().hex, description="Stable id used to deduplicate deliveries")
    event_type: DomainEventType = Field(..., description="Event name")
    appointment_id: Optional[str] = Field(None, description="Appointment the event concerns")
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any] = Field(default_factory=dict, description="Event payload")
