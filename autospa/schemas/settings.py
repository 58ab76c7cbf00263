# autospa/schemas/settings.py
"""
Validated shapes of the business_settings key/value rows.

Stored values are parsed once at the boundary (BusinessSettingsService) so the
scheduling and coupon code never see loosely-typed JSON.
"""
from __future__ import annotations
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Optional, Dict, Literal

from autospa.services.scheduling.availability_window import DayHours
from autospa.services.scheduling.time_utils import DAY_NAMES, normalize_time, time_to_minutes
from autospa.core.exceptions import InvalidTimeFormat

BUSINESS_HOURS_KEY = "business_hours"
BOOKING_CONFIG_KEY = "booking_config"
COUPON_ENFORCEMENT_KEY = "coupon_type_enforcement"


class DayHoursSchema(BaseModel):
    """Open/close for one weekday (HH:MM, business-local)"""
    open: str = Field(..., description="Opening time (HH:MM)")
    close: str = Field(..., description="Closing time (HH:MM)")

    @field_validator("open", "close")
    @classmethod
    def validate_time(cls, v: str) -> str:
        try:
            return normalize_time(v)
        except InvalidTimeFormat:
            raise ValueError("Use HH:MM format")

    @model_validator(mode="after")
    def close_after_open(self) -> "DayHoursSchema":
        if time_to_minutes(self.close) <= time_to_minutes(self.open):
            raise ValueError("Closing time must be after opening time")
        return self


class BusinessHoursConfig(BaseModel):
    """Weekly hours; a missing or null day means closed"""
    sunday: Optional[DayHoursSchema] = None
    monday: Optional[DayHoursSchema] = None
    tuesday: Optional[DayHoursSchema] = None
    wednesday: Optional[DayHoursSchema] = None
    thursday: Optional[DayHoursSchema] = None
    friday: Optional[DayHoursSchema] = None
    saturday: Optional[DayHoursSchema] = None

    model_config = {"extra": "forbid"}

    def to_day_hours(self) -> Dict[str, Optional[DayHours]]:
        result: Dict[str, Optional[DayHours]] = {}
        for name in DAY_NAMES:
            hours = getattr(self, name)
            result[name] = DayHours(open=hours.open, close=hours.close) if hours else None
        return result


class BookingConfig(BaseModel):
    slot_interval_minutes: Optional[int] = Field(None, ge=5, le=240)

    model_config = {"extra": "allow"}


class BusinessSettingsSnapshot(BaseModel):
    """Everything the scheduling and coupon code reads from business_settings"""
    business_hours: BusinessHoursConfig = Field(default_factory=BusinessHoursConfig)
    booking_config: BookingConfig = Field(default_factory=BookingConfig)
    coupon_type_enforcement: Literal["soft", "hard"] = "soft"


class SettingUpdate(BaseModel):
    """PUT body for one business setting"""
    value: Any = Field(..., description="New value; validated against the key's schema")


class SettingsListResponse(BaseModel):
    settings: Dict[str, Any] = Field(default_factory=dict)
