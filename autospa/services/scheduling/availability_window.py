# autospa/services/scheduling/availability_window.py
"""
Resolve the bookable window for a single calendar date.

Pure logic - callers load business hours, the weekday's employee schedules
and the date's blocks, then pass plain values in. Returns None when the
business is closed for the date.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Mapping, Optional, Set

from autospa.services.scheduling.time_utils import day_name, day_of_week, time_to_minutes


@dataclass(frozen=True)
class DayHours:
    """Business open/close for one weekday"""
    open: str
    close: str


@dataclass(frozen=True)
class ScheduleEntry:
    """One employee's recurring work window for a weekday"""
    employee_id: str
    day_of_week: int
    start_time: str
    end_time: str
    is_available: bool = True


@dataclass(frozen=True)
class BlockEntry:
    """A blocked date; employee_id None closes the whole business"""
    date: date
    employee_id: Optional[str] = None


@dataclass(frozen=True)
class EmployeeWindow:
    employee_id: str
    open_minutes: int
    close_minutes: int


@dataclass(frozen=True)
class AvailabilityWindow:
    open_minutes: int
    close_minutes: int
    has_per_employee_schedules: bool = False
    employee_windows: List[EmployeeWindow] = field(default_factory=list)


def resolve_availability_window(
        target_date: date,
        business_hours: Mapping[str, Optional[DayHours]],
        schedules: Iterable[ScheduleEntry],
        blocked_dates: Iterable[BlockEntry],
) -> Optional[AvailabilityWindow]:
    """
    Compute the day's window:

    1. No business hours for the weekday -> closed
    2. A business-wide block (employee_id None) -> closed, whatever the hours say
    3. No schedules configured for the weekday -> business hours only
    4. Schedules configured but every scheduled employee blocked -> closed
    5. Otherwise the union of employee windows, clamped to business hours
    """
    hours = business_hours.get(day_name(target_date))
    if hours is None:
        return None

    weekday = day_of_week(target_date)
    day_schedules = [
        s for s in schedules
        if s.day_of_week == weekday and s.is_available
    ]
    day_blocks = [b for b in blocked_dates if b.date == target_date]

    if any(b.employee_id is None for b in day_blocks):
        return None

    blocked_employee_ids: Set[str] = {str(b.employee_id) for b in day_blocks}
    available = [s for s in day_schedules if str(s.employee_id) not in blocked_employee_ids]

    business_open = time_to_minutes(hours.open)
    business_close = time_to_minutes(hours.close)

    if not available:
        if day_schedules:
            # configured, but everyone working today is blocked
            return None
        return AvailabilityWindow(
            open_minutes=business_open,
            close_minutes=business_close,
            has_per_employee_schedules=False,
        )

    employee_windows = [
        EmployeeWindow(
            employee_id=str(s.employee_id),
            open_minutes=time_to_minutes(s.start_time),
            close_minutes=time_to_minutes(s.end_time),
        )
        for s in available
    ]

    open_minutes = min(w.open_minutes for w in employee_windows)
    close_minutes = max(w.close_minutes for w in employee_windows)

    return AvailabilityWindow(
        open_minutes=max(open_minutes, business_open),
        close_minutes=min(close_minutes, business_close),
        has_per_employee_schedules=True,
        employee_windows=employee_windows,
    )
