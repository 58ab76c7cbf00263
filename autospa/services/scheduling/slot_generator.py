# autospa/services/scheduling/slot_generator.py
"""Enumerate bookable start times across a resolved availability window"""
from dataclasses import dataclass
from typing import Iterable, List, Optional

from autospa.core.exceptions import ValidationError
from autospa.services.scheduling.availability_window import AvailabilityWindow
from autospa.services.scheduling.time_utils import minutes_to_time


@dataclass(frozen=True)
class BookedInterval:
    """An existing non-cancelled appointment, in minutes since midnight"""
    start_minutes: int
    end_minutes: int

    def overlaps(self, start: int, end: int) -> bool:
        # half-open: touching endpoints do not conflict
        return start < self.end_minutes and end > self.start_minutes


def generate_slots(
        window: Optional[AvailabilityWindow],
        duration_minutes: int,
        buffer_minutes: int,
        slot_interval_minutes: int,
        booked: Iterable[BookedInterval],
) -> List[str]:
    """
    Return ascending "HH:MM" start times where a service of duration_minutes
    (plus the trailing buffer) fits inside the window, does not overlap any
    booked interval and, when per-employee schedules apply, is covered end to
    end by at least one single employee's window.
    """
    if duration_minutes < 1:
        raise ValidationError("Invalid duration")
    if slot_interval_minutes < 1:
        raise ValidationError("Invalid slot interval")

    if window is None:
        return []

    booked = list(booked)
    total_needed = duration_minutes + buffer_minutes
    slots: List[str] = []

    t = window.open_minutes
    while t + total_needed <= window.close_minutes:
        slot_end = t + total_needed

        if not any(b.overlaps(t, slot_end) for b in booked):
            if not window.has_per_employee_schedules or any(
                    w.open_minutes <= t and slot_end <= w.close_minutes
                    for w in window.employee_windows
            ):
                slots.append(minutes_to_time(t))

        t += slot_interval_minutes

    return slots
