# autospa/services/appointment/conflict.py
"""
Appointment status state machine and point overlap check.

Used on every create/reschedule/update path before a date or time change is
committed. Pure - the DB-aware AppointmentService supplies the rows.
"""
import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

from autospa.core.exceptions import InvalidTransitionError, TerminalStateError
from autospa.services.scheduling.time_utils import time_to_minutes


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


STATUS_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.IN_PROGRESS: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in STATUS_TRANSITIONS.items() if not targets)

# Statuses that may still be moved to a new date/time
RESCHEDULABLE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})

# Statuses a freshly created appointment may start in
INITIAL_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


def is_terminal(status: str) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def validate_transition(current: str, target: str) -> None:
    """Raise if current -> target is not an allowed status change."""
    current_status = AppointmentStatus(current)
    target_status = AppointmentStatus(target)

    if current_status == target_status:
        return
    if current_status in TERMINAL_STATUSES:
        raise TerminalStateError(f"Appointment is {current_status.value} and can no longer be changed")
    if target_status not in STATUS_TRANSITIONS[current_status]:
        raise InvalidTransitionError(current_status.value, target_status.value)


@dataclass(frozen=True)
class ExistingAppointment:
    id: str
    start_time: str
    end_time: str


def find_conflict(
        candidate_start: str,
        candidate_end: str,
        existing: Iterable[ExistingAppointment],
        buffer_minutes: int,
        exclude_id: Optional[str] = None,
) -> Optional[ExistingAppointment]:
    """
    First existing appointment overlapping the candidate, or None.

    The buffer pads the candidate's end only:
    existing.start < candidate_end + buffer AND existing.end > candidate_start
    """
    start = time_to_minutes(candidate_start)
    end_with_buffer = time_to_minutes(candidate_end) + buffer_minutes

    for appt in existing:
        if exclude_id is not None and str(appt.id) == str(exclude_id):
            continue
        if time_to_minutes(appt.start_time) < end_with_buffer and time_to_minutes(appt.end_time) > start:
            return appt

    return None
