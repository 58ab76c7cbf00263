from datetime import timedelta
from uuid import uuid4

import pytest

from autospa.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ScheduleConflict,
    TerminalStateError,
    ValidationError,
)
from autospa.schemas.booking import AppointmentCreate, AppointmentUpdate, BookingSubmit
from autospa.services.appointment.appointment_query_service import AppointmentQueryService
from autospa.services.appointment.appointment_service import ONLINE_CONFLICT_MESSAGE, AppointmentService
from conftest import MONDAY, NOW, SUNDAY


def create(db, start, end, **kwargs):
    data = AppointmentCreate(scheduled_date=kwargs.pop("scheduled_date", MONDAY),
                             scheduled_start_time=start, scheduled_end_time=end, **kwargs)
    return AppointmentService.create_appointment(db, data)


def book(db, time, duration=60, **kwargs):
    return AppointmentService.book_online(
        db, BookingSubmit(date=kwargs.pop("date", MONDAY), time=time, duration_minutes=duration, **kwargs)
    )


# ─── create ─────────────────────────────────────────────────

def test_create_assigns_a_detailer_and_emits_created(db, make_employee):
    detailer = make_employee()

    result = create(db, "10:00", "11:00", channel="phone")

    appointment = result.appointment
    assert appointment.status == "pending"
    assert appointment.employee_id == detailer.id
    assert [e.event_type for e in result.events] == ["booking.created"]
    assert result.events[0].appointment_id == str(appointment.id)
    assert result.events[0].data["scheduled_start_time"] == "10:00"


def test_create_conflicts_within_buffer(db, make_appointment):
    existing = make_appointment("11:00", "12:00")

    with pytest.raises(ScheduleConflict) as exc:
        create(db, "10:00", "10:45")

    assert exc.value.status_code == 409
    assert exc.value.message == "This time slot conflicts with another appointment"
    assert exc.value.conflicting_id == str(existing.id)


def test_create_ignores_cancelled_and_other_days(db, make_appointment):
    make_appointment("10:00", "11:00", status="cancelled")
    make_appointment("10:00", "11:00", target_date=SUNDAY)

    assert create(db, "10:00", "11:00").appointment.id is not None


def test_create_after_existing_end_is_fine(db, make_appointment):
    make_appointment("09:00", "10:00")

    assert create(db, "10:00", "11:00").appointment.scheduled_start_time == "10:00"


def test_create_rejects_bad_initial_status_or_times():
    with pytest.raises(ValueError):
        AppointmentCreate(scheduled_date=MONDAY, scheduled_start_time="11:00", scheduled_end_time="10:00")
    with pytest.raises(ValueError):
        AppointmentCreate(scheduled_date=MONDAY, scheduled_start_time="10:00", scheduled_end_time="11:00",
                          status="completed")


# ─── online booking ─────────────────────────────────────────

def test_book_online_stores_the_buffered_end(db):
    result = book(db, "9:00", duration=60)

    appointment = result.appointment
    assert appointment.scheduled_start_time == "09:00"
    assert appointment.scheduled_end_time == "10:30"
    assert appointment.status == "pending"
    assert appointment.channel == "online"
    assert result.events[0].event_type == "booking.created"


def test_book_online_conflict_message(db):
    book(db, "09:00")

    with pytest.raises(ScheduleConflict) as exc:
        book(db, "10:00")
    assert exc.value.message == ONLINE_CONFLICT_MESSAGE

    # the stored end already carries the buffer; no second buffer is applied
    assert book(db, "10:30").appointment.scheduled_end_time == "12:00"


def test_book_online_past_midnight(db):
    with pytest.raises(ValidationError) as exc:
        book(db, "23:00")
    assert exc.value.message == "Appointment must end before midnight"


def test_book_online_falls_back_to_the_owner(db, make_employee):
    owner = make_employee(role="super_admin")

    assert book(db, "09:00").appointment.employee_id == owner.id


# ─── update ─────────────────────────────────────────────────

def update(db, appointment, **fields):
    return AppointmentService.update_appointment(db, appointment.id, AppointmentUpdate(**fields), now=NOW)


def test_confirm_emits_confirmed(db, make_appointment):
    appointment = make_appointment("10:00", "11:00", status="pending")

    result = update(db, appointment, status="confirmed")

    assert result.appointment.status == "confirmed"
    assert [e.event_type for e in result.events] == ["booking.confirmed"]
    assert result.events[0].data["previous_status"] == "pending"
    assert result.events[0].occurred_at == NOW


def test_other_status_changes_emit_status_changed(db, make_appointment):
    appointment = make_appointment("10:00", "11:00")

    result = update(db, appointment, status="in_progress")

    assert [e.event_type for e in result.events] == ["booking.status_changed"]


def test_cancel_stamps_cancelled_at(db, make_appointment):
    appointment = make_appointment("10:00", "11:00")

    result = update(db, appointment, status="cancelled", cancellation_reason="Rain")

    assert result.appointment.cancelled_at.replace(tzinfo=None) == NOW.replace(tzinfo=None)
    assert result.appointment.cancellation_reason == "Rain"
    assert [e.event_type for e in result.events] == ["booking.cancelled"]


def test_invalid_transition(db, make_appointment):
    appointment = make_appointment("10:00", "11:00", status="pending")

    with pytest.raises(InvalidTransitionError):
        update(db, appointment, status="completed")


@pytest.mark.parametrize("terminal", ["completed", "cancelled", "no_show"])
def test_terminal_appointments_are_frozen(db, make_appointment, terminal):
    appointment = make_appointment("10:00", "11:00", status=terminal)

    with pytest.raises(TerminalStateError):
        update(db, appointment, status="confirmed")
    with pytest.raises(TerminalStateError):
        update(db, appointment, job_notes="late edit")


def test_unchanged_values_are_a_no_op(db, make_appointment):
    appointment = make_appointment("10:00", "11:00", status="completed")

    result = update(db, appointment, status="completed", scheduled_start_time="10:00")

    assert result.events == []


def test_reschedule_ignores_its_own_slot(db, make_appointment):
    appointment = make_appointment("10:00", "11:00")

    result = update(db, appointment, scheduled_start_time="10:30", scheduled_end_time="11:30")

    assert result.appointment.scheduled_start_time == "10:30"
    event = result.events[0]
    assert event.event_type == "booking.rescheduled"
    assert event.data["previous"]["scheduled_start_time"] == "10:00"
    assert event.data["previous"]["scheduled_date"] == MONDAY.isoformat()


def test_reschedule_into_a_conflict(db, make_appointment):
    appointment = make_appointment("10:00", "11:00")
    make_appointment("13:00", "14:00")

    with pytest.raises(ScheduleConflict):
        update(db, appointment, scheduled_start_time="12:00", scheduled_end_time="12:45")

    db.refresh(appointment)
    assert appointment.scheduled_start_time == "10:00"


def test_reschedule_to_another_day(db, make_appointment):
    appointment = make_appointment("10:00", "11:00")
    make_appointment("10:00", "11:00", target_date=MONDAY + timedelta(days=1), status="cancelled")

    result = update(db, appointment, scheduled_date=MONDAY + timedelta(days=1))

    assert result.appointment.scheduled_date == MONDAY + timedelta(days=1)


def test_reschedule_and_confirm_emit_both_events(db, make_appointment):
    appointment = make_appointment("10:00", "11:00", status="pending")

    result = update(db, appointment, status="confirmed", scheduled_start_time="09:00", scheduled_end_time="10:00")

    assert [e.event_type for e in result.events] == ["booking.rescheduled", "booking.confirmed"]


def test_reschedule_rules(db, make_appointment):
    started = make_appointment("10:00", "11:00", status="in_progress")
    with pytest.raises(ValidationError):
        update(db, started, scheduled_start_time="12:00", scheduled_end_time="13:00")

    pending = make_appointment("14:00", "15:00", status="pending")
    with pytest.raises(ValidationError) as exc:
        update(db, pending, scheduled_end_time="13:00")
    assert exc.value.message == "End time must be after start time"


def test_update_unknown_appointment(db):
    with pytest.raises(NotFoundError):
        AppointmentService.update_appointment(db, uuid4(), AppointmentUpdate(status="confirmed"))


# ─── queries ────────────────────────────────────────────────

def test_list_and_get(db, make_appointment):
    make_appointment("13:00", "14:00")
    first = make_appointment("09:00", "10:00", status="pending")
    make_appointment("09:00", "10:00", target_date=SUNDAY)

    result = AppointmentQueryService.list_appointments(db, start_date=MONDAY, end_date=MONDAY)

    assert result["total"] == 2
    assert [a["scheduled_start_time"] for a in result["appointments"]] == ["09:00", "13:00"]
    assert AppointmentQueryService.list_appointments(db, status="pending")["total"] == 1
    assert AppointmentQueryService.get_appointment(db, first.id).id == first.id

    with pytest.raises(NotFoundError):
        AppointmentQueryService.get_appointment(db, uuid4())
