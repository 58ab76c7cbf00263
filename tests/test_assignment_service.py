from autospa.services.appointment.assignment_service import AssignmentService
from conftest import MONDAY


def assign(db, start="10:00", end="11:00"):
    return AssignmentService.find_available_detailer(db, MONDAY, start, end)


def test_nobody_to_assign(db):
    assert assign(db) is None


def test_owner_is_the_fallback(db, make_employee):
    make_employee(role="super_admin", status="inactive")
    owner = make_employee(role="super_admin")
    make_employee(role="cashier")

    assert assign(db) == owner.id


def test_oldest_free_detailer_wins(db, make_employee, make_appointment):
    first = make_employee()
    second = make_employee()

    assert assign(db) == first.id

    make_appointment("10:30", "11:30", employee_id=first.id)
    assert assign(db) == second.id


def test_everyone_busy_assigns_the_first(db, make_employee, make_appointment):
    first = make_employee()
    second = make_employee()
    make_appointment("10:00", "11:00", employee_id=first.id)
    make_appointment("10:00", "11:00", employee_id=second.id)

    assert assign(db) == first.id


def test_cancelled_jobs_do_not_make_anyone_busy(db, make_employee, make_appointment):
    first = make_employee()
    make_employee()
    make_appointment("10:00", "11:00", employee_id=first.id, status="cancelled")

    assert assign(db) == first.id


def test_schedules_pick_who_covers_the_job(db, make_employee, make_schedule):
    morning = make_employee()
    afternoon = make_employee()
    make_schedule(morning, 1, "08:00", "12:00")
    make_schedule(afternoon, 1, "12:00", "18:00")

    assert assign(db, "09:00", "10:00") == morning.id
    assert assign(db, "14:00", "15:00") == afternoon.id
    # nobody covers a job spanning both shifts
    assert assign(db, "11:00", "13:00") is None


def test_single_candidate_is_assigned_even_if_busy(db, make_employee, make_schedule, make_appointment):
    only = make_employee()
    make_employee()
    make_schedule(only, 1, "08:00", "18:00")
    make_appointment("10:00", "11:00", employee_id=only.id)

    assert assign(db) == only.id


def test_inactive_and_unbookable_detailers_are_skipped(db, make_employee):
    make_employee(status="inactive")
    make_employee(bookable=False)
    active = make_employee()

    assert assign(db) == active.id
