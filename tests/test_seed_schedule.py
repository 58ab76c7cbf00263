from autospa.models import Employee, EmployeeSchedule
from autospa.scripts import seed_schedule
from autospa.services.availability.availability_service import AvailabilityService
from autospa.services.settings.business_settings_service import BusinessSettingsService
from conftest import SUNDAY


def test_seeded_data_is_bookable(db, monkeypatch):
    monkeypatch.setattr(seed_schedule, "SessionLocal", lambda: db)

    seed_schedule.seed_schedule()

    snapshot = BusinessSettingsService.load_snapshot(db)
    assert snapshot.business_hours.monday.open == "08:00"
    assert snapshot.booking_config.slot_interval_minutes == 30

    detailer = db.query(Employee).filter(Employee.role == "detailer").one()
    assert db.query(EmployeeSchedule).filter(EmployeeSchedule.employee_id == detailer.id).count() == 5

    assert AvailabilityService.get_window(db, SUNDAY) is None
