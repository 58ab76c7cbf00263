# ===== autospa/scripts/seed_schedule.py =====
"""Seed business hours, a detailer with a weekly schedule and a day off"""
from datetime import date, timedelta

from autospa.config.database import SessionLocal
from autospa.models.business_setting import BusinessSetting
from autospa.models.employee import BlockedDate, Employee, EmployeeSchedule
from autospa.schemas.settings import BOOKING_CONFIG_KEY, BUSINESS_HOURS_KEY, COUPON_ENFORCEMENT_KEY

BUSINESS_HOURS = {
    "sunday": None,
    "monday": {"open": "08:00", "close": "18:00"},
    "tuesday": {"open": "08:00", "close": "18:00"},
    "wednesday": {"open": "08:00", "close": "18:00"},
    "thursday": {"open": "08:00", "close": "18:00"},
    "friday": {"open": "08:00", "close": "18:00"},
    "saturday": {"open": "09:00", "close": "15:00"},
}


def seed_schedule():
    db = SessionLocal()

    try:
        # 1. Business-wide settings
        for key, value in (
                (BUSINESS_HOURS_KEY, BUSINESS_HOURS),
                (BOOKING_CONFIG_KEY, {"slot_interval_minutes": 30}),
                (COUPON_ENFORCEMENT_KEY, "soft"),
        ):
            row = db.query(BusinessSetting).filter(BusinessSetting.key == key).first()
            if row:
                row.value = value
            else:
                db.add(BusinessSetting(key=key, value=value))

        # 2. Owner plus one detailer working Mon-Fri 09:00-17:00
        owner = Employee(first_name="Owner", role="super_admin", email="owner@example.com",
                         bookable_for_appointments=False)
        detailer = Employee(first_name="Dana", last_name="Detailer", role="detailer",
                            email="dana@example.com")
        db.add_all([owner, detailer])
        db.flush()

        for day in range(1, 6):  # 1=Monday ... 5=Friday
            db.add(EmployeeSchedule(
                employee_id=detailer.id,
                day_of_week=day,
                start_time="09:00",
                end_time="17:00",
                is_available=True
            ))

        # 3. Detailer off a week from today
        db.add(BlockedDate(
            date=date.today() + timedelta(days=7),
            employee_id=detailer.id,
            reason="Vacation"
        ))

        db.commit()
        print("✅ Business hours, employees and schedules seeded successfully!")

    except Exception as e:
        db.rollback()
        print("❌ Error seeding schedule:", e)
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_schedule()
