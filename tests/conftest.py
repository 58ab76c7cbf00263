import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from autospa.api.dependencies import get_current_employee, get_now
from autospa.config.database import get_db
from autospa.core.cache import TTLCache
from autospa.core.events import EventDispatcher
from autospa.main import create_app
from autospa.models import (
    Appointment,
    Base,
    BlockedDate,
    BusinessSetting,
    Coupon,
    CouponReward,
    Customer,
    Employee,
    EmployeeSchedule,
)

MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 18)
NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)

WEEKDAY_HOURS = {
    "sunday": None,
    "monday": {"open": "09:00", "close": "17:00"},
    "tuesday": {"open": "09:00", "close": "17:00"},
    "wednesday": {"open": "09:00", "close": "17:00"},
    "thursday": {"open": "09:00", "close": "17:00"},
    "friday": {"open": "09:00", "close": "17:00"},
    "saturday": None,
}


class FakeClock:
    """Monotonic clock the tests advance by hand"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingDispatcher(EventDispatcher):
    """Keeps events in memory instead of enqueuing them"""

    def __init__(self):
        self.events = []

    def dispatch(self, events):
        self.events.extend(events)

    @property
    def types(self):
        return [e.event_type for e in self.events]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings_cache(clock):
    return TTLCache(ttl_seconds=60, clock=clock)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def app(db, settings_cache, dispatcher):
    app = create_app()
    app.state.settings_cache = settings_cache
    app.state.event_dispatcher = dispatcher

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def login(app):
    """login(employee) makes every authenticated request act as that employee"""

    def _login(employee):
        app.dependency_overrides[get_current_employee] = lambda: employee
        return employee

    return _login


# ─── factories ──────────────────────────────────────────────

@pytest.fixture
def make_employee(db):
    counter = {"n": 0}

    def _make(role="detailer", status="active", bookable=True, overrides=None, **kwargs):
        counter["n"] += 1
        employee = Employee(
            first_name=kwargs.pop("first_name", f"{role.title()} {counter['n']}"),
            role=role,
            status=status,
            bookable_for_appointments=bookable,
            permission_overrides=overrides or {},
            # explicit so "oldest first" ordering is deterministic
            created_at=datetime(2026, 1, 1, 0, counter["n"], tzinfo=timezone.utc),
            **kwargs,
        )
        db.add(employee)
        db.commit()
        db.refresh(employee)
        return employee

    return _make


@pytest.fixture
def make_schedule(db):
    def _make(employee, day_of_week, start_time, end_time, is_available=True):
        schedule = EmployeeSchedule(
            employee_id=employee.id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            is_available=is_available,
        )
        db.add(schedule)
        db.commit()
        return schedule

    return _make


@pytest.fixture
def block_date(db):
    def _block(target_date, employee=None, reason=None):
        block = BlockedDate(date=target_date, employee_id=employee.id if employee else None, reason=reason)
        db.add(block)
        db.commit()
        return block

    return _block


@pytest.fixture
def set_setting(db):
    def _set(key, value):
        row = db.query(BusinessSetting).filter(BusinessSetting.key == key).first()
        if row:
            row.value = value
        else:
            db.add(BusinessSetting(key=key, value=value))
        db.commit()

    return _set


@pytest.fixture
def business_hours(set_setting):
    set_setting("business_hours", WEEKDAY_HOURS)
    return WEEKDAY_HOURS


@pytest.fixture
def make_appointment(db):
    def _make(start, end, target_date=MONDAY, status="confirmed", **kwargs):
        appointment = Appointment(
            scheduled_date=target_date,
            scheduled_start_time=start,
            scheduled_end_time=end,
            status=status,
            channel=kwargs.pop("channel", "phone"),
            **kwargs,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make


@pytest.fixture
def make_customer(db):
    def _make(tags=None, customer_type=None, visit_count=0, **kwargs):
        customer = Customer(
            first_name=kwargs.pop("first_name", "Pat"),
            tags=tags or [],
            customer_type=customer_type,
            visit_count=visit_count,
            **kwargs,
        )
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    return _make


@pytest.fixture
def make_coupon(db):
    def _make(code, rewards=None, **kwargs):
        kwargs.setdefault("status", "active")
        coupon = Coupon(code=code, name=kwargs.pop("name", code.title()), **kwargs)
        for reward in rewards if rewards is not None else [
            {"applies_to": "order", "discount_type": "flat", "discount_value": Decimal("5")}
        ]:
            coupon.rewards.append(CouponReward(**reward))
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    return _make
