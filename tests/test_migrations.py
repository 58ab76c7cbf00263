import importlib.util
from pathlib import Path

import pytest

VERSIONS = Path(__file__).resolve().parent.parent / "alembic" / "versions"


class RecordingOp:
    """Stands in for alembic.op and keeps the raw SQL passed to execute"""

    def __init__(self):
        self.statements = []
        self.tables = []

    def execute(self, sql):
        self.statements.append(str(sql))

    def create_table(self, name, *columns, **kwargs):
        self.tables.append(name)

    def __getattr__(self, name):
        return lambda *args, **kwargs: None


@pytest.fixture
def initial_migration(monkeypatch):
    path = next(VERSIONS.glob("a1f3c9d27b10_*.py"))
    spec = importlib.util.spec_from_file_location("initial_migration", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    recorder = RecordingOp()
    monkeypatch.setattr(module, "op", recorder)
    return module, recorder


def test_overlap_constraint_uses_immutable_time_expressions(initial_migration):
    module, recorder = initial_migration

    module.upgrade()

    [ddl] = [s for s in recorder.statements if "ex_appointments_no_overlap" in s]
    assert "EXCLUDE USING gist" in ddl
    assert "::time" not in ddl
    assert "make_time(split_part(scheduled_start_time, ':', 1)::int, " \
           "split_part(scheduled_start_time, ':', 2)::int, 0)" in ddl
    assert "make_time(split_part(scheduled_end_time, ':', 1)::int, " \
           "split_part(scheduled_end_time, ':', 2)::int, 0)" in ddl
    assert "WHERE (status <> 'cancelled')" in ddl


def test_upgrade_creates_every_table(initial_migration):
    module, recorder = initial_migration

    module.upgrade()

    assert recorder.tables == [
        "business_settings", "employees", "employee_schedules", "blocked_dates",
        "customers", "services", "appointments", "coupons", "coupon_rewards",
        "webhook_endpoints", "webhook_events",
    ]
