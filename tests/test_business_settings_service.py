import json

import pytest

from autospa.core.exceptions import ConfigurationError, ValidationError
from autospa.services.settings.business_settings_service import (
    SNAPSHOT_CACHE_KEY,
    BusinessSettingsService,
    decode_stored_value,
)
from conftest import WEEKDAY_HOURS


def test_decode_stored_value():
    assert decode_stored_value('{"a": 1}') == {"a": 1}
    assert decode_stored_value("soft") == "soft"
    assert decode_stored_value({"a": 1}) == {"a": 1}
    assert decode_stored_value(None) is None


def test_defaults_when_nothing_is_stored(db):
    snapshot = BusinessSettingsService.load_snapshot(db)

    assert snapshot.coupon_type_enforcement == "soft"
    assert snapshot.booking_config.slot_interval_minutes is None
    assert snapshot.business_hours.to_day_hours()["monday"] is None


def test_double_encoded_hours_are_parsed(db, set_setting):
    set_setting("business_hours", json.dumps(WEEKDAY_HOURS))
    set_setting("coupon_type_enforcement", "hard")

    snapshot = BusinessSettingsService.load_snapshot(db)

    monday = snapshot.business_hours.to_day_hours()["monday"]
    assert (monday.open, monday.close) == ("09:00", "17:00")
    assert snapshot.business_hours.to_day_hours()["saturday"] is None
    assert snapshot.coupon_type_enforcement == "hard"


def test_hours_are_normalized(db, set_setting):
    set_setting("business_hours", {"monday": {"open": "8:30", "close": "17:00:00"}})

    monday = BusinessSettingsService.load_snapshot(db).business_hours.monday

    assert (monday.open, monday.close) == ("08:30", "17:00")


@pytest.mark.parametrize("key,value", [
    ("business_hours", {"monday": {"open": "9am", "close": "17:00"}}),
    ("business_hours", {"monday": {"open": "17:00", "close": "09:00"}}),
    ("business_hours", {"funday": {"open": "09:00", "close": "17:00"}}),
    ("booking_config", {"slot_interval_minutes": 0}),
    ("coupon_type_enforcement", "strict"),
])
def test_malformed_stored_values_fail_fast(db, set_setting, key, value):
    set_setting(key, value)

    with pytest.raises(ConfigurationError) as exc:
        BusinessSettingsService.load_snapshot(db)
    assert exc.value.status_code == 500
    assert exc.value.details["errors"]


def test_snapshot_is_cached_until_ttl(db, set_setting, settings_cache, clock):
    set_setting("coupon_type_enforcement", "soft")
    assert BusinessSettingsService.get_snapshot(db, settings_cache).coupon_type_enforcement == "soft"

    # written behind the service's back
    set_setting("coupon_type_enforcement", "hard")
    assert BusinessSettingsService.get_snapshot(db, settings_cache).coupon_type_enforcement == "soft"

    clock.advance(60)
    assert BusinessSettingsService.get_snapshot(db, settings_cache).coupon_type_enforcement == "hard"


def test_update_setting_invalidates_the_cached_snapshot(db, settings_cache):
    BusinessSettingsService.get_snapshot(db, settings_cache)
    assert settings_cache.get(SNAPSHOT_CACHE_KEY) is not None

    stored = BusinessSettingsService.update_setting(db, "booking_config", {"slot_interval_minutes": 15},
                                                    settings_cache)

    assert stored == {"slot_interval_minutes": 15}
    assert settings_cache.get(SNAPSHOT_CACHE_KEY) is None
    assert BusinessSettingsService.get_snapshot(db, settings_cache).booking_config.slot_interval_minutes == 15


def test_update_setting_upserts(db):
    BusinessSettingsService.update_setting(db, "coupon_type_enforcement", "hard")
    BusinessSettingsService.update_setting(db, "coupon_type_enforcement", "soft")

    assert BusinessSettingsService.list_settings(db) == {"coupon_type_enforcement": "soft"}


def test_update_setting_accepts_a_json_string(db):
    stored = BusinessSettingsService.update_setting(db, "business_hours", json.dumps({"monday": WEEKDAY_HOURS["monday"]}))

    assert stored["monday"] == {"open": "09:00", "close": "17:00"}
    assert stored["sunday"] is None


def test_update_setting_rejects_unknown_keys_and_bad_values(db, settings_cache):
    with pytest.raises(ValidationError) as exc:
        BusinessSettingsService.update_setting(db, "theme", "dark", settings_cache)
    assert exc.value.message == "Unknown setting: theme"

    with pytest.raises(ValidationError) as exc:
        BusinessSettingsService.update_setting(db, "business_hours", {"monday": {"open": "x", "close": "y"}})
    assert exc.value.message == "Invalid value for business_hours"

    assert BusinessSettingsService.list_settings(db) == {}
