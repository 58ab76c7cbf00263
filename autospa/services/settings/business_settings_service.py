# autospa/services/settings/business_settings_service.py
"""
Business settings: read, validate, cache.

Rows in business_settings hold JSON. They are parsed once here into
BusinessSettingsSnapshot; malformed stored values fail fast with
ConfigurationError instead of leaking half-parsed dicts into scheduling.
"""
import json
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from autospa.config.settings import get_settings
from autospa.core.cache import TTLCache
from autospa.core.exceptions import ConfigurationError, ValidationError
from autospa.models.business_setting import BusinessSetting
from autospa.schemas.settings import (
    BOOKING_CONFIG_KEY,
    BUSINESS_HOURS_KEY,
    COUPON_ENFORCEMENT_KEY,
    BookingConfig,
    BusinessHoursConfig,
    BusinessSettingsSnapshot,
)

logger = logging.getLogger(__name__)

SNAPSHOT_CACHE_KEY = "business_settings:snapshot"

# key -> validator returning the value to store
_WRITERS: Dict[str, Callable[[Any], Any]] = {
    BUSINESS_HOURS_KEY: lambda v: BusinessHoursConfig.model_validate(v).model_dump(),
    BOOKING_CONFIG_KEY: lambda v: BookingConfig.model_validate(v).model_dump(exclude_none=True),
    COUPON_ENFORCEMENT_KEY: lambda v: BusinessSettingsSnapshot(coupon_type_enforcement=v).coupon_type_enforcement,
}


def decode_stored_value(value: Any) -> Any:
    """
    Undo one level of string encoding.

    Some writers stored JSON as a JSON string ('"{\\"monday\\": ...}"'); a
    plain string that is not JSON (e.g. "soft") is returned unchanged.
    """
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


class BusinessSettingsService:
    """Loads and writes the business_settings key/value table"""

    KNOWN_KEYS = (BUSINESS_HOURS_KEY, BOOKING_CONFIG_KEY, COUPON_ENFORCEMENT_KEY)

    @staticmethod
    def get_snapshot(db: Session, cache: Optional[TTLCache] = None) -> BusinessSettingsSnapshot:
        """Parsed business settings, served from the cache when one is given"""
        if cache is None:
            return BusinessSettingsService.load_snapshot(db)
        return cache.get_or_load(SNAPSHOT_CACHE_KEY, lambda: BusinessSettingsService.load_snapshot(db))

    @staticmethod
    def load_snapshot(db: Session) -> BusinessSettingsSnapshot:
        rows = db.query(BusinessSetting).filter(
            BusinessSetting.key.in_(BusinessSettingsService.KNOWN_KEYS)
        ).all()
        raw = {row.key: decode_stored_value(row.value) for row in rows}

        data: Dict[str, Any] = {
            "coupon_type_enforcement": get_settings().DEFAULT_COUPON_ENFORCEMENT,
        }
        for key in BusinessSettingsService.KNOWN_KEYS:
            if raw.get(key) is not None:
                data[key] = raw[key]

        try:
            snapshot = BusinessSettingsSnapshot.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"Stored business settings are malformed: {e}")
            raise ConfigurationError(
                "Business settings are misconfigured",
                details={"errors": e.errors(include_url=False, include_context=False)},
            )

        logger.debug(f"Loaded business settings: {sorted(raw.keys())}")
        return snapshot

    @staticmethod
    def list_settings(db: Session) -> Dict[str, Any]:
        """All stored settings, decoded but otherwise as stored"""
        rows = db.query(BusinessSetting).order_by(BusinessSetting.key).all()
        return {row.key: decode_stored_value(row.value) for row in rows}

    @staticmethod
    def update_setting(
            db: Session,
            key: str,
            value: Any,
            cache: Optional[TTLCache] = None
    ) -> Any:
        """Validate and upsert one setting, then drop the cached snapshot"""
        writer = _WRITERS.get(key)
        if writer is None:
            raise ValidationError(f"Unknown setting: {key}")

        try:
            stored = writer(decode_stored_value(value))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid value for {key}",
                details={"errors": e.errors(include_url=False, include_context=False)},
            )

        row = db.query(BusinessSetting).filter(BusinessSetting.key == key).first()
        if row is None:
            row = BusinessSetting(key=key, value=stored)
            db.add(row)
        else:
            row.value = stored
        db.commit()

        if cache is not None:
            cache.invalidate(SNAPSHOT_CACHE_KEY)

        logger.info(f"Business setting updated: {key}")
        return stored
