# autospa/models/business_setting.py
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.sql import func
from autospa.models.base import Base


class BusinessSetting(Base):
    """Key/value business configuration (business_hours, booking_config, ...)"""
    __tablename__ = "business_settings"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<BusinessSetting(key={self.key})>"
