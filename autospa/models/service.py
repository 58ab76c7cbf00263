# autospa/models/service.py
"""
Service catalog. Booking reads base_duration_minutes to size a slot.
"""
from sqlalchemy import Column, String, Numeric, Integer, Boolean, DateTime, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid
from autospa.models.base import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    price = Column(Numeric(10, 2), nullable=True)
    base_duration_minutes = Column(Integer, nullable=True)
    category_id = Column(UUID(as_uuid=True), nullable=True, index=True)

    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now()
    )

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name})>"

    @property
    def formatted_duration(self) -> str:
        """Return human-readable duration string"""
        if not self.base_duration_minutes:
            return "Duration varies"

        hours = self.base_duration_minutes // 60
        minutes = self.base_duration_minutes % 60

        if hours > 0 and minutes > 0:
            return f"{hours}h {minutes}m"
        elif hours > 0:
            return f"{hours}h"
        else:
            return f"{minutes}m"
