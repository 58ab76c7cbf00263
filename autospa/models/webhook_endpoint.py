# autospa/models/webhook_endpoint.py
from sqlalchemy import Column, String, DateTime, Boolean, JSON, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid
from autospa.models.base import Base


class WebhookEndpoint(Base):
    __tablename__ = "webhook_endpoints"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    url = Column(String(500), nullable=False)
    description = Column(String(500))

    # ["booking.created", "booking.cancelled", "*"]
    enabled_events = Column(JSON, default=list)

    # HMAC signing key
    secret = Column(String(128), nullable=False)

    is_active = Column(Boolean, default=True, index=True)

    # Health tracking
    consecutive_failures = Column(Integer, default=0)
    last_success_at = Column(DateTime(timezone=True))
    last_failure_at = Column(DateTime(timezone=True))
    last_failure_reason = Column(String(500))

    max_consecutive_failures = Column(Integer, default=10)
    auto_disabled_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
