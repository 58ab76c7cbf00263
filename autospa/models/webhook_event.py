# autospa/models/webhook_event.py
from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid
from autospa.models.base import Base


class WebhookEvent(Base):
    """One row per delivery of a domain event to one endpoint"""
    __tablename__ = "webhook_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    webhook_endpoint_id = Column(UUID(as_uuid=True), ForeignKey("webhook_endpoints.id"), nullable=False)

    event_type = Column(String(50), nullable=False)  # "booking.created"
    event_data = Column(JSON, nullable=False)
    domain_event_id = Column(String(64))  # DomainEvent.event_id, one row per endpoint

    status = Column(String(20), nullable=False)  # pending, delivered, failed, retrying
    attempts = Column(Integer, default=0)
    max_attempts = Column(Integer, default=5)

    response_status_code = Column(Integer)
    response_body = Column(Text)
    response_time_ms = Column(Integer)

    error_message = Column(Text)
    last_attempt_at = Column(DateTime(timezone=True))
    next_retry_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    delivered_at = Column(DateTime(timezone=True))
    failed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_webhook_events_status", "status", "next_retry_at"),
        Index("ix_webhook_events_endpoint_status", "webhook_endpoint_id", "status"),
        UniqueConstraint("webhook_endpoint_id", "domain_event_id", name="uq_webhook_events_endpoint_domain_event"),
    )
