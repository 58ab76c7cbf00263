# autospa/models/customer.py
from sqlalchemy import Column, String, Integer, DateTime, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from autospa.models.base import Base
import uuid


class Customer(Base):
    __tablename__ = "customers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True, index=True)
    email = Column(String(255), nullable=True)

    # Segmentation used by coupon targeting
    tags = Column(JSON, default=list)
    customer_type = Column(String(20), nullable=True)  # enthusiast, professional
    visit_count = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
