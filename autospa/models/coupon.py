# autospa/models/coupon.py
from sqlalchemy import (
    Column, String, Integer, Boolean, Numeric, DateTime, JSON, ForeignKey, Index,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from autospa.models.base import Base
import uuid


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    code = Column(String(50), nullable=False, unique=True)  # stored upper-case
    name = Column(String(200), nullable=True)
    status = Column(String(20), nullable=False, default="draft")  # draft, active, disabled, expired
    auto_apply = Column(Boolean, default=False)

    # Targeting
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=True)
    customer_tags = Column(JSON, default=list)
    tag_match_mode = Column(String(10), default="any")  # any, all
    target_customer_type = Column(String(20), nullable=True)  # enthusiast, professional

    # Conditions
    condition_logic = Column(String(10), default="and")  # and/all, or/any
    requires_product_ids = Column(JSON, default=list)
    requires_service_ids = Column(JSON, default=list)
    requires_product_category_ids = Column(JSON, default=list)
    requires_service_category_ids = Column(JSON, default=list)
    min_purchase = Column(Numeric(10, 2), nullable=True)
    max_customer_visits = Column(Integer, nullable=True)

    # Usage limits
    is_single_use = Column(Boolean, default=False)
    max_uses = Column(Integer, nullable=True)
    use_count = Column(Integer, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    campaign_id = Column(UUID(as_uuid=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    rewards = relationship(
        "CouponReward",
        back_populates="coupon",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    __table_args__ = (
        Index("ix_coupons_status", "status"),
    )

    def __repr__(self):
        return f"<Coupon(code={self.code}, status={self.status})>"


class CouponReward(Base):
    __tablename__ = "coupon_rewards"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    coupon_id = Column(
        UUID(as_uuid=True),
        ForeignKey("coupons.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    applies_to = Column(String(20), nullable=False, default="order")  # order, product, service
    discount_type = Column(String(20), nullable=False)  # percentage, flat, free
    discount_value = Column(Numeric(10, 2), default=0)
    max_discount = Column(Numeric(10, 2), nullable=True)

    target_product_id = Column(UUID(as_uuid=True), nullable=True)
    target_service_id = Column(UUID(as_uuid=True), nullable=True)
    target_product_category_id = Column(UUID(as_uuid=True), nullable=True)
    target_service_category_id = Column(UUID(as_uuid=True), nullable=True)

    coupon = relationship("Coupon", back_populates="rewards")
