# autospa/schemas/coupons.py
from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from decimal import Decimal
from datetime import datetime
from uuid import UUID


class CartItem(BaseModel):
    """A line of the in-progress sale or booking"""
    item_type: Literal["product", "service"] = Field(..., description="Line item kind")
    product_id: Optional[str] = Field(None, description="Product ID for product lines")
    service_id: Optional[str] = Field(None, description="Service ID for service lines")
    category_id: Optional[str] = Field(None, description="Product or service category ID")
    unit_price: Decimal = Field(..., ge=0, description="Unit price")
    quantity: int = Field(1, ge=1, description="Quantity")
    item_name: str = Field("", description="Display name")


class PromotionsRequest(BaseModel):
    """Cart snapshot to evaluate promotions against"""
    customer_id: Optional[UUID] = Field(None, description="Customer on the ticket, if any")
    items: List[CartItem] = Field(default_factory=list)
    subtotal: Decimal = Field(Decimal("0"), ge=0)


class PromotionItem(BaseModel):
    id: str
    code: str
    name: Optional[str] = None
    discount_amount: float
    description: str
    expires_at: Optional[datetime] = None
    target_customer_type: Optional[str] = None
    auto_apply: bool = False
    missing_items: Optional[List[str]] = None
    warning: Optional[str] = None


class PromotionsResponse(BaseModel):
    for_you: List[PromotionItem] = Field(default_factory=list)
    eligible: List[PromotionItem] = Field(default_factory=list)
    upsell: List[PromotionItem] = Field(default_factory=list)


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Coupon code as typed by the cashier")
    customer_id: Optional[UUID] = None
    items: List[CartItem] = Field(default_factory=list)
    subtotal: Decimal = Field(Decimal("0"), ge=0)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        code = v.strip().upper()
        if not code:
            raise ValueError("Coupon code is required")
        return code


class CouponValidateResponse(BaseModel):
    id: str
    code: str
    name: Optional[str] = None
    discount: float
    description: str
    warning: Optional[str] = None
