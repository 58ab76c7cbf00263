# autospa/api/v1/pos/promotions.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from autospa.api.dependencies import get_now, get_settings_cache, require_permission
from autospa.config.database import get_db
from autospa.core.cache import TTLCache
from autospa.models.employee import Employee
from autospa.schemas.coupons import (
    CouponValidateRequest,
    CouponValidateResponse,
    PromotionsRequest,
    PromotionsResponse,
)
from autospa.services.auth.permission_service import POS_PROMOTIONS
from autospa.services.coupon.promotion_service import PromotionService
from autospa.services.settings.business_settings_service import BusinessSettingsService

router = APIRouter(tags=["pos-promotions"])


@router.post("/promotions/available", response_model=PromotionsResponse)
async def available_promotions(
        request: PromotionsRequest,
        current_employee: Employee = Depends(require_permission(POS_PROMOTIONS)),
        db: Session = Depends(get_db),
        cache: TTLCache = Depends(get_settings_cache),
        now=Depends(get_now)
):
    """Coupons to show on the POS ticket, bucketed for_you / eligible / upsell"""
    snapshot = BusinessSettingsService.get_snapshot(db, cache)
    return PromotionService.get_available_promotions(
        db,
        customer_id=request.customer_id,
        items=request.items,
        subtotal=request.subtotal,
        enforcement_mode=snapshot.coupon_type_enforcement,
        now=now,
    )


@router.post("/coupons/validate", response_model=CouponValidateResponse)
async def validate_coupon(
        request: CouponValidateRequest,
        current_employee: Employee = Depends(require_permission(POS_PROMOTIONS)),
        db: Session = Depends(get_db),
        cache: TTLCache = Depends(get_settings_cache),
        now=Depends(get_now)
):
    snapshot = BusinessSettingsService.get_snapshot(db, cache)
    return PromotionService.validate_code(
        db,
        code=request.code,
        items=request.items,
        subtotal=request.subtotal,
        customer_id=request.customer_id,
        enforcement_mode=snapshot.coupon_type_enforcement,
        now=now,
    )
