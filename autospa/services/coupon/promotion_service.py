# autospa/services/coupon/promotion_service.py
"""POS promotions: which coupons to surface for a cart, and code validation"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from autospa.config.settings import get_settings
from autospa.core.exceptions import NotFoundError, ValidationError
from autospa.models.coupon import Coupon, CouponReward
from autospa.models.customer import Customer
from autospa.schemas.coupons import CartItem, CouponValidateResponse, PromotionItem, PromotionsResponse
from autospa.services.coupon.eligibility import (
    CouponRules,
    CustomerSnapshot,
    EnforcementMode,
    RewardRule,
    calculate_discount,
    describe_rewards,
    evaluate_conditions,
    evaluate_targeting,
    to_money,
    usage_block_reason,
)

logger = logging.getLogger(__name__)


def _ids(values) -> List[str]:
    return [str(v) for v in (values or [])]


def _opt_str(value) -> Optional[str]:
    return str(value) if value is not None else None


def reward_to_rule(reward: CouponReward) -> RewardRule:
    return RewardRule(
        applies_to=reward.applies_to,
        discount_type=reward.discount_type,
        discount_value=Decimal(str(reward.discount_value or 0)),
        max_discount=Decimal(str(reward.max_discount)) if reward.max_discount is not None else None,
        target_product_id=_opt_str(reward.target_product_id),
        target_service_id=_opt_str(reward.target_service_id),
        target_product_category_id=_opt_str(reward.target_product_category_id),
        target_service_category_id=_opt_str(reward.target_service_category_id),
    )


def coupon_to_rules(coupon: Coupon) -> CouponRules:
    """Snapshot an ORM coupon (and its rewards) for the eligibility engine"""
    return CouponRules(
        id=str(coupon.id),
        code=coupon.code,
        name=coupon.name,
        status=coupon.status,
        auto_apply=bool(coupon.auto_apply),
        customer_id=_opt_str(coupon.customer_id),
        customer_tags=list(coupon.customer_tags or []),
        tag_match_mode=coupon.tag_match_mode or "any",
        target_customer_type=coupon.target_customer_type,
        condition_logic=coupon.condition_logic or "and",
        requires_product_ids=_ids(coupon.requires_product_ids),
        requires_service_ids=_ids(coupon.requires_service_ids),
        requires_product_category_ids=_ids(coupon.requires_product_category_ids),
        requires_service_category_ids=_ids(coupon.requires_service_category_ids),
        min_purchase=Decimal(str(coupon.min_purchase)) if coupon.min_purchase is not None else None,
        max_customer_visits=coupon.max_customer_visits,
        is_single_use=bool(coupon.is_single_use),
        max_uses=coupon.max_uses,
        use_count=coupon.use_count or 0,
        expires_at=coupon.expires_at,
        rewards=[reward_to_rule(r) for r in coupon.rewards],
    )


class PromotionService:

    @staticmethod
    def load_customer(db: Session, customer_id: Optional[UUID]) -> Optional[CustomerSnapshot]:
        if customer_id is None:
            return None
        customer = db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            logger.info(f"Customer {customer_id} not found, evaluating as anonymous")
            return None
        return CustomerSnapshot(
            id=str(customer.id),
            tags=list(customer.tags) if isinstance(customer.tags, list) else [],
            customer_type=customer.customer_type,
            visit_count=customer.visit_count or 0,
        )

    @staticmethod
    def get_available_promotions(
            db: Session,
            customer_id: Optional[UUID],
            items: Sequence[CartItem],
            subtotal: Decimal,
            enforcement_mode: EnforcementMode,
            now: Optional[datetime] = None,
            upsell_threshold: Optional[int] = None
    ) -> PromotionsResponse:
        """
        Sort every offerable coupon into for_you / eligible / upsell.

        Coupons without rewards, blocked by status/expiry/usage, or failing
        targeting are left out. Personally assigned coupons always go to
        for_you. Failing coupons only make upsell when they miss fewer than
        upsell_threshold conditions.
        """
        now = now or datetime.now(timezone.utc)
        if upsell_threshold is None:
            upsell_threshold = get_settings().COUPON_UPSELL_MAX_FAILED_CONDITIONS

        customer = PromotionService.load_customer(db, customer_id)
        coupons = db.query(Coupon).filter(Coupon.status == "active").all()

        buckets: Dict[str, List[PromotionItem]] = {"for_you": [], "eligible": [], "upsell": []}

        for coupon in coupons:
            rules = coupon_to_rules(coupon)
            if not rules.rewards:
                continue
            if usage_block_reason(rules, now):
                continue

            targeting = evaluate_targeting(rules, customer, enforcement_mode)
            if not targeting.passed:
                continue

            conditions = evaluate_conditions(rules, items, subtotal, customer)
            promotion = PromotionItem(
                id=rules.id,
                code=rules.code,
                name=rules.name,
                discount_amount=float(calculate_discount(rules.rewards, items, subtotal)),
                description=describe_rewards(rules.rewards),
                expires_at=rules.expires_at,
                target_customer_type=rules.target_customer_type,
                auto_apply=rules.auto_apply,
                warning=targeting.warning,
            )

            is_for_you = customer is not None and rules.customer_id == customer.id
            if is_for_you:
                if not conditions.passed:
                    promotion.missing_items = conditions.missing_items
                buckets["for_you"].append(promotion)
            elif conditions.passed:
                buckets["eligible"].append(promotion)
            elif len(conditions.failed_conditions) < upsell_threshold:
                promotion.missing_items = conditions.missing_items
                buckets["upsell"].append(promotion)

        for promotions in buckets.values():
            promotions.sort(key=lambda p: p.discount_amount, reverse=True)

        logger.info(
            f"Promotions for customer {customer_id}: {len(buckets['for_you'])} for you, "
            f"{len(buckets['eligible'])} eligible, {len(buckets['upsell'])} upsell"
        )
        return PromotionsResponse(**buckets)

    @staticmethod
    def validate_code(
            db: Session,
            code: str,
            items: Sequence[CartItem],
            subtotal: Decimal,
            customer_id: Optional[UUID],
            enforcement_mode: EnforcementMode,
            now: Optional[datetime] = None
    ) -> CouponValidateResponse:
        """Check a typed coupon code against the cart; raise with the reason it can't be used"""
        now = now or datetime.now(timezone.utc)
        normalized = code.strip().upper()

        coupon = db.query(Coupon).filter(Coupon.code == normalized).first()
        if not coupon:
            raise NotFoundError("Invalid coupon code")

        rules = coupon_to_rules(coupon)

        reason = usage_block_reason(rules, now)
        if reason:
            raise ValidationError(reason)

        customer = PromotionService.load_customer(db, customer_id)

        if rules.customer_id and (customer is None or customer.id != rules.customer_id):
            raise ValidationError("This coupon is assigned to a different customer")

        targeting = evaluate_targeting(rules, customer, enforcement_mode)
        if not targeting.passed:
            raise ValidationError("This coupon is not available for this customer")

        conditions = evaluate_conditions(rules, items, subtotal, customer)
        if not conditions.passed:
            raise ValidationError(
                f"Coupon requirements not met: {', '.join(conditions.failed_conditions)}",
                details={
                    "failed_conditions": conditions.failed_conditions,
                    "missing_items": conditions.missing_items,
                },
            )

        if not rules.rewards:
            raise ValidationError("Coupon has no rewards configured")

        discount = calculate_discount(rules.rewards, items, subtotal)
        logger.info(f"Coupon {rules.code} validated: ${to_money(discount)} off")

        return CouponValidateResponse(
            id=rules.id,
            code=rules.code,
            name=rules.name,
            discount=float(discount),
            description=describe_rewards(rules.rewards),
            warning=targeting.warning,
        )
