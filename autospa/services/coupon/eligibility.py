# autospa/services/coupon/eligibility.py
"""
Coupon eligibility engine.

Three independent stages composed by the caller:

    targeting  -> who may use the coupon (identity, tags, customer type)
    conditions -> what the cart must contain / total
    discount   -> how much the coupon's rewards are worth for this cart

plus the usage pre-filter (status, expiry, usage limits) that must run before
targeting. Everything here is pure; money is Decimal.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Literal, Optional, Sequence

from autospa.schemas.coupons import CartItem

EnforcementMode = Literal["soft", "hard"]

CENT = Decimal("0.01")

CUSTOMER_TYPE_LABELS = {
    "enthusiast": "Enthusiast",
    "professional": "Professional",
}


@dataclass(frozen=True)
class CustomerSnapshot:
    id: str
    tags: List[str] = field(default_factory=list)
    customer_type: Optional[str] = None
    visit_count: int = 0


@dataclass(frozen=True)
class RewardRule:
    applies_to: str  # order | product | service
    discount_type: str  # percentage | flat | free
    discount_value: Decimal = Decimal("0")
    max_discount: Optional[Decimal] = None
    target_product_id: Optional[str] = None
    target_service_id: Optional[str] = None
    target_product_category_id: Optional[str] = None
    target_service_category_id: Optional[str] = None


@dataclass(frozen=True)
class CouponRules:
    id: str
    code: str
    name: Optional[str] = None
    status: str = "active"
    auto_apply: bool = False
    customer_id: Optional[str] = None
    customer_tags: List[str] = field(default_factory=list)
    tag_match_mode: str = "any"
    target_customer_type: Optional[str] = None
    condition_logic: str = "and"
    requires_product_ids: List[str] = field(default_factory=list)
    requires_service_ids: List[str] = field(default_factory=list)
    requires_product_category_ids: List[str] = field(default_factory=list)
    requires_service_category_ids: List[str] = field(default_factory=list)
    min_purchase: Optional[Decimal] = None
    max_customer_visits: Optional[int] = None
    is_single_use: bool = False
    max_uses: Optional[int] = None
    use_count: int = 0
    expires_at: Optional[datetime] = None
    rewards: List[RewardRule] = field(default_factory=list)


@dataclass(frozen=True)
class TargetingResult:
    passed: bool
    warning: Optional[str] = None


@dataclass(frozen=True)
class ConditionsResult:
    passed: bool
    failed_conditions: List[str] = field(default_factory=list)
    missing_items: List[str] = field(default_factory=list)


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ─── Usage pre-filter ───────────────────────────────────────

def usage_block_reason(coupon: CouponRules, now: datetime) -> Optional[str]:
    """Why the coupon cannot be offered at all right now, or None."""
    if coupon.status != "active":
        return f"Coupon is {coupon.status}"
    if coupon.expires_at is not None and _as_utc(coupon.expires_at) <= _as_utc(now):
        return "Coupon has expired"
    if coupon.max_uses and coupon.use_count >= coupon.max_uses:
        return "Coupon usage limit reached"
    if coupon.is_single_use and coupon.use_count >= 1:
        return "Coupon has already been used"
    return None


def is_coupon_usable(coupon: CouponRules, now: datetime) -> bool:
    return usage_block_reason(coupon, now) is None


# ─── Targeting ──────────────────────────────────────────────

def _tags_match(required: Sequence[str], customer_tags: Sequence[str], mode: str) -> bool:
    if mode == "all":
        return all(tag in customer_tags for tag in required)
    return any(tag in customer_tags for tag in required)


def evaluate_targeting(
        coupon: CouponRules,
        customer: Optional[CustomerSnapshot],
        enforcement_mode: EnforcementMode,
) -> TargetingResult:
    """
    Personal assignment always blocks a different or anonymous customer.
    Tag and customer-type mismatches block in "hard" mode and only warn in
    "soft" mode.
    """
    if coupon.customer_id:
        if customer is None or str(coupon.customer_id) != str(customer.id):
            return TargetingResult(passed=False)

    warnings: List[str] = []

    if coupon.customer_tags:
        customer_tags = customer.tags if customer else []
        mode = coupon.tag_match_mode or "any"
        if not _tags_match(coupon.customer_tags, customer_tags, mode):
            if enforcement_mode == "hard":
                return TargetingResult(passed=False)
            joiner = " and " if mode == "all" else " or "
            warnings.append(
                f"This coupon is intended for customers tagged {joiner.join(coupon.customer_tags)}"
            )

    if coupon.target_customer_type:
        customer_type = customer.customer_type if customer else None
        if customer_type != coupon.target_customer_type:
            if enforcement_mode == "hard":
                return TargetingResult(passed=False)
            label = CUSTOMER_TYPE_LABELS.get(coupon.target_customer_type, coupon.target_customer_type)
            warnings.append(f"This coupon is intended for {label} customers")

    return TargetingResult(passed=True, warning="; ".join(warnings) if warnings else None)


# ─── Conditions ─────────────────────────────────────────────

def _cart_has(items: Sequence[CartItem], item_type: str, attr: str, wanted: Sequence[str]) -> bool:
    wanted_ids = {str(w) for w in wanted}
    return any(
        item.item_type == item_type and getattr(item, attr) and str(getattr(item, attr)) in wanted_ids
        for item in items
    )


def evaluate_conditions(
        coupon: CouponRules,
        items: Sequence[CartItem],
        subtotal: Decimal,
        customer: Optional[CustomerSnapshot],
) -> ConditionsResult:
    """Evaluate each configured restriction and combine per condition_logic"""
    # (met, description, missing item hint)
    conditions: List[tuple] = []

    if coupon.requires_product_ids:
        met = _cart_has(items, "product", "product_id", coupon.requires_product_ids)
        conditions.append((met, "required product", "product"))

    if coupon.requires_service_ids:
        met = _cart_has(items, "service", "service_id", coupon.requires_service_ids)
        conditions.append((met, "required service", "service"))

    if coupon.requires_product_category_ids:
        met = _cart_has(items, "product", "category_id", coupon.requires_product_category_ids)
        conditions.append((met, "product from required category", "product_category"))

    if coupon.requires_service_category_ids:
        met = _cart_has(items, "service", "category_id", coupon.requires_service_category_ids)
        conditions.append((met, "service from required category", "service_category"))

    if coupon.min_purchase is not None:
        minimum = to_money(coupon.min_purchase)
        conditions.append((Decimal(subtotal) >= minimum, f"minimum purchase of ${minimum:.2f}", None))

    if coupon.max_customer_visits is not None:
        met = customer is not None and customer.visit_count <= coupon.max_customer_visits
        conditions.append((met, "visit count limit", None))

    if not conditions:
        return ConditionsResult(passed=True)

    if coupon.condition_logic in ("or", "any"):
        passed = any(met for met, _, _ in conditions)
    else:
        passed = all(met for met, _, _ in conditions)

    return ConditionsResult(
        passed=passed,
        failed_conditions=[desc for met, desc, _ in conditions if not met],
        missing_items=[hint for met, _, hint in conditions if not met and hint],
    )


# ─── Discount ───────────────────────────────────────────────

def _reward_amount(reward: RewardRule, base: Decimal) -> Decimal:
    if reward.discount_type == "percentage":
        amount = to_money(base * Decimal(reward.discount_value) / Decimal(100))
        if reward.max_discount is not None:
            amount = min(amount, to_money(reward.max_discount))
        return amount
    if reward.discount_type == "flat":
        return min(to_money(reward.discount_value), base)
    if reward.discount_type == "free":
        return base
    return Decimal("0")


def _matching_items(items: Sequence[CartItem], item_type: str,
                    target_id: Optional[str], target_category_id: Optional[str]) -> List[CartItem]:
    id_attr = "product_id" if item_type == "product" else "service_id"
    matched = []
    for item in items:
        if item.item_type != item_type:
            continue
        if target_id:
            if str(getattr(item, id_attr)) == str(target_id):
                matched.append(item)
        elif target_category_id:
            if str(item.category_id) == str(target_category_id):
                matched.append(item)
        else:
            matched.append(item)
    return matched


def reward_base(reward: RewardRule, items: Sequence[CartItem], subtotal: Decimal) -> Decimal:
    """Amount the reward applies to: whole order, or the matched line items."""
    if reward.applies_to == "order":
        return to_money(subtotal)

    if reward.applies_to == "product":
        matching = _matching_items(items, "product", reward.target_product_id,
                                   reward.target_product_category_id)
    elif reward.applies_to == "service":
        matching = _matching_items(items, "service", reward.target_service_id,
                                   reward.target_service_category_id)
    else:
        return Decimal("0")

    return to_money(sum((Decimal(i.unit_price) * i.quantity for i in matching), Decimal("0")))


def calculate_discount(rewards: Sequence[RewardRule], items: Sequence[CartItem], subtotal: Decimal) -> Decimal:
    """
    Sum of every reward's discount. Rewards stack additively; flooring the
    final transaction total at zero is left to whoever applies the discount.
    """
    total = Decimal("0")
    for reward in rewards:
        base = reward_base(reward, items, subtotal)
        if base <= 0:
            continue
        total += to_money(_reward_amount(reward, base))
    return to_money(total)


def describe_rewards(rewards: Sequence[RewardRule]) -> str:
    parts = []
    for r in rewards:
        if r.discount_type == "free":
            parts.append("Free item")
        elif r.discount_type == "percentage":
            parts.append(f"{Decimal(r.discount_value).normalize():f}% off")
        else:
            parts.append(f"${to_money(r.discount_value):.2f} off")
    return " + ".join(parts)
