from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from autospa.core.exceptions import NotFoundError, ValidationError
from autospa.schemas.coupons import CartItem
from autospa.services.coupon.promotion_service import PromotionService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

WASH = CartItem(item_type="service", service_id="svc-wash", category_id="cat-exterior", unit_price=Decimal("100"))
CART = [WASH]
SUBTOTAL = Decimal("100")


@pytest.fixture
def alice(make_customer):
    return make_customer(first_name="Alice", tags=["regular"], customer_type="enthusiast", visit_count=3)


@pytest.fixture
def bob(make_customer):
    return make_customer(first_name="Bob", tags=["vip"], customer_type="professional")


def available(db, customer=None, mode="soft", items=CART, subtotal=SUBTOTAL, **kwargs):
    return PromotionService.get_available_promotions(
        db, customer.id if customer else None, items, subtotal, mode, now=NOW, **kwargs
    )


def codes(promotions):
    return [p.code for p in promotions]


def all_codes(response):
    return codes(response.for_you) + codes(response.eligible) + codes(response.upsell)


# ─── available promotions ───────────────────────────────────

@pytest.mark.parametrize("mode", ["soft", "hard"])
def test_personal_coupon_only_reaches_its_customer(db, make_coupon, alice, bob, mode):
    make_coupon("ALICE10", customer_id=alice.id)

    assert codes(available(db, alice, mode).for_you) == ["ALICE10"]
    assert all_codes(available(db, bob, mode)) == []
    assert all_codes(available(db, None, mode)) == []


def test_personal_coupon_lists_missing_items(db, make_coupon, alice):
    make_coupon("ALICEINT", customer_id=alice.id, requires_service_ids=["svc-interior"])

    promotion = available(db, alice).for_you[0]

    assert promotion.missing_items == ["service"]


def test_tag_mismatch_warns_in_soft_mode(db, make_coupon, alice):
    make_coupon("VIP", customer_tags=["vip"], tag_match_mode="any")

    response = available(db, alice, "soft")

    assert codes(response.eligible) == ["VIP"]
    assert response.eligible[0].warning == "This coupon is intended for customers tagged vip"
    assert all_codes(available(db, alice, "hard")) == []


def test_eligible_sorted_by_discount(db, make_coupon):
    make_coupon("FIVE")
    make_coupon("TENPCT", rewards=[{"applies_to": "order", "discount_type": "percentage",
                                    "discount_value": Decimal("10")}])
    make_coupon("FREEWASH", rewards=[{"applies_to": "service", "discount_type": "free"}])

    response = available(db)

    assert codes(response.eligible) == ["FREEWASH", "TENPCT", "FIVE"]
    assert [p.discount_amount for p in response.eligible] == [100.0, 10.0, 5.0]
    assert response.eligible[0].description == "Free item"


def test_upsell_needs_fewer_than_four_failed_conditions(db, make_coupon):
    make_coupon("INTERIOR", requires_service_ids=["svc-interior"])
    make_coupon("THREE", requires_product_ids=["prd-wax"], requires_service_ids=["svc-interior"],
                requires_product_category_ids=["cat-care"])
    make_coupon("FOUR", requires_product_ids=["prd-wax"], requires_service_ids=["svc-interior"],
                requires_product_category_ids=["cat-care"], requires_service_category_ids=["cat-interior"])

    response = available(db)

    assert response.eligible == []
    assert sorted(codes(response.upsell)) == ["INTERIOR", "THREE"]
    interior = next(p for p in response.upsell if p.code == "INTERIOR")
    assert interior.missing_items == ["service"]

    assert codes(available(db, upsell_threshold=1).upsell) == []


def test_unusable_coupons_are_skipped(db, make_coupon):
    make_coupon("DRAFT", status="draft")
    make_coupon("OLD", expires_at=NOW - timedelta(days=1))
    make_coupon("USED", is_single_use=True, use_count=1)
    make_coupon("MAXED", max_uses=3, use_count=3)
    make_coupon("EMPTY", rewards=[])
    make_coupon("GOOD", expires_at=NOW + timedelta(days=1))

    assert all_codes(available(db)) == ["GOOD"]


def test_unknown_customer_is_anonymous(db, make_coupon, make_customer):
    make_coupon("PRO", target_customer_type="professional")
    ghost = make_customer()
    ghost_id = ghost.id
    db.delete(ghost)
    db.commit()

    response = PromotionService.get_available_promotions(db, ghost_id, CART, SUBTOTAL, "soft", now=NOW)

    assert response.eligible[0].warning == "This coupon is intended for Professional customers"


# ─── validate code ──────────────────────────────────────────

def validate(db, code, customer=None, mode="soft", items=CART, subtotal=SUBTOTAL):
    return PromotionService.validate_code(
        db, code, items, subtotal, customer.id if customer else None, mode, now=NOW
    )


def test_validate_returns_the_discount(db, make_coupon):
    make_coupon("SAVE5")

    result = validate(db, "  save5 ")

    assert result.code == "SAVE5"
    assert result.discount == 5.0
    assert result.description == "$5.00 off"
    assert result.warning is None


def test_validate_unknown_code(db):
    with pytest.raises(NotFoundError) as exc:
        validate(db, "NOPE")
    assert exc.value.message == "Invalid coupon code"


def test_validate_usage_limits(db, make_coupon):
    make_coupon("OLD", expires_at=NOW - timedelta(minutes=1))
    make_coupon("OFF", status="disabled")

    with pytest.raises(ValidationError) as exc:
        validate(db, "OLD")
    assert exc.value.message == "Coupon has expired"

    with pytest.raises(ValidationError) as exc:
        validate(db, "OFF")
    assert exc.value.message == "Coupon is disabled"


def test_validate_personal_coupon(db, make_coupon, alice, bob):
    make_coupon("ALICE10", customer_id=alice.id)

    assert validate(db, "ALICE10", alice).discount == 5.0
    for customer in (bob, None):
        with pytest.raises(ValidationError) as exc:
            validate(db, "ALICE10", customer)
        assert exc.value.message == "This coupon is assigned to a different customer"


def test_validate_targeting_by_mode(db, make_coupon, alice):
    make_coupon("PRO", target_customer_type="professional")

    assert validate(db, "PRO", alice, "soft").warning == "This coupon is intended for Professional customers"
    with pytest.raises(ValidationError) as exc:
        validate(db, "PRO", alice, "hard")
    assert exc.value.message == "This coupon is not available for this customer"


def test_validate_conditions(db, make_coupon):
    make_coupon("BIG", min_purchase=Decimal("150"))

    with pytest.raises(ValidationError) as exc:
        validate(db, "BIG")

    assert exc.value.message == "Coupon requirements not met: minimum purchase of $150.00"
    assert exc.value.details["failed_conditions"] == ["minimum purchase of $150.00"]


def test_validate_coupon_without_rewards(db, make_coupon):
    make_coupon("EMPTY", rewards=[])

    with pytest.raises(ValidationError) as exc:
        validate(db, "EMPTY")
    assert exc.value.message == "Coupon has no rewards configured"
