from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from cakeshop.errors import AuthorizationError, CouponAlreadyUsed, CouponExpired, NotFoundError
from cakeshop.services import pricing_service as pricing

NOW = datetime(2026, 10, 19, 12, 0, 0)


def _coupon(**kw):
    values = dict(code="SAVE10", user_id=1, discount_percent=10, is_used=False, expires_at=None)
    values.update(kw)
    return SimpleNamespace(**values)


def test_reference_quote():
    q = pricing.quote(1000, 3, "delivery", discount_percent=10)
    assert q.base_price == Decimal("3000")
    assert q.delivery_charge == Decimal("50")
    assert q.discount_amount == Decimal("300")
    assert q.total == Decimal("2750")
    assert q.as_api() == {"basePrice": 3000, "deliveryCharge": 50, "discountAmount": 300, "total": 2750}


@pytest.mark.parametrize("size", pricing.SIZES)
@pytest.mark.parametrize("delivery_type, charge", [("pickup", 0), ("delivery", 50)])
def test_total_formula_across_sizes(size, delivery_type, charge):
    q = pricing.quote(850, size, delivery_type, discount_percent=15)
    discount = (Decimal(850) * size * 15 / 100).to_integral_value(rounding="ROUND_FLOOR")
    assert q.total == Decimal(850) * size + charge - discount


def test_discount_is_floored():
    # 655 * 3 = 1965; 15% = 294.75
    assert pricing.percent_discount(1965, 15) == Decimal("294")


def test_discount_applies_to_base_price_only():
    q = pricing.quote(500, 2, "delivery", discount_percent=100)
    assert q.discount_amount == Decimal("1000")
    assert q.total == Decimal("50")


def test_total_never_negative():
    assert pricing.total(100, 0, 500) == Decimal("0")


def test_no_coupon_means_no_discount():
    assert pricing.discount_amount(3000) == Decimal("0")
    assert pricing.quote(1000, 2, "pickup").discount_amount == Decimal("0")


def test_delivery_charge_only_for_delivery():
    assert pricing.delivery_charge("delivery") == Decimal("50")
    assert pricing.delivery_charge("pickup") == Decimal("0")


def test_validate_coupon_accepts_owner():
    c = _coupon(expires_at=NOW + timedelta(days=1))
    assert pricing.validate_coupon(c, 1, NOW) is c


def test_validate_coupon_missing():
    with pytest.raises(NotFoundError):
        pricing.validate_coupon(None, 1, NOW)


def test_validate_coupon_other_user():
    with pytest.raises(AuthorizationError):
        pricing.validate_coupon(_coupon(user_id=2), 1, NOW)


def test_validate_coupon_used():
    with pytest.raises(CouponAlreadyUsed):
        pricing.validate_coupon(_coupon(is_used=True), 1, NOW)


def test_validate_coupon_expired():
    with pytest.raises(CouponExpired):
        pricing.validate_coupon(_coupon(expires_at=NOW - timedelta(seconds=1)), 1, NOW)


def test_ownership_checked_before_usage():
    with pytest.raises(AuthorizationError):
        pricing.validate_coupon(_coupon(user_id=2, is_used=True), 1, NOW)
