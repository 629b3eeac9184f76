# cakeshop/services/pricing_service.py
"""
Pricing and coupon rules.

Everything here is pure: no session access, no writes. Coupon consumption
happens in order_service at order-creation time.

    total = price_per_kg * size + delivery_charge - discount   (never below 0)
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..errors import AuthorizationError, CouponAlreadyUsed, CouponExpired, NotFoundError
from ..model.order import DeliveryType
from ..utils.api import utcnow
from ..utils.money import D, Money, floor_money, to_number

SIZES = tuple(range(2, 13))  # kg
DELIVERY_CHARGE = D(50)


def base_price(price_per_kg, size) -> Money:
    return D(price_per_kg) * D(size)


def delivery_charge(delivery_type) -> Money:
    return DELIVERY_CHARGE if delivery_type == DeliveryType.DELIVERY.value else D(0)


def validate_coupon(coupon, user_id, now: datetime | None = None):
    """Return the coupon when `user_id` may redeem it now, raise otherwise."""
    if coupon is None:
        raise NotFoundError("Invalid coupon code")
    if coupon.user_id != user_id:
        raise AuthorizationError("This coupon belongs to another user")
    if coupon.is_used:
        raise CouponAlreadyUsed()
    now = now or utcnow()
    if coupon.expires_at is not None and coupon.expires_at < now:
        raise CouponExpired()
    return coupon


def percent_discount(base, percent) -> Money:
    if not percent:
        return D(0)
    return floor_money(D(base) * D(percent) / D(100))


def discount_amount(base, coupon=None) -> Money:
    """Discount for an already validated coupon; zero without one."""
    if coupon is None:
        return D(0)
    return percent_discount(base, coupon.discount_percent)


def total(base, charge, discount) -> Money:
    return max(D(0), D(base) + D(charge) - D(discount))


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Money
    delivery_charge: Money
    discount_amount: Money
    total: Money

    def as_api(self):
        return {
            "basePrice": to_number(self.base_price),
            "deliveryCharge": to_number(self.delivery_charge),
            "discountAmount": to_number(self.discount_amount),
            "total": to_number(self.total),
        }


def quote(price_per_kg, size, delivery_type, discount_percent=None) -> PriceBreakdown:
    base = base_price(price_per_kg, size)
    charge = delivery_charge(delivery_type)
    discount = percent_discount(base, discount_percent)
    return PriceBreakdown(base, charge, discount, total(base, charge, discount))
