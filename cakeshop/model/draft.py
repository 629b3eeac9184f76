# cakeshop/model/draft.py
"""
BookingDraft: order fields collected before submission. Never persisted;
it only becomes an Order when order_service.create_order succeeds.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from decimal import Decimal, InvalidOperation

from ..errors import ValidationError

# JSON key -> attribute
_JSON_KEYS = {
    "productId": "product_id",
    "productName": "product_name",
    "pricePerKg": "price_per_kg",
    "area": "area",
    "size": "size",
    "deliveryType": "delivery_type",
    "instruction": "instruction",
    "deliveryDate": "delivery_date",
    "deliveryTime": "delivery_time",
    "address": "address",
    "phone": "phone",
    "city": "city",
    "customizeImage": "customize_image",
    "couponCode": "coupon_code",
    "discountPercent": "discount_percent",
}
_ATTRS = {v: k for k, v in _JSON_KEYS.items()}

# numeric attributes and the type each is read as
_NUMERIC = {
    "product_id": int,
    "size": int,
    "price_per_kg": float,
    "discount_percent": int,
}


def _read_number(attr, value):
    if value is None or value == "":
        return None
    cast = _NUMERIC[attr]
    if not isinstance(value, bool):
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            number = None
        if number is not None and number.is_finite() and (cast is float or number == number.to_integral_value()):
            return cast(number)
    raise ValidationError(f"{_ATTRS[attr]} must be a number", field=_ATTRS[attr])


@dataclass(frozen=True)
class BookingDraft:
    product_id: int | None = None
    product_name: str | None = None
    price_per_kg: float | None = None  # catalog price shown in the summary
    area: str | None = None
    size: int | None = None
    delivery_type: str | None = None
    instruction: str | None = None
    delivery_date: str | None = None
    delivery_time: str | None = None
    address: str | None = None
    phone: str | None = None
    city: str | None = None
    customize_image: str | None = None
    coupon_code: str | None = None
    discount_percent: int | None = None

    def update(self, **changes) -> "BookingDraft":
        return replace(self, **changes)

    def as_api(self):
        return {_ATTRS[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_api(cls, data: dict | None) -> "BookingDraft":
        """Read a client-supplied draft; malformed numbers raise ValidationError."""
        data = data or {}
        if not isinstance(data, dict):
            raise ValidationError("draft must be an object", field="draft")
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            attr = _JSON_KEYS.get(key, key)
            if attr in _NUMERIC:
                kwargs[attr] = _read_number(attr, value)
            elif attr in known:
                kwargs[attr] = value
        return cls(**kwargs)
