# cakeshop/services/coupon_service.py
import logging

from sqlalchemy import update

from ..errors import CouponAlreadyUsed, NotFoundError, ValidationError
from ..extensions import db
from ..model import Coupon, User
from ..utils.api import parse_iso8601, utcnow
from .pricing_service import validate_coupon

logger = logging.getLogger(__name__)


def normalize_code(code) -> str:
    return (code or "").strip().upper()


def find_coupon(code):
    code = normalize_code(code)
    if not code:
        return None
    return Coupon.query.filter(Coupon.code == code).first()


def validate_code(code, user_id, now=None) -> Coupon:
    """ValidateCoupon(code, userId): lookup plus the pricing rules."""
    if not normalize_code(code):
        raise ValidationError("Coupon code is required", field="code")
    return validate_coupon(find_coupon(code), user_id, now)


def consume_coupon(coupon: Coupon, now=None) -> None:
    """
    Flip is_used inside the caller's transaction, but only if the row is
    still unused. Losing the race raises CouponAlreadyUsed; the caller
    rolls back.
    """
    now = now or utcnow()
    result = db.session.execute(
        update(Coupon)
        .where(Coupon.id == coupon.id, Coupon.is_used.is_(False))
        .values(is_used=True, used_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning("coupon %s lost redemption race", coupon.code)
        raise CouponAlreadyUsed()


def create_coupon_from_payload(data: dict, admin: User) -> Coupon:
    code = normalize_code(data.get("code"))
    message = (data.get("message") or "").strip()
    if not code:
        raise ValidationError("code is required", field="code")
    if not message:
        raise ValidationError("message is required", field="message")

    percent = data.get("discountPercent")
    if isinstance(percent, bool):
        percent = None
    try:
        percent = int(percent)
    except (TypeError, ValueError):
        raise ValidationError("discountPercent must be an integer", field="discountPercent")
    if not 1 <= percent <= 100:
        raise ValidationError("discountPercent must be between 1 and 100", field="discountPercent")

    try:
        owner_id = int(data.get("userId"))
    except (TypeError, ValueError):
        raise ValidationError("userId is required", field="userId")
    if not db.session.get(User, owner_id):
        raise NotFoundError("Coupon owner not found")

    expires_at = parse_iso8601(data.get("expiresAt"))
    if data.get("expiresAt") and not expires_at:
        raise ValidationError("Invalid datetime format for expiresAt", field="expiresAt")

    if find_coupon(code):
        raise ValidationError("Coupon code already exists", field="code")

    c = Coupon(
        code=code,
        message=message,
        discount_percent=percent,
        user_id=owner_id,
        created_by=admin.id,
        expires_at=expires_at,
    )
    db.session.add(c)
    db.session.commit()
    logger.info("coupon %s created for user %s by admin %s", c.code, owner_id, admin.id)
    return c


def list_coupons(actor: User, user_id=None):
    q = Coupon.query
    if not actor.is_admin:
        q = q.filter(Coupon.user_id == actor.id)
    elif user_id is not None:
        q = q.filter(Coupon.user_id == user_id)
    return q.order_by(Coupon.id.desc()).all()


def delete_coupon(coupon_id: int) -> None:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise NotFoundError("Coupon not found")
    db.session.delete(c)
    db.session.commit()
