# cakeshop/services/order_service.py
"""
Order lifecycle: creation, owner edits, cancellation, admin status moves,
reviews and reorders.

Status flow:

    pending  -> approved | rejected | cancelled
    approved -> preparing -> ready -> delivered

Every mutation either commits completely or rolls back; a failed coupon
check leaves both the coupon and the orders table untouched.
"""
import logging
from datetime import date

from flask import current_app
from sqlalchemy import func, or_

from ..errors import AuthorizationError, ExternalServiceError, NotFoundError, ValidationError
from ..extensions import db
from ..model import BookingDraft, DeliveryType, Order, OrderStatus, User
from ..utils.api import utcnow
from . import pricing_service as pricing
from .catalog_service import get_catalog_price, get_product
from .coupon_service import consume_coupon, find_coupon, normalize_code
from .notification_service import notify_order_created, notify_order_delivered
from .sentiment_service import NEUTRAL

logger = logging.getLogger(__name__)

TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.APPROVED, OrderStatus.REJECTED, OrderStatus.CANCELLED},
    OrderStatus.APPROVED: {OrderStatus.PREPARING},
    OrderStatus.PREPARING: {OrderStatus.READY},
    OrderStatus.READY: {OrderStatus.DELIVERED},
}

REVIEWABLE = {OrderStatus.APPROVED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.DELIVERED}
REORDERABLE = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

REQUIRED_FIELDS = (
    "product_id", "area", "size", "delivery_type",
    "delivery_date", "delivery_time", "address", "phone",
)
EDITABLE_FIELDS = {
    "phone": "phone",
    "address": "address",
    "deliveryDate": "delivery_date",
    "deliveryTime": "delivery_time",
    "deliveryType": "delivery_type",
    "area": "area",
    "size": "size",
    "instruction": "instruction",
}


def can_transition(current: OrderStatus, nxt: OrderStatus) -> bool:
    return nxt in TRANSITIONS.get(current, set())


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"unknown status '{value}'", field="status")


# ---- field checks shared with the booking dialogue -------------------------

def check_size(value) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError("size must be a whole number of kg", field="size")
    try:
        size = int(value)
    except (TypeError, ValueError):
        raise ValidationError("size must be a whole number of kg", field="size")
    if size not in pricing.SIZES:
        raise ValidationError(f"size must be between {pricing.SIZES[0]} and {pricing.SIZES[-1]} kg", field="size")
    return size


def check_delivery_type(value) -> str:
    value = (value or "").strip().lower() if isinstance(value, str) else value
    if value not in {t.value for t in DeliveryType}:
        raise ValidationError("deliveryType must be 'pickup' or 'delivery'", field="deliveryType")
    return value


def check_text(value, field) -> str:
    value = value.strip() if isinstance(value, str) else ""
    if not value:
        raise ValidationError(f"{field} is required", field=field)
    return value


def check_date(value, today: date | None = None) -> str:
    try:
        d = date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError("deliveryDate must be YYYY-MM-DD", field="deliveryDate")
    if d < (today or date.today()):
        raise ValidationError("deliveryDate cannot be in the past", field="deliveryDate")
    return d.isoformat()


def check_time(value) -> str:
    value = str(value or "").strip()
    try:
        hours, minutes = (int(part) for part in value.split(":"))
    except ValueError:
        raise ValidationError("deliveryTime must be HH:MM", field="deliveryTime")
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValidationError("deliveryTime must be HH:MM", field="deliveryTime")
    return f"{hours:02d}:{minutes:02d}"


def _require_owner(order: Order, actor: User, action: str):
    if order.user_id != actor.id:
        raise AuthorizationError(f"You can only {action} your own orders")


# ---- queries ---------------------------------------------------------------

def get_order(order_id, actor: User) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    if not actor.is_admin and order.user_id != actor.id:
        raise AuthorizationError("You can only view your own orders")
    return order


def list_orders(actor: User, status=None, phone=None):
    """ListOrders(userId); admins see every order and may filter."""
    q = Order.query
    if not actor.is_admin:
        q = q.filter(Order.user_id == actor.id)
    if status:
        q = q.filter(Order.status == parse_status(status).value)
    if phone and actor.is_admin:
        q = q.filter(Order.phone == phone)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


# ---- mutations -------------------------------------------------------------

def create_order(draft: BookingDraft, user: User, now=None, today: date | None = None) -> Order:
    """
    CreateOrder: validate the draft, price it against the current catalog,
    redeem the coupon (if any) and persist a pending order, all in one
    transaction.
    """
    for name in REQUIRED_FIELDS:
        value = getattr(draft, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"Missing required field: {name}", field=name)

    size = check_size(draft.size)
    delivery_type = check_delivery_type(draft.delivery_type)
    delivery_date = check_date(draft.delivery_date, today)
    delivery_time = check_time(draft.delivery_time)
    product = get_product(draft.product_id)

    now = now or utcnow()
    price_per_kg = get_catalog_price(product.id)
    base = pricing.base_price(price_per_kg, size)
    charge = pricing.delivery_charge(delivery_type)

    coupon = None
    code = normalize_code(draft.coupon_code)
    if code:
        coupon = pricing.validate_coupon(find_coupon(code), user.id, now)
    discount = pricing.discount_amount(base, coupon)

    order = Order(
        user_id=user.id,
        product_id=product.id,
        status=OrderStatus.PENDING.value,
        size=size,
        delivery_type=delivery_type,
        delivery_date=delivery_date,
        delivery_time=delivery_time,
        city=(draft.city or "").strip() or current_app.config.get("DEFAULT_CITY", "Lucknow"),
        area=check_text(draft.area, "area"),
        address=check_text(draft.address, "address"),
        phone=check_text(draft.phone, "phone"),
        instruction=(draft.instruction or "").strip(),
        customize_image=draft.customize_image or "",
        original_price=price_per_kg,
        size_multiplier=size,
        delivery_charge=charge,
        discount_amount=discount,
        coupon_code=code or None,
        total_price=pricing.total(base, charge, discount),
    )
    try:
        db.session.add(order)
        if coupon is not None:
            consume_coupon(coupon, now)
        db.session.flush()
        notify_order_created(order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("order %s created for user %s (total=%s, coupon=%s)",
                order.id, user.id, order.total_price, order.coupon_code)
    return order


def modify_order(order: Order, patch: dict, actor: User, today: date | None = None) -> Order:
    """
    Owner edits while pending. A new deliveryType re-derives the delivery
    charge; original_price and discount_amount stay as they were at creation.
    """
    _require_owner(order, actor, "modify")
    if order.order_status is not OrderStatus.PENDING:
        raise AuthorizationError("Only pending orders can be modified")

    if not isinstance(patch, dict):
        raise ValidationError("patch must be an object")
    unknown = set(patch) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"fields cannot be modified: {', '.join(sorted(unknown))}")
    if not patch:
        raise ValidationError("nothing to modify")

    changes = {}
    for key, value in patch.items():
        attr = EDITABLE_FIELDS[key]
        if attr == "size":
            changes[attr] = check_size(value)
        elif attr == "delivery_type":
            changes[attr] = check_delivery_type(value)
        elif attr == "delivery_date":
            changes[attr] = check_date(value, today)
        elif attr == "delivery_time":
            changes[attr] = check_time(value)
        elif attr == "instruction":
            changes[attr] = (value or "").strip()
        else:
            changes[attr] = check_text(value, key)

    try:
        for attr, value in changes.items():
            setattr(order, attr, value)
        if "delivery_type" in changes:
            order.delivery_charge = pricing.delivery_charge(order.delivery_type)
        if "size" in changes:
            order.size_multiplier = order.size
        base = pricing.base_price(order.original_price, order.size)
        order.total_price = pricing.total(base, order.delivery_charge, order.discount_amount)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return order


def cancel_order(order: Order, actor: User) -> Order:
    _require_owner(order, actor, "cancel")
    if order.order_status is OrderStatus.CANCELLED:
        return order
    if not can_transition(order.order_status, OrderStatus.CANCELLED):
        raise AuthorizationError("Only pending orders can be cancelled")
    order.status = OrderStatus.CANCELLED.value
    db.session.commit()
    logger.info("order %s cancelled by user %s", order.id, actor.id)
    return order


def advance_status(order: Order, next_status, admin: User, admin_message=None) -> Order:
    if not admin.is_admin:
        raise AuthorizationError("Only admins can update order status")
    if next_status is None and admin_message is None:
        raise ValidationError("status or adminMessage is required")

    if next_status is not None:
        nxt = parse_status(next_status)
        current = order.order_status
        if not can_transition(current, nxt):
            raise AuthorizationError(f"Cannot move order from {current.value} to {nxt.value}")
        order.status = nxt.value
        if nxt is OrderStatus.DELIVERED:
            notify_order_delivered(order)
        logger.info("order %s moved %s -> %s by admin %s", order.id, current.value, nxt.value, admin.id)
    if admin_message is not None:
        order.admin_message = str(admin_message)
    db.session.commit()
    return order


def attach_review(order: Order, rating, review_text, actor: User, classifier=None) -> Order:
    """
    Store rating and review, then classify the text. Classification runs
    after the review is committed; if the classifier fails, the review stays
    and sentiment is left unset.
    """
    if not actor.is_admin:
        _require_owner(order, actor, "review")
    if order.order_status not in REVIEWABLE:
        raise AuthorizationError(f"Orders that are {order.status} cannot be reviewed")
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be an integer between 1 and 5", field="rating")

    text = (review_text or "").strip()
    order.rating = rating
    order.review = text
    db.session.commit()

    if classifier is None:
        return order
    if not text:
        sentiment = NEUTRAL
    else:
        try:
            sentiment = classifier.classify(text)
        except ExternalServiceError as e:
            logger.warning("sentiment for order %s unavailable: %s", order.id, e.message)
            return order
    order.sentiment_label = sentiment.label
    order.sentiment_score = sentiment.score
    db.session.commit()
    return order


def remove_review(order: Order, admin: User) -> Order:
    """Moderation: clear rating, review text and sentiment."""
    if not admin.is_admin:
        raise AuthorizationError("Only admins can remove reviews")
    order.rating = None
    order.review = ""
    order.sentiment_label = None
    order.sentiment_score = None
    db.session.commit()
    logger.info("review on order %s removed by admin %s", order.id, admin.id)
    return order


def list_reviews(admin: User):
    if not admin.is_admin:
        raise AuthorizationError("Only admins can list reviews")
    q = Order.query.filter(or_(Order.rating.isnot(None), func.coalesce(Order.review, "") != ""))
    return q.order_by(Order.updated_at.desc(), Order.id.desc()).all()


def reorder(order: Order, actor: User, catalog_price=get_catalog_price) -> BookingDraft:
    """A fresh draft from a finished order, priced at today's catalog price."""
    _require_owner(order, actor, "reorder")
    if order.order_status not in REORDERABLE:
        raise AuthorizationError("Only delivered or cancelled orders can be reordered")
    price = catalog_price(order.product_id)
    return BookingDraft(
        product_id=order.product_id,
        product_name=order.product.name if order.product else None,
        price_per_kg=float(price),
        size=order.size,
        area=order.area,
        delivery_type=order.delivery_type,
        instruction=order.instruction or "",
        city=order.city,
    )


def delete_order(order: Order, admin: User) -> None:
    if not admin.is_admin:
        raise AuthorizationError("Only admins can delete orders")
    db.session.delete(order)
    db.session.commit()
    logger.info("order %s deleted by admin %s", order.id, admin.id)
