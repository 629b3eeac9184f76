# cakeshop/services/notification_service.py
"""
In-app notifications for order events. `notify_*` only add rows to the
session; the caller's transaction commits them with the order change.
"""
import logging

from ..errors import AuthorizationError, NotFoundError
from ..extensions import db
from ..model import Notification, User

logger = logging.getLogger(__name__)


def notify(user_id, message, order_id=None) -> Notification:
    note = Notification(user_id=user_id, message=message[:255], order_id=order_id)
    db.session.add(note)
    return note


def notify_order_created(order) -> None:
    """Every admin hears about a new order."""
    product = order.product.name if order.product else f"product {order.product_id}"
    message = (f"New order #{order.id}: {product}, {order.size} kg, "
               f"{order.delivery_type} on {order.delivery_date} {order.delivery_time}")
    admins = User.query.filter_by(role="admin").all()
    for admin in admins:
        notify(admin.id, message, order.id)
    logger.info("order %s: notified %d admin(s)", order.id, len(admins))


def notify_order_delivered(order) -> None:
    product = order.product.name if order.product else "Your order"
    notify(order.user_id, f"Order #{order.id} delivered: {product}. Enjoy, and tell us how it was!", order.id)


def list_notifications(user, unread_only=False):
    q = Notification.query.filter_by(user_id=user.id)
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))
    return q.order_by(Notification.id.desc()).all()


def mark_read(note_id, user) -> Notification:
    note = db.session.get(Notification, note_id)
    if not note:
        raise NotFoundError("Notification not found")
    if note.user_id != user.id:
        raise AuthorizationError("You can only read your own notifications")
    note.is_read = True
    db.session.commit()
    return note
