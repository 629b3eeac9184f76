# cakeshop/model/order.py
import enum

from sqlalchemy.sql import func

from ..extensions import db
from ..utils.money import to_number


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryType(str, enum.Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)

    # Booking details
    size = db.Column(db.Integer, nullable=False)  # kg
    delivery_type = db.Column(db.String(16), nullable=False)
    delivery_date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD
    delivery_time = db.Column(db.String(5), nullable=False)   # HH:MM
    city = db.Column(db.String(120), nullable=False, default="Lucknow")
    area = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(512), nullable=False)
    phone = db.Column(db.String(50), nullable=False)
    instruction = db.Column(db.Text, default="")
    customize_image = db.Column(db.String(1024), default="")

    # Money snapshot
    original_price = db.Column(db.Numeric(12, 2), nullable=False)  # catalog price per kg at order time
    size_multiplier = db.Column(db.Integer, nullable=False)
    delivery_charge = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    coupon_code = db.Column(db.String(64), nullable=True)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    # Feedback
    rating = db.Column(db.Integer, nullable=True)
    review = db.Column(db.Text, default="")
    sentiment_label = db.Column(db.String(16), nullable=True)
    sentiment_score = db.Column(db.Float, nullable=True)
    admin_message = db.Column(db.Text, default="")

    created_at = db.Column(db.DateTime, server_default=func.now(), index=True)
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    product = db.relationship("Product", lazy="joined")
    user = db.relationship("User", lazy="joined")

    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def as_api(self):
        sentiment = None
        if self.sentiment_label is not None:
            sentiment = {"label": self.sentiment_label, "score": self.sentiment_score}
        return {
            "id": self.id,
            "userId": self.user_id,
            "status": self.status,
            "product": {
                "id": self.product_id,
                "name": self.product.name if self.product else None,
            },
            "booking": {
                "size": self.size,
                "deliveryType": self.delivery_type,
                "deliveryDate": self.delivery_date,
                "deliveryTime": self.delivery_time,
                "city": self.city,
                "area": self.area,
                "address": self.address,
                "phone": self.phone,
                "instruction": self.instruction or "",
                "customizeImage": self.customize_image or "",
            },
            "money": {
                "originalPrice": to_number(self.original_price),
                "sizeMultiplier": self.size_multiplier,
                "deliveryCharge": to_number(self.delivery_charge),
                "discountAmount": to_number(self.discount_amount),
                "couponCode": self.coupon_code,
                "totalPrice": to_number(self.total_price),
            },
            "rating": self.rating,
            "review": self.review or "",
            "sentiment": sentiment,
            "adminMessage": self.admin_message or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
