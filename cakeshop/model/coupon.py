# --- cakeshop/model/coupon.py ---

from sqlalchemy.sql import func

from ..extensions import db


class Coupon(db.Model):
    """Single-owner, single-use percentage coupon."""
    __tablename__ = "coupon"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)  # stored upper-case
    message = db.Column(db.String(255), nullable=False)
    discount_percent = db.Column(db.Integer, nullable=False)  # 1..100

    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)

    is_used = db.Column(db.Boolean, nullable=False, default=False, index=True)
    used_at = db.Column(db.DateTime, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=True)  # None means no expiry

    created_at = db.Column(db.DateTime, server_default=func.now())

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "message": self.message,
            "discountPercent": self.discount_percent,
            "userId": self.user_id,
            "isUsed": self.is_used,
            "usedAt": self.used_at.isoformat() if self.used_at else None,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
