# cakeshop/model/product.py
from sqlalchemy.sql import func

from ..extensions import db
from ..utils.money import to_number


class Product(db.Model):
    __tablename__ = "product"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)  # per kg
    specification = db.Column(db.Text, nullable=False, default="")
    tag = db.Column(db.String(64), default="")
    image_url = db.Column(db.String(1024))

    category_id = db.Column(db.Integer, db.ForeignKey("category.id"), nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self, rating=None):
        """`rating` is an (average, count) pair; see catalog_service.ratings_for."""
        average, count = rating or (0, 0)
        return {
            "id": self.id,
            "name": self.name,
            "price": to_number(self.price),
            "specification": self.specification,
            "tag": self.tag or "",
            "image_url": self.image_url,
            "category": self.category.name if self.category else None,
            "averageRating": average,
            "totalRatings": count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
