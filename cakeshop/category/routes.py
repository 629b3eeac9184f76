from flask import jsonify
from sqlalchemy import func

from . import bp
from ..errors import ValidationError
from ..extensions import db
from ..model import Category
from ..utils.api import api_ok
from ..utils.net import json_body
from ..utils.decorators import role_required


@bp.get("")
def list_categories():
    items = [c.as_dict() for c in Category.query.order_by(Category.name.asc()).all()]
    return jsonify(api_ok("Categories fetched", data={"categories": items}))


@bp.post("")
@role_required("admin", message="Only admins can create categories")
def create_category():
    data = json_body()
    name = (data.get("name") or "").strip().lower()
    if not name:
        raise ValidationError("name is required", field="name")
    if Category.query.filter(func.lower(Category.name) == name).first():
        raise ValidationError("Category already exists", field="name")
    c = Category(name=name)
    db.session.add(c)
    db.session.commit()
    return jsonify(api_ok("Category created", data={"category": c.as_dict()})), 201
