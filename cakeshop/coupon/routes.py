# cakeshop/coupon/routes.py
from flask import request, jsonify

from . import bp
from ..services import coupon_service
from ..utils.api import api_ok
from ..utils.net import json_body
from ..utils.decorators import current_user, role_required


@bp.post("")
@role_required("admin", message="Only admins can create coupons")
def create_coupon():
    c = coupon_service.create_coupon_from_payload(json_body(), current_user())
    return jsonify(api_ok("Coupon created", data={"coupon": c.as_api()})), 201


@bp.get("")
def list_coupons():
    user_id = request.args.get("userId", type=int)
    coupons = coupon_service.list_coupons(current_user(), user_id=user_id)
    return jsonify(api_ok("Coupons fetched", data={"coupons": [c.as_api() for c in coupons]}))


@bp.delete("/<int:coupon_id>")
@role_required("admin", message="Only admins can delete coupons")
def delete_coupon(coupon_id):
    coupon_service.delete_coupon(coupon_id)
    return jsonify(api_ok("Coupon deleted", data={"id": coupon_id}))


@bp.post("/validate")
def validate_coupon():
    """Check a code for the caller without redeeming it."""
    data = json_body()
    c = coupon_service.validate_code(data.get("code"), current_user().id)
    return jsonify(api_ok("Coupon applied successfully", data={
        "coupon": {
            "code": c.code,
            "message": c.message,
            "discountPercent": c.discount_percent,
        }
    }))
