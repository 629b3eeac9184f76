# cakeshop/order/routes.py
from flask import request, jsonify, current_app

from . import bp
from ..model import BookingDraft
from ..services import order_service
from ..utils.api import api_ok
from ..utils.net import json_body
from ..utils.decorators import current_user, role_required


@bp.post("")
def create_order():
    user = current_user()
    order = order_service.create_order(BookingDraft.from_api(json_body()), user)
    return jsonify(api_ok("Order booked successfully", data={"order": order.as_api()})), 201


@bp.get("")
def list_orders():
    orders = order_service.list_orders(
        current_user(),
        status=request.args.get("status"),
        phone=request.args.get("phone"),
    )
    return jsonify(api_ok("Orders fetched", data={"orders": [o.as_api() for o in orders], "count": len(orders)}))


@bp.get("/<int:order_id>")
def get_order(order_id):
    order = order_service.get_order(order_id, current_user())
    return jsonify(api_ok("Order fetched", data={"order": order.as_api()}))


@bp.patch("/<int:order_id>")
def modify_order(order_id):
    user = current_user()
    order = order_service.modify_order(order_service.get_order(order_id, user), json_body(), user)
    return jsonify(api_ok("Order updated", data={"order": order.as_api()}))


@bp.post("/<int:order_id>/cancel")
def cancel_order(order_id):
    user = current_user()
    order = order_service.cancel_order(order_service.get_order(order_id, user), user)
    return jsonify(api_ok("Order cancelled", data={"order": order.as_api()}))


@bp.post("/<int:order_id>/status")
@role_required("admin", message="Only admins can update order status")
def advance_status(order_id):
    admin = current_user()
    data = json_body()
    order = order_service.advance_status(
        order_service.get_order(order_id, admin),
        data.get("status"),
        admin,
        admin_message=data.get("adminMessage"),
    )
    return jsonify(api_ok("Order status updated", data={"order": order.as_api()}))


@bp.post("/<int:order_id>/review")
def review_order(order_id):
    user = current_user()
    data = json_body()
    order = order_service.get_order(order_id, user)
    if user.is_admin and "rating" in data and data["rating"] is None:
        # explicit null from an admin clears the review
        order = order_service.remove_review(order, user)
        return jsonify(api_ok("Review removed", data={"order": order.as_api()}))
    order = order_service.attach_review(
        order,
        data.get("rating"),
        data.get("review"),
        user,
        classifier=current_app.extensions["sentiment_classifier"],
    )
    return jsonify(api_ok("Thanks for your feedback", data={"order": order.as_api()}))


@bp.post("/<int:order_id>/reorder")
def reorder(order_id):
    user = current_user()
    draft = order_service.reorder(order_service.get_order(order_id, user), user)
    return jsonify(api_ok("Draft ready", data={"draft": draft.as_api()}))


@bp.delete("/<int:order_id>")
@role_required("admin", message="Only admins can delete orders")
def delete_order(order_id):
    admin = current_user()
    order_service.delete_order(order_service.get_order(order_id, admin), admin)
    return jsonify(api_ok("Order deleted", data={"id": order_id}))


@bp.get("/reviews")
@role_required("admin", message="Only admins can list reviews")
def list_reviews():
    orders = order_service.list_reviews(current_user())
    return jsonify(api_ok("Reviews fetched", data={"reviews": [o.as_api() for o in orders], "count": len(orders)}))


@bp.delete("/<int:order_id>/review")
@role_required("admin", message="Only admins can remove reviews")
def remove_review(order_id):
    admin = current_user()
    order = order_service.remove_review(order_service.get_order(order_id, admin), admin)
    return jsonify(api_ok("Review removed", data={"order": order.as_api()}))
