# cakeshop/assistant/routes.py
"""
Search box and booking conversation.

The server keeps no conversation state: every booking call receives the
current `state` and answers with the next one.
"""
from flask import jsonify, current_app

from . import bp
from ..model import BookingDraft
from ..services import booking_dialogue as dialogue
from ..services import catalog_service, coupon_service, order_service
from ..services.booking_dialogue import DialogueState
from ..utils.api import api_ok, api_error
from ..utils.net import json_body
from ..utils.decorators import current_user


def _reply(reply, status=200):
    """Dialogue errors are answers, not failures: the state comes back either way."""
    if reply.ok:
        return jsonify(api_ok(reply.message, data=reply.as_api())), status
    return jsonify(api_error(reply.error, data=reply.as_api())), 422


@bp.post("/search")
def search():
    data = json_body()
    result = dialogue.discover(
        current_app.extensions["query_dispatcher"],
        data.get("message"),
        sort=data.get("sort"),
        request_id=data.get("requestId"),
    )
    return jsonify(api_ok(result.reply, data=result.as_api()))


@bp.post("/booking/start")
def start_booking():
    current_user()
    product = catalog_service.get_product(json_body().get("productId"))
    return _reply(dialogue.start(product.id, product.name, product.price))


@bp.post("/booking/resume")
def resume_booking():
    current_user()
    return _reply(dialogue.resume(BookingDraft.from_api(json_body().get("draft"))))


@bp.post("/booking/advance")
def advance_booking():
    current_user()
    data = json_body()
    state = DialogueState.from_api(data.get("state"))
    return _reply(dialogue.advance(state, data.get("input")))


@bp.post("/booking/coupon")
def apply_coupon():
    user = current_user()
    data = json_body()
    state = DialogueState.from_api(data.get("state"))
    return _reply(dialogue.apply_coupon(state, data.get("code"), lambda code: coupon_service.validate_code(code, user.id)))


@bp.post("/booking/confirm")
def confirm_booking():
    current_user()
    return _reply(dialogue.confirm(DialogueState.from_api(json_body().get("state"))))


@bp.post("/booking/book")
def book():
    user = current_user()
    state = DialogueState.from_api(json_body().get("state"))
    reply = dialogue.book(state, lambda draft: order_service.create_order(draft, user))
    return _reply(reply, status=201)


@bp.post("/booking/abandon")
def abandon_booking():
    state = dialogue.abandon(DialogueState.from_api(json_body().get("state")))
    return jsonify(api_ok(dialogue.PROMPTS[state.step], data={"state": state.as_api()}))


@bp.post("/booking/expire")
def expire_booking():
    state = DialogueState.from_api(json_body().get("state"))
    state = dialogue.expire(state, display_seconds=current_app.config.get("BOOKING_DISPLAY_SECONDS", dialogue.DISPLAY_SECONDS))
    return jsonify(api_ok("OK", data={"state": state.as_api()}))
