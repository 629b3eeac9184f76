# cakeshop/services/booking_dialogue.py
"""
Step-by-step booking conversation.

The whole conversation is a `DialogueState` value: the current step plus
the draft collected so far. Each function takes a state and returns a new
one; nothing is written to the database until `book` hands the draft to
order_service.create_order.

    area -> size -> deliveryType -> instruction -> date -> time
         -> address -> phone -> confirm -> booked
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta

from ..errors import ShopError, ValidationError
from ..model import BookingDraft, DeliveryType
from ..utils.api import parse_iso8601, utcnow
from ..utils.money import to_number
from . import pricing_service as pricing
from .order_service import check_date, check_delivery_type, check_size, check_text, check_time

logger = logging.getLogger(__name__)

DISPLAY_SECONDS = 5
SKIP_WORDS = {"skip", "none", "no", "-", "nothing"}


class Step(str, enum.Enum):
    IDLE = "idle"
    AREA = "area"
    SIZE = "size"
    DELIVERY_TYPE = "deliveryType"
    INSTRUCTION = "instruction"
    DATE = "date"
    TIME = "time"
    ADDRESS = "address"
    PHONE = "phone"
    CONFIRM = "confirm"
    BOOKED = "booked"


# input steps in order, with the draft attribute each one fills
FLOW = (
    (Step.AREA, "area"),
    (Step.SIZE, "size"),
    (Step.DELIVERY_TYPE, "delivery_type"),
    (Step.INSTRUCTION, "instruction"),
    (Step.DATE, "delivery_date"),
    (Step.TIME, "delivery_time"),
    (Step.ADDRESS, "address"),
    (Step.PHONE, "phone"),
)

PROMPTS = {
    Step.IDLE: "Hi! Tell me what you're looking for, or pick a product to book.",
    Step.AREA: "Please enter your area:",
    Step.SIZE: f"Please select the size in kg ({pricing.SIZES[0]}-{pricing.SIZES[-1]}):",
    Step.DELIVERY_TYPE: "Pickup or delivery?",
    Step.INSTRUCTION: "Any special instructions? (Optional - reply 'skip')",
    Step.DATE: "Which date? (YYYY-MM-DD)",
    Step.TIME: "What time? (HH:MM)",
    Step.ADDRESS: "Please enter your full address:",
    Step.PHONE: "Please enter your phone number:",
}


@dataclass(frozen=True)
class DialogueState:
    step: Step = Step.IDLE
    draft: BookingDraft = field(default_factory=BookingDraft)
    booked_at: datetime | None = None
    order_id: int | None = None

    def as_api(self):
        return {
            "step": self.step.value,
            "draft": self.draft.as_api(),
            "bookedAt": self.booked_at.isoformat() if self.booked_at else None,
            "orderId": self.order_id,
        }

    @classmethod
    def from_api(cls, data: dict | None) -> "DialogueState":
        data = data or {}
        if not isinstance(data, dict):
            raise ValidationError("state must be an object", field="state")
        try:
            step = Step(data.get("step") or Step.IDLE.value)
        except ValueError:
            raise ValidationError(f"unknown dialogue step '{data.get('step')}'", field="step")
        return cls(
            step=step,
            draft=BookingDraft.from_api(data.get("draft")),
            booked_at=parse_iso8601(data.get("bookedAt")),
            order_id=data.get("orderId"),
        )


@dataclass(frozen=True)
class Reply:
    state: DialogueState
    message: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_api(self):
        return {"state": self.state.as_api(), "message": self.message, "error": self.error}


def _next_step(step: Step) -> Step:
    steps = [s for s, _ in FLOW]
    i = steps.index(step)
    return steps[i + 1] if i + 1 < len(steps) else Step.CONFIRM


def _parse(step: Step, text: str, today: date | None):
    if step is Step.AREA:
        return check_text(text, "area")
    if step is Step.SIZE:
        value = text.strip().lower()
        if value.endswith("kg"):
            value = value[:-2].strip()
        return check_size(value)
    if step is Step.DELIVERY_TYPE:
        value = text.strip().lower().replace(" ", "")
        if value in {"pickup", "pick-up", "store"}:
            value = DeliveryType.PICKUP.value
        elif value in {"delivery", "homedelivery", "home"}:
            value = DeliveryType.DELIVERY.value
        return check_delivery_type(value)
    if step is Step.INSTRUCTION:
        value = text.strip()
        return "" if value.lower() in SKIP_WORDS else value
    if step is Step.DATE:
        return check_date(text, today)
    if step is Step.TIME:
        return check_time(text)
    if step is Step.ADDRESS:
        return check_text(text, "address")
    return check_text(text, "phone")


# ---- transitions -----------------------------------------------------------

def welcome() -> DialogueState:
    return DialogueState()


def start(product_id, product_name, price_per_kg) -> Reply:
    """Begin booking a product picked from search results."""
    draft = BookingDraft(product_id=product_id, product_name=product_name, price_per_kg=float(price_per_kg))
    return Reply(DialogueState(Step.AREA, draft), f"Great choice: {product_name}!\n\n{PROMPTS[Step.AREA]}")


def resume(draft: BookingDraft) -> Reply:
    """Continue from a prefilled draft (e.g. a reorder) at the first missing field."""
    if draft.product_id is None:
        return Reply(welcome(), PROMPTS[Step.IDLE], error="Choose a product first")
    for step, attr in FLOW:
        value = getattr(draft, attr)
        if value is None or (value == "" and step is not Step.INSTRUCTION):
            return Reply(DialogueState(step, draft), PROMPTS[step])
    state = DialogueState(Step.CONFIRM, draft)
    return Reply(state, summary(draft))


def advance(state: DialogueState, text, today: date | None = None) -> Reply:
    """
    Apply one answer. A bad answer keeps the step and draft as they were
    and returns the reason in `error`.
    """
    if state.step in (Step.IDLE, Step.BOOKED):
        return Reply(state, PROMPTS[Step.IDLE], error="Choose a product first")
    if state.step is Step.CONFIRM:
        return Reply(state, summary(state.draft), error="Everything is filled in; book the order or abandon it")

    try:
        value = _parse(state.step, text if isinstance(text, str) else str(text or ""), today)
    except ValidationError as e:
        return Reply(state, PROMPTS[state.step], error=e.message)

    attr = dict(FLOW)[state.step]
    nxt = _next_step(state.step)
    new_state = replace(state, step=nxt, draft=state.draft.update(**{attr: value}))
    message = summary(new_state.draft) if nxt is Step.CONFIRM else PROMPTS[nxt]
    return Reply(new_state, message)


def apply_coupon(state: DialogueState, code, validate) -> Reply:
    """
    Attach a coupon at the confirm step. `validate(code)` returns the coupon
    or raises; it does not redeem it.
    """
    if state.step is not Step.CONFIRM:
        return Reply(state, PROMPTS.get(state.step, ""), error="Coupons can be applied once the booking is complete")
    try:
        coupon = validate(code)
    except ShopError as e:
        return Reply(state, summary(state.draft), error=e.message)
    draft = state.draft.update(coupon_code=coupon.code, discount_percent=coupon.discount_percent)
    return Reply(replace(state, draft=draft), summary(draft))


def quote(draft: BookingDraft) -> pricing.PriceBreakdown:
    return pricing.quote(draft.price_per_kg or 0, draft.size or 0, draft.delivery_type, draft.discount_percent)


def _money(x) -> str:
    return f"₹{to_number(x):,}"


def summary(draft: BookingDraft) -> str:
    """The confirm-step text, rendered only from the draft."""
    price = quote(draft)
    delivery = "Home Delivery" if draft.delivery_type == DeliveryType.DELIVERY.value else "Pickup"
    lines = [
        "Order Summary:",
        f"• Product: {draft.product_name}",
        f"• Size: {draft.size} kg",
        f"• Area: {draft.area}",
        f"• Delivery: {delivery}",
        f"• Date: {draft.delivery_date}",
        f"• Time: {draft.delivery_time}",
    ]
    if draft.instruction:
        lines.append(f"• Instructions: {draft.instruction}")
    if price.delivery_charge:
        lines.append(f"• Delivery charge: {_money(price.delivery_charge)}")
    if draft.coupon_code:
        lines.append(f"• Coupon {draft.coupon_code}: -{_money(price.discount_amount)}")
    lines.append(f"• Total: {_money(price.total)}")
    lines.append("")
    lines.append("Ready to book?")
    return "\n".join(lines)


def confirm(state: DialogueState) -> Reply:
    if state.step is not Step.CONFIRM:
        return Reply(state, PROMPTS.get(state.step, ""), error="The booking is not complete yet")
    return Reply(state, summary(state.draft))


def book(state: DialogueState, submit, now: datetime | None = None) -> Reply:
    """
    Submit the draft through `submit(draft) -> Order`. On failure the
    dialogue stays at confirm with every collected field intact.
    """
    if state.step is not Step.CONFIRM:
        return Reply(state, PROMPTS.get(state.step, ""), error="The booking is not complete yet")
    try:
        order = submit(state.draft)
    except ShopError as e:
        logger.info("booking for product %s failed: %s", state.draft.product_id, e.message)
        return Reply(state, summary(state.draft), error=e.message)
    booked = DialogueState(Step.BOOKED, state.draft, booked_at=now or utcnow(), order_id=order.id)
    return Reply(booked, "Order booked successfully!")


def expire(state: DialogueState, now: datetime | None = None, display_seconds=DISPLAY_SECONDS) -> DialogueState:
    """Back to the welcome state once the booked confirmation has been shown long enough."""
    if state.step is not Step.BOOKED or state.booked_at is None:
        return state
    if (now or utcnow()) - state.booked_at >= timedelta(seconds=display_seconds):
        return welcome()
    return state


def abandon(state: DialogueState) -> DialogueState:
    return welcome()


def discover(dispatcher, text, sort=None, request_id=None):
    """Product search from the idle step; a picked result feeds `start`."""
    return dispatcher.dispatch(text, sort=sort, request_id=request_id)
