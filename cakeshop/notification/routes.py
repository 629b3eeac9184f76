from flask import jsonify, request

from . import bp
from ..services import notification_service
from ..utils.api import api_ok
from ..utils.decorators import current_user


@bp.get("")
def list_notifications():
    unread = request.args.get("unread", "").lower() in ("1", "true", "yes")
    notes = notification_service.list_notifications(current_user(), unread_only=unread)
    return jsonify(api_ok("Notifications fetched", data={"notifications": [n.as_dict() for n in notes]}))


@bp.put("/<int:note_id>/read")
def mark_as_read(note_id):
    note = notification_service.mark_read(note_id, current_user())
    return jsonify(api_ok("Marked as read", data={"notification": note.as_dict()}))
