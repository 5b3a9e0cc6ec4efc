# Overview: Flask API routes for in-app notifications.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import notification_service
from ..decorators import require_auth


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


def _listing(user_id: int) -> dict:
    notifications = notification_service.list_for_user(user_id)
    return {
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": notification_service.unread_count(user_id),
    }


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    """
    The caller's notifications, newest first.

    ?mark_seen=1 marks everything seen first and returns the refreshed list.
    """
    try:
        if request.args.get("mark_seen") in ("1", "true"):
            notification_service.mark_all_seen(g.current_user.id)
        return jsonify(_listing(g.current_user.id)), 200
    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.post("/mark-seen")
@require_auth
def mark_seen_route():
    """Idempotent: an empty unread set is not an error."""
    try:
        updated = notification_service.mark_all_seen(g.current_user.id)
        body = _listing(g.current_user.id)
        body["updated"] = updated
        return jsonify(body), 200
    except Exception:
        current_app.logger.exception("Failed to mark notifications seen")
        return jsonify({"error": "Internal server error"}), 500
