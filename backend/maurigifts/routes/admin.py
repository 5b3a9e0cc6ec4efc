# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/maurigifts/routes/admin.py
"""
Admin routes.

- Order review: list (optional ?status=), approve with delivery code,
  reject with reason
- Users: list with order counts
- Catalog management: POST /api/admin/<entity> with {"action": ..., "<item>": {...}}
  for products, categories, payment-methods, product-guides
- Settings: POST /api/admin/settings with {"action": "get"|"update", "settings": {...}}
- Audit trail: read-only listing

All endpoints require a session with role == admin. Non-admins get 403 with
the same body as an unauthenticated caller.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import admin_service, auth_service, audit_service, order_service, settings_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_admin

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# ORDER REVIEW
# =============================================================================

@admin_bp.get("/orders")
@require_auth
@require_admin
def list_orders():
    """All orders newest first, with joined user and product."""
    try:
        orders = order_service.list_orders(status=request.args.get("status") or None)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "orders": [o.to_dict(include_product=True, include_user=True) for o in orders]
    }), 200


def _transition_response(fn, **kwargs):
    try:
        order = fn(admin_id=g.current_user.id, **kwargs)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True, "order": order.to_dict(include_product=True, include_user=True)}), 200


@admin_bp.post("/orders/<int:order_id>/approve")
@require_auth
@require_admin
def approve_order(order_id: int):
    """
    under_review -> completed.

    Body: {"delivery_code": "..."}
    409 if the order is not under review (including an already completed order).
    """
    data = request.get_json(silent=True) or {}
    return _transition_response(
        order_service.approve_order,
        order_id=order_id,
        delivery_code=data.get("delivery_code"),
    )


@admin_bp.post("/orders/<int:order_id>/reject")
@require_auth
@require_admin
def reject_order(order_id: int):
    """
    Non-terminal -> rejected.

    Body: {"reason": "..."} (at most 500 characters)
    """
    data = request.get_json(silent=True) or {}
    return _transition_response(
        order_service.reject_order,
        order_id=order_id,
        reason=data.get("reason"),
    )


# =============================================================================
# USERS / AUDIT
# =============================================================================

@admin_bp.get("/users")
@require_auth
@require_admin
def list_users():
    try:
        return jsonify({"users": auth_service.list_users_with_order_counts()}), 200
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/audit-logs")
@require_auth
@require_admin
def list_audit_logs():
    """
    Query params:
    - target_type: str (optional)
    - target_id: int (optional)
    - limit: int (default 100, max 500)
    """
    limit = min(request.args.get("limit", 100, type=int) or 100, 500)
    try:
        logs = audit_service.list_audit_logs(
            target_type=request.args.get("target_type") or None,
            target_id=request.args.get("target_id", type=int),
            limit=limit,
        )
        return jsonify({"audit_logs": [entry.to_dict() for entry in logs]}), 200
    except Exception:
        current_app.logger.exception("Failed to list audit logs")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# SETTINGS / CATALOG MANAGEMENT
# =============================================================================

@admin_bp.post("/settings")
@require_auth
@require_admin
def manage_settings():
    data = request.get_json(silent=True) or {}
    try:
        body = settings_service.manage(
            admin_id=g.current_user.id,
            action=data.get("action"),
            settings=data.get("settings"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to manage settings")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(body), 200


@admin_bp.post("/<entity>")
@require_auth
@require_admin
def manage_entity(entity: str):
    """
    Action-dispatched CRUD.

    Body: {"action": "list"|"create"|"update"|"delete", "<item_key>": {...}}
    where item_key is product, category, payment_method or guide.
    update and delete need the entity id inside the item object.
    """
    data = request.get_json(silent=True) or {}
    try:
        spec = admin_service.get_entity_spec(entity)
        body = admin_service.manage(
            admin_id=g.current_user.id,
            entity=entity,
            action=data.get("action"),
            payload=data.get(spec.item_key),
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to manage %s", entity)
        return jsonify({"error": "Internal server error"}), 500

    status = 201 if data.get("action") == "create" else 200
    return jsonify(body), status
