# Overview: Flask API routes for customer orders; parses input and returns JSON responses.

# backend/maurigifts/routes/orders.py
"""
Customer order routes

POST /api/orders                    create an order (status under_review)
POST /api/orders/<id>/receipt       attach base64 receipt evidence
GET  /api/orders                    the caller's orders, newest first

SECURITY: All routes require a session. Orders of other users are reported
as not found.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import order_service, storage_service
from ..validation import ValidationError, ConflictError, NotFoundError, require_int
from ..decorators import require_auth


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_body(order) -> dict:
    data = order.to_dict(include_product=True)
    data["receipt_url"] = storage_service.public_url(order.receipt_path)
    return data


@orders_bp.post("")
@require_auth
def create_order_route():
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.create_order(
            user_id=g.current_user.id,
            product_id=require_int(data.get("product_id"), "product_id"),
            payment_method=data.get("payment_method"),
            payment_number=data.get("payment_number"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order_id": order.id, "order": _order_body(order)}), 201


@orders_bp.post("/<int:order_id>/receipt")
@require_auth
def upload_receipt_route(order_id: int):
    """
    Attach payment evidence.

    Body: {"fileBase64": "<base64 or data: URL>", "fileExt": "jpg"}
    Returns the storage path "<order-id>/<timestamp>.<ext>" and its public URL.
    """
    data = request.get_json(silent=True) or {}
    try:
        ext = storage_service.normalize_extension(data.get("fileExt"))
        image = storage_service.decode_receipt(data.get("fileBase64"), ext)
        order = order_service.attach_receipt(
            user_id=g.current_user.id,
            order_id=order_id,
            image=image,
            ext=ext,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to upload receipt")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "success": True,
        "path": order.receipt_path,
        "url": storage_service.public_url(order.receipt_path),
    }), 200


@orders_bp.get("")
@require_auth
def my_orders_route():
    try:
        orders = order_service.list_user_orders(g.current_user.id)
        return jsonify({"orders": [_order_body(o) for o in orders]}), 200
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500
