# Overview: Flask API routes for the public storefront catalog.

from flask import Blueprint, request, jsonify, current_app, g

from ..services import catalog_service, settings_service
from ..validation import NotFoundError
from ..decorators import require_auth


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("/categories")
def list_categories_route():
    """
    Categories with their active product counts.

    ?plain=1 returns bare categories ordered by name (admin pickers).
    """
    try:
        if request.args.get("plain") in ("1", "true"):
            categories = [c.to_dict() for c in catalog_service.list_categories()]
        else:
            categories = catalog_service.list_categories_with_counts()
        return jsonify({"categories": categories}), 200
    except Exception:
        current_app.logger.exception("Failed to list categories")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products")
def list_products_route():
    """Active products grouped by category name, cheapest first."""
    try:
        return jsonify({"products": catalog_service.list_products_grouped()}), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/payment-methods")
def list_payment_methods_route():
    try:
        methods = [m.to_dict() for m in catalog_service.list_active_payment_methods()]
        return jsonify({"payment_methods": methods}), 200
    except Exception:
        current_app.logger.exception("Failed to list payment methods")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/settings")
def public_settings_route():
    try:
        return jsonify({"settings": settings_service.get_public_settings()}), 200
    except Exception:
        current_app.logger.exception("Failed to load public settings")
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.get("/products/<int:product_id>/guides")
@require_auth
def product_guides_route(product_id: int):
    """Redemption guide; only for callers holding a completed order for the product."""
    try:
        guides = catalog_service.get_product_guides(g.current_user.id, product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except catalog_service.GuideAccessError:
        return jsonify({"error": "Not authorized"}), 403
    except Exception:
        current_app.logger.exception("Failed to load product guides")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"guides": [guide.to_dict() for guide in guides]}), 200
