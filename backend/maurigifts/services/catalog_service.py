# Overview: Service-layer read operations for the storefront catalog.

from __future__ import annotations

from collections import OrderedDict

from ..extensions import db
from ..models import Category, Product, PaymentMethod, ProductGuide, Order
from ..validation import NotFoundError
from ..vocab import ORDER_COMPLETED, PAYMENT_METHOD_ACTIVE


class GuideAccessError(Exception):
    """Caller has no completed order for the product whose guide was requested."""


def get_active_product(product_id: int) -> Product | None:
    return db.session.query(Product).filter(
        Product.id == product_id,
        Product.active.is_(True),
    ).first()


def list_categories_with_counts() -> list[dict]:
    """Categories in creation order, each with the number of active products in it."""
    rows = (
        db.session.query(Category, db.func.count(Product.id))
        .outerjoin(Product, (Product.category_id == Category.id) & Product.active.is_(True))
        .group_by(Category.id)
        .order_by(Category.created_at.asc(), Category.id.asc())
        .all()
    )
    return [{**category.to_dict(), "product_count": count} for category, count in rows]


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def list_active_products() -> list[Product]:
    return (
        db.session.query(Product)
        .join(Category, Product.category_id == Category.id)
        .filter(Product.active.is_(True))
        .order_by(Product.price_mru.asc(), Product.id.asc())
        .all()
    )


def list_products_grouped() -> dict[str, list[dict]]:
    """
    Active products grouped by category name.

    Groups appear in the order their cheapest product does; inside a group
    products are sorted by price.
    """
    grouped: "OrderedDict[str, list[dict]]" = OrderedDict()
    for product in list_active_products():
        grouped.setdefault(product.category.name, []).append(product.to_dict())
    return grouped


def list_active_payment_methods() -> list[PaymentMethod]:
    return (
        db.session.query(PaymentMethod)
        .filter(PaymentMethod.status == PAYMENT_METHOD_ACTIVE)
        .order_by(PaymentMethod.name.asc())
        .all()
    )


def get_product_guides(user_id: int, product_id: int) -> list[ProductGuide]:
    """
    Redemption steps for a product, only for buyers whose order completed.

    Raises:
        NotFoundError: product does not exist
        GuideAccessError: caller has no completed order for the product
    """
    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")

    purchased = db.session.query(
        db.session.query(Order)
        .filter(
            Order.user_id == user_id,
            Order.product_id == product_id,
            Order.status == ORDER_COMPLETED,
        )
        .exists()
    ).scalar()
    if not purchased:
        raise GuideAccessError("No completed order for this product")

    return (
        db.session.query(ProductGuide)
        .filter(ProductGuide.product_id == product_id)
        .order_by(ProductGuide.step_number.asc())
        .all()
    )
