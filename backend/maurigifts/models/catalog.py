from __future__ import annotations

from ..extensions import db
from ..payloads import ProductMeta
from ..time_utils import to_utc_z
from ..vocab import PAYMENT_METHOD_ACTIVE


class Category(db.Model):
    """Product grouping shown on the storefront home screen."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    image_url = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "image_url": self.image_url,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Sellable digital good (gift card, game top-up).

    Products referenced by an order are never deleted; admins deactivate them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active_price", "active", "price_mru"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    price_mru = db.Column(db.Integer, nullable=False)
    active = db.Column(db.Boolean, nullable=False, default=True)

    # ProductMeta, stored as JSON
    meta = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def to_dict(self, include_category: bool = False) -> dict:
        data = {
            "id": self.id,
            "category_id": self.category_id,
            "name": self.name,
            "sku": self.sku,
            "price_mru": self.price_mru,
            "active": self.active,
            "meta": ProductMeta.from_dict(self.meta).to_dict(),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_category:
            data["category"] = self.category.to_dict() if self.category else None
        return data


class PaymentMethod(db.Model):
    """Receiving account shown on the payment screen for a mobile-money provider."""
    __tablename__ = "payment_methods"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    logo_url = db.Column(db.String(512), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=PAYMENT_METHOD_ACTIVE, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "logo_url": self.logo_url,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class ProductGuide(db.Model):
    """One step of the redemption guide for a product, shown after purchase."""
    __tablename__ = "product_guides"
    __table_args__ = (
        db.UniqueConstraint("product_id", "step_number", name="uq_product_guides_step"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    step_number = db.Column(db.Integer, nullable=False)
    image_url = db.Column(db.String(512), nullable=True)
    description = db.Column(db.Text, nullable=True)
    support_link = db.Column(db.String(512), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("guides", lazy=True))

    def to_dict(self, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "product_id": self.product_id,
            "step_number": self.step_number,
            "image_url": self.image_url,
            "description": self.description,
            "support_link": self.support_link,
            "created_at": to_utc_z(self.created_at),
        }
        if include_product:
            data["product"] = {"id": self.product.id, "name": self.product.name} if self.product else None
        return data
