from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..vocab import ORDER_UNDER_REVIEW


class Order(db.Model):
    """
    Purchase of one product paid by manual mobile-money transfer.

    Lifecycle: under_review -> completed | rejected. completed and rejected
    are terminal. awaiting_payment is reserved for flows that create the
    order before payment evidence exists.

    user_id and product_id are immutable after creation.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_number = db.Column(db.String(32), nullable=False)

    # Storage path of the uploaded receipt image: <order-id>/<timestamp>.<ext>
    receipt_path = db.Column(db.String(255), nullable=True)

    # Set on rejection / approval respectively
    admin_note = db.Column(db.Text, nullable=True)
    delivery_code = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(24), nullable=False, default=ORDER_UNDER_REVIEW, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
    product = db.relationship("Product", backref=db.backref("orders", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_product: bool = False, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "payment_method": self.payment_method,
            "payment_number": self.payment_number,
            "receipt_path": self.receipt_path,
            "admin_note": self.admin_note,
            "delivery_code": self.delivery_code,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_product:
            data["product"] = self.product.to_dict() if self.product else None
        if include_user:
            data["user"] = {
                "id": self.user.id,
                "name": self.user.name,
                "phone_number": self.user.phone_number,
            } if self.user else None
        return data
