# Overview: Service-layer operations for orders; the order lifecycle state machine.

"""
Order Lifecycle

    awaiting_payment --receipt--> under_review --approve--> completed
           |                          |
           +---------reject-----------+--------reject--> rejected

- create_order inserts directly in under_review: payment method and sender
  number are captured up front and the receipt follows immediately.
- completed and rejected are terminal. Any further approve, reject or
  receipt upload fails with InvalidStateTransitionError.
- Every transition writes the status change, exactly one notification for
  the order owner and one audit row, then commits once.
- Transitions lock the order row and rely on the version counter; a
  concurrent transition that loses the race is retried, re-reads the
  terminal status and fails cleanly.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Order
from ..validation import (
    ValidationError,
    ConflictError,
    NotFoundError,
    require_text,
    MAX_REJECT_REASON_LENGTH,
)
from ..vocab import (
    ORDER_AWAITING_PAYMENT,
    ORDER_UNDER_REVIEW,
    ORDER_COMPLETED,
    ORDER_REJECTED,
    TERMINAL_ORDER_STATUSES,
    VALID_ORDER_STATUSES,
    payment_provider_from_label,
)
from . import audit_service, catalog_service, notification_service, storage_service
from .concurrency import lock_for_update, run_with_retry


MAX_PAYMENT_NUMBER_LENGTH = 32
MAX_DELIVERY_CODE_LENGTH = 255

# (from_status, to_status) pairs the state machine accepts
ALLOWED_TRANSITIONS = frozenset({
    (ORDER_AWAITING_PAYMENT, ORDER_UNDER_REVIEW),
    (ORDER_AWAITING_PAYMENT, ORDER_REJECTED),
    (ORDER_UNDER_REVIEW, ORDER_COMPLETED),
    (ORDER_UNDER_REVIEW, ORDER_REJECTED),
})


class OrderNotFoundError(NotFoundError):
    pass


class ProductUnavailableError(ValidationError):
    """Product id does not resolve to an active product."""


class InvalidStateTransitionError(ConflictError):
    def __init__(self, order_id: int, current: str, target: str):
        self.order_id = order_id
        self.current = current
        self.target = target
        super().__init__(f"Order {order_id} is {current}; cannot move to {target}")


def require_transition(order: Order, target: str) -> None:
    if (order.status, target) not in ALLOWED_TRANSITIONS:
        raise InvalidStateTransitionError(order.id, order.status, target)


def _load_order(order_id: int, user_id: int | None = None, lock: bool = False) -> Order:
    query = db.session.query(Order).filter(Order.id == order_id)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    if lock:
        query = lock_for_update(query).populate_existing()
    order = query.first()
    if not order:
        raise OrderNotFoundError("Order not found")
    return order


def create_order(
    *,
    user_id: int,
    product_id: int,
    payment_method: str,
    payment_number: str,
) -> Order:
    """
    Create an order in under_review for an active product.

    Raises:
        ValidationError: unknown payment method or empty payment number
        ProductUnavailableError: product missing or inactive (no row is written)
    """
    provider = payment_provider_from_label(payment_method)
    if provider is None:
        raise ValidationError("Unsupported payment method")
    payment_number = require_text(payment_number, "payment_number", max_length=MAX_PAYMENT_NUMBER_LENGTH)

    product = catalog_service.get_active_product(product_id)
    if not product:
        raise ProductUnavailableError("Product is not available")

    order = Order(
        user_id=user_id,
        product_id=product.id,
        payment_method=provider,
        payment_number=payment_number,
        status=ORDER_UNDER_REVIEW,
    )
    try:
        db.session.add(order)
        db.session.flush()
        audit_service.append_audit_log(
            actor_id=user_id,
            action="create_order",
            target_type="order",
            target_id=order.id,
            meta={
                "product_id": product.id,
                "payment_method": provider,
                "payment_number": payment_number,
            },
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return order


def _require_receipt_allowed(order: Order) -> None:
    if order.status in TERMINAL_ORDER_STATUSES:
        raise InvalidStateTransitionError(order.id, order.status, ORDER_UNDER_REVIEW)


def attach_receipt(*, user_id: int, order_id: int, image: bytes, ext: str) -> Order:
    """
    Store payment evidence for the caller's own order.

    An awaiting_payment order moves to under_review; an order already under
    review just gets its receipt replaced, and the replaced file is removed
    once the new one is committed. Emits an "under review" notification.

    Raises:
        OrderNotFoundError: order missing or owned by someone else (nothing mutated)
        InvalidStateTransitionError: order already completed or rejected
    """
    order = _load_order(order_id, user_id=user_id)
    _require_receipt_allowed(order)

    key = storage_service.save_receipt(order.id, image, ext)
    replaced = {}

    def _op() -> Order:
        locked = _load_order(order_id, user_id=user_id, lock=True)
        _require_receipt_allowed(locked)

        replaced["key"] = locked.receipt_path
        locked.receipt_path = key
        if locked.status == ORDER_AWAITING_PAYMENT:
            require_transition(locked, ORDER_UNDER_REVIEW)
            locked.status = ORDER_UNDER_REVIEW

        notification_service.emit_order_submitted(locked)
        audit_service.append_audit_log(
            actor_id=user_id,
            action="upload_receipt",
            target_type="order",
            target_id=locked.id,
            meta={"receipt_path": key},
        )
        db.session.commit()
        return locked

    try:
        order = run_with_retry(_op)
    except Exception:
        db.session.rollback()
        storage_service.delete_receipt(key)
        raise

    if replaced.get("key") and replaced["key"] != key:
        storage_service.delete_receipt(replaced["key"])
    return order


def approve_order(*, admin_id: int, order_id: int, delivery_code: str) -> Order:
    """
    under_review -> completed, recording the delivery code and notifying the owner.

    Raises:
        ValidationError: empty delivery code
        OrderNotFoundError
        InvalidStateTransitionError: order not under review (including a second approve)
    """
    delivery_code = require_text(delivery_code, "delivery_code", max_length=MAX_DELIVERY_CODE_LENGTH)

    def _op() -> Order:
        order = _load_order(order_id, lock=True)
        require_transition(order, ORDER_COMPLETED)

        order.status = ORDER_COMPLETED
        order.delivery_code = delivery_code

        notification_service.emit_order_completed(order)
        audit_service.append_audit_log(
            actor_id=admin_id,
            action="approve_order",
            target_type="order",
            target_id=order.id,
            meta={"delivery_code": delivery_code},
        )
        db.session.commit()
        return order

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def reject_order(*, admin_id: int, order_id: int, reason: str) -> Order:
    """
    Non-terminal -> rejected, storing the reason as admin_note and notifying the owner.

    Raises:
        ValidationError: empty reason or longer than 500 characters
        OrderNotFoundError
        InvalidStateTransitionError: order already completed or rejected
    """
    reason = require_text(reason, "reason", max_length=MAX_REJECT_REASON_LENGTH)

    def _op() -> Order:
        order = _load_order(order_id, lock=True)
        require_transition(order, ORDER_REJECTED)

        order.status = ORDER_REJECTED
        order.admin_note = reason

        notification_service.emit_order_rejected(order)
        audit_service.append_audit_log(
            actor_id=admin_id,
            action="reject_order",
            target_type="order",
            target_id=order.id,
            meta={"reason": reason},
        )
        db.session.commit()
        return order

    try:
        return run_with_retry(_op)
    except Exception:
        db.session.rollback()
        raise


def list_user_orders(user_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def list_orders(status: str | None = None) -> list[Order]:
    """All orders, newest first, optionally filtered by status."""
    query = db.session.query(Order)
    if status is not None:
        if status not in VALID_ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(VALID_ORDER_STATUSES))}")
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
