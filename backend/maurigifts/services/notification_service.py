# Overview: Service-layer operations for in-app notifications.

from __future__ import annotations

from ..extensions import db
from ..models import Notification, Order
from ..payloads import NotificationPayload


DEFAULT_LIST_LIMIT = 50


def emit(user_id: int, title: str, body: str, payload: NotificationPayload) -> Notification:
    """
    Add one notification to the current transaction.

    Never commits: the caller's state change and this row become visible
    together or not at all.
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        body=body,
        payload=payload.to_dict(),
        seen=False,
    )
    db.session.add(notification)
    return notification


def _product_name(order: Order) -> str:
    return order.product.name if order.product else f"#{order.product_id}"


def emit_order_submitted(order: Order) -> Notification:
    return emit(
        order.user_id,
        "Order submitted",
        f"Your order for {_product_name(order)} was received and is now under review.",
        NotificationPayload(kind=NotificationPayload.ORDER_SUBMITTED, order_id=order.id),
    )


def emit_order_completed(order: Order) -> Notification:
    return emit(
        order.user_id,
        "Order completed",
        f"Your order for {_product_name(order)} is completed. Delivery code: {order.delivery_code}",
        NotificationPayload(
            kind=NotificationPayload.ORDER_COMPLETED,
            order_id=order.id,
            delivery_code=order.delivery_code,
        ),
    )


def emit_order_rejected(order: Order) -> Notification:
    return emit(
        order.user_id,
        "Order rejected",
        f"Your order for {_product_name(order)} was rejected. Reason: {order.admin_note}",
        NotificationPayload(
            kind=NotificationPayload.ORDER_REJECTED,
            order_id=order.id,
            reason=order.admin_note,
        ),
    )


def list_for_user(user_id: int, limit: int = DEFAULT_LIST_LIMIT) -> list[Notification]:
    return (
        db.session.query(Notification)
        .filter_by(user_id=user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .all()
    )


def unread_count(user_id: int) -> int:
    return db.session.query(Notification).filter_by(user_id=user_id, seen=False).count()


def mark_all_seen(user_id: int) -> int:
    """
    Flip every unseen notification of the user in a single UPDATE.

    Returns the number of rows changed (0 when nothing was unread).
    """
    updated = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.seen.is_(False))
        .update({Notification.seen: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated
