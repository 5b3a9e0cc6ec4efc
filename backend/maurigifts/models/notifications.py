from __future__ import annotations

from ..extensions import db
from ..payloads import NotificationPayload
from ..time_utils import to_utc_z


class Notification(db.Model):
    """
    In-app message addressed to one user.

    Created as a side effect of order transitions. Only the seen flag is
    ever mutated, and only by the bulk mark-all-seen update.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_seen", "user_id", "seen"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    body = db.Column(db.Text, nullable=False)

    # NotificationPayload, stored as JSON
    payload = db.Column(db.JSON, nullable=True)

    seen = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("notifications", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "body": self.body,
            "payload": NotificationPayload.from_dict(self.payload).to_dict(),
            "seen": self.seen,
            "created_at": to_utc_z(self.created_at),
        }
