from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..vocab import ROLE_ADMIN, ROLE_USER


class User(db.Model):
    """
    Storefront account identified by an 8-digit phone number.

    The PIN is stored only as a bcrypt hash and never serialized.
    pin_hash is NULL for accounts provisioned by OTP verification until the
    owner sets a PIN; such accounts cannot use PIN login.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    phone_number = db.Column(db.String(8), nullable=False, unique=True, index=True)

    # Bcrypt hashed 4-digit PIN
    pin_hash = db.Column(db.String(255), nullable=True)

    role = db.Column(db.String(16), nullable=False, default=ROLE_USER)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def has_pin(self) -> bool:
        return self.pin_hash is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone_number": self.phone_number,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SessionToken(db.Model):
    """
    Bearer session with a fixed lifetime.

    Only the SHA-256 digest of the token is stored. Rows are never updated:
    expiry is the only invalidation mechanism, and every login mints a new row.
    """
    __tablename__ = "sessions"
    __table_args__ = (
        db.Index("ix_sessions_user_expires", "user_id", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
        }


class OtpCode(db.Model):
    """
    Single-use phone verification code.

    Requesting a new code deletes older codes for the same number; a
    successful or expired verification deletes the row.
    """
    __tablename__ = "otp_codes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    phone_number = db.Column(db.String(8), nullable=False, index=True)
    code = db.Column(db.String(6), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
