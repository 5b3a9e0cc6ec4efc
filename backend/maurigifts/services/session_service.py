# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

Opaque bearer tokens with a fixed lifetime.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Fixed lifetime from creation (SESSION_TTL_DAYS, default 30 days)
- No sliding expiry and no revocation: expiry is the only invalidation
- Unknown and expired tokens are indistinguishable to the caller
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


DEFAULT_SESSION_TTL = timedelta(days=30)


@dataclass
class SessionContext:
    """Resolved identity for an authenticated request."""
    user: User
    session: SessionToken

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role


def session_ttl() -> timedelta:
    days = current_app.config.get("SESSION_TTL_DAYS")
    return timedelta(days=days) if days else DEFAULT_SESSION_TTL


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast digest is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int, commit: bool = True) -> tuple[SessionToken, str]:
    """
    Mint a new session for user_id.

    Returns (session_record, plaintext_token). Existing sessions for the
    user are left untouched. With commit=False the row is only added to the
    current transaction so callers can pair it with other writes.
    """
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + session_ttl(),
    )

    db.session.add(session)
    if commit:
        db.session.commit()

    return session, plaintext_token


def validate_session(token: str | None) -> SessionContext | None:
    """
    Resolve a bearer token to its owning user.

    Returns None if the token is empty, unknown, or expired. Read-only:
    nothing about the session is updated on use.
    """
    if not token:
        return None

    row = (
        db.session.query(SessionToken, User)
        .join(User, User.id == SessionToken.user_id)
        .filter(
            SessionToken.token_hash == hash_token(token),
            SessionToken.expires_at > utcnow(),
        )
        .first()
    )

    if not row:
        return None

    session, user = row
    return SessionContext(user=user, session=session)


def cleanup_expired_sessions() -> int:
    """
    Delete sessions whose expiry has passed.

    Returns count of sessions deleted.
    """
    deleted = db.session.query(SessionToken).filter(
        SessionToken.expires_at <= utcnow()
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
