# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Phone + PIN Authentication Service

WHY: The storefront UI commits to a 4-digit numeric PIN, which is a tiny
keyspace. The PIN is therefore never stored in plaintext: it is hashed with
bcrypt and compared with bcrypt.checkpw.

SECURITY NOTES:
- PIN must be exactly 4 digits (external contract)
- PINs hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Accounts created by OTP verification start without a PIN and cannot use
  PIN login until set_initial_pin is called
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, SessionToken
from ..validation import ValidationError, ConflictError, require_phone_number, require_pin, require_text
from ..vocab import ROLE_USER, ROLE_ADMIN, VALID_ROLES
from . import session_service


MAX_NAME_LENGTH = 100


class PinValidationError(ValidationError):
    """Raised when a PIN doesn't match the 4-digit format."""
    pass


class InvalidPinError(ValidationError):
    """Raised when the supplied current PIN does not match."""
    pass


class PhoneNumberTakenError(ConflictError):
    pass


def _bcrypt_rounds() -> int:
    return int(current_app.config.get("BCRYPT_ROUNDS", 12))


def hash_pin(pin: str) -> str:
    """Validate the 4-digit format, then hash with bcrypt."""
    try:
        require_pin(pin)
    except ValidationError as e:
        raise PinValidationError(str(e))
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(pin.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_pin(pin: str, pin_hash: str | None) -> bool:
    """
    Verify PIN against bcrypt hash.

    Accounts without a PIN never verify, and neither does a non-string PIN.
    """
    if not isinstance(pin, str) or not pin or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode('utf-8'), pin_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        current_app.logger.warning("Malformed PIN hash encountered")
        return False


def get_user_by_phone(phone_number: str) -> User | None:
    return db.session.query(User).filter_by(phone_number=phone_number).first()


def create_user(
    name: str,
    phone_number: str,
    pin: str | None,
    role: str = ROLE_USER,
    commit: bool = True,
) -> User:
    """
    Create a user. pin=None creates an account without PIN login.

    Raises:
        ValidationError: malformed name / phone / pin
        PhoneNumberTakenError: phone number already registered
    """
    name = require_text(name, "name", max_length=MAX_NAME_LENGTH)
    require_phone_number(phone_number)
    if role not in VALID_ROLES:
        raise ValidationError("role must be user or admin")

    if get_user_by_phone(phone_number):
        raise PhoneNumberTakenError("Phone number already registered")

    user = User(
        name=name,
        phone_number=phone_number,
        pin_hash=hash_pin(pin) if pin is not None else None,
        role=role,
    )
    db.session.add(user)
    try:
        db.session.flush()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same number
        db.session.rollback()
        raise PhoneNumberTakenError("Phone number already registered")

    if commit:
        db.session.commit()
    return user


def signup(name: str, phone_number: str, pin: str) -> tuple[User, SessionToken, str]:
    """
    Register a new account and open its first session in one transaction.

    Returns (user, session, plaintext_token).
    """
    if pin is None:
        raise PinValidationError("pin must be exactly 4 digits")
    try:
        user = create_user(name, phone_number, pin, commit=False)
        session, token = session_service.create_session(user.id, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user, session, token


def authenticate(phone_number: str, pin: str) -> User | None:
    """
    Authenticate by phone number and PIN.

    Returns User if credentials valid, None otherwise. Unknown numbers,
    wrong PINs and accounts without a PIN are indistinguishable.
    """
    user = get_user_by_phone(phone_number)
    if not user:
        return None
    if verify_pin(pin, user.pin_hash):
        return user
    return None


def change_pin(user: User, current_pin: str, new_pin: str) -> None:
    """
    Replace the user's PIN after checking the current one.

    Raises:
        PinValidationError: new_pin malformed
        InvalidPinError: current_pin does not match
    """
    if not verify_pin(current_pin, user.pin_hash):
        raise InvalidPinError("Current PIN is incorrect")
    user.pin_hash = hash_pin(new_pin)
    db.session.commit()


def set_initial_pin(user: User, pin: str) -> None:
    """
    First PIN for an account provisioned without one.

    Raises ConflictError if the account already has a PIN (use change_pin).
    """
    if user.has_pin:
        raise ConflictError("PIN already set; use change PIN instead")
    user.pin_hash = hash_pin(pin)
    db.session.commit()


def create_admin(name: str, phone_number: str, pin: str) -> User:
    """Provision an admin account (CLI only; there is no API for this)."""
    return create_user(name, phone_number, pin, role=ROLE_ADMIN)


def list_users_with_order_counts() -> list[dict]:
    from ..models import Order

    rows = (
        db.session.query(User, db.func.count(Order.id))
        .outerjoin(Order, Order.user_id == User.id)
        .group_by(User.id)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    return [{**user.to_dict(), "has_pin": user.has_pin, "order_count": count} for user, count in rows]
