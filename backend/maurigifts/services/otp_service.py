# Overview: Service-layer operations for one-time phone verification codes.

"""
OTP Verification Service

- 6-digit numeric codes from secrets.randbelow
- Valid for OTP_TTL_MINUTES (default 5)
- Requesting a code deletes any outstanding code for the number
- One attempt per code: the row is deleted on success, on expiry and on
  a wrong guess, so a code cannot be brute-forced within its window
- First successful verification for an unknown number provisions an
  account WITHOUT a PIN; the owner must set one before PIN login works
"""

from __future__ import annotations

import re
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import OtpCode, User, SessionToken
from ..time_utils import utcnow, as_naive_utc
from ..validation import ValidationError, OTP_RE
from . import auth_service, session_service, whatsapp_service


OTP_LENGTH = 6
OTP_MESSAGE = "Your MauriGifts verification code is {code}"


class OtpInvalidError(ValidationError):
    """Code unknown, wrong, already used or expired (deliberately not distinguished)."""


def normalize_phone(phone: str | None) -> str:
    """
    Accept "+22222334455", "222 22 33 44 55" or "22334455"; return the
    last 8 digits.
    """
    if not isinstance(phone, str):
        raise ValidationError("phone is required")
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 8 or len(digits) > 15:
        raise ValidationError("phone must contain 8 to 15 digits")
    return digits[-8:]


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def _ttl() -> timedelta:
    return timedelta(minutes=int(current_app.config.get("OTP_TTL_MINUTES", 5)))


def request_otp(phone: str) -> dict:
    """
    Store a fresh code for the number and try to deliver it over WhatsApp.

    The code is stored even if delivery fails; the result reports both.
    """
    phone_number = normalize_phone(phone)
    code = generate_code()

    db.session.query(OtpCode).filter_by(phone_number=phone_number).delete(synchronize_session=False)
    db.session.add(OtpCode(
        phone_number=phone_number,
        code=code,
        expires_at=utcnow() + _ttl(),
    ))
    db.session.commit()

    whatsapp_sent = False
    try:
        whatsapp_service.send_whatsapp(
            whatsapp_service.format_recipient(phone_number),
            OTP_MESSAGE.format(code=code),
        )
        whatsapp_sent = True
    except whatsapp_service.RelayError as e:
        current_app.logger.warning("OTP delivery failed for %s: %s", phone_number, e)

    return {"otp_stored": True, "whatsapp_sent": whatsapp_sent}


def verify_otp(phone: str, code: str) -> tuple[User, SessionToken, str, bool]:
    """
    Consume a code and open a session for the number's account.

    Returns (user, session, plaintext_token, created) where created is True
    when the account was provisioned by this call.

    Raises:
        ValidationError: malformed phone or code
        OtpInvalidError: no matching unexpired code
    """
    phone_number = normalize_phone(phone)
    if not isinstance(code, str) or not OTP_RE.match(code):
        raise ValidationError("otp must be 4 to 6 digits")

    record = (
        db.session.query(OtpCode)
        .filter_by(phone_number=phone_number)
        .order_by(OtpCode.id.desc())
        .first()
    )
    if not record:
        raise OtpInvalidError("Invalid or expired code")

    expired = as_naive_utc(record.expires_at) < utcnow()
    matches = secrets.compare_digest(record.code, code)

    # Single attempt: the code is gone whatever the outcome
    db.session.delete(record)

    if expired or not matches:
        db.session.commit()
        raise OtpInvalidError("Invalid or expired code")

    try:
        created = False
        user = auth_service.get_user_by_phone(phone_number)
        if not user:
            user = auth_service.create_user(
                name=f"User {phone_number}",
                phone_number=phone_number,
                pin=None,
                commit=False,
            )
            created = True
        session, token = session_service.create_session(user.id, commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return user, session, token, created


def cleanup_expired_codes() -> int:
    deleted = db.session.query(OtpCode).filter(
        OtpCode.expires_at < utcnow()
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
