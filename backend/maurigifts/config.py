# backend/maurigifts/config.py
from __future__ import annotations
import os


def _csv(value: str) -> set[str]:
    return {item.strip() for item in value.split(",") if item.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/maurigifts.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///maurigifts.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sessions have a fixed lifetime from creation; there is no sliding expiry
    SESSION_TTL_DAYS = int(os.environ.get("SESSION_TTL_DAYS", "30"))

    # One-time codes for phone verification
    OTP_TTL_MINUTES = int(os.environ.get("OTP_TTL_MINUTES", "5"))
    OTP_COUNTRY_PREFIX = os.environ.get("OTP_COUNTRY_PREFIX", "+222")

    # Receipt evidence storage. None means <instance_path>/receipts
    RECEIPTS_DIR = os.environ.get("RECEIPTS_DIR")
    RECEIPTS_PUBLIC_URL = os.environ.get("RECEIPTS_PUBLIC_URL", "/receipts")
    MAX_RECEIPT_BYTES = int(os.environ.get("MAX_RECEIPT_BYTES", str(5 * 1024 * 1024)))

    # WhatsApp relay (Twilio). Relay is disabled unless all four are set.
    TWILIO_ACCOUNT_SID = os.environ.get("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN")
    TWILIO_API_URL = os.environ.get("TWILIO_API_URL")
    TWILIO_WHATSAPP_NUMBER = os.environ.get("TWILIO_WHATSAPP_NUMBER")
    RELAY_TIMEOUT_SECONDS = float(os.environ.get("RELAY_TIMEOUT_SECONDS", "10"))

    CORS_ALLOWED_ORIGINS = _csv(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:8081,http://127.0.0.1:8081,http://localhost:19006",
    ))
