# Overview: Outbound WhatsApp relay (Twilio Messages API) used to deliver verification codes.

"""
WhatsApp Relay

Sends a single text message through Twilio's Messages endpoint using HTTP
basic auth and form encoding. Every call has a bounded timeout
(RELAY_TIMEOUT_SECONDS); timeouts and non-2xx answers raise RelayError.

No automatic retry: the user re-requests a code instead.
"""

from __future__ import annotations

import httpx
from flask import current_app


REQUIRED_SETTINGS = (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_API_URL",
    "TWILIO_WHATSAPP_NUMBER",
)


class RelayError(Exception):
    """Upstream messaging relay unreachable or refused the message."""


def relay_configured() -> bool:
    return all(current_app.config.get(key) for key in REQUIRED_SETTINGS)


def format_recipient(phone_number: str) -> str:
    """8-digit local number -> whatsapp:+<country><number>."""
    prefix = current_app.config.get("OTP_COUNTRY_PREFIX", "+222")
    return f"whatsapp:{prefix}{phone_number}"


def send_whatsapp(to: str, message: str, transport: httpx.BaseTransport | None = None) -> str | None:
    """
    Send message to recipient ("whatsapp:+<country><number>").

    Returns the relay's message id when it reports one.

    Raises:
        RelayError: relay not configured, unreachable, timed out or rejected
    """
    if not to or not message:
        raise ValueError("to and message are required")
    if "+" not in to:
        raise ValueError("Recipient must be in the form whatsapp:+<country_code><number>")

    if not relay_configured():
        raise RelayError("WhatsApp relay is not configured")

    config = current_app.config
    sender = config["TWILIO_WHATSAPP_NUMBER"]
    if not sender.startswith("whatsapp:"):
        sender = f"whatsapp:{sender}"

    try:
        with httpx.Client(timeout=config.get("RELAY_TIMEOUT_SECONDS", 10), transport=transport) as client:
            response = client.post(
                config["TWILIO_API_URL"],
                auth=(config["TWILIO_ACCOUNT_SID"], config["TWILIO_AUTH_TOKEN"]),
                data={"From": sender, "To": to, "Body": message},
            )
    except httpx.TimeoutException as exc:
        raise RelayError("WhatsApp relay timed out") from exc
    except httpx.HTTPError as exc:
        raise RelayError(f"WhatsApp relay unreachable: {exc}") from exc

    if response.is_error:
        detail = None
        try:
            detail = response.json().get("message")
        except ValueError:
            pass
        raise RelayError(detail or f"WhatsApp relay returned HTTP {response.status_code}")

    try:
        return response.json().get("sid")
    except ValueError:
        return None
