# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/maurigifts/routes/auth.py
"""
Authentication API routes

- Phone + 4-digit PIN signup and login
- OTP over WhatsApp as an alternative sign-in
- Every successful signup / login / OTP verification mints a new session;
  older sessions stay valid until they expire
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import otp_service
from ..services import session_service
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_body(user, session, token) -> dict:
    return {
        "user": user.to_dict(),
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
    }


@auth_bp.post("/signup")
def signup_route():
    """
    Register with name, 8-digit phone number and 4-digit PIN.

    Also requests an OTP for the number; otp_sent reports whether the
    WhatsApp relay accepted it. A relay failure never fails the signup.
    """
    data = request.get_json(silent=True) or {}
    try:
        user, session, token = auth_service.signup(
            data.get("name"),
            data.get("phone_number"),
            data.get("pin"),
        )
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to sign up user")
        return jsonify({"error": "Internal server error"}), 500

    otp_sent = False
    try:
        otp_sent = otp_service.request_otp(user.phone_number)["whatsapp_sent"]
    except Exception:
        current_app.logger.exception("Failed to request OTP after signup")

    body = _session_body(user, session, token)
    body.update({"success": True, "otp_sent": otp_sent})
    return jsonify(body), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate by phone number and PIN.

    Unknown numbers, wrong PINs and accounts that never set a PIN all get the
    same 401.
    """
    try:
        data = request.get_json(silent=True) or {}
        phone_number = data.get("phone_number")
        pin = data.get("pin")

        if not phone_number or not pin:
            return jsonify({"error": "phone_number and pin required"}), 400

        user = auth_service.authenticate(phone_number, pin)
        if not user:
            return jsonify({"error": "Invalid phone number or PIN"}), 401

        session, token = session_service.create_session(user.id)
        return jsonify(_session_body(user, session, token)), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/otp/request")
def request_otp_route():
    data = request.get_json(silent=True) or {}
    try:
        result = otp_service.request_otp(data.get("phone_number") or data.get("phone"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to request OTP")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True, **result}), 200


@auth_bp.post("/otp/verify")
def verify_otp_route():
    """
    Consume a one-time code and open a session.

    A number seen for the first time gets an account without a PIN
    (account_created=true); it must call /set-pin before PIN login works.
    """
    data = request.get_json(silent=True) or {}
    try:
        user, session, token, created = otp_service.verify_otp(
            data.get("phone_number") or data.get("phone"),
            data.get("otp") or data.get("code"),
        )
    except otp_service.OtpInvalidError as e:
        return jsonify({"error": str(e)}), 401
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to verify OTP")
        return jsonify({"error": "Internal server error"}), 500

    body = _session_body(user, session, token)
    body.update({"success": True, "account_created": created})
    return jsonify(body), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({"user": {**user.to_dict(), "has_pin": user.has_pin}}), 200


@auth_bp.post("/change-pin")
@require_auth
def change_pin_route():
    data = request.get_json(silent=True) or {}
    try:
        auth_service.change_pin(g.current_user, data.get("current_pin"), data.get("new_pin"))
    except auth_service.InvalidPinError as e:
        return jsonify({"error": str(e)}), 401
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to change PIN")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True}), 200


@auth_bp.post("/set-pin")
@require_auth
def set_pin_route():
    """Set the first PIN on an account created through OTP verification."""
    data = request.get_json(silent=True) or {}
    try:
        auth_service.set_initial_pin(g.current_user, data.get("pin"))
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to set PIN")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"success": True}), 200
