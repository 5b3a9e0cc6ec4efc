# backend/maurigifts/routes/system.py
"""
System health and receipt file endpoints.

Health checks cover the database, the session table and the WhatsApp relay
configuration. Receipt images are served from RECEIPTS_DIR under the same
prefix as RECEIPTS_PUBLIC_URL's default.
"""

import time
from flask import Blueprint, current_app, send_from_directory
from ..extensions import db
from ..models import User, Order, SessionToken
from ..services import whatsapp_service
from ..services.storage_service import receipts_root
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        order_count = db.session.query(Order).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "orders": order_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        now = utcnow()
        active_sessions = db.session.query(SessionToken).filter(SessionToken.expires_at > now).count()
        expired_sessions = db.session.query(SessionToken).filter(SessionToken.expires_at <= now).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "active_sessions": active_sessions,
                "expired_pending_cleanup": expired_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Session service health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Session service error"
        }


def check_relay_health() -> dict:
    """Configuration only; the relay is never called from a health probe."""
    if whatsapp_service.relay_configured():
        return {"status": "healthy"}
    return {
        "status": "degraded",
        "warning": "WhatsApp relay not configured; OTP codes are stored but not delivered",
    }


@system_bp.get("/api/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (degraded is still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    session_health = check_session_service_health()
    relay_health = check_relay_health()

    all_checks = [database_health, session_health, relay_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "session_service": session_health,
            "whatsapp_relay": relay_health,
        }
    }

    return response, http_status


@system_bp.get("/receipts/<path:key>")
def receipt_file(key: str):
    # send_from_directory rejects keys that escape the receipts root
    return send_from_directory(receipts_root(), key)
