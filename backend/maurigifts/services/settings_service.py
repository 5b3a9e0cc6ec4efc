# Overview: Service-layer operations for storefront settings (JSON-encoded key/value rows).

from __future__ import annotations

import json
from typing import Any

from ..extensions import db
from ..models import Setting
from ..validation import ValidationError
from ..vocab import ACTION_GET, ACTION_UPDATE, SETTINGS_ACTIONS, PUBLIC_SETTING_KEYS
from . import audit_service


MAX_KEY_LENGTH = 128


def _decode(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        # Rows written by hand outside the API may hold a bare string
        return raw


def get_settings() -> dict[str, Any]:
    rows = db.session.query(Setting).order_by(Setting.key.asc()).all()
    return {row.key: _decode(row.value) for row in rows}


def get_public_settings() -> dict[str, Any]:
    """Subset of settings the storefront may read without a session."""
    rows = db.session.query(Setting).filter(Setting.key.in_(PUBLIC_SETTING_KEYS)).all()
    return {row.key: _decode(row.value) for row in rows}


def update_settings(*, admin_id: int, settings: dict | None) -> None:
    """
    Upsert every key in `settings` (values stored JSON-encoded) and append
    one update_settings audit row for the whole batch.
    """
    if not isinstance(settings, dict) or not settings:
        raise ValidationError("settings must be a non-empty object")
    for key in settings:
        if not isinstance(key, str) or not key.strip() or len(key) > MAX_KEY_LENGTH:
            raise ValidationError(f"Invalid setting key: {key!r}")

    try:
        existing = {
            row.key: row
            for row in db.session.query(Setting).filter(Setting.key.in_(list(settings))).all()
        }
        for key, value in settings.items():
            encoded = json.dumps(value)
            row = existing.get(key)
            if row is None:
                db.session.add(Setting(key=key, value=encoded, updated_by_user_id=admin_id))
            else:
                row.value = encoded
                row.updated_by_user_id = admin_id

        audit_service.append_audit_log(
            actor_id=admin_id,
            action="update_settings",
            target_type="settings",
            meta=settings,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def manage(*, admin_id: int, action: str | None, settings: dict | None) -> dict:
    if action not in SETTINGS_ACTIONS:
        raise ValidationError(f"action must be one of: {', '.join(sorted(SETTINGS_ACTIONS))}")
    if action == ACTION_GET:
        return {"settings": get_settings()}
    if action == ACTION_UPDATE:
        update_settings(admin_id=admin_id, settings=settings)
        return {"success": True}
    raise ValidationError("Invalid action")
