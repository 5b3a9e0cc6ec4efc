"""Storefront settings: JSON-encoded values, upsert, audit, public subset."""

from conftest import auth_headers
from maurigifts.extensions import db
from maurigifts.models import AuditLog, Setting


def _settings(client, token, action, settings=None):
    body = {"action": action}
    if settings is not None:
        body["settings"] = settings
    return client.post("/api/admin/settings", headers=auth_headers(token), json=body)


class TestAdminSettings:

    def test_update_then_get_preserves_types(self, client, admin_token, db_session):
        values = {
            "payment_number": "22001122",
            "maintenance_mode": False,
            "max_orders_per_day": 5,
            "support": {"whatsapp": "+22222001122"},
        }
        assert _settings(client, admin_token, "update", values).get_json() == {"success": True}
        assert _settings(client, admin_token, "get").get_json()["settings"] == values

    def test_update_upserts_existing_key(self, client, admin, admin_token, db_session):
        _settings(client, admin_token, "update", {"app_name": "MauriGifts"})
        _settings(client, admin_token, "update", {"app_name": "MauriGifts Pro"})

        assert db_session.query(Setting).filter_by(key="app_name").count() == 1
        assert _settings(client, admin_token, "get").get_json()["settings"]["app_name"] == "MauriGifts Pro"

        audits = db_session.query(AuditLog).filter_by(action="update_settings").all()
        assert len(audits) == 2
        assert all(a.actor_id == admin.id for a in audits)

    def test_rejects_empty_update(self, client, admin_token, db_session):
        assert _settings(client, admin_token, "update", {}).status_code == 400
        assert _settings(client, admin_token, "update").status_code == 400

    def test_rejects_unknown_action(self, client, admin_token, db_session):
        assert _settings(client, admin_token, "delete").status_code == 400

    def test_hand_written_plain_string_value(self, client, admin_token, db_session):
        db.session.add(Setting(key="app_version", value="1.2.0"))
        db.session.commit()
        assert _settings(client, admin_token, "get").get_json()["settings"] == {"app_version": "1.2.0"}


class TestPublicSettings:

    def test_only_public_keys_exposed(self, client, admin_token, db_session):
        _settings(client, admin_token, "update", {
            "payment_number": "22001122",
            "internal_note": "do not show",
        })
        body = client.get("/api/catalog/settings").get_json()
        assert body == {"settings": {"payment_number": "22001122"}}
