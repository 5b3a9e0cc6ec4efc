"""
Authentication tests.

Verifies:
- Signup creates exactly one user and one session; no PIN in responses
- PIN stored as bcrypt hash, login by phone + PIN
- Expired tokens fail exactly like unknown tokens
- Admin routes answer non-admins with 403 and the same body as 401
- PIN change / first PIN after OTP provisioning
"""

from datetime import timedelta

import pytest

from conftest import auth_headers
from maurigifts.extensions import db
from maurigifts.models import User, SessionToken
from maurigifts.services import auth_service, session_service
from maurigifts.time_utils import utcnow


def _assert_no_pin(payload):
    assert "pin" not in payload
    assert "pin_hash" not in payload


class TestSignup:

    def test_signup_creates_one_user_and_one_session(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "name": "Aicha", "phone_number": "22334455", "pin": "1234",
        })
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["token"]
        assert len(body["token"]) == 64
        assert body["user"]["phone_number"] == "22334455"
        _assert_no_pin(body["user"])

        assert db_session.query(User).count() == 1
        assert db_session.query(SessionToken).count() == 1

    def test_signup_reports_otp_not_sent_without_relay(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "name": "Aicha", "phone_number": "22334455", "pin": "1234",
        })
        assert resp.status_code == 201
        assert resp.get_json()["otp_sent"] is False

    def test_pin_is_hashed_at_rest(self, client, db_session):
        client.post("/api/auth/signup", json={
            "name": "Aicha", "phone_number": "22334455", "pin": "1234",
        })
        user = db_session.query(User).filter_by(phone_number="22334455").one()
        assert user.pin_hash != "1234"
        assert user.pin_hash.startswith("$2")

    def test_duplicate_phone_is_conflict(self, client, user):
        resp = client.post("/api/auth/signup", json={
            "name": "Someone", "phone_number": user.phone_number, "pin": "9999",
        })
        assert resp.status_code == 409
        assert db.session.query(User).count() == 1

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "A", "phone_number": "2233445", "pin": "1234"},
            {"name": "A", "phone_number": "223344556", "pin": "1234"},
            {"name": "A", "phone_number": "2233445a", "pin": "1234"},
            {"name": "A", "phone_number": "22334455", "pin": "123"},
            {"name": "A", "phone_number": "22334455", "pin": "12345"},
            {"name": "", "phone_number": "22334455", "pin": "1234"},
            {"phone_number": "22334455", "pin": "1234"},
        ],
    )
    def test_invalid_signup_input(self, client, db_session, payload):
        resp = client.post("/api/auth/signup", json=payload)
        assert resp.status_code == 400
        assert "error" in resp.get_json()
        assert db_session.query(User).count() == 0
        assert db_session.query(SessionToken).count() == 0


class TestLogin:

    def test_login_success(self, client, user):
        resp = client.post("/api/auth/login", json={"phone_number": "22334455", "pin": "1234"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["user"]["id"] == user.id
        _assert_no_pin(body["user"])

    def test_wrong_pin(self, client, user):
        resp = client.post("/api/auth/login", json={"phone_number": "22334455", "pin": "0000"})
        assert resp.status_code == 401

    def test_unknown_phone_same_as_wrong_pin(self, client, user):
        wrong_pin = client.post("/api/auth/login", json={"phone_number": "22334455", "pin": "0000"})
        unknown = client.post("/api/auth/login", json={"phone_number": "99999999", "pin": "1234"})
        assert wrong_pin.status_code == unknown.status_code == 401
        assert wrong_pin.get_json() == unknown.get_json()

    def test_numeric_pin_gets_401(self, client, user):
        resp = client.post("/api/auth/login", json={"phone_number": "22334455", "pin": 1234})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid phone number or PIN"}

    def test_each_login_mints_new_session(self, client, user):
        first = client.post("/api/auth/login", json={"phone_number": "22334455", "pin": "1234"})
        second = client.post("/api/auth/login", json={"phone_number": "22334455", "pin": "1234"})
        assert first.get_json()["token"] != second.get_json()["token"]

        # Older session stays valid
        resp = client.get("/api/auth/me", headers=auth_headers(first.get_json()["token"]))
        assert resp.status_code == 200

    def test_session_expires_thirty_days_after_creation(self, app, user):
        session, _ = session_service.create_session(user.id)
        assert session.expires_at - session.created_at == timedelta(days=30)


class TestSessionGate:

    def test_missing_token(self, client, db_session):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Not authorized"}

    def test_expired_token_indistinguishable_from_unknown(self, client, user):
        session, token = session_service.create_session(user.id)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        expired = client.get("/api/auth/me", headers=auth_headers(token))
        unknown = client.get("/api/auth/me", headers=auth_headers("f" * 64))

        assert expired.status_code == unknown.status_code == 401
        assert expired.get_json() == unknown.get_json()

    def test_validate_session_is_read_only(self, app, user):
        session, token = session_service.create_session(user.id)
        before = session.expires_at
        context = session_service.validate_session(token)
        assert context.user_id == user.id
        assert context.role == "user"
        db.session.refresh(session)
        assert session.expires_at == before

    def test_me_strips_pin(self, client, user, user_token):
        resp = client.get("/api/auth/me", headers=auth_headers(user_token))
        body = resp.get_json()["user"]
        _assert_no_pin(body)
        assert body["has_pin"] is True

    def test_cleanup_expired_sessions(self, app, user):
        expired, _ = session_service.create_session(user.id)
        expired.expires_at = utcnow() - timedelta(days=1)
        db.session.commit()
        session_service.create_session(user.id)

        assert session_service.cleanup_expired_sessions() == 1
        assert db.session.query(SessionToken).count() == 1


class TestAdminGate:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/orders"),
            ("GET", "/api/admin/users"),
            ("GET", "/api/admin/audit-logs"),
            ("POST", "/api/admin/orders/1/approve"),
            ("POST", "/api/admin/orders/1/reject"),
            ("POST", "/api/admin/products"),
            ("POST", "/api/admin/settings"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path, json={})
        assert resp.status_code == 401

    def test_non_admin_forbidden_with_same_message(self, client, user_token):
        forbidden = client.get("/api/admin/orders", headers=auth_headers(user_token))
        unauthenticated = client.get("/api/admin/orders")
        assert forbidden.status_code == 403
        assert forbidden.get_json() == unauthenticated.get_json() == {"error": "Not authorized"}

    def test_admin_allowed(self, client, admin_token):
        resp = client.get("/api/admin/orders", headers=auth_headers(admin_token))
        assert resp.status_code == 200


class TestPinChanges:

    def test_change_pin(self, client, user, user_token):
        resp = client.post("/api/auth/change-pin", headers=auth_headers(user_token), json={
            "current_pin": "1234", "new_pin": "8765",
        })
        assert resp.status_code == 200

        assert client.post("/api/auth/login", json={"phone_number": "22334455", "pin": "1234"}).status_code == 401
        assert client.post("/api/auth/login", json={"phone_number": "22334455", "pin": "8765"}).status_code == 200

    def test_change_pin_wrong_current(self, client, user_token):
        resp = client.post("/api/auth/change-pin", headers=auth_headers(user_token), json={
            "current_pin": "0000", "new_pin": "8765",
        })
        assert resp.status_code == 401

    def test_change_pin_numeric_current(self, client, user, user_token):
        resp = client.post("/api/auth/change-pin", headers=auth_headers(user_token), json={
            "current_pin": 1234, "new_pin": "8765",
        })
        assert resp.status_code == 401
        assert auth_service.verify_pin("1234", user.pin_hash)

    def test_change_pin_malformed_new(self, client, user_token):
        resp = client.post("/api/auth/change-pin", headers=auth_headers(user_token), json={
            "current_pin": "1234", "new_pin": "87",
        })
        assert resp.status_code == 400

    def test_set_pin_only_when_missing(self, client, user_token):
        resp = client.post("/api/auth/set-pin", headers=auth_headers(user_token), json={"pin": "1111"})
        assert resp.status_code == 409

    def test_account_without_pin_cannot_pin_login(self, client, db_session):
        user = auth_service.create_user("User 55667788", "55667788", None)
        assert not user.has_pin
        assert auth_service.authenticate("55667788", "0000") is None

        _, token = session_service.create_session(user.id)
        resp = client.post("/api/auth/set-pin", headers=auth_headers(token), json={"pin": "2468"})
        assert resp.status_code == 200
        assert client.post("/api/auth/login", json={"phone_number": "55667788", "pin": "2468"}).status_code == 200
