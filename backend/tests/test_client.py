"""
ApiClient / StoreCache tests, driven in-process through httpx.WSGITransport.

Includes the end-to-end storefront scenario: signup, order, receipt, admin
approval, notification with the delivery code.
"""

import httpx
import pytest

from conftest import PNG_BYTES
from maurigifts.client import ApiClient, ApiError, StoreCache


@pytest.fixture
def api(app, db_session):
    client = ApiClient("http://storefront.test", transport=httpx.WSGITransport(app=app))
    yield client
    client.close()


@pytest.fixture
def admin_api(app, admin):
    client = ApiClient("http://storefront.test", transport=httpx.WSGITransport(app=app))
    client.login(admin.phone_number, "4321")
    yield client
    client.close()


class TestApiClient:

    def test_error_carries_status_and_message(self, api):
        with pytest.raises(ApiError) as exc:
            api.login("22334455", "1234")
        assert exc.value.status_code == 401
        assert exc.value.message == "Invalid phone number or PIN"

    def test_signup_adopts_token(self, api):
        api.signup("Aicha", "22334455", "1234")
        assert api.token
        assert api.me()["phone_number"] == "22334455"

    def test_logout_forgets_token(self, api, user):
        api.login("22334455", "1234")
        api.logout()
        with pytest.raises(ApiError) as exc:
            api.me()
        assert exc.value.status_code == 401


class TestStoreCache:

    def test_get_fetches_once_then_serves_cache(self, api, product):
        cache = StoreCache(api)
        first = cache.get("products")
        assert cache.is_cached("products")
        assert cache.get("products") is first

    def test_refresh_replaces_slice_wholesale(self, api, admin_api, category, product):
        cache = StoreCache(api)
        before = cache.get("products")

        admin_api.admin_manage("products", "update", "product", {"id": product.id, "active": False})
        assert cache.get("products") is before  # stale until refreshed

        after = cache.refresh("products")
        assert after == {}
        assert cache.get("products") is after

    def test_invalidate_drops_slice(self, api, category):
        cache = StoreCache(api)
        cache.get("categories")
        cache.invalidate("categories")
        assert not cache.is_cached("categories")

    def test_unknown_slice(self, api):
        cache = StoreCache(api)
        with pytest.raises(KeyError):
            cache.refresh("basket")
        with pytest.raises(KeyError):
            cache.invalidate("basket")

    def test_login_clears_previous_users_slices(self, api, user, other_user, order):
        cache = StoreCache(api)
        cache.login(user.phone_number, "1234")
        assert len(cache.get("orders")) == 1

        cache.login(other_user.phone_number, "5678")
        assert not cache.is_cached("orders")
        assert cache.get("orders") == []
        assert cache.get("user")["id"] == other_user.id


class TestStorefrontScenario:

    def test_purchase_to_delivery(self, api, admin_api, product, payment_method):
        cache = StoreCache(api)

        api.signup("Aicha", "22334455", "1234")
        api.logout()
        cache.login("22334455", "1234")

        grouped = cache.get("products")
        chosen = grouped["Gaming"][0]
        assert chosen["id"] == product.id
        methods = cache.get("payment_methods")

        order_id = cache.place_order(chosen["id"], methods[0]["name"], "22334455", PNG_BYTES, "png")

        orders = cache.get("orders")
        assert [o["id"] for o in orders] == [order_id]
        assert orders[0]["status"] == "under_review"
        assert orders[0]["receipt_path"].startswith(f"{order_id}/")
        assert cache.get("notifications")[0]["payload"]["kind"] == "order_submitted"

        pending = admin_api.admin_list_orders(status="under_review")
        assert [o["id"] for o in pending] == [order_id]
        admin_api.admin_approve_order(order_id, "ABC123")

        with pytest.raises(ApiError) as exc:
            admin_api.admin_approve_order(order_id, "ABC123")
        assert exc.value.status_code == 409

        cache.refresh("orders")
        completed = cache.get("orders")[0]
        assert completed["status"] == "completed"
        assert completed["delivery_code"] == "ABC123"

        notes = cache.refresh("notifications")
        assert len(notes) == 2
        assert notes[0]["payload"] == {"kind": "order_completed", "order_id": order_id, "delivery_code": "ABC123"}

        seen = cache.mark_notifications_seen()
        assert all(n["seen"] for n in seen)
        assert api.notifications()["unread_count"] == 0

    def test_rejected_order_cannot_be_reopened(self, api, admin_api, product):
        api.signup("Aicha", "22334455", "1234")
        order_id = api.create_order(product.id, "masrvi", "22334455")
        admin_api.admin_reject_order(order_id, "Transfer not found")

        with pytest.raises(ApiError) as exc:
            api.upload_receipt(order_id, PNG_BYTES, "png")
        assert exc.value.status_code == 409

        with pytest.raises(ApiError) as exc:
            admin_api.admin_reject_order(order_id, "again")
        assert exc.value.status_code == 409

        order = api.my_orders()[0]
        assert order["status"] == "rejected"
        assert order["admin_note"] == "Transfer not found"
