"""
Admin catalog management tests.

Verifies:
- create then list round-trips name, sku, price_mru and meta
- every mutation appends exactly one audit row
- referenced products/categories cannot be deleted
- unknown entities / actions / fields are rejected
"""

import pytest

from conftest import auth_headers
from maurigifts.extensions import db
from maurigifts.models import AuditLog, Product, Category


def _manage(client, token, entity, action, item_key=None, item=None):
    body = {"action": action}
    if item_key is not None:
        body[item_key] = item
    return client.post(f"/api/admin/{entity}", headers=auth_headers(token), json=body)


class TestProducts:

    def test_create_then_list_round_trip(self, client, admin_token, category):
        meta = {"title": "100 Diamonds", "amount": 100, "currency": "DIAMOND", "region": "MENA"}
        created = _manage(client, admin_token, "products", "create", "product", {
            "category_id": category.id,
            "name": "Free Fire 100",
            "sku": "FF-100",
            "price_mru": 300,
            "meta": meta,
        })
        assert created.status_code == 201
        product_id = created.get_json()["product"]["id"]

        listed = _manage(client, admin_token, "products", "list").get_json()["products"]
        match = next(p for p in listed if p["id"] == product_id)
        assert match["name"] == "Free Fire 100"
        assert match["sku"] == "FF-100"
        assert match["price_mru"] == 300
        assert match["meta"] == meta
        assert match["category"]["name"] == category.name

    def test_create_writes_audit_row(self, client, admin, admin_token, category):
        created = _manage(client, admin_token, "products", "create", "product", {
            "category_id": category.id, "name": "Card", "sku": "C-1", "price_mru": 10,
        })
        audit = db.session.query(AuditLog).filter_by(action="create_product").one()
        assert audit.actor_id == admin.id
        assert audit.target_type == "product"
        assert audit.target_id == created.get_json()["product"]["id"]

    def test_update(self, client, admin_token, product):
        resp = _manage(client, admin_token, "products", "update", "product", {
            "id": product.id, "price_mru": 500, "active": False,
        })
        assert resp.status_code == 200
        body = resp.get_json()["product"]
        assert body["price_mru"] == 500
        assert body["active"] is False
        assert db.session.query(AuditLog).filter_by(action="update_product", target_id=product.id).count() == 1

    def test_delete_unreferenced(self, client, admin_token, product):
        resp = _manage(client, admin_token, "products", "delete", "product", {"id": product.id})
        assert resp.status_code == 200
        assert resp.get_json() == {"success": True}
        db.session.expire_all()
        assert db.session.get(Product, product.id) is None
        assert db.session.query(AuditLog).filter_by(action="delete_product").count() == 1

    def test_delete_product_with_orders_conflicts(self, client, admin_token, order, product):
        resp = _manage(client, admin_token, "products", "delete", "product", {"id": product.id})
        assert resp.status_code == 409
        db.session.expire_all()
        assert db.session.get(Product, product.id) is not None
        assert db.session.query(AuditLog).filter_by(action="delete_product").count() == 0

    def test_duplicate_sku_conflicts(self, client, admin_token, product, category):
        resp = _manage(client, admin_token, "products", "create", "product", {
            "category_id": category.id, "name": "Copy", "sku": product.sku, "price_mru": 10,
        })
        assert resp.status_code == 409
        assert db.session.query(AuditLog).count() == 0

    @pytest.mark.parametrize(
        "item",
        [
            {"name": "No category", "sku": "X", "price_mru": 10},
            {"category_id": 999, "name": "Bad category", "sku": "X", "price_mru": 10},
            {"category_id": 10 ** 30, "name": "Huge category", "sku": "X", "price_mru": 10},
            {"category_id": None, "name": "Null category", "sku": "X", "price_mru": 10},
            {"name": "Zero price", "sku": "X", "price_mru": 0},
            {"name": "Decimal", "sku": "X", "price_mru": 10.5},
            {"name": "Meta", "sku": "X", "price_mru": 10, "meta": "oops"},
            {"name": "Extra", "sku": "X", "price_mru": 10, "store_id": 1},
        ],
    )
    def test_invalid_create(self, client, admin_token, category, item):
        item = {**item}
        if "category_id" not in item and item["name"] != "No category":
            item["category_id"] = category.id
        resp = _manage(client, admin_token, "products", "create", "product", item)
        assert resp.status_code == 400
        assert db.session.query(Product).count() == 0

    def test_update_missing_id(self, client, admin_token, product):
        resp = _manage(client, admin_token, "products", "update", "product", {"price_mru": 5})
        assert resp.status_code == 400

    def test_update_unknown_id(self, client, admin_token, db_session):
        resp = _manage(client, admin_token, "products", "update", "product", {"id": 999, "price_mru": 5})
        assert resp.status_code == 404

    def test_update_out_of_range_id(self, client, admin_token, db_session):
        resp = _manage(client, admin_token, "products", "update", "product", {"id": 10 ** 30, "price_mru": 5})
        assert resp.status_code == 400


class TestOtherEntities:

    def test_category_lifecycle(self, client, admin_token, db_session):
        created = _manage(client, admin_token, "categories", "create", "category", {
            "name": "Streaming", "image_url": "https://cdn.test/s.png",
        })
        assert created.status_code == 201
        category_id = created.get_json()["category"]["id"]

        listed = _manage(client, admin_token, "categories", "list").get_json()["categories"]
        assert [c["name"] for c in listed] == ["Streaming"]

        assert _manage(client, admin_token, "categories", "delete", "category", {"id": category_id}).status_code == 200
        assert db_session.query(Category).count() == 0

    def test_category_with_products_cannot_be_deleted(self, client, admin_token, product, category):
        resp = _manage(client, admin_token, "categories", "delete", "category", {"id": category.id})
        assert resp.status_code == 409

    def test_category_image_must_be_url(self, client, admin_token, db_session):
        resp = _manage(client, admin_token, "categories", "create", "category", {
            "name": "Bad", "image_url": "not a url",
        })
        assert resp.status_code == 400

    def test_payment_method_status(self, client, admin_token, db_session):
        ok = _manage(client, admin_token, "payment-methods", "create", "payment_method", {
            "name": "Masrvi", "status": "inactive",
        })
        assert ok.status_code == 201
        assert ok.get_json()["payment_method"]["status"] == "inactive"

        bad = _manage(client, admin_token, "payment-methods", "create", "payment_method", {
            "name": "Klik", "status": "paused",
        })
        assert bad.status_code == 400

    def test_product_guide_lifecycle(self, client, admin, admin_token, product):
        created = _manage(client, admin_token, "product-guides", "create", "guide", {
            "product_id": product.id,
            "step_number": 1,
            "description": "Open the game and go to the shop",
            "support_link": "https://help.test/pubg",
        })
        assert created.status_code == 201
        guide = created.get_json()["guide"]
        assert guide["product"] == {"id": product.id, "name": product.name}

        dup = _manage(client, admin_token, "product-guides", "create", "guide", {
            "product_id": product.id, "step_number": 1,
        })
        assert dup.status_code == 409

        bad_step = _manage(client, admin_token, "product-guides", "create", "guide", {
            "product_id": product.id, "step_number": 0,
        })
        assert bad_step.status_code == 400

        actions = [a.action for a in db.session.query(AuditLog).filter_by(actor_id=admin.id).all()]
        assert actions == ["create_product_guide"]


class TestDispatch:

    def test_unknown_entity(self, client, admin_token, db_session):
        resp = client.post("/api/admin/widgets", headers=auth_headers(admin_token), json={"action": "list"})
        assert resp.status_code == 404

    def test_unknown_action(self, client, admin_token, db_session):
        resp = client.post("/api/admin/products", headers=auth_headers(admin_token), json={"action": "purge"})
        assert resp.status_code == 400

    def test_item_must_be_object(self, client, admin_token, db_session):
        resp = client.post("/api/admin/products", headers=auth_headers(admin_token),
                           json={"action": "create", "product": ["x"]})
        assert resp.status_code == 400

    def test_non_admin_forbidden(self, client, user_token, db_session):
        resp = client.post("/api/admin/products", headers=auth_headers(user_token), json={"action": "list"})
        assert resp.status_code == 403


class TestUsersAndAudit:

    def test_list_users_with_order_counts(self, client, admin_token, order, user, admin):
        users = client.get("/api/admin/users", headers=auth_headers(admin_token)).get_json()["users"]
        by_id = {u["id"]: u for u in users}
        assert by_id[user.id]["order_count"] == 1
        assert by_id[admin.id]["order_count"] == 0
        assert all("pin_hash" not in u for u in users)

    def test_audit_log_listing(self, client, admin_token, category):
        _manage(client, admin_token, "categories", "update", "category", {"id": category.id, "name": "Games"})
        logs = client.get(
            "/api/admin/audit-logs?target_type=category",
            headers=auth_headers(admin_token),
        ).get_json()["audit_logs"]
        assert [entry["action"] for entry in logs] == ["update_category"]
        assert logs[0]["meta"] == {"name": "Games"}
