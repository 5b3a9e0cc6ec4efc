"""Public catalog reads and purchase-gated product guides."""

from conftest import auth_headers
from maurigifts.extensions import db
from maurigifts.models import Category, Product, PaymentMethod, ProductGuide
from maurigifts.services import order_service


class TestCatalog:

    def test_products_grouped_by_category_and_sorted_by_price(self, client, db_session):
        gaming = Category(name="Gaming")
        cards = Category(name="Gift Cards")
        db_session.add_all([gaming, cards])
        db_session.flush()
        db_session.add_all([
            Product(category_id=gaming.id, name="PUBG 325", sku="P-325", price_mru=2000),
            Product(category_id=gaming.id, name="PUBG 60", sku="P-60", price_mru=450),
            Product(category_id=cards.id, name="iTunes 10", sku="IT-10", price_mru=4200),
            Product(category_id=cards.id, name="Hidden", sku="HID", price_mru=1, active=False),
        ])
        db_session.commit()

        body = client.get("/api/catalog/products").get_json()["products"]
        assert list(body) == ["Gaming", "Gift Cards"]
        assert [p["name"] for p in body["Gaming"]] == ["PUBG 60", "PUBG 325"]
        assert [p["name"] for p in body["Gift Cards"]] == ["iTunes 10"]

    def test_categories_with_active_product_counts(self, client, product, inactive_product, category):
        body = client.get("/api/catalog/categories").get_json()["categories"]
        assert body == [{**category.to_dict(), "product_count": 1}]

    def test_plain_categories_sorted_by_name(self, client, db_session):
        db_session.add_all([Category(name="Zeta"), Category(name="Alpha")])
        db_session.commit()
        body = client.get("/api/catalog/categories?plain=1").get_json()["categories"]
        assert [c["name"] for c in body] == ["Alpha", "Zeta"]
        assert "product_count" not in body[0]

    def test_only_active_payment_methods(self, client, payment_method, db_session):
        db_session.add(PaymentMethod(name="Amanati", status="inactive"))
        db_session.commit()
        body = client.get("/api/catalog/payment-methods").get_json()["payment_methods"]
        assert [m["name"] for m in body] == ["Bankily"]


class TestProductGuides:

    def _add_guides(self, product):
        db.session.add_all([
            ProductGuide(product_id=product.id, step_number=2, description="Redeem"),
            ProductGuide(product_id=product.id, step_number=1, description="Open the app"),
        ])
        db.session.commit()

    def test_requires_session(self, client, product):
        assert client.get(f"/api/catalog/products/{product.id}/guides").status_code == 401

    def test_forbidden_without_completed_order(self, client, user_token, order, product):
        self._add_guides(product)
        resp = client.get(f"/api/catalog/products/{product.id}/guides", headers=auth_headers(user_token))
        assert resp.status_code == 403

    def test_available_after_completion(self, client, admin, user_token, order, product):
        self._add_guides(product)
        order_service.approve_order(admin_id=admin.id, order_id=order.id, delivery_code="ABC123")

        resp = client.get(f"/api/catalog/products/{product.id}/guides", headers=auth_headers(user_token))
        assert resp.status_code == 200
        assert [g["step_number"] for g in resp.get_json()["guides"]] == [1, 2]

    def test_unknown_product(self, client, user_token):
        assert client.get("/api/catalog/products/999/guides", headers=auth_headers(user_token)).status_code == 404
