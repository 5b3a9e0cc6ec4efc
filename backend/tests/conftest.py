"""
Pytest fixtures for MauriGifts backend tests.

Provides an in-memory database, per-test table wipe, user / admin / catalog
fixtures and the Flask test client.
"""

import base64

import pytest
from maurigifts import create_app
from maurigifts.extensions import db
from maurigifts.models import Category, Product, PaymentMethod, Order
from maurigifts.services import auth_service, session_service
from maurigifts.vocab import PAYMENT_METHOD_ACTIVE, ORDER_UNDER_REVIEW


# Smallest byte strings that pass the receipt signature check
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 24


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'RECEIPTS_DIR': str(tmp_path_factory.mktemp('receipts')),
        'TWILIO_ACCOUNT_SID': None,
        'TWILIO_AUTH_TOKEN': None,
        'TWILIO_API_URL': None,
        'TWILIO_WHATSAPP_NUMBER': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def relay_configured(app):
    """Point the WhatsApp relay at a fake Twilio endpoint for one test."""
    keys = {
        'TWILIO_ACCOUNT_SID': 'AC123',
        'TWILIO_AUTH_TOKEN': 'secret',
        'TWILIO_API_URL': 'https://relay.test/2010-04-01/Accounts/AC123/Messages.json',
        'TWILIO_WHATSAPP_NUMBER': '+14155238886',
    }
    previous = {k: app.config.get(k) for k in keys}
    app.config.update(keys)
    yield keys
    app.config.update(previous)


@pytest.fixture(scope='function')
def user(db_session):
    """Regular storefront user with PIN 1234."""
    return auth_service.create_user("Aicha", "22334455", "1234")


@pytest.fixture(scope='function')
def other_user(db_session):
    return auth_service.create_user("Moussa", "33445566", "5678")


@pytest.fixture(scope='function')
def admin(db_session):
    return auth_service.create_admin("Store Admin", "44556677", "4321")


@pytest.fixture(scope='function')
def user_token(user):
    _, token = session_service.create_session(user.id)
    return token


@pytest.fixture(scope='function')
def other_user_token(other_user):
    _, token = session_service.create_session(other_user.id)
    return token


@pytest.fixture(scope='function')
def admin_token(admin):
    _, token = session_service.create_session(admin.id)
    return token


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Gaming", image_url="https://cdn.test/gaming.png")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def product(db_session, category):
    product = Product(
        category_id=category.id,
        name="PUBG 60 UC",
        sku="PUBG-60",
        price_mru=450,
        active=True,
        meta={"title": "60 UC", "amount": "60", "currency": "UC"},
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def inactive_product(db_session, category):
    product = Product(
        category_id=category.id,
        name="Retired card",
        sku="OLD-1",
        price_mru=100,
        active=False,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def payment_method(db_session):
    method = PaymentMethod(name="Bankily", status=PAYMENT_METHOD_ACTIVE)
    db_session.add(method)
    db_session.commit()
    return method


@pytest.fixture(scope='function')
def order(db_session, user, product):
    """Order under review owned by `user`."""
    order = Order(
        user_id=user.id,
        product_id=product.id,
        payment_method="bankily",
        payment_number="22334455",
        status=ORDER_UNDER_REVIEW,
    )
    db_session.add(order)
    db_session.commit()
    return order


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def receipt_body(data: bytes = PNG_BYTES, ext: str = "png") -> dict:
    return {"fileBase64": base64.b64encode(data).decode("ascii"), "fileExt": ext}
