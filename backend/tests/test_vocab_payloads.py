"""Canonical vocabularies and the tagged JSON payload variants."""

import pytest

from maurigifts.payloads import ProductMeta, NotificationPayload
from maurigifts.validation import ValidationError
from maurigifts.vocab import (
    PAYMENT_PROVIDERS,
    TERMINAL_ORDER_STATUSES,
    payment_provider_from_label,
    payment_provider_display_name,
)


class TestPaymentProviders:

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("bankily", "bankily"),
            ("BANKILY", "bankily"),
            (" Sedad ", "sidad"),
            ("بنكيلي", "bankily"),
            ("BimBank", "bimbank"),
            ("paypal", None),
            ("", None),
            (None, None),
            (42, None),
        ],
    )
    def test_label_mapping(self, label, expected):
        assert payment_provider_from_label(label) == expected

    def test_every_provider_has_a_display_name(self):
        for provider in PAYMENT_PROVIDERS:
            assert payment_provider_from_label(payment_provider_display_name(provider)) == provider

    def test_terminal_statuses(self):
        assert TERMINAL_ORDER_STATUSES == {"completed", "rejected"}


class TestProductMeta:

    def test_known_and_extra_keys(self):
        meta = ProductMeta.from_dict({"title": "60 UC", "amount": 60, "currency": "UC", "region": "MENA"})
        assert meta.title == "60 UC"
        assert meta.amount == 60
        assert meta.extra == {"region": "MENA"}
        assert meta.to_dict() == {"title": "60 UC", "amount": 60, "currency": "UC", "region": "MENA"}

    def test_none_is_empty(self):
        assert ProductMeta.from_dict(None).to_dict() == {}

    @pytest.mark.parametrize("data", ["x", [1], {"title": {"nested": 1}}, {"amount": True}])
    def test_rejects_bad_shapes(self, data):
        with pytest.raises(ValidationError):
            ProductMeta.from_dict(data)


class TestNotificationPayload:

    def test_drops_unset_fields(self):
        payload = NotificationPayload(kind=NotificationPayload.ORDER_SUBMITTED, order_id=7)
        assert payload.to_dict() == {"kind": "order_submitted", "order_id": 7}

    def test_unknown_kind_preserved(self):
        payload = NotificationPayload.from_dict({"kind": "promo", "campaign": "eid"})
        assert payload.kind == "promo"
        assert payload.to_dict() == {"kind": "promo", "campaign": "eid"}
