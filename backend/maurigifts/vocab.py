# Overview: Canonical closed vocabularies shared by models, services, routes and the client.

"""
Single source of truth for every string-keyed enumeration in the system.

Routes validate against these sets, models default from them, and the
client library imports them instead of re-declaring the values. Any
boundary that speaks a different vocabulary (e.g. payment provider
display names) goes through an explicit mapping table defined here.
"""

from __future__ import annotations


# Roles
ROLE_USER = "user"
ROLE_ADMIN = "admin"
VALID_ROLES = frozenset({ROLE_USER, ROLE_ADMIN})


# Order lifecycle
ORDER_AWAITING_PAYMENT = "awaiting_payment"
ORDER_UNDER_REVIEW = "under_review"
ORDER_COMPLETED = "completed"
ORDER_REJECTED = "rejected"

ORDER_STATUSES = (
    ORDER_AWAITING_PAYMENT,
    ORDER_UNDER_REVIEW,
    ORDER_COMPLETED,
    ORDER_REJECTED,
)
VALID_ORDER_STATUSES = frozenset(ORDER_STATUSES)
TERMINAL_ORDER_STATUSES = frozenset({ORDER_COMPLETED, ORDER_REJECTED})


# Mobile-money providers accepted for manual transfers
PAYMENT_BANKILY = "bankily"
PAYMENT_SIDAD = "sidad"
PAYMENT_MASRVI = "masrvi"
PAYMENT_BIMBANK = "bimbank"
PAYMENT_AMANATI = "amanati"
PAYMENT_KLIK = "klik"

PAYMENT_PROVIDERS = (
    PAYMENT_BANKILY,
    PAYMENT_SIDAD,
    PAYMENT_MASRVI,
    PAYMENT_BIMBANK,
    PAYMENT_AMANATI,
    PAYMENT_KLIK,
)
VALID_PAYMENT_PROVIDERS = frozenset(PAYMENT_PROVIDERS)

# Display name -> provider. Both the Latin and the Arabic storefront labels
# are accepted because admin-managed payment method rows use either.
PAYMENT_PROVIDER_DISPLAY_NAMES = {
    PAYMENT_BANKILY: ("Bankily", "بنكيلي"),
    PAYMENT_SIDAD: ("Sedad", "السداد"),
    PAYMENT_MASRVI: ("Masrvi", "مصرفي"),
    PAYMENT_BIMBANK: ("BimBank", "بيم بنك"),
    PAYMENT_AMANATI: ("Amanati", "أمانتي"),
    PAYMENT_KLIK: ("Klik", "كليك"),
}

_DISPLAY_TO_PROVIDER = {
    label.casefold(): provider
    for provider, labels in PAYMENT_PROVIDER_DISPLAY_NAMES.items()
    for label in labels
}


def payment_provider_from_label(label: str | None) -> str | None:
    """
    Resolve a provider key from either its canonical key or a display label.

    Returns None for anything outside the closed set.
    """
    if not isinstance(label, str) or not label:
        return None
    normalized = label.strip().casefold()
    if normalized in VALID_PAYMENT_PROVIDERS:
        return normalized
    return _DISPLAY_TO_PROVIDER.get(normalized)


def payment_provider_display_name(provider: str) -> str:
    return PAYMENT_PROVIDER_DISPLAY_NAMES[provider][0]


# Admin-managed payment method rows
PAYMENT_METHOD_ACTIVE = "active"
PAYMENT_METHOD_INACTIVE = "inactive"
VALID_PAYMENT_METHOD_STATUSES = frozenset({PAYMENT_METHOD_ACTIVE, PAYMENT_METHOD_INACTIVE})


# Receipt evidence
RECEIPT_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp"})


# Storefront settings readable without a session
PUBLIC_SETTING_KEYS = ("payment_number", "app_name", "app_version")


# Admin CRUD actions
ACTION_LIST = "list"
ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"
ACTION_GET = "get"
CRUD_ACTIONS = frozenset({ACTION_LIST, ACTION_CREATE, ACTION_UPDATE, ACTION_DELETE})
SETTINGS_ACTIONS = frozenset({ACTION_GET, ACTION_UPDATE})
