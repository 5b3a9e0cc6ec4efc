# Overview: Service-layer operations for admin catalog management; action-dispatched CRUD with audit rows.

"""
Admin Entity Management

Each managed entity is described by an EntitySpec: its model, the
writable-field policy, extra business rules, and the names used on the
wire (request key, list key) and in audit rows.

Every mutation appends exactly one audit row ("<verb>_<audit_name>") in the
same transaction as the change.

Deleting a product or category that is still referenced (by orders, or by
products) fails with ConflictError; deactivate the product instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Category, Product, PaymentMethod, ProductGuide, Order
from ..payloads import ProductMeta
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    NotFoundError,
    validate_payload,
    require_int,
    enforce_rules_product,
    enforce_rules_category,
    enforce_rules_payment_method,
    enforce_rules_product_guide,
)
from ..vocab import ACTION_LIST, ACTION_CREATE, ACTION_UPDATE, ACTION_DELETE, CRUD_ACTIONS
from . import audit_service


@dataclass(frozen=True)
class EntitySpec:
    model: type
    policy: ModelValidationPolicy
    item_key: str      # request/response key for one entity ("product")
    list_key: str      # response key for the list action ("products")
    audit_name: str    # suffix of the audit action ("create_product")
    rules: Callable[[dict], None]
    order_by: tuple = field(default_factory=tuple)


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"category_id", "name", "sku", "price_mru", "active", "meta"},
    required_on_create={"category_id", "name", "sku", "price_mru"},
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "image_url"},
    required_on_create={"name"},
)

PAYMENT_METHOD_POLICY = ModelValidationPolicy(
    writable_fields={"name", "logo_url", "status"},
    required_on_create={"name"},
)

PRODUCT_GUIDE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "step_number", "image_url", "description", "support_link"},
    required_on_create={"product_id", "step_number"},
)


ENTITIES: dict[str, EntitySpec] = {
    "products": EntitySpec(
        model=Product,
        policy=PRODUCT_POLICY,
        item_key="product",
        list_key="products",
        audit_name="product",
        rules=enforce_rules_product,
        order_by=(Product.created_at.desc(), Product.price_mru.asc(), Product.id.desc()),
    ),
    "categories": EntitySpec(
        model=Category,
        policy=CATEGORY_POLICY,
        item_key="category",
        list_key="categories",
        audit_name="category",
        rules=enforce_rules_category,
        order_by=(Category.name.asc(),),
    ),
    "payment-methods": EntitySpec(
        model=PaymentMethod,
        policy=PAYMENT_METHOD_POLICY,
        item_key="payment_method",
        list_key="payment_methods",
        audit_name="payment_method",
        rules=enforce_rules_payment_method,
        order_by=(PaymentMethod.name.asc(),),
    ),
    "product-guides": EntitySpec(
        model=ProductGuide,
        policy=PRODUCT_GUIDE_POLICY,
        item_key="guide",
        list_key="guides",
        audit_name="product_guide",
        rules=enforce_rules_product_guide,
        order_by=(ProductGuide.product_id.asc(), ProductGuide.step_number.asc()),
    ),
}


def get_entity_spec(entity: str) -> EntitySpec:
    spec = ENTITIES.get(entity)
    if spec is None:
        raise NotFoundError(f"Unknown entity: {entity}")
    return spec


def _serialize(spec: EntitySpec, row) -> dict:
    if spec.model is Product:
        return row.to_dict(include_category=True)
    if spec.model is ProductGuide:
        return row.to_dict(include_product=True)
    return row.to_dict()


def _normalize_patch(spec: EntitySpec, patch: dict) -> dict:
    spec.rules(patch)
    if spec.model is Product:
        if "meta" in patch:
            patch["meta"] = ProductMeta.from_dict(patch["meta"]).to_dict() if patch["meta"] is not None else None
        if "category_id" in patch and db.session.get(Category, patch["category_id"]) is None:
            raise ValidationError("category_id does not reference an existing category")
    if spec.model is ProductGuide:
        if "product_id" in patch and db.session.get(Product, patch["product_id"]) is None:
            raise ValidationError("product_id does not reference an existing product")
    return patch


def _load(spec: EntitySpec, entity_id) -> object:
    row = db.session.get(spec.model, require_int(entity_id, "id"))
    if row is None:
        raise NotFoundError(f"{spec.item_key.replace('_', ' ').capitalize()} not found")
    return row


def _commit_or_conflict(spec: EntitySpec) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"{spec.item_key.replace('_', ' ').capitalize()} conflicts with an existing record")


def list_entities(entity: str) -> list[dict]:
    spec = get_entity_spec(entity)
    rows = db.session.query(spec.model).order_by(*spec.order_by).all()
    return [_serialize(spec, r) for r in rows]


def create_entity(*, admin_id: int, entity: str, payload: dict | None) -> dict:
    spec = get_entity_spec(entity)
    payload = dict(payload or {})
    payload.pop("id", None)

    patch = validate_payload(model=spec.model, payload=payload, policy=spec.policy, partial=False)
    patch = _normalize_patch(spec, patch)

    row = spec.model(**patch)
    db.session.add(row)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"{spec.item_key.replace('_', ' ').capitalize()} conflicts with an existing record")

    audit_service.append_audit_log(
        actor_id=admin_id,
        action=f"create_{spec.audit_name}",
        target_type=spec.audit_name,
        target_id=row.id,
        meta=patch,
    )
    _commit_or_conflict(spec)
    return _serialize(spec, row)


def update_entity(*, admin_id: int, entity: str, payload: dict | None) -> dict:
    spec = get_entity_spec(entity)
    payload = dict(payload or {})
    if payload.get("id") is None:
        raise ValidationError("id is required")
    row = _load(spec, payload.pop("id"))

    patch = validate_payload(model=spec.model, payload=payload, policy=spec.policy, partial=True)
    patch = _normalize_patch(spec, patch)

    for key, value in patch.items():
        setattr(row, key, value)

    audit_service.append_audit_log(
        actor_id=admin_id,
        action=f"update_{spec.audit_name}",
        target_type=spec.audit_name,
        target_id=row.id,
        meta=patch,
    )
    _commit_or_conflict(spec)
    return _serialize(spec, row)


def _ensure_deletable(spec: EntitySpec, row) -> None:
    if spec.model is Product:
        if db.session.query(Order.id).filter(Order.product_id == row.id).first():
            raise ConflictError("Product has orders; deactivate it instead")
        db.session.query(ProductGuide).filter(ProductGuide.product_id == row.id).delete(synchronize_session=False)
    if spec.model is Category:
        if db.session.query(Product.id).filter(Product.category_id == row.id).first():
            raise ConflictError("Category still has products")


def delete_entity(*, admin_id: int, entity: str, payload: dict | None) -> None:
    spec = get_entity_spec(entity)
    payload = payload or {}
    if payload.get("id") is None:
        raise ValidationError("id is required")
    row = _load(spec, payload["id"])

    _ensure_deletable(spec, row)
    target_id = row.id
    db.session.delete(row)

    audit_service.append_audit_log(
        actor_id=admin_id,
        action=f"delete_{spec.audit_name}",
        target_type=spec.audit_name,
        target_id=target_id,
        meta={},
    )
    _commit_or_conflict(spec)


def manage(*, admin_id: int, entity: str, action: str | None, payload: dict | None) -> dict:
    """
    Dispatch one admin action and build the response body.

    list   -> {<list_key>: [...]}
    create -> {<item_key>: {...}}
    update -> {<item_key>: {...}}
    delete -> {"success": True}
    """
    spec = get_entity_spec(entity)
    if action not in CRUD_ACTIONS:
        raise ValidationError(f"action must be one of: {', '.join(sorted(CRUD_ACTIONS))}")
    if payload is not None and not isinstance(payload, dict):
        raise ValidationError(f"{spec.item_key} must be an object")

    try:
        if action == ACTION_LIST:
            return {spec.list_key: list_entities(entity)}
        if action == ACTION_CREATE:
            return {spec.item_key: create_entity(admin_id=admin_id, entity=entity, payload=payload)}
        if action == ACTION_UPDATE:
            return {spec.item_key: update_entity(admin_id=admin_id, entity=entity, payload=payload)}
        if action == ACTION_DELETE:
            delete_entity(admin_id=admin_id, entity=entity, payload=payload)
            return {"success": True}
    except Exception:
        db.session.rollback()
        raise
    raise ValidationError("Invalid action")
