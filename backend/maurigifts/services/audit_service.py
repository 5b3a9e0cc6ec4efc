# Overview: Service-layer operations for the audit trail.

"""
Audit trail invariants

- Append-only: rows are never updated or deleted by the application.
- Rows are written inside the same DB transaction as the mutation they
  record; this module never commits.
"""

from __future__ import annotations

from ..extensions import db
from ..models import AuditLog


def append_audit_log(
    *,
    actor_id: int | None,
    action: str,
    target_type: str,
    target_id: int | None = None,
    meta: dict | None = None,
) -> AuditLog:
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        meta=meta or {},
    )
    db.session.add(entry)
    return entry


def list_audit_logs(
    *,
    target_type: str | None = None,
    target_id: int | None = None,
    limit: int = 100,
) -> list[AuditLog]:
    query = db.session.query(AuditLog)
    if target_type is not None:
        query = query.filter(AuditLog.target_type == target_type)
    if target_id is not None:
        query = query.filter(AuditLog.target_id == target_id)
    return query.order_by(AuditLog.id.desc()).limit(limit).all()
