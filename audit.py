"""
Audit trail helpers.

``log_action`` ADDS an AuditLogORM row to the given session; the caller owns
the transaction (commit/rollback), so the entry is written together with the
change it describes. Entries are never updated or deleted.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from orm import AssetORM, AuditLogORM, UserORM

ENTITY_TYPES = {
    "AssetORM": "ASSET",
    "AssetItemORM": "ASSET_ITEM",
    "UserORM": "USER",
    "DepartmentORM": "DEPARTMENT",
}


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bytes):
        return None
    return value


def serialize_model(instance: Any) -> dict[str, Any]:
    """
    Snapshot the scalar columns of an ORM instance as a JSON-safe dict.

    Assets also carry their line items, since those are part of the record
    as far as a reviewer is concerned.
    """
    mapper = inspect(instance).mapper
    data = {attr.key: _json_safe(getattr(instance, attr.key)) for attr in mapper.column_attrs}
    if isinstance(instance, AssetORM):
        data["items"] = [serialize_model(i) for i in instance.items]
    return data


def log_action(
    db: Session,
    entity: Any,
    action: str,
    *,
    actor: UserORM,
    reason: str,
    officer_name: Optional[str] = None,
    before: Optional[dict[str, Any]] = None,
    after: Optional[dict[str, Any]] = None,
    entity_type: Optional[str] = None,
) -> AuditLogORM:
    entity_id = getattr(entity, "id", None)
    if entity_id is None:
        raise ValueError("log_action entity must have an 'id' attribute")

    entry = AuditLogORM(
        id=str(uuid4()),
        action=action,
        entity_type=entity_type or ENTITY_TYPES[entity.__class__.__name__],
        entity_id=str(entity_id),
        user_id=actor.id,
        reason=reason,
        officer_name=officer_name,
        old_data=before,
        new_data=after,
        timestamp=datetime.now(timezone.utc),
    )
    db.add(entry)
    return entry
