"""Staged update requests on assets: request, review, approve, reject."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

import crud
from audit import log_action, serialize_model
from bill_files import delete_bill, store_bill
from db import persist
from errors import ConflictError, ValidationFailed
from models import (
    Asset,
    AssetFields,
    Item,
    PendingUpdate,
    StagedItemDelete,
    StagedItemEdit,
    UpdateRequestIn,
)
from orm import AssetORM, UserORM
from totals import force_totals

logger = logging.getLogger(__name__)

ITEM_FIELDS = {"items", "delete_item"}
BILL_FIELD = "bill_file_id"
REQUESTABLE_FIELDS = set(AssetFields.model_fields) | ITEM_FIELDS
REQUIRED_FIELDS = {
    "department_id",
    "category",
    "type",
    "vendor_address",
    "contact_number",
    "email",
    "bill_no",
    "bill_date",
}


def _unique(names: list[str]) -> list[str]:
    return list(dict.fromkeys(names))


def validate_staged_values(
    asset: AssetORM,
    requested_fields: list[str],
    temp_values: dict[str, Any],
) -> dict[str, Any]:
    """Check a request against the asset and return JSON-ready staged values."""
    unknown = [f for f in requested_fields if f not in REQUESTABLE_FIELDS]
    if unknown:
        raise ValidationFailed(f"Unknown field(s): {', '.join(unknown)}", field="requested_fields")

    stray = [k for k in temp_values if k not in requested_fields]
    if stray:
        raise ValidationFailed(
            f"Values given for fields that were not requested: {', '.join(stray)}",
            field="temp_values",
        )
    missing = [f for f in requested_fields if f not in temp_values]
    if missing:
        raise ValidationFailed(f"No value staged for: {', '.join(missing)}", field="temp_values")

    cleared = [f for f in REQUIRED_FIELDS & set(temp_values) if temp_values[f] in (None, "")]
    if cleared:
        raise ValidationFailed(f"Required field(s) cannot be cleared: {', '.join(sorted(cleared))}", field="temp_values")

    staged: dict[str, Any] = {}
    plain = {k: v for k, v in temp_values.items() if k not in ITEM_FIELDS}

    items_value = temp_values.get("items")
    if isinstance(items_value, dict):
        edit = StagedItemEdit.model_validate(items_value)
        if edit.item_index >= len(asset.items):
            raise ValidationFailed("Invalid item index", field="items")
        staged["items"] = edit.model_dump(mode="json")
    elif "items" in temp_values:
        if not items_value:
            raise ValidationFailed("At least one item is required", field="items")
        plain["items"] = items_value

    if "delete_item" in temp_values:
        removal = StagedItemDelete.model_validate(temp_values["delete_item"])
        if removal.item_index >= len(asset.items):
            raise ValidationFailed("Invalid item index", field="delete_item")
        if len(asset.items) == 1:
            raise ValidationFailed("Cannot delete the last item", field="delete_item")
        staged["delete_item"] = removal.model_dump()

    fields = AssetFields.model_validate(plain)
    staged.update(fields.model_dump(mode="json", exclude_unset=True))
    return staged


def _check_can_stage(a: AssetORM, actor: UserORM) -> None:
    if a.update_request_status == "pending" and a.requested_by_id != actor.id:
        raise ConflictError("An update request is already pending for this asset")


def _notify_admins(db: Session, a: AssetORM, actor: UserORM, fields: list[str]) -> None:
    admins = db.execute(select(UserORM).where(UserORM.role == "admin")).scalars().all()
    for admin in admins:
        crud.create_notification(
            db,
            recipient_id=admin.id,
            type="update_requested",
            title="Update Request Submitted",
            message=f"{actor.name} requested changes to Bill #{a.bill_no}: {', '.join(fields)}",
            asset_id=a.id,
            bill_no=a.bill_no,
            created_by_id=actor.id,
        )


def _mark_pending(a: AssetORM, actor: UserORM) -> None:
    now = crud.utcnow()
    a.update_request_status = "pending"
    a.requested_by_id = actor.id
    a.requested_at = now
    a.reviewed_by_id = None
    a.reviewed_at = None
    a.admin_remarks = ""
    a.updated_at = now


def request_update(
    db: Session,
    asset_id: str,
    body: UpdateRequestIn,
    *,
    actor: UserORM,
    commit: bool = True,
) -> Optional[Asset]:
    a = db.get(AssetORM, asset_id)
    if not a:
        return None
    _check_can_stage(a, actor)

    fields = _unique(body.requested_fields)
    staged = validate_staged_values(a, fields, body.temp_values)
    if (
        actor.role == "department-officer"
        and staged.get("department_id") not in (None, actor.department_id)
    ):
        raise ValidationFailed("Assets cannot be moved to another department", field="department_id")

    # a staged bill from the same pending request survives a resubmission
    if a.temp_bill_file_id:
        fields = _unique(fields + [BILL_FIELD])
    a.requested_fields = fields
    a.temp_values = staged
    _mark_pending(a, actor)
    crud.flush_asset(db, asset_id)

    _notify_admins(db, a, actor, fields)
    persist(db, commit=commit)
    logger.info("update requested asset=%s by=%s fields=%s", asset_id, actor.id, fields)
    return Asset.model_validate(a)


def request_bill_update(
    db: Session,
    asset_id: str,
    *,
    filename: str,
    content_type: Optional[str],
    data: bytes,
    actor: UserORM,
    commit: bool = True,
) -> Optional[Asset]:
    a = db.get(AssetORM, asset_id)
    if not a:
        return None
    _check_can_stage(a, actor)

    previous = a.temp_bill_file_id
    a.temp_bill_file_id = store_bill(db, filename=filename, content_type=content_type, data=data, commit=False)
    if previous:
        delete_bill(db, previous, commit=False)

    if a.update_request_status == "pending":
        fields = _unique(list(a.requested_fields or []) + [BILL_FIELD])
    else:
        fields = [BILL_FIELD]
        a.temp_values = {}
    a.requested_fields = fields
    _mark_pending(a, actor)
    crud.flush_asset(db, asset_id)

    _notify_admins(db, a, actor, fields)
    persist(db, commit=commit)
    logger.info("bill replacement requested asset=%s by=%s", asset_id, actor.id)
    return Asset.model_validate(a)


def _clear_staging(a: AssetORM, status: str, actor: UserORM, remarks: Optional[str]) -> None:
    now = crud.utcnow()
    a.update_request_status = status
    a.reviewed_by_id = actor.id
    a.reviewed_at = now
    a.admin_remarks = remarks or ""
    a.temp_values = {}
    a.requested_fields = []
    a.temp_bill_file_id = None
    a.updated_at = now


def _apply_staged_values(db: Session, a: AssetORM) -> None:
    staged = dict(a.temp_values or {})
    items_edit = staged.pop("items", None)
    removal = staged.pop("delete_item", None)

    fields = AssetFields.model_validate(staged).model_dump(exclude_unset=True)
    recompute = False
    if isinstance(items_edit, list):
        if items_edit:
            fields["items"] = items_edit
            recompute = True
        else:
            logger.warning("staged empty item list skipped asset=%s", a.id)
    crud.apply_asset_fields(db, a, fields)

    if isinstance(items_edit, dict):
        edit = StagedItemEdit.model_validate(items_edit)
        if edit.item_index < len(a.items):
            target = a.items[edit.item_index]
            for k, v in edit.updated_item.model_dump().items():
                setattr(target, k, v)
            recompute = True
        else:
            logger.warning("staged item edit skipped asset=%s index=%s", a.id, edit.item_index)
    if removal is not None:
        index = StagedItemDelete.model_validate(removal).item_index
        if index < len(a.items) and len(a.items) > 1:
            a.items.pop(index)
            recompute = True
        else:
            logger.warning("staged item removal skipped asset=%s index=%s", a.id, index)

    if a.temp_bill_file_id:
        a.bill_file_id = a.temp_bill_file_id

    if recompute and "grand_total" not in fields:
        force_totals(a)


def _get_pending(db: Session, asset_id: str) -> Optional[AssetORM]:
    a = db.get(AssetORM, asset_id)
    if a and a.update_request_status != "pending":
        raise ConflictError("No pending update request for this asset")
    return a


def approve_update(
    db: Session,
    asset_id: str,
    *,
    actor: UserORM,
    admin_remarks: Optional[str] = None,
    commit: bool = True,
) -> Optional[Asset]:
    a = _get_pending(db, asset_id)
    if not a:
        return None

    before = serialize_model(a)
    requester_id = a.requested_by_id
    replaced_bill = a.bill_file_id if a.temp_bill_file_id else None
    _apply_staged_values(db, a)
    _clear_staging(a, "approved", actor, admin_remarks)
    crud.flush_asset(db, asset_id)
    if replaced_bill:
        delete_bill(db, replaced_bill, commit=False)

    log_action(
        db, a, "UPDATE",
        actor=actor, reason="Update request approved", officer_name=actor.name,
        before=before, after=serialize_model(a),
    )
    if requester_id:
        crud.create_notification(
            db,
            recipient_id=requester_id,
            type="update_approved",
            title="Update Request Approved",
            message=(
                f"Your update request for Bill #{a.bill_no} has been approved by admin."
                + (f" Remarks: {admin_remarks}" if admin_remarks else "")
            ),
            asset_id=a.id,
            bill_no=a.bill_no,
            created_by_id=actor.id,
        )
    persist(db, commit=commit)
    if commit:
        db.refresh(a)
    logger.info("update approved asset=%s by=%s", asset_id, actor.id)
    return Asset.model_validate(a)


def reject_update(
    db: Session,
    asset_id: str,
    *,
    actor: UserORM,
    admin_remarks: Optional[str] = None,
    commit: bool = True,
) -> Optional[Asset]:
    a = _get_pending(db, asset_id)
    if not a:
        return None

    requester_id = a.requested_by_id
    staged_bill = a.temp_bill_file_id
    _clear_staging(a, "rejected", actor, admin_remarks)
    crud.flush_asset(db, asset_id)
    if staged_bill:
        delete_bill(db, staged_bill, commit=False)

    if requester_id:
        crud.create_notification(
            db,
            recipient_id=requester_id,
            type="update_rejected",
            title="Update Request Rejected",
            message=(
                f"Your update request for Bill #{a.bill_no} has been rejected by admin."
                + (f" Reason: {admin_remarks}" if admin_remarks else "")
            ),
            asset_id=a.id,
            bill_no=a.bill_no,
            created_by_id=actor.id,
        )
    persist(db, commit=commit)
    logger.info("update rejected asset=%s by=%s", asset_id, actor.id)
    return Asset.model_validate(a)


# ---------- pending list ----------
def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _describe_item(item: dict[str, Any]) -> str:
    return f"{item.get('particulars')} (Qty: {_fmt(item.get('quantity'))}, Rate: ₹{_fmt(item.get('rate'))})"


def display_value(field: str, value: Any) -> str:
    if field == "items" and isinstance(value, list):
        return ", ".join(_describe_item(i) for i in value)
    if field == "items" and isinstance(value, dict):
        return _describe_item(value.get("updated_item") or {})
    if field == "delete_item" and isinstance(value, dict):
        return f"Delete item at index {value.get('item_index')}"
    if value is None:
        return ""
    return _fmt(value)


def _current_value(a: AssetORM, field: str) -> str:
    live_items = [Item.model_validate(i).model_dump() for i in a.items]
    staged = (a.temp_values or {}).get(field)
    if field in ITEM_FIELDS and isinstance(staged, dict):
        index = staged.get("item_index", -1)
        if 0 <= index < len(live_items):
            return _describe_item(live_items[index])
        return "Item not found"
    if field == "items":
        return display_value(field, live_items)
    value = getattr(a, field, None)
    return display_value(field, value.isoformat() if hasattr(value, "isoformat") else value)


def list_pending_updates(db: Session) -> list[PendingUpdate]:
    rows = db.execute(
        select(AssetORM)
        .where(AssetORM.update_request_status == "pending")
        .order_by(AssetORM.requested_at.desc())
    ).scalars().all()

    result: list[PendingUpdate] = []
    for a in rows:
        current_values: dict[str, str] = {}
        new_values: dict[str, str] = {}
        for field in a.requested_fields or []:
            current_values[field] = _current_value(a, field)
            if field == BILL_FIELD:
                new_values[field] = a.temp_bill_file_id or ""
            else:
                new_values[field] = display_value(field, (a.temp_values or {}).get(field))
        result.append(
            PendingUpdate(
                **Asset.model_validate(a).model_dump(),
                current_values=current_values,
                new_values=new_values,
            )
        )
    return result


def review_update(
    db: Session,
    asset_id: str,
    *,
    approve: bool,
    remarks: Optional[str],
    actor: UserORM,
    commit: bool = True,
) -> Optional[Asset]:
    decide = approve_update if approve else reject_update
    return decide(db, asset_id, actor=actor, admin_remarks=remarks, commit=commit)
