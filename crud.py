from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone

from typing import Optional
from uuid import uuid4

from sqlalchemy import select, delete, func, or_, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

import hooks  # noqa: F401  installs the pre-save listener
from audit import log_action, serialize_model
from db import persist
from errors import ConflictError, ValidationFailed
from models import (
    AdminStats,
    Announcement,
    AnnouncementIn,
    Asset,
    AssetIn,
    AssetPage,
    AssetUpdate,
    AuditLog,
    AuditLogPage,
    Department,
    DepartmentIn,
    DepartmentUpdate,
    ItemIn,
    Notification,
    Pagination,
    PublicStats,
    TypeCount,
    User,
    UserIn,
    UserUpdate,
)
from orm import (
    AnnouncementORM,
    AssetItemORM,
    AssetORM,
    AuditLogORM,
    DepartmentORM,
    NotificationORM,
    UserORM,
)
from totals import force_totals

logger = logging.getLogger(__name__)

# fields whose change invalidates a stored grand_total
TOTAL_INPUT_FIELDS = {"items", "quantity", "price_per_item", "igst", "cgst", "sgst"}

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _asset_to_schema(a: AssetORM) -> Asset:
    return Asset.model_validate(a)

def _user_to_schema(u: UserORM) -> User:
    return User.model_validate(u)

def _department_to_schema(d: DepartmentORM) -> Department:
    return Department.model_validate(d)


# ---------- Department ----------
def department_exists(db: Session, department_id: Optional[str]) -> bool:
    return bool(department_id) and db.get(DepartmentORM, department_id) is not None


def department_name_exists(db: Session, name: str, exclude_department_id: Optional[str] = None) -> bool:
    stmt = select(DepartmentORM).where(DepartmentORM.name == name)
    if exclude_department_id:
        stmt = stmt.where(DepartmentORM.id != exclude_department_id)
    return db.execute(stmt).first() is not None


def list_departments(db: Session) -> list[Department]:
    rows = db.execute(select(DepartmentORM).order_by(DepartmentORM.name.asc())).scalars().all()
    return [_department_to_schema(d) for d in rows]


def get_department(db: Session, department_id: str) -> Optional[Department]:
    row = db.get(DepartmentORM, department_id)
    return _department_to_schema(row) if row else None


def create_department(db: Session, body: DepartmentIn, *, actor: UserORM, commit: bool = True) -> Department:
    if department_name_exists(db, body.name):
        raise ValidationFailed("Department with this name already exists", field="name")

    now = utcnow()
    d = DepartmentORM(id=str(uuid4()), name=body.name, type=body.type, created_at=now, updated_at=now)
    db.add(d)
    db.flush()
    log_action(db, d, "CREATE", actor=actor, reason="Department created", after=serialize_model(d))
    persist(db, commit=commit)
    return _department_to_schema(d)


def update_department(
    db: Session,
    department_id: str,
    body: DepartmentUpdate,
    *,
    actor: UserORM,
    commit: bool = True,
) -> Optional[Department]:
    d = db.get(DepartmentORM, department_id)
    if not d:
        return None

    data = body.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in data and department_name_exists(db, data["name"], exclude_department_id=department_id):
        raise ValidationFailed("Department with this name already exists", field="name")

    before = serialize_model(d)
    for k, v in data.items():
        setattr(d, k, v)
    d.updated_at = utcnow()
    db.flush()
    log_action(db, d, "UPDATE", actor=actor, reason="Department updated", before=before, after=serialize_model(d))
    persist(db, commit=commit)
    return _department_to_schema(d)


def delete_department(db: Session, department_id: str, *, actor: UserORM, commit: bool = True) -> bool:
    d = db.get(DepartmentORM, department_id)
    if not d:
        return False

    # referenced departments cannot be removed
    used_by_assets = db.execute(
        select(func.count()).select_from(AssetORM).where(AssetORM.department_id == department_id)
    ).scalar_one()
    used_by_users = db.execute(
        select(func.count()).select_from(UserORM).where(UserORM.department_id == department_id)
    ).scalar_one()
    if int(used_by_assets) > 0 or int(used_by_users) > 0:
        raise ValidationFailed("Department is still referenced by assets or users", field="department_id")

    log_action(db, d, "DELETE", actor=actor, reason="Department deleted", before=serialize_model(d))
    db.execute(delete(DepartmentORM).where(DepartmentORM.id == department_id))
    persist(db, commit=commit)
    return True


# ---------- User ----------
def get_user_row(db: Session, user_id: Optional[str]) -> Optional[UserORM]:
    if not user_id:
        return None
    return db.get(UserORM, user_id)


def user_email_exists(db: Session, email: str, exclude_user_id: Optional[str] = None) -> bool:
    stmt = select(UserORM).where(UserORM.email == email)
    if exclude_user_id:
        stmt = stmt.where(UserORM.id != exclude_user_id)
    return db.execute(stmt).first() is not None


def list_users(db: Session) -> list[User]:
    rows = db.execute(select(UserORM).order_by(UserORM.created_at.desc())).scalars().all()
    return [_user_to_schema(u) for u in rows]


def get_user(db: Session, user_id: str) -> Optional[User]:
    row = db.get(UserORM, user_id)
    return _user_to_schema(row) if row else None


def _check_officer_department(db: Session, role: str, department_id: Optional[str]) -> None:
    if role == "department-officer" and not department_id:
        raise ValidationFailed("Department is required for department officers", field="department_id")
    if department_id and not department_exists(db, department_id):
        raise ValidationFailed("Invalid department", field="department_id")


def create_user(db: Session, body: UserIn, *, actor: Optional[UserORM] = None, commit: bool = True) -> User:
    if user_email_exists(db, body.email):
        raise ValidationFailed("User already exists", field="email")
    _check_officer_department(db, body.role, body.department_id)

    now = utcnow()
    u = UserORM(
        id=str(uuid4()),
        name=body.name,
        email=body.email,
        role=body.role,
        department_id=body.department_id if body.role == "department-officer" else None,
        created_at=now,
        updated_at=now,
    )
    db.add(u)
    db.flush()
    if actor is not None:
        log_action(db, u, "CREATE", actor=actor, reason="User created", after=serialize_model(u))
    persist(db, commit=commit)
    return _user_to_schema(u)


def update_user(
    db: Session,
    user_id: str,
    body: UserUpdate,
    *,
    actor: UserORM,
    commit: bool = True,
) -> Optional[User]:
    u = db.get(UserORM, user_id)
    if not u:
        return None

    data = body.model_dump(exclude_unset=True)
    if data.get("email") and user_email_exists(db, data["email"], exclude_user_id=user_id):
        raise ValidationFailed("Email already in use", field="email")

    role = data.get("role") or u.role
    department_id = data["department_id"] if "department_id" in data else u.department_id
    _check_officer_department(db, role, department_id)

    before = serialize_model(u)
    for k in ("name", "email"):
        if data.get(k):
            setattr(u, k, data[k])
    u.role = role
    u.department_id = department_id if role == "department-officer" else None
    u.updated_at = utcnow()
    db.flush()
    log_action(db, u, "UPDATE", actor=actor, reason="User updated", before=before, after=serialize_model(u))
    persist(db, commit=commit)
    return _user_to_schema(u)


def delete_user(db: Session, user_id: str, *, actor: UserORM, commit: bool = True) -> bool:
    u = db.get(UserORM, user_id)
    if not u:
        return False

    log_action(db, u, "DELETE", actor=actor, reason="User deleted", before=serialize_model(u))
    db.execute(delete(UserORM).where(UserORM.id == user_id))
    persist(db, commit=commit)
    return True


# ---------- Asset ----------
def get_asset_row(db: Session, asset_id: str) -> Optional[AssetORM]:
    return db.get(AssetORM, asset_id)


def get_asset(db: Session, asset_id: str) -> Optional[Asset]:
    row = db.get(AssetORM, asset_id)
    return _asset_to_schema(row) if row else None


def _build_items(items: list[ItemIn]) -> list[AssetItemORM]:
    return [
        AssetItemORM(id=str(uuid4()), position=idx, **item.model_dump())
        for idx, item in enumerate(items)
    ]


def create_asset(
    db: Session,
    body: AssetIn,
    *,
    bill_file_id: str,
    actor: UserORM,
    commit: bool = True,
) -> Asset:
    if not department_exists(db, body.department_id):
        raise ValidationFailed("Invalid department", field="department_id")

    now = utcnow()
    data = body.model_dump(exclude={"items"})
    for rate in ("igst", "cgst", "sgst"):
        data[rate] = data[rate] or 0.0
    a = AssetORM(
        id=str(uuid4()),
        **data,
        bill_file_id=bill_file_id,
        update_request_status="none",
        requested_fields=[],
        temp_values={},
        admin_remarks="",
        created_at=now,
        updated_at=now,
    )
    a.items = _build_items(body.items)
    db.add(a)
    db.flush()

    log_action(db, a, "CREATE", actor=actor, reason="Asset created", after=serialize_model(a))
    persist(db, commit=commit)
    if commit:
        db.refresh(a)
    logger.info("asset created id=%s bill_no=%s department=%s", a.id, a.bill_no, a.department_id)
    return _asset_to_schema(a)


def flush_asset(db: Session, asset_id: str) -> None:
    try:
        db.flush()
    except StaleDataError:
        db.rollback()
        logger.warning("stale write rejected asset=%s", asset_id)
        raise ConflictError("Asset was modified by another request; reload and retry")


def apply_asset_fields(db: Session, a: AssetORM, data: dict) -> None:
    """Copy validated field values onto ``a`` (partial update semantics)."""
    if "department_id" in data and not department_exists(db, data["department_id"]):
        raise ValidationFailed("Invalid department", field="department_id")

    changed = set(data)
    items = data.pop("items", None)
    for k, v in data.items():
        setattr(a, k, v)
    if items is not None:
        a.items = _build_items([ItemIn.model_validate(i) for i in items])

    if "vendor_name" in data and "vendor" not in data:
        a.vendor = data["vendor_name"]
    elif "vendor" in data and "vendor_name" not in data:
        a.vendor_name = data["vendor"]

    # let the pre-save rule recompute a total the caller did not supply;
    # item assets derive their amounts from the items alone
    inputs = {"items"} if a.items else TOTAL_INPUT_FIELDS
    if "grand_total" not in changed and changed & inputs:
        a.grand_total = None


def update_asset(
    db: Session,
    asset_id: str,
    body: AssetUpdate,
    *,
    actor: UserORM,
    reason: str,
    officer_name: str,
    bill_file_id: Optional[str] = None,
    commit: bool = True,
) -> Optional[Asset]:
    a = db.get(AssetORM, asset_id)
    if not a:
        return None

    data = body.model_dump(exclude_unset=True)
    revision = data.pop("revision", None)
    if revision is not None and revision != a.revision:
        raise ConflictError("Asset was modified by another request; reload and retry")

    before = serialize_model(a)
    apply_asset_fields(db, a, data)
    if bill_file_id:
        a.bill_file_id = bill_file_id
    a.updated_at = utcnow()
    flush_asset(db, asset_id)

    log_action(
        db, a, "UPDATE",
        actor=actor, reason=reason, officer_name=officer_name,
        before=before, after=serialize_model(a),
    )
    persist(db, commit=commit)
    if commit:
        db.refresh(a)
    return _asset_to_schema(a)


def delete_asset(
    db: Session,
    asset_id: str,
    *,
    actor: UserORM,
    reason: str,
    officer_name: str,
    commit: bool = True,
) -> bool:
    a = db.get(AssetORM, asset_id)
    if not a:
        return False

    log_action(
        db, a, "DELETE",
        actor=actor, reason=reason, officer_name=officer_name,
        before=serialize_model(a),
    )
    db.delete(a)
    persist(db, commit=commit)
    logger.info("asset deleted id=%s by=%s", asset_id, actor.id)
    return True


def _check_item_index(a: AssetORM, item_index: int) -> None:
    if not a.items or item_index < 0 or item_index >= len(a.items):
        raise ValidationFailed("Invalid item index", field="item_index")


def update_asset_item(
    db: Session,
    asset_id: str,
    item_index: int,
    item: ItemIn,
    *,
    actor: UserORM,
    reason: str,
    officer_name: str,
    commit: bool = True,
) -> Optional[Asset]:
    a = db.get(AssetORM, asset_id)
    if not a:
        return None
    _check_item_index(a, item_index)

    target = a.items[item_index]
    before = serialize_model(target)
    for k, v in item.model_dump().items():
        setattr(target, k, v)
    force_totals(a)
    a.updated_at = utcnow()
    flush_asset(db, asset_id)

    log_action(
        db, a, "UPDATE",
        actor=actor, reason=reason, officer_name=officer_name,
        before={"item_index": item_index, "item": before},
        after={"item_index": item_index, "item": serialize_model(target)},
    )
    persist(db, commit=commit)
    if commit:
        db.refresh(a)
    return _asset_to_schema(a)


def delete_asset_item(
    db: Session,
    asset_id: str,
    item_index: int,
    *,
    actor: UserORM,
    reason: str,
    officer_name: str,
    commit: bool = True,
) -> Optional[Asset]:
    a = db.get(AssetORM, asset_id)
    if not a:
        return None
    _check_item_index(a, item_index)
    if len(a.items) == 1:
        raise ValidationFailed("Cannot delete the last item. Delete the entire asset instead.", field="item_index")

    removed = a.items.pop(item_index)
    before = serialize_model(removed)
    force_totals(a)
    a.updated_at = utcnow()
    flush_asset(db, asset_id)

    log_action(
        db, a, "DELETE",
        actor=actor, reason=reason, officer_name=officer_name,
        before={"item_index": item_index, "item": before},
    )
    persist(db, commit=commit)
    if commit:
        db.refresh(a)
    return _asset_to_schema(a)


def build_assets_query(
    department_id: str | None,
    asset_type: str | None,
    start_date: date | None,
    end_date: date | None,
):
    stmt = select(AssetORM)

    if department_id:
        stmt = stmt.where(AssetORM.department_id == department_id)
    if asset_type:
        stmt = stmt.where(AssetORM.type == asset_type)
    if start_date:
        stmt = stmt.where(AssetORM.bill_date >= start_date)
    if end_date:
        stmt = stmt.where(AssetORM.bill_date <= end_date)

    return stmt


def count_assets_filtered(db: Session, stmt) -> int:
    count_stmt = select(func.count()).select_from(stmt.subquery())
    return int(db.execute(count_stmt).scalar_one())


def list_assets_filtered(
    db: Session,
    *,
    department_id: str | None = None,
    asset_type: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: Optional[int] = None,
    offset: int = 0,
    newest_first_by: str = "bill_date",
) -> list[Asset]:
    stmt = build_assets_query(department_id, asset_type, start_date, end_date)
    col = AssetORM.created_at if newest_first_by == "created_at" else AssetORM.bill_date
    stmt = stmt.order_by(col.desc(), AssetORM.id.asc()).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    rows = db.execute(stmt).scalars().all()
    return [_asset_to_schema(a) for a in rows]


def page_assets(
    db: Session,
    *,
    department_id: str | None,
    asset_type: str | None,
    start_date: date | None,
    end_date: date | None,
    page: int,
    limit: int,
    newest_first_by: str = "bill_date",
) -> AssetPage:
    stmt = build_assets_query(department_id, asset_type, start_date, end_date)
    total = count_assets_filtered(db, stmt)
    total_pages = max(1, math.ceil(total / limit))

    assets = list_assets_filtered(
        db,
        department_id=department_id,
        asset_type=asset_type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=(page - 1) * limit,
        newest_first_by=newest_first_by,
    )
    return AssetPage(
        assets=assets,
        pagination=Pagination(
            current_page=page,
            total_pages=total_pages,
            total_assets=total,
            has_next=page < total_pages,
            has_prev=page > 1,
        ),
    )


# ---------- Announcement ----------
def _as_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def create_announcement(db: Session, body: AnnouncementIn, *, actor: UserORM, commit: bool = True) -> Announcement:
    targets: list[DepartmentORM] = []
    if not body.is_global:
        for department_id in body.target_departments:
            d = db.get(DepartmentORM, department_id)
            if not d:
                raise ValidationFailed("Invalid department", field="target_departments")
            targets.append(d)

    now = utcnow()
    a = AnnouncementORM(
        id=str(uuid4()),
        title=body.title,
        message=body.message,
        type=body.type,
        is_global=body.is_global,
        created_by_id=actor.id,
        expires_at=_as_utc_naive(body.expires_at),
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    a.target_departments = targets
    db.add(a)
    persist(db, commit=commit)
    return Announcement.model_validate(a)


def list_announcements(db: Session, *, user: UserORM) -> list[Announcement]:
    now = _as_utc_naive(utcnow())
    stmt = select(AnnouncementORM).where(
        AnnouncementORM.is_active.is_(True),
        or_(AnnouncementORM.expires_at.is_(None), AnnouncementORM.expires_at > now),
    )

    if user.role == "admin":
        pass
    elif user.role == "chief-administrative-officer":
        stmt = stmt.where(
            or_(AnnouncementORM.is_global.is_(True), AnnouncementORM.target_departments.any())
        )
    elif user.role == "department-officer":
        stmt = stmt.where(
            or_(
                AnnouncementORM.is_global.is_(True),
                AnnouncementORM.target_departments.any(DepartmentORM.id == user.department_id),
            )
        )
    else:
        stmt = stmt.where(AnnouncementORM.is_global.is_(True))

    rows = db.execute(stmt.order_by(AnnouncementORM.created_at.desc())).scalars().all()
    return [Announcement.model_validate(a) for a in rows]


def delete_announcement(db: Session, announcement_id: str, *, commit: bool = True) -> bool:
    a = db.get(AnnouncementORM, announcement_id)
    if not a:
        return False
    db.delete(a)
    persist(db, commit=commit)
    return True


# ---------- Notification ----------
def create_notification(
    db: Session,
    *,
    recipient_id: str,
    type: str,
    title: str,
    message: str,
    asset_id: Optional[str] = None,
    bill_no: Optional[str] = None,
    created_by_id: Optional[str] = None,
) -> NotificationORM:
    n = NotificationORM(
        id=str(uuid4()),
        recipient_id=recipient_id,
        type=type,
        title=title,
        message=message,
        asset_id=asset_id,
        bill_no=bill_no,
        is_read=False,
        created_by_id=created_by_id,
        created_at=utcnow(),
    )
    db.add(n)
    return n


def list_notifications(db: Session, user_id: str, *, limit: int = 50) -> list[Notification]:
    rows = db.execute(
        select(NotificationORM)
        .where(NotificationORM.recipient_id == user_id)
        .order_by(NotificationORM.created_at.desc())
        .limit(limit)
    ).scalars().all()
    return [Notification.model_validate(n) for n in rows]


def mark_notification_read(db: Session, notification_id: str, user_id: str, *, commit: bool = True) -> bool:
    n = db.get(NotificationORM, notification_id)
    if not n or n.recipient_id != user_id:
        return False
    n.is_read = True
    persist(db, commit=commit)
    return True


def mark_all_notifications_read(db: Session, user_id: str, *, commit: bool = True) -> int:
    result = db.execute(
        update(NotificationORM)
        .where(NotificationORM.recipient_id == user_id, NotificationORM.is_read.is_(False))
        .values(is_read=True)
    )
    persist(db, commit=commit)
    return result.rowcount


# ---------- Audit log / stats ----------
def list_audit_logs(
    db: Session,
    *,
    action: str | None,
    entity_type: str | None,
    user_id: str | None,
    page: int,
    limit: int,
) -> AuditLogPage:
    stmt = select(AuditLogORM)
    if action:
        stmt = stmt.where(AuditLogORM.action == action)
    if entity_type:
        stmt = stmt.where(AuditLogORM.entity_type == entity_type)
    if user_id:
        stmt = stmt.where(AuditLogORM.user_id == user_id)

    total = int(db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one())
    rows = db.execute(
        stmt.order_by(AuditLogORM.timestamp.desc()).offset((page - 1) * limit).limit(limit)
    ).scalars().all()
    return AuditLogPage(
        logs=[AuditLog.model_validate(r) for r in rows],
        current_page=page,
        total_pages=max(1, math.ceil(total / limit)),
        total_logs=total,
    )


def _count(db: Session, model) -> int:
    return int(db.execute(select(func.count()).select_from(model)).scalar_one())


def admin_stats(db: Session) -> AdminStats:
    by_type = db.execute(
        select(AssetORM.type, func.count()).group_by(AssetORM.type).order_by(AssetORM.type.asc())
    ).all()
    pending = db.execute(
        select(func.count()).select_from(AssetORM).where(AssetORM.update_request_status == "pending")
    ).scalar_one()
    recent = db.execute(
        select(AuditLogORM).order_by(AuditLogORM.timestamp.desc()).limit(10)
    ).scalars().all()

    return AdminStats(
        assets=_count(db, AssetORM),
        users=_count(db, UserORM),
        departments=_count(db, DepartmentORM),
        audit_logs=_count(db, AuditLogORM),
        pending_updates=int(pending),
        assets_by_type=[TypeCount(type=t, count=c) for t, c in by_type],
        recent_activity=[AuditLog.model_validate(r) for r in recent],
    )


def format_total_value(total: float) -> str:
    if total >= 1_000_000:
        return f"₹{total / 1_000_000:.1f}M"
    return f"₹{total:,.0f}"


def public_stats(db: Session, *, today: Optional[date] = None) -> PublicStats:
    today = today or utcnow().date()
    start_of_month = today.replace(day=1)
    if start_of_month.month == 12:
        next_month = start_of_month.replace(year=start_of_month.year + 1, month=1)
    else:
        next_month = start_of_month.replace(month=start_of_month.month + 1)

    this_month = db.execute(
        select(func.count())
        .select_from(AssetORM)
        .where(AssetORM.bill_date >= start_of_month, AssetORM.bill_date < next_month)
    ).scalar_one()
    total_value = db.execute(select(func.coalesce(func.sum(AssetORM.total_amount), 0))).scalar_one()

    return PublicStats(
        total_assets=_count(db, AssetORM),
        total_departments=_count(db, DepartmentORM),
        this_month_assets=int(this_month),
        total_value=format_total_value(float(total_value)),
    )
