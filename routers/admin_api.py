from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_db, require_admin
from filter_helpers import (
    VALID_AUDIT_ACTIONS,
    VALID_AUDIT_ENTITIES,
    blank_to_none,
    normalize_choice,
    normalize_limit,
    normalize_page,
    normalize_type,
    parse_date,
)
from models import AdminStats, AssetPage, AuditLogPage, User, UserIn, UserUpdate
from orm import UserORM

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ---------- users ----------
@router.get("/users", response_model=list[User])
def list_users_api(
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return crud.list_users(db)


@router.post("/users", response_model=User, status_code=201)
def create_user_api(
    body: UserIn,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return crud.create_user(db, body, actor=user)


@router.get("/users/{user_id}", response_model=User)
def get_user_api(
    user_id: str,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    found = crud.get_user(db, user_id)
    if not found:
        raise HTTPException(status_code=404, detail="User not found")
    return found


@router.put("/users/{user_id}", response_model=User)
def update_user_api(
    user_id: str,
    body: UserUpdate,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updated = crud.update_user(db, user_id, body, actor=user)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return updated


@router.delete("/users/{user_id}", status_code=204)
def delete_user_api(
    user_id: str,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if user_id == user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    ok = crud.delete_user(db, user_id, actor=user)
    if not ok:
        raise HTTPException(status_code=404, detail="User not found")
    return None


# ---------- audit / stats ----------
@router.get("/audit-logs", response_model=AuditLogPage)
def list_audit_logs_api(
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    user_id: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return crud.list_audit_logs(
        db,
        action=normalize_choice(action, VALID_AUDIT_ACTIONS),
        entity_type=normalize_choice(entity_type, VALID_AUDIT_ENTITIES),
        user_id=blank_to_none(user_id),
        page=normalize_page(page),
        limit=normalize_limit(limit),
    )


@router.get("/stats", response_model=AdminStats)
def admin_stats_api(
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return crud.admin_stats(db)


@router.get("/assets", response_model=AssetPage)
def admin_assets_api(
    department_id: Optional[str] = None,
    type: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return crud.page_assets(
        db,
        department_id=blank_to_none(department_id),
        asset_type=normalize_type(type),
        start_date=parse_date(start_date, field="start_date"),
        end_date=parse_date(end_date, field="end_date"),
        page=normalize_page(page),
        limit=normalize_limit(limit),
        newest_first_by="created_at",
    )
