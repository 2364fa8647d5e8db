from collections.abc import Callable, Generator
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from db import SessionLocal
from orm import AssetORM, UserORM

FORBIDDEN = "Access denied"


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> UserORM:
    """Resolve the caller from the ``X-User-Id`` header set by the upstream authenticator."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = db.get(UserORM, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def require_roles(*roles: str) -> Callable[..., UserORM]:
    def dependency(user: UserORM = Depends(get_current_user)) -> UserORM:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail=FORBIDDEN)
        return user

    return dependency


require_admin = require_roles("admin")
require_editor = require_roles("admin", "department-officer")
require_officer = require_roles("department-officer")


def department_scope(user: UserORM, requested: Optional[str] = None) -> Optional[str]:
    """Department filter a listing must use for ``user``."""
    if user.role == "department-officer":
        return user.department_id
    return requested


def check_department_access(user: UserORM, department_id: Optional[str]) -> None:
    if user.role == "department-officer" and department_id != user.department_id:
        raise HTTPException(status_code=403, detail=FORBIDDEN)


def check_asset_access(user: UserORM, asset: AssetORM) -> None:
    check_department_access(user, asset.department_id)
