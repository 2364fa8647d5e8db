from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

import crud
from dependencies import get_current_user, get_db, require_admin
from models import Department, DepartmentIn, DepartmentUpdate
from orm import UserORM

router = APIRouter(prefix="/api/departments", tags=["departments"])


@router.get("", response_model=list[Department])
def list_departments_api(
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return crud.list_departments(db)


@router.post("", response_model=Department, status_code=201)
def create_department_api(
    body: DepartmentIn,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return crud.create_department(db, body, actor=user)


@router.get("/{department_id}", response_model=Department)
def get_department_api(
    department_id: str,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    department = crud.get_department(db, department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


@router.put("/{department_id}", response_model=Department)
def update_department_api(
    department_id: str,
    body: DepartmentUpdate,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updated = crud.update_department(db, department_id, body, actor=user)
    if not updated:
        raise HTTPException(status_code=404, detail="Department not found")
    return updated


@router.delete("/{department_id}", status_code=204)
def delete_department_api(
    department_id: str,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ok = crud.delete_department(db, department_id, actor=user)
    if not ok:
        raise HTTPException(status_code=404, detail="Department not found")
    return None
