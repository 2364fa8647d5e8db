from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

import approvals
from dependencies import check_asset_access, get_db, require_admin, require_officer
from models import Asset, DecisionIn, PendingUpdate, ReviewIn, UpdateRequestIn
from orm import UserORM
from routers.assets_api import get_asset_or_404, read_upload

router = APIRouter(prefix="/api/assets", tags=["approvals"])


def _found(asset):
    if asset is None:
        raise HTTPException(status_code=404, detail="Asset not found")
    return asset


@router.get("/pending-updates", response_model=list[PendingUpdate])
def list_pending_updates_api(
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return approvals.list_pending_updates(db)


@router.post("/{asset_id}/request-update", response_model=Asset)
def request_update_api(
    asset_id: str,
    body: UpdateRequestIn,
    user: UserORM = Depends(require_officer),
    db: Session = Depends(get_db),
):
    check_asset_access(user, get_asset_or_404(db, asset_id))
    return _found(approvals.request_update(db, asset_id, body, actor=user))


@router.post("/{asset_id}/request-bill-update", response_model=Asset)
def request_bill_update_api(
    asset_id: str,
    bill_file: UploadFile = File(...),
    user: UserORM = Depends(require_officer),
    db: Session = Depends(get_db),
):
    check_asset_access(user, get_asset_or_404(db, asset_id))
    filename, content_type, content = read_upload(bill_file)
    return _found(
        approvals.request_bill_update(
            db, asset_id, filename=filename, content_type=content_type, data=content, actor=user
        )
    )


@router.post("/{asset_id}/approve-update", response_model=Asset)
def approve_update_api(
    asset_id: str,
    body: Optional[ReviewIn] = None,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    remarks = body.admin_remarks if body else None
    return _found(approvals.approve_update(db, asset_id, actor=user, admin_remarks=remarks))


@router.post("/{asset_id}/reject-update", response_model=Asset)
def reject_update_api(
    asset_id: str,
    body: Optional[ReviewIn] = None,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    remarks = body.admin_remarks if body else None
    return _found(approvals.reject_update(db, asset_id, actor=user, admin_remarks=remarks))


@router.post("/{asset_id}/review-update", response_model=Asset)
def review_update_api(
    asset_id: str,
    body: DecisionIn,
    user: UserORM = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _found(approvals.review_update(db, asset_id, approve=body.approve, remarks=body.remarks, actor=user))
