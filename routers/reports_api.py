from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import reports
from csv_utils import assets_to_csv_response
from dependencies import department_scope, get_current_user, get_db
from filter_helpers import blank_to_none, normalize_type, parse_date
from models import CombinedReport, ItemReport, VendorReport, YearReport
from orm import UserORM

router = APIRouter(prefix="/api/reports", tags=["reports"])


def _combined(db: Session, user: UserORM, department_id, type, start_date, end_date) -> CombinedReport:
    return reports.combined_report(
        db,
        department_id=department_scope(user, blank_to_none(department_id)),
        asset_type=normalize_type(type),
        start_date=parse_date(start_date, field="start_date"),
        end_date=parse_date(end_date, field="end_date"),
    )


@router.get("", response_model=CombinedReport)
def combined_report_api(
    department_id: Optional[str] = None,
    type: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _combined(db, user, department_id, type, start_date, end_date)


@router.get("/department", response_model=CombinedReport)
def department_report_api(
    department_id: Optional[str] = None,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return reports.department_report(db, department_id=department_scope(user, blank_to_none(department_id)))


@router.get("/vendor", response_model=VendorReport)
def vendor_report_api(
    vendor_name: Optional[str] = None,
    department_id: Optional[str] = None,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return reports.vendor_report(
        db,
        vendor_name=blank_to_none(vendor_name),
        department_id=department_scope(user, blank_to_none(department_id)),
    )


@router.get("/item", response_model=ItemReport)
def item_report_api(
    item_name: Optional[str] = None,
    department_id: Optional[str] = None,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return reports.item_report(
        db,
        item_name=blank_to_none(item_name),
        department_id=department_scope(user, blank_to_none(department_id)),
    )


@router.get("/year", response_model=YearReport)
def year_report_api(
    department_id: Optional[str] = None,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return reports.year_report(db, department_id=department_scope(user, blank_to_none(department_id)))


@router.get("/export/csv")
def export_csv_api(
    department_id: Optional[str] = None,
    type: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    user: UserORM = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    report = _combined(db, user, department_id, type, start_date, end_date)
    return assets_to_csv_response(report.assets, filename="assets_report.csv")
