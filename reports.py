from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from models import (
    Asset,
    CombinedReport,
    ItemReport,
    ReportSummary,
    VendorReport,
    VendorRow,
    YearReport,
    YearRow,
)
from orm import AssetORM
from totals import to_number

import crud


def summarize(assets: list[Asset]) -> ReportSummary:
    by_type = {"capital": 0.0, "revenue": 0.0, "consumable": 0.0}
    for a in assets:
        by_type[a.type] += to_number(a.total_amount)
    return ReportSummary(
        total_capital=by_type["capital"],
        total_revenue=by_type["revenue"],
        total_consumable=by_type["consumable"],
        grand_total=sum(by_type.values()),
        item_count=len(assets),
    )


def combined_report(
    db: Session,
    *,
    department_id: Optional[str] = None,
    asset_type: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> CombinedReport:
    assets = crud.list_assets_filtered(
        db,
        department_id=department_id,
        asset_type=asset_type,
        start_date=start_date,
        end_date=end_date,
    )
    return CombinedReport(summary=summarize(assets), assets=assets)


def department_report(db: Session, *, department_id: Optional[str] = None) -> CombinedReport:
    return combined_report(db, department_id=department_id)


def vendor_report(
    db: Session,
    *,
    vendor_name: Optional[str] = None,
    department_id: Optional[str] = None,
) -> VendorReport:
    stmt = select(
        AssetORM.vendor_name,
        func.count().label("total_assets"),
        func.coalesce(func.sum(AssetORM.total_amount), 0).label("total_amount"),
        func.min(AssetORM.vendor_address),
        func.min(AssetORM.contact_number),
        func.min(AssetORM.email),
    )
    if vendor_name:
        stmt = stmt.where(AssetORM.vendor_name.ilike(f"%{vendor_name}%"))
    if department_id:
        stmt = stmt.where(AssetORM.department_id == department_id)
    stmt = stmt.group_by(AssetORM.vendor_name).order_by(func.sum(AssetORM.total_amount).desc())

    rows = [
        VendorRow(
            vendor_name=name,
            total_assets=int(count),
            total_amount=float(amount),
            vendor_address=address,
            contact_number=contact,
            email=email,
        )
        for name, count, amount, address, contact, email in db.execute(stmt).all()
    ]
    return VendorReport(
        report=rows,
        grand_total=sum(r.total_amount for r in rows),
        total_vendors=len(rows),
    )


def item_report(
    db: Session,
    *,
    item_name: Optional[str] = None,
    department_id: Optional[str] = None,
) -> ItemReport:
    stmt = select(AssetORM)
    if item_name:
        stmt = stmt.where(AssetORM.item_name.ilike(f"%{item_name}%"))
    if department_id:
        stmt = stmt.where(AssetORM.department_id == department_id)
    stmt = stmt.order_by(AssetORM.bill_date.desc(), AssetORM.id.asc())

    assets = [Asset.model_validate(a) for a in db.execute(stmt).scalars().all()]
    return ItemReport(
        report=assets,
        grand_total=sum(to_number(a.total_amount) for a in assets),
        total_items=len(assets),
    )


def year_report(db: Session, *, department_id: Optional[str] = None) -> YearReport:
    year = extract("year", AssetORM.bill_date).label("year")
    stmt = select(
        year,
        func.count().label("total_assets"),
        func.coalesce(func.sum(AssetORM.total_amount), 0).label("total_amount"),
    )
    if department_id:
        stmt = stmt.where(AssetORM.department_id == department_id)
    stmt = stmt.group_by(year).order_by(year.desc())
    rows = [
        YearRow(year=int(y), total_assets=int(count), total_amount=float(amount))
        for y, count, amount in db.execute(stmt).all()
    ]
    return YearReport(
        report=rows,
        grand_total=sum(r.total_amount for r in rows),
        total_years=len(rows),
    )
