from datetime import date

from sqlalchemy import select

import crud
from bill_files import store_bill
from models import AssetIn, AssetUpdate, DepartmentIn, ItemIn
from orm import AssetORM, AuditLogORM, BillFileORM, DepartmentORM

PDF = b"%PDF-1.4 test bill"


def _body(department_id, **overrides):
    data = dict(
        department_id=department_id,
        vendor_name="Acme Traders",
        vendor_address="12 MG Road",
        contact_number="9876543210",
        email="sales@acme.example",
        bill_no="B-100",
        bill_date=date(2024, 4, 15),
        items=[ItemIn(particulars="Laptop", quantity=2, rate=100, cgst=9, sgst=9)],
    )
    data.update(overrides)
    return AssetIn(**data)


def _create(db, department, admin, commit=True, **overrides):
    bill_id = store_bill(db, filename="bill.pdf", content_type="application/pdf", data=PDF, commit=False)
    return crud.create_asset(db, _body(department.id, **overrides), bill_file_id=bill_id, actor=admin, commit=commit)


def test_create_asset_commit_false_requires_manual_commit(db_session, department, admin):
    created = _create(db_session, department, admin, commit=False)

    db_session.commit()
    db_session.expire_all()

    loaded = crud.get_asset(db_session, created.id)
    assert loaded is not None
    assert loaded.total_amount == 200
    assert loaded.grand_total == 236
    assert loaded.revision == 1


def test_create_asset_commit_false_rollback_discards_asset_and_bill(db_session, department, admin):
    created = _create(db_session, department, admin, commit=False)

    db_session.rollback()
    db_session.expire_all()

    assert crud.get_asset(db_session, created.id) is None
    assert db_session.execute(select(BillFileORM)).first() is None
    assert db_session.execute(select(AuditLogORM).where(AuditLogORM.entity_type == "ASSET")).first() is None


def test_update_recomputes_grand_total_when_items_change(db_session, department, admin):
    created = _create(db_session, department, admin)

    body = AssetUpdate(items=[ItemIn(particulars="Desk", quantity=1, rate=50, cgst=6, sgst=6)])
    updated = crud.update_asset(db_session, created.id, body, actor=admin, reason="typo", officer_name="Ravi")

    assert updated.total_amount == 50
    assert updated.grand_total == 56
    assert updated.item_name == "Desk"
    assert updated.revision == 2


def test_update_keeps_supplied_grand_total(db_session, department, admin):
    created = _create(db_session, department, admin)

    body = AssetUpdate(
        items=[ItemIn(particulars="Desk", quantity=1, rate=50, cgst=6, sgst=6)],
        grand_total=60,
    )
    updated = crud.update_asset(db_session, created.id, body, actor=admin, reason="rounding", officer_name="Ravi")

    assert updated.total_amount == 50
    assert updated.grand_total == 60


def test_update_without_items_leaves_items_alone(db_session, department, admin):
    created = _create(db_session, department, admin)

    updated = crud.update_asset(
        db_session, created.id, AssetUpdate(remark="checked"), actor=admin, reason="note", officer_name="Ravi"
    )

    assert updated.remark == "checked"
    assert [i.particulars for i in updated.items] == ["Laptop"]
    assert updated.grand_total == 236


def test_update_commit_false_rollback_discards_change(db_session, department, admin):
    created = _create(db_session, department, admin)

    crud.update_asset(
        db_session, created.id, AssetUpdate(remark="draft"), actor=admin,
        reason="note", officer_name="Ravi", commit=False,
    )
    db_session.rollback()
    db_session.expire_all()

    row = db_session.get(AssetORM, created.id)
    assert row.remark is None
    assert row.revision == 1


def test_delete_department_commit_false_rollback_discards_delete(db_session, admin):
    created = crud.create_department(db_session, DepartmentIn(name="Central Library", type="Service"), actor=admin)

    deleted = crud.delete_department(db_session, created.id, actor=admin, commit=False)
    assert deleted is True

    db_session.rollback()
    db_session.expire_all()

    department = db_session.get(DepartmentORM, created.id)
    assert department is not None
    assert department.name == "Central Library"


def test_delete_asset_removes_items_and_writes_audit(db_session, department, admin):
    created = _create(db_session, department, admin)

    assert crud.delete_asset(db_session, created.id, actor=admin, reason="duplicate entry", officer_name="Ravi")
    db_session.expire_all()

    assert crud.get_asset(db_session, created.id) is None
    entry = db_session.execute(
        select(AuditLogORM).where(AuditLogORM.action == "DELETE", AuditLogORM.entity_id == created.id)
    ).scalar_one()
    assert entry.reason == "duplicate entry"
    assert entry.old_data["bill_no"] == "B-100"
    assert entry.old_data["items"][0]["particulars"] == "Laptop"
