from sqlalchemy import select, update

from orm import AssetORM, DepartmentORM
from scripts import fix_totals as fix_totals_script
from scripts.seed_departments import DEPARTMENTS, seed_departments


def _corrupt(db, asset_id, grand_total):
    db.execute(update(AssetORM).where(AssetORM.id == asset_id).values(grand_total=grand_total))
    db.commit()


def test_fix_totals_dry_run_reports_without_writing(db_session, make_asset):
    good = make_asset()
    bad = make_asset(bill_no="B-002")
    _corrupt(db_session, bad["id"], 999)

    stats = fix_totals_script.fix_totals(db_session, dry_run=True)

    assert stats["checked"] == 2
    assert stats["fixed"] == 1
    assert stats["grand_total_sum"] == 236 + 999
    db_session.expire_all()
    assert db_session.get(AssetORM, bad["id"]).grand_total == 999
    assert db_session.get(AssetORM, good["id"]).grand_total == 236


def test_fix_totals_overwrites_inconsistent_totals(db_session, make_asset):
    make_asset()
    bad = make_asset(bill_no="B-002", type="revenue")
    _corrupt(db_session, bad["id"], 999)

    stats = fix_totals_script.fix_totals(db_session)

    assert stats["fixed"] == 1
    assert stats["total_amount_sum"] == 400
    assert stats["grand_total_sum"] == 472
    assert stats["grand_total_by_type"] == {"capital": 236, "revenue": 236}
    db_session.expire_all()
    assert db_session.get(AssetORM, bad["id"]).grand_total == 236

    assert fix_totals_script.fix_totals(db_session)["fixed"] == 0


def test_fix_totals_command_line(db_session, make_asset):
    bad = make_asset()
    _corrupt(db_session, bad["id"], 1)

    fix_totals_script.main(["--dry-run"])
    db_session.expire_all()
    assert db_session.get(AssetORM, bad["id"]).grand_total == 1

    fix_totals_script.main([])
    db_session.expire_all()
    assert db_session.get(AssetORM, bad["id"]).grand_total == 236


def test_seed_departments_skips_existing(db_session, department):
    inserted = seed_departments(db_session)
    assert inserted == len(DEPARTMENTS) - 1

    names = db_session.execute(select(DepartmentORM.name)).scalars().all()
    assert sorted(names) == sorted(name for name, _ in DEPARTMENTS)

    assert seed_departments(db_session) == 0


def test_seed_departments_command_line(db_session):
    from scripts import seed_departments as seed_script

    seed_script.main([])

    count = len(db_session.execute(select(DepartmentORM.id)).scalars().all())
    assert count == len(DEPARTMENTS)
