#!/usr/bin/env python3
# scripts/fix_totals.py
import argparse
import logging
import os
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

logger = logging.getLogger("fix_totals")

WATCHED = ("total_amount", "grand_total", "cgst", "sgst")


def _snapshot(asset) -> tuple:
    return tuple(getattr(asset, k) for k in WATCHED)


def fix_totals(db: Session, *, dry_run: bool = False) -> dict:
    """Recompute totals of every asset with the overwrite rule."""
    from orm import AssetORM
    from totals import force_totals

    fixed = 0
    assets = db.execute(select(AssetORM).order_by(AssetORM.created_at.asc())).scalars().all()
    for asset in assets:
        before = _snapshot(asset)
        force_totals(asset)
        if _snapshot(asset) != before:
            fixed += 1
            logger.info("asset=%s bill_no=%s grand_total %s -> %s", asset.id, asset.bill_no, before[1], asset.grand_total)

    if dry_run:
        db.rollback()
    else:
        db.commit()

    row = db.execute(
        select(
            func.count(),
            func.coalesce(func.sum(AssetORM.total_amount), 0),
            func.coalesce(func.sum(AssetORM.grand_total), 0),
        ).select_from(AssetORM)
    ).one()
    by_type = dict(
        db.execute(
            select(AssetORM.type, func.coalesce(func.sum(AssetORM.grand_total), 0)).group_by(AssetORM.type)
        ).all()
    )
    return {
        "checked": len(assets),
        "fixed": fixed,
        "total_assets": int(row[0]),
        "total_amount_sum": float(row[1]),
        "grand_total_sum": float(row[2]),
        "grand_total_by_type": {k: float(v) for k, v in by_type.items()},
    }


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Recompute total_amount/grand_total of every asset.")
    ap.add_argument("--db", default=None, help="Path to SQLite DB (default: APP_DB_PATH or data/assetflow.db)")
    ap.add_argument("--dry-run", action="store_true", help="Show what would change, do not write")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    if args.db:
        os.environ["APP_DB_PATH"] = args.db

    # imported late so --db is honoured by the engine
    import hooks  # noqa: F401
    from db import session_scope

    with session_scope() as db:
        stats = fix_totals(db, dry_run=args.dry_run)

    if args.dry_run:
        logger.info("Dry-run: no changes.")
    logger.info("Fixed %s of %s assets", stats["fixed"], stats["checked"])
    logger.info("Total amount sum: %s", f"₹{stats['total_amount_sum']:,.2f}")
    logger.info("Grand total sum: %s", f"₹{stats['grand_total_sum']:,.2f}")
    for asset_type, total in sorted(stats["grand_total_by_type"].items()):
        logger.info("%s grand total: %s", asset_type.capitalize(), f"₹{total:,.2f}")


if __name__ == "__main__":
    main()
