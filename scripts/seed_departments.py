#!/usr/bin/env python3
# scripts/seed_departments.py
import argparse
import logging
import os
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

logger = logging.getLogger("seed_departments")

DEPARTMENTS = [
    ("Department of Civil Engineering", "Major"),
    ("Department of Computer Science and Engineering (CSE)", "Major"),
    ("Department of Electronics and Communication Engineering (ECE)", "Major"),
    ("Department of Electrical and Electronics Engineering (EEE)", "Major"),
    ("Department of Information Science and Engineering (ISE)", "Major"),
    ("Department of Mechanical Engineering", "Major"),
    ("Department of Artificial Intelligence and Machine Learning (AIML, under CSE)", "Major"),
    ("Department of First Year Engineering", "Academic"),
    ("Department of Chemistry", "Academic"),
    ("Department of Physics", "Academic"),
    ("Department of Mathematics", "Academic"),
    ("Department of Electrical Maintenance", "Service"),
    ("Department of Civil Maintenance", "Service"),
    ("Office Administration", "Service"),
    ("Central Library", "Service"),
    ("Department of Sports and Physical Education", "Service"),
    ("Boys' Hostel Administration", "Service"),
    ("Girls' Hostel Administration", "Service"),
]


def seed_departments(db: Session, departments=DEPARTMENTS) -> int:
    """Insert missing departments by name. Existing ones are left alone."""
    from orm import DepartmentORM

    existing = set(db.execute(select(DepartmentORM.name)).scalars().all())
    now = datetime.now(timezone.utc)
    inserted = 0
    for name, dept_type in departments:
        if name in existing:
            continue
        db.add(DepartmentORM(id=str(uuid4()), name=name, type=dept_type, created_at=now, updated_at=now))
        inserted += 1
    db.commit()
    return inserted


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Seed the institution's departments.")
    ap.add_argument("--db", default=None, help="Path to SQLite DB (default: APP_DB_PATH or data/assetflow.db)")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    if args.db:
        os.environ["APP_DB_PATH"] = args.db

    import orm  # noqa: F401
    from db import Base, engine, session_scope

    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        inserted = seed_departments(db)
    logger.info("Inserted %s department(s) (ignored existing: %s)", inserted, len(DEPARTMENTS) - inserted)


if __name__ == "__main__":
    main()
