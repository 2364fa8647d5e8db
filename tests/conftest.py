import json
import os
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# must be set before db.py is first imported
_TMP_DIR = Path(tempfile.mkdtemp(prefix="assetflow_test_"))
os.environ["APP_DB_PATH"] = str(_TMP_DIR / "test_assetflow.db")

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"


@pytest.fixture(scope="session")
def app_module():
    import main

    return main


@pytest.fixture()
def client(app_module):
    # route every request through the test database
    def _get_db_override():
        db = app_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app_module.app.dependency_overrides[app_module.get_db] = _get_db_override
    with TestClient(app_module.app) as c:
        yield c
    app_module.app.dependency_overrides.clear()


@pytest.fixture()
def db_session(app_module):
    db = app_module.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def clean_db(app_module, db_session):
    # children before parents
    from sqlalchemy import delete
    from orm import (
        AnnouncementORM,
        AssetItemORM,
        AssetORM,
        AuditLogORM,
        BillFileORM,
        DepartmentORM,
        NotificationORM,
        UserORM,
        announcement_departments,
    )

    db_session.execute(delete(NotificationORM))
    db_session.execute(delete(AuditLogORM))
    db_session.execute(delete(announcement_departments))
    db_session.execute(delete(AnnouncementORM))
    db_session.execute(delete(AssetItemORM))
    db_session.execute(delete(AssetORM))
    db_session.execute(delete(BillFileORM))
    db_session.execute(delete(UserORM))
    db_session.execute(delete(DepartmentORM))
    db_session.commit()
    yield


# ---------- people / departments ----------
def _make_user(db, name, email, role, department_id=None):
    import crud
    from models import UserIn

    created = crud.create_user(db, UserIn(name=name, email=email, role=role, department_id=department_id))
    return crud.get_user_row(db, created.id)


@pytest.fixture()
def admin(db_session):
    return _make_user(db_session, "Asha Admin", "admin@college.example", "admin")


@pytest.fixture()
def department(db_session, admin):
    import crud
    from models import DepartmentIn

    return crud.create_department(
        db_session, DepartmentIn(name="Department of Physics", type="Academic"), actor=admin
    )


@pytest.fixture()
def other_department(db_session, admin):
    import crud
    from models import DepartmentIn

    return crud.create_department(
        db_session, DepartmentIn(name="Central Library", type="Service"), actor=admin
    )


@pytest.fixture()
def officer(db_session, department):
    return _make_user(db_session, "Ravi Officer", "ravi@college.example", "department-officer", department.id)


@pytest.fixture()
def plain_user(db_session):
    return _make_user(db_session, "Uma User", "uma@college.example", "user")


@pytest.fixture()
def admin_headers(admin):
    return {"X-User-Id": admin.id}


@pytest.fixture()
def officer_headers(officer):
    return {"X-User-Id": officer.id}


# ---------- assets ----------
def _asset_form(department_id, **overrides):
    data = {
        "department_id": department_id,
        "type": "capital",
        "vendor_name": "Acme Traders",
        "vendor_address": "12 MG Road, Bengaluru",
        "contact_number": "9876543210",
        "email": "sales@acme.example",
        "bill_no": "B-001",
        "bill_date": "2024-04-15",
        "items": [{"particulars": "Laptop", "quantity": 2, "rate": 100, "cgst": 9, "sgst": 9}],
    }
    data.update(overrides)
    if data.get("items") is None:
        data.pop("items", None)
    elif not isinstance(data["items"], str):
        data["items"] = json.dumps(data["items"])
    return {k: str(v) for k, v in data.items() if v is not None}


def _pdf_upload(content=PDF_BYTES, filename="bill.pdf", content_type="application/pdf"):
    return {"bill_file": (filename, content, content_type)}


@pytest.fixture()
def make_asset(client, admin_headers, department):
    def _make(headers=None, **overrides):
        r = client.post(
            "/api/assets",
            data=_asset_form(overrides.pop("department_id", department.id), **overrides),
            files=_pdf_upload(),
            headers=headers or admin_headers,
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _make


@pytest.fixture()
def asset_form():
    return _asset_form


@pytest.fixture()
def pdf_upload():
    return _pdf_upload


@pytest.fixture()
def pdf_bytes():
    return PDF_BYTES
