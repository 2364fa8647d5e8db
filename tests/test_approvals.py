from sqlalchemy import select

import crud
from models import UserIn
from orm import BillFileORM, NotificationORM


def _request(client, headers, asset_id, temp_values, requested_fields=None):
    return client.post(
        f"/api/assets/{asset_id}/request-update",
        json={"requested_fields": requested_fields or list(temp_values), "temp_values": temp_values},
        headers=headers,
    )


def test_request_stages_values_without_touching_live_fields(
    client, db_session, admin, officer_headers, admin_headers, make_asset
):
    asset = make_asset(headers=officer_headers, remark="original")

    r = _request(client, officer_headers, asset["id"], {"remark": "corrected", "bill_no": "B-002"})
    assert r.status_code == 200, r.text
    staged = r.json()
    assert staged["update_request_status"] == "pending"
    assert staged["requested_fields"] == ["remark", "bill_no"]
    assert staged["temp_values"] == {"remark": "corrected", "bill_no": "B-002"}
    assert staged["remark"] == "original"
    assert staged["bill_no"] == "B-001"

    notes = db_session.execute(
        select(NotificationORM).where(NotificationORM.recipient_id == admin.id)
    ).scalars().all()
    assert [n.type for n in notes] == ["update_requested"]


def test_pending_list_shows_current_and_new_values(client, admin_headers, officer_headers, make_asset):
    asset = make_asset(headers=officer_headers)
    _request(
        client,
        officer_headers,
        asset["id"],
        {
            "vendor_name": "Bharat Stores",
            "items": {
                "item_index": 0,
                "updated_item": {"particulars": "Laptop", "quantity": 3, "rate": 100, "cgst": 9, "sgst": 9},
            },
        },
    )

    r = client.get("/api/assets/pending-updates", headers=admin_headers)
    assert r.status_code == 200
    pending = r.json()
    assert len(pending) == 1
    assert pending[0]["current_values"] == {
        "vendor_name": "Acme Traders",
        "items": "Laptop (Qty: 2, Rate: ₹100)",
    }
    assert pending[0]["new_values"] == {
        "vendor_name": "Bharat Stores",
        "items": "Laptop (Qty: 3, Rate: ₹100)",
    }

    r = client.get("/api/assets/pending-updates", headers=officer_headers)
    assert r.status_code == 403


def test_approve_copies_staged_values_and_clears_staging(
    client, db_session, officer, admin_headers, officer_headers, make_asset
):
    asset = make_asset(headers=officer_headers)
    _request(client, officer_headers, asset["id"], {"remark": "corrected", "bill_no": "B-002"})

    r = client.post(
        f"/api/assets/{asset['id']}/approve-update",
        json={"admin_remarks": "looks right"},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    approved = r.json()
    assert approved["remark"] == "corrected"
    assert approved["bill_no"] == "B-002"
    assert approved["update_request_status"] == "approved"
    assert approved["requested_fields"] == []
    assert approved["temp_values"] == {}
    assert approved["temp_bill_file_id"] is None
    assert approved["admin_remarks"] == "looks right"
    assert approved["reviewed_by_id"] is not None
    assert approved["reviewed_at"] is not None
    # untouched fields stay as they were
    assert approved["vendor_name"] == "Acme Traders"
    assert approved["grand_total"] == 236

    note = db_session.execute(
        select(NotificationORM).where(NotificationORM.recipient_id == officer.id)
    ).scalar_one()
    assert note.type == "update_approved"
    assert note.bill_no == "B-002"
    assert "looks right" in note.message

    r = client.get("/api/admin/audit-logs?action=UPDATE", headers=admin_headers)
    assert r.json()["logs"][0]["reason"] == "Update request approved"


def test_approve_staged_item_edit_forces_totals(client, admin_headers, officer_headers, make_asset):
    asset = make_asset(headers=officer_headers)
    _request(
        client,
        officer_headers,
        asset["id"],
        {"items": {"item_index": 0, "updated_item": {"particulars": "Laptop", "quantity": 3, "rate": 100, "cgst": 9, "sgst": 9}}},
    )

    r = client.post(f"/api/assets/{asset['id']}/approve-update", headers=admin_headers)
    assert r.status_code == 200, r.text
    approved = r.json()
    assert approved["items"][0]["quantity"] == 3
    assert approved["total_amount"] == 300
    assert approved["grand_total"] == 354


def test_approve_staged_item_list_and_removal(client, admin_headers, officer_headers, make_asset):
    asset = make_asset(
        headers=officer_headers,
        items=[
            {"particulars": "Laptop", "quantity": 2, "rate": 100, "cgst": 9, "sgst": 9},
            {"particulars": "Mouse", "quantity": 4, "rate": 25, "cgst": 6, "sgst": 6},
        ],
    )
    _request(client, officer_headers, asset["id"], {"delete_item": {"item_index": 1}})

    r = client.post(f"/api/assets/{asset['id']}/approve-update", headers=admin_headers)
    assert r.status_code == 200, r.text
    approved = r.json()
    assert [i["particulars"] for i in approved["items"]] == ["Laptop"]
    assert approved["grand_total"] == 236

    items = [{"particulars": "Chair", "quantity": 10, "rate": 50, "cgst": 6, "sgst": 6}]
    r = _request(client, officer_headers, asset["id"], {"items": items})
    assert r.status_code == 200, r.text

    r = client.post(f"/api/assets/{asset['id']}/approve-update", headers=admin_headers)
    approved = r.json()
    assert approved["item_name"] == "Chair"
    assert approved["total_amount"] == 500
    assert approved["grand_total"] == 560


def test_reject_leaves_live_fields_and_clears_staging(
    client, db_session, officer, admin_headers, officer_headers, make_asset
):
    asset = make_asset(headers=officer_headers)
    _request(client, officer_headers, asset["id"], {"remark": "corrected", "grand_total": 1})

    r = client.post(
        f"/api/assets/{asset['id']}/reject-update",
        json={"admin_remarks": "bill does not match"},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    rejected = r.json()
    assert rejected["update_request_status"] == "rejected"
    assert rejected["remark"] is None
    assert rejected["grand_total"] == 236
    assert rejected["requested_fields"] == []
    assert rejected["temp_values"] == {}
    assert rejected["admin_remarks"] == "bill does not match"

    note = db_session.execute(
        select(NotificationORM).where(NotificationORM.recipient_id == officer.id)
    ).scalar_one()
    assert note.type == "update_rejected"


def test_decisions_require_a_pending_request(client, admin_headers, officer_headers, make_asset):
    asset = make_asset(headers=officer_headers)

    r = client.post(f"/api/assets/{asset['id']}/approve-update", headers=admin_headers)
    assert r.status_code == 409
    r = client.post(f"/api/assets/{asset['id']}/reject-update", headers=admin_headers)
    assert r.status_code == 409

    r = client.post("/api/assets/missing/approve-update", headers=admin_headers)
    assert r.status_code == 404


def test_review_update_dispatches_on_decision(client, admin_headers, officer_headers, make_asset):
    asset = make_asset(headers=officer_headers)
    _request(client, officer_headers, asset["id"], {"remark": "first"})

    r = client.post(
        f"/api/assets/{asset['id']}/review-update",
        json={"approve": False, "remarks": "no"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["update_request_status"] == "rejected"

    # a rejected asset can be requested again
    r = _request(client, officer_headers, asset["id"], {"remark": "second"})
    assert r.status_code == 200
    r = client.post(
        f"/api/assets/{asset['id']}/review-update",
        json={"approve": True},
        headers=admin_headers,
    )
    assert r.json()["update_request_status"] == "approved"
    assert r.json()["remark"] == "second"


def test_request_while_another_officer_is_pending_is_409(
    client, db_session, department, officer_headers, make_asset
):
    asset = make_asset(headers=officer_headers)
    other = crud.create_user(
        db_session,
        UserIn(name="Meena", email="meena@college.example", role="department-officer", department_id=department.id),
    )

    assert _request(client, officer_headers, asset["id"], {"remark": "a"}).status_code == 200
    r = _request(client, {"X-User-Id": other.id}, asset["id"], {"remark": "b"})
    assert r.status_code == 409

    # the first requester may resubmit
    r = _request(client, officer_headers, asset["id"], {"remark": "c"})
    assert r.status_code == 200
    assert r.json()["temp_values"] == {"remark": "c"}


def test_request_validation(client, admin_headers, officer_headers, make_asset):
    asset = make_asset(headers=officer_headers)

    r = _request(client, officer_headers, asset["id"], {"colour": "red"})
    assert r.status_code == 400

    r = _request(client, officer_headers, asset["id"], {"remark": "x", "bill_no": "y"}, requested_fields=["remark"])
    assert r.status_code == 400

    r = _request(client, officer_headers, asset["id"], {"email": "not-an-email"})
    assert r.status_code == 400

    r = _request(client, officer_headers, asset["id"], {"bill_no": None})
    assert r.status_code == 400

    r = _request(client, officer_headers, asset["id"], {"delete_item": {"item_index": 0}})
    assert r.status_code == 400

    r = _request(client, officer_headers, asset["id"], {"items": {"item_index": 0}})
    assert r.status_code == 400

    r = _request(client, officer_headers, asset["id"], {"items": {"item_index": 5, "updated_item": {"particulars": "X", "quantity": 1, "rate": 1}}})
    assert r.status_code == 400

    r = _request(client, admin_headers, asset["id"], {"remark": "x"})
    assert r.status_code == 403


def test_request_with_empty_item_list_is_rejected(client, officer_headers, make_asset):
    asset = make_asset(headers=officer_headers)

    r = _request(client, officer_headers, asset["id"], {"items": []})
    assert r.status_code == 400
    body = r.json()
    assert body["errors"][0]["field"] == "items"
    assert "At least one item" in body["errors"][0]["message"]

    r = _request(client, officer_headers, asset["id"], {"items": None})
    assert r.status_code == 400

    r = client.get(f"/api/assets/{asset['id']}", headers=officer_headers)
    current = r.json()
    assert [i["particulars"] for i in current["items"]] == ["Laptop"]
    assert current["grand_total"] == 236
    assert current["update_request_status"] == "none"


def test_bill_replacement_request_approve(client, db_session, admin_headers, officer_headers, make_asset, pdf_upload):
    asset = make_asset(headers=officer_headers)
    new_pdf = b"%PDF-1.4 replacement"

    r = client.post(
        f"/api/assets/{asset['id']}/request-bill-update",
        files=pdf_upload(content=new_pdf, filename="new-bill.pdf"),
        headers=officer_headers,
    )
    assert r.status_code == 200, r.text
    staged = r.json()
    assert staged["requested_fields"] == ["bill_file_id"]
    assert staged["temp_bill_file_id"]
    assert staged["bill_file_id"] == asset["bill_file_id"]

    r = client.post(f"/api/assets/{asset['id']}/approve-update", headers=admin_headers)
    approved = r.json()
    assert approved["bill_file_id"] == staged["temp_bill_file_id"]
    assert approved["temp_bill_file_id"] is None

    r = client.get(f"/api/assets/{asset['id']}/bill", headers=admin_headers)
    assert r.content == new_pdf
    assert db_session.get(BillFileORM, asset["bill_file_id"]) is None


def test_bill_replacement_request_reject_discards_file(
    client, db_session, admin_headers, officer_headers, make_asset, pdf_upload
):
    asset = make_asset(headers=officer_headers)

    r = client.post(
        f"/api/assets/{asset['id']}/request-bill-update",
        files=pdf_upload(),
        headers=officer_headers,
    )
    temp_id = r.json()["temp_bill_file_id"]

    r = client.post(f"/api/assets/{asset['id']}/reject-update", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["bill_file_id"] == asset["bill_file_id"]
    assert db_session.get(BillFileORM, temp_id) is None
