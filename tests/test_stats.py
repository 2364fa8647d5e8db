from datetime import date

import pytest

import crud


@pytest.mark.parametrize(
    "total, expected",
    [
        (0, "₹0"),
        (12345.6, "₹12,346"),
        (999999, "₹999,999"),
        (2_500_000, "₹2.5M"),
    ],
)
def test_format_total_value(total, expected):
    assert crud.format_total_value(total) == expected


def test_public_stats_needs_no_identity(client, make_asset):
    make_asset()
    make_asset(bill_no="B-002", items=[{"particulars": "Desk", "quantity": 1, "rate": 600}])

    r = client.get("/api/public/stats")
    assert r.status_code == 200
    data = r.json()
    assert data["total_assets"] == 2
    assert data["total_departments"] == 1
    assert data["total_value"] == "₹800"


def test_public_stats_counts_this_month_by_bill_date(db_session, make_asset):
    make_asset(bill_date="2024-04-01")
    make_asset(bill_no="B-002", bill_date="2024-04-30")
    make_asset(bill_no="B-003", bill_date="2024-05-01")

    stats = crud.public_stats(db_session, today=date(2024, 4, 20))
    assert stats.this_month_assets == 2

    stats = crud.public_stats(db_session, today=date(2024, 12, 5))
    assert stats.this_month_assets == 0


def test_admin_stats(client, admin_headers, officer_headers, make_asset):
    asset = make_asset(headers=officer_headers)
    make_asset(bill_no="B-002", type="revenue")
    client.post(
        f"/api/assets/{asset['id']}/request-update",
        json={"requested_fields": ["remark"], "temp_values": {"remark": "x"}},
        headers=officer_headers,
    )

    r = client.get("/api/admin/stats", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["assets"] == 2
    assert data["users"] == 2
    assert data["departments"] == 1
    assert data["pending_updates"] == 1
    assert data["assets_by_type"] == [{"type": "capital", "count": 1}, {"type": "revenue", "count": 1}]
    assert data["recent_activity"][0]["action"] == "CREATE"

    r = client.get("/api/admin/stats", headers=officer_headers)
    assert r.status_code == 403


def test_admin_assets_listing(client, admin_headers, make_asset):
    make_asset(bill_no="B-1")
    make_asset(bill_no="B-2")

    r = client.get("/api/admin/assets?limit=1", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()
    assert [a["bill_no"] for a in data["assets"]] == ["B-2"]
    assert data["pagination"]["total_pages"] == 2
