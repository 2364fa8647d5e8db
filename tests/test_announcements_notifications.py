import crud
from models import UserIn


def _announce(client, headers, title, **extra):
    body = {"title": title, "message": f"{title} body", **extra}
    r = client.post("/api/announcements", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def _titles(client, user_id):
    r = client.get("/api/announcements", headers={"X-User-Id": user_id})
    assert r.status_code == 200
    return sorted(a["title"] for a in r.json())


def test_announcement_visibility_by_role(
    client, db_session, admin, admin_headers, officer, plain_user, department, other_department
):
    _announce(client, admin_headers, "Global", is_global=True, type="urgent")
    physics = _announce(client, admin_headers, "Physics", target_departments=[department.id])
    _announce(client, admin_headers, "Library", target_departments=[other_department.id])
    _announce(client, admin_headers, "Expired", is_global=True, expires_at="2020-01-01T00:00:00Z")

    assert physics["target_departments"][0]["name"] == "Department of Physics"

    chief = crud.create_user(
        db_session, UserIn(name="Chief", email="cao@college.example", role="chief-administrative-officer")
    )

    assert _titles(client, admin.id) == ["Global", "Library", "Physics"]
    assert _titles(client, chief.id) == ["Global", "Library", "Physics"]
    assert _titles(client, officer.id) == ["Global", "Physics"]
    assert _titles(client, plain_user.id) == ["Global"]


def test_announcement_admin_only_writes(client, admin_headers, officer_headers):
    r = client.post("/api/announcements", json={"title": "x", "message": "y"}, headers=officer_headers)
    assert r.status_code == 403

    r = client.post(
        "/api/announcements",
        json={"title": "x", "message": "y", "target_departments": ["missing"]},
        headers=admin_headers,
    )
    assert r.status_code == 400

    created = _announce(client, admin_headers, "Budget released", type="budget_release", is_global=True)
    r = client.delete(f"/api/announcements/{created['id']}", headers=officer_headers)
    assert r.status_code == 403
    r = client.delete(f"/api/announcements/{created['id']}", headers=admin_headers)
    assert r.status_code == 204
    r = client.delete(f"/api/announcements/{created['id']}", headers=admin_headers)
    assert r.status_code == 404


def _notify(db, recipient, bill_no):
    n = crud.create_notification(
        db,
        recipient_id=recipient.id,
        type="update_approved",
        title="Update Request Approved",
        message=f"Your update request for Bill #{bill_no} has been approved by admin.",
        bill_no=bill_no,
    )
    db.commit()
    return n.id


def test_notifications_are_per_recipient(client, db_session, admin, officer, officer_headers, admin_headers):
    first = _notify(db_session, officer, "B-1")
    _notify(db_session, officer, "B-2")
    theirs = _notify(db_session, admin, "B-3")

    r = client.get("/api/notifications", headers=officer_headers)
    assert r.status_code == 200
    assert sorted(n["bill_no"] for n in r.json()) == ["B-1", "B-2"]
    assert not any(n["is_read"] for n in r.json())

    r = client.put(f"/api/notifications/{first}/read", headers=officer_headers)
    assert r.status_code == 200

    r = client.put(f"/api/notifications/{theirs}/read", headers=officer_headers)
    assert r.status_code == 404

    r = client.put("/api/notifications/mark-all-read", headers=officer_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "1 notification(s) marked as read"

    r = client.get("/api/notifications", headers=officer_headers)
    assert all(n["is_read"] for n in r.json())

    r = client.get("/api/notifications", headers=admin_headers)
    assert [n["is_read"] for n in r.json()] == [False]


def test_notifications_require_identity(client):
    assert client.get("/api/notifications").status_code == 401
