from datetime import datetime, timedelta

from sqlalchemy import func, select

from clubsphere import models


def auth_headers(email: str, role: str = "member") -> dict[str, str]:
    return {"X-User-Email": email, "X-User-Role": role}


def test_root_is_alive(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.text == "Club Sphere Server is Running"


def test_create_user_once(client, db):
    first = client.post("/users", json={"email": "New@X.com", "displayName": "New Person"})
    assert first.status_code == 200
    assert first.json()["message"] == "user created"

    second = client.post("/users", json={"email": "new@x.com"})
    assert second.json() == {"message": "user exists", "insertedId": None}

    users = db.execute(select(func.count(models.User.id))).scalar()
    assert users == 1


def test_role_defaults_to_member(client):
    client.post("/users", json={"email": "a@x.com"})
    assert client.get("/users/a@x.com/role").json() == {"role": "member"}
    assert client.get("/users/nobody@x.com/role").json() == {"role": "member"}


def test_only_admin_can_change_role(client):
    user_id = client.post("/users", json={"email": "a@x.com"}).json()["insertedId"]

    denied = client.patch(f"/users/{user_id}/role", json={"role": "manager"}, headers=auth_headers("a@x.com"))
    assert denied.status_code == 403

    invalid = client.patch(
        f"/users/{user_id}/role", json={"role": "overlord"}, headers=auth_headers("root@x.com", "admin")
    )
    assert invalid.status_code == 400

    ok = client.patch(
        f"/users/{user_id}/role", json={"role": "manager"}, headers=auth_headers("root@x.com", "admin")
    )
    assert ok.status_code == 200
    assert ok.json()["role"] == "manager"
    assert client.get("/users/a@x.com/role").json() == {"role": "manager"}


def test_club_starts_pending_until_admin_approves(client):
    manager = auth_headers("boss@club.io", "manager")
    created = client.post(
        "/clubs",
        json={"name": "Photo Walks", "description": "Weekend photography", "membershipFee": 0},
        headers=manager,
    )
    assert created.status_code == 200
    club = created.json()
    assert club["status"] == "pending"
    assert club["manager_email"] == "boss@club.io"
    assert club["total_members"] == 0

    blocked = client.post(f"/clubs/{club['id']}/join", json={"userEmail": "a@x.com"})
    assert blocked.status_code == 404

    not_admin = client.patch(f"/admin/clubs/{club['id']}/status", json={"status": "approved"}, headers=manager)
    assert not_admin.status_code == 403

    bad_status = client.patch(
        f"/admin/clubs/{club['id']}/status", json={"status": "archived"}, headers=auth_headers("root@x.com", "admin")
    )
    assert bad_status.status_code == 400

    approved = client.patch(
        f"/admin/clubs/{club['id']}/status", json={"status": "approved"}, headers=auth_headers("root@x.com", "admin")
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    joined = client.post(f"/clubs/{club['id']}/join", json={"userEmail": "a@x.com"})
    assert joined.status_code == 200


def test_club_validation(client):
    resp = client.post(
        "/clubs",
        json={"name": "  ", "description": "x"},
        headers=auth_headers("boss@club.io", "manager"),
    )
    assert resp.status_code == 400
    assert resp.json()["success"] is False

    assert client.get("/clubs/12345").status_code == 404


def test_events_are_always_free(client, make_club):
    club_id = make_club(manager_email="boss@club.io")
    payload = {
        "title": "Paid Gala",
        "date": (datetime.utcnow() + timedelta(days=5)).isoformat(),
        "location": "Ballroom",
        "is_paid": True,
        "event_fee": 50,
    }

    resp = client.post(f"/clubs/{club_id}/events", json=payload, headers=auth_headers("boss@club.io", "manager"))
    assert resp.status_code == 200
    event = resp.json()
    assert event["is_paid"] is False
    assert event["event_fee"] == 0
    assert event["attendee_count"] == 0
    assert event["club_id"] == club_id

    outsider = client.post(f"/clubs/{club_id}/events", json=payload, headers=auth_headers("x@club.io", "manager"))
    assert outsider.status_code == 403


def test_invalid_role_header(client, make_club):
    club_id = make_club()
    resp = client.get(f"/clubs/{club_id}/members", headers=auth_headers("boss@club.io", "wizard"))
    assert resp.status_code == 400


def test_role_lookup_accepts_any_identifier(client):
    client.post("/users", json={"email": "a@x.com", "role": "manager"})
    assert client.get("/users/A@X.com/role").json() == {"role": "manager"}

    resp = client.get("/users/nobody/role")
    assert resp.status_code == 200
    assert resp.json() == {"role": "member"}
