"""
Login with email + login code, current user and permission matrix
"""
from conftest import auth_headers, LOGIN_CODE


def test_login_returns_token_and_user(client, staff):
    response = client.post("/api/auth/login", json={"email": "STAFF@hotelmawar.co.id", "login_code": LOGIN_CODE})
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "staff@hotelmawar.co.id"
    assert body["user"]["role"] == "staff"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["full_name"] == "Staff"


def test_unknown_email(client, staff):
    response = client.post("/api/auth/login", json={"email": "siapa@hotelmawar.co.id", "login_code": LOGIN_CODE})
    assert response.status_code == 401
    assert response.json()["detail"] == "Email tidak ditemukan"


def test_wrong_login_code(client, staff):
    response = client.post("/api/auth/login", json={"email": "staff@hotelmawar.co.id", "login_code": "000000"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Kode login salah"


def test_me_lists_visible_properties(client, hotel, other_hotel, manager):
    response = client.get("/api/auth/me", headers=auth_headers(manager))
    assert response.json()["role"] == "hotel_manager"
    assert [p["name"] for p in response.json()["properties"]] == ["Hotel Mawar"]


def test_permissions_follow_the_stored_role(client, db, supervisor):
    response = client.get("/api/auth/permissions", headers=auth_headers(supervisor))
    assert response.json()["role"] == "supervisor"
    assert response.json()["permissions"]["can_approve_maintenance"] is True
    assert response.json()["permissions"]["can_manage_catalog"] is False

    # Role changes take effect on the next request; nothing is cached in the token
    supervisor.role_entry.role = "staff"
    db.commit()
    response = client.get("/api/auth/permissions", headers=auth_headers(supervisor))
    assert response.json()["permissions"]["can_approve_maintenance"] is False
