"""
Properties, locations and assets over the API, including property visibility
"""
from datetime import date, timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from sinergi.models import Asset, Location, MaintenanceOrder, Property

from conftest import auth_headers, make_user


# ============ Properties ============

def test_non_superadmin_sees_only_assigned_properties(client, db, hotel, other_hotel):
    third = Property(name="Hotel Cempaka")
    db.add(third)
    db.commit()
    user = make_user(db, "dua@hotelmawar.co.id", "supervisor", [other_hotel.id, third.id])

    response = client.get("/api/properties", headers=auth_headers(user))
    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Hotel Anggrek", "Hotel Cempaka"]


def test_superadmin_sees_every_property(client, hotel, other_hotel, superadmin):
    response = client.get("/api/properties", headers=auth_headers(superadmin))
    assert [p["name"] for p in response.json()] == ["Hotel Anggrek", "Hotel Mawar"]


def test_unassigned_property_is_forbidden(client, other_hotel, staff):
    assert client.get(f"/api/properties/{other_hotel.id}", headers=auth_headers(staff)).status_code == 403
    assert client.get("/api/properties/9999", headers=auth_headers(staff)).status_code == 404


def test_property_crud_is_superadmin_only(client, db, manager, superadmin):
    body = {"name": "Hotel Dahlia", "address": "Jl. Dahlia 3"}
    assert client.post("/api/properties", headers=auth_headers(manager), json=body).status_code == 403

    created = client.post("/api/properties", headers=auth_headers(superadmin), json=body)
    assert created.status_code == 200
    prop_id = created.json()["id"]

    updated = client.put(f"/api/properties/{prop_id}", headers=auth_headers(superadmin), json={"name": "Hotel Dahlia Baru"})
    assert updated.json()["name"] == "Hotel Dahlia Baru"
    assert updated.json()["address"] is None

    assert client.delete(f"/api/properties/{prop_id}", headers=auth_headers(superadmin)).json()["success"] is True
    assert db.query(Property).filter(Property.id == prop_id).first() is None


def test_deleting_property_removes_its_catalog(client, db, hotel, room, ac_unit, superadmin):
    db.add(MaintenanceOrder(
        code="MT-2025-00001", property_id=hotel.id, type="perbaikan_aset",
        asset_id=ac_unit.id, title="AC bocor", start_date=date(2025, 1, 5),
    ))
    db.commit()

    assert client.delete(f"/api/properties/{hotel.id}", headers=auth_headers(superadmin)).status_code == 200
    assert db.query(Location).count() == 0
    assert db.query(Asset).count() == 0
    assert db.query(MaintenanceOrder).count() == 0


def test_unauthenticated_request_is_rejected(client):
    assert client.get("/api/properties").status_code == 401
    assert client.get("/api/properties", headers={"Authorization": "Bearer not-a-token"}).status_code == 401


# ============ Locations ============

def test_manager_creates_location_and_staff_cannot(client, hotel, manager, staff):
    body = {"name": "Kolam Renang", "type": "fasilitas_umum"}
    assert client.post(f"/api/properties/{hotel.id}/locations", headers=auth_headers(staff), json=body).status_code == 403

    created = client.post(f"/api/properties/{hotel.id}/locations", headers=auth_headers(manager), json=body)
    assert created.status_code == 200
    assert created.json()["type"] == "fasilitas_umum"


def test_invalid_location_type_is_unprocessable(client, hotel, manager):
    response = client.post(f"/api/properties/{hotel.id}/locations", headers=auth_headers(manager), json={
        "name": "Parkir", "type": "parkiran"
    })
    assert response.status_code == 422


def test_grouped_locations(client, hotel, room, manager):
    client.post(f"/api/properties/{hotel.id}/locations", headers=auth_headers(manager), json={"name": "Gudang A", "type": "gudang"})

    grouped = client.get(f"/api/properties/{hotel.id}/locations", headers=auth_headers(manager), params={"grouped": True}).json()
    assert [l["name"] for l in grouped["kamar"]] == ["Kamar 101"]
    assert [l["name"] for l in grouped["gudang"]] == ["Gudang A"]
    assert grouped["office"] == []


def test_deleting_location_keeps_assets(client, db, room, ac_unit, manager):
    assert client.delete(f"/api/locations/{room.id}", headers=auth_headers(manager)).status_code == 200
    db.refresh(ac_unit)
    assert ac_unit.location_id is None


def test_location_targeted_by_order_is_kept(client, db, hotel, room, manager, staff):
    created = client.post(f"/api/properties/{hotel.id}/maintenance", headers=auth_headers(staff), json={
        "title": "Cat ulang", "type": "renovasi_lokasi", "location_id": room.id, "start_date": "2025-02-01",
    }).json()

    response = client.delete(f"/api/locations/{room.id}", headers=auth_headers(manager))
    assert response.status_code == 400
    assert "maintenance" in response.json()["detail"]

    order = db.query(MaintenanceOrder).filter(MaintenanceOrder.id == created["id"]).one()
    assert order.location_id == room.id
    assert order.location is not None

    # Once the order is gone the location can be removed
    assert client.delete(f"/api/maintenance/{created['id']}", headers=auth_headers(manager)).status_code == 200
    assert client.delete(f"/api/locations/{room.id}", headers=auth_headers(manager)).status_code == 200


def test_supervisor_cannot_edit_location(client, room, supervisor):
    response = client.put(f"/api/locations/{room.id}", headers=auth_headers(supervisor), json={"name": "Kamar 102", "type": "kamar"})
    assert response.status_code == 403


# ============ Assets ============

def test_movable_asset_has_no_location(client, hotel, room, manager):
    response = client.post(f"/api/properties/{hotel.id}/assets", headers=auth_headers(manager), json={
        "name": "Troli", "category": "mesin_laundry_housekeeping", "is_movable": True, "location_id": room.id,
    })
    assert response.status_code == 200
    assert response.json()["location_id"] is None
    assert response.json()["condition"] == "baik"
    assert response.json()["status"] == "aktif"


def test_asset_location_must_be_in_property(client, db, hotel, other_hotel, manager):
    elsewhere = Location(property_id=other_hotel.id, name="Kamar 201", type="kamar")
    db.add(elsewhere)
    db.commit()

    response = client.post(f"/api/properties/{hotel.id}/assets", headers=auth_headers(manager), json={
        "name": "Kulkas", "category": "peralatan_kamar", "location_id": elsewhere.id,
    })
    assert response.status_code == 400


def test_asset_update_and_delete(client, ac_unit, room, manager, staff):
    body = {
        "name": "AC Daikin 1.5PK", "category": "peralatan_kamar", "location_id": room.id,
        "condition": "perlu_perbaikan", "status": "dalam_perbaikan", "purchase_price": 5200000,
    }
    assert client.put(f"/api/assets/{ac_unit.id}", headers=auth_headers(staff), json=body).status_code == 403

    updated = client.put(f"/api/assets/{ac_unit.id}", headers=auth_headers(manager), json=body).json()
    assert updated["name"] == "AC Daikin 1.5PK"
    assert updated["purchase_price"] == 5200000
    assert updated["location_name"] == "Kamar 101"

    assert client.delete(f"/api/assets/{ac_unit.id}", headers=auth_headers(staff)).status_code == 403
    assert client.delete(f"/api/assets/{ac_unit.id}", headers=auth_headers(manager)).status_code == 200


def test_asset_targeted_by_order_is_kept(client, db, hotel, ac_unit, manager, staff):
    created = client.post(f"/api/properties/{hotel.id}/maintenance", headers=auth_headers(staff), json={
        "title": "AC bocor", "type": "perbaikan_aset", "asset_id": ac_unit.id, "start_date": "2025-02-01",
    }).json()

    response = client.delete(f"/api/assets/{ac_unit.id}", headers=auth_headers(manager))
    assert response.status_code == 400

    order = db.query(MaintenanceOrder).filter(MaintenanceOrder.id == created["id"]).one()
    assert order.asset_id == ac_unit.id
    assert order.asset is not None
    assert client.get(f"/api/maintenance/{order.id}", headers=auth_headers(staff)).json()["target"] == "AC Daikin 1PK"


def test_database_refuses_to_orphan_an_order(db, hotel, ac_unit):
    db.add(MaintenanceOrder(
        code="MT-2025-00001", property_id=hotel.id, type="perbaikan_aset",
        asset_id=ac_unit.id, title="AC bocor", start_date=date(2025, 1, 5),
    ))
    db.commit()

    with pytest.raises(IntegrityError):
        db.execute(text("DELETE FROM assets WHERE id = :id"), {"id": ac_unit.id})
        db.commit()
    db.rollback()


def test_asset_list_filters(client, hotel, ac_unit, staff):
    url = f"/api/properties/{hotel.id}/assets"
    assert [a["name"] for a in client.get(url, headers=auth_headers(staff), params={"search": "daikin"}).json()] == ["AC Daikin 1PK"]
    assert client.get(url, headers=auth_headers(staff), params={"condition": "rusak"}).json() == []


# ============ Overview ============

def test_property_overview(client, db, hotel, room, ac_unit, staff):
    ac_unit.next_maintenance_date = date.today() + timedelta(days=10)
    db.add(Asset(property_id=hotel.id, name="Genset", category="infrastruktur",
                 next_maintenance_date=date.today() + timedelta(days=90)))
    db.add(MaintenanceOrder(
        code="MT-2025-00001", property_id=hotel.id, type="perbaikan_aset", asset_id=ac_unit.id,
        title="AC bocor", status="in_progress", approval_status="approved", start_date=date(2025, 1, 5),
    ))
    db.add(MaintenanceOrder(
        code="MT-2025-00002", property_id=hotel.id, type="renovasi_lokasi", location_id=room.id,
        title="Cat ulang", status="completed", start_date=date(2025, 1, 6),
    ))
    db.commit()

    overview = client.get(f"/api/properties/{hotel.id}/overview", headers=auth_headers(staff)).json()
    assert overview["location_count"] == 1
    assert overview["asset_count"] == 2
    assert overview["maintenance_count"] == 2
    assert overview["open_maintenance_count"] == 1
    assert overview["awaiting_approval_count"] == 1
    assert [a["name"] for a in overview["upcoming_maintenance"]] == ["AC Daikin 1PK"]
    assert len(overview["recent_maintenance"]) == 2
