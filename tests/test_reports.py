"""
Report projection: filters, selection, labels and exported files
"""
import io
from datetime import date

import pytest
from openpyxl import load_workbook

from sinergi.models import Asset, Location, MaintenanceOrder
from sinergi.schemas import AssetReportRequest, MaintenanceReportRequest
from sinergi.services import reports

from conftest import auth_headers


@pytest.fixture
def inventory(db, hotel, room):
    lobby = Location(property_id=hotel.id, name="Lobby", type="fasilitas_umum")
    db.add(lobby)
    db.commit()

    assets = [
        Asset(property_id=hotel.id, location_id=room.id, name="AC Kamar 101", category="peralatan_kamar", condition="baik", status="aktif"),
        Asset(property_id=hotel.id, location_id=room.id, name="TV Kamar 101", category="peralatan_kamar", condition="rusak", status="dalam_perbaikan"),
        Asset(property_id=hotel.id, location_id=lobby.id, name="Sofa Lobby", category="infrastruktur", condition="baik", status="aktif"),
        Asset(property_id=hotel.id, is_movable=True, name="Troli Housekeeping", category="mesin_laundry_housekeeping", condition="cukup", status="aktif"),
    ]
    db.add_all(assets)
    db.commit()
    return {a.name: a for a in assets}


def names(query):
    return sorted(a.name for a in query.all())


# ============ Filters ============

def test_filters_compose_as_intersection(db, hotel, inventory):
    by_category = set(names(reports.build_asset_query(db, AssetReportRequest(category="peralatan_kamar"), hotel.id)))
    by_condition = set(names(reports.build_asset_query(db, AssetReportRequest(condition="baik"), hotel.id)))
    both = names(reports.build_asset_query(db, AssetReportRequest(category="peralatan_kamar", condition="baik"), hotel.id))

    assert both == sorted(by_category & by_condition) == ["AC Kamar 101"]


def test_search_is_case_insensitive_and_ignores_wildcards(db, hotel, inventory):
    assert names(reports.build_asset_query(db, AssetReportRequest(search="  sofa "), hotel.id)) == ["Sofa Lobby"]
    assert names(reports.build_asset_query(db, AssetReportRequest(search="%_%"), hotel.id)) == sorted(inventory)


def test_sanitize_search():
    assert reports.sanitize_search(" 50%_off ") == "50off"
    assert reports.sanitize_search(None) == ""


def test_property_scope(db, hotel, other_hotel, inventory):
    db.add(Asset(property_id=other_hotel.id, name="Genset", category="infrastruktur"))
    db.commit()
    assert "Genset" not in names(reports.build_asset_query(db, AssetReportRequest(), hotel.id))
    assert "Genset" in names(reports.build_asset_query(db, AssetReportRequest(scope="all"), None))


def test_maintenance_date_range_is_inclusive(db, hotel, room):
    for day in (1, 15, 28):
        db.add(MaintenanceOrder(
            code=f"MT-2025-000{day:02d}", property_id=hotel.id, type="renovasi_lokasi",
            location_id=room.id, title=f"Order {day}", start_date=date(2025, 2, day),
        ))
    db.commit()

    filters = MaintenanceReportRequest(date_from=date(2025, 2, 1), date_to=date(2025, 2, 15))
    titles = sorted(o.title for o in reports.build_maintenance_query(db, filters, hotel.id).all())
    assert titles == ["Order 1", "Order 15"]


# ============ Selection ============

def test_selection_overrides_filtered_set(db, hotel, inventory):
    query = reports.build_asset_query(db, AssetReportRequest(category="peralatan_kamar"), hotel.id)
    tv = inventory["TV Kamar 101"]

    assert names(reports.apply_selection(query, Asset, [tv.id])) == ["TV Kamar 101"]
    assert names(reports.apply_selection(query, Asset, [])) == ["AC Kamar 101", "TV Kamar 101"]


def test_toggle_select_all_visible():
    assert reports.toggle_select_all_visible([1, 9], [1, 2, 3], True) == [1, 9, 2, 3]
    assert reports.toggle_select_all_visible([1, 2, 9], [1, 2, 3], False) == [9]


# ============ Rows ============

def test_asset_row_labels(db, hotel, inventory):
    db.refresh(inventory["Troli Housekeeping"])
    row = reports.asset_to_row(inventory["Troli Housekeeping"])
    assert list(row) == ["Property", "Nama", "Kategori", "Lokasi", "Merek", "Seri", "Harga Beli", "Kondisi", "Status"]
    assert row["Property"] == "Hotel Mawar"
    assert row["Kategori"] == "Mesin Laundry & Housekeeping"
    assert row["Lokasi"] == "Bergerak"
    assert row["Kondisi"] == "Cukup"
    assert row["Merek"] == "-"


def test_unknown_code_falls_back_to_raw_value():
    assert reports.label(reports.CONDITION_LABELS, "hilang") == "hilang"
    assert reports.label(reports.CONDITION_LABELS, None) == "-"


def test_maintenance_row(db, hotel, room):
    order = MaintenanceOrder(
        code="MT-2025-00007", property_id=hotel.id, type="renovasi_lokasi", location_id=room.id,
        title="Cat ulang", total_cost=750000, status="in_progress", approval_status="approved",
        start_date=date(2025, 5, 2), evidence_urls=["https://x/1.webp", "https://x/2.webp"],
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    row = reports.maintenance_to_row(order)
    assert row["Kode"] == "MT-2025-00007"
    assert row["Tipe"] == "Renovasi Lokasi"
    assert row["Target"] == "Kamar 101"
    assert row["Tanggal Mulai"] == "2025-05-02"
    assert row["Tanggal Selesai"] == "-"
    assert row["Total Biaya"] == 750000
    assert row["Approval"] == "Disetujui"
    assert row["Status"] == "Dalam Proses"
    assert row["Evidence"] == "https://x/1.webp, https://x/2.webp"


def test_titles_and_filenames():
    assert reports.report_title("assets", "current", "Hotel Mawar") == "Laporan Aset - Hotel Mawar"
    assert reports.report_title("maintenance", "all", None) == "Laporan Maintenance - Semua Property"
    assert reports.report_filename("assets", "all", None, "xlsx") == "assets_all_properties.xlsx"
    assert reports.report_filename("maintenance", "current", "Hotel Mawar", "pdf") == "maintenance_Hotel Mawar.pdf"


def test_xlsx_has_header_and_rows():
    content = reports.rows_to_xlsx([{"Nama": "AC", "Harga Beli": 100}, {"Nama": "TV", "Harga Beli": 200}], "Assets")
    ws = load_workbook(io.BytesIO(content)).active
    assert ws.title == "Assets"
    assert [c.value for c in ws[1]] == ["Nama", "Harga Beli"]
    assert [c.value for c in ws[3]] == ["TV", 200]


def test_pdf_is_rendered():
    content = reports.rows_to_pdf([{"Nama": "AC <Daikin> & co"}], "Laporan Aset - Hotel Mawar")
    assert content.startswith(b"%PDF")


# ============ Endpoints ============

def test_export_xlsx(client, hotel, inventory, manager):
    response = client.post("/api/reports/assets/export", headers=auth_headers(manager), json={
        "property_id": hotel.id,
        "condition": "baik",
        "format": "xlsx",
    })
    assert response.status_code == 200
    assert response.headers["content-type"] == reports.XLSX_MEDIA_TYPE
    assert 'filename="assets_Hotel Mawar.xlsx"' in response.headers["content-disposition"]

    ws = load_workbook(io.BytesIO(response.content)).active
    assert sorted(row[1] for row in ws.iter_rows(min_row=2, values_only=True)) == ["AC Kamar 101", "Sofa Lobby"]


def test_export_selected_rows_only(client, hotel, inventory, manager):
    response = client.post("/api/reports/assets/preview", headers=auth_headers(manager), json={
        "property_id": hotel.id,
        "selected_ids": [inventory["Sofa Lobby"].id],
    })
    assert response.json()["count"] == 1
    assert response.json()["items"][0]["name"] == "Sofa Lobby"


def test_empty_export_returns_message(client, hotel, manager):
    response = client.post("/api/reports/maintenance/export", headers=auth_headers(manager), json={
        "property_id": hotel.id,
        "format": "pdf",
    })
    assert response.status_code == 200
    assert response.json()["message"] == reports.EMPTY_MAINTENANCE_MESSAGE


def test_all_properties_scope_is_superadmin_only(client, hotel, inventory, manager, superadmin):
    body = {"scope": "all", "format": "pdf"}
    assert client.post("/api/reports/assets/export", headers=auth_headers(manager), json=body).status_code == 403

    response = client.post("/api/reports/assets/export", headers=auth_headers(superadmin), json=body)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="assets_all_properties.pdf"' in response.headers["content-disposition"]


def test_current_scope_needs_property(client, manager):
    response = client.post("/api/reports/assets/preview", headers=auth_headers(manager), json={})
    assert response.status_code == 400
