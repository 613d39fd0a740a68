"""
Report projection for assets and maintenance orders.

Filters are independent and AND-ed together. A non-empty selection narrows
the export to exactly the checked rows; an empty one exports the whole
filtered set. Rows are flattened to label:value dicts with enum codes
translated through the label tables (unknown codes pass through as-is),
then written as an .xlsx sheet or a landscape PDF table.
"""
import io
import re
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from sqlalchemy.orm import Session, joinedload

from sinergi.models import Asset, MaintenanceOrder
from sinergi.schemas import AssetReportRequest, MaintenanceReportRequest

# ============ Label tables ============

CATEGORY_LABELS = {
    "peralatan_kamar": "Peralatan Kamar",
    "peralatan_dapur": "Peralatan Dapur",
    "mesin_laundry_housekeeping": "Mesin Laundry & Housekeeping",
    "kendaraan_operasional": "Kendaraan Operasional",
    "peralatan_kantor_it": "Peralatan Kantor & IT",
    "peralatan_rekreasi_leisure": "Peralatan Rekreasi & Leisure",
    "infrastruktur": "Infrastruktur",
}

CONDITION_LABELS = {
    "baik": "Baik",
    "cukup": "Cukup",
    "perlu_perbaikan": "Perlu Perbaikan",
    "rusak": "Rusak",
}

ASSET_STATUS_LABELS = {
    "aktif": "Aktif",
    "dalam_perbaikan": "Dalam Perbaikan",
    "tidak_aktif": "Tidak Aktif",
    "dihapuskan": "Dihapuskan",
}

LOCATION_TYPE_LABELS = {
    "kamar": "Kamar",
    "fasilitas_umum": "Fasilitas Umum",
    "office": "Office",
    "gudang": "Gudang",
}

MAINTENANCE_TYPE_LABELS = {
    "renovasi_lokasi": "Renovasi Lokasi",
    "perbaikan_aset": "Perbaikan Aset",
}

MAINTENANCE_STATUS_LABELS = {
    "pending": "Pending",
    "in_progress": "Dalam Proses",
    "completed": "Selesai",
    "cancelled": "Dibatalkan",
}

APPROVAL_STATUS_LABELS = {
    "pending_approval": "Menunggu Approval",
    "approved": "Disetujui",
    "rejected": "Ditolak",
}

EMPTY_ASSETS_MESSAGE = "Tidak ada data aset untuk di-export"
EMPTY_MAINTENANCE_MESSAGE = "Tidak ada data maintenance untuk di-export"

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"


def label(table: Dict[str, str], code: Optional[str], default: str = "-") -> str:
    if not code:
        return default
    return table.get(code, code)


def sanitize_search(value: Optional[str]) -> str:
    """Drop LIKE wildcards so the term is matched literally"""
    if not value:
        return ""
    return value.replace("%", "").replace("_", "").strip()


def _money(value) -> float:
    if value is None:
        return 0
    if isinstance(value, Decimal):
        return float(value)
    return value


# ============ Queries ============

def build_asset_query(db: Session, filters: AssetReportRequest, property_id: Optional[int]):
    """Filtered asset query; ``property_id`` None means every property"""
    query = db.query(Asset).options(
        joinedload(Asset.location),
        joinedload(Asset.property)
    )

    if property_id is not None:
        query = query.filter(Asset.property_id == property_id)
    if filters.location_id:
        query = query.filter(Asset.location_id == filters.location_id)
    if filters.category:
        query = query.filter(Asset.category == filters.category)
    if filters.condition:
        query = query.filter(Asset.condition == filters.condition)
    if filters.status:
        query = query.filter(Asset.status == filters.status)

    search = sanitize_search(filters.search)
    if search:
        query = query.filter(Asset.name.ilike(f"%{search}%"))

    return query


def build_maintenance_query(db: Session, filters: MaintenanceReportRequest, property_id: Optional[int]):
    query = db.query(MaintenanceOrder).options(
        joinedload(MaintenanceOrder.asset),
        joinedload(MaintenanceOrder.location),
        joinedload(MaintenanceOrder.property)
    )

    if property_id is not None:
        query = query.filter(MaintenanceOrder.property_id == property_id)
    if filters.location_id:
        query = query.filter(MaintenanceOrder.location_id == filters.location_id)
    if filters.asset_id:
        query = query.filter(MaintenanceOrder.asset_id == filters.asset_id)
    if filters.type:
        query = query.filter(MaintenanceOrder.type == filters.type)
    if filters.status:
        query = query.filter(MaintenanceOrder.status == filters.status)
    if filters.approval_status:
        query = query.filter(MaintenanceOrder.approval_status == filters.approval_status)
    if filters.date_from:
        query = query.filter(MaintenanceOrder.start_date >= filters.date_from)
    if filters.date_to:
        query = query.filter(MaintenanceOrder.start_date <= filters.date_to)

    search = sanitize_search(filters.search)
    if search:
        query = query.filter(MaintenanceOrder.title.ilike(f"%{search}%"))

    return query


def apply_selection(query, model, selected_ids: Iterable[int]):
    """Checked rows override the filter result; nothing checked keeps it whole"""
    selected_ids = list(selected_ids or [])
    if selected_ids:
        query = query.filter(model.id.in_(selected_ids))
    return query


def toggle_select_all_visible(selected_ids: Iterable[int], visible_ids: Iterable[int], checked: bool) -> List[int]:
    """Add or remove only the currently visible rows from a selection"""
    selected = list(dict.fromkeys(selected_ids))
    visible = list(dict.fromkeys(visible_ids))
    if checked:
        return selected + [i for i in visible if i not in selected]
    visible_set = set(visible)
    return [i for i in selected if i not in visible_set]


# ============ Row projection ============

def asset_to_row(asset: Asset) -> Dict[str, Any]:
    if asset.location:
        location_name = asset.location.name
    else:
        location_name = "Bergerak" if asset.is_movable else "-"

    return {
        "Property": asset.property.name if asset.property else "-",
        "Nama": asset.name,
        "Kategori": label(CATEGORY_LABELS, asset.category),
        "Lokasi": location_name,
        "Merek": asset.brand or "-",
        "Seri": asset.series or "-",
        "Harga Beli": _money(asset.purchase_price),
        "Kondisi": label(CONDITION_LABELS, asset.condition),
        "Status": label(ASSET_STATUS_LABELS, asset.status),
    }


def maintenance_target_name(order: MaintenanceOrder) -> str:
    if order.asset:
        return order.asset.name
    if order.location:
        return order.location.name
    return "-"


def maintenance_to_row(order: MaintenanceOrder) -> Dict[str, Any]:
    return {
        "Property": order.property.name if order.property else "-",
        "Kode": order.code,
        "Judul": order.title,
        "Tipe": label(MAINTENANCE_TYPE_LABELS, order.type),
        "Target": maintenance_target_name(order),
        "Tanggal Mulai": order.start_date.isoformat() if order.start_date else "-",
        "Tanggal Selesai": order.end_date.isoformat() if order.end_date else "-",
        "Total Biaya": _money(order.total_cost),
        "Approval": label(APPROVAL_STATUS_LABELS, order.approval_status),
        "Status": label(MAINTENANCE_STATUS_LABELS, order.status),
        "Deskripsi": order.description or "-",
        "Evidence": ", ".join(order.evidence_urls) if order.evidence_urls else "-",
    }


# ============ Output ============

def report_title(kind: str, scope: str, property_name: Optional[str]) -> str:
    base = "Laporan Aset" if kind == "assets" else "Laporan Maintenance"
    if scope == "all":
        return f"{base} - Semua Property"
    return f"{base} - {property_name or ''}"


def report_filename(kind: str, scope: str, property_name: Optional[str], extension: str) -> str:
    if scope == "all":
        stem = f"{kind}_all_properties"
    else:
        name = re.sub(r"[^A-Za-z0-9 _\-]+", "", property_name or "").strip()
        stem = f"{kind}_{name or 'report'}"
    return f"{stem}.{extension}"


def rows_to_xlsx(rows: List[Dict[str, Any]], sheet_name: str) -> bytes:
    """One row per record, headers taken from the first row's labels"""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")
    thin_border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    columns = list(rows[0].keys()) if rows else []
    for col_idx, column in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col_idx, value=column)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = thin_border
        ws.column_dimensions[cell.column_letter].width = max(15, len(column) + 5)

    for row_idx, row in enumerate(rows, 2):
        for col_idx, column in enumerate(columns, 1):
            ws.cell(row=row_idx, column=col_idx, value=row.get(column))

    ws.freeze_panes = "A2"

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def rows_to_pdf(rows: List[Dict[str, Any]], title: str, font_size: int = 7) -> bytes:
    """Landscape tabular document with a title line"""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        rightMargin=0.4*inch,
        leftMargin=0.4*inch,
        topMargin=0.4*inch,
        bottomMargin=0.4*inch,
        title=title
    )

    dark = colors.HexColor('#1e293b')
    light_gray = colors.HexColor('#f1f5f9')
    border = colors.HexColor('#e2e8f0')

    title_style = ParagraphStyle('Title', fontSize=14, fontName='Helvetica-Bold', textColor=dark, leading=18)
    cell_style = ParagraphStyle('Cell', fontSize=font_size, textColor=dark, leading=font_size + 2)
    head_style = ParagraphStyle('Head', fontSize=font_size, fontName='Helvetica-Bold', textColor=dark, leading=font_size + 2)

    columns = list(rows[0].keys()) if rows else []
    data = [[Paragraph(c, head_style) for c in columns]]
    for row in rows:
        data.append([Paragraph(_pdf_text(row.get(c)), cell_style) for c in columns])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), light_gray),
        ('GRID', (0, 0), (-1, -1), 0.5, border),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('TOPPADDING', (0, 0), (-1, -1), 3),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
    ]))

    doc.build([Paragraph(title, title_style), Spacer(1, 10), table])
    return buffer.getvalue()


def _pdf_text(value) -> str:
    if value is None:
        return "-"
    text = str(value)
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
