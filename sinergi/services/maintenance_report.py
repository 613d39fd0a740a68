import io
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

import httpx
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, HRFlowable, Image
from reportlab.lib.enums import TA_RIGHT
from PIL import Image as PILImage

from sinergi.services.reports import (
    APPROVAL_STATUS_LABELS, MAINTENANCE_STATUS_LABELS, MAINTENANCE_TYPE_LABELS, label
)
from sinergi.services.storage import is_public_url

logger = logging.getLogger(__name__)

MONTHS_ID = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def format_date_id(value) -> str:
    """12 Januari 2025"""
    if not value:
        return '-'
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return value[:10]
    if isinstance(value, (date, datetime)):
        return f"{value.day} {MONTHS_ID[value.month - 1]} {value.year}"
    return str(value)


def format_rupiah(amount) -> str:
    amount = float(amount or 0)
    return "Rp " + f"{amount:,.0f}".replace(",", ".")


def fetch_image(url: str) -> Optional[bytes]:
    # Only our own bucket; evidence_urls are user supplied
    if not is_public_url(url):
        logger.warning(f"Skipping evidence image outside storage: {url}")
        return None
    try:
        response = httpx.get(url, timeout=10, follow_redirects=False)
        response.raise_for_status()
        return response.content
    except httpx.HTTPError as e:
        logger.warning(f"Could not load evidence image {url}: {e}")
        return None


class MaintenanceReportService:
    """Single maintenance order detail document"""

    def __init__(self, image_loader: Optional[Callable[[str], Optional[bytes]]] = None):
        self.image_loader = image_loader or fetch_image

    def generate_pdf(self, order: Dict[str, Any]) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.6*inch,
            leftMargin=0.6*inch,
            topMargin=0.5*inch,
            bottomMargin=0.5*inch,
            title=order.get('code', 'Maintenance')
        )

        elements = []

        # Colors
        primary = colors.HexColor('#3b82f6')
        dark = colors.HexColor('#1e293b')
        gray = colors.HexColor('#64748b')
        light_gray = colors.HexColor('#f8fafc')
        border = colors.HexColor('#e2e8f0')

        # Styles
        brand_style = ParagraphStyle('Brand', fontSize=22, fontName='Helvetica-Bold', textColor=dark, leading=26)
        tagline_style = ParagraphStyle('Tagline', fontSize=8, textColor=gray)
        badge_style = ParagraphStyle('Badge', fontSize=8, fontName='Helvetica-Bold', textColor=primary, alignment=TA_RIGHT)
        title_style = ParagraphStyle('Title', fontSize=16, fontName='Helvetica-Bold', textColor=dark, leading=20)
        code_style = ParagraphStyle('Code', fontSize=9, textColor=gray)
        section_style = ParagraphStyle('Section', fontSize=9, fontName='Helvetica-Bold', textColor=primary, spaceBefore=8, spaceAfter=4)
        label_style = ParagraphStyle('Label', fontSize=8, fontName='Helvetica-Bold', textColor=gray)
        value_style = ParagraphStyle('Value', fontSize=10, textColor=dark, leading=13)
        small_style = ParagraphStyle('Small', fontSize=7, textColor=gray)

        # === HEADER ===
        header_table = Table([[
            [Paragraph("SINERGI", brand_style), Paragraph("Inventory Management System", tagline_style)],
            Paragraph("MAINTENANCE REPORT", badge_style)
        ]], colWidths=[4.5*inch, 2.5*inch])
        header_table.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'MIDDLE')]))
        elements.append(header_table)
        elements.append(HRFlowable(width="100%", thickness=2, color=primary))
        elements.append(Spacer(1, 12))

        elements.append(Paragraph(_escape(order.get('title', '-')), title_style))
        elements.append(Paragraph(_escape(order.get('code', '')), code_style))
        elements.append(Spacer(1, 10))

        # === INFO GRID ===
        info_data = [
            [Paragraph("TIPE", label_style), Paragraph("TARGET", label_style)],
            [Paragraph(label(MAINTENANCE_TYPE_LABELS, order.get('type')), value_style),
             Paragraph(_escape(order.get('target') or '-'), value_style)],
            [Paragraph("STATUS", label_style), Paragraph("APPROVAL", label_style)],
            [Paragraph(label(MAINTENANCE_STATUS_LABELS, order.get('status')), value_style),
             Paragraph(label(APPROVAL_STATUS_LABELS, order.get('approval_status')), value_style)],
        ]
        info_table = Table(info_data, colWidths=[3.5*inch, 3.5*inch])
        info_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), light_gray),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        elements.append(info_table)
        elements.append(Spacer(1, 12))

        # === DETAILS ===
        details = [
            ['Tanggal Mulai', format_date_id(order.get('start_date'))],
            ['Tanggal Selesai', format_date_id(order.get('end_date'))],
            ['Total Biaya', format_rupiah(order.get('total_cost'))],
        ]
        if order.get('description'):
            details.append(['Deskripsi', order['description']])
        if order.get('approved_at'):
            details.append(['Tanggal Approval', format_date_id(order['approved_at'])])
        if order.get('rejection_reason'):
            details.append(['Alasan Penolakan', order['rejection_reason']])

        details_table = Table(
            [[Paragraph(k, label_style), Paragraph(_escape(v), value_style)] for k, v in details],
            colWidths=[1.8*inch, 5.2*inch]
        )
        details_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (0, -1), light_gray),
            ('LINEBELOW', (0, 0), (-1, -1), 0.5, border),
            ('TOPPADDING', (0, 0), (-1, -1), 6),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        elements.append(details_table)

        # === EVIDENCE ===
        evidence_urls = order.get('evidence_urls') or []
        if evidence_urls:
            elements.append(Spacer(1, 10))
            elements.append(Paragraph("DOKUMENTASI EVIDENCE", section_style))
            cells = self._evidence_cells(evidence_urls, small_style)
            if cells:
                rows = [cells[i:i + 3] for i in range(0, len(cells), 3)]
                rows[-1] += [''] * (3 - len(rows[-1]))
                evidence_table = Table(rows, colWidths=[2.33*inch] * 3)
                evidence_table.setStyle(TableStyle([
                    ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
                    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
                ]))
                elements.append(evidence_table)

        # === FOOTER ===
        elements.append(Spacer(1, 16))
        elements.append(HRFlowable(width="100%", thickness=0.5, color=border))
        printed = datetime.now()
        elements.append(Paragraph(
            f"Dicetak pada: {format_date_id(printed)} {printed.strftime('%H:%M')}  •  SINERGI - Inventory Management System",
            small_style
        ))

        doc.build(elements)
        return buffer.getvalue()

    def _evidence_cells(self, urls: List[str], caption_style) -> list:
        cells = []
        for index, url in enumerate(urls, 1):
            data = self.image_loader(url)
            if not data:
                continue
            try:
                # reportlab cannot read WebP directly
                with PILImage.open(io.BytesIO(data)) as img:
                    png = io.BytesIO()
                    img.convert("RGB").save(png, "PNG")
                png.seek(0)
                flowable = Image(png, width=2.1*inch, height=2.1*inch, kind='proportional')
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable evidence image {url}: {e}")
                continue
            cells.append([flowable, Paragraph(f"Foto {index}", caption_style)])
        return cells


def _escape(value) -> str:
    text = "-" if value is None else str(value)
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
