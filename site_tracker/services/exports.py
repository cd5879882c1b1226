from __future__ import annotations

from collections import Counter
from datetime import datetime
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from site_tracker.models import Asset, District, Program, Site, Staff

SITE_HEADERS = [
    "Site ID",
    "Name",
    "Type",
    "District",
    "Operational Status",
    "Assessment Status",
    "Contact Person",
    "Contact Phone",
    "Classrooms",
    "Computer Labs",
    "Staff",
    "Assets",
    "Programs",
    "Last Visit",
]

DISTRICT_HEADERS = ["District", "Region", "Sites", "Operational"]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFE")
HEADER_FONT = Font(bold=True, color="FFFFFF")
THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)


def _style_header(ws: Worksheet, row: int = 1) -> None:
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _style_rows(ws: Worksheet, *, start_row: int) -> None:
    for row_idx in range(start_row, ws.max_row + 1):
        for cell in ws[row_idx]:
            cell.border = THIN_BORDER
            if row_idx % 2 == 0:
                cell.fill = ZEBRA_FILL


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _to_excel_datetime(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    # openpyxl rejects tz-aware datetimes
    return value.replace(tzinfo=None)


def _counts_by_site(db: Session, column) -> dict[int, int]:
    stmt = select(column, func.count()).where(column.is_not(None)).group_by(column)
    return {site_id: count for site_id, count in db.execute(stmt).all()}


def build_site_inventory_xlsx_bytes(db: Session, *, district: str | None = None) -> bytes:
    stmt = select(Site).order_by(Site.district.asc(), Site.name.asc(), Site.id.asc())
    if district:
        stmt = stmt.where(Site.district == district)
    sites = list(db.scalars(stmt).all())

    staff_counts = _counts_by_site(db, Staff.site_id)
    asset_counts = _counts_by_site(db, Asset.site_id)
    program_counts = _counts_by_site(db, Program.site_id)

    wb = Workbook()
    ws = wb.active
    ws.title = "Sites"
    ws.append(SITE_HEADERS)
    _style_header(ws)
    for site in sites:
        ws.append(
            [
                site.site_id,
                site.name,
                site.type,
                site.district,
                site.operational_status,
                site.assessment_status,
                site.contact_person,
                site.contact_phone,
                site.classrooms,
                site.computer_labs,
                staff_counts.get(site.id, 0),
                asset_counts.get(site.id, 0),
                program_counts.get(site.id, 0),
                _to_excel_datetime(site.last_visit_date),
            ]
        )
    _style_rows(ws, start_row=2)
    ws.freeze_panes = "A2"
    _auto_width(ws)

    summary = wb.create_sheet("Districts")
    summary.append(DISTRICT_HEADERS)
    _style_header(summary)
    site_totals = Counter(site.district for site in sites)
    operational_totals = Counter(
        site.district for site in sites if site.operational_status.strip().lower() == "operational"
    )
    district_stmt = select(District).order_by(District.name.asc())
    if district:
        district_stmt = district_stmt.where(District.name == district)
    for item in db.scalars(district_stmt).all():
        summary.append(
            [
                item.name,
                item.region,
                site_totals.get(item.name, 0),
                operational_totals.get(item.name, 0),
            ]
        )
    _style_rows(summary, start_row=2)
    _auto_width(summary)

    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()
