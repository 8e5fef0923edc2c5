"""
Excel export of a completed scrape job.

Layout: styled header, one row per zip code in scrape order, rows with no
data or an extraction error shaded, then a blank row and a bold SUMMARY row
totalling active and upcoming units.
"""
import io
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from loguru import logger
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from padsplit.exceptions import PreconditionError
from padsplit.models import JobStatus, ScrapeJob, ZipRecord, ZipStatus
from padsplit.utils.time import now_utc, today_utc

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
WORKBOOK_CREATOR = "PadSplit Market Insights"
SHEET_TITLE = "Market Insights"

# (header, width) in column order
COLUMNS = [
    ("Zip Code", 12),
    ("City", 20),
    ("Status", 12),
    ("Active Units", 12),
    ("Upcoming Units", 14),
    ("Shared Bath $/wk", 16),
    ("Private Bath $/wk", 16),
    ("Occupancy %", 12),
    ("Days to 1st Booking", 18),
    ("Days to 80%", 14),
]

STATUS_LABELS = {
    ZipStatus.ACTIVE.value: "Active",
    ZipStatus.NO_DATA.value: "No Data",
}
FLAGGED_STATUSES = {ZipStatus.NO_DATA.value, ZipStatus.ERROR.value}

HEADER_FONT = Font(bold=True, color="FFFFFFFF")
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF4472C4")
FLAGGED_FILL = PatternFill(fill_type="solid", fgColor="FFFCE4D6")
SUMMARY_FONT = Font(bold=True)
MISSING = "-"


@dataclass(frozen=True)
class ExportedReport:
    filename: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE


def export_filename(city_name: str, on: Optional[date] = None) -> str:
    safe_city = re.sub(r"[^a-zA-Z0-9]", "_", city_name or "")
    return f"PadSplit_{safe_city}_{(on or today_utc()).isoformat()}.xlsx"


def _status_label(status: Any) -> str:
    value = status.value if isinstance(status, ZipStatus) else str(status)
    return STATUS_LABELS.get(value, value)


def _money(value: Optional[int]) -> str:
    return MISSING if value is None else f"${value}"


def _percent(value: Optional[int]) -> str:
    return MISSING if value is None else f"{value}%"


def _count(value: Optional[int]) -> Any:
    return MISSING if value is None else value


def format_row(record: ZipRecord, city_name: str) -> List[Any]:
    """Display values for one zip record, in COLUMNS order."""
    return [
        record.zip_code,
        record.city or city_name,
        _status_label(record.status),
        record.active_units,
        record.upcoming_units,
        _money(record.shared_bathroom_price),
        _money(record.private_bathroom_price),
        _percent(record.average_occupancy),
        _count(record.days_to_first_booking),
        _count(record.days_to_80_booking),
    ]


def summarize(results: List[ZipRecord]) -> Dict[str, int]:
    return {
        "active_units": sum(r.active_units or 0 for r in results),
        "upcoming_units": sum(r.upcoming_units or 0 for r in results),
    }


def build_workbook(job: ScrapeJob) -> Workbook:
    workbook = Workbook()
    workbook.properties.creator = WORKBOOK_CREATOR
    workbook.properties.created = now_utc().replace(tzinfo=None)

    sheet = workbook.active
    sheet.title = SHEET_TITLE

    sheet.append([header for header, _ in COLUMNS])
    for idx, (_, width) in enumerate(COLUMNS, start=1):
        sheet.column_dimensions[get_column_letter(idx)].width = width
    for cell in sheet[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL

    for record in job.results:
        sheet.append(format_row(record, job.city_name))
        status = record.status.value if isinstance(record.status, ZipStatus) else record.status
        if status in FLAGGED_STATUSES:
            for cell in sheet[sheet.max_row]:
                cell.fill = FLAGGED_FILL

    totals = summarize(job.results)
    # one blank separator row, then the totals
    summary_row = sheet.max_row + 2
    summary_values = ["SUMMARY", "", "", totals["active_units"], totals["upcoming_units"]]
    for col, value in enumerate(summary_values, start=1):
        cell = sheet.cell(row=summary_row, column=col, value=value)
        cell.font = SUMMARY_FONT

    return workbook


def export_job(job: ScrapeJob, on: Optional[date] = None) -> ExportedReport:
    """
    Render a completed job as an xlsx document.

    Raises:
        PreconditionError: the job is still running or ended in error.
    """
    if job.status != JobStatus.COMPLETED:
        raise PreconditionError("Scraping not completed yet")

    workbook = build_workbook(job)
    buffer = io.BytesIO()
    workbook.save(buffer)

    filename = export_filename(job.city_name, on)
    logger.info("Exported job {job_id} ({rows} rows) as {filename}", job_id=job.id, rows=len(job.results), filename=filename)
    return ExportedReport(filename=filename, content=buffer.getvalue())
