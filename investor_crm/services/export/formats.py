"""
Export Formats
CSV (stdlib csv) and Excel (openpyxl) writers over column specs
"""
import csv
import io
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FORMATS = ("csv", "xlsx")

HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF4472C4")


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    value: Callable[[dict], Any]
    width: int = 15


def format_date(value: Any) -> str:
    """YYYY-MM-DD for dates, datetimes and ISO strings; '' for empty."""
    if not value:
        return ""
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")
    return str(value)[:10]


def join_list(values: Optional[List[Any]]) -> str:
    return "; ".join(str(v) for v in values or [])


def yes_no(value: Any) -> str:
    return "Yes" if value else "No"


def to_csv(columns: List[Column], rows: List[dict]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([column.key for column in columns])
    for row in rows:
        writer.writerow([_cell(column.value(row)) for column in columns])
    return buffer.getvalue().encode("utf-8")


def to_xlsx(columns: List[Column], rows: List[dict], title: str) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = title[:31]

    last_column = get_column_letter(len(columns))
    sheet.merge_cells(f"A1:{last_column}1")
    sheet["A1"] = f"{title} Export"
    sheet["A1"].font = Font(bold=True, size=16)
    sheet["A1"].alignment = Alignment(horizontal="center", vertical="center")

    sheet.merge_cells(f"A2:{last_column}2")
    sheet["A2"] = f"Exported: {datetime.now().strftime('%Y-%m-%d %H:%M')}"
    sheet["A2"].font = Font(italic=True, size=9)

    header_row = 4
    for index, column in enumerate(columns, start=1):
        cell = sheet.cell(row=header_row, column=index, value=column.label)
        cell.font = Font(bold=True, color="FFFFFFFF")
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
        sheet.column_dimensions[get_column_letter(index)].width = column.width

    for offset, row in enumerate(rows, start=1):
        for index, column in enumerate(columns, start=1):
            sheet.cell(row=header_row + offset, column=index, value=_cell(column.value(row)))

    sheet.freeze_panes = sheet.cell(row=header_row + 1, column=1)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return str(value)
    return value
