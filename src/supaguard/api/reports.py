from __future__ import annotations

import io
import logging
from typing import Any, Iterable, Sequence

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from ..models import Backup, Project, Table

logger = logging.getLogger("supaguard.api.reports")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_THIN = Side(style="thin")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


def query_frame(rows: Sequence[dict[str, Any]]) -> pd.DataFrame:
    """Tabulate console rows; columns are the union of keys in first-seen order."""
    return pd.DataFrame.from_records(list(rows or []))


def frame_to_csv(frame: pd.DataFrame) -> str:
    return frame.to_csv(index=False)


def _write_sheet(worksheet, title: str, headers: list[str], rows: Iterable[list[Any]]) -> None:
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="10B981", end_color="10B981", fill_type="solid")
    header_alignment = Alignment(horizontal="center", vertical="center")

    worksheet.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(headers))
    worksheet["A1"] = title
    worksheet["A1"].font = Font(bold=True, size=14)
    worksheet["A1"].alignment = Alignment(horizontal="center")

    start_row = 3
    for col, header in enumerate(headers, 1):
        cell = worksheet.cell(row=start_row, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = header_alignment
        cell.border = _BORDER

    for row_idx, values in enumerate(rows, start_row + 1):
        for col, value in enumerate(values, 1):
            cell = worksheet.cell(row=row_idx, column=col, value=value)
            cell.border = _BORDER
            cell.alignment = Alignment(vertical="top")

    # Auto-adjust column widths, ignoring the merged title row
    for col_num in range(1, len(headers) + 1):
        letter = openpyxl.utils.get_column_letter(col_num)
        lengths = [
            len(str(cell.value))
            for cell in worksheet[letter][start_row - 1 :]
            if cell.value is not None
        ]
        worksheet.column_dimensions[letter].width = min(max(max(lengths, default=0) + 2, 10), 50)


def build_inventory_workbook(
    project: Project, tables: Sequence[Table], backups: Sequence[Backup] = ()
) -> bytes:
    """
    Build an Excel inventory of a project: one sheet with tables and row counts,
    one with the platform backups.
    """
    logger.info(
        f"Building inventory workbook for project {project.id}: "
        f"{len(tables)} tables, {len(backups)} backups"
    )
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)

    tables_sheet = workbook.create_sheet(title="Tables")
    _write_sheet(
        tables_sheet,
        f"Project: {project.name} ({project.id})",
        ["Schema", "Table", "Rows"],
        ([table.table_schema, table.name, table.row_count] for table in tables),
    )
    total_row = tables_sheet.max_row + 1
    tables_sheet.cell(row=total_row, column=2, value="Total").font = Font(bold=True)
    tables_sheet.cell(
        row=total_row, column=3, value=sum(table.row_count or 0 for table in tables)
    ).font = Font(bold=True)

    backups_sheet = workbook.create_sheet(title="Backups")
    _write_sheet(
        backups_sheet,
        f"Backups: {project.name}",
        ["Id", "Created", "Physical", "Status"],
        ([str(b.id), b.inserted_at, "yes" if b.is_physical else "no", b.status] for b in backups),
    )

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
