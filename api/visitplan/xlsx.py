from __future__ import annotations

import datetime as dt
import io
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from visitplan.pdf import TYPE_COLORS, summary_rows

_HEADER_FONT = Font(bold=True, size=9, color="FFFFFF", name="Segoe UI")
_HEADER_FILL = PatternFill(start_color="333333", end_color="333333", fill_type="solid")
_HEADER_BORDER = Border(bottom=Side(style="medium", color="000000"))
_CELL_BORDER = Border(
    top=Side(style="thin", color="F2F2F2"),
    left=Side(style="thin", color="F2F2F2"),
    bottom=Side(style="thin", color="F2F2F2"),
    right=Side(style="thin", color="F2F2F2"),
)
_CELL_FONT = Font(name="Segoe UI", size=8.5)
_TOTAL_FONT = Font(name="Segoe UI", size=9, bold=True)
_OVER_CAPACITY_FONT = Font(name="Segoe UI", size=10, bold=True, color="FF0000")
_REST_FILL = PatternFill(start_color="FAFAFA", end_color="FAFAFA", fill_type="solid")
_REST_FONT = Font(name="Segoe UI", size=8, italic=True, color="CCCCCC")
_WRAP = Alignment(wrap_text=True, vertical="top", horizontal="left")
_CENTER = Alignment(vertical="center", horizontal="center")

_TYPE_STYLES = {
    visit_type: (
        PatternFill(start_color=bg.lstrip("#"), end_color=bg.lstrip("#"), fill_type="solid"),
        Font(name="Segoe UI", size=8.5, bold=True, color=fg.lstrip("#")),
    )
    for visit_type, (bg, fg) in TYPE_COLORS.items()
}


def _write_schedule_sheet(ws, result: Dict[str, Any]) -> None:
    teams: List[str] = list(result.get("teams") or [])
    days: List[str] = list(result.get("days") or sorted((result.get("schedule") or {}).keys()))
    working = set(result.get("working_days") or days)
    schedule = result.get("schedule") or {}
    capacity = int((result.get("summary") or {}).get("capacity_limit") or 0)

    headers = ["DATE", "DAY"] + [f"TEAM {i + 1}\n{team.upper()}" for i, team in enumerate(teams)] + ["TOTAL"]
    widths = [14, 12] + [38] * len(teams) + [10]
    for col, (header, width) in enumerate(zip(headers, widths), start=1):
        c = ws.cell(row=1, column=col, value=header)
        c.font = _HEADER_FONT
        c.fill = _HEADER_FILL
        c.border = _HEADER_BORDER
        c.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.row_dimensions[1].height = 35
    total_col = len(headers)

    for row, key in enumerate(days, start=2):
        date_obj = dt.date.fromisoformat(key)
        jobs = schedule.get(key, {})
        rest_day = key not in working
        ws.cell(row=row, column=1, value=date_obj.strftime("%b %d, %Y"))
        ws.cell(row=row, column=2, value=date_obj.strftime("%A").upper())
        total = 0
        for col, team in enumerate(teams, start=3):
            visits = jobs.get(team, [])
            total += len(visits)
            ws.cell(row=row, column=col, value="\n".join(f"• {v['customer']}" for v in visits))
        ws.cell(row=row, column=total_col, value=total)
        ws.row_dimensions[row].height = 65

        for col in range(1, total_col + 1):
            c = ws.cell(row=row, column=col)
            c.font = _CELL_FONT
            c.border = _CELL_BORDER
            c.alignment = _CENTER if col in (1, 2, total_col) else _WRAP

        for col, team in enumerate(teams, start=3):
            visits = jobs.get(team, [])
            if visits and visits[0]["type"] in _TYPE_STYLES:
                fill, font = _TYPE_STYLES[visits[0]["type"]]
                c = ws.cell(row=row, column=col)
                c.fill = fill
                c.font = font

        total_cell = ws.cell(row=row, column=total_col)
        total_cell.font = _OVER_CAPACITY_FONT if capacity and total > capacity else _TOTAL_FONT

        if rest_day:
            for col in range(1, total_col + 1):
                c = ws.cell(row=row, column=col)
                if c.fill is None or c.fill.fill_type is None:
                    c.fill = _REST_FILL
                    c.font = _REST_FONT


def _write_summary_sheet(ws, result: Dict[str, Any]) -> None:
    ws.column_dimensions["A"].width = 30
    ws.column_dimensions["B"].width = 30
    ws.append(["Metric", "Value"])
    for c in ws[1]:
        c.font = Font(bold=True)
    for label, value in summary_rows(result):
        ws.append([label, value])

    violations = result.get("violations") or []
    if violations:
        ws.append(["", ""])
        ws.append(["--- VIOLATIONS ---", ""])
        for message in violations:
            ws.append([message, ""])


def schedule_to_xlsx(result: Dict[str, Any]) -> bytes:
    wb = Workbook()
    ws = wb.active
    month = int(result.get("month") or 1)
    ws.title = f"{dt.date(2000, month, 1).strftime('%B')} Schedule"
    _write_schedule_sheet(ws, result)
    _write_summary_sheet(wb.create_sheet("Summary Report"), result)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
