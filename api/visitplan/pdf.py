from __future__ import annotations

from typing import Any, Dict, List
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib import colors
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet
import datetime as dt
import io
from xml.sax.saxutils import escape

# background / text colour per visit type, keyed on the first visit in a cell
TYPE_COLORS: Dict[str, tuple[str, str]] = {
    "VIP": ("#FFD9D9", "#990000"),
    "Bi-Monthly": ("#FFF2CC", "#996600"),
    "Monthly_1": ("#D9EAD3", "#274E13"),
    "Monthly_2": ("#D0E2F3", "#0B5394"),
    "Quarterly": ("#EAD1DC", "#741B47"),
}
REST_DAY_FILL = "#FAFAFA"


def summary_rows(result: Dict[str, Any]) -> List[List[str]]:
    """Metric/value rows shared by the PDF and spreadsheet reports."""
    summary = result.get("summary") or {}
    rows: List[List[str]] = [
        ["Total Customers", str(summary.get("total_customers", 0))],
        ["Total Visits Scheduled", str(summary.get("total_visits", 0))],
    ]
    rows.append(["--- VISITS PER FREQUENCY ---", ""])
    for freq, count in sorted((summary.get("visits_by_frequency") or {}).items()):
        rows.append([freq, str(count)])
    rows.append(["--- VISITS PER TEAM ---", ""])
    for team, count in sorted((summary.get("visits_by_team") or {}).items()):
        rows.append([team, str(count)])
    rows.append(["Average jobs per working day", f"{summary.get('average_jobs_per_working_day', 0):.2f}"])
    rows.append(["Peak load day", f"{summary.get('peak_day') or '-'} ({summary.get('peak_load', 0)} jobs)"])
    rows.append(["Validation Check", result.get("validation_check") or ("PASSED" if result.get("valid") else "FAILED")])
    return rows


def schedule_to_pdf(result: Dict[str, Any]) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=18,
        rightMargin=18,
        topMargin=24,
        bottomMargin=18,
    )
    styles = getSampleStyleSheet()
    title_style = styles["Title"]
    normal_style = styles["Normal"]
    small_style = styles["Normal"].clone("Cell")
    small_style.fontSize = 6
    small_style.leading = 7

    year = result.get("year")
    month = result.get("month")
    elements = []
    elements.append(Paragraph(f"Service Visit Schedule {year}-{int(month or 0):02d}", title_style))
    elements.append(Spacer(1, 12))

    teams: List[str] = list(result.get("teams") or [])
    days: List[str] = list(result.get("days") or sorted((result.get("schedule") or {}).keys()))
    working = set(result.get("working_days") or days)
    schedule = result.get("schedule") or {}
    capacity = int((result.get("summary") or {}).get("capacity_limit") or 0)

    header = ["Date", "Day"] + [f"Team {i + 1}\n{team.upper()}" for i, team in enumerate(teams)] + ["Total"]
    matrix: List[List[Any]] = [header]
    style_cmds: List[tuple] = [
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#333333")),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('ALIGN', (0, 0), (1, -1), 'CENTER'),
        ('ALIGN', (-1, 0), (-1, -1), 'CENTER'),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('GRID', (0, 0), (-1, -1), 0.25, colors.HexColor("#DDDDDD")),
        ('FONTSIZE', (0, 0), (-1, -1), 6),
    ]
    for row_idx, key in enumerate(days, start=1):
        date_obj = dt.date.fromisoformat(key)
        jobs = schedule.get(key, {})
        row: List[Any] = [date_obj.strftime("%b %d"), date_obj.strftime("%a").upper()]
        total = 0
        for col_idx, team in enumerate(teams, start=2):
            visits = jobs.get(team, [])
            total += len(visits)
            row.append(Paragraph("<br/>".join(f"- {escape(v['customer'])}" for v in visits), small_style))
            if visits and visits[0]["type"] in TYPE_COLORS:
                bg, _ = TYPE_COLORS[visits[0]["type"]]
                style_cmds.append(('BACKGROUND', (col_idx, row_idx), (col_idx, row_idx), colors.HexColor(bg)))
            elif key not in working:
                style_cmds.append(('BACKGROUND', (col_idx, row_idx), (col_idx, row_idx), colors.HexColor(REST_DAY_FILL)))
        row.append(str(total))
        if capacity and total > capacity:
            style_cmds.append(('TEXTCOLOR', (-1, row_idx), (-1, row_idx), colors.red))
        if key not in working:
            style_cmds.append(('TEXTCOLOR', (0, row_idx), (1, row_idx), colors.HexColor("#999999")))
        matrix.append(row)

    schedule_table = Table(matrix, repeatRows=1)
    schedule_table.setStyle(TableStyle(style_cmds))
    elements.append(schedule_table)
    elements.append(Spacer(1, 12))

    h2 = styles["Heading2"]
    elements.append(Paragraph("Summary Report", h2))
    summary_table = Table([["Metric", "Value"]] + summary_rows(result), repeatRows=1)
    summary_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#e0f2f1")),
        ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
    ]))
    elements.append(summary_table)

    violations = result.get("violations") or []
    if violations:
        elements.append(Spacer(1, 12))
        elements.append(Paragraph("Violations", h2))
        for message in violations:
            elements.append(Paragraph(f"- {escape(message)}", normal_style))

    doc.build(elements)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes
