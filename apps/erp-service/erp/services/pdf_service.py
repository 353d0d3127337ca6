"""
PDF rendering for generated reports (reportlab platypus).

Every report has a title, the date range, a metric/value summary table and
one table per list section.
"""
from __future__ import annotations

import os
from datetime import date, datetime, UTC
from io import BytesIO
from typing import Any, Dict, List, Sequence, Tuple

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

TABLE_HEADER_BG = HexColor("#1E3A8A")
TABLE_ALT_ROW = HexColor("#F1F5F9")


def _money(value: Any) -> str:
    return f"{float(value or 0):,.2f}"


def _qty(value: Any) -> str:
    return f"{float(value or 0):g}"


def _pct(value: Any) -> str:
    return f"{float(value or 0):.1f}%"


def _table(rows: Sequence[Sequence[Any]], col_widths=None) -> Table:
    table = Table([list(map(str, r)) for r in rows], colWidths=col_widths, hAlign="LEFT")
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), TABLE_HEADER_BG),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, TABLE_ALT_ROW]),
        ('ALIGN', (1, 1), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
    ]))
    return table


Section = Tuple[str, List[List[Any]]]


def _sales_sections(data: Dict[str, Any]) -> Tuple[List[List[Any]], List[Section]]:
    summary = [
        ["Total Orders", data["totalOrders"]],
        ["Total Revenue", _money(data["totalRevenue"])],
        ["Average Order Value", _money(data["avgOrderValue"])],
    ]
    products = [["Product", "Quantity", "Revenue"]] + [
        [p["name"], _qty(p["quantity"]), _money(p["revenue"])] for p in data["topProducts"]
    ]
    return summary, [("Top Selling Products", products)]


def _production_sections(data: Dict[str, Any]):
    summary = [
        ["Total Orders", data["totalOrders"]],
        ["Completed", data["completed"]],
        ["Completion Rate", _pct(data["completionRate"])],
    ]
    statuses = [["Status", "Orders"]] + [[k, v] for k, v in data["statusDistribution"].items()]
    products = [["Product", "Quantity", "Orders"]] + [
        [p["name"], _qty(p["quantity"]), p["orders"]] for p in data["topProducts"]
    ]
    return summary, [("Status Distribution", statuses), ("Top Produced Products", products)]


def _customer_sections(data: Dict[str, Any]):
    summary = [
        ["Total Customers", data["totalCustomers"]],
        ["New Customers", data["newCustomers"]],
        ["Active Customers", data["activeCustomers"]],
    ]
    segments = data["segments"]
    segment_rows = [
        ["Segment", "Customers"],
        ["High (> 50,000)", segments["high"]],
        ["Medium (10,000 - 50,000)", segments["medium"]],
        ["Low (< 10,000)", segments["low"]],
    ]
    customers = [["Customer", "Orders", "Total Spent"]] + [
        [c["name"], c["orders"], _money(c["total"])] for c in data["topCustomers"]
    ]
    return summary, [("Most Valuable Customers", customers), ("Customer Segments", segment_rows)]


def _financial_sections(data: Dict[str, Any]):
    summary = [
        ["Total Revenue", _money(data["totalRevenue"])],
        ["Total Cost", _money(data["totalCost"])],
        ["Gross Profit", _money(data["grossProfit"])],
        ["Profit Margin", _pct(data["profitMargin"])],
    ]
    monthly = [["Month", "Revenue", "Cost", "Profit"]] + [
        [m["month"], _money(m["revenue"]), _money(m["cost"]), _money(m["profit"])] for m in data["monthlyTrend"]
    ]
    products = [["Product", "Revenue", "Cost", "Profit"]] + [
        [p["name"], _money(p["revenue"]), _money(p["cost"]), _money(p["profit"])]
        for p in data["topProfitableProducts"]
    ]
    return summary, [("Monthly Trend", monthly), ("Most Profitable Products", products)]


_SECTION_BUILDERS = {
    "sales": _sales_sections,
    "production": _production_sections,
    "customer": _customer_sections,
    "financial": _financial_sections,
}


def render_report(report_type: str, title: str, start: date, end: date, data: Dict[str, Any]) -> bytes:
    """Render a report to PDF bytes."""
    summary, sections = _SECTION_BUILDERS[report_type](data)

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=20 * mm,
        bottomMargin=18 * mm,
        title=title,
        author=os.getenv("COMPANY_NAME", "Revium ERP"),
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('ReportTitle', parent=styles['Title'], textColor=TABLE_HEADER_BG)
    meta_style = ParagraphStyle('ReportMeta', parent=styles['Normal'], textColor=colors.grey)

    story = [
        Paragraph(title, title_style),
        Paragraph(f"Date range: {start.isoformat()} - {end.isoformat()}", styles['Normal']),
        Paragraph(f"Generated: {datetime.now(UTC).strftime('%Y-%m-%d %H:%M UTC')}", meta_style),
        Spacer(1, 8 * mm),
        Paragraph("Summary", styles['Heading2']),
        _table([["Metric", "Value"]] + summary, col_widths=[70 * mm, 50 * mm]),
    ]
    for heading, rows in sections:
        story.append(Spacer(1, 6 * mm))
        story.append(Paragraph(heading, styles['Heading2']))
        if len(rows) > 1:
            story.append(_table(rows))
        else:
            story.append(Paragraph("No data for this period.", meta_style))
    doc.build(story)
    return buffer.getvalue()
