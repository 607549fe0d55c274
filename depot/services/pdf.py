"""
PDF export of a day's supply orders, grouped by branch.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timezone
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from depot.core.workflow import status_label
from depot.models.order import Order

_STATUS_COLOURS = {
    "pending": "#c2410c",
    "approved": "#15803d",
    "rejected": "#b91c1c",
    "completed": "#1d4ed8",
}


def _items_text(order: Order) -> str:
    lines = []
    for item in order.items:
        if item.product is None:
            name, unit = "Product Deleted", ""
        else:
            name, unit = item.product.name, item.product.unit
        line = f"{escape(name)} x {item.quantity} {escape(unit)}".rstrip()
        if item.notes:
            line += f" <i>({escape(item.notes)})</i>"
        lines.append(line)
    return "<br/>".join(lines) or "-"


def generate_orders_pdf(
    orders: list[Order],
    requested_date: date,
    branch: str | None = None,
) -> BytesIO:
    """Render ``orders`` into an A4 PDF and return the buffer, rewound.

    Orders must have ``worker`` and ``items.product`` loaded.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        topMargin=20 * mm,
        bottomMargin=20 * mm,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        title=f"Supply orders {requested_date.isoformat()}",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "OrdersTitle",
        parent=styles["Heading1"],
        fontSize=20,
        textColor=colors.HexColor("#1a56db"),
        alignment=TA_CENTER,
        spaceAfter=6,
    )
    heading_style = ParagraphStyle(
        "BranchHeading",
        parent=styles["Heading2"],
        fontSize=13,
        textColor=colors.HexColor("#1f2937"),
        spaceBefore=10,
        spaceAfter=6,
    )
    normal_style = ParagraphStyle(
        "Cell",
        parent=styles["Normal"],
        fontSize=9,
        textColor=colors.HexColor("#374151"),
    )
    footer_style = ParagraphStyle(
        "Footer",
        parent=styles["Normal"],
        fontSize=8,
        textColor=colors.grey,
        alignment=TA_CENTER,
    )

    elements = [
        Paragraph("Supply Orders Report", title_style),
        Paragraph(
            f"Requested date: <b>{requested_date.strftime('%d %B %Y')}</b>"
            f" &nbsp;|&nbsp; Branch: <b>{escape(branch) if branch else 'All branches'}</b>"
            f" &nbsp;|&nbsp; Orders: <b>{len(orders)}</b>",
            footer_style,
        ),
        Spacer(1, 6 * mm),
    ]

    by_branch: dict[str, list[Order]] = defaultdict(list)
    for order in orders:
        by_branch[order.branch].append(order)

    if not by_branch:
        elements.append(Paragraph("No orders found for the selected filters.", normal_style))

    for branch_name in sorted(by_branch):
        branch_orders = by_branch[branch_name]
        elements.append(
            Paragraph(f"{escape(branch_name)} ({len(branch_orders)} orders)", heading_style)
        )
        rows = [
            [
                Paragraph(f"<b>{h}</b>", normal_style)
                for h in ("Order #", "Worker", "Requested", "Status", "Items")
            ]
        ]
        for order in branch_orders:
            colour = _STATUS_COLOURS.get(order.status, "#374151")
            rows.append(
                [
                    Paragraph(escape(order.order_number), normal_style),
                    Paragraph(escape(order.worker.username), normal_style),
                    Paragraph(order.requested_date.strftime("%d %b %Y"), normal_style),
                    Paragraph(
                        f'<font color="{colour}">{status_label(order.status)}</font>',
                        normal_style,
                    ),
                    Paragraph(_items_text(order), normal_style),
                ]
            )

        table = Table(rows, colWidths=[38 * mm, 28 * mm, 24 * mm, 22 * mm, 68 * mm], repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f3f4f6")),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#fafafa")]),
                    ("TOPPADDING", (0, 0), (-1, -1), 4),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                ]
            )
        )
        elements.append(table)

    elements.append(Spacer(1, 8 * mm))
    elements.append(
        Paragraph(
            f"Generated on {datetime.now(timezone.utc).strftime('%d %b %Y at %H:%M UTC')}",
            footer_style,
        )
    )

    doc.build(elements)
    buffer.seek(0)
    return buffer
