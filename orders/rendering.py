"""Invoice PDF layout.

Turns an invoice context built by `orders.invoices.build_invoice_context`
into PDF bytes with ReportLab. Knows nothing about orders or storage.
"""

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

# The built-in PDF fonts have no rupee glyph
PDF_CURRENCY_SYMBOL = "Rs. "

ACCENT = colors.HexColor("#8B6F47")


def _p(text, style):
    return Paragraph(escape(str(text or "")), style)


def _styles():
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("InvoiceTitle", parent=base["Title"], textColor=ACCENT, alignment=2),
        "company": ParagraphStyle("Company", parent=base["Heading2"], textColor=ACCENT, spaceAfter=2),
        "small": ParagraphStyle("Small", parent=base["Normal"], fontSize=8, leading=10),
        "normal": base["Normal"],
        "heading": ParagraphStyle("Section", parent=base["Heading4"], spaceBefore=6, spaceAfter=2),
    }


def _header(context, styles):
    company = context["company"]
    invoice = context["invoice"]
    left = [
        _p(company["name"], styles["company"]),
        _p(company.get("address", ""), styles["small"]),
        _p(f"{company.get('phone', '')} | {company.get('email', '')}", styles["small"]),
        _p(company.get("website", ""), styles["small"]),
    ]
    right = [
        _p("INVOICE", styles["title"]),
        _p(f"Invoice #: {invoice['number']}", styles["small"]),
        _p(f"Order #: {invoice['order_number']}", styles["small"]),
        _p(f"Date: {invoice['date']}", styles["small"]),
        _p(f"Due: {invoice['due_date']}", styles["small"]),
    ]
    table = Table([[left, right]], colWidths=[100 * mm, 70 * mm])
    table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
    return table


def _parties(context, styles):
    customer = context["customer"]
    shipping = context["shipping"]
    bill_to = [
        _p("Bill To", styles["heading"]),
        _p(customer["name"], styles["normal"]),
        _p(customer["email"], styles["small"]),
        _p(customer.get("phone", ""), styles["small"]),
    ]
    ship_to = [
        _p("Ship To", styles["heading"]),
        _p(shipping["name"], styles["normal"]),
        _p(shipping["street"], styles["small"]),
        _p(f"{shipping['city']}, {shipping['state']} {shipping['postal_code']}", styles["small"]),
        _p(shipping["country"], styles["small"]),
    ]
    return Table([[bill_to, ship_to]], colWidths=[85 * mm, 85 * mm])


def _items(context, styles, money):
    rows = [["#", "Item", "Metals", "Qty", "Unit price", "Amount"]]
    for index, item in enumerate(context["items"], start=1):
        rows.append(
            [
                str(index),
                _p(item["name"], styles["small"]),
                _p(item["metals"] or "-", styles["small"]),
                str(item["quantity"]),
                money(item["price"]),
                money(item["line_total"]),
            ]
        )
    table = Table(rows, colWidths=[8 * mm, 62 * mm, 40 * mm, 12 * mm, 24 * mm, 24 * mm], repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), ACCENT),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("LINEBELOW", (0, 1), (-1, -1), 0.25, colors.lightgrey),
            ]
        )
    )
    return table


def _totals(context, money):
    totals = context["totals"]
    rows = [
        ["Subtotal", money(totals["subtotal"])],
        ["Tax", money(totals["tax"])],
        ["Shipping", money(totals["shipping_fee"])],
        ["Total", money(totals["total"])],
    ]
    table = Table(rows, colWidths=[40 * mm, 30 * mm], hAlign="RIGHT")
    table.setStyle(
        TableStyle(
            [
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (0, -1), (-1, -1), 0.5, ACCENT),
            ]
        )
    )
    return table


def render_invoice_pdf(context: dict) -> bytes:
    """Render the fixed A4 invoice layout and return the PDF bytes."""

    format_money = context["format_currency"]

    def money(value):
        return format_money(value, symbol=PDF_CURRENCY_SYMBOL)

    styles = _styles()
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=20 * mm,
        rightMargin=20 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
        title=f"Invoice {context['invoice']['number']}",
        author=context["company"]["name"],
    )
    payment = context["payment"]
    story = [
        _header(context, styles),
        Spacer(1, 8 * mm),
        _parties(context, styles),
        Spacer(1, 6 * mm),
        _items(context, styles, money),
        Spacer(1, 4 * mm),
        _totals(context, money),
        Spacer(1, 6 * mm),
        _p(
            f"Payment: {payment['method']} ({payment['status']})"
            + (f", transaction {payment['transaction_id']}" if payment["transaction_id"] else ""),
            styles["small"],
        ),
        Spacer(1, 10 * mm),
        _p(f"Thank you for shopping with {context['company']['name']}.", styles["small"]),
    ]
    doc.build(story)
    return buffer.getvalue()
