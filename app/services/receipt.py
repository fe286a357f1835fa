"""Receipt PDF generation with ReportLab; A5, minimal layout."""
import io
import logging
from datetime import datetime

from app.models.dues import DuesRecord

logger = logging.getLogger(__name__)


def _number_to_words_indian(n: float) -> str:
    """Convert number to words (Indian style). E.g. 52000 -> 'Rupees Fifty Two Thousand Only'."""
    n = int(round(n))
    if n == 0:
        return "Rupees Zero Only"
    ones = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
    tens = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]
    teens = ["Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen"]

    def up_to_99(x: int) -> str:
        if x < 10:
            return ones[x]
        if x < 20:
            return teens[x - 10]
        t, o = divmod(x, 10)
        return (tens[t] + " " + ones[o]).strip()

    def up_to_999(x: int) -> str:
        if x < 100:
            return up_to_99(x)
        h, r = divmod(x, 100)
        return (ones[h] + " Hundred " + up_to_99(r)).strip() if r else (ones[h] + " Hundred").strip()

    def up_to_lakh(x: int) -> str:
        if x < 1000:
            return up_to_999(x)
        q, r = divmod(x, 1000)
        return (up_to_999(q) + " Thousand " + up_to_999(r)).strip() if r else (up_to_999(q) + " Thousand").strip()

    if n < 0:
        return "Rupees (Negative) Only"
    if n >= 100_000_00:  # 1 crore+
        c, r = divmod(n, 100_000_00)
        return ("Rupees " + up_to_lakh(c) + " Crore " + up_to_lakh(r) + " Only").replace("  ", " ").strip()
    if n >= 100_000:  # 1 lakh+
        l, r = divmod(n, 100_000)
        return ("Rupees " + up_to_lakh(l) + " Lakh " + up_to_lakh(r) + " Only").replace("  ", " ").strip()
    return "Rupees " + up_to_lakh(n) + " Only"


def receipt_rows(record: DuesRecord) -> list[list[str]]:
    """Description/Details rows shown in the receipt table."""
    paid_at = record.paid_at or datetime.utcnow()
    method = getattr(record.method, "value", record.method) or "-"
    rows = [
        ["Receipt ID", record.receipt_id or str(record.id)],
        ["Payment Date", paid_at.strftime("%d %b %Y")],
        ["Month & Year", f"{record.month} {record.year}"],
        ["Payment Method", method],
        ["Amount Paid", f"INR {record.amount:,.2f}"],
    ]
    if record.gateway_payment_id and record.gateway_payment_id != record.receipt_id:
        rows.append(["Transaction", record.gateway_payment_id])
    return rows


async def generate_receipt_pdf_bytes(
    record: DuesRecord,
    *,
    member_name: str,
    member_email: str = "",
    org_name: str,
    org_address: str = "",
) -> bytes | None:
    """Build the receipt PDF; None when rendering fails.

    Layout (A5 portrait):
      - Centered organisation name and "Payment Receipt" title.
      - Member name and email.
      - Description / Details table (receipt id, date, period, method, amount).
      - Amount in words, then a computer-generated notice and timestamp.
    """
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A5
    from reportlab.lib.units import mm
    from reportlab.pdfgen import canvas
    from reportlab.platypus import Table, TableStyle

    try:
        buf = io.BytesIO()
        c = canvas.Canvas(buf, pagesize=A5)
        w, h = A5
        margin_x = 10 * mm
        y = h - 15 * mm

        # === Header ===
        c.setFont("Helvetica-Bold", 18)
        c.drawCentredString(w / 2, y, (org_name or "")[:50])
        y -= 7 * mm
        if org_address:
            c.setFont("Helvetica", 8)
            c.drawCentredString(w / 2, y, org_address.replace("\n", " ")[:100])
            y -= 5 * mm
        c.setFont("Helvetica", 12)
        c.drawCentredString(w / 2, y, "Payment Receipt")
        y -= 10 * mm

        # === Member ===
        c.setFont("Helvetica", 10)
        c.drawString(margin_x, y, f"User: {member_name[:60]}")
        y -= 5 * mm
        if member_email:
            c.drawString(margin_x, y, f"Email: {member_email[:60]}")
            y -= 5 * mm
        y -= 3 * mm

        # === Details table ===
        border_color = colors.HexColor("#707070")
        data = [["Description", "Details"], *receipt_rows(record)]
        table_width = w - 2 * margin_x
        table = Table(data, colWidths=[table_width * 0.4, table_width * 0.6])
        table.setStyle(
            TableStyle(
                [
                    ("GRID", (0, 0), (-1, -1), 0.5, border_color),
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#4c389e")),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f2f2f2")]),
                ]
            )
        )
        _, th = table.wrapOn(c, table_width, h)
        table.drawOn(c, margin_x, y - th)
        y -= th + 6 * mm

        # === Amount in words ===
        c.setFont("Helvetica", 9)
        words = _number_to_words_indian(record.amount)
        for i in range(0, len(words), 60):
            c.drawString(margin_x, y, words[i : i + 60])
            y -= 4 * mm
        y -= 4 * mm

        # === Footer ===
        c.setFont("Helvetica", 7)
        c.drawString(margin_x, y, "This is a computer-generated receipt and does not require a signature.")
        y -= 4 * mm
        c.drawString(margin_x, y, f"Generated on: {datetime.utcnow().strftime('%d %b %Y %H:%M')} UTC")
        c.save()
        return buf.getvalue()
    except Exception as e:
        logger.warning("ReportLab PDF failed for dues %s: %s", record.id, e)
        return None
