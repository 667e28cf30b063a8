"""Thermal receipt printing for finalized bills."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from snooker_pos.config import (
    PRINTER_FONT_PATH,
    PRINTER_FONT_SIZE,
    PRINTER_LEFT_INDENT_PX,
    PRINTER_USB_PRODUCT_ID,
    PRINTER_USB_VENDOR_ID,
    PRINTER_WIDTH_PX,
)
from snooker_pos.models import BillRecord, PaymentStatus
from snooker_pos.rendering import format_amount, format_duration

logger = logging.getLogger(__name__)

_LINE_EXTRA_PX = 12
_TAIL_SPACER_PX = 60
_RECEIPT_CHARS = 32
_FONT_OVERRIDE_ENV = "SNOOKER_POS_PRINTER_FONT_PATH"
RULE = "-" * _RECEIPT_CHARS


def _clip(text: str) -> str:
    return text if len(text) <= _RECEIPT_CHARS else text[: _RECEIPT_CHARS - 3] + "..."


def bill_receipt_lines(bill: BillRecord) -> list[str]:
    """Plain text lines of a bill receipt, ``RULE`` between header, lines and total."""
    lines = [f"Table {bill.table_number}", _clip(bill.customer_name)]
    if bill.phone:
        lines.append(_clip(bill.phone))
    lines.append(bill.created_at[:16].replace("T", " "))
    lines.append(RULE)
    lines.append(f"Play {format_duration(bill.duration_minutes)}")
    item_sum = 0
    for line in bill.items:
        lines.append(_clip(f"{line.name} x{line.quantity}  {format_amount(line.line_total)}"))
        item_sum += line.line_total
    lines.append(f"Table charge  {format_amount(bill.amount - item_sum)}")
    lines.append(RULE)
    lines.append(f"TOTAL  {format_amount(bill.amount)}")
    return lines


def resolve_printer_font_path() -> str:
    """Font file for receipts: ``SNOOKER_POS_PRINTER_FONT_PATH`` if set, else ``PRINTER_FONT_PATH``."""
    path = os.environ.get(_FONT_OVERRIDE_ENV, "").strip() or PRINTER_FONT_PATH
    if not Path(path).is_file():
        raise RuntimeError(f"Printer font {path!r} not found. Set {_FONT_OVERRIDE_ENV} to a .ttf/.otf file.")
    return path


def check_printer_dependencies() -> tuple[bool, str]:
    """Check whether printer dependencies are importable."""
    try:
        from escpos.printer import Usb  # noqa: F401
        from PIL import ImageFont

        ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
    except Exception as exc:
        return (False, f"Printer unavailable: {exc}")
    return (True, "Printer ready")


def _render_line(text: str, font: object) -> object:
    from PIL import Image, ImageDraw

    scratch = Image.new("1", (1, 1), color=1)
    bbox = ImageDraw.Draw(scratch).textbbox((0, 0), text, font=font)
    text_height = bbox[3] - bbox[1]
    canvas_height = max(12, text_height + _LINE_EXTRA_PX)

    img = Image.new("1", (PRINTER_WIDTH_PX, canvas_height), color=1)
    # Offset by bbox top so descenders are not clipped.
    y = (canvas_height - text_height) // 2 - bbox[1]
    ImageDraw.Draw(img).text((PRINTER_LEFT_INDENT_PX, y), text, font=font, fill=0)
    return img


def _render_payment_badge(status: PaymentStatus, font: object) -> object:
    from PIL import Image, ImageDraw

    label = "PAID" if status is PaymentStatus.PAID else "NOT PAID"
    scratch = Image.new("1", (1, 1), color=1)
    bbox = ImageDraw.Draw(scratch).textbbox((0, 0), label, font=font)
    width = bbox[2] - bbox[0] + 16
    height = bbox[3] - bbox[1] + 12

    img = Image.new("1", (PRINTER_WIDTH_PX, height + 4), color=1)
    draw = ImageDraw.Draw(img)
    x0 = PRINTER_WIDTH_PX - PRINTER_LEFT_INDENT_PX - width
    draw.rectangle((x0, 0, x0 + width - 1, height - 1), outline=0, width=2)
    draw.text((x0 + 8 - bbox[0], 6 - bbox[1]), label, font=font, fill=0)
    return img


def print_bill(bill: BillRecord, printer: object | None = None, font: object | None = None) -> None:
    """Print a bill receipt and cut the ticket at the end."""
    if printer is None or font is None:
        try:
            from escpos.printer import Usb
            from PIL import ImageFont
        except Exception as exc:
            raise RuntimeError(f"Printer dependencies unavailable: {exc}") from exc
        if font is None:
            font = ImageFont.truetype(resolve_printer_font_path(), PRINTER_FONT_SIZE)
        if printer is None:
            printer = Usb(PRINTER_USB_VENDOR_ID, PRINTER_USB_PRODUCT_ID)

    from PIL import Image

    printer.image(_render_payment_badge(bill.payment_status, font))
    for line in bill_receipt_lines(bill):
        printer.image(_render_line(line, font))
    printer.image(Image.new("1", (PRINTER_WIDTH_PX, _TAIL_SPACER_PX), color=1))
    printer.cut()
    logger.info("bill_printed id=%s table=%s", bill.id, bill.table_number)
