# printer_worker/receipts/escpos_render.py
from __future__ import annotations
from datetime import tzinfo
from typing import List, Optional

from escpos.constants import ESC, HW_INIT, PAPER_FULL_CUT

from ..models import OrderRecord, Restaurant
from .lines import LineItem, format_money, format_quantity, short_id, to_local

DEFAULT_RESTAURANT_NAME = "MEU RESTAURANTE"
SEPARATOR = "-" * 25
NEWLINE = b"\n"

# Text goes out one byte per character, as the printers' default code page expects.
TEXT_ENCODING = "latin-1"

# ========= RAW codes =========
def _align(align: str) -> bytes:
    n = 0 if align == "left" else (1 if align == "center" else 2)
    return ESC + b"a" + bytes([n])

ALIGN_LEFT = _align("left")
ALIGN_CENTER = _align("center")
BOLD_ON = ESC + b"E" + b"\x01"
BOLD_OFF = ESC + b"E" + b"\x00"


class _Ticket:
    def __init__(self) -> None:
        self.parts: List[bytes] = []

    def raw(self, *codes: bytes) -> "_Ticket":
        self.parts.extend(codes)
        return self

    def text(self, s: str) -> "_Ticket":
        self.parts.append(s.encode(TEXT_ENCODING, errors="replace"))
        return self

    def line(self, s: str = "") -> "_Ticket":
        return self.text(s).raw(NEWLINE)

    def bold_line(self, s: str) -> "_Ticket":
        return self.raw(BOLD_ON).text(s).raw(BOLD_OFF, NEWLINE)

    def getvalue(self) -> bytes:
        return b"".join(self.parts)


def _item_lines(t: _Ticket, item: LineItem) -> None:
    t.line(f"{format_quantity(item.quantity)} x {item.name}")
    t.line(f"    R$ {format_money(item.line_total)}")
    if item.observation:
        t.line(f"    Obs: {item.observation}")


def build_receipt_bytes(
    order: OrderRecord,
    restaurant: Optional[Restaurant],
    items: List[LineItem],
    tz: Optional[tzinfo] = None,
) -> bytes:
    """Kitchen ticket as an ESC/POS command stream."""
    t = _Ticket()

    t.raw(HW_INIT, ALIGN_CENTER)
    name = (restaurant.name if restaurant and restaurant.name else DEFAULT_RESTAURANT_NAME)
    t.bold_line(name.upper())
    if restaurant and restaurant.address:
        t.line(restaurant.address)
    if restaurant and restaurant.phone:
        t.line(f"Tel: {restaurant.phone}")

    t.raw(ALIGN_LEFT).line(SEPARATOR)
    t.bold_line(f"Pedido: {short_id(order.id)}")

    created = to_local(order.created_at, tz)
    if created is not None:
        t.line(f"Data: {created:%H:%M} - {created:%d/%m/%Y}")
    t.line(f"Cliente: {order.customer_name or ''}")
    if order.customer_phone:
        t.line(f"Tel: {order.customer_phone}")
    t.line(SEPARATOR)

    for item in items:
        _item_lines(t, item)

    t.line(SEPARATOR)
    t.raw(BOLD_ON, ALIGN_CENTER)
    t.text(f"TOTAL: R$ {format_money(order.total_amount)}")
    t.raw(BOLD_OFF, ALIGN_LEFT, NEWLINE)

    if order.notes:
        t.line(SEPARATOR)
        t.line("Observações:")
        t.line(order.notes)

    t.line(SEPARATOR)
    t.raw(ALIGN_CENTER).bold_line("*** COZINHA ***")
    t.raw(NEWLINE, NEWLINE, PAPER_FULL_CUT)
    return t.getvalue()
