# printer_worker/receipts/__init__.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from ..models import OrderRecord, Restaurant
from .escpos_render import build_receipt_bytes
from .html_render import build_receipt_html
from .lines import decode_items


@dataclass(frozen=True)
class Receipt:
    order_id: str
    short_id: str
    data: bytes
    html: str


def render_receipt(
    order: OrderRecord,
    restaurant: Optional[Restaurant],
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> Receipt:
    """Both receipt forms from the same snapshot; RenderError leaves neither."""
    items = decode_items(order.items)
    return Receipt(
        order_id=order.id,
        short_id=order.short_id,
        data=build_receipt_bytes(order, restaurant, items, tz=tz),
        html=build_receipt_html(order, restaurant, items, tz=tz, now=now),
    )
