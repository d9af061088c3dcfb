# printer_worker/receipts/html_render.py
from __future__ import annotations
from datetime import datetime, tzinfo
from functools import lru_cache
from typing import List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from ..models import OrderRecord, Restaurant
from ..paths import TEMPLATES_DIR
from .escpos_render import DEFAULT_RESTAURANT_NAME
from .lines import LineItem, format_money, format_quantity, short_id, to_local

RECEIPT_TEMPLATE = "receipt.html"


@lru_cache(maxsize=1)
def _env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["money"] = format_money
    env.filters["qty"] = format_quantity
    return env


def build_receipt_html(
    order: OrderRecord,
    restaurant: Optional[Restaurant],
    items: List[LineItem],
    tz: Optional[tzinfo] = None,
    now: Optional[datetime] = None,
) -> str:
    """Printable HTML copy of the receipt. `now` only feeds the footer."""
    now = now or datetime.now(tz)
    ctx = {
        "order": order,
        "order_ref": short_id(order.id),
        "created": to_local(order.created_at, tz),
        "restaurant": restaurant,
        "restaurant_name": (restaurant.name if restaurant and restaurant.name else DEFAULT_RESTAURANT_NAME),
        "items": items,
        "now": now,
    }
    return _env().get_template(RECEIPT_TEMPLATE).render(**ctx)
