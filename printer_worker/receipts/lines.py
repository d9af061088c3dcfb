# printer_worker/receipts/lines.py
"""Canonical line items and the formatting shared by both receipt forms.

Order items reach the worker in more than one shape: embedded in the insert
payload as a list, embedded as a JSON string, or fetched from ``order_items``.
Each item may also spell its fields differently (``quantity``/``qty``,
``unit_price``/``price``). Everything is decoded once here into ``LineItem``
so the renderers never branch on shape.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Mapping, Optional

from ..errors import RenderError

CENTS = Decimal("0.01")
DEFAULT_ITEM_NAME = "Item"


@dataclass(frozen=True)
class LineItem:
    name: str
    quantity: Decimal
    unit_price: Decimal
    observation: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.unit_price


def _first_present(item: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        v = item.get(k)
        if v is not None:
            return v
    return None


def to_decimal(val: Any, field: str) -> Decimal:
    if isinstance(val, bool):
        raise RenderError(f"{field} is not a number: {val!r}")
    try:
        # str() keeps 7.5 as 7.5 instead of the binary float expansion
        d = Decimal(str(val).strip())
    except (InvalidOperation, ValueError):
        raise RenderError(f"{field} is not a number: {val!r}")
    if not d.is_finite():
        raise RenderError(f"{field} is not a number: {val!r}")
    return d


def normalize_item(item: Mapping[str, Any]) -> LineItem:
    if not isinstance(item, Mapping):
        raise RenderError(f"order item is not an object: {item!r}")

    qty = _first_present(item, "quantity", "qty")
    price = _first_present(item, "unit_price", "price")

    name = _first_present(item, "name", "product_name")
    if name is None and isinstance(item.get("products"), Mapping):
        name = item["products"].get("name")

    obs = _first_present(item, "observations", "observation")

    return LineItem(
        name=str(name) if name is not None else DEFAULT_ITEM_NAME,
        quantity=to_decimal(qty, "quantity") if qty is not None else Decimal(1),
        unit_price=to_decimal(price, "unit_price") if price is not None else Decimal(0),
        observation=str(obs) if obs else None,
    )


def decode_items(raw: Any) -> List[LineItem]:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise RenderError(f"items field is not valid JSON: {e}") from e
        if raw is None:
            return []
    if not isinstance(raw, (list, tuple)):
        raise RenderError(f"items must be a list, got {type(raw).__name__}")
    return [normalize_item(it) for it in raw]


# ---- Formatting ----

def format_money(value: Any) -> str:
    """12.5 -> '12,50'. Two decimals, comma separator."""
    if value is None:
        value = 0
    d = value if isinstance(value, Decimal) else to_decimal(value, "amount")
    return f"{d.quantize(CENTS, rounding=ROUND_HALF_UP):.2f}".replace(".", ",")


def format_quantity(qty: Decimal) -> str:
    if qty == qty.to_integral_value():
        return str(int(qty))
    return format(qty.normalize(), "f").replace(".", ",")


def short_id(order_id: str) -> str:
    return str(order_id)[:8].upper()


def to_local(dt: Optional[datetime], tz: Optional[tzinfo]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        # naive timestamps are taken as already local
        return dt
    return dt.astimezone(tz) if tz is not None else dt.astimezone()
