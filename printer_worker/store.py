# printer_worker/store.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from supabase import AsyncClient, acreate_client

from .config import Settings

log = logging.getLogger("printer-worker.store")

ORDERS_TABLE = "orders"
RESTAURANTS_TABLE = "restaurants"
PRINTER_CONFIGS_TABLE = "printer_configs"
ORDER_ITEMS_TABLE = "order_items"
CHANNEL_NAME = "orders-printer"

# receives the raw change-feed payload
NewOrderCallback = Callable[[Dict[str, Any]], None]
# receives the realtime channel state (SUBSCRIBED, CHANNEL_ERROR, TIMED_OUT, CLOSED)
StatusCallback = Callable[[str, Optional[Exception]], None]


class OrderStore(Protocol):
    async def fetch_restaurant(self, restaurant_id: str) -> Optional[Dict[str, Any]]: ...

    async def fetch_active_printer_config(self, restaurant_id: str) -> Optional[Dict[str, Any]]: ...

    async def fetch_order_items(self, order_id: str) -> List[Dict[str, Any]]: ...

    async def fetch_order(self, order_id: str) -> Optional[Dict[str, Any]]: ...

    async def mark_printed(self, order_id: str, printed_at: datetime) -> None: ...

    async def subscribe_new_orders(
        self, callback: NewOrderCallback, on_status: Optional[StatusCallback] = None
    ) -> None: ...

    async def unsubscribe(self) -> None: ...

    async def close(self) -> None: ...


def item_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """order_items row joined with products(name) -> receipt item dict."""
    product = row.get("products") or {}
    return {
        "name": product.get("name") or "Item",
        "quantity": row.get("quantity"),
        "unit_price": row.get("unit_price"),
        "observations": row.get("observations"),
    }


def _first(rows: Any) -> Optional[Dict[str, Any]]:
    if not rows:
        return None
    return rows[0]


class SupabaseStore:
    """Tables and the realtime change feed of the Supabase project."""

    def __init__(self, client: AsyncClient):
        self.client = client
        self._channel = None

    @classmethod
    async def connect(cls, settings: Settings) -> "SupabaseStore":
        client = await acreate_client(settings.supabase_url, settings.supabase_key)
        log.info("📡 Supabase URL: %s", settings.supabase_url)
        return cls(client)

    # ---- reads ----
    async def fetch_restaurant(self, restaurant_id: str) -> Optional[Dict[str, Any]]:
        res = await (
            self.client.table(RESTAURANTS_TABLE)
            .select("*")
            .eq("id", restaurant_id)
            .limit(1)
            .execute()
        )
        return _first(res.data)

    async def fetch_active_printer_config(self, restaurant_id: str) -> Optional[Dict[str, Any]]:
        res = await (
            self.client.table(PRINTER_CONFIGS_TABLE)
            .select("*")
            .eq("restaurant_id", restaurant_id)
            .eq("is_active", True)
            .limit(1)
            .execute()
        )
        return _first(res.data)

    async def fetch_order_items(self, order_id: str) -> List[Dict[str, Any]]:
        res = await (
            self.client.table(ORDER_ITEMS_TABLE)
            .select("*, products(name)")
            .eq("order_id", order_id)
            .execute()
        )
        return [item_from_row(r) for r in (res.data or [])]

    async def fetch_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        res = await (
            self.client.table(ORDERS_TABLE)
            .select("*")
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
        return _first(res.data)

    # ---- writes ----
    async def mark_printed(self, order_id: str, printed_at: datetime) -> None:
        await (
            self.client.table(ORDERS_TABLE)
            .update({"printed": True, "printed_at": printed_at.isoformat()})
            .eq("id", order_id)
            .execute()
        )

    # ---- change feed ----
    async def subscribe_new_orders(
        self, callback: NewOrderCallback, on_status: Optional[StatusCallback] = None
    ) -> None:
        def _on_status(status, err=None):
            state = str(getattr(status, "value", status)).upper()
            if err:
                log.error("✗ Realtime subscription error (%s): %s", state, err)
            else:
                log.info("Realtime channel %s: %s", CHANNEL_NAME, state)
            if on_status is not None:
                on_status(state, err)

        channel = self.client.channel(CHANNEL_NAME)
        channel.on_postgres_changes(
            "INSERT",
            schema="public",
            table=ORDERS_TABLE,
            callback=callback,
        )
        await channel.subscribe(_on_status)
        self._channel = channel
        log.info("✓ Subscribed to %s table", ORDERS_TABLE)

    async def unsubscribe(self) -> None:
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        await self.client.remove_channel(channel)
        log.info("Unsubscribed from %s", CHANNEL_NAME)

    async def close(self) -> None:
        await self.unsubscribe()
