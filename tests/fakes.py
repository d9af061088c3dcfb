from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from printer_worker.config import PrinterConfig


class FakeStore:
    """In-memory stand-in for the Supabase tables and change feed."""

    def __init__(self, restaurants=None, configs=None, items=None, orders=None):
        self.restaurants: Dict[str, dict] = restaurants or {}
        self.configs: Dict[str, dict] = configs or {}
        self.items: Dict[str, List[dict]] = items or {}
        self.orders: Dict[str, dict] = orders or {}
        self.marked: List[tuple] = []
        self.item_fetches: List[str] = []
        self.callback = None
        self.on_status = None
        self.subscribed = False
        self.unsubscribed = False
        self.closed = False
        self.fail_restaurant: Optional[Exception] = None

    async def fetch_restaurant(self, restaurant_id):
        if self.fail_restaurant:
            raise self.fail_restaurant
        return self.restaurants.get(restaurant_id)

    async def fetch_active_printer_config(self, restaurant_id):
        return self.configs.get(restaurant_id)

    async def fetch_order_items(self, order_id):
        self.item_fetches.append(order_id)
        return list(self.items.get(order_id, []))

    async def fetch_order(self, order_id):
        return self.orders.get(order_id)

    async def mark_printed(self, order_id, printed_at):
        self.marked.append((order_id, printed_at))

    async def subscribe_new_orders(self, callback, on_status=None):
        self.callback = callback
        self.on_status = on_status
        self.subscribed = True

    async def unsubscribe(self):
        self.callback = None
        self.unsubscribed = True

    async def close(self):
        self.closed = True

    def emit(self, row: Dict[str, Any]) -> None:
        self.callback({"new": row})

    def channel_status(self, state: str) -> None:
        self.on_status(state, None)

    def marked_ids(self) -> List[str]:
        return [oid for oid, _ in self.marked]


class FakePrinter:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[tuple] = []

    async def __call__(self, data: bytes, config: PrinterConfig):
        self.calls.append((data, config))
        if self.error:
            raise self.error
        return 1


class FakePdfSaver:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[tuple] = []

    async def __call__(self, html, output_dir, short_id, *, timeout_ms=None):
        self.calls.append((html, output_dir, short_id))
        if self.error:
            raise self.error
        return f"{output_dir}/pedido-{short_id}-1.pdf"


class FakePage:
    def __init__(self, content_error: Optional[Exception] = None, hang: bool = False):
        self.content_error = content_error
        self.hang = hang
        self.calls: List[tuple] = []

    async def set_content(self, html, wait_until=None):
        self.calls.append(("set_content", wait_until))
        if self.hang:
            await asyncio.Event().wait()
        if self.content_error:
            raise self.content_error

    async def pdf(self, format=None, print_background=None):
        self.calls.append(("pdf", format, print_background))
        return b"%PDF-1.4 fake"


class FakeBrowser:
    def __init__(self, page: FakePage):
        self.page = page
        self.launches = 0
        self.closes = 0

    async def new_page(self):
        return self.page

    def launcher(self):
        @asynccontextmanager
        async def _launch():
            self.launches += 1
            try:
                yield self
            finally:
                self.closes += 1
        return _launch
