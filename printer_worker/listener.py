# printer_worker/listener.py
from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set

from .pipeline import FAILED, OrderPipeline
from .store import OrderStore

log = logging.getLogger("printer-worker.listener")

# order ids remembered for duplicate detection
SEEN_LIMIT = 5000
# realtime channel states that mean no notifications are arriving
CHANNEL_DOWN = frozenset({"CHANNEL_ERROR", "TIMED_OUT", "CLOSED"})


def extract_new_row(payload: Any) -> Optional[Dict[str, Any]]:
    """New row of an INSERT notification.

    Accepts ``{"new": row}`` as well as the realtime client's
    ``{"data": {"record": row}}`` envelope.
    """
    if not isinstance(payload, Mapping):
        return None
    for key in ("new", "record"):
        row = payload.get(key)
        if isinstance(row, Mapping) and row:
            return dict(row)
    data = payload.get("data")
    if isinstance(data, Mapping):
        return extract_new_row(data)
    return None


@dataclass
class ListenerStats:
    received: int = 0
    duplicates: int = 0
    ignored: int = 0


class OrderListener:
    """Change feed -> bounded queue -> consumer task(s) running the pipeline."""

    def __init__(
        self,
        store: OrderStore,
        pipeline: OrderPipeline,
        *,
        queue_size: int = 100,
        workers: int = 1,
    ):
        self.store = store
        self.pipeline = pipeline
        self.workers = max(1, workers)
        self.stats = ListenerStats()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, queue_size))
        self._tasks: List[asyncio.Task] = []
        self._pending_puts: Set[asyncio.Task] = set()
        self._seen: "OrderedDict[str, None]" = OrderedDict()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False
        self.channel_state: Optional[str] = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def subscribed(self) -> bool:
        """Running and the change feed has not reported a broken channel."""
        return self._running and self.channel_state not in CHANNEL_DOWN

    @property
    def queued(self) -> int:
        return self._queue.qsize()

    # ---- lifecycle ----
    async def run(self) -> None:
        """Start the consumers and subscribe to new orders."""
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._stopping = False
        self._tasks = [
            asyncio.create_task(self._consume(), name=f"order-consumer-{i}")
            for i in range(self.workers)
        ]
        try:
            await self.store.subscribe_new_orders(self._on_insert, on_status=self._on_channel_status)
        except BaseException:
            await self._cancel_tasks()
            raise
        self._running = True
        log.info("👀 Watching for new orders... (%d worker(s), queue %d)",
                 self.workers, self._queue.maxsize)

    async def shutdown(self) -> None:
        if not self._running and not self._tasks:
            return
        self._running = False
        self._stopping = True
        log.info("🛑 Shutting down listener...")
        try:
            await self.store.unsubscribe()
        finally:
            await self._cancel_tasks()

    async def join(self) -> None:
        """Wait until every queued order has been handled."""
        while self._pending_puts:
            await asyncio.gather(*list(self._pending_puts))
        await self._queue.join()

    async def _cancel_tasks(self) -> None:
        tasks = self._tasks + list(self._pending_puts)
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks = []
        self._pending_puts.clear()

    # ---- producer side ----
    def _on_channel_status(self, state: str, err: Optional[Exception] = None) -> None:
        previous, self.channel_state = self.channel_state, state
        if self._stopping:
            return
        if state in CHANNEL_DOWN:
            log.error("✗ Change feed down (%s), new orders are not being received", state)
        elif previous in CHANNEL_DOWN:
            log.info("✓ Change feed back (%s)", state)

    def _on_insert(self, payload: Dict[str, Any]) -> None:
        row = extract_new_row(payload)
        if row is None or not row.get("id"):
            self.stats.ignored += 1
            log.warning("Ignoring change-feed payload without an order row: %r", payload)
            return
        log.info("🔔 New order detected! %s", str(row["id"])[:8])
        self.enqueue(row)

    def enqueue(self, row: Dict[str, Any]) -> None:
        self.stats.received += 1
        try:
            self._queue.put_nowait(row)
        except asyncio.QueueFull:
            # hold the row until a consumer frees a slot
            log.warning("Order queue full (%d), order %s is waiting", self._queue.maxsize, str(row["id"])[:8])
            loop = self._loop or asyncio.get_running_loop()
            task = loop.create_task(self._queue.put(row))
            self._pending_puts.add(task)
            task.add_done_callback(self._pending_puts.discard)

    # ---- consumer side ----
    def _remember(self, order_id: str) -> bool:
        """False if the order was already taken by a consumer."""
        if order_id in self._seen:
            return False
        self._seen[order_id] = None
        if len(self._seen) > SEEN_LIMIT:
            self._seen.popitem(last=False)
        return True

    async def _consume(self) -> None:
        while True:
            row = await self._queue.get()
            try:
                order_id = str(row["id"])
                if not self._remember(order_id):
                    self.stats.duplicates += 1
                    log.info("⏭ Order %s already handled, skipping duplicate", order_id[:8])
                    continue
                outcome = await self.pipeline.handle(row)
                if outcome.stage == FAILED:
                    # a later notification for the same order may retry it
                    self._seen.pop(order_id, None)
            finally:
                self._queue.task_done()
