# printer_worker/pipeline.py
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from .config import PrinterConfig, Settings, resolve_timezone
from .errors import (
    ConfigMissingWarning,
    OrderProcessingError,
    PdfRenderError,
    PrintTransportError,
)
from .models import OrderRecord, PrinterConfigRow, Restaurant
from .receipts import Receipt, render_receipt
from .receipts.lines import short_id
from .receipts.pdf_service import save_pdf
from .receipts.printing_service import print_receipt
from .store import OrderStore

log = logging.getLogger("printer-worker.pipeline")

# stages an order moves through; FAILED is reachable from any of them
OBSERVED = "observed"
CONTEXT_LOADED = "context_loaded"
RENDERED = "rendered"
PRINT_ATTEMPTED = "print_attempted"
MARKED_PRINTED = "marked_printed"
FAILED = "failed"

SUCCEEDED = "succeeded"
SKIPPED = "skipped"

Printer = Callable[[bytes, PrinterConfig], Awaitable[Any]]
PdfSaver = Callable[..., Awaitable[Any]]


@dataclass
class PrintOutcome:
    order_id: str
    short_id: str
    stage: str = OBSERVED
    print_status: str = SKIPPED
    print_error: Optional[str] = None
    pdf_status: str = SKIPPED
    pdf_path: Optional[str] = None
    pdf_error: Optional[str] = None
    marked_printed: bool = False
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass
class PipelineStats:
    processed: int = 0
    failed: int = 0
    print_failures: int = 0
    pdf_failures: int = 0
    last_order: Optional[str] = None
    last_error: Optional[str] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderPipeline:
    """Context -> render -> print -> PDF -> mark printed, for one order at a time."""

    def __init__(
        self,
        store: OrderStore,
        settings: Settings,
        *,
        printer: Printer = print_receipt,
        pdf_saver: PdfSaver = save_pdf,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.settings = settings
        self.printer = printer
        self.pdf_saver = pdf_saver
        self.clock = clock
        self.tz = resolve_timezone(settings.timezone)
        self.stats = PipelineStats()

    # ---- context ----
    async def _load_restaurant(self, order: OrderRecord) -> Optional[Restaurant]:
        if not order.restaurant_id:
            return None
        try:
            row = await self.store.fetch_restaurant(order.restaurant_id)
        except Exception as e:
            log.warning("⚠ Restaurant %s unavailable for order %s: %s", order.restaurant_id, order.short_id, e)
            return None
        if not row:
            log.warning("⚠ Restaurant %s not found, printing without letterhead", order.restaurant_id)
            return None
        return Restaurant.model_validate(row)

    async def _load_printer_config(self, order: OrderRecord) -> PrinterConfig:
        row = None
        if order.restaurant_id:
            try:
                row = await self.store.fetch_active_printer_config(order.restaurant_id)
            except Exception as e:
                log.warning("⚠ Printer config lookup failed for order %s: %s", order.short_id, e)
        if row:
            return PrinterConfig.from_row(PrinterConfigRow.model_validate(row).model_dump())
        log.warning("⚠ %s", ConfigMissingWarning(order.restaurant_id))
        return dataclasses.replace(self.settings.default_printer)

    async def _with_items(self, order: OrderRecord) -> OrderRecord:
        if order.items is not None and order.items != "":
            return order
        items = await self.store.fetch_order_items(order.id)
        return order.model_copy(update={"items": items})

    # ---- outputs ----
    async def _print(self, receipt: Receipt, config: PrinterConfig, outcome: PrintOutcome) -> None:
        if not config.enabled:
            log.info("⚠ Printer IP not configured, skipping thermal print (order %s)", outcome.short_id)
            return
        try:
            await self.printer(receipt.data, config)
            outcome.print_status = SUCCEEDED
        except PrintTransportError as e:
            outcome.print_status = FAILED
            outcome.print_error = str(e)
            self.stats.print_failures += 1
            log.error("✗ Order %s not printed on %s:%s: %s",
                      outcome.short_id, config.printer_ip, config.printer_port, e)

    async def _save_pdf(self, receipt: Receipt, config: PrinterConfig, outcome: PrintOutcome) -> None:
        if not config.save_pdf:
            return
        try:
            path = await self.pdf_saver(
                receipt.html,
                config.pdf_output_dir,
                receipt.short_id,
                timeout_ms=self.settings.pdf_timeout_ms,
            )
            outcome.pdf_status = SUCCEEDED
            outcome.pdf_path = str(path)
        except PdfRenderError as e:
            outcome.pdf_status = FAILED
            outcome.pdf_error = str(e)
            self.stats.pdf_failures += 1
            log.error("✗ PDF for order %s not saved: %s", outcome.short_id, e)

    # ---- entry points ----
    async def process(self, record: Mapping[str, Any]) -> PrintOutcome:
        """Run the whole fan-out; errors other than print/PDF failures propagate."""
        order = OrderRecord.model_validate(record)
        outcome = PrintOutcome(order_id=order.id, short_id=short_id(order.id))
        log.info("📋 Processing order %s...", outcome.short_id)

        restaurant = await self._load_restaurant(order)
        config = await self._load_printer_config(order)
        order = await self._with_items(order)
        outcome.stage = CONTEXT_LOADED

        now = self.clock()
        receipt = render_receipt(order, restaurant, tz=self.tz, now=now.astimezone(self.tz))
        outcome.stage = RENDERED

        # print and PDF are independent: neither failure stops the other
        await self._print(receipt, config, outcome)
        await self._save_pdf(receipt, config, outcome)
        outcome.stage = PRINT_ATTEMPTED

        await self.store.mark_printed(order.id, self.clock())
        outcome.marked_printed = True
        outcome.stage = MARKED_PRINTED

        self.stats.processed += 1
        self.stats.last_order = outcome.short_id
        log.info("✓ Order %s processed (print=%s, pdf=%s)",
                 outcome.short_id, outcome.print_status, outcome.pdf_status)
        return outcome

    async def handle(self, record: Mapping[str, Any]) -> PrintOutcome:
        """process() for the listener: never raises, failures are logged."""
        sid = short_id(str((record or {}).get("id") or "?"))
        try:
            return await self.process(record)
        except Exception as e:
            err = OrderProcessingError(sid, e)
            self.stats.failed += 1
            self.stats.last_error = str(err)
            log.error("✗ %s", err, exc_info=True)
            return PrintOutcome(
                order_id=str((record or {}).get("id") or ""),
                short_id=sid,
                stage=FAILED,
                error=str(err),
            )
