# printer_worker/receipts/printing_service.py
from __future__ import annotations
import asyncio
import logging
import time
from typing import Awaitable, Callable, Tuple

from ..config import PrinterConfig
from ..errors import PrintTransportError, RetryExhausted
from ..retry import linear_backoff, retry_with_backoff

# ========= Debug =========
# PRINT_DEBUG=1 lowers this logger to DEBUG (see __main__)
log = logging.getLogger("printer-worker.print")

BACKOFF_STEP_SECONDS = 2.0
READ_CHUNK = 1024

Connector = Callable[[str, int], Awaitable[Tuple[asyncio.StreamReader, asyncio.StreamWriter]]]


async def _open(host: str, port: int):
    return await asyncio.open_connection(host, port)


async def _close(writer: asyncio.StreamWriter, graceful: bool = True) -> None:
    if graceful:
        writer.close()
    else:
        # drop unsent bytes; a printer that stopped reading would never drain them
        writer.transport.abort()
    try:
        await writer.wait_closed()
    except (OSError, asyncio.IncompleteReadError) as e:
        # the peer is already gone, nothing left to release
        log.debug("close after error: %r", e)


# ========= Single attempt =========
async def _send_once(data: bytes, host: str, port: int, connect: Connector) -> None:
    """Connect, push the whole buffer, wait for the printer to close the stream."""
    writer = None
    done = False
    t0 = time.monotonic()
    try:
        reader, writer = await connect(host, port)
        log.info("✓ Connected to printer %s:%s", host, port)
        writer.write(data)
        await writer.drain()
        log.debug("Sent %d bytes in %.3fs", len(data), time.monotonic() - t0)
        # The write returning is not enough: the job is done once the printer
        # ends the stream. Anything it sends back (status bytes) is ignored.
        while True:
            chunk = await reader.read(READ_CHUNK)
            if not chunk:
                break
            log.debug("Printer sent %d status bytes", len(chunk))
        log.debug("Printer closed the connection after %.3fs", time.monotonic() - t0)
        done = True
    finally:
        if writer is not None:
            await _close(writer, graceful=done)


async def _attempt(data: bytes, config: PrinterConfig, connect: Connector) -> None:
    timeout = config.print_timeout_ms / 1000.0
    try:
        await asyncio.wait_for(
            _send_once(data, config.printer_ip, config.printer_port, connect),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        raise TimeoutError("Print timeout") from None


# ========= Public =========
async def print_receipt(
    data: bytes,
    config: PrinterConfig,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    connect: Connector = _open,
) -> int:
    """Deliver an ESC/POS buffer to config.printer_ip:printer_port.

    Every attempt opens a fresh connection and resends the whole buffer.
    Returns the attempt number that succeeded; raises PrintTransportError
    once config.print_retries attempts have failed.
    """
    if not config.printer_ip:
        raise ValueError("printer_ip is not configured")
    retries = max(1, config.print_retries)
    attempt_no = 0

    async def _try() -> None:
        nonlocal attempt_no
        attempt_no += 1
        log.debug("Print attempt %d/%d -> %s:%s", attempt_no, retries, config.printer_ip, config.printer_port)
        await _attempt(data, config, connect)

    def _on_retry(attempt: int, exc: BaseException, wait: float) -> None:
        log.warning("✗ Print attempt %d/%d failed: %s (retrying in %.0fs)", attempt, retries, str(exc) or type(exc).__name__, wait)

    try:
        await retry_with_backoff(
            _try,
            attempts=retries,
            backoff=linear_backoff(BACKOFF_STEP_SECONDS),
            sleep=sleep,
            on_retry=_on_retry,
        )
    except RetryExhausted as e:
        log.error("✗ Print attempt %d/%d failed: %s", e.attempts, retries, e.last_error)
        raise PrintTransportError(e.attempts, e.last_error) from e.last_error

    log.info("✓ Order printed successfully (attempt %d/%d)", attempt_no, retries)
    return attempt_no
