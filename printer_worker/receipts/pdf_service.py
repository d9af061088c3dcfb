# printer_worker/receipts/pdf_service.py
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncContextManager, Callable, Union

from playwright.async_api import async_playwright

from ..errors import PdfRenderError

log = logging.getLogger("printer-worker.pdf")

CHROMIUM_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]
PAGE_FORMAT = "A4"
DEFAULT_TIMEOUT_MS = 30000

Launcher = Callable[[], AsyncContextManager[Any]]


@asynccontextmanager
async def chromium_browser():
    """One headless Chromium per call, closed on every exit path."""
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(headless=True, args=CHROMIUM_ARGS)
        try:
            yield browser
        finally:
            await browser.close()


async def render_pdf(html: str, launcher: Launcher = chromium_browser) -> bytes:
    async with launcher() as browser:
        page = await browser.new_page()
        await page.set_content(html, wait_until="networkidle")
        return await page.pdf(format=PAGE_FORMAT, print_background=True)


def pdf_filename(short_id: str, stamp_ms: int) -> str:
    return f"pedido-{short_id}-{stamp_ms}.pdf"


def _write_new_file(out_dir: Path, short_id: str, stamp_ms: int, pdf: bytes) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    while True:
        path = out_dir / pdf_filename(short_id, stamp_ms)
        try:
            with path.open("xb") as f:
                f.write(pdf)
            return path
        except FileExistsError:
            # same order saved twice within one millisecond
            stamp_ms += 1


async def save_pdf(
    html: str,
    output_dir: Union[str, Path],
    short_id: str,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    launcher: Launcher = chromium_browser,
    clock: Callable[[], float] = time.time,
) -> Path:
    """Rasterize the receipt HTML to <output_dir>/pedido-<id>-<epoch_ms>.pdf."""
    out_dir = Path(output_dir)
    try:
        pdf = await asyncio.wait_for(render_pdf(html, launcher), timeout=timeout_ms / 1000.0)
    except asyncio.TimeoutError as e:
        raise PdfRenderError(f"PDF rendering timed out after {timeout_ms}ms") from e
    except Exception as e:
        raise PdfRenderError(f"PDF rendering failed: {e}") from e

    stamp_ms = int(clock() * 1000)
    try:
        path = await asyncio.to_thread(_write_new_file, out_dir, short_id, stamp_ms, pdf)
    except OSError as e:
        raise PdfRenderError(f"cannot write PDF to {out_dir}: {e}") from e

    log.info("✓ PDF generated: %s", path)
    return path
