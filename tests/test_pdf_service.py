import pytest

from printer_worker.errors import PdfRenderError
from printer_worker.receipts.pdf_service import pdf_filename, save_pdf

from .fakes import FakeBrowser, FakePage

HTML = "<html><body>Pedido ABCD1234</body></html>"


async def test_pdf_written_with_order_id_and_timestamp(tmp_path):
    page = FakePage()
    browser = FakeBrowser(page)
    out_dir = tmp_path / "nested" / "pdfs"

    path = await save_pdf(HTML, out_dir, "abcd1234", launcher=browser.launcher(), clock=lambda: 1760800000.5)

    assert path == out_dir / "pedido-abcd1234-1760800000500.pdf"
    assert path.read_bytes() == b"%PDF-1.4 fake"
    assert page.calls == [("set_content", "networkidle"), ("pdf", "A4", True)]
    assert (browser.launches, browser.closes) == (1, 1)


async def test_two_saves_for_same_order_never_overwrite(tmp_path):
    browser = FakeBrowser(FakePage())
    frozen = lambda: 1760800000.0  # noqa: E731

    first = await save_pdf(HTML, tmp_path, "abcd1234", launcher=browser.launcher(), clock=frozen)
    second = await save_pdf(HTML, tmp_path, "abcd1234", launcher=browser.launcher(), clock=frozen)

    assert first != second
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "pedido-abcd1234-1760800000000.pdf",
        "pedido-abcd1234-1760800000001.pdf",
    ]
    assert browser.launches == 2


async def test_load_failure_raises_and_closes_browser(tmp_path):
    browser = FakeBrowser(FakePage(content_error=RuntimeError("net::ERR_FAILED")))

    with pytest.raises(PdfRenderError, match="ERR_FAILED"):
        await save_pdf(HTML, tmp_path, "abcd1234", launcher=browser.launcher())

    assert browser.closes == 1
    assert list(tmp_path.iterdir()) == []


async def test_hanging_render_is_bounded(tmp_path):
    browser = FakeBrowser(FakePage(hang=True))

    with pytest.raises(PdfRenderError, match="timed out"):
        await save_pdf(HTML, tmp_path, "abcd1234", timeout_ms=50, launcher=browser.launcher())

    assert browser.closes == 1


async def test_launch_failure_is_reported(tmp_path):
    def broken_launcher():
        raise RuntimeError("Executable doesn't exist")

    with pytest.raises(PdfRenderError, match="Executable"):
        await save_pdf(HTML, tmp_path, "abcd1234", launcher=broken_launcher)


async def test_unwritable_directory(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")
    browser = FakeBrowser(FakePage())

    with pytest.raises(PdfRenderError, match="cannot write"):
        await save_pdf(HTML, blocker / "pdfs", "abcd1234", launcher=browser.launcher())


def test_filename_format():
    assert pdf_filename("abcd1234", 42) == "pedido-abcd1234-42.pdf"
