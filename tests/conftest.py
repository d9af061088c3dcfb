import pytest

from printer_worker.config import PrinterConfig, Settings


@pytest.fixture
def restaurant_row():
    return {"id": "rest-1", "name": "Cantina da Nona", "address": "Rua A, 10", "phone": "1199999"}


@pytest.fixture
def order_row():
    return {
        "id": "abcd1234-5678-90ef-aaaa-bbbbccccdddd",
        "restaurant_id": "rest-1",
        "customer_name": "Maria",
        "customer_phone": None,
        "total_amount": 37.5,
        "payment_method": "pix",
        "notes": None,
        "created_at": "2026-10-18T15:30:00+00:00",
        "items": [
            {"name": "X-Burger", "quantity": 2, "unit_price": 15.0},
            {"name": "Coke", "qty": 1, "price": 7.5},
        ],
    }


@pytest.fixture
def settings(tmp_path):
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="service-key",
        default_printer=PrinterConfig(printer_ip=None, save_pdf=True, pdf_output_dir=str(tmp_path / "pdfs")),
        timezone="America/Sao_Paulo",
    )
