# printer_worker/models.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from sqlmodel import SQLModel

# Plain SQLModel records (no table=True): the schema lives in the backing
# store, here they only validate the rows we read from it.


class Restaurant(SQLModel):
    id: Optional[str] = None
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None


class PrinterConfigRow(SQLModel):
    id: Optional[str] = None
    restaurant_id: Optional[str] = None
    printer_ip: Optional[str] = None
    printer_port: Optional[int] = None
    save_pdf: Optional[bool] = None
    pdf_output_dir: Optional[str] = None
    print_retries: Optional[int] = None
    print_timeout_ms: Optional[int] = None
    is_active: bool = True


class OrderRecord(SQLModel):
    id: str
    restaurant_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    total_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    printed: bool = False
    printed_at: Optional[datetime] = None
    # list of dicts or a JSON string; decoded once by receipts.lines
    items: Optional[Any] = None

    @property
    def short_id(self) -> str:
        return self.id[:8]
