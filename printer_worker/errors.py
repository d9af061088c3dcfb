# printer_worker/errors.py
from __future__ import annotations
from typing import Optional


class PrinterWorkerError(Exception):
    pass


class ConfigError(PrinterWorkerError):
    """Startup configuration is unusable; fatal for the process."""


class RenderError(PrinterWorkerError):
    """Order data cannot be turned into a receipt. No partial output exists."""


class RetryExhausted(PrinterWorkerError):
    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"gave up after {attempts} attempts: {last_error}")


class PrintTransportError(PrinterWorkerError):
    """Every attempt to reach the thermal printer failed."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]):
        self.attempts = attempts
        self.last_error = last_error
        reason = str(last_error) or type(last_error).__name__
        super().__init__(f"Failed to print after {attempts} attempts: {reason}")


PrintError = PrintTransportError


class PdfRenderError(PrinterWorkerError):
    """Headless rendering or PDF export failed."""


class OrderProcessingError(PrinterWorkerError):
    def __init__(self, short_id: str, cause: BaseException):
        self.short_id = short_id
        self.cause = cause
        super().__init__(f"order {short_id}: {type(cause).__name__}: {cause}")


class ConfigMissingWarning(UserWarning):
    """No active printer configuration; environment defaults are used."""

    def __init__(self, restaurant_id: Optional[str]):
        self.restaurant_id = restaurant_id
        super().__init__(
            f"No active printer config for restaurant {restaurant_id}, using defaults from environment"
        )
