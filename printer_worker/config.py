# printer_worker/config.py
from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError

log = logging.getLogger("printer-worker.config")

CONFIG_FILE_ENV = "PRINTER_WORKER_CONFIG"

@dataclass
class PrinterConfig:
    printer_ip: Optional[str] = None
    printer_port: int = 9100
    save_pdf: bool = False
    pdf_output_dir: str = "./pdfs"
    print_retries: int = 3
    print_timeout_ms: int = 10000

    @property
    def enabled(self) -> bool:
        return bool(self.printer_ip)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PrinterConfig":
        """Build from a printer_configs row; null columns take the defaults."""
        d = cls()
        return cls(
            printer_ip=(str(row["printer_ip"]).strip() or None) if row.get("printer_ip") else None,
            printer_port=to_positive_int(row.get("printer_port"), d.printer_port),
            save_pdf=to_bool(row.get("save_pdf", d.save_pdf)),
            pdf_output_dir=str(row.get("pdf_output_dir") or d.pdf_output_dir),
            print_retries=to_positive_int(row.get("print_retries"), d.print_retries),
            print_timeout_ms=to_positive_int(row.get("print_timeout_ms"), d.print_timeout_ms),
        )

@dataclass
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    # used when a restaurant has no active printer_configs row
    default_printer: PrinterConfig = field(default_factory=PrinterConfig)
    pdf_timeout_ms: int = 30000
    timezone: Optional[str] = None
    queue_size: int = 100
    workers: int = 1
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    print_debug: bool = False

    def validate(self) -> "Settings":
        if not self.supabase_url or not self.supabase_key:
            raise ConfigError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")
        if self.queue_size < 1 or self.workers < 1:
            raise ConfigError("QUEUE_SIZE and WORKERS must be >= 1")
        resolve_timezone(self.timezone)
        return self

# ---- Helpers ----
def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """IANA name -> tzinfo; None means the process local timezone."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"unknown timezone: {name!r}")

def to_int(val, default: int) -> int:
    if val is None or val == "":
        return default
    try:
        return int(val)
    except (TypeError, ValueError):
        raise ConfigError(f"not an integer: {val!r}")

def to_positive_int(val, default: int) -> int:
    # 0 and negatives mean "not set", like a missing column
    n = to_int(val, default)
    return n if n > 0 else default

def to_bool(val) -> bool:
    return str(val).strip().lower() in ("1", "true", "on", "yes")

def _merge(dst: dict, src: dict) -> dict:
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            dst[k] = _merge(dst[k], v)
        else:
            dst[k] = v
    return dst

def _defaults() -> dict:
    return {
        "supabase": {"url": "", "service_key": ""},
        "printer": {
            "printer_ip": None,
            "printer_port": 9100,
            "save_pdf": False,
            "pdf_output_dir": "./pdfs",
            "print_retries": 3,
            "print_timeout_ms": 10000,
        },
        "pdf_timeout_ms": 30000,
        "timezone": None,
        "queue_size": 100,
        "workers": 1,
        "http": {"host": "0.0.0.0", "port": 8080},
        "log_level": "INFO",
        "print_debug": False,
    }

# env var -> path inside the defaults dict
_ENV_MAP = {
    "SUPABASE_URL": ("supabase", "url"),
    "SUPABASE_SERVICE_KEY": ("supabase", "service_key"),
    "PRINTER_IP": ("printer", "printer_ip"),
    "PRINTER_PORT": ("printer", "printer_port"),
    "SAVE_PDF": ("printer", "save_pdf"),
    "PDF_OUTPUT_DIR": ("printer", "pdf_output_dir"),
    "PRINT_RETRIES": ("printer", "print_retries"),
    "PRINT_TIMEOUT_MS": ("printer", "print_timeout_ms"),
    "PDF_TIMEOUT_MS": ("pdf_timeout_ms",),
    "TIMEZONE": ("timezone",),
    "QUEUE_SIZE": ("queue_size",),
    "WORKERS": ("workers",),
    "HOST": ("http", "host"),
    "PORT": ("http", "port"),
    "LOG_LEVEL": ("log_level",),
    "PRINT_DEBUG": ("print_debug",),
}

def _read_file(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8")) or {}
    except (OSError, ValueError) as e:
        # malformed file -> keep defaults
        log.warning("Ignoring config file %s: %s", path, e)
        return {}

def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Defaults, then the optional JSON file, then environment variables."""
    env = os.environ if env is None else env
    data = _defaults()

    cfg_path = env.get(CONFIG_FILE_ENV)
    if cfg_path and Path(cfg_path).exists():
        data = _merge(data, _read_file(Path(cfg_path)))

    for var, keys in _ENV_MAP.items():
        val = env.get(var)
        if val is None:
            continue
        node = data
        for k in keys[:-1]:
            node = node.setdefault(k, {})
        node[keys[-1]] = val

    p = data["printer"]
    return Settings(
        supabase_url=str(data["supabase"].get("url") or ""),
        supabase_key=str(data["supabase"].get("service_key") or ""),
        default_printer=PrinterConfig(
            printer_ip=(str(p["printer_ip"]).strip() or None) if p.get("printer_ip") else None,
            printer_port=to_positive_int(p.get("printer_port"), 9100),
            save_pdf=to_bool(p.get("save_pdf", False)),
            pdf_output_dir=str(p.get("pdf_output_dir") or "./pdfs"),
            print_retries=to_positive_int(p.get("print_retries"), 3),
            print_timeout_ms=to_positive_int(p.get("print_timeout_ms"), 10000),
        ),
        pdf_timeout_ms=to_positive_int(data.get("pdf_timeout_ms"), 30000),
        timezone=(str(data["timezone"]) if data.get("timezone") else None),
        queue_size=to_int(data.get("queue_size"), 100),
        workers=to_int(data.get("workers"), 1),
        host=str(data["http"].get("host") or "0.0.0.0"),
        port=to_int(data["http"].get("port"), 8080),
        log_level=str(data.get("log_level") or "INFO").upper(),
        print_debug=to_bool(data.get("print_debug", False)),
    )
