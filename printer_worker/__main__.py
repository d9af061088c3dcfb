# printer_worker/__main__.py
from __future__ import annotations

import logging
import sys

import uvicorn

from .config import Settings, load_settings
from .errors import ConfigError
from .main import create_app

log = logging.getLogger("printer-worker")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    if settings.print_debug:
        logging.getLogger("printer-worker.print").setLevel(logging.DEBUG)


def main() -> int:
    try:
        settings = load_settings().validate()
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        log.error("Fatal error starting worker: %s", e)
        return 1

    configure_logging(settings)
    log.info("🖨️  Order Printer Worker starting...")
    # SIGINT/SIGTERM: uvicorn runs the lifespan shutdown (unsubscribe) and exits 0;
    # a failing startup makes uvicorn exit non-zero.
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        lifespan="on",
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
