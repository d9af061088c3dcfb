# printer_worker/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Optional

from fastapi import FastAPI

from .config import Settings, load_settings
from .listener import OrderListener
from .pipeline import OrderPipeline
from .routers import views_orders
from .store import OrderStore, SupabaseStore

log = logging.getLogger("printer-worker")

StoreFactory = Callable[[Settings], Awaitable[OrderStore]]


def create_app(
    settings: Optional[Settings] = None,
    store_factory: Optional[StoreFactory] = None,
    **pipeline_opts: Any,
) -> FastAPI:
    """App whose lifespan owns the store connection and the order listener."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or load_settings().validate()
        store = await (store_factory or SupabaseStore.connect)(cfg)
        pipeline = OrderPipeline(store, cfg, **pipeline_opts)
        listener = OrderListener(store, pipeline, queue_size=cfg.queue_size, workers=cfg.workers)

        app.state.settings = cfg
        app.state.store = store
        app.state.pipeline = pipeline
        app.state.listener = listener

        try:
            await listener.run()
            yield
        finally:
            await listener.shutdown()
            await store.close()
            log.info("Printer worker stopped")

    app = FastAPI(title="Order Printer Worker", lifespan=lifespan)
    app.include_router(views_orders.router)
    return app
