# printer_worker/routers/views_orders.py
from __future__ import annotations

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from ..listener import OrderListener
from ..pipeline import FAILED, OrderPipeline

router = APIRouter()


def get_pipeline(request: Request) -> OrderPipeline:
    return request.app.state.pipeline


def get_listener(request: Request) -> OrderListener:
    return request.app.state.listener


PipelineDep = Annotated[OrderPipeline, Depends(get_pipeline)]
ListenerDep = Annotated[OrderListener, Depends(get_listener)]


@router.get("/health", response_class=PlainTextResponse)
def health(listener: ListenerDep):
    if not listener.subscribed:
        return PlainTextResponse("NOT SUBSCRIBED", status_code=503)
    return "OK"


@router.get("/status")
def status(listener: ListenerDep, pipeline: PipelineDep):
    return {
        "subscribed": listener.subscribed,
        "channel": listener.channel_state,
        "queued": listener.queued,
        "listener": asdict(listener.stats),
        "pipeline": asdict(pipeline.stats),
    }


# Manual retry for staff: runs the whole pipeline again for a stored order,
# including orders already flagged as printed.
@router.post("/orders/{order_id}/reprint")
async def reprint_order(order_id: str, pipeline: PipelineDep):
    record = await pipeline.store.fetch_order(order_id)
    if not record:
        raise HTTPException(status_code=404, detail="Pedido não encontrado")

    outcome = await pipeline.handle(record)
    return {"ok": outcome.stage != FAILED, "outcome": outcome.as_dict()}
