"""Server-sent product change notifications."""

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

from storefront.services.events import broker

router = APIRouter(prefix="/products", tags=["events"])


@router.get("/subscribe")
async def subscribe(request: Request) -> EventSourceResponse:
    """Stream ``product-update`` events to the storefront.

    Each client gets a ``connected`` event first, then one event per
    admin product or stock change. Keep-alive pings are sent by
    sse-starlette.
    """
    return EventSourceResponse(broker.stream(request))
