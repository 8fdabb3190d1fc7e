"""In-process fan-out of product change notifications.

Admin catalogue writes and stock adjustments publish ``product-update``
events; storefront pages subscribe over Server-Sent Events and refetch.
Delivery is best effort: no replay, and a slow subscriber loses its
oldest pending event rather than blocking publishers.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Optional, Set

import structlog

from storefront.db.models.base import utcnow

logger = structlog.get_logger(__name__)

PRODUCT_UPDATE = "product-update"
DEFAULT_QUEUE_SIZE = 100


@dataclass
class ProductEvent:
    event: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_sse(self) -> Dict[str, str]:
        """Shape expected by ``EventSourceResponse``."""
        return {"event": self.event, "data": json.dumps(self.data, default=str)}


class ProductEventBroker:
    """Fans events out to one bounded queue per subscriber."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        logger.debug("sse_subscribed", subscribers=len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)
        logger.debug("sse_unsubscribed", subscribers=len(self._subscribers))

    def publish(self, event: str = PRODUCT_UPDATE, data: Optional[Dict[str, Any]] = None) -> int:
        """Queue ``event`` for every current subscriber; returns how many got it."""
        payload = ProductEvent(event=event, data={**(data or {}), "at": utcnow().isoformat()})
        delivered = 0
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("sse_event_dropped", event_name=event)
        logger.info("product_event_published", event_name=event, delivered=delivered)
        return delivered

    async def stream(self, request: Any = None) -> AsyncGenerator[Dict[str, str], None]:
        """Yield SSE messages until the client disconnects."""
        queue = self.subscribe()
        try:
            yield {"event": "connected", "data": json.dumps({"subscribers": self.subscriber_count})}
            while True:
                if request is not None and await request.is_disconnected():
                    break
                try:
                    item = await asyncio.wait_for(queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
                yield item.to_sse()
        finally:
            self.unsubscribe(queue)


broker = ProductEventBroker()


def publish_product_update(action: str, product_id: Optional[int] = None, **extra: Any) -> int:
    return broker.publish(PRODUCT_UPDATE, {"action": action, "productId": product_id, **extra})
