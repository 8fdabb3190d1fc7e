"""Unit tests for the product event broker."""

import json

from storefront.services.events import PRODUCT_UPDATE, ProductEventBroker


class TestProductEventBroker:
    async def test_publish_reaches_every_subscriber(self):
        broker = ProductEventBroker()
        first = broker.subscribe()
        second = broker.subscribe()

        delivered = broker.publish(PRODUCT_UPDATE, {"action": "stock", "productId": 4})

        assert delivered == 2
        event = first.get_nowait()
        assert event.event == PRODUCT_UPDATE
        assert event.data["productId"] == 4
        assert "at" in event.data
        assert second.qsize() == 1

    async def test_full_queue_drops_oldest(self):
        broker = ProductEventBroker(queue_size=2)
        queue = broker.subscribe()

        for product_id in (1, 2, 3):
            broker.publish(PRODUCT_UPDATE, {"productId": product_id})

        assert [queue.get_nowait().data["productId"] for _ in range(2)] == [2, 3]

    async def test_unsubscribe(self):
        broker = ProductEventBroker()
        queue = broker.subscribe()
        broker.unsubscribe(queue)

        assert broker.subscriber_count == 0
        assert broker.publish() == 0

    async def test_stream_announces_connection_then_events(self):
        broker = ProductEventBroker()
        stream = broker.stream()

        connected = await stream.__anext__()
        broker.publish(PRODUCT_UPDATE, {"action": "deleted", "productId": 9})
        message = await stream.__anext__()
        await stream.aclose()

        assert connected["event"] == "connected"
        assert message["event"] == PRODUCT_UPDATE
        assert json.loads(message["data"])["action"] == "deleted"
        assert broker.subscriber_count == 0
