"""Tests for the in-process live event publisher."""

import asyncio

from foodsave.chat.events import SUBSCRIBER_QUEUE_SIZE, InMemoryEventPublisher, NullEventPublisher


class TestInMemoryEventPublisher:
    def test_subscribers_receive_events(self):
        publisher = InMemoryEventPublisher()

        async def scenario():
            sub = publisher.subscribe()
            publisher.publish("messageRead", {"donation_id": 4, "reader_id": "c1"})
            return await asyncio.wait_for(sub.queue.get(), timeout=1)

        assert asyncio.run(scenario()) == {"event": "messageRead", "donation_id": 4, "reader_id": "c1"}

    def test_publish_from_worker_thread(self):
        publisher = InMemoryEventPublisher()

        async def scenario():
            sub = publisher.subscribe()
            await asyncio.to_thread(publisher.publish, "messageDelivered", {"chat_id": 1})
            return await asyncio.wait_for(sub.queue.get(), timeout=1)

        assert asyncio.run(scenario())["chat_id"] == 1

    def test_unsubscribe(self):
        publisher = InMemoryEventPublisher()

        async def scenario():
            sub = publisher.subscribe()
            assert publisher.subscriber_count == 1
            publisher.unsubscribe(sub)
            return publisher.subscriber_count

        assert asyncio.run(scenario()) == 0

    def test_full_queue_drops_events(self):
        publisher = InMemoryEventPublisher()

        async def scenario():
            sub = publisher.subscribe()
            for i in range(SUBSCRIBER_QUEUE_SIZE + 5):
                publisher.publish("messageDelivered", {"chat_id": i})
            await asyncio.sleep(0)
            return sub.queue.qsize()

        assert asyncio.run(scenario()) == SUBSCRIBER_QUEUE_SIZE

    def test_closed_loop_subscriber_is_dropped(self):
        publisher = InMemoryEventPublisher()

        async def scenario():
            publisher.subscribe()

        asyncio.run(scenario())
        publisher.publish("messageRead", {"donation_id": 1})
        assert publisher.subscriber_count == 0

    def test_null_publisher(self):
        NullEventPublisher().publish("messageRead", {})  # Should not raise
