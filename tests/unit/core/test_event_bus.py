"""
Unit tests for InMemoryEventBus.
"""
import uuid
from dataclasses import dataclass

import pytest

from core.domain.events import DomainEvent, EventHandler
from core.infrastructure.events import InMemoryEventBus


@dataclass(frozen=True, kw_only=True)
class SomethingHappened(DomainEvent):
    detail: str = ""


class RecordingHandler(EventHandler):
    def __init__(self):
        self.events = []

    async def handle(self, event):
        self.events.append(event)


class ExplodingHandler(EventHandler):
    async def handle(self, event):
        raise RuntimeError("handler failure")


@pytest.mark.asyncio
class TestInMemoryEventBus:
    """Tests for InMemoryEventBus."""

    async def test_publish_reaches_subscribers(self):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(SomethingHappened, handler)

        event = SomethingHappened(aggregate_id=str(uuid.uuid4()), detail="x")
        await bus.publish(event)

        assert handler.events == [event]

    async def test_publish_without_subscribers(self):
        await InMemoryEventBus().publish(SomethingHappened(aggregate_id="a"))

    async def test_failing_handler_does_not_stop_others(self):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(SomethingHappened, ExplodingHandler())
        bus.subscribe(SomethingHappened, handler)

        await bus.publish(SomethingHappened(aggregate_id="a"))

        assert len(handler.events) == 1

    async def test_duplicate_subscription_is_ignored(self):
        bus = InMemoryEventBus()
        first = RecordingHandler()
        bus.subscribe(SomethingHappened, first)
        bus.subscribe(SomethingHappened, RecordingHandler())

        await bus.publish(SomethingHappened(aggregate_id="a"))

        assert len(first.events) == 1

    async def test_clear(self):
        bus = InMemoryEventBus()
        handler = RecordingHandler()
        bus.subscribe(SomethingHappened, handler)
        bus.clear()

        await bus.publish(SomethingHappened(aggregate_id="a"))

        assert handler.events == []


def test_event_serialization():
    event = SomethingHappened(aggregate_id="agg-1", detail="x")

    data = event.to_dict()

    assert data["event_type"] == "SomethingHappened"
    assert data["aggregate_id"] == "agg-1"
    assert isinstance(data["event_id"], str)
    assert isinstance(data["occurred_at"], str)
