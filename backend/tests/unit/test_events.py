"""Tests for the event bus."""

from flowpilot.events import BALANCE_UPDATED, WALLET_CONNECTED, EventBus


def test_publish_reaches_subscribers_in_order() -> None:
    bus = EventBus()
    received = []
    bus.subscribe(BALANCE_UPDATED, lambda e: received.append(("first", e["balance"])))
    bus.subscribe(BALANCE_UPDATED, lambda e: received.append(("second", e["balance"])))

    delivered = bus.publish(BALANCE_UPDATED, {"balance": 750})

    assert delivered == 2
    assert received == [("first", 750), ("second", 750)]


def test_unsubscribe() -> None:
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(WALLET_CONNECTED, received.append)

    unsubscribe()
    unsubscribe()
    bus.publish(WALLET_CONNECTED, {"balance": 1000})

    assert received == []
    assert bus.subscriber_count(WALLET_CONNECTED) == 0


def test_failing_handler_does_not_stop_delivery() -> None:
    bus = EventBus()
    received = []

    def broken(event: dict) -> None:
        raise RuntimeError("boom")

    bus.subscribe(BALANCE_UPDATED, broken)
    bus.subscribe(BALANCE_UPDATED, received.append)

    assert bus.publish(BALANCE_UPDATED, {"balance": 1}) == 1
    assert received == [{"balance": 1}]


def test_publish_without_payload() -> None:
    bus = EventBus()
    received = []
    bus.subscribe("agentsUpdated", received.append)

    bus.publish("agentsUpdated")
    assert received == [{}]
