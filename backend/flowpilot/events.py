"""In-process publish/subscribe bus shared by ledger consumers."""

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

WALLET_CONNECTED = "walletConnected"
WALLET_DISCONNECTED = "walletDisconnected"
MARKETPLACE_UPDATED = "marketplaceUpdated"
BALANCE_UPDATED = "balanceUpdated"
AGENTS_UPDATED = "agentsUpdated"

Handler = Callable[[dict[str, Any]], None]


class EventBus:
    """Synchronous topic-based event bus.

    Handlers run in subscription order on the publisher's call stack. A
    handler that raises is logged and skipped; the remaining handlers still
    receive the event.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``topic``. Returns an unsubscribe callable."""
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: dict[str, Any] | None = None) -> int:
        """Deliver ``payload`` to every handler of ``topic``. Returns delivery count."""
        event = payload or {}
        delivered = 0

        for handler in list(self._handlers.get(topic, [])):
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                logger.error(f"Handler for '{topic}' failed: {e}", exc_info=True)

        logger.debug(f"Published '{topic}' to {delivered} handler(s)")
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, []))
