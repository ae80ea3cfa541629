"""
Event bus for billing domain events.

Synchronous in-process pub/sub. Handlers run in the publisher's thread
after the transaction committed. Handler errors are logged and never
propagate: the billing write already happened and must not be reported
as failed.
"""

import logging
from typing import Callable, Dict, List

from core.events import BillingEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    Subscribe by event class name, publish by event instance.

    Subscriptions are wired once at startup; the bus holds no document state.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable):
        """Register callback for events whose class name is event_type (e.g. 'QuoteConverted')."""
        self._subscribers.setdefault(event_type, []).append(callback)

    def publish(self, event: BillingEvent):
        """Deliver event to its subscribers in subscription order."""
        event_type = event.__class__.__name__

        for callback in self._subscribers.get(event_type, []):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(callback, "__name__", repr(callback)),
                    event_type,
                    event.event_id,
                )
