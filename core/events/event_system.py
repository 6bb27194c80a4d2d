"""
Event system implementation for the news feed.

Provides the publish-subscribe channel that carries feed snapshots and
detail-load outcomes from the store to its observers.
"""
from typing import Any, Callable, Dict, List, Optional
import threading
from collections import defaultdict
from core.logging.logger import get_logger, is_verbose_logging
from core.events.event_types import Event, Subscription

logger = get_logger('EventSystem')


class EventSystem:
    """
    Publish-subscribe hub with priority ordered delivery.

    Subscribers are invoked synchronously on the publishing thread, in
    priority order. The subscriber list is copied under the lock and called
    outside it, so a handler may subscribe/unsubscribe or publish again
    without deadlocking.
    """

    def __init__(self, max_history: int = 200):
        self._subscriptions: Dict[str, List[Subscription]] = defaultdict(list)
        self._subscription_map: Dict[str, Subscription] = {}
        self._event_history: List[Event] = []
        self._max_history = max(0, int(max_history))
        self._lock = threading.RLock()

        logger.debug("EventSystem initialized")

    def subscribe(
        self,
        event_type: str,
        callback: Callable[[Event], None],
        priority: int = 50,
        filter_fn: Optional[Callable[[Event], bool]] = None,
    ) -> str:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Type of event to subscribe to
            callback: Function to call when event is published
            priority: Priority (higher = called earlier), default 50
            filter_fn: Optional filter function

        Returns:
            str: Subscription ID for unsubscribing

        Raises:
            ValueError: If callback is not callable or event_type is empty
        """
        if not callable(callback):
            raise ValueError("callback must be callable")
        if not isinstance(event_type, str) or not event_type.strip():
            raise ValueError("event_type must be a non-empty string")

        subscription = Subscription(callback, event_type, priority, filter_fn)

        with self._lock:
            subs = self._subscriptions[event_type]
            subs.append(subscription)
            subs.sort()
            self._subscription_map[subscription.id] = subscription

        logger.debug("New subscription: %s for %s (priority=%d)", subscription.id, event_type, priority)
        return subscription.id

    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Remove a subscription.

        Returns:
            True if the subscription existed.
        """
        with self._lock:
            subscription = self._subscription_map.pop(subscription_id, None)
            if subscription is None:
                logger.warning("Unsubscribe called with unknown id: %s", subscription_id)
                return False

            subscription.active = False
            event_type = subscription.event_type
            remaining = [s for s in self._subscriptions.get(event_type, []) if s.id != subscription_id]
            if remaining:
                self._subscriptions[event_type] = remaining
            else:
                self._subscriptions.pop(event_type, None)

        logger.debug("Unsubscribed: %s", subscription_id)
        return True

    def publish(self, event_type: str, data: Any = None, source: Any = None) -> Event:
        """
        Publish an event to all subscribers.

        Handler exceptions are logged and do not stop delivery to the
        remaining subscribers.

        Returns:
            Event: The published event object
        """
        if not isinstance(event_type, str) or not event_type.strip():
            raise ValueError("event_type must be a non-empty string")

        event = Event(event_type, data, source)

        with self._lock:
            matching_subs = list(self._subscriptions.get(event_type, ()))
            self._add_to_history(event)

        if is_verbose_logging():
            logger.debug("Publishing event: %s, subscribers=%d", event_type, len(matching_subs))

        for subscription in matching_subs:
            if event.is_handled:
                break
            try:
                subscription(event)
            except Exception as e:
                logger.error("Error in event handler for %s: %s", event_type, e, exc_info=True)

        return event

    def _add_to_history(self, event: Event) -> None:
        if self._max_history == 0:
            return
        self._event_history.append(event)
        if len(self._event_history) > self._max_history:
            del self._event_history[:-self._max_history]

    def get_event_history(self, limit: int = 100, event_type: Optional[str] = None) -> List[Event]:
        """Return recent events, optionally only those of one type."""
        with self._lock:
            history = self._event_history
            if event_type is not None:
                history = [e for e in history if e.event_type == event_type]
            return list(history[-limit:])

    def clear(self) -> None:
        """Clear all subscriptions and history."""
        with self._lock:
            for subscription in self._subscription_map.values():
                subscription.active = False
            self._subscriptions.clear()
            self._subscription_map.clear()
            self._event_history.clear()

        logger.debug("EventSystem cleared")

    def get_subscription_count(self) -> int:
        """Get total number of active subscriptions."""
        with self._lock:
            return len(self._subscription_map)

    def get_subscriptions_for_type(self, event_type: str) -> int:
        """Get number of subscriptions for a specific event type."""
        with self._lock:
            return len(self._subscriptions.get(event_type, []))
