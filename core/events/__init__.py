"""Event system for the news feed simulator."""

from .event_system import EventSystem
from .event_types import Event, EventType, Subscription

__all__ = ['EventSystem', 'Event', 'EventType', 'Subscription']
