"""
Lightweight event bus for decoupled inter-module communication.

The detection loop publishes classifier labels here; any number of
consumers (the speller, a HUD, a logger) attach and detach without the
loop knowing about them.

Every channel is declared with the payload type it carries, and emit()
rejects anything else. Delivery is synchronous on the emitting thread,
best effort, and not persisted: a listener that subscribes late misses
whatever was emitted before.

Lifecycle:
    There is one bus per process. ``EventBus()`` always returns it and
    ``get_bus()`` is the usual accessor. Components subscribe on start and
    unsubscribe on teardown; both calls are idempotent. ``EventBus.reset()``
    drops every subscription and is called on application shutdown and
    between tests.

Usage:
    bus = get_bus()
    bus.subscribe(Events.SIGN_DETECTED, on_sign)
    bus.emit(Events.SIGN_DETECTED, SignDetected(alphabet="A"))
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Payloads
# =============================================================================

@dataclass(frozen=True)
class SignDetected:
    """A raw classifier observation. ``alphabet`` is None when no hand/label."""
    alphabet: Optional[str]


@dataclass(frozen=True)
class SymbolCommitted:
    """A symbol was appended to the output buffer."""
    symbol: str
    text: str


@dataclass(frozen=True)
class StatusChanged:
    """A lifecycle status projection changed (``kind`` is "model" or "api")."""
    kind: str
    status: str


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard channel names used throughout the system."""

    SIGN_DETECTED = "sign_language_detected"
    SYMBOL_COMMITTED = "symbol_committed"
    STATUS_CHANGED = "status_changed"


CHANNEL_TYPES: Dict[str, type] = {
    Events.SIGN_DETECTED: SignDetected,
    Events.SYMBOL_COMMITTED: SymbolCommitted,
    Events.STATUS_CHANGED: StatusChanged,
}


class EventBus:
    """Process-wide publish/subscribe bus with typed payloads."""

    _instance = None

    def __new__(cls):
        """Singleton pattern: one bus per application."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._channel_types = dict(CHANNEL_TYPES)
        self._lock = threading.Lock()
        self._initialized = True

    def register_channel(self, event_name: str, payload_type: type):
        """Declare a new channel and the payload type it carries."""
        existing = self._channel_types.get(event_name)
        if existing is not None and existing is not payload_type:
            raise ValueError(
                f"Channel '{event_name}' already carries {existing.__name__}")
        self._channel_types[event_name] = payload_type

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Subscribing the same callback twice keeps a single registration.

        Args:
            event_name: Event to listen for
            callback: Function to call with the payload object
            priority: Higher priority callbacks run first (default 0)
        """
        self._check_channel(event_name)
        with self._lock:
            listeners = self._listeners[event_name]
            if any(cb == callback for _, cb in listeners):
                return
            listeners.append((priority, callback))
            # Sort by priority descending (highest first)
            listeners.sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove a listener for an event. Unknown callbacks are ignored."""
        with self._lock:
            if event_name not in self._listeners:
                return
            remaining = [(p, cb) for p, cb in self._listeners[event_name] if cb != callback]
            if remaining:
                self._listeners[event_name] = remaining
            else:
                del self._listeners[event_name]

    def emit(self, event_name: str, payload) -> int:
        """Deliver a payload to every current listener of a channel.

        Returns:
            Number of listeners the payload was handed to
        """
        expected = self._check_channel(event_name)
        if not isinstance(payload, expected):
            raise TypeError(
                f"'{event_name}' expects {expected.__name__}, got {type(payload).__name__}")

        with self._lock:
            listeners = list(self._listeners.get(event_name, []))

        for _, callback in listeners:
            try:
                callback(payload)
            except Exception:
                logger.exception("Event handler error [%s -> %s]",
                                 event_name, getattr(callback, "__name__", callback))
        return len(listeners)

    def _check_channel(self, event_name: str) -> type:
        payload_type = self._channel_types.get(event_name)
        if payload_type is None:
            raise KeyError(f"Unknown event channel: '{event_name}'")
        return payload_type

    def is_subscribed(self, event_name: str, callback: Callable) -> bool:
        with self._lock:
            return any(cb == callback for _, cb in self._listeners.get(event_name, []))

    def clear(self, event_name: str = None):
        """Remove all listeners, optionally for a specific event."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def registered_events(self) -> list:
        """List all events with registered listeners."""
        with self._lock:
            return list(self._listeners.keys())

    @property
    def listener_count(self) -> int:
        """Total number of registered listeners."""
        with self._lock:
            return sum(len(cbs) for cbs in self._listeners.values())

    @classmethod
    def reset(cls):
        """Tear down every subscription and extra channel."""
        if cls._instance is not None and cls._instance._initialized:
            with cls._instance._lock:
                cls._instance._listeners.clear()
                cls._instance._channel_types = dict(CHANNEL_TYPES)


def get_bus() -> EventBus:
    """Return the process-wide event bus."""
    return EventBus()
