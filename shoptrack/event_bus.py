"""
Kivy-adapted event bus for ShopTrack Lite.

Provides thread-safe publish/subscribe.  By default callbacks are
dispatched on the Kivy main thread via ``Clock.schedule_once`` so
subscribers can safely update widgets.  A custom ``dispatch`` callable
can be supplied instead (the test-suite runs callbacks inline).
"""

import threading
from enum import Enum

from shoptrack.logutil import get_logger

log = get_logger("event_bus")


class EventType(Enum):
    DATA_CHANGED = "data_changed"          # data: entity name, e.g. "sales"
    SETTINGS_CHANGED = "settings_changed"  # data: Settings


def _kivy_dispatch(callback, data):
    from kivy.clock import Clock

    # Default-arg capture avoids late binding on the loop variables of emit()
    Clock.schedule_once(lambda dt, _cb=callback, _d=data: _cb(_d), 0)


class EventBus:
    """Thread-safe event bus.

    Writes can originate from background work (e.g. a report export) but
    Kivy widgets can only be touched from the main thread, so the default
    dispatcher defers every callback to the next frame.
    """

    def __init__(self, dispatch=None):
        self._subscribers: dict[EventType, list] = {}
        self._lock = threading.Lock()  # protects _subscribers
        self._dispatch = dispatch or _kivy_dispatch

    def subscribe(self, event_type: EventType, callback):
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def unsubscribe(self, event_type: EventType, callback):
        with self._lock:
            try:
                self._subscribers.get(event_type, []).remove(callback)
            except ValueError:
                pass  # already removed

    def emit(self, event_type: EventType, data=None):
        """Emit an event to every subscriber of ``event_type``."""
        # Snapshot under the lock; callbacks may subscribe/unsubscribe.
        with self._lock:
            callbacks = list(self._subscribers.get(event_type, []))
        log.debug("emit %s (%s) -> %d subscriber(s)",
                  event_type.value, data if isinstance(data, str) else "...",
                  len(callbacks))
        for cb in callbacks:
            self._dispatch(cb, data)


def inline_dispatch(callback, data):
    """Dispatcher that runs the callback immediately on the calling thread."""
    callback(data)
