"""Subscriber registry for synchronizer events.

Callbacks are invoked synchronously, in registration order, and never while
the registry lock is held.  A failing callback is logged and does not stop
delivery to the remaining subscribers.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, List

from bluezsync.core.log import LOG__DEBUG, print_and_log

# Event names
DEVICE_OBSERVED = "device"  # (address, properties)
SYNC_ERROR = "error"  # (ProtocolViolationError,)
ENTITY_REMOVED = "removed"  # (path, Capability)
PROPERTIES_CHANGED = "properties"  # (path, interface, changed)

EVENT_NAMES = (DEVICE_OBSERVED, SYNC_ERROR, ENTITY_REMOVED, PROPERTIES_CHANGED)

EventCallback = Callable[..., None]


class EventHub:
    """Explicit subscription interface for the synchronizer's events."""

    def __init__(self):
        self._callbacks: Dict[str, List[EventCallback]] = {name: [] for name in EVENT_NAMES}
        self._lock = threading.Lock()

    def on(self, name: str, callback: EventCallback) -> EventCallback:
        """Subscribe *callback* to *name* and return it."""
        if name not in self._callbacks:
            raise ValueError(f"Unknown event {name!r}; expected one of {', '.join(EVENT_NAMES)}")
        with self._lock:
            self._callbacks[name].append(callback)
        return callback

    def off(self, name: str, callback: EventCallback) -> None:
        with self._lock:
            try:
                self._callbacks.get(name, []).remove(callback)
            except ValueError:
                pass

    def emit(self, name: str, *args) -> None:
        with self._lock:
            callbacks = list(self._callbacks.get(name, []))
        for callback in callbacks:
            try:
                callback(*args)
            except Exception as e:
                print_and_log(f"[-] Error in {name} callback {callback!r}: {e}", LOG__DEBUG)

    def clear(self) -> None:
        with self._lock:
            for callbacks in self._callbacks.values():
                callbacks.clear()
