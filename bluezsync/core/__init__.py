"""
Core package initialisation for bluezsync.

Deliberately kept lightweight: nothing under ``core`` imports ``dbus`` so the
synchronizer can be driven by any transport.  Heavier sub-modules are loaded
lazily on first attribute access via __getattr__.
"""

from importlib import import_module as _imp
from types import ModuleType as _ModuleType
from typing import Any as _Any

from bluezsync.core.errors import (
    BluezSyncError,
    NotFoundError,
    NotBoundError,
    ProtocolViolationError,
    TransportFailureError,
)

__all__ = [
    "ObjectGraphSynchronizer",
    "EntityRegistry",
    "Capability",
    "NotificationReconciler",
    "HandleResolver",
    "EventHub",
    "BluezSyncError",
    "NotFoundError",
    "NotBoundError",
    "ProtocolViolationError",
    "TransportFailureError",
]

# Lazy attribute loader -------------------------------------------------------

_lazy_map = {
    "ObjectGraphSynchronizer": "bluezsync.core.synchronizer",
    "EntityRegistry": "bluezsync.core.registry",
    "Capability": "bluezsync.core.registry",
    "NotificationReconciler": "bluezsync.core.reconciler",
    "HandleResolver": "bluezsync.core.resolver",
    "EventHub": "bluezsync.core.events",
}


def __getattr__(name: str) -> _Any:  # noqa: D401
    """Load sub-modules on demand to keep ``import bluezsync.core`` cheap."""
    if name in _lazy_map:
        module: _ModuleType = _imp(_lazy_map[name])
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(name)
