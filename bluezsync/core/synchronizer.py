"""Object-graph synchronizer facade.

Wires a transport, the registry, the reconciler and the resolver together.
The transport is any object providing::

    subscribe(on_added, on_removed, on_changed) -> token
    unsubscribe(token)
    get_managed_objects() -> {path: {interface: {prop: value}}}
    bind(path, interface) -> bound remote object

and ``handle_factory(synchronizer, entity)`` turns a registry entity into the
handle returned by :meth:`get_adapter` / :meth:`get_device` (it may call
``transport.bind`` and therefore block).
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from bluezsync.core import events as ev
from bluezsync.core.errors import BluezSyncError, TransportFailureError
from bluezsync.core.log import LOG__DEBUG, LOG__GENERAL, print_and_log
from bluezsync.core.reconciler import NotificationReconciler
from bluezsync.core.registry import Capability, Entity, EntityRegistry
from bluezsync.core.resolver import HandleResolver

__all__ = ["ObjectGraphSynchronizer"]

HandleFactory = Callable[["ObjectGraphSynchronizer", Entity], Any]


class ObjectGraphSynchronizer:
    """Mirror of one BlueZ ObjectManager, constructed per connection."""

    def __init__(self, transport: Any, handle_factory: HandleFactory):
        self.transport = transport
        self.registry = EntityRegistry()
        self.events = ev.EventHub()
        self.reconciler = NotificationReconciler(self.registry, self.events)
        self.resolver = HandleResolver(self.registry, self._bind)
        self._handle_factory = handle_factory
        self._subscription: Optional[Any] = None
        self._lifecycle = threading.Lock()

        self.events.on(ev.ENTITY_REMOVED, self._entity_removed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def started(self) -> bool:
        return self._subscription is not None

    def start(self) -> "ObjectGraphSynchronizer":
        """Subscribe to the notification feed, then replay the current object tree.

        Subscribing first means nothing announced during the enumeration is
        missed; replaying an object that was also announced live is a
        property refresh.
        """
        with self._lifecycle:
            if self._subscription is not None:
                return self
            self._subscription = self.transport.subscribe(
                self.reconciler.interfaces_added,
                self.reconciler.interfaces_removed,
                self.reconciler.properties_changed,
            )
            try:
                managed = self.transport.get_managed_objects()
            except BluezSyncError:
                self._unsubscribe()
                raise
            except Exception as e:
                self._unsubscribe()
                raise TransportFailureError("GetManagedObjects", str(e)) from e

        self.reconciler.replay(managed)
        print_and_log(
            f"[*] Synchronizer started: {len(self.registry.adapters())} adapter(s), "
            f"{len(self.registry.devices())} device(s)",
            LOG__DEBUG,
        )
        return self

    def close(self) -> None:
        """Stop listening and tear the mirrored graph down."""
        with self._lifecycle:
            self._unsubscribe()
            self.resolver.clear()
            self.registry.clear()
        print_and_log("[*] Synchronizer closed", LOG__DEBUG)

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on(self, name: str, callback: Callable[..., None]) -> Callable[..., None]:
        return self.events.on(name, callback)

    def off(self, name: str, callback: Callable[..., None]) -> None:
        self.events.off(name, callback)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_adapter(self, identifier: str):
        return self.resolver.get_adapter(identifier)

    def get_device(self, identifier: str):
        return self.resolver.get_device(identifier)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _bind(self, entity: Entity):
        return self._handle_factory(self, entity)

    def _entity_removed(self, path: str, capability: Capability) -> None:
        self.resolver.forget(path)

    def _unsubscribe(self) -> None:
        if self._subscription is None:
            return
        token, self._subscription = self._subscription, None
        try:
            self.transport.unsubscribe(token)
        except Exception as e:
            print_and_log(f"[-] Failed to remove signal receivers: {e}", LOG__GENERAL)
