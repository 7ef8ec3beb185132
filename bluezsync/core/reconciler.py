"""Notification Reconciler.

Turns the ObjectManager notification stream into registry operations and
events.  Notifications are applied strictly one at a time: a call made while
another notification is being reconciled (from another thread, or from an
event callback) is queued and applied after it, in arrival order.  Events
produced by a notification are collected while the registry lock is held and
delivered once it is released.

Nothing raised while applying a notification escapes; structural problems
surface as ``error`` events carrying a :class:`ProtocolViolationError`.
"""

from __future__ import annotations

import collections
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from bluezsync.bt_ref.constants import (
    GATT_CHARACTERISTIC_OWNER_PROPERTY,
    GATT_DESCRIPTOR_OWNER_PROPERTY,
    GATT_SERVICE_OWNER_PROPERTY,
)
from bluezsync.core import events as ev
from bluezsync.core.errors import ProtocolViolationError
from bluezsync.core.log import LOG__DEBUG, LOG__SYNC, get_logger, print_and_log
from bluezsync.core.paths import (
    is_descendant,
    normalize_adapter_id,
    parent_path,
    parse_path,
    segment_to_address,
)
from bluezsync.core.registry import Capability, EntityRegistry

logger = get_logger(__name__)

__all__ = ["NotificationReconciler"]

_Pending = List[Tuple[str, tuple]]

_OWNER_PROPERTY = {
    Capability.SERVICE: GATT_SERVICE_OWNER_PROPERTY,
    Capability.CHARACTERISTIC: GATT_CHARACTERISTIC_OWNER_PROPERTY,
    Capability.DESCRIPTOR: GATT_DESCRIPTOR_OWNER_PROPERTY,
}


def _adapter_id(path: str) -> Optional[str]:
    segments = parse_path(path)
    if segments.depth != 1 or path.endswith("/"):
        return None
    return normalize_adapter_id(segments.adapter)


def _device_address(path: str) -> Optional[str]:
    segments = parse_path(path)
    if segments.depth != 2 or path.endswith("/"):
        return None
    return segment_to_address(segments.device)


class NotificationReconciler:
    """Single reconciliation path between the transport and the registry."""

    def __init__(self, registry: EntityRegistry, events: ev.EventHub):
        self._registry = registry
        self._events = events

        self._queue: collections.deque = collections.deque()
        self._queue_lock = threading.Lock()
        self._draining = False

        self._added_handlers: Dict[Capability, Callable[..., None]] = {
            Capability.ADAPTER: self._added_adapter,
            Capability.DEVICE: self._added_device,
            Capability.SERVICE: self._added_child,
            Capability.CHARACTERISTIC: self._added_child,
            Capability.DESCRIPTOR: self._added_child,
        }

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------
    def interfaces_added(self, path: str, interfaces: Mapping[str, Mapping[str, Any]]) -> None:
        self._submit(self._apply_added, str(path), dict(interfaces))

    def interfaces_removed(self, path: str, interfaces: Iterable[str]) -> None:
        self._submit(self._apply_removed, str(path), [str(i) for i in interfaces])

    def properties_changed(
        self,
        path: str,
        interface: str,
        changed: Mapping[str, Any],
        invalidated: Iterable[str] = (),
    ) -> None:
        self._submit(self._apply_changed, str(path), str(interface), dict(changed), list(invalidated or ()))

    def replay(self, managed_objects: Mapping[str, Mapping[str, Mapping[str, Any]]]) -> None:
        """Feed a GetManagedObjects result through the "added" path, parents first."""
        for path in sorted(managed_objects, key=lambda p: (p.count("/"), p)):
            self.interfaces_added(path, managed_objects[path])

    # ------------------------------------------------------------------
    # Serialisation
    # ------------------------------------------------------------------
    def _submit(self, apply: Callable[..., _Pending], *args) -> None:
        with self._queue_lock:
            self._queue.append((apply, args))
            if self._draining:
                return
            self._draining = True
        try:
            while True:
                with self._queue_lock:
                    if not self._queue:
                        self._draining = False
                        return
                    apply, args = self._queue.popleft()
                pending = apply(*args)
                for name, event_args in pending:
                    self._events.emit(name, *event_args)
        except BaseException:
            with self._queue_lock:
                self._draining = False
            raise

    # ------------------------------------------------------------------
    # InterfacesAdded
    # ------------------------------------------------------------------
    def _apply_added(self, path: str, interfaces: Dict[str, Dict[str, Any]]) -> _Pending:
        pending: _Pending = []
        with self._registry.lock:
            for capability in Capability:
                if capability.interface not in interfaces:
                    continue
                props = dict(interfaces[capability.interface] or {})
                self._guarded(capability, path, pending, self._added_handlers[capability], capability, path, props, pending)
            self._report_superseded(pending)
        return pending

    def _added_adapter(self, capability: Capability, path: str, props: Dict[str, Any], pending: _Pending) -> None:
        adapter_id = _adapter_id(path)
        if adapter_id is None:
            raise ProtocolViolationError(f"Adapter interface on non-adapter path {path}", path, capability.interface)
        _entity, created = self._registry.upsert_adapter(path, adapter_id, props)
        if created:
            print_and_log(f"[+] Adapter {adapter_id} registered", LOG__SYNC)

    def _added_device(self, capability: Capability, path: str, props: Dict[str, Any], pending: _Pending) -> None:
        address = props.get("Address") or _device_address(path)
        if not address:
            raise ProtocolViolationError(f"Device at {path} has no address", path, capability.interface)
        entity, created = self._registry.upsert_device(path, address, props)
        if created:
            print_and_log(f"[+] Device {entity.address} registered at {path}", LOG__SYNC)
            pending.append((ev.DEVICE_OBSERVED, (entity.address, dict(props))))

    def _added_child(self, capability: Capability, path: str, props: Dict[str, Any], pending: _Pending) -> None:
        uuid = props.get("UUID")
        if not uuid:
            raise ProtocolViolationError(f"{capability.label.capitalize()} at {path} has no UUID", path, capability.interface)
        owner_path = self._owner_path(capability, path, props.get(_OWNER_PROPERTY[capability]), pending)
        attach = {
            Capability.SERVICE: self._registry.attach_service,
            Capability.CHARACTERISTIC: self._registry.attach_characteristic,
            Capability.DESCRIPTOR: self._registry.attach_descriptor,
        }[capability]
        entity, created = attach(path, owner_path, uuid, props)
        if created:
            state = "attached" if entity.owner is not None else "held (owner pending)"
            print_and_log(f"[+] {capability.label.capitalize()} {entity.uuid} {state} at {path}", LOG__DEBUG)

    def _owner_path(self, capability: Capability, path: str, reference: Optional[Any], pending: _Pending) -> str:
        fallback = parent_path(path)
        if not reference:
            return fallback
        reference = str(reference)
        if not is_descendant(path, reference):
            self._report(
                pending,
                ProtocolViolationError(
                    f"{capability.label.capitalize()} {path} names owner {reference} outside its path",
                    path,
                    capability.interface,
                ),
            )
            return fallback
        return reference

    # ------------------------------------------------------------------
    # InterfacesRemoved
    # ------------------------------------------------------------------
    def _apply_removed(self, path: str, interfaces: List[str]) -> _Pending:
        pending: _Pending = []
        with self._registry.lock:
            for name in interfaces:
                capability = Capability.from_interface(name)
                if capability is None:
                    continue
                self._guarded(capability, path, pending, self._removed_one, capability, path, pending)
        return pending

    def _removed_one(self, capability: Capability, path: str, pending: _Pending) -> None:
        if capability is Capability.DEVICE and _device_address(path) is None:
            raise ProtocolViolationError(f"Removed Device with unknown path {path}", path, capability.interface)
        if capability is Capability.ADAPTER and _adapter_id(path) is None:
            raise ProtocolViolationError(f"Removed Adapter with unknown path {path}", path, capability.interface)
        removed = self._registry.remove(path, capability)
        if removed is None and capability is Capability.DEVICE and self._registry.forget_superseded(path):
            print_and_log(f"[*] Removal of superseded device {path} already applied", LOG__DEBUG)
            return
        if removed is None:
            raise ProtocolViolationError(f"Removal of unknown {capability.label} {path}", path, capability.interface)
        print_and_log(f"[-] {capability.label.capitalize()} removed at {path}", LOG__SYNC)
        pending.append((ev.ENTITY_REMOVED, (path, capability)))

    # ------------------------------------------------------------------
    # PropertiesChanged
    # ------------------------------------------------------------------
    def _apply_changed(self, path: str, interface: str, changed: Dict[str, Any], invalidated: List[str]) -> _Pending:
        pending: _Pending = []
        capability = Capability.from_interface(interface)
        if capability is None:
            return pending
        with self._registry.lock:
            self._guarded(capability, path, pending, self._changed_one, capability, path, interface, changed, invalidated, pending)
            self._report_superseded(pending)
        return pending

    def _changed_one(
        self,
        capability: Capability,
        path: str,
        interface: str,
        changed: Dict[str, Any],
        invalidated: List[str],
        pending: _Pending,
    ) -> None:
        entity = self._registry.refresh_properties(path, capability, changed, invalidated)
        if entity is None:
            return  # object not (yet) mirrored
        pending.append((ev.PROPERTIES_CHANGED, (path, interface, changed)))

    # ------------------------------------------------------------------
    # Error absorption
    # ------------------------------------------------------------------
    def _guarded(self, capability: Capability, path: str, pending: _Pending, handler: Callable, *args) -> None:
        try:
            handler(*args)
        except ProtocolViolationError as exc:
            self._report(pending, exc)
        except Exception as exc:
            logger.exception("Unexpected failure reconciling %s at %s", capability.label, path)
            self._report(
                pending,
                ProtocolViolationError(
                    f"Unexpected failure reconciling {capability.label} at {path}: {exc}",
                    path,
                    capability.interface,
                ),
            )

    def _report_superseded(self, pending: _Pending) -> None:
        for stale in self._registry.drain_superseded():
            print_and_log(f"[-] Device {stale.address} superseded at {stale.path}", LOG__SYNC)
            pending.append((ev.ENTITY_REMOVED, (stale.path, Capability.DEVICE)))

    @staticmethod
    def _report(pending: _Pending, exc: ProtocolViolationError) -> None:
        print_and_log(f"[!] Sync error: {exc}", LOG__SYNC)
        pending.append((ev.SYNC_ERROR, (exc,)))
