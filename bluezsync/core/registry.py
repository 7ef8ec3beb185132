"""Entity Registry: the live BlueZ object graph.

The registry is the only owner of entity instances.  It keeps

* ``path -> entity`` for every live entity,
* ``address -> path`` for devices (last writer wins),
* an orphan holding area ``owner path -> [child, ...]`` for children whose
  structural owner has not been announced yet (or has vanished),
* the paths of devices retired by an address takeover whose own removal has
  not arrived yet.

Owning references always point parent -> child (``children`` maps keyed by
UUID).  Child -> owner links are weak references plus the owner's path, so
dropping a parent never leaves a reference cycle behind.

All access goes through :attr:`EntityRegistry.lock`, a re-entrant lock, so a
caller may group several operations into one atomic step::

    with registry.lock:
        registry.upsert_device(...)
        registry.attach_service(...)
"""

from __future__ import annotations

import enum
import threading
import weakref
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Set, Tuple

from bluezsync.bt_ref.constants import (
    ADAPTER_INTERFACE,
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
    GATT_DESCRIPTOR_INTERFACE,
    GATT_SERVICE_INTERFACE,
)
from bluezsync.core.errors import ProtocolViolationError
from bluezsync.core.log import LOG__DEBUG, print_and_log
from bluezsync.core.paths import normalize_address, normalize_uuid

__all__ = [
    "Capability",
    "Entity",
    "AdapterEntity",
    "DeviceEntity",
    "ServiceEntity",
    "CharacteristicEntity",
    "DescriptorEntity",
    "EntityRegistry",
]


class Capability(enum.Enum):
    """Capability interfaces tracked by the synchronizer, parents first."""

    ADAPTER = ADAPTER_INTERFACE
    DEVICE = DEVICE_INTERFACE
    SERVICE = GATT_SERVICE_INTERFACE
    CHARACTERISTIC = GATT_CHARACTERISTIC_INTERFACE
    DESCRIPTOR = GATT_DESCRIPTOR_INTERFACE

    @property
    def interface(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_interface(cls, name: str) -> Optional["Capability"]:
        try:
            return cls(str(name))
        except ValueError:
            return None


# Structural owner of each child capability
OWNER_CAPABILITY: Dict[Capability, Capability] = {
    Capability.SERVICE: Capability.DEVICE,
    Capability.CHARACTERISTIC: Capability.SERVICE,
    Capability.DESCRIPTOR: Capability.CHARACTERISTIC,
}


@dataclass(eq=False)
class Entity:
    """Common root: an immutable path, a property snapshot and a live flag."""

    capability: ClassVar[Capability]

    path: str
    properties: Dict[str, Any] = field(default_factory=dict)
    children: Dict[str, "Entity"] = field(default_factory=dict, repr=False)
    alive: bool = field(default=True, init=False)

    def refresh(self, changed: Optional[Dict[str, Any]] = None, invalidated: Iterable[str] = ()) -> None:
        if changed:
            self.properties.update(changed)
        for name in invalidated or ():
            self.properties.pop(name, None)


@dataclass(eq=False)
class AdapterEntity(Entity):
    capability: ClassVar[Capability] = Capability.ADAPTER

    adapter_id: str = ""


@dataclass(eq=False)
class DeviceEntity(Entity):
    capability: ClassVar[Capability] = Capability.DEVICE

    address: str = ""

    @property
    def services(self) -> Dict[str, "ServiceEntity"]:
        return self.children  # type: ignore[return-value]


@dataclass(eq=False)
class _ChildEntity(Entity):
    uuid: str = ""
    owner_path: str = ""
    _owner_ref: Optional[weakref.ReferenceType] = field(default=None, init=False, repr=False)

    @property
    def owner(self) -> Optional[Entity]:
        return self._owner_ref() if self._owner_ref is not None else None

    def _set_owner(self, owner: Optional[Entity]) -> None:
        self._owner_ref = weakref.ref(owner) if owner is not None else None


@dataclass(eq=False)
class ServiceEntity(_ChildEntity):
    capability: ClassVar[Capability] = Capability.SERVICE

    @property
    def device(self) -> Optional[DeviceEntity]:
        return self.owner  # type: ignore[return-value]

    @property
    def characteristics(self) -> Dict[str, "CharacteristicEntity"]:
        return self.children  # type: ignore[return-value]


@dataclass(eq=False)
class CharacteristicEntity(_ChildEntity):
    capability: ClassVar[Capability] = Capability.CHARACTERISTIC

    @property
    def service(self) -> Optional[ServiceEntity]:
        return self.owner  # type: ignore[return-value]

    @property
    def descriptors(self) -> Dict[str, "DescriptorEntity"]:
        return self.children  # type: ignore[return-value]


@dataclass(eq=False)
class DescriptorEntity(_ChildEntity):
    capability: ClassVar[Capability] = Capability.DESCRIPTOR

    @property
    def characteristic(self) -> Optional[CharacteristicEntity]:
        return self.owner  # type: ignore[return-value]


_CHILD_CLASSES = {
    Capability.SERVICE: ServiceEntity,
    Capability.CHARACTERISTIC: CharacteristicEntity,
    Capability.DESCRIPTOR: DescriptorEntity,
}


class EntityRegistry:
    """Path- and address-indexed store of live entities."""

    def __init__(self):
        self.lock = threading.RLock()
        self._by_path: Dict[str, Entity] = {}
        self._by_address: Dict[str, str] = {}
        self._orphans: Dict[str, List[_ChildEntity]] = {}
        self._superseded: Set[str] = set()
        self._retired: List[DeviceEntity] = []

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def upsert_adapter(self, path: str, adapter_id: str, props: Optional[Dict[str, Any]] = None) -> Tuple[AdapterEntity, bool]:
        """Create or refresh the adapter at *path*; returns ``(entity, created)``."""
        with self.lock:
            entity = self._existing(path, Capability.ADAPTER)
            if entity is not None:
                entity.refresh(props)
                return entity, False
            entity = AdapterEntity(path=path, properties=dict(props or {}), adapter_id=adapter_id)
            self._by_path[path] = entity
            return entity, True

    def upsert_device(self, path: str, address: str, props: Optional[Dict[str, Any]] = None) -> Tuple[DeviceEntity, bool]:
        """Create or refresh the device at *path* and point *address* at it.

        A device re-announced at a new path takes the address over and the
        entity at the old path is retired: it is marked dead and leaves the
        path index, and its children are held under the old path.  Retired
        devices are reported once through :meth:`drain_superseded`.
        """
        canonical = normalize_address(address)
        if canonical is None:
            raise ProtocolViolationError(
                f"Device at {path} carries invalid address {address!r}", path, Capability.DEVICE.interface
            )
        with self.lock:
            entity = self._existing(path, Capability.DEVICE)
            created = entity is None
            if created:
                entity = DeviceEntity(path=path, properties=dict(props or {}), address=canonical)
                self._by_path[path] = entity
                self._superseded.discard(path)
                self._adopt_orphans(entity)
            else:
                entity.refresh(props)
                if entity.address != canonical:
                    self._drop_address(entity)
                    entity.address = canonical
            self._claim_address(entity)
            return entity, created

    def attach_service(self, path: str, owner_path: str, uuid: str, props: Optional[Dict[str, Any]] = None) -> Tuple[ServiceEntity, bool]:
        return self._attach(Capability.SERVICE, path, owner_path, uuid, props)  # type: ignore[return-value]

    def attach_characteristic(self, path: str, owner_path: str, uuid: str, props: Optional[Dict[str, Any]] = None) -> Tuple[CharacteristicEntity, bool]:
        return self._attach(Capability.CHARACTERISTIC, path, owner_path, uuid, props)  # type: ignore[return-value]

    def attach_descriptor(self, path: str, owner_path: str, uuid: str, props: Optional[Dict[str, Any]] = None) -> Tuple[DescriptorEntity, bool]:
        return self._attach(Capability.DESCRIPTOR, path, owner_path, uuid, props)  # type: ignore[return-value]

    def remove(self, path: str, capability: Capability) -> Optional[Entity]:
        """Mark the entity dead and drop it from every index.

        Returns the removed entity, or ``None`` when *path* holds no live
        entity of that capability.  Live children are not removed; they are
        held as orphans of *path* until their own removal arrives or a new
        owner appears at the same path.
        """
        with self.lock:
            entity = self._by_path.get(path)
            if entity is None or entity.capability is not capability:
                return None
            del self._by_path[path]
            entity.alive = False

            if isinstance(entity, DeviceEntity):
                self._drop_address(entity)
            if isinstance(entity, _ChildEntity):
                self._unlink(entity)

            if entity.children:
                held = self._orphans.setdefault(path, [])
                for child in entity.children.values():
                    if child.alive:
                        child._set_owner(None)  # type: ignore[attr-defined]
                        held.append(child)  # type: ignore[arg-type]
                entity.children.clear()
            return entity

    def refresh_properties(
        self,
        path: str,
        capability: Capability,
        changed: Optional[Dict[str, Any]] = None,
        invalidated: Iterable[str] = (),
    ) -> Optional[Entity]:
        """Apply a PropertiesChanged delta; ``None`` when the path is unknown."""
        with self.lock:
            entity = self._existing(path, capability)
            if entity is None:
                return None
            entity.refresh(changed, invalidated)
            if isinstance(entity, DeviceEntity) and changed and "Address" in changed:
                canonical = normalize_address(changed["Address"])
                if canonical is not None and canonical != entity.address:
                    self._drop_address(entity)
                    entity.address = canonical
                    self._claim_address(entity)
            return entity

    def drain_superseded(self) -> List[DeviceEntity]:
        """Return (and forget) the devices retired by address takeovers so far."""
        with self.lock:
            retired, self._retired = self._retired, []
            return retired

    def forget_superseded(self, path: str) -> bool:
        """Consume the pending removal of a retired device path.

        True when *path* was retired by a takeover and its own removal had
        not been seen yet.
        """
        with self.lock:
            if path in self._superseded:
                self._superseded.discard(path)
                return True
            return False

    def clear(self) -> None:
        """Tear the graph down: every entity is marked dead."""
        with self.lock:
            for entity in self._by_path.values():
                entity.alive = False
            for held in self._orphans.values():
                for child in held:
                    child.alive = False
            self._by_path.clear()
            self._by_address.clear()
            self._orphans.clear()
            self._superseded.clear()
            self._retired.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def lookup_by_path(self, path: str, capability: Optional[Capability] = None) -> Optional[Entity]:
        with self.lock:
            entity = self._by_path.get(path)
            if entity is None or (capability is not None and entity.capability is not capability):
                return None
            return entity

    def lookup_by_address(self, address: str) -> Optional[DeviceEntity]:
        canonical = normalize_address(address)
        if canonical is None:
            return None
        with self.lock:
            path = self._by_address.get(canonical)
            if path is None:
                return None
            return self.lookup_by_path(path, Capability.DEVICE)  # type: ignore[return-value]

    def adapters(self) -> List[AdapterEntity]:
        with self.lock:
            return [e for e in self._by_path.values() if isinstance(e, AdapterEntity)]

    def devices(self) -> List[DeviceEntity]:
        with self.lock:
            return [e for e in self._by_path.values() if isinstance(e, DeviceEntity)]

    def orphans_for(self, owner_path: str) -> List[Entity]:
        with self.lock:
            return list(self._orphans.get(owner_path, []))

    def orphan_count(self) -> int:
        with self.lock:
            return sum(len(held) for held in self._orphans.values())

    def __len__(self) -> int:
        with self.lock:
            return len(self._by_path)

    def __contains__(self, path: object) -> bool:
        with self.lock:
            return path in self._by_path

    def snapshot(self) -> Dict[str, Any]:
        """Plain-dict view of the hierarchy (adapters, devices, orphans)."""

        def _tree(entity: Entity) -> Dict[str, Any]:
            node: Dict[str, Any] = {"path": entity.path}
            if isinstance(entity, _ChildEntity):
                node["uuid"] = entity.uuid
                owner = entity.owner
                node["owner"] = owner.path if owner is not None else None
            node["children"] = {uuid: _tree(child) for uuid, child in sorted(entity.children.items())}
            return node

        with self.lock:
            return {
                "adapters": sorted(e.adapter_id for e in self.adapters()),
                "devices": {
                    dev.address: dict(_tree(dev), address=dev.address)
                    for dev in sorted(self.devices(), key=lambda d: d.path)
                },
                "orphans": {
                    owner: sorted(child.path for child in held)
                    for owner, held in sorted(self._orphans.items())
                    if held
                },
            }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _existing(self, path: str, capability: Capability) -> Optional[Entity]:
        entity = self._by_path.get(path)
        if entity is None:
            return None
        if entity.capability is not capability:
            raise ProtocolViolationError(
                f"{path} is already registered as {entity.capability.label}, not {capability.label}",
                path,
                capability.interface,
            )
        return entity

    def _attach(
        self,
        capability: Capability,
        path: str,
        owner_path: str,
        uuid: str,
        props: Optional[Dict[str, Any]],
    ) -> Tuple[_ChildEntity, bool]:
        uuid = normalize_uuid(uuid)
        with self.lock:
            entity = self._existing(path, capability)
            created = entity is None
            if created:
                entity = _CHILD_CLASSES[capability](
                    path=path, properties=dict(props or {}), uuid=uuid, owner_path=owner_path
                )
                self._by_path[path] = entity
                self._adopt_orphans(entity)
            else:
                entity.refresh(props)
                if entity.owner_path != owner_path or entity.uuid != uuid:
                    self._unlink(entity)
                    entity.owner_path = owner_path
                    entity.uuid = uuid
            self._link(entity)  # type: ignore[arg-type]
            return entity, created  # type: ignore[return-value]

    def _link(self, child: _ChildEntity) -> None:
        owner = self._by_path.get(child.owner_path)
        if owner is not None and owner.capability is OWNER_CAPABILITY[child.capability]:
            owner.children[child.uuid] = child
            child._set_owner(owner)
            return
        held = self._orphans.setdefault(child.owner_path, [])
        if not any(c is child for c in held):
            held.append(child)
            print_and_log(
                f"[*] Holding {child.capability.label} {child.path} until {child.owner_path} appears",
                LOG__DEBUG,
            )
        child._set_owner(None)

    def _unlink(self, child: _ChildEntity) -> None:
        owner = child.owner
        if owner is not None and owner.children.get(child.uuid) is child:
            del owner.children[child.uuid]
        held = self._orphans.get(child.owner_path)
        if held:
            held[:] = [c for c in held if c is not child]
            if not held:
                del self._orphans[child.owner_path]
        child._set_owner(None)

    def _adopt_orphans(self, owner: Entity) -> None:
        held = self._orphans.pop(owner.path, None)
        if not held:
            return
        keep: List[_ChildEntity] = []
        for child in held:
            if not child.alive:
                continue
            if OWNER_CAPABILITY[child.capability] is not owner.capability:
                keep.append(child)
                continue
            owner.children[child.uuid] = child
            child._set_owner(owner)
            print_and_log(f"[*] Spliced {child.capability.label} {child.path} into {owner.path}", LOG__DEBUG)
        if keep:
            self._orphans[owner.path] = keep

    def _claim_address(self, device: DeviceEntity) -> None:
        previous = self._by_address.get(device.address)
        if previous is not None and previous != device.path:
            print_and_log(f"[*] Address {device.address} moved from {previous} to {device.path}", LOG__DEBUG)
            stale = self.remove(previous, Capability.DEVICE)
            if stale is not None:
                self._superseded.add(previous)
                self._retired.append(stale)  # type: ignore[arg-type]
        self._by_address[device.address] = device.path

    def _drop_address(self, device: DeviceEntity) -> None:
        if self._by_address.get(device.address) == device.path:
            del self._by_address[device.address]
