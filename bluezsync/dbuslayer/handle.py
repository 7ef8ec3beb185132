"""Common base for entity handles.

A handle is a shared reference to one registry entity plus the transport
binding for its capability interface.  Every operation first checks the
entity's live flag: once the entity is removed from the registry the handle
raises :class:`NotBoundError` instead of talking to a stale object.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Type

from bluezsync.core import events as ev
from bluezsync.core.errors import NotBoundError
from bluezsync.core.paths import normalize_uuid

__all__ = ["EntityHandle"]


class EntityHandle:
    interface: str = ""

    def __init__(self, synchronizer, entity, bound=None):
        self._sync = synchronizer
        self.entity = entity
        self.path: str = entity.path
        self._bound = bound
        self._child_handles: Dict[str, "EntityHandle"] = {}

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------
    @property
    def alive(self) -> bool:
        return bool(self.entity.alive)

    def _ensure_alive(self) -> None:
        if not self.entity.alive:
            raise NotBoundError(self.path, self.interface)

    @property
    def _remote(self):
        self._ensure_alive()
        if self._bound is None:
            self._bound = self._sync.transport.bind(self.path, self.interface)
        return self._bound

    def _call(self, method: str, *args, **kwargs):
        return self._remote.call(method, *args, **kwargs)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def properties(self) -> Dict[str, Any]:
        """Snapshot kept current by the synchronizer (no D-Bus round trip)."""
        self._ensure_alive()
        with self._sync.registry.lock:
            return dict(self.entity.properties)

    def get_property(self, name: str):
        """Live ``Properties.Get`` on the remote object."""
        return self._remote.get(name)

    def get_properties(self) -> Dict[str, Any]:
        return self._remote.get_all()

    def watch_properties(self, callback: Callable[[str, Dict[str, Any]], None]) -> Callable[[], None]:
        """Call ``callback(interface, changed)`` for property changes on this path.

        Returns a function that removes the subscription.
        """
        self._ensure_alive()

        def _filter(path, interface, changed):
            if path == self.path:
                callback(interface, changed)

        self._sync.on(ev.PROPERTIES_CHANGED, _filter)
        return lambda: self._sync.off(ev.PROPERTIES_CHANGED, _filter)

    def watch_property(self, name: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """Call ``callback(value)`` whenever *name* changes on this handle's interface."""

        def _changed(interface, changed):
            if interface == self.interface and name in changed:
                callback(changed[name])

        return self.watch_properties(_changed)

    # ------------------------------------------------------------------
    # Structural traversal
    # ------------------------------------------------------------------
    def _child(self, handle_cls: Type["EntityHandle"], uuid: str) -> Optional["EntityHandle"]:
        self._ensure_alive()
        with self._sync.registry.lock:
            child = self.entity.children.get(normalize_uuid(uuid))
            if child is None or not child.alive:
                return None
            handle = self._child_handles.get(child.path)
            if handle is None or handle.entity is not child:
                handle = handle_cls(self._sync, child)
                self._child_handles[child.path] = handle
            return handle

    def _child_uuids(self) -> List[str]:
        self._ensure_alive()
        with self._sync.registry.lock:
            return [uuid for uuid, child in self.entity.children.items() if child.alive]

    def __repr__(self):  # pragma: no cover - debugging aid
        state = "alive" if self.entity.alive else "removed"
        return f"<{type(self).__name__} {self.path} ({state})>"
