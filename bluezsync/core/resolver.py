"""Handle Resolver: stable, single-flight handles for adapters and devices.

``binder(entity)`` is the only blocking step.  The registry lock is held just
long enough to check the cache and reserve a pending slot, released while the
binder runs, and taken again to install the result or clear the
reservation::

    lock -> cache hit?  -> return handle
         -> pending?    -> unlock, wait on the same future
         -> reserve     -> unlock, bind, lock, install, resolve future
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional

from bluezsync.core.errors import BluezSyncError, NotFoundError, TransportFailureError
from bluezsync.core.log import LOG__DEBUG, print_and_log
from bluezsync.core.paths import adapter_path, normalize_adapter_id, normalize_address
from bluezsync.core.registry import Capability, Entity, EntityRegistry

__all__ = ["HandleResolver"]

Binder = Callable[[Entity], Any]


class _Pending:
    __slots__ = ("entity", "future")

    def __init__(self, entity: Entity):
        self.entity = entity
        self.future: Future = Future()


class HandleResolver:
    """Cache of bound handles keyed by object path."""

    def __init__(self, registry: EntityRegistry, binder: Binder):
        self._registry = registry
        self._binder = binder
        self._handles: Dict[str, Any] = {}
        self._pending: Dict[str, _Pending] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get_adapter(self, identifier: str):
        """Return the handle for adapter ``hci0`` / ``/org/bluez/hci0``.

        Raises :class:`NotFoundError` when no such adapter is registered.
        """
        adapter_id = normalize_adapter_id(identifier)
        if adapter_id is None:
            raise NotFoundError(str(identifier), "adapter")

        def lookup():
            return self._registry.lookup_by_path(adapter_path(adapter_id), Capability.ADAPTER)

        return self._resolve(lookup, str(identifier), "adapter")

    def get_device(self, identifier: str):
        """Return the handle for a device address (any delimiter) or device path.

        Resolution always goes through the address index so a device
        re-announced at a new path resolves to its newest entity.  A path
        only resolves while the address still maps to it.
        """
        address = normalize_address(identifier)
        if address is None:
            raise NotFoundError(str(identifier), "device")
        path = identifier.strip() if identifier.strip().startswith("/") else None

        def lookup():
            entity = self._registry.lookup_by_address(address)
            if entity is not None and path is not None and entity.path != path:
                return None
            return entity

        return self._resolve(lookup, path or address, "device")

    def cached(self, path: str) -> Optional[Any]:
        with self._registry.lock:
            return self._handles.get(path)

    def forget(self, path: str) -> None:
        """Drop the cached handle for *path* (e.g. after its removal)."""
        with self._registry.lock:
            self._handles.pop(path, None)

    def clear(self) -> None:
        with self._registry.lock:
            self._handles.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _resolve(self, lookup: Callable[[], Optional[Entity]], identifier: str, kind: str):
        with self._registry.lock:
            entity = lookup()
            if entity is None:
                raise NotFoundError(identifier, kind)
            path = entity.path

            handle = self._handles.get(path)
            if handle is not None and getattr(handle, "entity", None) is entity:
                return handle

            pending = self._pending.get(path)
            owner = pending is None or pending.entity is not entity
            if owner:
                pending = _Pending(entity)
                self._pending[path] = pending

        if not owner:
            return pending.future.result()

        try:
            handle = self._binder(entity)
        except BluezSyncError as exc:
            self._fail(path, pending, exc)
            raise
        except Exception as exc:
            failure = TransportFailureError(f"bind {path}", str(exc))
            self._fail(path, pending, failure)
            raise failure from exc
        except BaseException as exc:
            self._fail(path, pending, exc)
            raise

        with self._registry.lock:
            if self._pending.get(path) is pending:
                del self._pending[path]
            if not entity.alive:
                failure = NotFoundError(identifier, kind)
            else:
                failure = None
                self._handles[path] = handle
        if failure is not None:
            pending.future.set_exception(failure)
            raise failure

        print_and_log(f"[*] Bound {kind} handle for {path}", LOG__DEBUG)
        pending.future.set_result(handle)
        return handle

    def _fail(self, path: str, pending: _Pending, exc: BaseException) -> None:
        with self._registry.lock:
            if self._pending.get(path) is pending:
                del self._pending[path]
        print_and_log(f"[-] Binding {path} failed: {exc}", LOG__DEBUG)
        pending.future.set_exception(exc)
