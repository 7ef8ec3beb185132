"""BlueZ object manager.

:class:`BluezObjectManager` is the synchronizer wired to the system bus: the
:class:`~bluezsync.dbuslayer.transport.BluezTransport`, the handle classes
for adapters and devices, and a GLib main loop that delivers the signals.

Typical use::

    with BluezObjectManager() as manager:
        manager.on("device", lambda address, props: print(address))
        manager.run(timeout=10)
"""

from __future__ import annotations

from typing import Dict, Optional, Type

import dbus
from gi.repository import GLib

from bluezsync.ble_ops import readiness
from bluezsync.core.config import Settings, load_settings
from bluezsync.core.log import LOG__DEBUG, LOG__GENERAL, print_and_log, set_level
from bluezsync.core.registry import Capability, Entity
from bluezsync.core.synchronizer import ObjectGraphSynchronizer
from bluezsync.dbuslayer.adapter import Adapter
from bluezsync.dbuslayer.device import Device
from bluezsync.dbuslayer.handle import EntityHandle
from bluezsync.dbuslayer.transport import BluezTransport

__all__ = ["BluezObjectManager", "bluez_handle_factory"]

HANDLE_CLASSES: Dict[Capability, Type[EntityHandle]] = {
    Capability.ADAPTER: Adapter,
    Capability.DEVICE: Device,
}


def bluez_handle_factory(synchronizer: ObjectGraphSynchronizer, entity: Entity) -> EntityHandle:
    """Bind *entity* on the bus and wrap it in its handle class (blocking)."""
    handle_cls = HANDLE_CLASSES[entity.capability]
    bound = synchronizer.transport.bind(entity.path, handle_cls.interface)
    return handle_cls(synchronizer, entity, bound)


class BluezObjectManager(ObjectGraphSynchronizer):
    """Synchronizer for the ``org.bluez`` service on the system bus."""

    def __init__(self, bus: Optional[dbus.Bus] = None, settings: Optional[Settings] = None):
        self.settings = settings if settings is not None else load_settings()
        set_level(self.settings.log_level)
        super().__init__(
            BluezTransport(bus, validate_bind=self.settings.validate_bind),
            bluez_handle_factory,
        )
        self._mainloop: Optional[GLib.MainLoop] = None
        self._timer_id: Optional[int] = None

    def get_default_adapter(self) -> Adapter:
        return self.get_adapter(self.settings.adapter)

    def wait_services_resolved(self, device: Device) -> None:
        """Block until *device* resolves its services, polling per :attr:`settings`."""
        readiness.wait_services_resolved(device, settings=self.settings)

    def wait_for_service(self, device: Device, uuid: str):
        return readiness.wait_for_service(device, uuid, settings=self.settings)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------
    def run(self, timeout: Optional[float] = None) -> None:
        """Start (if needed) and dispatch bus signals until :meth:`quit` or *timeout* seconds."""
        self.start()
        self._mainloop = GLib.MainLoop()
        if timeout is not None:
            self._timer_id = GLib.timeout_add(int(timeout * 1000), self._run_timeout)
        print_and_log("[DEBUG] Entering GLib main loop", LOG__DEBUG)
        try:
            self._mainloop.run()
        except KeyboardInterrupt:
            print_and_log("[*] Interrupted", LOG__GENERAL)
        finally:
            if self._timer_id is not None:
                GLib.source_remove(self._timer_id)
                self._timer_id = None
            self._mainloop = None

    def quit(self) -> None:
        if self._mainloop is not None:
            self._mainloop.quit()

    def _run_timeout(self) -> bool:
        self._timer_id = None
        self.quit()
        return False
