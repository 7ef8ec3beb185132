"""Handle for a BlueZ *Device1* object.

Structural queries (:meth:`Device.get_service`, :meth:`Device.services`) walk
the mirrored graph and never touch D-Bus; a service that BlueZ has not
announced yet simply isn't there.  Use
:func:`bluezsync.ble_ops.readiness.wait_services_resolved` to wait for
``ServicesResolved`` before looking services up.
"""

from __future__ import annotations

from typing import Callable, List, Optional

import dbus

from bluezsync.bt_ref.constants import DEVICE_INTERFACE
from bluezsync.core.log import LOG__GENERAL, get_logger, print_and_log
from bluezsync.dbuslayer.handle import EntityHandle
from bluezsync.dbuslayer.service import Service

__all__ = ["Device"]

logger = get_logger(__name__)


class Device(EntityHandle):
    interface = DEVICE_INTERFACE

    @property
    def address(self) -> str:
        with self._sync.registry.lock:
            return self.entity.address

    @property
    def name(self) -> Optional[str]:
        props = self.properties
        return props.get("Name") or props.get("Alias")

    # Live reads: the snapshot only moves while the main loop dispatches
    def is_connected(self) -> bool:
        return bool(self.get_property("Connected"))

    def is_services_resolved(self) -> bool:
        return bool(self.get_property("ServicesResolved"))

    def is_paired(self) -> bool:
        return bool(self.properties.get("Paired", False))

    def on_connected(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        """Call ``callback(connected)`` on every ``Connected`` change; returns the unsubscribe function."""
        return self.watch_property("Connected", lambda value: callback(bool(value)))

    def on_services_resolved(self, callback: Callable[[bool], None]) -> Callable[[], None]:
        return self.watch_property("ServicesResolved", lambda value: callback(bool(value)))

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------
    def connect(self) -> None:
        print_and_log(f"[*] Connecting to {self.address}", LOG__GENERAL)
        self._call("Connect")

    def disconnect(self) -> None:
        print_and_log(f"[*] Disconnecting from {self.address}", LOG__GENERAL)
        self._call("Disconnect")

    def pair(self) -> None:
        self._call("Pair")

    def cancel_pairing(self) -> None:
        self._call("CancelPairing")

    def set_trusted(self, trusted: bool = True) -> None:
        self._remote.set("Trusted", dbus.Boolean(trusted))
        logger.debug("Trusted=%s for %s", trusted, self.path)

    # ------------------------------------------------------------------
    # GATT traversal
    # ------------------------------------------------------------------
    def get_service(self, uuid: str) -> Optional[Service]:
        return self._child(Service, uuid)

    def services(self) -> List[str]:
        return self._child_uuids()
