"""
Adapter D-Bus Interface
Handle for a BlueZ *Adapter1* object.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List

import dbus

from bluezsync.bt_ref.constants import ADAPTER_INTERFACE
from bluezsync.core.errors import NotFoundError, TransportFailureError
from bluezsync.core.log import get_logger
from bluezsync.core.paths import is_descendant, normalize_address
from bluezsync.dbuslayer.handle import EntityHandle

__all__ = ["Adapter"]

logger = get_logger(__name__)


class Adapter(EntityHandle):
    """Discovery and power control for one controller."""

    interface = ADAPTER_INTERFACE

    @property
    def adapter_id(self) -> str:
        return self.entity.adapter_id

    @property
    def address(self) -> str:
        return self.properties.get("Address", "")

    def is_powered(self) -> bool:
        return bool(self.properties.get("Powered", False))

    def is_discovering(self) -> bool:
        return bool(self.properties.get("Discovering", False))

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def set_discovery_filter(self, discovery_filter: Dict[str, Any]) -> None:
        self._call("SetDiscoveryFilter", dbus.Dictionary(discovery_filter, signature="sv"))

    def start_discovery(self) -> None:
        self._call("StartDiscovery")
        logger.debug("Discovery started on %s", self.adapter_id)

    def stop_discovery(self) -> None:
        try:
            self._call("StopDiscovery")
        except TransportFailureError as e:
            # BlueZ answers NotReady / Failed when no discovery is running
            logger.debug("StopDiscovery on %s: %s", self.adapter_id, e)

    # ------------------------------------------------------------------
    # Power
    # ------------------------------------------------------------------
    def set_powered(self, powered: bool) -> None:
        self._remote.set("Powered", dbus.Boolean(powered))

    def power_cycle(self, off_delay: float = 0.5) -> None:
        """Toggle *Powered* OFF then ON to reset the controller."""
        self.set_powered(False)
        time.sleep(off_delay)
        self.set_powered(True)
        logger.debug("Adapter %s power-cycled", self.adapter_id)

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------
    def devices(self) -> List[str]:
        """Addresses of the live devices known under this adapter."""
        self._ensure_alive()
        with self._sync.registry.lock:
            return [
                d.address
                for d in self._sync.registry.devices()
                if is_descendant(d.path, self.path)
            ]

    def remove_device(self, address: str) -> None:
        """Ask BlueZ to forget *address*; the registry updates on InterfacesRemoved."""
        self._ensure_alive()
        entity = self._sync.registry.lookup_by_address(normalize_address(address))
        if entity is None or not is_descendant(entity.path, self.path):
            raise NotFoundError(address, "device")
        self._call("RemoveDevice", dbus.ObjectPath(entity.path))
