"""Handle for a BlueZ *GattCharacteristic1* object.

Notification values are not read from a private signal match: the
synchronizer already receives every ``PropertiesChanged`` from BlueZ and
refreshes the entity snapshot, so :meth:`Characteristic.start_notify` just
filters those events for this path's ``Value``.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import dbus

from bluezsync.bt_ref.constants import GATT_CHARACTERISTIC_INTERFACE
from bluezsync.core import events as ev
from bluezsync.core.errors import TransportFailureError
from bluezsync.core.log import LOG__DEBUG, print_and_log
from bluezsync.dbuslayer.descriptor import Descriptor
from bluezsync.dbuslayer.handle import EntityHandle

__all__ = ["Characteristic"]


class Characteristic(EntityHandle):
    """Read / write / notify on one characteristic."""

    interface = GATT_CHARACTERISTIC_INTERFACE

    def __init__(self, synchronizer, entity, bound=None):
        super().__init__(synchronizer, entity, bound)
        self._notify_cb: Optional[Callable[..., None]] = None

    @property
    def uuid(self) -> str:
        return self.entity.uuid

    @property
    def flags(self) -> List[str]:
        return list(self.properties.get("Flags", []))

    @property
    def notifying(self) -> bool:
        return bool(self.properties.get("Notifying", False))

    # ------------------------------------------------------------------
    # Read / Write
    # ------------------------------------------------------------------
    def read_value(self, offset: int = 0) -> bytes:
        opts: Dict[str, dbus.UInt16] = {}
        if offset:
            opts["offset"] = dbus.UInt16(offset)
        result = bytes(self._call("ReadValue", opts))
        print_and_log(f"[DEBUG] Read {len(result)} bytes from characteristic {self.uuid}", LOG__DEBUG)
        return result

    def write_value(self, value: bytes | bytearray | list[int], without_response: bool = False) -> None:
        array = dbus.ByteArray(bytes(value))
        opts: Dict[str, Any] = {}
        if without_response:
            opts["type"] = dbus.String("command")
        self._call("WriteValue", array, dbus.Dictionary(opts, signature="sv"))
        print_and_log(f"[DEBUG] Wrote {len(array)} bytes to characteristic {self.uuid}", LOG__DEBUG)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def start_notify(self, callback: Callable[[bytes], None]) -> None:
        """Enable notifications and call *callback(value: bytes)* per update."""
        self._ensure_alive()
        if self._notify_cb is None:
            self._sync.on(ev.PROPERTIES_CHANGED, self._value_changed)
        self._notify_cb = callback
        try:
            self._call("StartNotify")
        except TransportFailureError:
            self._drop_listener()
            raise
        print_and_log(f"[DEBUG] Notifications enabled for characteristic {self.uuid}", LOG__DEBUG)

    def stop_notify(self) -> None:
        self._drop_listener()
        try:
            self._call("StopNotify")
        except TransportFailureError as e:
            # Also raised when the object is already gone
            print_and_log(f"[DEBUG] StopNotify on {self.uuid} failed: {e}", LOG__DEBUG)
            return
        print_and_log(f"[DEBUG] Notifications disabled for characteristic {self.uuid}", LOG__DEBUG)

    def _drop_listener(self) -> None:
        if self._notify_cb is not None:
            self._sync.off(ev.PROPERTIES_CHANGED, self._value_changed)
            self._notify_cb = None

    def _value_changed(self, path: str, interface: str, changed: Dict[str, Any]) -> None:
        if path != self.path or interface != self.interface or "Value" not in changed:
            return
        cb = self._notify_cb
        if cb is not None:
            cb(bytes(changed["Value"]))

    # ------------------------------------------------------------------
    # Descriptors
    # ------------------------------------------------------------------
    def get_descriptor(self, uuid: str) -> Optional[Descriptor]:
        return self._child(Descriptor, uuid)

    def descriptors(self) -> List[str]:
        return self._child_uuids()
