"""Handle for a BlueZ *GattDescriptor1* object."""

from __future__ import annotations

from typing import Dict

import dbus

from bluezsync.bt_ref.constants import GATT_DESCRIPTOR_INTERFACE
from bluezsync.core.log import LOG__DEBUG, print_and_log
from bluezsync.dbuslayer.handle import EntityHandle

__all__ = ["Descriptor"]


class Descriptor(EntityHandle):
    interface = GATT_DESCRIPTOR_INTERFACE

    @property
    def uuid(self) -> str:
        return self.entity.uuid

    def read_value(self, offset: int = 0) -> bytes:
        opts: Dict[str, dbus.UInt16] = {}
        if offset:
            opts["offset"] = dbus.UInt16(offset)
        result = bytes(self._call("ReadValue", opts))
        print_and_log(f"[DEBUG] Read {len(result)} bytes from descriptor {self.uuid}", LOG__DEBUG)
        return result

    def write_value(self, value: bytes | bytearray | list[int]) -> None:
        array = dbus.ByteArray(bytes(value))
        self._call("WriteValue", array, dbus.Dictionary({}, signature="sv"))
        print_and_log(f"[DEBUG] Wrote {len(array)} bytes to descriptor {self.uuid}", LOG__DEBUG)
