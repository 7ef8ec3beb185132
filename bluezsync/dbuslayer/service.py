"""Handle for a BlueZ *GattService1* object."""

from __future__ import annotations

from typing import List, Optional

from bluezsync.bt_ref.constants import GATT_SERVICE_INTERFACE
from bluezsync.dbuslayer.characteristic import Characteristic
from bluezsync.dbuslayer.handle import EntityHandle

__all__ = ["Service"]


class Service(EntityHandle):
    interface = GATT_SERVICE_INTERFACE

    @property
    def uuid(self) -> str:
        return self.entity.uuid

    @property
    def primary(self) -> bool:
        return bool(self.properties.get("Primary", True))

    def get_characteristic(self, uuid: str) -> Optional[Characteristic]:
        """Return the characteristic handle for *uuid*, or ``None`` if not (yet) known."""
        return self._child(Characteristic, uuid)

    def characteristics(self) -> List[str]:
        return self._child_uuids()
