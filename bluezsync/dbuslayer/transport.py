"""D-Bus transport for the synchronizer.

Thin adapter between ``dbus-python`` and :mod:`bluezsync.core`: signal
receivers for the ObjectManager / Properties signals, the one-shot
``GetManagedObjects`` enumeration, and bind-by-path.  Everything handed to the
core is converted with :func:`bluezsync.bt_ref.utils.dbus_to_python`.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import dbus
import dbus.exceptions
import dbus.mainloop.glib

from bluezsync.bt_ref.constants import (
    BLUEZ_ERROR_DOES_NOT_EXIST,
    BLUEZ_ROOT_PATH,
    BLUEZ_SERVICE_NAME,
    DBUS_ERROR_INVALID_ARGS,
    DBUS_ERROR_NO_REPLY,
    DBUS_ERROR_SERVICE_UNKNOWN,
    DBUS_ERROR_UNKNOWN_INTERFACE,
    DBUS_ERROR_UNKNOWN_METHOD,
    DBUS_ERROR_UNKNOWN_OBJECT,
    DBUS_OM_IFACE,
    DBUS_PROPERTIES,
    RESULT_ERR,
    RESULT_ERR_ACCESS_DENIED,
    RESULT_ERR_ACTION_IN_PROGRESS,
    RESULT_ERR_BAD_ARGS,
    RESULT_ERR_NO_REPLY,
    RESULT_ERR_NOT_CONNECTED,
    RESULT_ERR_NOT_SUPPORTED,
    RESULT_ERR_UNKNOWN_SERVCE,
    RESULT_ERR_WRONG_STATE,
)
from bluezsync.bt_ref.utils import dbus_to_python
from bluezsync.core.errors import NotBoundError, TransportFailureError
from bluezsync.core.log import LOG__DEBUG, print_and_log

__all__ = ["BluezTransport", "BoundObject", "map_dbus_error"]

# Errors meaning the object (or the interface on it) is gone
_GONE_ERRORS = {
    DBUS_ERROR_UNKNOWN_OBJECT,
    DBUS_ERROR_UNKNOWN_METHOD,
    DBUS_ERROR_UNKNOWN_INTERFACE,
    BLUEZ_ERROR_DOES_NOT_EXIST,
}

# Map remaining D-Bus error names to result codes
DBUS_ERROR_CODES: Dict[str, int] = {
    DBUS_ERROR_NO_REPLY: RESULT_ERR_NO_REPLY,
    DBUS_ERROR_SERVICE_UNKNOWN: RESULT_ERR_UNKNOWN_SERVCE,
    "org.bluez.Error.InProgress": RESULT_ERR_ACTION_IN_PROGRESS,
    "org.bluez.Error.NotConnected": RESULT_ERR_NOT_CONNECTED,
    "org.bluez.Error.NotSupported": RESULT_ERR_NOT_SUPPORTED,
    "org.bluez.Error.NotReady": RESULT_ERR_WRONG_STATE,
    "org.bluez.Error.NotAuthorized": RESULT_ERR_ACCESS_DENIED,
    "org.bluez.Error.NotPermitted": RESULT_ERR_ACCESS_DENIED,
    "org.bluez.Error.InvalidArguments": RESULT_ERR_BAD_ARGS,
}


def map_dbus_error(
    exc: dbus.exceptions.DBusException,
    path: str,
    interface: Optional[str] = None,
    operation: str = "call",
) -> TransportFailureError:
    """Return the bluezsync error for a D-Bus exception raised at *path*.

    ``InvalidArgs`` only means "gone" for ``bind`` (``GetAll`` on an
    interface the object no longer exposes); for method calls it is a
    regular failure.
    """
    name = exc.get_dbus_name() or ""
    if name in _GONE_ERRORS or (operation == "bind" and name == DBUS_ERROR_INVALID_ARGS):
        return NotBoundError(path, interface)
    message = exc.get_dbus_message() or str(exc)
    return TransportFailureError(f"{operation} on {path}", f"{name}: {message}", DBUS_ERROR_CODES.get(name, RESULT_ERR))


class BoundObject:
    """Capability binding for one interface at one object path."""

    def __init__(self, path: str, interface: str, iface: dbus.Interface, props: dbus.Interface):
        self.path = path
        self.interface = interface
        self.iface = iface
        self.props = props

    def call(self, method: str, *args, **kwargs):
        try:
            return getattr(self.iface, method)(*args, **kwargs)
        except dbus.exceptions.DBusException as e:
            raise map_dbus_error(e, self.path, self.interface, method)

    def get(self, name: str):
        try:
            return dbus_to_python(self.props.Get(self.interface, name))
        except dbus.exceptions.DBusException as e:
            raise map_dbus_error(e, self.path, self.interface, f"Get({name})")

    def set(self, name: str, value) -> None:
        try:
            self.props.Set(self.interface, name, value)
        except dbus.exceptions.DBusException as e:
            raise map_dbus_error(e, self.path, self.interface, f"Set({name})")

    def get_all(self) -> Dict[str, Any]:
        try:
            return dbus_to_python(self.props.GetAll(self.interface))
        except dbus.exceptions.DBusException as e:
            raise map_dbus_error(e, self.path, self.interface, "GetAll")

    def __repr__(self):  # pragma: no cover - debugging aid
        return f"<BoundObject {self.interface} @ {self.path}>"


class BluezTransport:
    """dbus-python transport bound to the ``org.bluez`` service."""

    def __init__(self, bus: Optional[dbus.Bus] = None, validate_bind: bool = True):
        if bus is None:
            dbus.mainloop.glib.DBusGMainLoop(set_as_default=True)
            bus = dbus.SystemBus()
        self.bus = bus
        self._validate_bind = validate_bind

    # ------------------------------------------------------------------
    # Enumeration
    # ------------------------------------------------------------------
    def get_managed_objects(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        try:
            manager = dbus.Interface(self.bus.get_object(BLUEZ_SERVICE_NAME, BLUEZ_ROOT_PATH), DBUS_OM_IFACE)
            return dbus_to_python(manager.GetManagedObjects())
        except dbus.exceptions.DBusException as e:
            raise map_dbus_error(e, BLUEZ_ROOT_PATH, DBUS_OM_IFACE, "GetManagedObjects")

    # ------------------------------------------------------------------
    # Signal feed
    # ------------------------------------------------------------------
    def subscribe(
        self,
        on_added: Callable[[str, Dict[str, Dict[str, Any]]], None],
        on_removed: Callable[[str, List[str]], None],
        on_changed: Callable[[str, str, Dict[str, Any], List[str]], None],
    ) -> List[Any]:
        """Attach receivers for InterfacesAdded/Removed and PropertiesChanged."""

        def _interfaces_added(object_path, interfaces):
            on_added(str(object_path), dbus_to_python(interfaces))

        def _interfaces_removed(object_path, interfaces):
            on_removed(str(object_path), [str(i) for i in interfaces])

        def _properties_changed(interface, changed, invalidated, path=None):
            if path is None:
                return
            on_changed(str(path), str(interface), dbus_to_python(changed), [str(i) for i in invalidated])

        print_and_log("[DEBUG] Transport attaching bus listeners", LOG__DEBUG)
        return [
            self.bus.add_signal_receiver(
                _interfaces_added,
                dbus_interface=DBUS_OM_IFACE,
                signal_name="InterfacesAdded",
                bus_name=BLUEZ_SERVICE_NAME,
            ),
            self.bus.add_signal_receiver(
                _interfaces_removed,
                dbus_interface=DBUS_OM_IFACE,
                signal_name="InterfacesRemoved",
                bus_name=BLUEZ_SERVICE_NAME,
            ),
            self.bus.add_signal_receiver(
                _properties_changed,
                dbus_interface=DBUS_PROPERTIES,
                signal_name="PropertiesChanged",
                bus_name=BLUEZ_SERVICE_NAME,
                path_keyword="path",
            ),
        ]

    def unsubscribe(self, matches: List[Any]) -> None:
        for m in matches:
            try:
                m.remove()
            except Exception as e:
                print_and_log(f"[-] Could not remove signal match: {e}", LOG__DEBUG)

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------
    def bind(self, path: str, interface: str) -> BoundObject:
        """Create proxies for *interface* at *path*.

        With ``validate_bind`` the object is probed with ``GetAll`` so a
        vanished object fails here (``NotBoundError``) instead of on first use.
        """
        try:
            obj = self.bus.get_object(BLUEZ_SERVICE_NAME, path)
            iface = dbus.Interface(obj, interface)
            props = dbus.Interface(obj, DBUS_PROPERTIES)
            if self._validate_bind:
                props.GetAll(interface)
        except dbus.exceptions.DBusException as e:
            raise map_dbus_error(e, path, interface, "bind")
        return BoundObject(path, interface, iface, props)
