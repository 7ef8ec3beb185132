"""
D-Bus Layer for bluezsync
Transport, handle classes and the object manager for the BlueZ system service.
"""

import importlib as _importlib

# Exported names load on first access so the handle base class stays
# importable without dbus-python / PyGObject.
_EXPORTS = {
    "Adapter": "adapter",
    "BluezObjectManager": "manager",
    "BluezTransport": "transport",
    "Characteristic": "characteristic",
    "Descriptor": "descriptor",
    "Device": "device",
    "EntityHandle": "handle",
    "Service": "service",
}


def __getattr__(name):
    if name in _EXPORTS:
        module = _importlib.import_module(f"{__name__}.{_EXPORTS[name]}")
        return getattr(module, name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = sorted(_EXPORTS)
