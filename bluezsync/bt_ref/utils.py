"""
Bluetooth utility functions.

Conversion helpers for values arriving from ``dbus-python``.  Every payload
handed to :mod:`bluezsync.core` goes through :func:`dbus_to_python` first so
the core never sees D-Bus wrapper types.
"""

import dbus

__all__ = [
    "dbus_to_python",
]


def dbus_to_python(data):
    if isinstance(data, dbus.String):
        data = str(data)
    if isinstance(data, dbus.ObjectPath):
        data = str(data)
    elif isinstance(data, dbus.Boolean):
        data = bool(data)
    elif isinstance(data, (dbus.Int64, dbus.Int32, dbus.Int16)):
        data = int(data)
    elif isinstance(data, (dbus.UInt64, dbus.UInt32, dbus.UInt16)):
        data = int(data)
    elif isinstance(data, dbus.Byte):
        data = int(data)
    elif isinstance(data, dbus.Double):
        data = float(data)
    elif isinstance(data, dbus.Array):
        data = [dbus_to_python(value) for value in data]
    elif isinstance(data, dbus.Struct):
        data = tuple(dbus_to_python(value) for value in data)
    elif isinstance(data, dbus.Dictionary):
        new_data = dict()
        for key in data.keys():
            new_data[dbus_to_python(key)] = dbus_to_python(data[key])
        data = new_data
    return data

