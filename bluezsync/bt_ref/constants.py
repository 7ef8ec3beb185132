"""
Core constants for bluezsync.

BlueZ bus names, object-path namespace, interface names and the integer
result codes carried by every :class:`bluezsync.core.errors.BluezSyncError`.
"""

# D-Bus Core Constants
DBUS_PROPERTIES = "org.freedesktop.DBus.Properties"
DBUS_OM_IFACE = "org.freedesktop.DBus.ObjectManager"

# BlueZ Core Constants
ADAPTER_NAME = "hci0"
BLUEZ_SERVICE_NAME = "org.bluez"
BLUEZ_NAMESPACE = "/org/bluez/"
BLUEZ_ROOT_PATH = "/"

# BlueZ Interface Constants
ADAPTER_INTERFACE = BLUEZ_SERVICE_NAME + ".Adapter1"
DEVICE_INTERFACE = BLUEZ_SERVICE_NAME + ".Device1"

# GATT Interface Constants
GATT_SERVICE_INTERFACE = BLUEZ_SERVICE_NAME + ".GattService1"
GATT_CHARACTERISTIC_INTERFACE = BLUEZ_SERVICE_NAME + ".GattCharacteristic1"
GATT_DESCRIPTOR_INTERFACE = BLUEZ_SERVICE_NAME + ".GattDescriptor1"

# Object path segment prefix
DEVICE_SEGMENT_PREFIX = "dev_"

# Property names that carry owner references in GATT property bags
GATT_SERVICE_OWNER_PROPERTY = "Device"
GATT_CHARACTERISTIC_OWNER_PROPERTY = "Service"
GATT_DESCRIPTOR_OWNER_PROPERTY = "Characteristic"

# D-Bus error names that mean "the remote object is gone"
DBUS_ERROR_UNKNOWN_OBJECT = "org.freedesktop.DBus.Error.UnknownObject"
DBUS_ERROR_UNKNOWN_METHOD = "org.freedesktop.DBus.Error.UnknownMethod"
DBUS_ERROR_UNKNOWN_INTERFACE = "org.freedesktop.DBus.Error.UnknownInterface"
DBUS_ERROR_INVALID_ARGS = "org.freedesktop.DBus.Error.InvalidArgs"
DBUS_ERROR_NO_REPLY = "org.freedesktop.DBus.Error.NoReply"
DBUS_ERROR_SERVICE_UNKNOWN = "org.freedesktop.DBus.Error.ServiceUnknown"
BLUEZ_ERROR_DOES_NOT_EXIST = "org.bluez.Error.DoesNotExist"

# Result/Error Codes
RESULT_OK = 0
RESULT_ERR = 1
RESULT_ERR_NOT_CONNECTED = 2
RESULT_ERR_NOT_SUPPORTED = 3
RESULT_ERR_SERVICES_NOT_RESOLVED = 4
RESULT_ERR_WRONG_STATE = 5
RESULT_ERR_ACCESS_DENIED = 6
RESULT_ERR_BAD_ARGS = 8
RESULT_ERR_NOT_FOUND = 9
RESULT_ERR_NO_REPLY = 14
RESULT_ERR_ACTION_IN_PROGRESS = 16
RESULT_ERR_UNKNOWN_SERVCE = 17
RESULT_ERR_UNKNOWN_OBJECT = 18
RESULT_ERR_METHOD_CALL_FAIL = 21
RESULT_ERR_PROTOCOL_VIOLATION = 27
RESULT_ERR_CONFIG = 28

# Base UUID Constants
BASE_UUID__BLUETOOTH = "00000000-0000-1000-8000-00805f9b34fb"

# Client Characteristic Configuration descriptor
CCCD_DESC_UUID = "00002902-0000-1000-8000-00805f9b34fb"
