import pytest

dbus = pytest.importorskip("dbus")
pytest.importorskip("gi.repository.GLib")

from bluezsync.bt_ref.constants import (  # noqa: E402
    DEVICE_INTERFACE,
    GATT_CHARACTERISTIC_INTERFACE,
    RESULT_ERR_NO_REPLY,
)
from bluezsync.bt_ref.utils import dbus_to_python  # noqa: E402
from bluezsync.core.errors import NotBoundError, NotFoundError, TransportFailureError  # noqa: E402
from bluezsync.core.synchronizer import ObjectGraphSynchronizer  # noqa: E402
from bluezsync.dbuslayer.adapter import Adapter  # noqa: E402
from bluezsync.dbuslayer.characteristic import Characteristic  # noqa: E402
from bluezsync.dbuslayer.device import Device  # noqa: E402
from bluezsync.dbuslayer.manager import bluez_handle_factory  # noqa: E402
from bluezsync.dbuslayer.service import Service  # noqa: E402
from bluezsync.dbuslayer.transport import map_dbus_error  # noqa: E402

from tests.fakes import (  # noqa: E402
    ADAPTER,
    ADDRESS,
    CHAR,
    CHR_UUID,
    DEVICE,
    DSC_UUID,
    SERVICE,
    SVC_UUID,
    FakeTransport,
    full_tree,
)


@pytest.fixture
def sync():
    transport = FakeTransport(managed=dict(full_tree()))
    synchronizer = ObjectGraphSynchronizer(transport, bluez_handle_factory)
    synchronizer.start()
    yield synchronizer
    synchronizer.close()


def _dbus_error(name, message="failed"):
    return dbus.exceptions.DBusException(message, name=name)


def test_gone_errors_map_to_not_bound():
    exc = map_dbus_error(_dbus_error("org.freedesktop.DBus.Error.UnknownObject"), DEVICE, DEVICE_INTERFACE)
    assert isinstance(exc, NotBoundError)
    assert exc.path == DEVICE

    invalid = _dbus_error("org.freedesktop.DBus.Error.InvalidArgs")
    assert isinstance(map_dbus_error(invalid, DEVICE, DEVICE_INTERFACE, "bind"), NotBoundError)
    assert not isinstance(map_dbus_error(invalid, DEVICE, DEVICE_INTERFACE, "Connect"), NotBoundError)


def test_other_errors_carry_result_codes():
    exc = map_dbus_error(_dbus_error("org.freedesktop.DBus.Error.NoReply", "timeout"), DEVICE, operation="Connect")
    assert isinstance(exc, TransportFailureError)
    assert exc.code == RESULT_ERR_NO_REPLY
    assert "timeout" in str(exc)


def test_dbus_to_python_unwraps_nested_values():
    raw = dbus.Dictionary(
        {
            dbus.String("UUIDs"): dbus.Array([dbus.String("180f")], signature="s"),
            dbus.String("RSSI"): dbus.Int16(-42),
            dbus.String("Paired"): dbus.Boolean(False),
            dbus.String("Device"): dbus.ObjectPath(DEVICE),
        },
        signature="sv",
    )
    assert dbus_to_python(raw) == {"UUIDs": ["180f"], "RSSI": -42, "Paired": False, "Device": DEVICE}


def test_factory_builds_typed_handles(sync):
    device = sync.get_device(ADDRESS)
    adapter = sync.get_adapter("hci0")
    assert isinstance(device, Device) and isinstance(adapter, Adapter)
    assert device.address == ADDRESS
    assert adapter.devices() == [ADDRESS]
    assert sync.transport.bind_calls == [(DEVICE, DEVICE_INTERFACE), (ADAPTER, "org.bluez.Adapter1")]


def test_traversal_walks_the_mirrored_graph(sync):
    device = sync.get_device(ADDRESS)
    service = device.get_service("180f")
    assert isinstance(service, Service)
    assert device.get_service("180f") is service
    assert device.services() == [SVC_UUID]
    assert device.get_service("1800") is None

    char = service.get_characteristic(CHR_UUID)
    assert isinstance(char, Characteristic)
    assert char.flags == ["read", "notify"]
    assert char.descriptors() == [DSC_UUID]
    assert char.get_descriptor("2902").path == CHAR + "/desc000d"


def test_calls_go_through_the_binding(sync):
    device = sync.get_device(ADDRESS)
    device.connect()
    char = device.get_service(SVC_UUID).get_characteristic(CHR_UUID)
    assert char.read_value() == b"d"
    char.write_value(b"\x01", without_response=True)

    assert device._bound.calls == [("Connect", ())]
    method, (payload, opts) = char._bound.calls[-1]
    assert method == "WriteValue"
    assert bytes(payload) == b"\x01"
    assert opts["type"] == "command"


def test_notifications_follow_property_changes(sync):
    device = sync.get_device(ADDRESS)
    char = device.get_service(SVC_UUID).get_characteristic(CHR_UUID)
    values = []
    char.start_notify(values.append)

    sync.transport.changed(CHAR, GATT_CHARACTERISTIC_INTERFACE, {"Value": [0x10, 0x20]})
    sync.transport.changed(SERVICE + "/char0010", GATT_CHARACTERISTIC_INTERFACE, {"Value": [0xFF]})
    char.stop_notify()
    sync.transport.changed(CHAR, GATT_CHARACTERISTIC_INTERFACE, {"Value": [0x30]})

    assert values == [b"\x10\x20"]
    assert [c[0] for c in char._bound.calls] == ["StartNotify", "StopNotify"]


def test_handles_fail_after_removal(sync):
    device = sync.get_device(ADDRESS)
    service = device.get_service(SVC_UUID)
    sync.transport.removed(SERVICE, ["org.bluez.GattService1"])
    sync.transport.removed(DEVICE, [DEVICE_INTERFACE])

    assert not device.alive
    with pytest.raises(NotBoundError):
        device.connect()
    with pytest.raises(NotBoundError):
        device.get_service(SVC_UUID)
    with pytest.raises(NotBoundError):
        service.get_characteristic(CHR_UUID)
    with pytest.raises(NotFoundError):
        sync.get_device(ADDRESS)


def test_watch_properties_filters_by_path(sync):
    device = sync.get_device(ADDRESS)
    seen = []
    stop = device.watch_properties(lambda interface, changed: seen.append(changed))
    sync.transport.changed(DEVICE, DEVICE_INTERFACE, {"Connected": True})
    sync.transport.changed(ADAPTER, "org.bluez.Adapter1", {"Discovering": True})
    stop()
    sync.transport.changed(DEVICE, DEVICE_INTERFACE, {"Connected": False})
    assert seen == [{"Connected": True}]
    assert device.properties["Connected"] is False


def test_connection_callbacks(sync):
    device = sync.get_device(ADDRESS)
    connected, resolved = [], []
    stop = device.on_connected(connected.append)
    device.on_services_resolved(resolved.append)

    sync.transport.changed(DEVICE, DEVICE_INTERFACE, {"Connected": True, "ServicesResolved": True})
    stop()
    sync.transport.changed(DEVICE, DEVICE_INTERFACE, {"Connected": False})

    assert connected == [True]
    assert resolved == [True]
