import itertools

from bluezsync.bt_ref.constants import DEVICE_INTERFACE, GATT_SERVICE_INTERFACE
from bluezsync.core import events as ev
from bluezsync.core.errors import ProtocolViolationError
from bluezsync.core.events import EventHub
from bluezsync.core.reconciler import NotificationReconciler
from bluezsync.core.registry import Capability, EntityRegistry

from tests.fakes import (
    ADAPTER,
    ADDRESS,
    CHAR,
    CHR_UUID,
    DESC,
    DEVICE,
    DSC_UUID,
    SERVICE,
    SVC_UUID,
    adapter_ifaces,
    char_ifaces,
    desc_ifaces,
    device_ifaces,
    full_tree,
    service_ifaces,
)

HCI1 = "/org/bluez/hci1"
HCI1_DEVICE = HCI1 + "/dev_AA_BB_CC_DD_EE_FF"


def _apply(reconciler, notifications):
    for path, interfaces in notifications:
        reconciler.interfaces_added(path, interfaces)


def test_replay_builds_hierarchy(reconciler, registry, recorder):
    reconciler.replay(dict(reversed(full_tree())))
    device = registry.lookup_by_address(ADDRESS)
    char = device.services[SVC_UUID].characteristics[CHR_UUID]
    assert char.descriptors[DSC_UUID].path == DESC
    assert recorder.named(ev.DEVICE_OBSERVED) == [(ADDRESS, device_ifaces()[DEVICE_INTERFACE])]
    assert recorder.errors == []


def test_repeated_add_is_idempotent(reconciler, registry, recorder):
    _apply(reconciler, full_tree())
    before = registry.snapshot()
    device = registry.lookup_by_address(ADDRESS)

    _apply(reconciler, full_tree())
    reconciler.interfaces_added(DEVICE, device_ifaces(Connected=True))

    assert registry.snapshot() == before
    assert registry.lookup_by_address(ADDRESS) is device
    assert device.properties["Connected"] is True
    assert len(device.services) == 1
    assert len(recorder.named(ev.DEVICE_OBSERVED)) == 1
    assert recorder.errors == []


def test_every_ordering_converges():
    reference = EntityRegistry()
    _apply(NotificationReconciler(reference, EventHub()), full_tree())
    expected = reference.snapshot()

    for order in itertools.permutations(full_tree()):
        registry = EntityRegistry()
        _apply(NotificationReconciler(registry, EventHub()), order)
        assert registry.snapshot() == expected, [path for path, _ in order]
        desc = registry.lookup_by_path(DESC)
        assert desc.characteristic.service.device is registry.lookup_by_address(ADDRESS)


def test_characteristic_before_service_is_not_lost(reconciler, registry):
    reconciler.interfaces_added(CHAR, char_ifaces())
    assert registry.orphan_count() == 1
    reconciler.interfaces_added(SERVICE, service_ifaces())
    service = registry.lookup_by_path(SERVICE)
    assert service.characteristics[CHR_UUID].path == CHAR
    assert registry.orphans_for(SERVICE) == []
    # the service itself still waits for its device
    assert registry.orphans_for(DEVICE) == [service]


def test_device_lifecycle_scenario(reconciler, registry, recorder):
    reconciler.interfaces_added(ADAPTER, adapter_ifaces())
    reconciler.interfaces_added(DEVICE, device_ifaces(Connected=False))
    assert registry.lookup_by_address(ADDRESS).path == DEVICE
    assert registry.lookup_by_address("11:22:33:44:55:66") is None

    reconciler.interfaces_removed(DEVICE, [DEVICE_INTERFACE])
    assert registry.lookup_by_address(ADDRESS) is None
    assert recorder.named(ev.ENTITY_REMOVED) == [(DEVICE, Capability.DEVICE)]


def test_service_before_device_then_characteristic_scenario(reconciler, registry, recorder):
    reconciler.interfaces_added(SERVICE, service_ifaces())
    reconciler.interfaces_added(DEVICE, device_ifaces())
    reconciler.interfaces_added(CHAR, char_ifaces())

    device = registry.lookup_by_address(ADDRESS)
    assert SVC_UUID in device.services
    assert CHR_UUID in device.services[SVC_UUID].characteristics
    assert recorder.errors == []


def test_bottom_up_removal(reconciler, registry, recorder):
    _apply(reconciler, full_tree())
    for path, interfaces in reversed(full_tree()[1:]):
        reconciler.interfaces_removed(path, list(interfaces))
    assert len(registry) == 1  # the adapter
    assert registry.orphan_count() == 0
    assert [args[0] for args in recorder.named(ev.ENTITY_REMOVED)] == [DESC, CHAR, SERVICE, DEVICE]
    assert recorder.errors == []


def test_top_down_removal_leaves_nothing_behind(reconciler, registry, recorder):
    _apply(reconciler, full_tree())
    service = registry.lookup_by_path(SERVICE)
    for path, interfaces in full_tree()[1:]:
        reconciler.interfaces_removed(path, list(interfaces))
    assert not service.alive
    assert len(registry) == 1
    assert registry.orphan_count() == 0
    assert recorder.errors == []


def test_address_reannounced_at_new_path(reconciler, registry, recorder):
    _apply(reconciler, full_tree())
    old = registry.lookup_by_path(DEVICE)
    reconciler.interfaces_added(HCI1, adapter_ifaces())
    reconciler.interfaces_added(HCI1_DEVICE, device_ifaces())

    assert registry.lookup_by_address(ADDRESS).path == HCI1_DEVICE
    assert registry.lookup_by_path(DEVICE) is None
    assert not old.alive
    assert len(recorder.named(ev.DEVICE_OBSERVED)) == 2
    assert recorder.named(ev.ENTITY_REMOVED) == [(DEVICE, Capability.DEVICE)]

    reconciler.interfaces_removed(DEVICE, [DEVICE_INTERFACE])
    assert registry.lookup_by_address(ADDRESS).path == HCI1_DEVICE
    assert len(recorder.named(ev.ENTITY_REMOVED)) == 1
    assert recorder.errors == []


def test_trailing_slash_paths_are_rejected(reconciler, registry, recorder):
    reconciler.interfaces_added("/org/bluez/hci0/", adapter_ifaces())
    reconciler.interfaces_removed(DEVICE + "/", [DEVICE_INTERFACE])
    assert len(registry) == 0
    assert len(recorder.errors) == 2


def test_unknown_removals_are_reported(reconciler, registry, recorder):
    reconciler.interfaces_removed("/org/bluez/hci0/dev_11_22_33_44_55_66", [DEVICE_INTERFACE])
    reconciler.interfaces_removed("/org/bluez/hci0/not_a_device", [DEVICE_INTERFACE])
    reconciler.interfaces_removed("/org/bluez/hci0/x/y", ["org.bluez.Adapter1"])
    reconciler.interfaces_removed(DEVICE, ["org.bluez.MediaControl1"])

    messages = [str(e) for e in recorder.errors]
    assert len(messages) == 3
    assert "Removal of unknown device" in messages[0]
    assert "Removed Device with unknown path" in messages[1]
    assert "Removed Adapter with unknown path" in messages[2]
    assert all(isinstance(e, ProtocolViolationError) for e in recorder.errors)


def test_malformed_additions_are_reported_not_raised(reconciler, registry, recorder):
    reconciler.interfaces_added(DEVICE, {GATT_SERVICE_INTERFACE: {"Device": ADAPTER}})
    reconciler.interfaces_added(SERVICE + "/char0001", {"org.bluez.Adapter1": {}})
    reconciler.interfaces_added(DEVICE, {DEVICE_INTERFACE: {"Address": "zz"}})

    assert len(recorder.errors) == 3
    assert all(e.path for e in recorder.errors)
    assert len(registry) == 0


def test_owner_outside_path_falls_back_to_parent(reconciler, registry, recorder):
    _apply(reconciler, full_tree()[:2])
    bogus = service_ifaces(device="/org/bluez/hci0/dev_11_22_33_44_55_66")
    reconciler.interfaces_added(SERVICE, bogus)

    assert len(recorder.errors) == 1
    assert registry.lookup_by_address(ADDRESS).services[SVC_UUID].path == SERVICE


def test_properties_changed_refreshes_snapshot(reconciler, registry, recorder):
    _apply(reconciler, full_tree())
    reconciler.properties_changed(DEVICE, DEVICE_INTERFACE, {"Connected": True, "RSSI": -40}, ["Name"])
    reconciler.properties_changed(DEVICE, "org.bluez.Battery1", {"Percentage": 50})
    reconciler.properties_changed("/org/bluez/hci0/dev_11_22_33_44_55_66", DEVICE_INTERFACE, {"RSSI": -70})

    device = registry.lookup_by_address(ADDRESS)
    assert device.properties["Connected"] is True
    assert "Name" not in device.properties
    assert recorder.named(ev.PROPERTIES_CHANGED) == [(DEVICE, DEVICE_INTERFACE, {"Connected": True, "RSSI": -40})]
    assert recorder.errors == []


def test_reentrant_notification_from_callback_is_queued(reconciler, registry, hub):
    seen = []

    def _on_device(address, props):
        reconciler.interfaces_added(SERVICE, service_ifaces())
        # queued behind the current notification
        seen.append(registry.lookup_by_path(SERVICE))

    hub.on(ev.DEVICE_OBSERVED, _on_device)
    reconciler.interfaces_added(DEVICE, device_ifaces())

    assert seen == [None]
    assert SVC_UUID in registry.lookup_by_address(ADDRESS).services


def test_failing_subscriber_does_not_stop_reconciliation(reconciler, registry, hub, recorder):
    hub.on(ev.DEVICE_OBSERVED, lambda address, props: 1 / 0)
    reconciler.interfaces_added(DEVICE, device_ifaces())
    reconciler.interfaces_added(SERVICE, service_ifaces())
    assert len(recorder.named(ev.DEVICE_OBSERVED)) == 1
    assert SVC_UUID in registry.lookup_by_address(ADDRESS).services
