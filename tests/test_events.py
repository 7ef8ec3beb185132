import pytest

from bluezsync.core import events as ev
from bluezsync.core.events import EventHub


def test_unknown_event_name_is_rejected():
    with pytest.raises(ValueError):
        EventHub().on("connected", lambda: None)


def test_delivery_in_registration_order():
    hub = EventHub()
    calls = []
    hub.on(ev.ENTITY_REMOVED, lambda path, cap: calls.append(("first", path)))
    hub.on(ev.ENTITY_REMOVED, lambda path, cap: calls.append(("second", path)))
    hub.emit(ev.ENTITY_REMOVED, "/org/bluez/hci0", None)
    assert calls == [("first", "/org/bluez/hci0"), ("second", "/org/bluez/hci0")]


def test_failing_callback_does_not_block_others():
    hub = EventHub()
    calls = []

    def broken(exc):
        raise RuntimeError("subscriber bug")

    hub.on(ev.SYNC_ERROR, broken)
    hub.on(ev.SYNC_ERROR, calls.append)
    hub.emit(ev.SYNC_ERROR, "boom")
    assert calls == ["boom"]


def test_off_and_clear():
    hub = EventHub()
    calls = []
    cb = hub.on(ev.DEVICE_OBSERVED, lambda address, props: calls.append(address))
    hub.off(ev.DEVICE_OBSERVED, cb)
    hub.off(ev.DEVICE_OBSERVED, cb)  # second removal is a no-op
    hub.emit(ev.DEVICE_OBSERVED, "AA:BB:CC:DD:EE:FF", {})
    assert calls == []

    hub.on(ev.DEVICE_OBSERVED, lambda address, props: calls.append(address))
    hub.clear()
    hub.emit(ev.DEVICE_OBSERVED, "AA:BB:CC:DD:EE:FF", {})
    assert calls == []


def test_callback_may_unsubscribe_itself_during_emit():
    hub = EventHub()
    calls = []

    def once(path, interface, changed):
        calls.append(path)
        hub.off(ev.PROPERTIES_CHANGED, once)

    hub.on(ev.PROPERTIES_CHANGED, once)
    hub.emit(ev.PROPERTIES_CHANGED, "/a", "x", {})
    hub.emit(ev.PROPERTIES_CHANGED, "/b", "x", {})
    assert calls == ["/a"]
