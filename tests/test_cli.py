from bluezsync.cli import format_tree, main, parse_args
from bluezsync.core.events import EventHub
from bluezsync.core.reconciler import NotificationReconciler
from bluezsync.core.registry import EntityRegistry

from tests.fakes import ADDRESS, CHR_UUID, DEVICE, SVC_UUID, full_tree


def test_parse_monitor_options():
    args = parse_args(["--config", "/tmp/x.yaml", "monitor", "--timeout", "2.5", "--discover"])
    assert args.mode == "monitor"
    assert args.timeout == 2.5
    assert args.discover and not args.properties
    assert args.config == "/tmp/x.yaml"


def test_main_without_mode_fails(capsys):
    assert main([]) == 2
    assert "choose a mode" in capsys.readouterr().err


def test_format_tree_lists_hierarchy_and_orphans():
    registry = EntityRegistry()
    reconciler = NotificationReconciler(registry, EventHub())
    for path, interfaces in full_tree():
        reconciler.interfaces_added(path, interfaces)
    registry.attach_service(
        "/org/bluez/hci0/dev_11_22_33_44_55_66/service0001",
        "/org/bluez/hci0/dev_11_22_33_44_55_66",
        "1800",
    )

    lines = format_tree(registry.snapshot()).splitlines()
    assert lines[0] == "[adapter] hci0"
    assert lines[1] == f"[device] {ADDRESS}  {DEVICE}"
    assert lines[2] == f"  [service] {SVC_UUID}"
    assert lines[3] == f"    [char] {CHR_UUID}"
    assert lines[4].startswith("      [desc] 00002902")
    assert lines[5] == "[orphans awaiting /org/bluez/hci0/dev_11_22_33_44_55_66] 1"
