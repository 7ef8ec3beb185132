"""
Command-line interface for bluezsync.
"""

import argparse
import json
import sys

# Ensure logging subsystem is initialised immediately
import bluezsync.core.log  # noqa: F401  # side-effect import creates log files

from . import __version__


def parse_args(args=None):
    parser = argparse.ArgumentParser(
        description="bluezsync - mirror of the BlueZ D-Bus object graph"
    )
    parser.add_argument("--version", action="version", version=f"bluezsync {__version__}")
    parser.add_argument("--config", help="YAML settings file (default: $BLUEZSYNC_CONFIG or the XDG config dir)")

    subparsers = parser.add_subparsers(dest="mode", help="Operation mode")

    # Monitor mode
    monitor_parser = subparsers.add_parser("monitor", help="Print devices and sync errors as they are observed")
    monitor_parser.add_argument("--timeout", type=float, default=10, help="Monitor duration (s)")
    monitor_parser.add_argument("--adapter", help="Adapter to run discovery on (e.g. hci0)")
    monitor_parser.add_argument("--discover", action="store_true", help="Start discovery on the adapter while monitoring")
    monitor_parser.add_argument("--properties", action="store_true", help="Also print property changes")

    # Tree mode
    tree_parser = subparsers.add_parser("tree", help="Enumerate once and print the adapter/device/GATT hierarchy")
    tree_parser.add_argument("--json", action="store_true", help="Print the hierarchy as JSON")

    return parser.parse_args(args)


def format_tree(snapshot):
    """Render a registry snapshot as an indented text tree."""
    lines = []
    for adapter_id in snapshot.get("adapters", []):
        lines.append(f"[adapter] {adapter_id}")
    for address, device in snapshot.get("devices", {}).items():
        lines.append(f"[device] {address}  {device['path']}")
        for svc_uuid, svc in device.get("children", {}).items():
            lines.append(f"  [service] {svc_uuid}")
            for chr_uuid, char in svc.get("children", {}).items():
                lines.append(f"    [char] {chr_uuid}")
                for desc_uuid in char.get("children", {}):
                    lines.append(f"      [desc] {desc_uuid}")
    for owner, held in snapshot.get("orphans", {}).items():
        lines.append(f"[orphans awaiting {owner}] {len(held)}")
        for path in held:
            lines.append(f"  {path}")
    return "\n".join(lines)


def _monitor(manager, args):
    def _device(address, props):
        name = props.get("Name") or props.get("Alias") or ""
        rssi = props.get("RSSI")
        suffix = f" RSSI={rssi}" if rssi is not None else ""
        print(f"[+] Device {address} {name}{suffix}")

    def _removed(path, capability):
        print(f"[-] Removed {capability.label} {path}")

    def _error(exc):
        print(f"[!] Sync error: {exc}", file=sys.stderr)

    def _changed(path, interface, changed):
        print(f"[~] {path} {interface.rsplit('.', 1)[-1]}: {changed}")

    manager.on("device", _device)
    manager.on("removed", _removed)
    manager.on("error", _error)
    if args.properties:
        manager.on("properties", _changed)

    manager.start()
    adapter = None
    if args.discover:
        adapter = manager.get_adapter(args.adapter) if args.adapter else manager.get_default_adapter()
        adapter.start_discovery()
        print(f"[*] Discovering on {adapter.adapter_id}")
    try:
        manager.run(timeout=args.timeout)
    finally:
        if adapter is not None and adapter.alive:
            adapter.stop_discovery()
    return 0


def _tree(manager, args):
    manager.start()
    snapshot = manager.registry.snapshot()
    if args.json:
        print(json.dumps(snapshot, indent=2))
    else:
        print(format_tree(snapshot))
    return 0


def main(args=None):
    """Main entry point for bluezsync."""
    args = parse_args(args)
    if args.mode is None:
        print("Error: choose a mode (monitor, tree); see --help", file=sys.stderr)
        return 2

    try:
        from bluezsync.core.config import load_settings
        from bluezsync.dbuslayer.manager import BluezObjectManager

        settings = load_settings(args.config)
        manager = BluezObjectManager(settings=settings)
        try:
            if args.mode == "monitor":
                return _monitor(manager, args)
            return _tree(manager, args)
        finally:
            manager.close()

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
