"""High-level helpers built on the synchronizer's handles."""

from bluezsync.ble_ops.readiness import (
    wait_for_service,
    wait_services_resolved,
    wait_until,
)

__all__ = [
    "wait_for_service",
    "wait_services_resolved",
    "wait_until",
]
