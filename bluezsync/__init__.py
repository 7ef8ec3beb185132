"""
bluezsync - BlueZ object-graph synchronizer
"""

__version__ = "0.3.0"

# ---------------------------------------------------------------------------
# Initialise logging on *package import* so every code path (even when the
# CLI is not used) has its log files available.
# ---------------------------------------------------------------------------
import importlib as _importlib

_importlib.import_module("bluezsync.core.log")  # noqa: F401 - side-effect import


# The D-Bus backed manager needs dbus-python / PyGObject; load it on demand so
# the pure core stays importable without them.
def __getattr__(name):
    if name == "BluezObjectManager":
        from bluezsync.dbuslayer.manager import BluezObjectManager
        return BluezObjectManager
    if name == "ObjectGraphSynchronizer":
        from bluezsync.core.synchronizer import ObjectGraphSynchronizer
        return ObjectGraphSynchronizer
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = ["BluezObjectManager", "ObjectGraphSynchronizer", "__version__"]
