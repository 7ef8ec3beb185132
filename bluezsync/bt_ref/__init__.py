"""
Bluetooth reference data and constants.

``utils`` depends on ``dbus-python`` and is therefore imported explicitly by
the D-Bus layer rather than re-exported here.
"""

from . import constants

__all__ = ["constants"]
