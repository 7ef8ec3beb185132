"""BlueZ object-path parsing and identifier normalisation.

BlueZ encodes ancestry in its object paths::

    /org/bluez/hci0
    /org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF
    /org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF/service000a
    /org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF/service000a/char000b
    /org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF/service000a/char000b/desc000d

Everything here is pure; nothing touches D-Bus.  The reconciler classifies
paths with :func:`parse_path`; ``address_to_segment``, ``segment_to_address``
and ``device_path`` build and read the ``dev_XX_...`` form for callers.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional

from bluezsync.bt_ref.constants import (
    BASE_UUID__BLUETOOTH,
    BLUEZ_NAMESPACE,
    DEVICE_SEGMENT_PREFIX,
)

__all__ = [
    "PathSegments",
    "parse_path",
    "parent_path",
    "is_descendant",
    "normalize_address",
    "address_to_segment",
    "segment_to_address",
    "adapter_id_from_path",
    "device_address_from_path",
    "adapter_path",
    "device_path",
    "normalize_adapter_id",
    "normalize_uuid",
]

_ADDRESS_RX = re.compile(r"^[0-9A-Fa-f]{2}(?:[:_\-][0-9A-Fa-f]{2}){5}$")
_ADAPTER_PATH_RX = re.compile(rf"^{BLUEZ_NAMESPACE}(\w+)$")
_DEVICE_PATH_RX = re.compile(
    rf"^{BLUEZ_NAMESPACE}(\w+)/{DEVICE_SEGMENT_PREFIX}([0-9A-Fa-f]{{2}}(?:_[0-9A-Fa-f]{{2}}){{5}})$"
)

_BASE_UUID_TAIL = BASE_UUID__BLUETOOTH.lower()[8:]


class PathSegments(NamedTuple):
    """Ordered identifiers extracted from an object path; missing ones are ``""``."""

    adapter: str = ""
    device: str = ""
    service: str = ""
    characteristic: str = ""
    descriptor: str = ""

    @property
    def depth(self) -> int:
        return sum(1 for segment in self if segment)


def parse_path(path: str) -> PathSegments:
    """Split *path* into adapter/device/service/characteristic(/descriptor) segments.

    Total: paths outside the BlueZ namespace, or with fewer segments, simply
    produce empty trailing identifiers.  Parsing stops at the first empty
    segment, so ``/org/bluez/hci0/`` yields adapter ``hci0``.
    """
    if not isinstance(path, str) or not path.startswith(BLUEZ_NAMESPACE):
        return PathSegments()
    parts = path[len(BLUEZ_NAMESPACE):].split("/")
    if "" in parts:
        parts = parts[:parts.index("")]
    return PathSegments(*parts[:5])


def parent_path(path: str) -> str:
    """Return *path* with its last segment removed (``"/"`` for top-level)."""
    head, _, _ = path.rstrip("/").rpartition("/")
    return head or "/"


def is_descendant(path: str, ancestor: str) -> bool:
    """True when *path* lies strictly below *ancestor* by whole path segments."""
    if not ancestor or path == ancestor:
        return False
    prefix = ancestor if ancestor.endswith("/") else ancestor + "/"
    return path.startswith(prefix)


def normalize_address(text: str) -> Optional[str]:
    """Return the canonical ``AA:BB:CC:DD:EE:FF`` form of *text* or ``None``.

    Accepts colon, underscore or dash delimiters, a ``dev_`` path segment, or
    a full device object path.
    """
    if not isinstance(text, str):
        return None
    text = text.strip()
    match = _DEVICE_PATH_RX.match(text)
    if match:
        text = match.group(2)
    elif text.startswith(DEVICE_SEGMENT_PREFIX):
        text = text[len(DEVICE_SEGMENT_PREFIX):]
    if not _ADDRESS_RX.match(text):
        return None
    return re.sub(r"[_\-]", ":", text).upper()


def address_to_segment(address: str) -> str:
    """``AA:BB:CC:DD:EE:FF`` -> ``dev_AA_BB_CC_DD_EE_FF``."""
    canonical = normalize_address(address)
    if canonical is None:
        raise ValueError(f"not a Bluetooth address: {address!r}")
    return DEVICE_SEGMENT_PREFIX + canonical.replace(":", "_")


def segment_to_address(segment: str) -> Optional[str]:
    """``dev_AA_BB_CC_DD_EE_FF`` -> ``AA:BB:CC:DD:EE:FF`` (``None`` if malformed)."""
    if not isinstance(segment, str) or not segment.startswith(DEVICE_SEGMENT_PREFIX):
        return None
    return normalize_address(segment)


def adapter_id_from_path(path: str) -> Optional[str]:
    match = _ADAPTER_PATH_RX.match(path or "")
    return match.group(1) if match else None


def device_address_from_path(path: str) -> Optional[str]:
    match = _DEVICE_PATH_RX.match(path or "")
    if not match:
        return None
    return match.group(2).replace("_", ":").upper()


def adapter_path(adapter_id: str) -> str:
    return f"{BLUEZ_NAMESPACE}{adapter_id}"


def device_path(adapter_id: str, address: str) -> str:
    return f"{adapter_path(adapter_id)}/{address_to_segment(address)}"


def normalize_adapter_id(identifier: str) -> Optional[str]:
    """``hci0`` or ``/org/bluez/hci0`` -> ``hci0``; ``None`` for anything else."""
    if not isinstance(identifier, str):
        return None
    identifier = identifier.strip()
    if identifier.startswith("/"):
        return adapter_id_from_path(identifier)
    return identifier if re.fullmatch(r"\w+", identifier) else None


def normalize_uuid(uuid: str) -> str:
    """Lower-case 128-bit UUID; 16/32-bit short forms expand on the SIG base UUID."""
    target = str(uuid).strip().lower()
    if target.startswith("0x"):
        target = target[2:]
    bare = target.replace("-", "")
    if len(bare) == 4:
        bare = "0000" + bare + _BASE_UUID_TAIL.replace("-", "")
    elif len(bare) == 8:
        bare = bare + _BASE_UUID_TAIL.replace("-", "")
    if len(bare) != 32:
        return target
    return f"{bare[:8]}-{bare[8:12]}-{bare[12:16]}-{bare[16:20]}-{bare[20:]}"
