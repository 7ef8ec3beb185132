"""Core error classes for bluezsync.

The taxonomy follows the synchronizer's propagation policy: structural
problems (:class:`ProtocolViolationError`) are reported as events and never
raised out of the reconciler, while resolution problems
(:class:`NotFoundError`, :class:`TransportFailureError`,
:class:`NotBoundError`) are raised to the caller that asked.
"""

from __future__ import annotations

from typing import Optional

from bluezsync.bt_ref.constants import (
    RESULT_ERR,
    RESULT_ERR_CONFIG,
    RESULT_ERR_METHOD_CALL_FAIL,
    RESULT_ERR_NO_REPLY,
    RESULT_ERR_NOT_FOUND,
    RESULT_ERR_PROTOCOL_VIOLATION,
    RESULT_ERR_SERVICES_NOT_RESOLVED,
    RESULT_ERR_UNKNOWN_OBJECT,
)


class BluezSyncError(Exception):
    """Base exception for the package.

    The ``.code`` attribute maps to ``bt_ref.constants`` RESULT_* values.
    """

    def __init__(self, message: str, code: int = RESULT_ERR):
        super().__init__(message)
        self.code = code


class NotFoundError(BluezSyncError):
    """No live entity is registered for the identifier at call time."""

    def __init__(self, identifier: str, kind: str = "object"):
        super().__init__(f"{kind.capitalize()} {identifier} not found", RESULT_ERR_NOT_FOUND)
        self.identifier = identifier
        self.kind = kind


class ProtocolViolationError(BluezSyncError):
    """A notification cannot be reconciled against the current state."""

    def __init__(self, message: str, path: Optional[str] = None, capability: Optional[str] = None):
        super().__init__(message, RESULT_ERR_PROTOCOL_VIOLATION)
        self.path = path
        self.capability = capability


class TransportFailureError(BluezSyncError):
    """Binding or calling through the D-Bus transport failed."""

    def __init__(self, operation: str, reason: Optional[str] = None, code: int = RESULT_ERR_METHOD_CALL_FAIL):
        msg = f"Transport failure during {operation}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, code)
        self.operation = operation
        self.reason = reason


class NotBoundError(TransportFailureError):
    """The remote object behind a path no longer exists (or never did)."""

    def __init__(self, path: str, interface: Optional[str] = None):
        target = f"{path} ({interface})" if interface else path
        super().__init__("bind", f"no remote object at {target}", RESULT_ERR_UNKNOWN_OBJECT)
        self.path = path
        self.interface = interface


class TimeoutError(BluezSyncError):
    """Raised by caller-side polling helpers when the bound is exhausted."""

    def __init__(self, operation: str):
        super().__init__(f"Operation timed out: {operation}", RESULT_ERR_NO_REPLY)
        self.operation = operation


class ServicesNotResolvedError(TimeoutError):
    """Raised when services have not been resolved for a device."""

    def __init__(self, device_address: str):
        BluezSyncError.__init__(
            self,
            f"Services not resolved for device {device_address}",
            RESULT_ERR_SERVICES_NOT_RESOLVED,
        )
        self.operation = "services resolution"
        self.device_address = device_address


class ConfigError(BluezSyncError):
    """Raised when the settings file cannot be used."""

    def __init__(self, message: str):
        super().__init__(f"Invalid configuration: {message}", RESULT_ERR_CONFIG)


__all__ = [
    "BluezSyncError",
    "NotFoundError",
    "ProtocolViolationError",
    "TransportFailureError",
    "NotBoundError",
    "TimeoutError",
    "ServicesNotResolvedError",
    "ConfigError",
]
