"""Caller-side readiness helpers.

The synchronizer never waits for BlueZ on its own: a device handle is
returned as soon as the device is known, and its GATT services show up as
BlueZ announces them.  Code that needs the services first waits here.

Attempts and delay come from the explicit arguments, then from *settings*
(``readiness_attempts`` / ``readiness_delay``), then from the module
defaults.
"""

from __future__ import annotations

import time as _time
from typing import Any, Callable, Optional, Tuple

from bluezsync.core.config import READINESS_ATTEMPTS, READINESS_DELAY_S, Settings
from bluezsync.core.errors import ServicesNotResolvedError, TimeoutError
from bluezsync.core.log import LOG__DEBUG, print_and_log

__all__ = ["wait_until", "wait_services_resolved", "wait_for_service"]


def _limits(attempts: Optional[int], delay: Optional[float], settings: Optional[Settings]) -> Tuple[int, float]:
    if attempts is None:
        attempts = settings.readiness_attempts if settings is not None else READINESS_ATTEMPTS
    if delay is None:
        delay = settings.readiness_delay if settings is not None else READINESS_DELAY_S
    return attempts, delay


def wait_until(
    predicate: Callable[[], Any],
    attempts: int = READINESS_ATTEMPTS,
    delay: float = READINESS_DELAY_S,
    operation: str = "condition",
    sleep: Callable[[float], None] = _time.sleep,
):
    """Poll *predicate* up to *attempts* times, *delay* seconds apart.

    Returns the first truthy result, raises :class:`TimeoutError` otherwise.
    ``NotBoundError`` from the predicate propagates: the object is gone and
    waiting longer cannot help.
    """
    for attempt in range(max(1, attempts)):
        result = predicate()
        if result:
            return result
        if attempt + 1 < attempts:
            sleep(delay)
    print_and_log(f"[DEBUG] Gave up waiting for {operation} after {attempts} attempts", LOG__DEBUG)
    raise TimeoutError(operation)


def wait_services_resolved(
    device,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    sleep: Callable[[float], None] = _time.sleep,
    settings: Optional[Settings] = None,
) -> None:
    """Block until *device* reports ``ServicesResolved``.

    Raises :class:`ServicesNotResolvedError` after *attempts* polls.
    """
    attempts, delay = _limits(attempts, delay, settings)
    try:
        wait_until(device.is_services_resolved, attempts, delay, "ServicesResolved", sleep)
    except TimeoutError as e:
        raise ServicesNotResolvedError(device.address) from e


def wait_for_service(
    device,
    uuid: str,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    sleep: Callable[[float], None] = _time.sleep,
    settings: Optional[Settings] = None,
) -> Optional[Any]:
    """Wait for services to resolve, then return ``device.get_service(uuid)`` (may be ``None``)."""
    wait_services_resolved(device, attempts, delay, sleep, settings)
    return device.get_service(uuid)
