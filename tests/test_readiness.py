import pytest

from bluezsync.ble_ops.readiness import wait_for_service, wait_services_resolved, wait_until
from bluezsync.bt_ref.constants import RESULT_ERR_SERVICES_NOT_RESOLVED
from bluezsync.core import errors
from bluezsync.core.config import Settings
from bluezsync.core.errors import NotBoundError, ServicesNotResolvedError


class FakeDevice:
    address = "AA:BB:CC:DD:EE:FF"

    def __init__(self, resolve_after=None):
        self.resolve_after = resolve_after
        self.polls = 0

    def is_services_resolved(self):
        self.polls += 1
        return self.resolve_after is not None and self.polls > self.resolve_after

    def get_service(self, uuid):
        return ("service", uuid)


class Sleeps(list):
    def __call__(self, delay):
        self.append(delay)


def test_wait_until_returns_first_truthy_value():
    values = iter([0, None, "ready"])
    sleeps = Sleeps()
    assert wait_until(lambda: next(values), attempts=5, delay=0.01, sleep=sleeps) == "ready"
    assert sleeps == [0.01, 0.01]


def test_wait_until_times_out_without_trailing_sleep():
    sleeps = Sleeps()
    with pytest.raises(errors.TimeoutError) as info:
        wait_until(lambda: False, attempts=3, delay=0.5, operation="nothing", sleep=sleeps)
    assert info.value.operation == "nothing"
    assert sleeps == [0.5, 0.5]


def test_services_resolved_after_a_few_polls():
    device = FakeDevice(resolve_after=2)
    sleeps = Sleeps()
    wait_services_resolved(device, sleep=sleeps)
    assert device.polls == 3
    assert len(sleeps) == 2


def test_services_never_resolved_uses_the_default_bound():
    device = FakeDevice()
    sleeps = Sleeps()
    with pytest.raises(ServicesNotResolvedError) as info:
        wait_services_resolved(device, sleep=sleeps)
    assert device.polls == 100
    assert sleeps.count(0.1) == 99
    assert info.value.code == RESULT_ERR_SERVICES_NOT_RESOLVED
    assert info.value.device_address == device.address
    assert isinstance(info.value, errors.TimeoutError)


def test_vanished_device_is_not_retried():
    class Gone(FakeDevice):
        def is_services_resolved(self):
            self.polls += 1
            raise NotBoundError("/org/bluez/hci0/dev_AA_BB_CC_DD_EE_FF")

    device = Gone()
    with pytest.raises(NotBoundError):
        wait_services_resolved(device, sleep=Sleeps())
    assert device.polls == 1


def test_wait_for_service_returns_lookup_result():
    device = FakeDevice(resolve_after=0)
    assert wait_for_service(device, "180f", sleep=Sleeps()) == ("service", "180f")


def test_settings_supply_attempts_and_delay():
    device = FakeDevice()
    sleeps = Sleeps()
    settings = Settings(readiness_attempts=4, readiness_delay=0.25)
    with pytest.raises(ServicesNotResolvedError):
        wait_services_resolved(device, sleep=sleeps, settings=settings)
    assert device.polls == 4
    assert sleeps == [0.25, 0.25, 0.25]


def test_explicit_arguments_override_settings():
    device = FakeDevice()
    sleeps = Sleeps()
    settings = Settings(readiness_attempts=50, readiness_delay=2.0)
    with pytest.raises(ServicesNotResolvedError):
        wait_for_service(device, "180f", attempts=2, sleep=sleeps, settings=settings)
    assert device.polls == 2
    assert sleeps == [2.0]
