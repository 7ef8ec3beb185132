"""
Pytest configuration and fixtures for bluezsync tests.
"""
import os
import tempfile

# bluezsync.core.config creates its XDG directories at import time
_XDG_ROOT = tempfile.mkdtemp(prefix="bluezsync-tests-")
for _var in ("XDG_DATA_HOME", "XDG_CACHE_HOME", "XDG_CONFIG_HOME"):
    os.environ[_var] = os.path.join(_XDG_ROOT, _var.lower())
os.environ.pop("BLUEZSYNC_CONFIG", None)

import pytest  # noqa: E402

from bluezsync.core.events import EventHub  # noqa: E402
from bluezsync.core.reconciler import NotificationReconciler  # noqa: E402
from bluezsync.core.registry import EntityRegistry  # noqa: E402

from tests.fakes import EventRecorder  # noqa: E402


@pytest.fixture
def registry():
    return EntityRegistry()


@pytest.fixture
def hub():
    return EventHub()


@pytest.fixture
def recorder(hub):
    return EventRecorder(hub)


@pytest.fixture
def reconciler(registry, hub):
    return NotificationReconciler(registry, hub)
