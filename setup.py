from setuptools import setup, find_packages

# Check if PyGObject (gi) is already available system-wide
# This prevents pip from trying to build PyGObject from source when it's
# already installed via system package manager (apt, pacman, etc.)
_HAS_PYGOBJECT = False
try:
    import gi
    gi.require_version('GLib', '2.0')
    from gi.repository import GLib
    _HAS_PYGOBJECT = True
except (ImportError, ValueError, AttributeError):
    _HAS_PYGOBJECT = False

# Base requirements - always needed
install_requires = [
    "dbus-python>=1.2.0",
    "PyYAML>=6.0",
]

extras_require = {
    "test": ["pytest>=8.0.0"],
}

# PyGObject drives the GLib main loop that delivers BlueZ signals.
# If not system-installed, add it to install_requires
# If system-installed, keep it optional for users who want to manage via pip
if not _HAS_PYGOBJECT:
    install_requires.append("PyGObject>=3.48.0")
    extras_require["monitor"] = []
else:
    extras_require["monitor"] = ["PyGObject>=3.48.0"]

setup(
    name="bluezsync",
    version="0.3.0",
    description="Live mirror of the BlueZ D-Bus object graph with adapter/device handles",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        'console_scripts': [
            'bluezsync=bluezsync.cli:main',
        ],
    },
    python_requires='>=3.8',
)
