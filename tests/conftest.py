"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from simcam.launcher import write_launcher  # noqa: E402


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


def live_group_members(pgid: int) -> list:
    """PIDs in process group pgid that are neither gone nor zombies (reads /proc)."""
    members = []
    for entry in os.listdir("/proc"):
        if not entry.isdigit():
            continue
        try:
            with open(f"/proc/{entry}/stat") as f:
                stat = f.read()
        except OSError:
            continue
        # fields after the command name: state, ppid, pgrp, ...
        fields = stat.rsplit(")", 1)[1].split()
        if int(fields[2]) == pgid and fields[0] != "Z":
            members.append(int(entry))
    return members


@pytest.fixture
def live_processes():
    """Return a function listing the live members of a process group."""
    if not os.path.isdir("/proc"):
        pytest.skip("needs /proc")
    return live_group_members


@pytest.fixture
def sim_module(tmp_path):
    """Factory writing an executable simulated module with the given flags."""
    counter = {"n": 0}

    def make(*args, filename="AppRun"):
        counter["n"] += 1
        return write_launcher(tmp_path / f"module{counter['n']}", filename, list(args))

    return make


@pytest.fixture
def camera_config_dict():
    """A one-camera, one-module configuration document (executable path filled in by tests)."""
    return {
        "components": [
            {
                "name": "csi-cam-1",
                "api": "rdk:component:camera",
                "model": "viam:camera:csi-pi",
                "attributes": {"width_px": 320, "height_px": 240},
                "depends_on": [],
            }
        ],
        "modules": [
            {
                "type": "local",
                "name": "viam_csi-cam-pi",
                "executable_path": "/opt/module/AppRun",
            }
        ],
    }


@pytest.fixture
def valid_settings():
    """Return a valid settings dictionary."""
    return {
        "component_name": "csi-cam-1",
        "component_api": "rdk:component:camera",
        "component_model": "viam:camera:csi-pi",
        "module_name": "viam_csi-cam-pi",
        "attributes": {"width_px": 320, "height_px": 240},
        "locator": {
            "base_dir": "etc",
            "extracted_subpath": "squashfs-root/AppRun",
            "archive_glob": "*.AppImage",
            "strict": False,
        },
        "timeouts": {
            "scenario_s": 60,
            "bootstrap_s": 30,
            "poll_timeout_s": 5.0,
            "poll_interval_s": 0.1,
            "call_timeout_s": 2.0,
            "teardown_s": 10,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
component_name: "csi-cam-1"
module_name: "viam_csi-cam-pi"

locator:
  base_dir: "etc"
  strict: false

timeouts:
  poll_timeout_s: 5.0
  poll_interval_s: 0.1

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir
