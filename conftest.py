import os
import stat
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from sitewatch.main import create_app
from sitewatch.models import MonitorConfig
from sitewatch.monitor_manager import Watchdog
from sitewatch.monitors import HttpMonitor
from sitewatch.remediation import RemediationRunner
from sitewatch.trace_manager import TraceManager


class FakeSleep:
    """Records requested delays instead of sleeping. Optionally stops a watchdog after N sleeps."""

    def __init__(self, stop_after=None):
        self.delays = []
        self.stop_after = stop_after
        self.watchdog = None

    async def __call__(self, seconds):
        self.delays.append(seconds)
        if self.stop_after is not None and len(self.delays) >= self.stop_after and self.watchdog:
            self.watchdog.stop()


def make_config(**overrides) -> MonitorConfig:
    values = {
        "url": "http://example.test/health",
        "elf_path": "/opt/sitewatch/restart-service",
        "interval": 60,
        "timeout": 10,
        "retries": 3,
        "backoff_initial": 60,
        "backoff_factor": 2.0,
        "backoff_max": 300,
    }
    values.update(overrides)
    return MonitorConfig(**values)


def make_runner(output="restarted\n", error=None, returncode=0):
    runner = MagicMock(spec=RemediationRunner)
    runner.invoke.return_value = (output, error)
    runner.last_error = error
    runner.last_returncode = None if error else returncode
    return runner


def make_monitor(outcomes):
    monitor = MagicMock(spec=HttpMonitor)
    monitor.probe.side_effect = list(outcomes)
    return monitor


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def runner():
    return make_runner()


@pytest.fixture
def script_factory(tmp_path):
    """Writes an executable shell script and returns its path"""
    def _make(body: str, name: str = "remedy.sh", executable: bool = True) -> str:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body + "\n")
        mode = path.stat().st_mode
        if executable:
            path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        else:
            path.chmod(mode & ~(stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))
        return os.fspath(path)
    return _make


@pytest.fixture
def watchdog(config, runner, fake_sleep):
    """Watchdog with a scripted monitor; set watchdog.monitor.probe.side_effect per test"""
    return Watchdog(
        config,
        monitor=make_monitor([]),
        runner=runner,
        trace=TraceManager(),
        sleep=fake_sleep,
        clock=lambda: 1700000000.0,
    )


@pytest.fixture
def client(watchdog):
    """
    TestClient around the status API. The background loop is not started,
    tests drive the watchdog directly.
    """
    app = create_app(watchdog, start_loop=False)
    with TestClient(app) as c:
        yield c
