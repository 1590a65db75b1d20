"""Shared test fixtures for the monitor-sync test suite."""

from __future__ import annotations

import pytest

from monitor_sync.power import MockPowerAdapter
from monitor_sync.protocol import MonitorState, encode
from monitor_sync.transport import MockTransport

NOW_MS = 1_700_000_000_000


class FakeClock:
    """Settable millisecond clock."""

    def __init__(self, now_ms: int = NOW_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    """Records settle delays instead of sleeping."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def adapter() -> MockPowerAdapter:
    return MockPowerAdapter(powered_on=True)


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def make_payload():
    """Factory for encoded MonitorState datagrams."""

    def _make(powered_on: bool, epoch_ms: int = NOW_MS, poll_rate_hz: float = 1.0) -> bytes:
        return encode(MonitorState(epoch_ms=epoch_ms, poll_rate_hz=poll_rate_hz, powered_on=powered_on))

    return _make


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the user's config and environment overrides."""
    for var in (
        "MONITOR_SYNC_DATA_DIR",
        "MONITOR_SYNC_LOG_LEVEL",
        "MONITOR_SYNC_PORT",
        "MONITOR_SYNC_MULTICAST",
        "MONITOR_SYNC_RATE_HZ",
        "MONITOR_SYNC_BACKEND",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
