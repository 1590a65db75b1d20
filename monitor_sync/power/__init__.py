"""
Power Adapters

Sources and actuators for the display power state being synchronized.
"""

from monitor_sync.exceptions import AdapterUnavailableError
from monitor_sync.power.base import PowerAdapter
from monitor_sync.power.mock import MockPowerAdapter

BACKENDS = ("dpms", "mock")


def open_adapter(backend: str = "dpms", display: str | None = None) -> PowerAdapter:
    """
    Open a power adapter and verify it can report a power state.

    Raises:
        AdapterUnavailableError: if the backend is unknown, the display
            cannot be opened, or it cannot report power.
    """
    if backend == "mock":
        adapter: PowerAdapter = MockPowerAdapter(name=display or "mock")
    elif backend == "dpms":
        from monitor_sync.power.dpms import DpmsPowerAdapter

        adapter = DpmsPowerAdapter(display)
    else:
        raise AdapterUnavailableError(f"Unknown power backend: {backend}")

    if adapter.get_power() is None:
        adapter.close()
        raise AdapterUnavailableError("DPMS not supported")
    return adapter


__all__ = [
    "BACKENDS",
    "MockPowerAdapter",
    "PowerAdapter",
    "open_adapter",
]
