"""In-memory power adapter for dry runs and tests."""

from __future__ import annotations

from collections.abc import Iterable

from monitor_sync.exceptions import ActuationError
from monitor_sync.logging import get_logger

logger = get_logger("power.mock")


class MockPowerAdapter:
    """
    Simulated display whose state only changes through ``set_power``.

    ``lag`` delays how many accepted set calls it takes before the state
    flips, ``fail_sets`` makes that many leading calls raise, and
    ``readings`` scripts the values returned by ``get_power`` (the live
    state is reported once the script is used up).
    """

    def __init__(
        self,
        powered_on: bool | None = True,
        *,
        lag: int = 0,
        fail_sets: int = 0,
        stuck: bool = False,
        readings: Iterable[bool | None] | None = None,
        name: str = "mock",
    ):
        self.name = name
        self.powered_on = powered_on
        self.lag = lag
        self.fail_sets = fail_sets
        self.stuck = stuck
        self._readings = list(readings) if readings is not None else []
        self._pending = 0
        self.set_calls: list[bool] = []
        self.get_calls = 0
        self.prepared = False
        self.closed = False

    def get_power(self) -> bool | None:
        self.get_calls += 1
        if self._readings:
            return self._readings.pop(0)
        return self.powered_on

    def set_power(self, on: bool) -> None:
        self.set_calls.append(on)
        if self.fail_sets > 0:
            self.fail_sets -= 1
            raise ActuationError("mock actuator rejected request")
        if self.stuck or self.powered_on == on:
            return
        if self._pending < self.lag:
            self._pending += 1
            return
        self._pending = 0
        self.powered_on = on
        logger.debug(f"Mock display forced {'on' if on else 'off'}")

    def prepare(self) -> None:
        self.prepared = True

    def close(self) -> bool:
        self.closed = True
        return True
