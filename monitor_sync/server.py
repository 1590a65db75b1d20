"""
Sync Server

Samples the local power state at a fixed rate and broadcasts each change.
Emission is edge-triggered: nothing is sent while the state is unchanged,
so a dropped datagram leaves receivers out of sync until the next change.
"""

import math
from collections.abc import Callable

from monitor_sync.exceptions import ConfigError
from monitor_sync.logging import get_logger
from monitor_sync.power.base import PowerAdapter
from monitor_sync.protocol import MonitorState, encode, epoch_ms_now, fmt_power
from monitor_sync.shutdown import ShutdownToken

logger = get_logger("server")


class SyncServer:
    """
    Timer-driven broadcaster of MonitorState changes.

    The last known state lives on the instance and starts unknown, so the
    first sample is always broadcast.
    """

    def __init__(
        self,
        adapter: PowerAdapter,
        transport,
        rate_hz: float = 1.0,
        token: ShutdownToken | None = None,
        clock: Callable[[], int] = epoch_ms_now,
    ):
        if not (math.isfinite(rate_hz) and rate_hz > 0):
            raise ConfigError(f"rate_hz must be a positive finite number, got {rate_hz}")

        self.adapter = adapter
        self.transport = transport
        self.rate_hz = rate_hz
        self.token = token or ShutdownToken()
        self._clock = clock

        self.last_state: bool | None = None
        self.messages_sent = 0
        self.send_failures = 0

    @property
    def period_ms(self) -> int:
        return round(1000 / self.rate_hz)

    def _read_power(self) -> bool:
        # No tri-state on the wire: unsupported or failing reads broadcast as off
        try:
            return bool(self.adapter.get_power())
        except Exception as e:
            logger.warning(f"Power query failed, assuming OFF: {e}")
            return False

    def sample(self) -> MonitorState | None:
        """
        Read the power state and return a message if it changed.

        Returns:
            MonitorState for the first sample or a transition, else None
        """
        current = self._read_power()
        if self.last_state is not None and current == self.last_state:
            return None

        logger.info(f"sync: {fmt_power(self.last_state)} -> {fmt_power(current)}")
        self.last_state = current
        return MonitorState(epoch_ms=self._clock(), poll_rate_hz=self.rate_hz, powered_on=current)

    def tick(self) -> MonitorState | None:
        """Sample once and broadcast on change. Send errors are logged, never raised."""
        state = self.sample()
        if state is None:
            return None

        try:
            self.transport.send(encode(state))
        except OSError as e:
            self.send_failures += 1
            logger.error(f"Failed to send state: {e}")
            return None

        self.messages_sent += 1
        return state

    def run(self) -> int:
        """
        Poll until shutdown is requested.

        Returns:
            Number of messages sent
        """
        period = self.period_ms / 1000.0
        logger.debug(f"Server loop started, period {self.period_ms}ms")
        while not self.token.is_set:
            self.tick()
            if self.token.wait(period):
                break
        logger.info(f"Server loop stopped after {self.messages_sent} message(s)")
        return self.messages_sent
