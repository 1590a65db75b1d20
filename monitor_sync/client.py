"""
Sync Client

Receives MonitorState broadcasts, discards malformed and stale ones, and
reconciles the local power state with the rest.
"""

from collections import Counter
from collections.abc import Callable
from enum import Enum

from monitor_sync.exceptions import DecodeError
from monitor_sync.logging import get_logger
from monitor_sync.power.base import PowerAdapter
from monitor_sync.protocol import decode, epoch_ms_now, fmt_power
from monitor_sync.reconcile import Reconciler, ReconcileState
from monitor_sync.shutdown import ShutdownToken

logger = get_logger("client")

DEFAULT_POLL_TIMEOUT = 0.1


class HandleOutcome(Enum):
    """What the client did with one datagram."""

    MALFORMED = "malformed"
    STALE = "stale"
    UNSUPPORTED = "unsupported"
    IN_SYNC = "in_sync"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


class SyncClient:
    """Event-driven follower of a SyncServer's broadcasts."""

    def __init__(
        self,
        adapter: PowerAdapter,
        transport,
        reconciler: Reconciler | None = None,
        token: ShutdownToken | None = None,
        clock: Callable[[], int] = epoch_ms_now,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
    ):
        self.adapter = adapter
        self.transport = transport
        self.reconciler = reconciler or Reconciler(adapter)
        self.token = token or ShutdownToken()
        self._clock = clock
        self.poll_timeout = poll_timeout
        self.outcomes: Counter[HandleOutcome] = Counter()

    def handle_datagram(self, payload: bytes) -> HandleOutcome:
        """Process one received payload."""
        try:
            state = decode(payload)
        except DecodeError as e:
            logger.debug(f"Discarding malformed datagram: {e}")
            return HandleOutcome.MALFORMED

        now = self._clock()
        if not state.is_fresh(now):
            logger.warning(
                f"Received message timestamp tolerance: {state.age_ms(now):.0f} > "
                f"{state.tolerance_ms:.0f} (rate={state.poll_rate_hz}Hz), ignoring"
            )
            return HandleOutcome.STALE

        current = self.adapter.get_power()
        if current is None:
            logger.warning("Power state unsupported, ignoring message")
            return HandleOutcome.UNSUPPORTED
        if current == state.powered_on:
            return HandleOutcome.IN_SYNC

        logger.info(f"sync: {fmt_power(current)} -> {fmt_power(state.powered_on)}")
        result = self.reconciler.reconcile(state.powered_on, current=current)
        if result.state is ReconcileState.CONVERGED:
            return HandleOutcome.CONVERGED
        return HandleOutcome.EXHAUSTED

    def run(self) -> Counter:
        """
        Receive and handle datagrams until shutdown is requested.

        Returns:
            Count of each HandleOutcome seen
        """
        self.adapter.prepare()
        logger.debug("Client loop started")
        while not self.token.is_set:
            try:
                payload = self.transport.receive(self.poll_timeout)
            except OSError as e:
                logger.error(f"Receive failed: {e}")
                self.token.wait(self.poll_timeout)
                continue
            if payload is None:
                continue
            self.outcomes[self.handle_datagram(payload)] += 1
        logger.info(f"Client loop stopped after {sum(self.outcomes.values())} message(s)")
        return self.outcomes
