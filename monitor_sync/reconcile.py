"""
Reconciliation

Drives a flaky, non-atomic power actuator until the observed state matches
a target, within a fixed attempt budget. A single set request is not
guaranteed to take effect immediately, or at all.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from monitor_sync.exceptions import ActuationError
from monitor_sync.logging import get_logger
from monitor_sync.power.base import PowerAdapter
from monitor_sync.protocol import fmt_power

logger = get_logger("reconcile")

DEFAULT_MAX_ATTEMPTS = 100
DEFAULT_SETTLE_DELAY = 0.1


class ReconcileState(Enum):
    """States of a single reconciliation run."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    IN_SYNC = "in_sync"
    UNSUPPORTED = "unsupported"


@dataclass
class ReconcileResult:
    """Outcome of one reconcile() call."""

    state: ReconcileState
    target: bool
    attempts: int = 0
    set_calls: int = 0
    set_failures: int = 0

    @property
    def converged(self) -> bool:
        return self.state in (ReconcileState.CONVERGED, ReconcileState.IN_SYNC)


class Reconciler:
    """
    Bounded retry-until-converged driver for a PowerAdapter.

    Each attempt requests the target state, waits ``settle_delay`` and reads
    the state back. On convergence one more set request is issued as an
    assurance write; after ``max_attempts`` failed attempts a final set
    request is issued and the run ends EXHAUSTED. Neither outcome raises.

    The settle sleep blocks the caller on purpose: the client has nothing
    else meaningful to do while a reconciliation is converging.
    """

    def __init__(
        self,
        adapter: PowerAdapter,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.adapter = adapter
        self.max_attempts = max_attempts
        self.settle_delay = settle_delay
        self._sleep = sleep
        self.state = ReconcileState.IDLE

    def _set(self, target: bool, result: ReconcileResult) -> None:
        result.set_calls += 1
        try:
            self.adapter.set_power(target)
        except ActuationError as e:
            result.set_failures += 1
            logger.warning(f"Power set failed: {e}")

    def reconcile(self, target: bool, current: bool | None = None) -> ReconcileResult:
        """
        Bring the adapter's power state to ``target``.

        Args:
            target: Desired power state
            current: Already-observed state; queried when omitted

        Returns:
            ReconcileResult describing the terminal state and call counts
        """
        self.state = ReconcileState.IDLE
        result = ReconcileResult(state=self.state, target=target)

        if current is None:
            current = self.adapter.get_power()
        if current is None:
            logger.warning("Power state unsupported, cannot reconcile")
            result.state = ReconcileState.UNSUPPORTED
            return result
        if current == target:
            result.state = ReconcileState.IN_SYNC
            return result

        self.state = ReconcileState.ATTEMPTING
        while result.attempts < self.max_attempts:
            result.attempts += 1
            self._set(target, result)
            self._sleep(self.settle_delay)

            # An unreadable state counts as off
            observed = self.adapter.get_power() or False
            if observed == target:
                self._set(target, result)
                self.state = ReconcileState.CONVERGED
                logger.debug(f"Converged to {fmt_power(target)} after {result.attempts} attempt(s)")
                break
        else:
            self._set(target, result)
            self.state = ReconcileState.EXHAUSTED
            logger.warning(
                f"Power did not reach {fmt_power(target)} after {result.attempts} attempts, giving up"
            )

        result.state = self.state
        return result
