"""Cooperative shutdown shared by the server and client loops."""

import signal
import threading
import time

from monitor_sync.logging import get_logger

logger = get_logger("shutdown")

# Longest a wait() goes without noticing a signal-delivered request
SIGNAL_POLL_INTERVAL = 0.05


class ShutdownToken:
    """
    One-shot cancellation flag.

    ``set()`` wakes waiters immediately and is meant for other threads.
    Signal handlers must use ``set_from_signal()``, which only flips a plain
    attribute: ``threading.Event.set()`` takes a non-reentrant lock that the
    interrupted main thread may already hold inside ``wait()``. A waiter
    notices a signal-delivered request within ``SIGNAL_POLL_INTERVAL``.
    """

    def __init__(self):
        self._event = threading.Event()
        self._signalled = False

    def set(self) -> None:
        self._event.set()

    def set_from_signal(self) -> None:
        self._signalled = True

    @property
    def is_set(self) -> bool:
        return self._signalled or self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``. Returns True if shutdown was requested."""
        deadline = time.monotonic() + max(seconds, 0.0)
        while not self.is_set:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._event.wait(min(remaining, SIGNAL_POLL_INTERVAL))
        return True


def install_signal_handlers(token: ShutdownToken) -> bool:
    """
    Request shutdown through ``token`` on SIGINT or SIGTERM.

    Returns:
        False when not called from the main thread (handlers not installed)
    """
    if threading.current_thread() is not threading.main_thread():
        logger.warning("Signal handlers can only be installed from the main thread")
        return False

    def _handle_shutdown_signal(signum, frame):
        token.set_from_signal()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _handle_shutdown_signal)
    return True
