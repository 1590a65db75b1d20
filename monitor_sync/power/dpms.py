"""
X11 DPMS power adapter

Reads and forces monitor power through the DPMS extension using
python-xlib.
"""

from __future__ import annotations

import time

from Xlib import X
from Xlib import display as xdisplay
from Xlib import error as xerror
from Xlib.ext import dpms

from monitor_sync.exceptions import ActuationError, AdapterUnavailableError
from monitor_sync.logging import get_logger

logger = get_logger("power.dpms")

# Matches xset: DPMS needs a moment after being enabled before a forced
# level sticks.
ENABLE_SETTLE_SECONDS = 0.1


class DpmsPowerAdapter:
    """
    Power adapter backed by an X display's DPMS extension.

    The display is "on" unless DPMS is enabled and the monitor is in the
    Off level; standby and suspend count as on.
    """

    def __init__(self, display_name: str | None = None):
        try:
            self._display = xdisplay.Display(display_name)
        except xerror.DisplayError as e:
            raise AdapterUnavailableError(f"Cannot connect to X display: {e}") from e
        self.name = self._display.get_display_name()
        logger.info(f"Opened X display {self.name}")

    def _capable(self) -> bool:
        if not self._display.has_extension("DPMS"):
            return False
        return bool(self._display.dpms_capable().capable)

    def get_power(self) -> bool | None:
        """Return the DPMS power state, or None if DPMS is unavailable."""
        if not self._capable():
            return None
        info = self._display.dpms_info()
        return not (info.state and info.power_level == dpms.DPMSModeOff)

    def reset(self) -> None:
        """Disable the screensaver and DPMS timeouts so the level only changes on request."""
        self._display.set_screen_saver(0, 0, X.PreferBlanking, X.AllowExposures)
        self._display.dpms_set_timeouts(0, 0, 0)
        self._display.flush()

    def prepare(self) -> None:
        self.reset()

    def set_power(self, on: bool) -> None:
        """Force the monitor on or off."""
        if not self._capable():
            raise ActuationError(f"DPMS not available on {self.name}")
        self._display.dpms_enable()
        time.sleep(ENABLE_SETTLE_SECONDS)
        self.reset()
        self._display.dpms_force_level(dpms.DPMSModeOn if on else dpms.DPMSModeOff)
        self._display.flush()

    def close(self) -> bool:
        """Close the display connection. Returns False if closing failed."""
        try:
            self._display.close()
        except xerror.DisplayError as e:
            logger.warning(f"Display {self.name} failed to close: {e}")
            return False
        logger.info(f"Display {self.name} closed")
        return True
