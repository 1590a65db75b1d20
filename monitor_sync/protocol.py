"""
Sync Protocol

Defines the MonitorState record broadcast by the server and its fixed
24-byte wire layout:

    offset  size  field
    0       8     epoch_ms      int64, little-endian
    8       8     poll_rate_hz  float64, little-endian
    16      1     powered_on    bool
    17      7     padding

The layout matches the natural struct alignment on x86-64, so peers built
from the same record definition in other languages interoperate.
"""

import math
import struct
import time
from dataclasses import dataclass

from monitor_sync.exceptions import DecodeError, ProtocolError

WIRE_FORMAT = struct.Struct("<qd?7x")
WIRE_SIZE = WIRE_FORMAT.size


def epoch_ms_now() -> int:
    """Wall-clock milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def fmt_power(value: bool | None) -> str:
    """Render a power state the way the sync log lines show it."""
    if value is None:
        return "NONE"
    return "ON" if value else "OFF"


def _valid_rate(rate_hz: float) -> bool:
    return isinstance(rate_hz, (int, float)) and math.isfinite(rate_hz) and rate_hz > 0


@dataclass(frozen=True)
class MonitorState:
    """A sampled power state, stamped with the sender's clock and cadence."""

    epoch_ms: int
    poll_rate_hz: float
    powered_on: bool

    @property
    def tolerance_ms(self) -> float:
        """Maximum acceptable message age, one sender period."""
        return 1000.0 / self.poll_rate_hz

    def age_ms(self, now_ms: int) -> float:
        """Absolute distance between the receiver's clock and the sample time."""
        return float(abs(now_ms - self.epoch_ms))

    def is_fresh(self, now_ms: int) -> bool:
        """True unless the message is older than one sender period."""
        return not self.age_ms(now_ms) > self.tolerance_ms

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "epoch_ms": self.epoch_ms,
            "poll_rate_hz": self.poll_rate_hz,
            "powered_on": self.powered_on,
        }


def encode(state: MonitorState) -> bytes:
    """Pack a MonitorState into its fixed-size wire representation."""
    if not _valid_rate(state.poll_rate_hz):
        raise ProtocolError(f"poll_rate_hz must be a positive finite number, got {state.poll_rate_hz!r}")
    try:
        return WIRE_FORMAT.pack(state.epoch_ms, float(state.poll_rate_hz), bool(state.powered_on))
    except struct.error as e:
        raise ProtocolError(f"Cannot encode {state}: {e}") from e


def decode(payload: bytes) -> MonitorState:
    """
    Unpack a datagram payload into a MonitorState.

    Raises:
        DecodeError: if the payload is not exactly WIRE_SIZE bytes or
            carries a poll rate that cannot be used as a divisor.
    """
    if len(payload) != WIRE_SIZE:
        raise DecodeError(
            f"Expected {WIRE_SIZE} byte payload, got {len(payload)}",
            payload_size=len(payload),
        )

    epoch_ms, poll_rate_hz, powered_on = WIRE_FORMAT.unpack(payload)
    if not _valid_rate(poll_rate_hz):
        raise DecodeError(f"Invalid poll rate {poll_rate_hz!r}", payload_size=len(payload))

    return MonitorState(epoch_ms=epoch_ms, poll_rate_hz=poll_rate_hz, powered_on=powered_on)
