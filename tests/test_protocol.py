"""Tests for the MonitorState wire codec and freshness test."""

import math
import struct

import pytest

from monitor_sync.exceptions import DecodeError, ProtocolError
from monitor_sync.protocol import (
    WIRE_SIZE,
    MonitorState,
    decode,
    encode,
    epoch_ms_now,
    fmt_power,
)


class TestCodec:
    """Tests for encode/decode."""

    def test_wire_size_is_fixed(self):
        """The record is 24 bytes: int64, float64, bool and padding."""
        assert WIRE_SIZE == 24
        payload = encode(MonitorState(epoch_ms=1, poll_rate_hz=1.0, powered_on=True))
        assert len(payload) == WIRE_SIZE

    def test_round_trip(self):
        """Decoding an encoded state yields the same state."""
        for state in (
            MonitorState(epoch_ms=1_700_000_000_123, poll_rate_hz=1.0, powered_on=True),
            MonitorState(epoch_ms=0, poll_rate_hz=0.25, powered_on=False),
            MonitorState(epoch_ms=-5, poll_rate_hz=1e6, powered_on=True),
            MonitorState(epoch_ms=2**63 - 1, poll_rate_hz=2.5, powered_on=False),
        ):
            assert decode(encode(state)) == state

    def test_field_layout(self):
        """Fields are little-endian in declaration order."""
        payload = encode(MonitorState(epoch_ms=0x0102030405060708, poll_rate_hz=2.0, powered_on=True))

        assert payload[:8] == (0x0102030405060708).to_bytes(8, "little")
        assert struct.unpack("<d", payload[8:16])[0] == 2.0
        assert payload[16] == 1
        assert payload[17:] == b"\x00" * 7

    def test_decode_short_payload(self):
        """A payload shorter than the record is rejected, not partially read."""
        payload = encode(MonitorState(epoch_ms=1, poll_rate_hz=1.0, powered_on=True))

        with pytest.raises(DecodeError) as exc_info:
            decode(payload[:-1])
        assert exc_info.value.payload_size == WIRE_SIZE - 1

    def test_decode_long_payload(self):
        payload = encode(MonitorState(epoch_ms=1, poll_rate_hz=1.0, powered_on=True))

        with pytest.raises(DecodeError):
            decode(payload + b"\x00")

    def test_decode_empty_payload(self):
        with pytest.raises(DecodeError):
            decode(b"")

    def test_decode_rejects_unusable_rate(self):
        """Zero, negative and non-finite rates cannot be divided by."""
        for rate in (0.0, -1.0, math.inf, math.nan):
            payload = struct.pack("<qd?7x", 1, rate, True)
            with pytest.raises(DecodeError):
                decode(payload)

    def test_decode_nonzero_bool_byte(self):
        """Any nonzero power byte reads as on."""
        payload = bytearray(encode(MonitorState(epoch_ms=1, poll_rate_hz=1.0, powered_on=False)))
        payload[16] = 0x7F

        assert decode(bytes(payload)).powered_on is True

    def test_encode_rejects_invalid_rate(self):
        with pytest.raises(ProtocolError):
            encode(MonitorState(epoch_ms=1, poll_rate_hz=0.0, powered_on=True))

    def test_encode_rejects_out_of_range_timestamp(self):
        with pytest.raises(ProtocolError):
            encode(MonitorState(epoch_ms=2**63, poll_rate_hz=1.0, powered_on=True))

    def test_decode_error_is_protocol_error(self):
        assert issubclass(DecodeError, ProtocolError)


class TestFreshness:
    """Tests for the staleness tolerance derived from the sender's rate."""

    def test_tolerance_is_one_period(self):
        assert MonitorState(epoch_ms=0, poll_rate_hz=2.0, powered_on=True).tolerance_ms == 500.0
        assert MonitorState(epoch_ms=0, poll_rate_hz=1.0, powered_on=True).tolerance_ms == 1000.0

    def test_boundary_at_two_hertz(self):
        """499 and 500 ms are accepted, 501 ms is rejected."""
        state = MonitorState(epoch_ms=10_000, poll_rate_hz=2.0, powered_on=True)

        assert state.is_fresh(10_499)
        assert state.is_fresh(10_500)
        assert not state.is_fresh(10_501)

    def test_age_is_absolute(self):
        """Messages from a sender whose clock runs ahead are judged by distance."""
        state = MonitorState(epoch_ms=10_000, poll_rate_hz=2.0, powered_on=True)

        assert state.age_ms(9_600) == 400.0
        assert state.is_fresh(9_500)
        assert not state.is_fresh(9_499)

    def test_to_dict(self):
        state = MonitorState(epoch_ms=42, poll_rate_hz=1.0, powered_on=False)
        assert state.to_dict() == {"epoch_ms": 42, "poll_rate_hz": 1.0, "powered_on": False}


class TestHelpers:
    def test_fmt_power(self):
        assert fmt_power(True) == "ON"
        assert fmt_power(False) == "OFF"
        assert fmt_power(None) == "NONE"

    def test_epoch_ms_now_is_milliseconds(self):
        now = epoch_ms_now()
        # After 2020-01-01 and before 2100-01-01
        assert 1_577_836_800_000 < now < 4_102_444_800_000
