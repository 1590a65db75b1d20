"""Tests for power adapters."""

from unittest.mock import MagicMock, patch

import pytest

from monitor_sync.exceptions import ActuationError, AdapterUnavailableError
from monitor_sync.power import MockPowerAdapter, PowerAdapter, open_adapter


class TestMockPowerAdapter:
    def test_satisfies_protocol(self):
        assert isinstance(MockPowerAdapter(), PowerAdapter)

    def test_set_changes_state(self):
        adapter = MockPowerAdapter(powered_on=True)
        adapter.set_power(False)
        assert adapter.get_power() is False
        assert adapter.set_calls == [False]

    def test_lag(self):
        adapter = MockPowerAdapter(powered_on=True, lag=2)
        adapter.set_power(False)
        adapter.set_power(False)
        assert adapter.get_power() is True
        adapter.set_power(False)
        assert adapter.get_power() is False

    def test_fail_sets(self):
        adapter = MockPowerAdapter(powered_on=True, fail_sets=1)
        with pytest.raises(ActuationError):
            adapter.set_power(False)
        adapter.set_power(False)
        assert adapter.get_power() is False

    def test_scripted_readings(self):
        adapter = MockPowerAdapter(powered_on=True, readings=[False, None])
        assert adapter.get_power() is False
        assert adapter.get_power() is None
        assert adapter.get_power() is True


class TestOpenAdapter:
    def test_mock_backend(self):
        adapter = open_adapter("mock", ":5")
        assert isinstance(adapter, MockPowerAdapter)
        assert adapter.name == ":5"

    def test_unknown_backend(self):
        with pytest.raises(AdapterUnavailableError):
            open_adapter("wayland")

    def test_unsupported_power_is_fatal(self):
        unsupported = MockPowerAdapter(powered_on=None)
        with patch("monitor_sync.power.MockPowerAdapter", return_value=unsupported):
            with pytest.raises(AdapterUnavailableError, match="DPMS not supported"):
                open_adapter("mock")
        assert unsupported.closed


def _fake_display(capable=True, state=True, power_level=0):
    display = MagicMock()
    display.get_display_name.return_value = ":0"
    display.has_extension.return_value = True
    display.dpms_capable.return_value = MagicMock(capable=capable)
    display.dpms_info.return_value = MagicMock(state=state, power_level=power_level)
    return display


class TestDpmsPowerAdapter:
    """Tests for the X11 DPMS adapter against a mocked display."""

    @pytest.fixture
    def dpms_module(self):
        from monitor_sync.power import dpms as dpms_module

        return dpms_module

    def _open(self, dpms_module, display):
        with patch.object(dpms_module.xdisplay, "Display", return_value=display):
            return dpms_module.DpmsPowerAdapter(":0")

    def test_power_on_when_dpms_disabled(self, dpms_module):
        from Xlib.ext import dpms

        adapter = self._open(dpms_module, _fake_display(state=False, power_level=dpms.DPMSModeOff))
        assert adapter.name == ":0"
        assert adapter.get_power() is True

    def test_power_off(self, dpms_module):
        from Xlib.ext import dpms

        adapter = self._open(dpms_module, _fake_display(state=True, power_level=dpms.DPMSModeOff))
        assert adapter.get_power() is False

    def test_standby_counts_as_on(self, dpms_module):
        from Xlib.ext import dpms

        adapter = self._open(dpms_module, _fake_display(state=True, power_level=dpms.DPMSModeStandby))
        assert adapter.get_power() is True

    def test_not_capable_is_unsupported(self, dpms_module):
        adapter = self._open(dpms_module, _fake_display(capable=False))
        assert adapter.get_power() is None
        with pytest.raises(ActuationError):
            adapter.set_power(True)

    def test_missing_extension_is_unsupported(self, dpms_module):
        display = _fake_display()
        display.has_extension.return_value = False
        adapter = self._open(dpms_module, display)
        assert adapter.get_power() is None

    def test_set_power_forces_level(self, dpms_module):
        from Xlib.ext import dpms

        display = _fake_display()
        adapter = self._open(dpms_module, display)
        with patch.object(dpms_module.time, "sleep") as sleep:
            adapter.set_power(False)

        display.dpms_enable.assert_called_once()
        sleep.assert_called_once_with(dpms_module.ENABLE_SETTLE_SECONDS)
        display.dpms_set_timeouts.assert_called_with(0, 0, 0)
        display.dpms_force_level.assert_called_once_with(dpms.DPMSModeOff)

    def test_prepare_resets_timeouts(self, dpms_module):
        display = _fake_display()
        adapter = self._open(dpms_module, display)
        adapter.prepare()

        display.set_screen_saver.assert_called_once()
        display.dpms_set_timeouts.assert_called_once_with(0, 0, 0)
        display.flush.assert_called()

    def test_cannot_connect(self, dpms_module):
        from Xlib import error as xerror

        with patch.object(dpms_module.xdisplay, "Display", side_effect=xerror.DisplayNameError(":9")):
            with pytest.raises(AdapterUnavailableError):
                dpms_module.DpmsPowerAdapter(":9")

    def test_close(self, dpms_module):
        display = _fake_display()
        adapter = self._open(dpms_module, display)
        assert adapter.close() is True
        display.close.assert_called_once()
