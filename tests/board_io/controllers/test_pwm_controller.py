"""
Hardware PWM Tests

Tests cover:
1. The export protocol (fresh export, already exported, slow kernel, udev)
2. period / duty_cycle arithmetic and write order
3. Release (disable + unexport exactly once)
4. Parameter validation and permission diagnostics
"""

import threading

import pytest

from board_io.constants import (
    DEFAULT_PWM_CHIP,
    PWM_EXPORT_RETRIES,
    PWM_PERMISSION_RETRIES,
)
from board_io.controllers import pwm_controller as pwm_module
from board_io.controllers.pwm_controller import PWMController
from board_io.errors import (
    AcquisitionFailedError,
    ChannelInUseError,
    ChipOpenFailedError,
    ClosedHandleError,
    ExportFailedError,
    ExportTimeoutError,
    InvalidParameterError,
    PermissionDeniedError,
    ResourceInUseError,
)
from board_io.implementations.mock_sysfs import MockSysfs

CHIP = DEFAULT_PWM_CHIP
PWM0 = f"{CHIP}/pwm0"


def channel_writes(sysfs, channel_path=PWM0):
    """(attribute, value) for every successful write inside a channel dir"""
    return [
        (path.rsplit("/", 1)[-1], value)
        for path, value in sysfs.write_log
        if path.startswith(channel_path + "/")
    ]


# =============================================================================
# CONTROLLER SETUP
# =============================================================================

@pytest.mark.unit
class TestControllerSetup:

    def test_missing_chip(self, mock_sysfs):
        with pytest.raises(ChipOpenFailedError):
            PWMController("/sys/class/pwm/pwmchip7", sysfs=mock_sysfs)

    def test_export_not_writable(self, mock_sysfs):
        mock_sysfs.set_read_only(f"{CHIP}/export")

        with pytest.raises(PermissionDeniedError) as exc_info:
            PWMController(CHIP, sysfs=mock_sysfs)

        assert "usermod -aG gpio" in exc_info.value.hint
        assert isinstance(exc_info.value, PermissionError)

    def test_num_channels(self, pwm):
        assert pwm.num_channels == 2


# =============================================================================
# ACQUISITION
# =============================================================================

@pytest.mark.unit
class TestAcquire:

    def test_fresh_export_write_order(self, pwm, mock_sysfs):
        """export, then period, duty_cycle, enable - in that order"""
        channel = pwm.channel(0, frequency_hz=1000, duty_cycle=0.5)

        assert mock_sysfs.writes_to("export") == [(f"{CHIP}/export", "0")]
        assert channel_writes(mock_sysfs) == [
            ("period", "1000000"),
            ("duty_cycle", "500000"),
            ("enable", "1"),
        ]
        assert channel.period_ns == 1_000_000
        assert channel.duty_ns == 500_000

    def test_defaults(self, pwm):
        channel = pwm.channel(1)

        assert channel.frequency_hz == pytest.approx(1000)
        assert channel.duty_cycle == 0.5

    def test_already_exported_proceeds(self, pwm, mock_sysfs):
        """EBUSY on export with pwmN/ present means "reuse it" """
        mock_sysfs.pre_export(CHIP, 0)

        channel = pwm.channel(0, frequency_hz=500, duty_cycle=0.25)

        assert mock_sysfs.writes_to("export") == []
        assert mock_sysfs.read_value(f"{PWM0}/period") == "2000000"
        assert mock_sysfs.read_value(f"{PWM0}/duty_cycle") == "500000"
        assert mock_sysfs.read_value(f"{PWM0}/enable") == "1"
        assert not channel.closed

    def test_previous_duty_longer_than_new_period(self, pwm, mock_sysfs):
        """Leftover duty from an earlier user is shrunk before the period"""
        mock_sysfs.pre_export(CHIP, 0, period_ns=1_000_000, duty_ns=900_000)

        pwm.channel(0, frequency_hz=10_000, duty_cycle=0.5)

        assert channel_writes(mock_sysfs) == [
            ("duty_cycle", "50000"),
            ("period", "100000"),
            ("enable", "1"),
        ]

    def test_export_refused(self, pwm):
        """Export fails and no directory appears -> ExportFailedError"""
        with pytest.raises(ExportFailedError) as exc_info:
            pwm.channel(5)

        assert isinstance(exc_info.value, AcquisitionFailedError)
        # Reservation dropped
        assert pwm.channels == []

    def test_slow_export_within_budget(self, pwm_controller_factory):
        sysfs = MockSysfs(export_delay_polls=PWM_EXPORT_RETRIES)
        pwm = pwm_controller_factory(sysfs)

        channel = pwm.channel(0)

        assert channel.period_ns == 1_000_000

    def test_export_timeout_unexports(self, pwm_controller_factory):
        sysfs = MockSysfs(export_delay_polls=PWM_EXPORT_RETRIES + 5)
        pwm = pwm_controller_factory(sysfs)

        with pytest.raises(ExportTimeoutError) as exc_info:
            pwm.channel(0)

        assert exc_info.value.hint
        assert sysfs.attempt_log[-1] == (f"{CHIP}/unexport", "0")
        assert pwm.channels == []

    def test_permissions_arrive_late(self, pwm_controller_factory):
        """udev fixes permissions after a few polls - acquisition waits"""
        sysfs = MockSysfs(permission_delay_polls=PWM_PERMISSION_RETRIES - 1)
        pwm = pwm_controller_factory(sysfs)

        channel = pwm.channel(0)

        assert sysfs.read_value(f"{PWM0}/enable") == "1"
        assert channel.duty_ns == 500_000

    def test_permissions_never_arrive(self, pwm_controller_factory):
        sysfs = MockSysfs(permission_delay_polls=PWM_PERMISSION_RETRIES)
        pwm = pwm_controller_factory(sysfs)

        with pytest.raises(PermissionDeniedError) as exc_info:
            pwm.channel(0)

        assert "setup-pwm-permissions.sh" in exc_info.value.hint
        assert channel_writes(sysfs) == []
        assert pwm.channels == []

    def test_retry_sleeps_between_polls(self, pwm_controller_factory, monkeypatch):
        sleeps = []
        monkeypatch.setattr(pwm_module.time, "sleep", sleeps.append)
        sysfs = MockSysfs(export_delay_polls=3)
        pwm = pwm_controller_factory(sysfs)

        pwm.channel(0)

        assert len(sleeps) == 2


@pytest.mark.unit
class TestChannelInUse:

    def test_same_channel_twice(self, pwm):
        pwm.channel(0)

        with pytest.raises(ChannelInUseError) as exc_info:
            pwm.channel(0)

        assert isinstance(exc_info.value, ResourceInUseError)

    def test_reacquire_after_release(self, pwm, mock_sysfs):
        pwm.channel(0).close()

        channel = pwm.channel(0)

        assert not channel.closed
        assert pwm.channels == [0]

    def test_concurrent_acquire_exports_once(self, pwm_controller_factory, monkeypatch):
        """Two threads racing for one channel: one wins, one is rejected"""
        sysfs = MockSysfs()
        pwm = pwm_controller_factory(sysfs)

        started = threading.Event()
        release = threading.Event()
        original_export = pwm._export

        def slow_export(channel, channel_path):
            started.set()
            release.wait(timeout=1)
            return original_export(channel, channel_path)

        monkeypatch.setattr(pwm, "_export", slow_export)

        results = []

        def winner():
            results.append(pwm.channel(0))

        thread = threading.Thread(target=winner)
        thread.start()
        started.wait(timeout=1)

        with pytest.raises(ChannelInUseError):
            pwm.channel(0)

        release.set()
        thread.join()

        assert len(results) == 1
        assert len(sysfs.writes_to("export")) == 1


@pytest.mark.unit
class TestValidation:

    @pytest.mark.parametrize("frequency", [0, -10, 3e9, float("inf")])
    def test_bad_frequency(self, pwm, mock_sysfs, frequency):
        with pytest.raises(InvalidParameterError):
            pwm.channel(0, frequency_hz=frequency)

        assert mock_sysfs.attempt_log == []

    @pytest.mark.parametrize("duty", [-0.1, 1.5])
    def test_bad_duty(self, pwm, mock_sysfs, duty):
        with pytest.raises(InvalidParameterError):
            pwm.channel(0, duty_cycle=duty)

        assert mock_sysfs.attempt_log == []

    def test_bad_channel(self, pwm):
        with pytest.raises(InvalidParameterError):
            pwm.channel(-1)

    def test_too_fast_frequency_on_held_channel(self, pwm, mock_sysfs):
        """A period that rounds to 0ns is rejected before anything is written"""
        channel = pwm.channel(0)
        writes_before = list(mock_sysfs.write_log)

        with pytest.raises(InvalidParameterError):
            channel.set_frequency(3e9)

        assert mock_sysfs.write_log == writes_before
        assert channel.period_ns == 1_000_000
        assert pwm.channels == [0]


# =============================================================================
# CHANNEL MUTATORS
# =============================================================================

@pytest.mark.unit
class TestChannelMutators:

    def test_frequency_and_duty_scenario(self, pwm, mock_sysfs):
        channel = pwm.channel(0, frequency_hz=1000, duty_cycle=0.5)
        assert (channel.period_ns, channel.duty_ns) == (1_000_000, 500_000)

        channel.set_frequency(2000)
        assert (channel.period_ns, channel.duty_ns) == (500_000, 250_000)
        assert mock_sysfs.read_value(f"{PWM0}/period") == "500000"
        assert mock_sysfs.read_value(f"{PWM0}/duty_cycle") == "250000"

        channel.set_duty_cycle(0.75)
        assert channel.duty_ns == 375_000
        assert channel.period_ns == 500_000
        assert mock_sysfs.read_value(f"{PWM0}/duty_cycle") == "375000"

    def test_set_frequency_writes_period_then_duty(self, pwm, mock_sysfs):
        channel = pwm.channel(0, frequency_hz=1000, duty_cycle=0.5)
        mock_sysfs.clear_log()

        channel.set_frequency(500)

        assert channel_writes(mock_sysfs) == [
            ("period", "2000000"),
            ("duty_cycle", "1000000"),
        ]

    def test_set_frequency_higher_with_large_duty(self, pwm, mock_sysfs):
        """Shorter period than the current duty: duty goes first"""
        channel = pwm.channel(0, frequency_hz=1000, duty_cycle=0.75)
        mock_sysfs.clear_log()

        channel.set_frequency(2000)

        assert channel_writes(mock_sysfs) == [
            ("duty_cycle", "375000"),
            ("period", "500000"),
        ]
        assert channel.duty_ns == 375_000

    def test_set_duty_writes_only_duty(self, pwm, mock_sysfs):
        channel = pwm.channel(0)
        mock_sysfs.clear_log()

        channel.set_duty_cycle(0.1)

        assert channel_writes(mock_sysfs) == [("duty_cycle", "100000")]

    def test_mutators_are_fluent(self, pwm):
        channel = pwm.channel(0)

        assert channel.set_frequency(250).set_duty_cycle(0.2) is channel
        assert channel.frequency_hz == pytest.approx(250)
        assert channel.duty_ns == 800_000

    def test_rounding(self, pwm):
        channel = pwm.channel(0, frequency_hz=3000, duty_cycle=1 / 3)

        assert channel.period_ns == 333_333
        assert channel.duty_ns == 111_111

    def test_invalid_values_touch_nothing(self, pwm, mock_sysfs):
        channel = pwm.channel(0)
        mock_sysfs.clear_log()

        with pytest.raises(InvalidParameterError):
            channel.set_frequency(0)
        with pytest.raises(InvalidParameterError):
            channel.set_duty_cycle(2)

        assert mock_sysfs.attempt_log == []
        assert channel.period_ns == 1_000_000

    def test_closed_channel_rejects_mutators(self, pwm, mock_sysfs):
        channel = pwm.channel(0)
        channel.close()
        mock_sysfs.clear_log()

        with pytest.raises(ClosedHandleError):
            channel.set_duty_cycle(0.3)

        assert mock_sysfs.attempt_log == []


# =============================================================================
# RELEASE
# =============================================================================

@pytest.mark.unit
class TestRelease:

    def test_close_disables_then_unexports(self, pwm, mock_sysfs):
        channel = pwm.channel(0)
        mock_sysfs.clear_log()

        channel.close()

        assert mock_sysfs.write_log == [
            (f"{PWM0}/enable", "0"),
            (f"{CHIP}/unexport", "0"),
        ]
        assert channel.closed
        assert not mock_sysfs.is_dir(PWM0)

    def test_double_close_writes_nothing_more(self, pwm, mock_sysfs):
        channel = pwm.channel(0)
        channel.close()
        mock_sysfs.clear_log()

        channel.close()

        assert mock_sysfs.attempt_log == []

    def test_close_ignores_vanished_channel(self, pwm, mock_sysfs):
        """Someone else unexported it already - close still succeeds"""
        channel = pwm.channel(0)
        mock_sysfs.write_value(f"{CHIP}/unexport", 0)

        channel.close()

        assert channel.closed
        assert pwm.channels == []

    def test_controller_close_releases_all(self, pwm_controller_factory, mock_sysfs):
        pwm = pwm_controller_factory(mock_sysfs)
        first = pwm.channel(0)
        second = pwm.channel(1)

        pwm.close()

        assert first.closed and second.closed
        assert len(mock_sysfs.writes_to("unexport")) == 2
        assert pwm.closed

    def test_controller_close_idempotent(self, pwm, mock_sysfs):
        pwm.channel(0)
        pwm.close()
        mock_sysfs.clear_log()

        assert pwm.close() == []
        assert mock_sysfs.attempt_log == []

    def test_closed_controller_rejects_acquire(self, pwm):
        pwm.close()

        with pytest.raises(ClosedHandleError):
            pwm.channel(0)

    def test_context_manager(self, mock_sysfs, no_pwm_delays):
        with PWMController(CHIP, sysfs=mock_sysfs) as pwm:
            with pwm.channel(1) as channel:
                channel.set_duty_cycle(0.9)

        assert channel.closed
        assert pwm.closed


# =============================================================================
# PERMISSION CHECK
# =============================================================================

@pytest.mark.unit
class TestCheckPermissions:

    def test_writable(self, mock_sysfs, monkeypatch):
        monkeypatch.setattr(pwm_module, "in_gpio_group", lambda: True)

        result = PWMController.check_permissions(CHIP, sysfs=mock_sysfs)

        assert result.can_write
        assert result.in_gpio_group
        assert "correctly configured" in result.message

    def test_not_writable(self, mock_sysfs, monkeypatch):
        monkeypatch.setattr(pwm_module, "in_gpio_group", lambda: False)
        mock_sysfs.set_read_only(f"{CHIP}/export")

        result = PWMController.check_permissions(CHIP, sysfs=mock_sysfs)

        assert not result.can_write
        assert not result.in_gpio_group
        assert "not in the gpio group" in result.message

    def test_missing_chip(self, mock_sysfs, monkeypatch):
        monkeypatch.setattr(pwm_module, "in_gpio_group", lambda: True)

        result = PWMController.check_permissions("/sys/class/pwm/pwmchip9", sysfs=mock_sysfs)

        assert not result.can_write

    def test_check_does_not_write(self, mock_sysfs, monkeypatch):
        monkeypatch.setattr(pwm_module, "in_gpio_group", lambda: True)

        PWMController.check_permissions(CHIP, sysfs=mock_sysfs)

        assert mock_sysfs.attempt_log == []
