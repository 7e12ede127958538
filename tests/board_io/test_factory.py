"""
Factory Tests

Backend selection: forced mock, forced real, and auto-detection fallback.
"""

import pytest

from board_io import factory
from board_io.controllers.pwm_controller import PWMController
from board_io.errors import ChipOpenFailedError
from board_io.factory import HardwareFactory, create_gpio_backend, create_sysfs
from board_io.implementations.local_sysfs import LocalSysfs
from board_io.implementations.mock_gpio_backend import MockGPIOBackend
from board_io.implementations.mock_sysfs import MockSysfs


class _BrokenBackend:
    def __init__(self):
        raise RuntimeError("gpiod not installed")


@pytest.mark.unit
class TestGPIOBackendSelection:

    def test_forced_mock(self):
        assert isinstance(HardwareFactory.create_gpio_backend(mode="mock"), MockGPIOBackend)

    def test_convenience_force_mock(self):
        assert isinstance(create_gpio_backend(force_mock=True), MockGPIOBackend)

    def test_auto_falls_back_to_mock(self, monkeypatch):
        monkeypatch.setattr(factory, "GpiodBackend", _BrokenBackend)

        backend = HardwareFactory.create_gpio_backend(mode="auto")

        assert isinstance(backend, MockGPIOBackend)

    def test_forced_real_without_library(self, monkeypatch):
        monkeypatch.setattr(factory, "GpiodBackend", _BrokenBackend)

        with pytest.raises(RuntimeError, match="not available"):
            HardwareFactory.create_gpio_backend(mode="real")

    def test_availability_report(self, monkeypatch):
        monkeypatch.setattr(factory, "GpiodBackend", _BrokenBackend)

        status = HardwareFactory.is_real_hardware_available()

        assert status["gpio"] is False
        assert set(status) == {"gpio", "pwm"}


@pytest.mark.unit
class TestSysfsSelection:

    def test_forced_mock_models_requested_chip(self):
        sysfs = HardwareFactory.create_sysfs(mode="mock", chip_path="/sys/class/pwm/pwmchip2")

        assert isinstance(sysfs, MockSysfs)
        assert sysfs.is_dir("/sys/class/pwm/pwmchip2")

    def test_auto_missing_chip_in_existing_class(self, tmp_path):
        """The board has PWM, just not this chip - stay real"""
        sysfs = HardwareFactory.create_sysfs(mode="auto", chip_path=str(tmp_path / "missing"))

        assert isinstance(sysfs, LocalSysfs)

    def test_auto_missing_non_default_chip(self, tmp_path):
        """An explicitly requested chip is never simulated"""
        chip = str(tmp_path / "no-pwm-class" / "pwmchip3")

        sysfs = HardwareFactory.create_sysfs(mode="auto", chip_path=chip)

        assert isinstance(sysfs, LocalSysfs)

    def test_auto_without_pwm_class(self, tmp_path, monkeypatch):
        """No PWM on the machine at all: the configured chip is simulated"""
        chip = str(tmp_path / "no-pwm-class" / "pwmchip0")
        monkeypatch.setattr(factory, "DEFAULT_PWM_CHIP", chip)

        sysfs = HardwareFactory.create_sysfs(mode="auto", chip_path=chip)

        assert isinstance(sysfs, MockSysfs)
        assert sysfs.is_dir(chip)

    def test_controller_on_missing_chip_in_auto_mode(self, tmp_path, monkeypatch):
        monkeypatch.setattr(factory, "HARDWARE_MODE", "auto")

        with pytest.raises(ChipOpenFailedError):
            PWMController("/sys/class/pwm/pwmchip97")

        with pytest.raises(ChipOpenFailedError):
            PWMController(str(tmp_path / "pwmchip97"))

    def test_auto_with_chip(self, tmp_path):
        sysfs = HardwareFactory.create_sysfs(mode="auto", chip_path=str(tmp_path))

        assert isinstance(sysfs, LocalSysfs)

    def test_forced_real_without_chip(self, tmp_path):
        with pytest.raises(RuntimeError):
            HardwareFactory.create_sysfs(mode="real", chip_path=str(tmp_path / "missing"))

    def test_convenience_force_mock(self, tmp_path):
        assert isinstance(create_sysfs(force_mock=True, chip_path=str(tmp_path)), MockSysfs)
