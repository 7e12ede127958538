"""
Board I/O Factory

Factory pattern for creating kernel-layer implementations.
Automatically selects real or mock implementations based on availability.

Why use a factory?
1. Single place to decide real vs mock hardware
2. Easy to force mock mode for testing (HARDWARE_MODE=mock in .env)
3. Controllers don't need to know about implementation details
"""

import logging
import os
from typing import Literal

from board_io.constants import DEFAULT_PWM_CHIP
from board_io.implementations.gpiod_backend import GpiodBackend
from board_io.implementations.local_sysfs import LocalSysfs
from board_io.implementations.mock_gpio_backend import MockGPIOBackend
from board_io.implementations.mock_sysfs import MockSysfs
from board_io.interfaces.gpio_backend_interface import GPIOBackendInterface
from board_io.interfaces.sysfs_interface import SysfsInterface
from config.settings import HARDWARE_MODE

# Type aliases for better type hints
HardwareMode = Literal["auto", "real", "mock"]


class HardwareFactory:
    """
    Factory for creating kernel-layer implementations.

    Usage:
        # Auto-detect (uses real hardware if available, mock otherwise)
        backend = HardwareFactory.create_gpio_backend()
        sysfs = HardwareFactory.create_sysfs()

        # Force mock mode (useful for testing)
        backend = HardwareFactory.create_gpio_backend(mode="mock")

        # Force real hardware (raises error if not available)
        backend = HardwareFactory.create_gpio_backend(mode="real")
    """

    _logger = logging.getLogger(__name__)

    @classmethod
    def create_gpio_backend(
        cls,
        mode: HardwareMode = HARDWARE_MODE,
    ) -> GPIOBackendInterface:
        """
        Create a GPIO backend instance.

        Args:
            mode: "auto" (detect), "real" (force libgpiod),
                  "mock" (force simulation)

        Returns:
            GPIOBackendInterface implementation (GpiodBackend or MockGPIOBackend)

        Raises:
            RuntimeError: If mode="real" but libgpiod is not available
        """
        if mode == "mock":
            cls._logger.info("Creating Mock GPIO backend (forced)")
            return MockGPIOBackend()

        if mode == "real":
            try:
                backend = GpiodBackend()
                cls._logger.info("Creating libgpiod backend (forced)")
                return backend
            except Exception as e:
                raise RuntimeError(
                    f"Real GPIO requested but not available: {e}",
                ) from e

        # mode == "auto" - try real first, fall back to mock
        try:
            backend = GpiodBackend()
            cls._logger.info("Creating libgpiod backend (auto-detected)")
            return backend
        except Exception as e:
            cls._logger.warning(
                f"Real GPIO not available ({e}), using Mock GPIO backend",
            )
            return MockGPIOBackend()

    @classmethod
    def create_sysfs(
        cls,
        mode: HardwareMode = HARDWARE_MODE,
        chip_path: str = DEFAULT_PWM_CHIP,
    ) -> SysfsInterface:
        """
        Create a sysfs implementation for the PWM controller.

        Args:
            mode: "auto" (real unless there is no PWM class and chip_path
                  is the configured default), "real", "mock"
            chip_path: PWM chip directory used for auto-detection

        Returns:
            SysfsInterface implementation (LocalSysfs or MockSysfs)

        Raises:
            RuntimeError: If mode="real" but the PWM chip doesn't exist
        """
        if mode == "mock":
            cls._logger.info("Creating Mock sysfs (forced)")
            return MockSysfs(chips={chip_path: 2})

        chip_present = os.path.isdir(chip_path)

        if mode == "real":
            if not chip_present:
                raise RuntimeError(
                    f"Real PWM requested but no PWM chip at {chip_path}",
                )
            cls._logger.info("Creating local sysfs (forced)")
            return LocalSysfs()

        if chip_present:
            cls._logger.info("Creating local sysfs (auto-detected)")
            return LocalSysfs()

        # Only simulate the configured chip on a machine with no PWM at all.
        # A missing chip anywhere else stays real so the controller reports it.
        pwm_class = os.path.dirname(chip_path.rstrip("/"))
        if os.path.isdir(pwm_class) or chip_path.rstrip("/") != DEFAULT_PWM_CHIP.rstrip("/"):
            cls._logger.info(
                f"No PWM chip at {chip_path}, using local sysfs anyway",
            )
            return LocalSysfs()

        cls._logger.warning(
            f"No PWM class at {pwm_class}, using Mock sysfs",
        )
        return MockSysfs(chips={chip_path: 2})

    @classmethod
    def is_real_hardware_available(cls) -> dict[str, bool]:
        """
        Check which real hardware is available.

        Useful for diagnostics and configuration display.

        Returns:
            {'gpio': True/False, 'pwm': True/False}
        """
        status = {
            "gpio": False,
            "pwm": os.path.isdir(DEFAULT_PWM_CHIP),
        }

        try:
            status["gpio"] = GpiodBackend().is_available()
        except Exception:
            pass

        return status


# Convenience functions for quick creation


def create_gpio_backend(force_mock: bool = False) -> GPIOBackendInterface:
    """
    Quick GPIO backend creation with simple mock override.

    Args:
        force_mock: If True, always use mock (good for testing)
    """
    mode = "mock" if force_mock else HARDWARE_MODE
    return HardwareFactory.create_gpio_backend(mode=mode)


def create_sysfs(force_mock: bool = False, chip_path: str = DEFAULT_PWM_CHIP) -> SysfsInterface:
    """
    Quick sysfs creation with simple mock override.

    Args:
        force_mock: If True, always use the in-memory sysfs
        chip_path: PWM chip directory
    """
    mode = "mock" if force_mock else HARDWARE_MODE
    return HardwareFactory.create_sysfs(mode=mode, chip_path=chip_path)
