"""
Board I/O

GPIO lines and PWM channels for single-board computers (Raspberry Pi and
friends), over libgpiod for GPIO and the sysfs interface for hardware PWM.

Provides automatic detection and graceful fallback between real hardware
and mock implementations for testing.

Public API:
    - GPIOController: Open a GPIO chip, lease inputs and outputs
    - GPIOInput / GPIOOutput: Leased lines (inputs can deliver edge events)
    - PWMController / PWMChannel: Hardware PWM over sysfs
    - SoftwarePWM: PWM on any output, driven from the asyncio event loop
    - EdgeEvent: Rising/falling edge with kernel timestamp
    - HardwareFactory, create_gpio_backend, create_sysfs: Backend selection
    - HardwareError and subclasses

Usage:
    from board_io import GPIOController, PWMController

    with GPIOController() as gpio:
        led = gpio.output(17)
        led.on()

    with PWMController() as pwm:
        fan = pwm.channel(0, frequency_hz=25000, duty_cycle=0.4)
"""

from board_io.controllers.gpio_controller import GPIOController
from board_io.controllers.gpio_lines import GPIOInput, GPIOOutput
from board_io.controllers.pwm_controller import (
    PermissionCheckResult,
    PWMChannel,
    PWMController,
)
from board_io.controllers.software_pwm import SoftwarePWM
from board_io.errors import (
    AcquisitionFailedError,
    BackendError,
    ChannelInUseError,
    ChipOpenFailedError,
    ClosedHandleError,
    EdgeDetectionDisabledError,
    ExportFailedError,
    ExportTimeoutError,
    HardwareError,
    InvalidParameterError,
    LineNotFoundError,
    PermissionDeniedError,
    RequestFailedError,
    ResourceInUseError,
)
from board_io.factory import HardwareFactory, create_gpio_backend, create_sysfs
from board_io.interfaces.gpio_backend_interface import (
    Bias,
    ChipInfo,
    EdgeEvent,
    EdgeMode,
    EdgeType,
    LineInfo,
)

__all__ = [
    # Exception classes
    "AcquisitionFailedError",
    "BackendError",
    "ChannelInUseError",
    "ChipOpenFailedError",
    "ClosedHandleError",
    "EdgeDetectionDisabledError",
    "ExportFailedError",
    "ExportTimeoutError",
    "HardwareError",
    "InvalidParameterError",
    "LineNotFoundError",
    "PermissionDeniedError",
    "RequestFailedError",
    "ResourceInUseError",
    # Types
    "Bias",
    "ChipInfo",
    "EdgeEvent",
    "EdgeMode",
    "EdgeType",
    "LineInfo",
    "PermissionCheckResult",
    # Controllers and handles
    "GPIOController",
    "GPIOInput",
    "GPIOOutput",
    "HardwareFactory",
    "PWMChannel",
    "PWMController",
    "SoftwarePWM",
    # Functions
    "create_gpio_backend",
    "create_sysfs",
]
