"""
Controllers Package

High-level GPIO and PWM resources built on the kernel backends.
"""

from board_io.controllers.edge_events import EdgeEventPipeline
from board_io.controllers.gpio_controller import GPIOController
from board_io.controllers.gpio_lines import GPIOInput, GPIOOutput
from board_io.controllers.leased_resource import LeasedResource
from board_io.controllers.pwm_controller import (
    PermissionCheckResult,
    PWMChannel,
    PWMController,
)
from board_io.controllers.software_pwm import SoftwarePWM

# Public API (sorted alphabetically)
__all__ = [
    "EdgeEventPipeline",
    "GPIOController",
    "GPIOInput",
    "GPIOOutput",
    "LeasedResource",
    "PWMChannel",
    "PWMController",
    "PermissionCheckResult",
    "SoftwarePWM",
]
