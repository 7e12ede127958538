"""
Board I/O Utilities Package

Exposes shared helper functions.

Public API:
    PWM utilities:
    - validate_frequency / validate_duty_cycle: Range checks
    - period_ns_for / duty_ns_for: Unit conversions
    - safe_sysfs_write: Cleanup write that logs instead of raising

    Permission utilities:
    - in_gpio_group: Is this process in the gpio group
    - get_permission_error_message: Remediation text for PWM setup

    Logging:
    - setup_logging: basicConfig from config.settings
"""

from board_io.utils.logging_setup import setup_logging
from board_io.utils.permissions import (
    get_permission_error_message,
    get_udev_hint,
    in_gpio_group,
)
from board_io.utils.pwm_utils import (
    duty_ns_for,
    period_ns_for,
    safe_sysfs_write,
    validate_duty_cycle,
    validate_frequency,
)

# Public API
__all__ = [
    "duty_ns_for",
    "get_permission_error_message",
    "get_udev_hint",
    "in_gpio_group",
    "period_ns_for",
    "safe_sysfs_write",
    "setup_logging",
    "validate_duty_cycle",
    "validate_frequency",
]
