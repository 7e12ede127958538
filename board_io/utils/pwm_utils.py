"""
PWM Utilities

Shared helpers for hardware PWM (sysfs) and software PWM.
Both speak the same units - a frequency in Hz, a duty ratio in [0, 1],
a period and a high time in nanoseconds - so the conversions and the
validation live here once.
"""

import logging
from typing import Optional

from board_io.constants import NS_PER_SECOND
from board_io.errors import InvalidParameterError
from board_io.interfaces.sysfs_interface import PathLike, SysfsInterface


def validate_frequency(frequency_hz: float) -> None:
    """
    Validate a PWM frequency.

    The period is programmed in whole nanoseconds, so frequencies from
    2 GHz up (and inf) would round to a 0ns period and are rejected too.

    Raises:
        InvalidParameterError: If frequency is not > 0, or its period
                               rounds to less than 1ns

    Example:
        validate_frequency(1000)  # OK
        validate_frequency(0)     # Raises InvalidParameterError
        validate_frequency(3e9)   # Raises InvalidParameterError
    """
    if not frequency_hz > 0:
        raise InvalidParameterError(
            f"Frequency must be greater than 0 Hz, got {frequency_hz}",
        )

    if period_ns_for(frequency_hz) < 1:
        raise InvalidParameterError(
            f"Frequency {frequency_hz} Hz is too high, period would round to 0ns",
        )


def validate_duty_cycle(duty_cycle: float) -> None:
    """
    Validate a duty ratio.

    Raises:
        InvalidParameterError: If duty cycle is outside [0, 1]
    """
    if not 0 <= duty_cycle <= 1:
        raise InvalidParameterError(
            f"Duty cycle must be between 0 and 1, got {duty_cycle}",
        )


def period_ns_for(frequency_hz: float) -> int:
    """
    Convert a frequency to a period in nanoseconds.

    Example:
        period_ns_for(1000)  # 1_000_000
    """
    return round(NS_PER_SECOND / frequency_hz)


def duty_ns_for(period_ns: int, duty_cycle: float) -> int:
    """
    High time in nanoseconds for a period and a duty ratio.

    Example:
        duty_ns_for(1_000_000, 0.25)  # 250_000
    """
    return round(period_ns * duty_cycle)


def safe_sysfs_write(
    sysfs: SysfsInterface,
    path: PathLike,
    value,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Write a sysfs attribute, logging instead of raising on failure.

    Used for cleanup writes (disable, unexport) - cleanup should never
    crash your program, even if the channel is already gone.

    Returns:
        True if the write succeeded
    """
    try:
        sysfs.write_value(path, value)
        return True
    except OSError as e:
        if logger:
            logger.warning(f"Ignoring failed write of {value!r} to {path}: {e}")
        return False
