"""
Board I/O Implementations Package

Exposes concrete implementations of the kernel interfaces.
"""

from board_io.implementations.gpiod_backend import GpiodBackend
from board_io.implementations.local_sysfs import LocalSysfs
from board_io.implementations.mock_gpio_backend import MockGPIOBackend
from board_io.implementations.mock_sysfs import MockSysfs

# Public API (sorted alphabetically)
__all__ = [
    "GpiodBackend",
    "LocalSysfs",
    "MockGPIOBackend",
    "MockSysfs",
]
