"""
Board I/O Interfaces Package

Exposes abstract interfaces that define contracts for the kernel layers.
"""

from board_io.interfaces.gpio_backend_interface import (
    Bias,
    ChipInfo,
    Direction,
    EdgeEvent,
    EdgeMode,
    EdgeType,
    GPIOBackendInterface,
    LineInfo,
    LineSettings,
)
from board_io.interfaces.sysfs_interface import SysfsInterface

# Public API (sorted alphabetically)
__all__ = [
    "Bias",
    "ChipInfo",
    "Direction",
    "EdgeEvent",
    "EdgeMode",
    "EdgeType",
    "GPIOBackendInterface",
    "LineInfo",
    "LineSettings",
    "SysfsInterface",
]
