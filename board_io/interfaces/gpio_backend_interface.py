"""
GPIO Backend Interface - Abstract Kernel Layer

This defines the contract any GPIO backend must follow. A backend wraps the
character-device line-request API (libgpiod v2): open a chip, request lines,
read/write values, wait for and read edge events.

Why an abstract backend?
1. Testability: swap libgpiod for a simulated kernel in tests
2. Development: run the controllers on a laptop with no /dev/gpiochip*
3. Dependency injection: one backend object per controller, passed to every
   line handle it creates (no module-level library state)

Handles returned by the backend (chip, request) are opaque - controllers
never look inside them, they only hand them back to the backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence


class Direction(Enum):
    """How a line is configured"""

    INPUT = "input"
    OUTPUT = "output"


class Bias(Enum):
    """Internal bias resistor for input lines"""

    DISABLED = "disabled"  # Floating, external resistor required
    PULL_UP = "pull-up"  # Idle HIGH - button press reads LOW
    PULL_DOWN = "pull-down"  # Idle LOW - button press reads HIGH


class EdgeMode(Enum):
    """Which transitions the kernel should report as edge events"""

    NONE = "none"
    RISING = "rising"  # LOW -> HIGH
    FALLING = "falling"  # HIGH -> LOW
    BOTH = "both"


class EdgeType(Enum):
    """Direction of a single reported transition"""

    RISING = "rising"
    FALLING = "falling"


@dataclass(frozen=True)
class EdgeEvent:
    """
    One edge transition reported by the kernel.

    Immutable - consumers may keep events around or share them between
    callbacks without copying.
    """

    type: EdgeType
    timestamp_ns: int  # Monotonic clock
    pin: int  # Line offset that triggered
    sequence: int  # Per-line sequence number
    global_sequence: int = 0  # Per-request sequence number


@dataclass(frozen=True)
class LineSettings:
    """Everything needed to request one line"""

    direction: Direction
    bias: Bias = Bias.DISABLED
    edge: EdgeMode = EdgeMode.NONE
    active_low: bool = False
    debounce_us: int = 0
    output_value: bool = False


@dataclass(frozen=True)
class ChipInfo:
    name: Optional[str]
    label: Optional[str]
    num_lines: int


@dataclass(frozen=True)
class LineInfo:
    offset: int
    name: Optional[str]
    used: bool
    consumer: Optional[str]
    direction: Direction


class GPIOBackendInterface(ABC):
    """
    Abstract base class for the kernel GPIO primitives.

    Every method that talks to the kernel raises a board_io error on failure
    (ChipOpenFailedError, RequestFailedError or BackendError) - never a raw
    OSError from the underlying library.
    """

    # -------------------------------------------------------------------------
    # Chip
    # -------------------------------------------------------------------------

    @abstractmethod
    def open_chip(self, path: str) -> Any:
        """
        Open a GPIO chip.

        Args:
            path: Character device path (e.g. "/dev/gpiochip0")

        Returns:
            Opaque chip handle

        Raises:
            ChipOpenFailedError: If the chip can't be opened
        """

    @abstractmethod
    def close_chip(self, chip: Any) -> None:
        """Close a chip handle returned by open_chip()"""

    @abstractmethod
    def get_chip_info(self, chip: Any) -> ChipInfo:
        """Return name, label and number of lines of the chip"""

    @abstractmethod
    def get_line_info(self, chip: Any, offset: int) -> LineInfo:
        """Return the current kernel view of one line"""

    @abstractmethod
    def find_line(self, chip: Any, name: str) -> Optional[int]:
        """
        Look up a line offset by its name.

        Returns:
            Line offset, or None if the chip has no line with that name
        """

    # -------------------------------------------------------------------------
    # Line requests
    # -------------------------------------------------------------------------

    @abstractmethod
    def request_lines(
        self,
        chip: Any,
        offsets: Sequence[int],
        settings: LineSettings,
        consumer: str,
    ) -> Any:
        """
        Request one or more lines with identical settings.

        Args:
            chip: Chip handle
            offsets: Line offsets to request
            settings: Direction, bias, edge detection, ...
            consumer: Label reported to the kernel

        Returns:
            Opaque request handle

        Raises:
            RequestFailedError: If the kernel refuses the request
        """

    @abstractmethod
    def release_request(self, request: Any) -> None:
        """Give the lines of a request back to the kernel"""

    @abstractmethod
    def get_value(self, request: Any, offset: int) -> bool:
        """Read the logical value of a requested line (True = active)"""

    @abstractmethod
    def set_value(self, request: Any, offset: int, value: bool) -> None:
        """Drive a requested output line (True = active)"""

    # -------------------------------------------------------------------------
    # Edge events
    # -------------------------------------------------------------------------

    @abstractmethod
    def wait_edge_events(self, request: Any, timeout_ns: int) -> bool:
        """
        Block until edge events are pending or the timeout expires.

        Args:
            request: Request handle
            timeout_ns: 0 = poll and return immediately,
                        negative = wait forever

        Returns:
            True if events are pending, False on timeout
        """

    @abstractmethod
    def read_edge_events(self, request: Any, max_events: int) -> list[EdgeEvent]:
        """
        Read up to max_events pending edge events.

        Blocks if nothing is pending - call wait_edge_events() first.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the backend talks to real hardware.

        Returns:
            True if running on real hardware, False if simulated
        """
