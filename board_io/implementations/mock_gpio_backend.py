"""
Mock GPIO Backend

Simulated libgpiod for development and testing without a GPIO chip.
Allows you to develop and test on your laptop, CI/CD servers, etc.

This is a "Fake" test double - it has working logic (line ownership, edge
detection, per-line sequence numbers, a bounded kernel event buffer) but no
real hardware.

Why simulate the kernel and not just the controllers?
1. The edge pipeline's wait/read logic runs unchanged against the fake
2. Tests can inject edges and observe exactly what the callbacks see
3. Software PWM output can be checked write-by-write
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from board_io.constants import DEFAULT_GPIO_CHIP, EDGE_EVENT_BUFFER_CAPACITY
from board_io.errors import (
    BackendError,
    ChipOpenFailedError,
    RequestFailedError,
)
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

# Raspberry Pi header: GPIO0-GPIO27
DEFAULT_NUM_LINES = 28


@dataclass
class _MockChip:
    path: str
    name: str
    label: str
    line_names: list[str]
    # offset -> (request, consumer)
    owners: dict[int, tuple["_MockRequest", str]] = field(default_factory=dict)
    # Number of open handles; state survives close like the kernel's does
    open_count: int = 0


@dataclass
class _MockRequest:
    chip: _MockChip
    offsets: tuple[int, ...]
    settings: LineSettings
    consumer: str
    # Physical level of each line (before active-low inversion)
    levels: dict[int, bool] = field(default_factory=dict)
    sequences: dict[int, int] = field(default_factory=dict)
    events: deque = field(
        default_factory=lambda: deque(maxlen=EDGE_EVENT_BUFFER_CAPACITY),
    )
    global_sequence: int = 0
    released: bool = False


class MockGPIOBackend(GPIOBackendInterface):
    """
    Simulated GPIO kernel that mimics libgpiod v2 behavior.

    Usage:
        backend = MockGPIOBackend()
        gpio = GPIOController(backend=backend)
        button = gpio.input(27, edge="both")
        backend.simulate_edge(27, rising=True)
    """

    def __init__(self, chips: Optional[dict[str, int]] = None):
        """
        Initialize the simulated kernel.

        Args:
            chips: Map of chip path -> number of lines. Defaults to a single
                   Raspberry Pi style chip at the configured GPIO chip path.
        """
        self.logger = logging.getLogger(__name__)

        self._lock = threading.Condition()
        self._chip_specs = chips or {DEFAULT_GPIO_CHIP: DEFAULT_NUM_LINES}
        # One shared state per chip path, like the real kernel
        self._chips: dict[str, _MockChip] = {}

        # Every value written to an output, per offset (for assertions)
        self._write_history: dict[int, list[bool]] = {}

        self.logger.info("Mock GPIO backend initialized (simulation mode)")

    # -------------------------------------------------------------------------
    # Chip
    # -------------------------------------------------------------------------

    def open_chip(self, path: str) -> Any:
        if path not in self._chip_specs:
            raise ChipOpenFailedError(f"Failed to open GPIO chip at {path}")

        num_lines = self._chip_specs[path]
        chip = self._chips.get(path)
        if chip is None:
            chip = _MockChip(
                path=path,
                name=path.rsplit("/", 1)[-1],
                label="mock-gpio",
                line_names=[f"GPIO{offset}" for offset in range(num_lines)],
            )
            self._chips[path] = chip
        chip.open_count += 1
        self.logger.debug(f"[MOCK] Opened chip {path} ({num_lines} lines)")
        return chip

    def close_chip(self, chip: Any) -> None:
        chip.open_count = max(0, chip.open_count - 1)
        self.logger.debug(f"[MOCK] Closed chip {chip.path}")

    def get_chip_info(self, chip: Any) -> ChipInfo:
        return ChipInfo(
            name=chip.name,
            label=chip.label,
            num_lines=len(chip.line_names),
        )

    def get_line_info(self, chip: Any, offset: int) -> LineInfo:
        self._check_offset(chip, offset, BackendError)
        owner = chip.owners.get(offset)
        if owner is None:
            return LineInfo(
                offset=offset,
                name=chip.line_names[offset],
                used=False,
                consumer=None,
                direction=Direction.INPUT,
            )

        request, consumer = owner
        return LineInfo(
            offset=offset,
            name=chip.line_names[offset],
            used=True,
            consumer=consumer,
            direction=request.settings.direction,
        )

    def find_line(self, chip: Any, name: str) -> Optional[int]:
        try:
            return chip.line_names.index(name)
        except ValueError:
            return None

    # -------------------------------------------------------------------------
    # Line requests
    # -------------------------------------------------------------------------

    def request_lines(
        self,
        chip: Any,
        offsets: Sequence[int],
        settings: LineSettings,
        consumer: str,
    ) -> Any:
        with self._lock:
            for offset in offsets:
                self._check_offset(chip, offset, RequestFailedError)
                if offset in chip.owners:
                    _, owner = chip.owners[offset]
                    raise RequestFailedError(
                        f"Failed to request GPIO pin {offset}: "
                        f"device or resource busy (owned by {owner})",
                    )

            request = _MockRequest(
                chip=chip,
                offsets=tuple(offsets),
                settings=settings,
                consumer=consumer,
            )
            for offset in offsets:
                request.levels[offset] = self._initial_level(settings)
                request.sequences[offset] = 0
                chip.owners[offset] = (request, consumer)
                if settings.direction == Direction.OUTPUT:
                    self._write_history.setdefault(offset, []).append(
                        settings.output_value,
                    )

        self.logger.debug(
            f"[MOCK] Requested pin(s) {list(offsets)} as "
            f"{settings.direction.value} (edge: {settings.edge.value})",
        )
        return request

    def release_request(self, request: Any) -> None:
        with self._lock:
            if request.released:
                return
            request.released = True
            for offset in request.offsets:
                request.chip.owners.pop(offset, None)
            request.events.clear()
            self._lock.notify_all()
        self.logger.debug(f"[MOCK] Released pin(s) {list(request.offsets)}")

    def get_value(self, request: Any, offset: int) -> bool:
        self._check_request(request, offset)
        level = request.levels[offset]
        return level != request.settings.active_low

    def set_value(self, request: Any, offset: int, value: bool) -> None:
        self._check_request(request, offset)
        if request.settings.direction != Direction.OUTPUT:
            raise BackendError(f"Pin {offset} not configured as output")

        request.levels[offset] = value != request.settings.active_low
        self._write_history.setdefault(offset, []).append(value)
        # Don't log every write - too verbose for software PWM

    # -------------------------------------------------------------------------
    # Edge events
    # -------------------------------------------------------------------------

    def wait_edge_events(self, request: Any, timeout_ns: int) -> bool:
        if request.released:
            raise BackendError("Error waiting for edge events: request released")

        with self._lock:
            if timeout_ns == 0:
                return bool(request.events)

            deadline = None if timeout_ns < 0 else time.monotonic() + timeout_ns / 1e9
            while not request.events and not request.released:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    break
                self._lock.wait(remaining)
            return bool(request.events)

    def read_edge_events(self, request: Any, max_events: int) -> list[EdgeEvent]:
        if request.released:
            raise BackendError("Error reading edge events: request released")

        with self._lock:
            events = []
            while request.events and len(events) < max_events:
                events.append(request.events.popleft())
            return events

    def is_available(self) -> bool:
        """Mock backend never drives real hardware"""
        return False

    # =========================================================================
    # TESTING HELPER METHODS (not part of GPIOBackendInterface)
    # =========================================================================
    # These methods are ONLY for testing - they simulate the outside world

    def simulate_edge(self, offset: int, rising: bool) -> bool:
        """
        Drive the physical level of an input line to produce a transition.

        Args:
            offset: Input line offset (must be requested)
            rising: True for LOW -> HIGH, False for HIGH -> LOW

        Returns:
            True if the kernel queued an edge event for it
        """
        request = self._find_request(offset)
        if request is None or request.settings.direction != Direction.INPUT:
            raise BackendError(f"Pin {offset} not configured as input")

        with self._lock:
            request.levels[offset] = rising

            # Edge detection works on the logical (active-low adjusted) value
            logical_rising = rising != request.settings.active_low
            edge = request.settings.edge
            wanted = (
                edge == EdgeMode.BOTH
                or (edge == EdgeMode.RISING and logical_rising)
                or (edge == EdgeMode.FALLING and not logical_rising)
            )
            if not wanted:
                return False

            request.sequences[offset] += 1
            request.global_sequence += 1
            request.events.append(
                EdgeEvent(
                    type=EdgeType.RISING if logical_rising else EdgeType.FALLING,
                    timestamp_ns=time.monotonic_ns(),
                    pin=offset,
                    sequence=request.sequences[offset],
                    global_sequence=request.global_sequence,
                ),
            )
            self._lock.notify_all()

        self.logger.debug(
            f"[MOCK] Pin {offset} edge: {'rising' if logical_rising else 'falling'}",
        )
        return True

    def simulate_pulse(self, offset: int) -> None:
        """Simulate a full pulse (rising then falling edge)"""
        self.simulate_edge(offset, rising=True)
        self.simulate_edge(offset, rising=False)

    def get_write_history(self, offset: int) -> list[bool]:
        """Every value written to an output line, oldest first"""
        return list(self._write_history.get(offset, []))

    def clear_write_history(self, offset: Optional[int] = None) -> None:
        if offset is None:
            self._write_history.clear()
        else:
            self._write_history.pop(offset, None)

    def get_level(self, offset: int) -> bool:
        """Current physical level of a requested line"""
        request = self._find_request(offset)
        if request is None:
            raise BackendError(f"Pin {offset} not requested")
        return request.levels[offset]

    def is_requested(self, offset: int) -> bool:
        return self._find_request(offset) is not None

    def pending_events(self, offset: int) -> int:
        request = self._find_request(offset)
        return len(request.events) if request else 0

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _find_request(self, offset: int) -> Optional[_MockRequest]:
        for chip in self._chips.values():
            owner = chip.owners.get(offset)
            if owner is not None:
                return owner[0]
        return None

    @staticmethod
    def _initial_level(settings: LineSettings) -> bool:
        if settings.direction == Direction.OUTPUT:
            return settings.output_value != settings.active_low
        # Pull-up idles HIGH, anything else idles LOW
        return settings.bias == Bias.PULL_UP

    @staticmethod
    def _check_offset(chip: _MockChip, offset: int, error: type) -> None:
        if offset < 0 or offset >= len(chip.line_names):
            raise error(
                f"Invalid line offset {offset} for {chip.path} "
                f"({len(chip.line_names)} lines)",
            )

    @staticmethod
    def _check_request(request: _MockRequest, offset: int) -> None:
        if request.released:
            raise BackendError(f"Pin {offset} has been released")
        if offset not in request.offsets:
            raise BackendError(f"Pin {offset} not part of this request")
