"""
GPIO Controller

Opens one GPIO chip and leases its lines out as GPIOOutput / GPIOInput
handles. Also answers questions about the chip (info, line info, line
lookup by name).

Ownership rules:
- An offset can be leased at most once per controller
- Closing a handle gives the offset back, it can be requested again
- Closing the controller closes every handle still open, then the chip

This demonstrates dependency injection: the backend (libgpiod or the mock)
is created once per controller and passed to every handle it creates -
nothing in this package reaches for a global library object.
"""

import logging
import threading
from enum import Enum
from typing import Optional, Union

from board_io.constants import DEFAULT_CONSUMER, DEFAULT_GPIO_CHIP, US_PER_MS
from board_io.controllers.gpio_lines import GPIOInput, GPIOOutput
from board_io.controllers.leased_resource import LeasedResource
from board_io.errors import (
    ClosedHandleError,
    InvalidParameterError,
    LineNotFoundError,
    ResourceInUseError,
)
from board_io.factory import create_gpio_backend
from board_io.interfaces.gpio_backend_interface import (
    Bias,
    ChipInfo,
    Direction,
    EdgeMode,
    GPIOBackendInterface,
    LineInfo,
    LineSettings,
)


def _to_enum(enum_cls: type[Enum], value: Union[str, Enum], what: str) -> Enum:
    """Accept both Bias.PULL_UP and "pull-up" style arguments"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidParameterError(
            f"Invalid {what}: {value!r}. Expected one of: {allowed}",
        ) from e


class GPIOController:
    """
    Main GPIO controller for a chip.

    Usage:
        with GPIOController("/dev/gpiochip0") as gpio:
            led = gpio.output(17)
            led.on()

            button = gpio.input(27, bias="pull-up", edge="falling")
            print(button.read())
        # every line released, chip closed
    """

    def __init__(
        self,
        chip_path: str = DEFAULT_GPIO_CHIP,
        backend: Optional[GPIOBackendInterface] = None,
        consumer: str = DEFAULT_CONSUMER,
    ):
        """
        Open a GPIO chip.

        Args:
            chip_path: Path to the GPIO chip (e.g. "/dev/gpiochip0")
            backend: Kernel backend to use, or None to auto-create.
                     Passing one is how tests inject MockGPIOBackend.
            consumer: Label the kernel shows as owner of our lines

        Raises:
            ChipOpenFailedError: If the chip can't be opened
        """
        self.logger = logging.getLogger(__name__)

        self.backend = backend or create_gpio_backend()
        self._path = chip_path
        self._consumer = consumer

        # offset -> handle currently leased
        self._lines: dict[int, LeasedResource] = {}
        self._lock = threading.Lock()
        self._closed = False

        self._chip = self.backend.open_chip(chip_path)

        self.logger.info(f"GPIO controller opened {chip_path}")

    @property
    def path(self) -> str:
        """Path to the GPIO chip"""
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def leased_pins(self) -> list[int]:
        """Offsets currently leased, sorted"""
        with self._lock:
            return sorted(self._lines)

    def _check_closed(self) -> None:
        if self._closed:
            raise ClosedHandleError("GPIO controller has been closed")

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def get_chip_info(self) -> ChipInfo:
        """Get name, label and line count of the chip"""
        self._check_closed()
        return self.backend.get_chip_info(self._chip)

    def get_line_info(self, pin: int) -> LineInfo:
        """Get the kernel's view of one line (name, owner, direction)"""
        self._check_closed()
        self._validate_pin(pin)
        return self.backend.get_line_info(self._chip, pin)

    def find_pin(self, name: str) -> int:
        """
        Find a pin number by its line name.

        Raises:
            LineNotFoundError: If no line has that name
        """
        self._check_closed()
        offset = self.backend.find_line(self._chip, name)
        if offset is None or offset < 0:
            raise LineNotFoundError(f"Pin not found: {name}")
        return offset

    # =========================================================================
    # LINE LEASING
    # =========================================================================

    def output(
        self,
        pin: int,
        initial_value: bool = False,
        active_low: bool = False,
    ) -> GPIOOutput:
        """
        Create a digital output.

        Args:
            pin: Line offset on this chip
            initial_value: State driven as soon as the line is requested
            active_low: Invert the physical level

        Raises:
            ResourceInUseError: Pin already leased from this controller
            RequestFailedError: Kernel refused the request
        """
        settings = LineSettings(
            direction=Direction.OUTPUT,
            active_low=active_low,
            output_value=bool(initial_value),
        )

        def build(request):
            return GPIOOutput(
                self.backend,
                request,
                pin,
                bool(initial_value),
                on_release=self._on_line_released,
            )

        handle = self._lease(pin, settings, build)
        self.logger.debug(
            f"Pin {pin} leased as OUTPUT (initial: {bool(initial_value)}, "
            f"active_low: {active_low})",
        )
        return handle

    def input(
        self,
        pin: int,
        bias: Union[str, Bias] = Bias.DISABLED,
        edge: Union[str, EdgeMode] = EdgeMode.NONE,
        active_low: bool = False,
        debounce_ms: float = 0,
    ) -> GPIOInput:
        """
        Create a digital input.

        Args:
            pin: Line offset on this chip
            bias: "disabled", "pull-up" or "pull-down"
            edge: "none", "rising", "falling" or "both"
            active_low: Invert the physical level
            debounce_ms: Kernel debounce period (0 = off)

        Raises:
            InvalidParameterError: Unknown bias/edge or negative debounce
            ResourceInUseError: Pin already leased from this controller
            RequestFailedError: Kernel refused the request
        """
        bias = _to_enum(Bias, bias, "bias")
        edge = _to_enum(EdgeMode, edge, "edge")
        if debounce_ms < 0:
            raise InvalidParameterError(
                f"Debounce must be non-negative, got {debounce_ms}ms",
            )

        settings = LineSettings(
            direction=Direction.INPUT,
            bias=bias,
            edge=edge,
            active_low=active_low,
            debounce_us=int(debounce_ms * US_PER_MS),
        )

        def build(request):
            return GPIOInput(
                self.backend,
                request,
                pin,
                edge,
                on_release=self._on_line_released,
            )

        handle = self._lease(pin, settings, build)
        self.logger.debug(
            f"Pin {pin} leased as INPUT (bias: {bias.value}, edge: {edge.value}, "
            f"debounce: {debounce_ms}ms)",
        )
        return handle

    def _lease(self, pin: int, settings: LineSettings, build):
        """Reserve the offset, request it from the kernel, wrap it in a handle"""
        self._check_closed()
        self._validate_pin(pin)

        with self._lock:
            if pin in self._lines:
                raise ResourceInUseError(f"GPIO pin {pin} is already in use")

            request = self.backend.request_lines(
                self._chip,
                [pin],
                settings,
                self._consumer,
            )
            handle = build(request)
            self._lines[pin] = handle

        return handle

    def _on_line_released(self, handle: LeasedResource) -> None:
        with self._lock:
            if self._lines.get(handle.resource_id) is handle:
                del self._lines[handle.resource_id]

    @staticmethod
    def _validate_pin(pin: int) -> None:
        if not isinstance(pin, int) or isinstance(pin, bool) or pin < 0:
            raise InvalidParameterError(f"Pin must be a non-negative integer, got {pin!r}")

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    def close(self) -> list[Exception]:
        """
        Close all GPIO resources.

        Every open line is released first (a failing line doesn't stop the
        others), then the chip itself. Safe to call multiple times.

        Returns:
            Errors raised by individual lines while closing (also logged)
        """
        if self._closed:
            return []

        with self._lock:
            handles = list(self._lines.values())

        errors: list[Exception] = []
        for handle in handles:
            try:
                handle.close()
            except Exception as e:
                self.logger.warning(f"Error closing {handle!r}: {e}")
                errors.append(e)

        with self._lock:
            self._lines.clear()

        try:
            self.backend.close_chip(self._chip)
        finally:
            self._closed = True

        self.logger.info(
            f"GPIO controller closed {self._path} "
            f"({len(handles)} line(s) released, {len(errors)} error(s))",
        )
        return errors

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
