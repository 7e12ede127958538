"""
libgpiod GPIO Backend

Concrete implementation of GPIOBackendInterface using the official libgpiod
v2 Python bindings (`pip install gpiod`). This is the recommended GPIO
interface on Raspberry Pi OS Bookworm and newer - RPi.GPIO does not work on
the Pi 5.

Why wrap an existing library?
1. Decoupling: if the bindings change, only this file needs updating
2. Error translation: OSError from the kernel becomes a typed board_io error
3. Testing: can swap this for MockGPIOBackend in tests
"""

import logging
from datetime import timedelta
from typing import Any, Optional, Sequence

try:
    import gpiod
    from gpiod.edge_event import EdgeEvent as GpiodEdgeEvent
    from gpiod.line import Bias as GpiodBias
    from gpiod.line import Direction as GpiodDirection
    from gpiod.line import Edge as GpiodEdge
    from gpiod.line import Value

    GPIOD_AVAILABLE = True
except ImportError:
    GPIOD_AVAILABLE = False

from board_io.constants import EDGE_EVENT_BUFFER_CAPACITY, NS_PER_SECOND
from board_io.errors import (
    BackendError,
    ChipOpenFailedError,
    HardwareError,
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


class GpiodBackend(GPIOBackendInterface):
    """
    GPIO backend on top of the libgpiod v2 Python bindings.

    Translates our enums and dataclasses into gpiod.LineSettings and back.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

        if not GPIOD_AVAILABLE:
            raise HardwareError(
                "gpiod library not available. Install with: pip install gpiod",
            )

        self.logger.info(f"libgpiod backend initialized (api {gpiod.api_version})")

    # -------------------------------------------------------------------------
    # Chip
    # -------------------------------------------------------------------------

    def open_chip(self, path: str) -> Any:
        try:
            chip = gpiod.Chip(path)
        except (OSError, ValueError) as e:
            raise ChipOpenFailedError(f"Failed to open GPIO chip at {path}: {e}") from e
        self.logger.debug(f"Opened GPIO chip {path}")
        return chip

    def close_chip(self, chip: Any) -> None:
        chip.close()

    def get_chip_info(self, chip: Any) -> ChipInfo:
        try:
            info = chip.get_info()
        except OSError as e:
            raise BackendError(f"Failed to get chip info: {e}") from e
        return ChipInfo(
            name=info.name or None,
            label=info.label or None,
            num_lines=int(info.num_lines),
        )

    def get_line_info(self, chip: Any, offset: int) -> LineInfo:
        try:
            info = chip.get_line_info(offset)
        except (OSError, ValueError) as e:
            raise BackendError(f"Failed to get line info for pin {offset}: {e}") from e
        return LineInfo(
            offset=info.offset,
            name=info.name or None,
            used=bool(info.used),
            consumer=info.consumer or None,
            direction=(
                Direction.INPUT
                if info.direction == GpiodDirection.INPUT
                else Direction.OUTPUT
            ),
        )

    def find_line(self, chip: Any, name: str) -> Optional[int]:
        try:
            return chip.line_offset_from_id(name)
        except (OSError, ValueError):
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
        line_settings = self._to_gpiod_settings(settings)
        try:
            request = chip.request_lines(
                config={tuple(offsets): line_settings},
                consumer=consumer,
                event_buffer_size=EDGE_EVENT_BUFFER_CAPACITY,
            )
        except (OSError, ValueError) as e:
            raise RequestFailedError(
                f"Failed to request GPIO pin(s) {list(offsets)} as "
                f"{settings.direction.value}: {e}",
            ) from e

        self.logger.debug(
            f"Requested pin(s) {list(offsets)} as {settings.direction.value} "
            f"(consumer: {consumer})",
        )
        return request

    def release_request(self, request: Any) -> None:
        request.release()

    def get_value(self, request: Any, offset: int) -> bool:
        try:
            return request.get_value(offset) == Value.ACTIVE
        except OSError as e:
            raise BackendError(f"Failed to read GPIO pin {offset}: {e}") from e

    def set_value(self, request: Any, offset: int, value: bool) -> None:
        try:
            request.set_value(offset, Value.ACTIVE if value else Value.INACTIVE)
        except OSError as e:
            raise BackendError(f"Failed to write GPIO pin {offset}: {e}") from e

    # -------------------------------------------------------------------------
    # Edge events
    # -------------------------------------------------------------------------

    def wait_edge_events(self, request: Any, timeout_ns: int) -> bool:
        # gpiod takes seconds (or a timedelta); None means block forever
        timeout = None if timeout_ns < 0 else timeout_ns / NS_PER_SECOND
        try:
            return bool(request.wait_edge_events(timeout))
        except OSError as e:
            raise BackendError(f"Error waiting for edge events: {e}") from e

    def read_edge_events(self, request: Any, max_events: int) -> list[EdgeEvent]:
        try:
            raw_events = request.read_edge_events(max_events)
        except OSError as e:
            raise BackendError(f"Error reading edge events: {e}") from e

        return [
            EdgeEvent(
                type=(
                    EdgeType.RISING
                    if event.event_type == GpiodEdgeEvent.Type.RISING_EDGE
                    else EdgeType.FALLING
                ),
                timestamp_ns=event.timestamp_ns,
                pin=event.line_offset,
                sequence=event.line_seqno,
                global_sequence=event.global_seqno,
            )
            for event in raw_events
        ]

    def is_available(self) -> bool:
        return GPIOD_AVAILABLE

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _to_gpiod_settings(settings: LineSettings) -> "gpiod.LineSettings":
        """Map our LineSettings onto gpiod.LineSettings"""
        if settings.direction == Direction.OUTPUT:
            return gpiod.LineSettings(
                direction=GpiodDirection.OUTPUT,
                output_value=Value.ACTIVE if settings.output_value else Value.INACTIVE,
                active_low=settings.active_low,
            )

        bias_mapping = {
            Bias.DISABLED: GpiodBias.DISABLED,
            Bias.PULL_UP: GpiodBias.PULL_UP,
            Bias.PULL_DOWN: GpiodBias.PULL_DOWN,
        }
        edge_mapping = {
            EdgeMode.NONE: GpiodEdge.NONE,
            EdgeMode.RISING: GpiodEdge.RISING,
            EdgeMode.FALLING: GpiodEdge.FALLING,
            EdgeMode.BOTH: GpiodEdge.BOTH,
        }
        return gpiod.LineSettings(
            direction=GpiodDirection.INPUT,
            bias=bias_mapping[settings.bias],
            edge_detection=edge_mapping[settings.edge],
            active_low=settings.active_low,
            debounce_period=timedelta(microseconds=settings.debounce_us),
        )
