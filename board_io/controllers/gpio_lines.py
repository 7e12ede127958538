"""
GPIO Line Handles

GPIOOutput and GPIOInput are what GPIOController.output() / .input() hand
out. Each one owns a single line request and releases it exactly once.

Mutators return the handle itself so calls can be chained:

    led.on().off().toggle()
"""

from typing import Any, AsyncIterator, Callable, Optional

from board_io.controllers.edge_events import EdgeCallback, EdgeEventPipeline
from board_io.controllers.leased_resource import LeasedResource
from board_io.errors import EdgeDetectionDisabledError
from board_io.interfaces.gpio_backend_interface import (
    EdgeEvent,
    EdgeMode,
    GPIOBackendInterface,
)


class GPIOOutput(LeasedResource):
    """
    Digital output pin for controlling LEDs, relays, etc.

    Usage:
        led = gpio.output(17)
        led.on()
        led.toggle()
        led.close()
    """

    resource_kind = "GPIOOutput"
    id_label = "pin"

    def __init__(
        self,
        backend: GPIOBackendInterface,
        request: Any,
        pin: int,
        initial_state: bool,
        on_release: Optional[Callable[[LeasedResource], None]] = None,
    ):
        super().__init__(pin, on_release)
        self._backend = backend
        self._request = request
        self._state = initial_state

    @property
    def pin(self) -> int:
        return self._resource_id

    @property
    def state(self) -> bool:
        """Last value written (logical, i.e. active-low already applied)"""
        return self._state

    def on(self) -> "GPIOOutput":
        """Turn the output on (active)"""
        return self.write(True)

    def off(self) -> "GPIOOutput":
        """Turn the output off (inactive)"""
        return self.write(False)

    def toggle(self) -> "GPIOOutput":
        return self.write(not self._state)

    def write(self, value: bool) -> "GPIOOutput":
        """Write a boolean value to the output"""
        self._check_closed()
        self._backend.set_value(self._request, self.pin, bool(value))
        self._state = bool(value)
        return self

    def _release(self) -> None:
        self._backend.release_request(self._request)


class GPIOInput(LeasedResource):
    """
    Digital input pin for reading buttons, sensors, etc.

    With edge detection enabled the input also delivers edge events:

        button = gpio.input(27, bias="pull-up", edge="falling")
        button.on_edge(lambda event: print(event))
        event = await button.wait_for_edge(timeout_ms=1000)
        async for event in button.edges():
            ...
    """

    resource_kind = "GPIOInput"
    id_label = "pin"

    def __init__(
        self,
        backend: GPIOBackendInterface,
        request: Any,
        pin: int,
        edge: EdgeMode,
        on_release: Optional[Callable[[LeasedResource], None]] = None,
    ):
        super().__init__(pin, on_release)
        self._backend = backend
        self._request = request
        self._edge = edge

        # Only lines with edge detection get an event pipeline (and buffer)
        self._events: Optional[EdgeEventPipeline] = None
        if edge != EdgeMode.NONE:
            self._events = EdgeEventPipeline(backend, request, pin)

    @property
    def pin(self) -> int:
        return self._resource_id

    @property
    def edge(self) -> EdgeMode:
        """Edge detection setting (fixed when the line was requested)"""
        return self._edge

    @property
    def value(self) -> bool:
        """Alias for read()"""
        return self.read()

    def read(self) -> bool:
        """Read the current logical value of the input"""
        self._check_closed()
        return self._backend.get_value(self._request, self.pin)

    # -------------------------------------------------------------------------
    # Edge events
    # -------------------------------------------------------------------------

    def _require_events(self) -> EdgeEventPipeline:
        self._check_closed()
        if self._events is None:
            raise EdgeDetectionDisabledError(
                f"Edge detection is not enabled for pin {self.pin}",
            )
        return self._events

    def on_edge(self, callback: EdgeCallback) -> "GPIOInput":
        """
        Register a callback for edge events.

        Starts polling automatically when the first callback is registered.
        Must be called from inside a running asyncio event loop.
        """
        self._require_events().add_callback(callback)
        return self

    def off_edge(self, callback: EdgeCallback) -> "GPIOInput":
        """Remove an edge callback. Polling stops with the last one."""
        if self._events is not None:
            self._events.remove_callback(callback)
        return self

    async def wait_for_edge(self, timeout_ms: Optional[float] = None) -> Optional[EdgeEvent]:
        """
        Wait for a single edge event.

        Args:
            timeout_ms: Timeout in milliseconds (default: wait forever,
                        0 = don't wait at all)

        Returns:
            The event, or None on timeout
        """
        return await self._require_events().wait_for_edge(timeout_ms)

    def edges(self) -> AsyncIterator[EdgeEvent]:
        """
        Async iterator over edge events, ends when the input is closed.

        Usage:
            async for event in button.edges():
                print(event.type, event.timestamp_ns)
        """
        return self._require_events().iterate()

    def _release(self) -> None:
        if self._events is not None:
            self._events.close()
        self._backend.release_request(self._request)
