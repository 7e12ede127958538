"""
Edge Event Pipeline

Turns the kernel's wait/read primitive for edge events into three ways of
consuming them:

1. Single wait:   event = await button.wait_for_edge(timeout_ms=500)
2. Callbacks:     button.on_edge(handler)   # 1ms poll task dispatches
3. Lazy sequence: async for event in button.edges(): ...

All three sit on the same internal primitive (_poll_once), so the kernel
interaction lives in exactly one place.

Everything runs on the asyncio event loop - no thread per line. Waiting
suspends only the awaiting coroutine; the callback poll is a task that wakes
every millisecond, does a zero-timeout kernel check and goes back to sleep.
"""

import asyncio
import logging
from collections import deque
from typing import Any, AsyncIterator, Callable, Optional

from board_io.constants import (
    EDGE_EVENT_BUFFER_CAPACITY,
    EDGE_ITERATOR_WAIT_MS,
    EDGE_POLL_INTERVAL,
    EDGE_WAIT_SLICE,
)
from board_io.errors import HardwareError
from board_io.interfaces.gpio_backend_interface import (
    EdgeEvent,
    GPIOBackendInterface,
)

EdgeCallback = Callable[[EdgeEvent], None]


class EdgeEventPipeline:
    """
    Edge event source for one input line.

    Created by GPIOInput when the line was requested with edge detection.
    Owns the event buffer and the registered callbacks; GPIOInput owns the
    line request itself.
    """

    def __init__(
        self,
        backend: GPIOBackendInterface,
        request: Any,
        pin: int,
    ):
        self.logger = logging.getLogger(__name__)

        self._backend = backend
        self._request = request
        self._pin = pin

        # Events read from the kernel but not yet handed out
        self._buffer: Optional[deque] = deque(maxlen=EDGE_EVENT_BUFFER_CAPACITY)

        # Registration order == dispatch order
        self._callbacks: list[EdgeCallback] = []
        self._poll_task: Optional[asyncio.Task] = None

        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_polling(self) -> bool:
        """True while the callback poll task is running"""
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def callback_count(self) -> int:
        return len(self._callbacks)

    # -------------------------------------------------------------------------
    # Shared primitive
    # -------------------------------------------------------------------------

    def _poll_once(self, max_events: int) -> int:
        """
        Zero-timeout kernel check; move up to max_events into the buffer.

        Returns:
            Number of events read
        """
        if not self._backend.wait_edge_events(self._request, 0):
            return 0

        events = self._backend.read_edge_events(self._request, max_events)
        self._buffer.extend(events)
        return len(events)

    # -------------------------------------------------------------------------
    # 1. Single wait
    # -------------------------------------------------------------------------

    async def wait_for_edge(self, timeout_ms: Optional[float] = None) -> Optional[EdgeEvent]:
        """
        Wait for the next edge event.

        Args:
            timeout_ms: None or negative = wait forever, 0 = poll once and
                        return immediately, >0 = give up after that long

        Returns:
            The next EdgeEvent, or None on timeout or if the line is
            closed while waiting
        """
        if self._buffer:
            return self._buffer.popleft()

        loop = asyncio.get_running_loop()
        deadline = None
        if timeout_ms is not None and timeout_ms >= 0:
            deadline = loop.time() + timeout_ms / 1000.0

        while not self._closed:
            if self._poll_once(1):
                return self._buffer.popleft()

            if deadline is None:
                await asyncio.sleep(EDGE_WAIT_SLICE)
                continue

            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            await asyncio.sleep(min(EDGE_WAIT_SLICE, remaining))

        return None

    # -------------------------------------------------------------------------
    # 2. Callbacks
    # -------------------------------------------------------------------------

    def add_callback(self, callback: EdgeCallback) -> None:
        """
        Register a callback. The first one starts the poll task.

        Must be called from code running inside the event loop.
        """
        self._callbacks.append(callback)

        if self._poll_task is None:
            self._start_polling()

    def remove_callback(self, callback: EdgeCallback) -> None:
        """Unregister a callback. Removing the last one stops the poll task."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            # Not registered - nothing to do
            pass

        if not self._callbacks:
            self._stop_polling()

    def _start_polling(self) -> None:
        loop = asyncio.get_running_loop()
        self._poll_task = loop.create_task(
            self._poll_loop(),
            name=f"edge-poll-{self._pin}",
        )
        self.logger.debug(f"Edge polling started on pin {self._pin}")

    def _stop_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is None:
            return

        try:
            current = asyncio.current_task()
        except RuntimeError:
            # Closed from outside the event loop
            current = None

        # A callback may unregister itself; the loop then exits on its own
        if not task.done() and task is not current:
            task.cancel()
        self.logger.debug(f"Edge polling stopped on pin {self._pin}")

    async def _poll_loop(self) -> None:
        # A replacement task may have been started if the callbacks were
        # emptied and refilled from inside a callback
        while (
            not self._closed
            and self._callbacks
            and self._poll_task is asyncio.current_task()
        ):
            try:
                self._dispatch_pending()
            except HardwareError as e:
                self.logger.error(
                    f"Edge polling on pin {self._pin} failed, stopping: {e}",
                    exc_info=True,
                )
                self._poll_task = None
                return
            await asyncio.sleep(EDGE_POLL_INTERVAL)

    def _dispatch_pending(self) -> None:
        """One poll tick: drain up to the buffer capacity and fan out"""
        if not self._poll_once(EDGE_EVENT_BUFFER_CAPACITY):
            return

        while self._buffer:
            event = self._buffer.popleft()
            for callback in list(self._callbacks):
                # Unregistered by an earlier callback for this same event
                if callback not in self._callbacks:
                    continue
                try:
                    callback(event)
                except Exception as e:
                    # Never let one callback break the others
                    self.logger.error(f"Error in edge callback: {e}", exc_info=True)

            if self._closed:
                return

    # -------------------------------------------------------------------------
    # 3. Lazy sequence
    # -------------------------------------------------------------------------

    async def iterate(self) -> AsyncIterator[EdgeEvent]:
        """Yield events until the line is closed"""
        while not self._closed:
            event = await self.wait_for_edge(EDGE_ITERATOR_WAIT_MS)
            if event is not None:
                yield event

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Stop polling, drop the buffer and the callbacks. Idempotent."""
        if self._closed:
            return

        self._closed = True
        self._stop_polling()
        self._callbacks.clear()
        self._buffer = None
