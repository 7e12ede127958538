"""
Leased Resource Handle

Base class for everything a controller hands out: GPIO lines, PWM channels.
It owns exactly one leased kernel resource and guarantees that resource is
released exactly once.

Lifecycle:
    controller.output(17)  -> handle (open)
    handle.close()         -> _release() runs, owner is notified
    handle.close()         -> no-op
    handle.on()            -> ClosedHandleError (never reaches hardware)
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from board_io.errors import ClosedHandleError


class LeasedResource(ABC):
    """
    One leased line or channel.

    Subclasses implement _release(); close() takes care of release-once,
    thread safety and telling the owning controller the id is free again.
    """

    # Used in log and error messages, e.g. "GPIOOutput on pin 17"
    resource_kind = "resource"
    id_label = "id"

    def __init__(
        self,
        resource_id: int,
        on_release: Optional[Callable[["LeasedResource"], None]] = None,
    ):
        self.logger = logging.getLogger(self.__class__.__module__)

        self._resource_id = resource_id
        self._on_release = on_release
        self._closed = False
        self._close_lock = threading.Lock()

    @property
    def resource_id(self) -> int:
        return self._resource_id

    @property
    def closed(self) -> bool:
        """Check if the resource has been released"""
        return self._closed

    def _check_closed(self) -> None:
        """Fail fast before touching hardware on a released handle"""
        if self._closed:
            raise ClosedHandleError(
                f"{self.resource_kind} on {self.id_label} {self._resource_id} "
                f"has been closed",
            )

    @abstractmethod
    def _release(self) -> None:
        """Give the resource back to the kernel. Called at most once."""

    def close(self) -> None:
        """
        Release the resource.

        Safe to call multiple times - idempotent. The handle is marked closed
        even if the release itself fails; the error is re-raised.
        """
        with self._close_lock:
            if self._closed:
                return
            try:
                self._release()
            finally:
                self._closed = True
                if self._on_release is not None:
                    self._on_release(self)

        self.logger.debug(
            f"{self.resource_kind} on {self.id_label} {self._resource_id} released",
        )

    def __enter__(self):
        """
        Enter context manager.

        Usage:
            with gpio.output(17) as led:
                led.on()
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager - always release. Propagates exceptions."""
        self.close()
        return False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<{self.__class__.__name__} {self.id_label}={self._resource_id} {state}>"
