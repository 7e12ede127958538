"""
Board I/O Exceptions

One exception hierarchy for everything that can go wrong talking to GPIO
lines and PWM channels.

Why a hierarchy instead of bare RuntimeError?
- Clear error type (you know it's hardware-related)
- Can catch broadly (except HardwareError) or narrowly
  (except ChannelInUseError)
- Timeout/permission errors carry a remediation hint you can show the user
"""

from typing import Optional


class HardwareError(Exception):
    """Base class for all board_io errors."""


class InvalidParameterError(HardwareError, ValueError):
    """Out-of-range numeric input. Raised before any hardware is touched."""


class ResourceInUseError(HardwareError):
    """A line offset or PWM channel is already leased in this process."""


class ChannelInUseError(ResourceInUseError):
    """A PWM channel is already tracked by this controller."""


class AcquisitionFailedError(HardwareError):
    """The kernel or driver refused to hand over the resource."""


class ChipOpenFailedError(AcquisitionFailedError):
    """The GPIO chip device or PWM chip directory could not be opened."""


class RequestFailedError(AcquisitionFailedError):
    """A GPIO line request was refused (line busy, bad offset, ...)."""


class ExportFailedError(AcquisitionFailedError):
    """Writing to the PWM `export` file failed and no channel appeared."""


class LineNotFoundError(HardwareError, LookupError):
    """No line with the requested name exists on the chip."""


class _RemediationError(HardwareError):
    """Error carrying a human-actionable hint."""

    def __init__(self, message: str, hint: Optional[str] = None):
        self.hint = hint
        if hint:
            message = f"{message}\n{hint}"
        super().__init__(message)


class ExportTimeoutError(_RemediationError):
    """The exported channel directory never showed up."""


class PermissionDeniedError(_RemediationError, PermissionError):
    """Write access to a sysfs control file was never granted."""


class EdgeDetectionDisabledError(HardwareError):
    """Edge APIs used on an input requested with edge="none"."""


class ClosedHandleError(HardwareError):
    """Operation attempted on a released line, channel or controller."""


class BackendError(HardwareError):
    """A kernel primitive failed on an already-acquired resource."""
