"""
Hardware PWM Controller

Drives the kernel's sysfs PWM interface (/sys/class/pwm/pwmchipN).

Exporting a channel is not a single write. The kernel and udev race us:
1. Write N to `export` - fails with EBUSY if pwmN/ is already exported
2. pwmN/ appears asynchronously, so poll for it (10 x 10ms)
3. udev fixes the group/mode of pwmN/* a little later still, so poll
   until `period` is writable (50 x 20ms)
4. Only then write period, duty_cycle and enable, in that order

Each failure is a distinct exception with a hint about how to fix it.

Usage:
    with PWMController("/sys/class/pwm/pwmchip0") as pwm:
        fan = pwm.channel(0, frequency_hz=25000, duty_cycle=0.4)
        fan.set_duty_cycle(0.8)
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from board_io.constants import (
    DEFAULT_PWM_CHIP,
    PWM_DEFAULT_DUTY,
    PWM_DEFAULT_FREQUENCY,
    PWM_EXPORT_RETRIES,
    PWM_EXPORT_RETRY_DELAY,
    PWM_PERMISSION_RETRIES,
    PWM_PERMISSION_RETRY_DELAY,
)
from board_io.controllers.leased_resource import LeasedResource
from board_io.errors import (
    BackendError,
    ChannelInUseError,
    ChipOpenFailedError,
    ClosedHandleError,
    ExportFailedError,
    ExportTimeoutError,
    InvalidParameterError,
    PermissionDeniedError,
)
from board_io.factory import create_sysfs
from board_io.implementations.local_sysfs import LocalSysfs
from board_io.interfaces.sysfs_interface import SysfsInterface
from board_io.utils.permissions import (
    get_permission_error_message,
    get_udev_hint,
    in_gpio_group,
)
from board_io.utils.pwm_utils import (
    duty_ns_for,
    period_ns_for,
    safe_sysfs_write,
    validate_duty_cycle,
    validate_frequency,
)


@dataclass(frozen=True)
class PermissionCheckResult:
    """Outcome of PWMController.check_permissions()"""
    can_write: bool
    in_gpio_group: bool
    message: str


class PWMChannel(LeasedResource):
    """
    One exported, enabled PWM channel.

    Created by PWMController.channel() - don't instantiate directly.
    The duty time in nanoseconds is always derived from the period and the
    duty ratio, so changing the frequency keeps the ratio.
    """

    resource_kind = "PWMChannel"
    id_label = "channel"

    def __init__(
        self,
        sysfs: SysfsInterface,
        chip_path: str,
        channel: int,
        frequency_hz: float,
        duty_cycle: float,
        on_release: Optional[Callable[[LeasedResource], None]] = None,
    ):
        super().__init__(channel, on_release)
        self._sysfs = sysfs
        self._chip_path = chip_path
        self._path = f"{chip_path}/pwm{channel}"

        self._period_ns = period_ns_for(frequency_hz)
        self._duty_cycle = duty_cycle

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def channel(self) -> int:
        return self._resource_id

    @property
    def path(self) -> str:
        """sysfs directory of this channel (pwmN/)"""
        return self._path

    @property
    def period_ns(self) -> int:
        return self._period_ns

    @property
    def duty_cycle(self) -> float:
        """Duty ratio, 0.0 - 1.0"""
        return self._duty_cycle

    @property
    def duty_ns(self) -> int:
        return duty_ns_for(self._period_ns, self._duty_cycle)

    @property
    def frequency_hz(self) -> float:
        return 1e9 / self._period_ns

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------

    def set_frequency(self, frequency_hz: float) -> "PWMChannel":
        """
        Change the frequency, keeping the duty ratio.

        Raises:
            InvalidParameterError: frequency <= 0 (nothing is written)
        """
        validate_frequency(frequency_hz)
        self._check_closed()

        period_ns = period_ns_for(frequency_hz)
        self._write_timing(period_ns, self._duty_cycle, self.duty_ns)
        self._period_ns = period_ns

        self.logger.debug(
            f"PWM channel {self.channel}: frequency {frequency_hz}Hz "
            f"(period {period_ns}ns, duty {self.duty_ns}ns)",
        )
        return self

    def set_duty_cycle(self, duty_cycle: float) -> "PWMChannel":
        """
        Change the duty ratio. Only duty_cycle is written.

        Raises:
            InvalidParameterError: duty cycle outside [0, 1]
        """
        validate_duty_cycle(duty_cycle)
        self._check_closed()

        self._write("duty_cycle", duty_ns_for(self._period_ns, duty_cycle))
        self._duty_cycle = duty_cycle

        self.logger.debug(
            f"PWM channel {self.channel}: duty cycle {duty_cycle} ({self.duty_ns}ns)",
        )
        return self

    # -------------------------------------------------------------------------
    # sysfs access
    # -------------------------------------------------------------------------

    def _configure(self, current_duty_ns: int) -> None:
        """Initial setup after export: period, duty_cycle, then enable"""
        self._write_timing(self._period_ns, self._duty_cycle, current_duty_ns)
        self._write("enable", 1)

    def _write_timing(self, period_ns: int, duty_cycle: float, current_duty_ns: int) -> None:
        duty_ns = duty_ns_for(period_ns, duty_cycle)

        # The kernel rejects a period shorter than the duty time currently
        # programmed, so shrink the duty first in that one case
        if period_ns < current_duty_ns:
            self._write("duty_cycle", duty_ns)
            self._write("period", period_ns)
        else:
            self._write("period", period_ns)
            self._write("duty_cycle", duty_ns)

    def _write(self, attribute: str, value: int) -> None:
        path = f"{self._path}/{attribute}"
        try:
            self._sysfs.write_value(path, value)
        except OSError as e:
            raise BackendError(f"Failed to write {value} to {path}: {e}") from e

    def _release(self) -> None:
        # Disable first so the pin doesn't keep toggling after unexport
        safe_sysfs_write(self._sysfs, f"{self._path}/enable", 0, self.logger)
        safe_sysfs_write(
            self._sysfs,
            f"{self._chip_path}/unexport",
            self.channel,
            self.logger,
        )


class PWMController:
    """
    Hardware PWM controller for a pwmchip.

    Tracks the channels it exported; each channel index can be held once.
    """

    def __init__(
        self,
        chip_path: str = DEFAULT_PWM_CHIP,
        sysfs: Optional[SysfsInterface] = None,
    ):
        """
        Initialize PWM controller.

        Args:
            chip_path: PWM chip directory (e.g. /sys/class/pwm/pwmchip0)
            sysfs: Filesystem access, or None to auto-create.
                   Tests pass a MockSysfs here.

        Raises:
            ChipOpenFailedError: Chip directory or export file missing
            PermissionDeniedError: export is not writable (see .hint)
        """
        self.logger = logging.getLogger(__name__)

        self.sysfs = sysfs or create_sysfs(chip_path=chip_path)
        self._path = chip_path.rstrip("/")

        self._channels: dict[int, PWMChannel] = {}
        # Channel indices being acquired right now (not yet in _channels)
        self._reserved: set[int] = set()
        self._lock = threading.Lock()
        self._closed = False

        self._check_chip()

        self.logger.info(f"PWM controller opened {self._path}")

    def _check_chip(self) -> None:
        if not self.sysfs.is_dir(self._path):
            raise ChipOpenFailedError(f"PWM chip not found at {self._path}")

        export_path = f"{self._path}/export"
        if not self.sysfs.exists(export_path):
            raise ChipOpenFailedError(f"Export file not found at {export_path}")

        if not self.sysfs.is_writable(export_path):
            raise PermissionDeniedError(
                f"Cannot open PWM chip {self._path}",
                get_permission_error_message(self._path),
            )

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def channels(self) -> list[int]:
        """Indices of channels currently held, sorted"""
        with self._lock:
            return sorted(self._channels)

    @property
    def num_channels(self) -> int:
        """Number of channels the chip provides (npwm)"""
        self._check_closed()
        try:
            return int(self.sysfs.read_value(f"{self._path}/npwm"))
        except (OSError, ValueError) as e:
            raise BackendError(f"Cannot read npwm of {self._path}: {e}") from e

    def _check_closed(self) -> None:
        if self._closed:
            raise ClosedHandleError("PWM controller has been closed")

    # =========================================================================
    # CHANNEL ACQUISITION
    # =========================================================================

    def channel(
        self,
        channel: int,
        frequency_hz: float = PWM_DEFAULT_FREQUENCY,
        duty_cycle: float = PWM_DEFAULT_DUTY,
    ) -> PWMChannel:
        """
        Export, configure and enable a PWM channel.

        Args:
            channel: Channel index on this chip
            frequency_hz: Initial frequency
            duty_cycle: Initial duty ratio (0.0 - 1.0)

        Raises:
            InvalidParameterError: Bad channel, frequency or duty cycle
            ChannelInUseError: Channel already held by this controller
            ExportFailedError: Kernel refused the export
            ExportTimeoutError: pwmN/ never appeared
            PermissionDeniedError: pwmN/period never became writable
        """
        self._check_closed()
        if not isinstance(channel, int) or isinstance(channel, bool) or channel < 0:
            raise InvalidParameterError(
                f"Channel must be a non-negative integer, got {channel!r}",
            )
        validate_frequency(frequency_hz)
        validate_duty_cycle(duty_cycle)

        with self._lock:
            if channel in self._channels or channel in self._reserved:
                raise ChannelInUseError(f"PWM channel {channel} is already in use")
            self._reserved.add(channel)

        try:
            handle = self._acquire(channel, frequency_hz, duty_cycle)
            with self._lock:
                self._channels[channel] = handle
        finally:
            with self._lock:
                self._reserved.discard(channel)

        self.logger.info(
            f"PWM channel {channel} enabled: {handle.frequency_hz:g}Hz, "
            f"duty {duty_cycle} ({handle.duty_ns}/{handle.period_ns}ns)",
        )
        return handle

    def _acquire(self, channel: int, frequency_hz: float, duty_cycle: float) -> PWMChannel:
        channel_path = f"{self._path}/pwm{channel}"

        newly_exported = self._export(channel, channel_path)
        if newly_exported:
            self._wait_for_export(channel, channel_path)
        self._wait_for_permissions(f"{channel_path}/period")

        handle = PWMChannel(
            self.sysfs,
            self._path,
            channel,
            frequency_hz,
            duty_cycle,
            on_release=self._on_channel_released,
        )

        try:
            handle._configure(self._read_duty_ns(channel_path))
        except BackendError:
            if newly_exported:
                safe_sysfs_write(self.sysfs, f"{self._path}/unexport", channel, self.logger)
            raise

        return handle

    def _export(self, channel: int, channel_path: str) -> bool:
        """
        Write the channel index to `export`.

        Returns:
            True if we exported it, False if it was already exported
        """
        try:
            self.sysfs.write_value(f"{self._path}/export", channel)
        except OSError as e:
            if self.sysfs.is_dir(channel_path):
                self.logger.debug(f"PWM channel {channel} already exported, reusing it")
                return False
            raise ExportFailedError(f"Failed to export PWM channel {channel}: {e}") from e

        self.logger.debug(f"PWM channel {channel} exported")
        return True

    def _wait_for_export(self, channel: int, channel_path: str) -> None:
        for _ in range(PWM_EXPORT_RETRIES):
            if self.sysfs.is_dir(channel_path):
                return
            time.sleep(PWM_EXPORT_RETRY_DELAY)

        safe_sysfs_write(self.sysfs, f"{self._path}/unexport", channel, self.logger)
        raise ExportTimeoutError(
            f"PWM channel {channel} did not appear at {channel_path} after export",
            "Check that the channel exists on this chip (npwm) and that the "
            "PWM overlay is enabled.",
        )

    def _wait_for_permissions(self, period_path: str) -> None:
        for _ in range(PWM_PERMISSION_RETRIES):
            if self.sysfs.is_writable(period_path):
                return
            time.sleep(PWM_PERMISSION_RETRY_DELAY)

        raise PermissionDeniedError(
            f"Permission denied: Cannot write to {period_path}",
            get_udev_hint(period_path),
        )

    def _read_duty_ns(self, channel_path: str) -> int:
        """Duty time left programmed by a previous user (0 if unknown)"""
        try:
            return int(self.sysfs.read_value(f"{channel_path}/duty_cycle"))
        except (OSError, ValueError):
            return 0

    def _on_channel_released(self, handle: LeasedResource) -> None:
        with self._lock:
            if self._channels.get(handle.resource_id) is handle:
                del self._channels[handle.resource_id]

    # =========================================================================
    # PERMISSIONS
    # =========================================================================

    @staticmethod
    def check_permissions(
        chip_path: str = DEFAULT_PWM_CHIP,
        sysfs: Optional[SysfsInterface] = None,
    ) -> PermissionCheckResult:
        """
        Check whether this process can use a PWM chip, without touching it.

        Usage:
            result = PWMController.check_permissions()
            if not result.can_write:
                print(result.message)
        """
        sysfs = sysfs or LocalSysfs()
        export_path = f"{chip_path.rstrip('/')}/export"

        can_write = sysfs.exists(export_path) and sysfs.is_writable(export_path)
        in_group = in_gpio_group()

        if can_write:
            message = "PWM permissions are correctly configured."
        else:
            message = get_permission_error_message(chip_path, in_group)

        return PermissionCheckResult(
            can_write=can_write,
            in_gpio_group=in_group,
            message=message,
        )

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    def close(self) -> list[Exception]:
        """
        Disable and unexport every channel still held. Idempotent.

        Returns:
            Errors raised while closing individual channels (also logged)
        """
        if self._closed:
            return []

        with self._lock:
            handles = list(self._channels.values())

        errors: list[Exception] = []
        for handle in handles:
            try:
                handle.close()
            except Exception as e:
                self.logger.warning(f"Error closing {handle!r}: {e}")
                errors.append(e)

        with self._lock:
            self._channels.clear()
        self._closed = True

        self.logger.info(f"PWM controller closed {self._path}")
        return errors

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
