"""
Mock Sysfs Implementation

In-memory model of /sys/class/pwm/pwmchipN for development and testing.

It reproduces the kernel/udev behaviours the PWM controller has to
cope with:
1. Export is asynchronous: pwmN/ appears a few polls after the write
2. Permissions are fixed up by udev a few polls after pwmN/ appears
3. Re-exporting an already exported channel fails with EBUSY
4. duty_cycle can never exceed period (either write fails with EINVAL)

Every write is recorded so tests can assert on the exact sequence the
kernel would have seen.
"""

import errno
import logging
from pathlib import Path
from typing import Optional, Union

from board_io.constants import DEFAULT_PWM_CHIP
from board_io.interfaces.sysfs_interface import PathLike, SysfsInterface

CHANNEL_ATTRIBUTES = ("period", "duty_cycle", "enable", "polarity")


class MockSysfs(SysfsInterface):
    """
    Simulated PWM sysfs tree.

    Usage:
        sysfs = MockSysfs(export_delay_polls=3, permission_delay_polls=5)
        pwm = PWMController(sysfs=sysfs)
        channel = pwm.channel(0, frequency_hz=1000, duty_cycle=0.5)
        sysfs.read_value("/sys/class/pwm/pwmchip0/pwm0/period")  # "1000000"
    """

    def __init__(
        self,
        chips: Optional[dict[str, int]] = None,
        export_delay_polls: int = 0,
        permission_delay_polls: int = 0,
    ):
        """
        Args:
            chips: Map of chip directory -> number of channels (npwm)
            export_delay_polls: is_dir() checks before pwmN/ shows up
            permission_delay_polls: is_writable() checks on a channel file
                                    before udev "fixes" its permissions
        """
        self.logger = logging.getLogger(__name__)

        self.export_delay_polls = export_delay_polls
        self.permission_delay_polls = permission_delay_polls

        self._dirs: set[str] = set()
        self._files: dict[str, str] = {}
        self._read_only: set[str] = set()

        # channel dir -> polls left before it appears
        self._pending_exports: dict[str, int] = {}
        # channel dir -> is_writable() polls left before permissions are fixed
        self._pending_permissions: dict[str, int] = {}

        # (path, value) for every successful write, in order
        self.write_log: list[tuple[str, str]] = []
        # (path, value) for every attempted write, including failures
        self.attempt_log: list[tuple[str, str]] = []

        for chip, npwm in (chips or {DEFAULT_PWM_CHIP: 2}).items():
            self.add_chip(chip, npwm)

        self.logger.info("Mock sysfs initialized (simulation mode)")

    # -------------------------------------------------------------------------
    # SysfsInterface
    # -------------------------------------------------------------------------

    def exists(self, path: PathLike) -> bool:
        key = self._key(path)
        self._advance_export(key)
        return key in self._dirs or key in self._files

    def is_dir(self, path: PathLike) -> bool:
        key = self._key(path)
        self._advance_export(key)
        return key in self._dirs

    def is_writable(self, path: PathLike) -> bool:
        key = self._key(path)
        if key not in self._files:
            return False

        channel_dir = str(Path(key).parent)
        remaining = self._pending_permissions.get(channel_dir, 0)
        if remaining > 0:
            self._pending_permissions[channel_dir] = remaining - 1
            return False

        return key not in self._read_only

    def write_value(self, path: PathLike, value: Union[int, str]) -> None:
        key = self._key(path)
        text = str(value)
        self.attempt_log.append((key, text))

        if key not in self._files:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", key)
        if key in self._read_only or self._pending_permissions.get(
            str(Path(key).parent), 0
        ) > 0:
            raise PermissionError(errno.EACCES, "Permission denied", key)

        name = Path(key).name
        parent = str(Path(key).parent)
        if name == "export":
            self._export(parent, self._parse_int(text, key))
        elif name == "unexport":
            self._unexport(parent, self._parse_int(text, key))
        elif name == "duty_cycle":
            period = int(self._files[str(Path(parent) / "period")])
            if self._parse_int(text, key) > period:
                raise OSError(errno.EINVAL, "Invalid argument", key)
        elif name == "period":
            duty = int(self._files[str(Path(parent) / "duty_cycle")])
            if self._parse_int(text, key) < duty:
                raise OSError(errno.EINVAL, "Invalid argument", key)

        self._files[key] = text
        self.write_log.append((key, text))

    def read_value(self, path: PathLike) -> str:
        key = self._key(path)
        if key not in self._files:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", key)
        return self._files[key]

    # =========================================================================
    # TESTING HELPER METHODS (not part of SysfsInterface)
    # =========================================================================

    def add_chip(self, chip_path: PathLike, npwm: int = 2) -> None:
        chip = self._key(chip_path)
        self._dirs.add(chip)
        self._files[f"{chip}/export"] = ""
        self._files[f"{chip}/unexport"] = ""
        self._files[f"{chip}/npwm"] = str(npwm)

    def pre_export(
        self,
        chip_path: PathLike,
        channel: int,
        period_ns: int = 0,
        duty_ns: int = 0,
    ) -> None:
        """Export a channel "behind our back" (another process, a previous run)"""
        channel_dir = f"{self._key(chip_path)}/pwm{channel}"
        self._create_channel(channel_dir)
        self._files[f"{channel_dir}/period"] = str(period_ns)
        self._files[f"{channel_dir}/duty_cycle"] = str(duty_ns)

    def set_read_only(self, path: PathLike, read_only: bool = True) -> None:
        key = self._key(path)
        if read_only:
            self._read_only.add(key)
        else:
            self._read_only.discard(key)

    def writes_to(self, name: str) -> list[tuple[str, str]]:
        """Successful writes whose file name is `name` (e.g. "unexport")"""
        return [(p, v) for p, v in self.write_log if Path(p).name == name]

    def clear_log(self) -> None:
        self.write_log.clear()
        self.attempt_log.clear()

    # -------------------------------------------------------------------------
    # Kernel simulation
    # -------------------------------------------------------------------------

    def _export(self, chip: str, channel: int) -> None:
        npwm = int(self._files[f"{chip}/npwm"])
        if channel < 0 or channel >= npwm:
            raise OSError(errno.EINVAL, "Invalid argument", f"{chip}/export")

        channel_dir = f"{chip}/pwm{channel}"
        if channel_dir in self._dirs or channel_dir in self._pending_exports:
            raise OSError(errno.EBUSY, "Device or resource busy", f"{chip}/export")

        if self.export_delay_polls > 0:
            self._pending_exports[channel_dir] = self.export_delay_polls
        else:
            self._create_channel(channel_dir)

    def _unexport(self, chip: str, channel: int) -> None:
        channel_dir = f"{chip}/pwm{channel}"
        self._pending_exports.pop(channel_dir, None)
        if channel_dir not in self._dirs:
            raise OSError(errno.EINVAL, "Invalid argument", f"{chip}/unexport")

        self._dirs.discard(channel_dir)
        self._pending_permissions.pop(channel_dir, None)
        for attribute in CHANNEL_ATTRIBUTES:
            self._files.pop(f"{channel_dir}/{attribute}", None)

    def _advance_export(self, key: str) -> None:
        remaining = self._pending_exports.get(key)
        if remaining is None:
            return
        if remaining <= 1:
            del self._pending_exports[key]
            self._create_channel(key)
        else:
            self._pending_exports[key] = remaining - 1

    def _create_channel(self, channel_dir: str) -> None:
        self._dirs.add(channel_dir)
        self._files[f"{channel_dir}/period"] = "0"
        self._files[f"{channel_dir}/duty_cycle"] = "0"
        self._files[f"{channel_dir}/enable"] = "0"
        self._files[f"{channel_dir}/polarity"] = "normal"
        if self.permission_delay_polls > 0:
            self._pending_permissions[channel_dir] = self.permission_delay_polls

    @staticmethod
    def _parse_int(text: str, key: str) -> int:
        try:
            return int(text.strip())
        except ValueError as e:
            raise OSError(errno.EINVAL, "Invalid argument", key) from e

    @staticmethod
    def _key(path: PathLike) -> str:
        return str(Path(path))
