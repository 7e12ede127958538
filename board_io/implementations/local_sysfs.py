"""
Local Sysfs Implementation

Concrete SysfsInterface that talks to the real /sys filesystem.

Each write opens the attribute, writes the value and closes it again, so the
kernel sees exactly one write() per value and in the order we issued them.
Keeping a file descriptor open and seeking back works too, but one stale fd
after an unexport is enough to confuse the next export.
"""

import os
from pathlib import Path
from typing import Union

from board_io.interfaces.sysfs_interface import PathLike, SysfsInterface


class LocalSysfs(SysfsInterface):
    """Real filesystem access for /sys/class/pwm"""

    def exists(self, path: PathLike) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: PathLike) -> bool:
        return os.path.isdir(path)

    def is_writable(self, path: PathLike) -> bool:
        return os.access(path, os.W_OK)

    def write_value(self, path: PathLike, value: Union[int, str]) -> None:
        with open(path, "w") as f:
            f.write(str(value))

    def read_value(self, path: PathLike) -> str:
        return Path(path).read_text().strip()
