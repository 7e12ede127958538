"""
Sysfs Interface - Abstract Filesystem Layer

The hardware PWM driver is controlled entirely through small text files
under /sys/class/pwm/pwmchipN. This interface is the tiny slice of the
filesystem the PWM controller needs.

Why not just call open() directly?
- The kernel side is asynchronous (export creates pwmN/ "later", udev fixes
  permissions "later"). A fake filesystem lets tests reproduce those races
  deterministically.
- Writes must stay synchronous and in order. Keeping them behind one method
  makes that guarantee easy to audit.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


class SysfsInterface(ABC):
    """Minimal filesystem operations used by the PWM controller"""

    @abstractmethod
    def exists(self, path: PathLike) -> bool:
        """True if the file or directory exists"""

    @abstractmethod
    def is_dir(self, path: PathLike) -> bool:
        """True if path is an existing directory"""

    @abstractmethod
    def is_writable(self, path: PathLike) -> bool:
        """True if the calling process may write to path"""

    @abstractmethod
    def write_value(self, path: PathLike, value: Union[int, str]) -> None:
        """
        Write a decimal ASCII value to a sysfs attribute.

        The write is synchronous and unbuffered: when this returns the
        kernel has seen the value.

        Raises:
            OSError: Whatever the kernel answered (EBUSY, EINVAL, EACCES, ...)
        """

    @abstractmethod
    def read_value(self, path: PathLike) -> str:
        """Read a sysfs attribute, stripped of its trailing newline"""
