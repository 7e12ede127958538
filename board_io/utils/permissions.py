"""
Permission Helpers

Non-root access to /sys/class/pwm depends on two things set up outside
this process: membership in the gpio group and a udev rule that hands the
sysfs tree to that group. These helpers detect what's missing and build a
message that tells the user how to fix it.
"""

import grp
import os
import pwd
from typing import Optional

from board_io.constants import PRIVILEGED_GROUP, PWM_SETUP_SCRIPT

UDEV_RULE = (
    "SUBSYSTEM==\"pwm*\", PROGRAM=\"/bin/sh -c 'chown -R root:gpio /sys/class/pwm "
    "&& chmod -R 770 /sys/class/pwm; "
    "chown -R root:gpio /sys/devices/platform/soc/*.pwm/pwm/pwmchip* 2>/dev/null; "
    "chmod -R 770 /sys/devices/platform/soc/*.pwm/pwm/pwmchip* 2>/dev/null'\""
)


def in_gpio_group(group: str = PRIVILEGED_GROUP) -> bool:
    """
    Check if the current process belongs to the gpio group.

    Looks at the process's supplementary groups first, then at the group's
    member list (membership added since login isn't active yet, but it's
    still worth reporting as "in the group").

    Returns:
        False if the group doesn't exist at all
    """
    try:
        entry = grp.getgrnam(group)
    except KeyError:
        return False

    if entry.gr_gid in os.getgroups() or entry.gr_gid == os.getegid():
        return True

    try:
        username = pwd.getpwuid(os.geteuid()).pw_name
    except KeyError:
        return False
    return username in entry.gr_mem


def get_permission_error_message(chip_path: str, in_group: Optional[bool] = None) -> str:
    """
    Build the remediation text for a PWM permission failure.

    Args:
        chip_path: PWM chip directory, e.g. /sys/class/pwm/pwmchip0
        in_group: Group membership if already known (checked otherwise)
    """
    if in_group is None:
        in_group = in_gpio_group()

    lines = [f"Permission denied: Cannot write to {chip_path}/export", ""]

    if not in_group:
        lines.append(f"You are not in the {PRIVILEGED_GROUP} group.")
    else:
        lines.append("The udev rule may not be installed or active yet.")

    lines += [
        "",
        f"Quick fix: sudo bash {PWM_SETUP_SCRIPT}",
        "",
        "Or manually:",
        f"  1. Add yourself to the {PRIVILEGED_GROUP} group: "
        f"sudo usermod -aG {PRIVILEGED_GROUP} $USER",
        "  2. Install udev rule: sudo tee /etc/udev/rules.d/99-pwm.rules << 'EOF'",
        f"     {UDEV_RULE}",
        "     EOF",
        "  3. Reload udev: sudo udevadm control --reload-rules && sudo udevadm trigger",
        "  4. Log out and back in",
    ]
    return "\n".join(lines)


def get_udev_hint(path: str) -> str:
    """Short hint for a channel file that never became writable"""
    return (
        f"The udev rule may not have set permissions on {path} yet, "
        f"or you may need to run:\n  sudo bash {PWM_SETUP_SCRIPT}"
    )
