#!/usr/bin/env python3
"""
Quick Check Script - Board I/O Smoke Test

Checks the board end to end:
1. Which backends are real (libgpiod, sysfs PWM)
2. GPIO chip info and the owner of every used line
3. PWM permissions (with the fix-it message if they're missing)
4. Optional: fade an LED with software PWM and watch a button for edges

All configuration at the top for easy override.

Usage:
    python scripts/quick_check.py
    # force the simulated kernel
    HARDWARE_MODE=mock python scripts/quick_check.py
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path to allow imports (MUST be before other imports)
sys.path.insert(0, str(Path(__file__).parent.parent))

from board_io import GPIOController, HardwareError, PWMController, SoftwarePWM
from board_io.factory import HardwareFactory
from board_io.utils.logging_setup import setup_logging

# =============================================================================
# CONFIGURATION - All parameters in one place
# =============================================================================

LED_PIN = 17  # Set to None to skip the fade test
BUTTON_PIN = 27  # Set to None to skip the edge test
FADE_STEPS = 20
FADE_STEP_SECONDS = 0.05
EDGE_WATCH_SECONDS = 5


def print_header(title: str) -> None:
    print()
    print("=" * 60)
    print(title)
    print("=" * 60)


def check_backends() -> None:
    print_header("BACKENDS")
    status = HardwareFactory.is_real_hardware_available()
    print(f"  libgpiod: {'real' if status['gpio'] else 'not available (mock)'}")
    print(f"  PWM sysfs: {'present' if status['pwm'] else 'not present (mock)'}")


def check_gpio(gpio: GPIOController) -> None:
    print_header("GPIO CHIP")
    info = gpio.get_chip_info()
    print(f"  {info.name} [{info.label}] - {info.num_lines} lines")

    for offset in range(info.num_lines):
        line = gpio.get_line_info(offset)
        if line.used:
            print(f"    line {offset:3d} {line.name or '-':12s} used by {line.consumer}")


def check_pwm() -> None:
    print_header("PWM PERMISSIONS")
    result = PWMController.check_permissions()
    print(f"  can write export: {result.can_write}")
    print(f"  in gpio group:    {result.in_gpio_group}")
    print()
    print(result.message)


async def fade_and_watch(gpio: GPIOController) -> None:
    if LED_PIN is not None:
        print_header(f"SOFTWARE PWM FADE (GPIO {LED_PIN})")
        with gpio.output(LED_PIN) as led, SoftwarePWM(led, duty_cycle=0) as pwm:
            for step in range(FADE_STEPS + 1):
                pwm.set_duty_cycle(step / FADE_STEPS)
                await asyncio.sleep(FADE_STEP_SECONDS)
        print("  done")

    if BUTTON_PIN is not None:
        print_header(f"EDGE EVENTS (GPIO {BUTTON_PIN}, {EDGE_WATCH_SECONDS}s)")
        with gpio.input(BUTTON_PIN, bias="pull-up", edge="both", debounce_ms=5) as button:
            button.on_edge(lambda e: print(f"  {e.type.value:7s} seq={e.sequence} t={e.timestamp_ns}"))
            await asyncio.sleep(EDGE_WATCH_SECONDS)


def main() -> int:
    setup_logging()
    check_backends()

    try:
        with GPIOController() as gpio:
            check_gpio(gpio)
            asyncio.run(fade_and_watch(gpio))
    except HardwareError as e:
        print(f"\nGPIO check failed: {e}")
        return 1

    check_pwm()
    return 0


if __name__ == "__main__":
    sys.exit(main())
