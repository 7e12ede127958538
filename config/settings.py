"""
Central Configuration File

ALL configuration values live here. This is the single source of truth.

Guidelines:
- Machine-specific overrides belong in .env, NOT here
- Import these settings in modules: from config.settings import GPIO_CHIP_PATH
- Keep values board-agnostic (Raspberry Pi 5 defaults are only defaults)
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# =============================================================================
# HARDWARE CONFIGURATION
# =============================================================================

# GPIO character device (libgpiod v2). On a Pi 5 the header pins live on
# gpiochip0 (older kernels exposed them as gpiochip4).
GPIO_CHIP_PATH = os.getenv("GPIO_CHIP_PATH", "/dev/gpiochip0")

# Consumer label reported to the kernel for every line we request.
# Shows up in `gpioinfo` so you can see who owns a line.
GPIO_CONSUMER = os.getenv("GPIO_CONSUMER", "board-io")

# Hardware PWM sysfs directory
PWM_CHIP_PATH = os.getenv("PWM_CHIP_PATH", "/sys/class/pwm/pwmchip0")

# Group expected to own /sys/class/pwm after the udev rule has run
GPIO_GROUP = os.getenv("GPIO_GROUP", "gpio")

# Backend selection: "auto" (real if available), "real", or "mock"
HARDWARE_MODE = os.getenv("HARDWARE_MODE", "auto")

# =============================================================================
# PWM DEFAULTS
# =============================================================================

# Hardware PWM channel defaults
PWM_DEFAULT_FREQUENCY_HZ = float(os.getenv("PWM_DEFAULT_FREQUENCY_HZ", "1000"))
PWM_DEFAULT_DUTY_CYCLE = float(os.getenv("PWM_DEFAULT_DUTY_CYCLE", "0.5"))

# Software PWM defaults - keep the frequency low, every cycle is sampled
# by a 1ms tick so anything above a few hundred Hz gets coarse quickly
SOFTWARE_PWM_DEFAULT_FREQUENCY_HZ = float(
    os.getenv("SOFTWARE_PWM_DEFAULT_FREQUENCY_HZ", "100"),
)
SOFTWARE_PWM_DEFAULT_DUTY_CYCLE = float(
    os.getenv("SOFTWARE_PWM_DEFAULT_DUTY_CYCLE", "0.5"),
)

# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
