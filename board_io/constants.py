"""
Board I/O Constants

This file centralizes all magic numbers, timing values and retry policies
used throughout the board_io package. Tune hardware behaviour here instead
of hunting through the controllers.

Why separate constants?
- Easy to tune timing without hunting through code
- Clear documentation of kernel/driver behaviour we work around
- Easy to test with different values
"""

from config.settings import (
    GPIO_CHIP_PATH,
    GPIO_CONSUMER,
    GPIO_GROUP,
    PWM_CHIP_PATH,
    PWM_DEFAULT_DUTY_CYCLE,
    PWM_DEFAULT_FREQUENCY_HZ,
    SOFTWARE_PWM_DEFAULT_DUTY_CYCLE,
    SOFTWARE_PWM_DEFAULT_FREQUENCY_HZ,
)

# =============================================================================
# DEFAULT DEVICE PATHS
# =============================================================================
# Import from central config.settings to maintain single source of truth
# NEVER modify here - change in config/settings.py (or .env) instead!

DEFAULT_GPIO_CHIP = GPIO_CHIP_PATH
DEFAULT_PWM_CHIP = PWM_CHIP_PATH
DEFAULT_CONSUMER = GPIO_CONSUMER
PRIVILEGED_GROUP = GPIO_GROUP


# =============================================================================
# TIME UNITS
# =============================================================================

NS_PER_SECOND = 1_000_000_000
NS_PER_MS = 1_000_000
US_PER_MS = 1_000


# =============================================================================
# EDGE EVENT PIPELINE
# =============================================================================

# Number of edge events the kernel buffers per request, and the maximum we
# drain in a single callback tick
EDGE_EVENT_BUFFER_CAPACITY = 16

# Callback poll cadence (seconds)
EDGE_POLL_INTERVAL = 0.001

# Timeout used by the lazy edges() sequence for each internal wait (ms).
# Short enough that closing the input ends the iteration promptly.
EDGE_ITERATOR_WAIT_MS = 100

# Granularity of the cooperative single-wait loop (seconds)
EDGE_WAIT_SLICE = 0.001


# =============================================================================
# HARDWARE PWM (sysfs)
# =============================================================================

PWM_DEFAULT_FREQUENCY = PWM_DEFAULT_FREQUENCY_HZ
PWM_DEFAULT_DUTY = PWM_DEFAULT_DUTY_CYCLE

# After writing to `export` the kernel creates pwmN/ asynchronously.
# 10 x 10ms = 100ms max
PWM_EXPORT_RETRIES = 10
PWM_EXPORT_RETRY_DELAY = 0.01

# udev fixes up permissions on pwmN/* some time after the export.
# 50 x 20ms = 1s max
PWM_PERMISSION_RETRIES = 50
PWM_PERMISSION_RETRY_DELAY = 0.02

# Script shipped with the project that installs the udev rule
PWM_SETUP_SCRIPT = "scripts/setup-pwm-permissions.sh"


# =============================================================================
# SOFTWARE PWM
# =============================================================================

SOFTWARE_PWM_DEFAULT_FREQUENCY = SOFTWARE_PWM_DEFAULT_FREQUENCY_HZ
SOFTWARE_PWM_DEFAULT_DUTY = SOFTWARE_PWM_DEFAULT_DUTY_CYCLE

# Tick cadence (seconds) - faster = smoother waveform but more CPU
SOFTWARE_PWM_TICK_INTERVAL = 0.001
