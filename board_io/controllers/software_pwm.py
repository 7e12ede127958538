"""
Software PWM

PWM on any digital output, for pins without a hardware PWM channel.

How it works:
- A 1ms tick task runs on the asyncio event loop
- Each tick samples the clock and works out where we are in the current
  cycle: position = elapsed / period
- The output should be HIGH while position < duty cycle, LOW otherwise
- The pin is only written when that level changes

The cycle anchor moves forward in whole periods, so changing the duty cycle
or frequency never restarts the waveform. If the event loop stalls for
several periods the anchor jumps ahead and the missed cycles are counted in
skipped_cycles.

Good enough for LED dimming or a buzzer. Not for servos - timing jitter is
whatever the event loop gives us.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from board_io.constants import (
    SOFTWARE_PWM_DEFAULT_DUTY,
    SOFTWARE_PWM_DEFAULT_FREQUENCY,
    SOFTWARE_PWM_TICK_INTERVAL,
)
from board_io.controllers.gpio_lines import GPIOOutput
from board_io.errors import ClosedHandleError, HardwareError
from board_io.utils.pwm_utils import (
    period_ns_for,
    validate_duty_cycle,
    validate_frequency,
)


class SoftwarePWM:
    """
    Software PWM driven from a GPIOOutput.

    Usage (inside a coroutine):
        led = gpio.output(17)
        pwm = SoftwarePWM(led, duty_cycle=0.25, frequency_hz=100)
        await asyncio.sleep(2)
        pwm.set_duty_cycle(0.75)
        await asyncio.sleep(2)
        pwm.close()  # output left LOW
    """

    def __init__(
        self,
        output: GPIOOutput,
        duty_cycle: float = SOFTWARE_PWM_DEFAULT_DUTY,
        frequency_hz: float = SOFTWARE_PWM_DEFAULT_FREQUENCY,
        autostart: bool = True,
        clock: Callable[[], int] = time.monotonic_ns,
    ):
        """
        Args:
            output: Output line to drive (stays owned by the caller)
            duty_cycle: Fraction of each period the output is HIGH (0.0 - 1.0)
            frequency_hz: Cycles per second
            autostart: Start ticking right away. Needs a running event loop.
                       Pass False to call start() later or drive tick()
                       yourself.
            clock: Monotonic nanosecond clock (injectable for tests)

        Raises:
            InvalidParameterError: Duty cycle outside [0, 1] or frequency <= 0
        """
        validate_duty_cycle(duty_cycle)
        validate_frequency(frequency_hz)

        self.logger = logging.getLogger(__name__)

        self._output = output
        self._duty_cycle = duty_cycle
        self._frequency_hz = frequency_hz
        self._clock = clock

        self._anchor_ns = clock()
        self._last_level = output.state
        self._skipped_cycles = 0

        self._task: Optional[asyncio.Task] = None
        self._closed = False

        if autostart:
            self.start()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def duty_cycle(self) -> float:
        return self._duty_cycle

    @property
    def frequency_hz(self) -> float:
        return self._frequency_hz

    @property
    def period_ns(self) -> int:
        return period_ns_for(self._frequency_hz)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def running(self) -> bool:
        """True while the tick task is active"""
        return self._task is not None and not self._task.done()

    @property
    def skipped_cycles(self) -> int:
        """Whole periods jumped over because ticks arrived late"""
        return self._skipped_cycles

    def _check_closed(self) -> None:
        if self._closed:
            raise ClosedHandleError("SoftwarePWM has been closed")

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def set_duty_cycle(self, duty_cycle: float) -> "SoftwarePWM":
        """Change the duty cycle. Takes effect on the next tick."""
        self._check_closed()
        validate_duty_cycle(duty_cycle)
        self._duty_cycle = duty_cycle
        return self

    def set_frequency(self, frequency_hz: float) -> "SoftwarePWM":
        """Change the frequency. The cycle anchor is kept."""
        self._check_closed()
        validate_frequency(frequency_hz)
        self._frequency_hz = frequency_hz
        return self

    def start(self) -> "SoftwarePWM":
        """
        Start the tick task on the running event loop.

        The first tick runs immediately. Calling start() while already
        running does nothing.
        """
        self._check_closed()
        if self.running:
            return self

        loop = asyncio.get_running_loop()
        self.tick()
        if self._closed:
            return self
        self._task = loop.create_task(self._run(), name="software-pwm")

        self.logger.debug(
            f"Software PWM started on pin {self._output.pin}: "
            f"{self._frequency_hz}Hz, duty {self._duty_cycle}",
        )
        return self

    def stop(self) -> "SoftwarePWM":
        """Pause the tick task. The output keeps its current level."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
        return self

    async def _run(self) -> None:
        while not self._closed:
            await asyncio.sleep(SOFTWARE_PWM_TICK_INTERVAL)
            try:
                self.tick()
            except HardwareError as e:
                self.logger.error(
                    f"Software PWM on pin {self._output.pin} failed, stopping: {e}",
                    exc_info=True,
                )
                self._task = None
                return

    # -------------------------------------------------------------------------
    # Waveform
    # -------------------------------------------------------------------------

    def tick(self) -> None:
        """Sample the clock and drive the output to the level it should have"""
        if self._closed:
            return

        # Output released underneath us (e.g. GPIOController.close())
        if self._output.closed:
            self.logger.warning(
                f"Output on pin {self._output.pin} was released, "
                f"closing software PWM",
            )
            self._task = None
            self._closed = True
            return

        # Fully off / fully on never toggle
        if self._duty_cycle <= 0:
            self._emit(False)
            return
        if self._duty_cycle >= 1:
            self._emit(True)
            return

        now = self._clock()
        period_ns = self.period_ns

        elapsed = now - self._anchor_ns
        if elapsed >= period_ns:
            completed = elapsed // period_ns
            self._anchor_ns += completed * period_ns
            elapsed = now - self._anchor_ns

            if completed > 1:
                self._skipped_cycles += completed - 1
                self.logger.debug(
                    f"Software PWM on pin {self._output.pin} skipped "
                    f"{completed - 1} cycle(s)",
                )

        position = elapsed / period_ns
        self._emit(position < self._duty_cycle)

    def _emit(self, level: bool) -> None:
        if level != self._last_level:
            self._output.write(level)
            self._last_level = level

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Stop ticking and leave the output LOW. Safe to call multiple times."""
        if self._closed:
            return

        self.stop()
        try:
            if not self._output.closed:
                self._output.write(False)
                self._last_level = False
        finally:
            self._closed = True

        self.logger.debug(f"Software PWM on pin {self._output.pin} closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
