"""
GpiodBackend Tests

Settings translation runs wherever the gpiod bindings are installed;
anything that needs a real chip is marked `hardware`.
"""

import os
from datetime import timedelta

import pytest

gpiod = pytest.importorskip("gpiod")

from gpiod.line import Bias as GpiodBias  # noqa: E402
from gpiod.line import Direction as GpiodDirection  # noqa: E402
from gpiod.line import Edge as GpiodEdge  # noqa: E402
from gpiod.line import Value  # noqa: E402

from board_io.errors import ChipOpenFailedError  # noqa: E402
from board_io.implementations.gpiod_backend import GpiodBackend  # noqa: E402
from board_io.interfaces.gpio_backend_interface import (  # noqa: E402
    Bias,
    Direction,
    EdgeMode,
    LineSettings,
)


@pytest.mark.unit
class TestSettingsTranslation:

    def test_output(self):
        settings = GpiodBackend._to_gpiod_settings(
            LineSettings(direction=Direction.OUTPUT, output_value=True, active_low=True),
        )

        assert settings.direction == GpiodDirection.OUTPUT
        assert settings.output_value == Value.ACTIVE
        assert settings.active_low is True

    def test_input(self):
        settings = GpiodBackend._to_gpiod_settings(
            LineSettings(
                direction=Direction.INPUT,
                bias=Bias.PULL_UP,
                edge=EdgeMode.FALLING,
                debounce_us=5000,
            ),
        )

        assert settings.direction == GpiodDirection.INPUT
        assert settings.bias == GpiodBias.PULL_UP
        assert settings.edge_detection == GpiodEdge.FALLING
        assert settings.debounce_period == timedelta(milliseconds=5)


@pytest.mark.unit
def test_open_missing_chip():
    backend = GpiodBackend()

    with pytest.raises(ChipOpenFailedError):
        backend.open_chip("/dev/gpiochip-does-not-exist")


@pytest.mark.hardware
@pytest.mark.skipif(not os.path.exists("/dev/gpiochip0"), reason="no GPIO chip")
def test_real_chip_info():
    """Needs a real /dev/gpiochip0 (run with: pytest -m hardware)"""
    backend = GpiodBackend()
    chip = backend.open_chip("/dev/gpiochip0")
    try:
        assert backend.get_chip_info(chip).num_lines > 0
    finally:
        backend.close_chip(chip)
