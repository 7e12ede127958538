"""
Test Configuration and Fixtures

Shared pytest fixtures for the board_io tests. Everything runs against the
simulated kernel (MockGPIOBackend) and the in-memory sysfs (MockSysfs), so
no Raspberry Pi is needed.

To use pytest:
    pip install -e ".[test]"
    pytest tests/board_io/
"""

import pytest

from board_io.constants import DEFAULT_PWM_CHIP
from board_io.controllers import pwm_controller
from board_io.implementations.mock_gpio_backend import MockGPIOBackend
from board_io.implementations.mock_sysfs import MockSysfs


# =============================================================================
# GPIO FIXTURES
# =============================================================================

@pytest.fixture
def mock_backend():
    """
    Provide a fresh simulated GPIO kernel for each test.

    Usage in test:
        def test_something(mock_backend):
            mock_backend.simulate_edge(27, rising=True)
    """
    return MockGPIOBackend()


@pytest.fixture
def gpio_controller(mock_backend):
    """
    Provide a GPIOController on the mock backend.

    Automatically closes (releasing every line) after the test.
    """
    from board_io.controllers.gpio_controller import GPIOController

    controller = GPIOController(backend=mock_backend)
    yield controller
    controller.close()


# =============================================================================
# PWM FIXTURES
# =============================================================================

@pytest.fixture
def no_pwm_delays(monkeypatch):
    """Make the export/permission retry loops spin without sleeping"""
    monkeypatch.setattr(pwm_controller, "PWM_EXPORT_RETRY_DELAY", 0)
    monkeypatch.setattr(pwm_controller, "PWM_PERMISSION_RETRY_DELAY", 0)


@pytest.fixture
def mock_sysfs():
    """
    Provide an in-memory pwmchip0 with two channels.

    Usage:
        def test_pwm(mock_sysfs):
            mock_sysfs.pre_export(DEFAULT_PWM_CHIP, 0)
    """
    return MockSysfs(chips={DEFAULT_PWM_CHIP: 2})


@pytest.fixture
def pwm_controller_factory(no_pwm_delays):
    """
    Build PWMControllers over a given MockSysfs; all are closed afterwards.

    Usage:
        def test_slow_export(pwm_controller_factory):
            sysfs = MockSysfs(export_delay_polls=5)
            pwm = pwm_controller_factory(sysfs)
    """
    from board_io.controllers.pwm_controller import PWMController

    controllers = []

    def build(sysfs, chip_path=DEFAULT_PWM_CHIP):
        controller = PWMController(chip_path, sysfs=sysfs)
        controllers.append(controller)
        return controller

    yield build

    for controller in controllers:
        controller.close()


@pytest.fixture
def pwm(pwm_controller_factory, mock_sysfs):
    """Provide a PWMController on the default mock sysfs"""
    return pwm_controller_factory(mock_sysfs)


# =============================================================================
# HELPER FIXTURES
# =============================================================================

@pytest.fixture
def callback_tracker():
    """
    Provide a helper for tracking callback calls.

    Usage:
        def test_callback(button, callback_tracker):
            button.on_edge(callback_tracker.track)
            # ... trigger edge ...
            assert callback_tracker.get_call_count() == 1
    """
    class CallbackTracker:
        def __init__(self):
            self.calls = []

        def track(self, *args, **kwargs):
            """Record a callback invocation"""
            self.calls.append({'args': args, 'kwargs': kwargs})

        def was_called(self) -> bool:
            return len(self.calls) > 0

        def get_call_count(self) -> int:
            return len(self.calls)

        def get_last_call(self):
            """Get arguments from last call"""
            return self.calls[-1] if self.calls else None

        def events(self) -> list:
            """First positional argument of every call (the EdgeEvent)"""
            return [call['args'][0] for call in self.calls]

        def reset(self):
            self.calls.clear()

    return CallbackTracker()


class FakeClock:
    """Manually advanced nanosecond clock for software PWM tests"""

    def __init__(self, start_ns: int = 0):
        self.now_ns = start_ns

    def __call__(self) -> int:
        return self.now_ns

    def advance(self, ns: int) -> None:
        self.now_ns += ns


@pytest.fixture
def fake_clock():
    return FakeClock(start_ns=1_000_000_000)


# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """
    Configure pytest with custom markers.

    Markers let you categorize and selectively run tests:
        pytest -m unit          # Only unit tests
        pytest -m integration   # Only integration tests
        pytest -m "not slow"    # Skip slow tests
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (may be slower)")
    config.addinivalue_line("markers", "slow: Slow tests (use sparingly)")
    config.addinivalue_line("markers", "hardware: Tests requiring real hardware")
