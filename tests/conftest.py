"""
Shared pytest fixtures for TTS160 Alpaca Driver tests.

Provides mock loggers and serial ports, a fake clock for the timed motion
loops, and a scripted fake mount that stands in for the ``SerialManager``.
"""

import logging
import pytest
from unittest.mock import Mock, MagicMock, patch
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exceptions import NotConnectedException
from TTS160Config import DriverSettings
from tts160_transform import degrees_to_dms, hours_to_hms
from tts160_types import CommandType


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is called."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMount:
    """Scripted stand-in for ``SerialManager``.

    Records every command sent. ``:GW#`` replies come from ``tracking_script``
    until it runs out, then from ``tracking``. ``:GR#``/``:GD#`` replies walk
    ``positions``, repeating the last entry.
    """

    def __init__(self):
        self.connected = True
        self.sent = []
        self.tracking = True
        self.tracking_script = []
        self.positions = [(0.0, 0.0)]
        self.altitude = 45.0
        self.azimuth = 180.0
        self.goto_rejected = False
        self.parked = False
        self.bool_replies = {}
        self.string_replies = {}
        self.errors = {}
        self._position_index = 0
        self._current = self.positions[0]

    @property
    def is_connected(self) -> bool:
        return self.connected

    def connect(self, port, baudrate=9600):
        self.connected = True

    def disconnect(self):
        self.connected = False

    def cleanup(self):
        self.connected = False

    def commands(self, prefix: str = ''):
        return [c for c in self.sent if c.startswith(prefix)]

    def send_command(self, command, command_type, raw=True):
        if not raw:
            command = f':{command}#'
        if not self.connected:
            raise NotConnectedException("Serial port not connected")

        self.sent.append(command)
        if command in self.errors:
            raise self.errors[command]

        if command == ':GW#':
            tracking = self.tracking_script.pop(0) if self.tracking_script else self.tracking
            return 'AT1#' if tracking else 'AN1#'
        if command == ':GR#':
            index = min(self._position_index, len(self.positions) - 1)
            self._current = self.positions[index]
            self._position_index += 1
            return hours_to_hms(self._current[0]) + '#'
        if command == ':GD#':
            return degrees_to_dms(self._current[1]) + '#'
        if command == ':GA#':
            return degrees_to_dms(self.altitude) + '#'
        if command == ':GZ#':
            return degrees_to_dms(self.azimuth).lstrip('+') + '#'
        if command == ':MS#':
            return self.goto_rejected
        if command == ':*Pq#':
            return self.parked

        if command_type == CommandType.BOOL:
            return self.bool_replies.get(command, True)
        if command_type == CommandType.STRING:
            return self.string_replies.get(command, '0#')
        return None


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    Returns:
        Mock logger with standard logging methods.
    """
    logger = Mock()
    logger.debug = Mock()
    logger.info = Mock()
    logger.warning = Mock()
    logger.error = Mock()
    logger.critical = Mock()
    return logger


@pytest.fixture
def test_logger():
    """Real logger for components that insist on a ``logging.Logger``."""
    return logging.getLogger('tts160.tests')


@pytest.fixture
def mock_serial_port():
    """Mock serial port for testing without hardware.

    Yields:
        MagicMock serial port instance.
    """
    with patch('serial.Serial') as mock:
        instance = MagicMock()
        instance.is_open = True
        instance.in_waiting = 0
        instance.timeout = 0.5
        instance.read = Mock(return_value=b'')
        instance.write = Mock(return_value=0)
        instance.read_until = Mock(return_value=b'')
        instance.reset_input_buffer = Mock()
        instance.reset_output_buffer = Mock()
        instance.flush = Mock()
        instance.close = Mock()
        mock.return_value = instance
        yield instance


@pytest.fixture
def serial_manager(mock_logger, mock_serial_port):
    """SerialManager connected to the mocked port."""
    from tts160_serial import SerialManager

    manager = SerialManager(mock_logger)
    manager.connect('/dev/ttyUSB0')
    yield manager
    manager.cleanup()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_mount():
    return FakeMount()


@pytest.fixture
def motion_state():
    from tts160_state import MotionState
    return MotionState()


@pytest.fixture
def telemetry(fake_mount, mock_logger):
    from tts160_telemetry import MountTelemetry
    return MountTelemetry(fake_mount, mock_logger)


@pytest.fixture
def mock_config():
    """Create mock server configuration object.

    Returns:
        Mock config with standard properties.
    """
    config = Mock()
    config.ip_address = ''
    config.port = 5555
    config.threads = 4
    config.location = 'Test Location'
    config.verbose_driver_exceptions = True
    config.log_level = 10  # DEBUG
    config.log_to_stdout = False
    config.max_size_mb = 5
    config.num_keep_logs = 10
    return config


@pytest.fixture
def mock_telescope_config():
    """Create mock telescope profile.

    Returns:
        Mock profile with site parameters and driver settings.
    """
    config = Mock()
    config.dev_port = 'COM1'
    config.site_latitude = 21.3
    config.site_longitude = -157.9
    config.site_elevation = 10.0
    config.slew_settle_time = 0
    config.snapshot.return_value = DriverSettings(
        slew_settle_time=0,
        pulse_guide_altitude_compensation=False,
        pulse_guide_max_compensation=1000,
        pulse_guide_compensation_buffer=20,
        tracking_rate_on_connect=None,
    )
    return config
