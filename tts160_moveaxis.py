# File: tts160_moveaxis.py
"""Jog (MoveAxis) control for the TTS160."""

import logging
import math
import time
from typing import Callable, Dict, Optional, Tuple

from exceptions import (
    ConcurrencyConflictException,
    InvalidValueException,
    NotConnectedException,
    ParkedException,
)
from tts160_serial import SerialManager
from tts160_state import MotionState
from tts160_telemetry import MountTelemetry
from tts160_types import CommandType, TelescopeAxes


GUIDE_RATE = 1.0 / 3600.0       # deg/sec
RATE_TOLERANCE = 1e-6

# |rate| in deg/sec -> rate preset command
RATE_PRESETS: Dict[float, str] = {
    GUIDE_RATE: ':RG#',
    1.4: ':RC#',
    2.2: ':RM#',
    3.0: ':RS#',
}

# axis -> (positive direction, negative direction)
MOVE_COMMANDS: Dict[TelescopeAxes, Tuple[str, str]] = {
    TelescopeAxes.axisPrimary: (':Me#', ':Mw#'),
    TelescopeAxes.axisSecondary: (':Mn#', ':Ms#'),
}

HALT_COMMANDS: Dict[TelescopeAxes, Tuple[str, str]] = {
    TelescopeAxes.axisPrimary: (':Qe#', ':Qw#'),
    TelescopeAxes.axisSecondary: (':Qn#', ':Qs#'),
}

HALT_TRACKING_WAIT = 2.0
HALT_POLL_INTERVAL = 0.1


def rate_preset(rate: float) -> Optional[str]:
    """Return the preset command for ``|rate|``, or None if it is not a supported rate."""
    magnitude = abs(rate)
    for preset_rate, command in RATE_PRESETS.items():
        if math.isclose(magnitude, preset_rate, rel_tol=0.0, abs_tol=RATE_TOLERANCE):
            return command
    return None


class AxisMotionController:
    """
    Start and stop continuous axis motion at one of the mount's fixed rates.

    The TTS160 has no continuous-rate jog. A non-zero rate must be the guide
    rate or one of the three slew presets, selected with a rate command before
    the directional move command is sent.
    """

    def __init__(
        self,
        serial_manager: SerialManager,
        state: MotionState,
        telemetry: MountTelemetry,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self._serial = serial_manager
        self._state = state
        self._telemetry = telemetry
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._clock = clock

    def move_axis(self, axis: TelescopeAxes, rate: float) -> None:
        """
        Move or stop one axis.

        Args:
            axis: Primary (RA/azimuth) or secondary (Dec/altitude) axis
            rate: Signed rate in deg/sec; 0 stops the axis

        Raises:
            NotConnectedException: If device not connected
            ParkedException: If the mount is parked
            InvalidValueException: Tertiary axis or unsupported rate
            ConcurrencyConflictException: Axis already moving, guiding, or GoTo in progress
        """
        if not self._serial.is_connected:
            raise NotConnectedException("Device not connected")

        if self._state.is_parked:
            raise ParkedException("Cannot move axis while parked")

        if axis not in MOVE_COMMANDS:
            raise InvalidValueException(f"Axis {axis} movement not supported")

        if rate == 0:
            self._stop_axis(axis)
            return

        preset = rate_preset(rate)
        if preset is None:
            raise InvalidValueException(
                f"Rate {rate} not supported. Allowed magnitudes: 0, "
                f"{', '.join(f'{r:g}' for r in RATE_PRESETS)} deg/sec"
            )

        with self._state.lock:
            if self._state.is_axis_moving(axis):
                raise ConcurrencyConflictException(f"Axis {axis.name} already in motion")
            if self._state.is_axis_guiding(axis):
                raise ConcurrencyConflictException(
                    f"Cannot move axis {axis.name} while pulse guiding on it"
                )
            if self._state.is_slewing_to_target:
                raise ConcurrencyConflictException("Cannot move axis while GoTo is in progress")

            positive, negative = MOVE_COMMANDS[axis]
            direction_command = positive if rate > 0 else negative

            self._logger.info(f"MoveAxis {axis.name} at {rate} deg/sec")
            self._serial.send_command(preset, CommandType.BLIND)
            self._serial.send_command(direction_command, CommandType.BLIND)

            self._state.set_axis_moving(axis, True)
            self._state.is_slewing = True

    def _stop_axis(self, axis: TelescopeAxes) -> None:
        """Halt one axis and give the firmware a moment to resume tracking."""
        first, second = HALT_COMMANDS[axis]
        self._logger.info(f"Stopping axis {axis.name}")
        self._serial.send_command(first, CommandType.BLIND)
        self._serial.send_command(second, CommandType.BLIND)

        self._wait_for_tracking()

        with self._state.lock:
            self._state.set_axis_moving(axis, False)
            if not self._state.is_jogging and not self._state.is_slewing_to_target:
                self._state.is_slewing = False

    def _wait_for_tracking(self) -> None:
        deadline = self._clock() + HALT_TRACKING_WAIT
        while self._clock() < deadline:
            if self._telemetry.tracking():
                self._logger.debug("Tracking resumed after axis halt")
                return
            self._sleep(HALT_POLL_INTERVAL)
        self._logger.warning(f"Tracking did not resume within {HALT_TRACKING_WAIT}s of axis halt")
