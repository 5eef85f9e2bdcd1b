# File: tts160_guide.py
"""Timed guide pulses for the TTS160, with optional altitude compensation."""

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
from tts160_types import CommandType, GuideDirections, TelescopeAxes


MAX_PULSE_DURATION = 9999
MAX_ALTITUDE_FOR_COMPENSATION = 89.0

# direction -> (command letter, axis whose jog conflicts with it)
PULSE_DIRECTIONS: Dict[GuideDirections, Tuple[str, TelescopeAxes]] = {
    GuideDirections.guideNorth: ('n', TelescopeAxes.axisSecondary),
    GuideDirections.guideSouth: ('s', TelescopeAxes.axisSecondary),
    GuideDirections.guideEast: ('e', TelescopeAxes.axisPrimary),
    GuideDirections.guideWest: ('w', TelescopeAxes.axisPrimary),
}


def compensate_duration(duration: int, altitude: float, max_delta: int, buffer: int) -> int:
    """
    Stretch an E/W pulse by 1/cos(altitude) so it moves the same sky distance.

    Altitude is clamped to 89° to keep the divisor away from zero. A result
    more than ``max_delta`` ms longer than requested is clipped to
    ``duration + max_delta - buffer``.

    >>> compensate_duration(1000, 89.9, 1000, 20)
    1980
    """
    clamped = min(altitude, MAX_ALTITUDE_FOR_COMPENSATION)
    compensated = round(duration / math.cos(math.radians(clamped)))

    if compensated > duration + max_delta:
        compensated = duration + max_delta - buffer

    return max(0, compensated)


class PulseGuideController:
    """Issues ``:Mg<dir><ms>#`` pulses and blocks for their duration."""

    def __init__(
        self,
        serial_manager: SerialManager,
        state: MotionState,
        telemetry: MountTelemetry,
        altitude_compensation: bool = False,
        max_compensation: int = 1000,
        compensation_buffer: int = 20,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self._serial = serial_manager
        self._state = state
        self._telemetry = telemetry
        self.altitude_compensation = altitude_compensation
        self.max_compensation = max_compensation
        self.compensation_buffer = compensation_buffer
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

    def pulse_guide(self, direction: GuideDirections, duration: int) -> None:
        """
        Move at guide rate in one direction for ``duration`` milliseconds.

        Args:
            direction: North, South, East or West
            duration: Pulse length in ms, 0-9999

        Raises:
            NotConnectedException: If device not connected
            ParkedException: If the mount is parked
            InvalidValueException: Bad direction or duration
            ConcurrencyConflictException: GoTo in progress, or the same axis
                is jogging or already guiding
        """
        if not self._serial.is_connected:
            raise NotConnectedException("Device not connected")

        if direction not in PULSE_DIRECTIONS:
            raise InvalidValueException(f"Invalid guide direction: {direction}")

        if not isinstance(duration, int) or isinstance(duration, bool) \
                or not (0 <= duration <= MAX_PULSE_DURATION):
            raise InvalidValueException(
                f"Invalid duration: {duration}. Must be 0-{MAX_PULSE_DURATION} ms"
            )

        letter, axis = PULSE_DIRECTIONS[direction]
        state = self._state

        with state.lock:
            if state.is_parked:
                raise ParkedException("Cannot pulse guide while parked")
            if state.is_slewing_to_target:
                raise ConcurrencyConflictException("Cannot pulse guide while GoTo is in progress")
            if state.is_axis_moving(axis):
                raise ConcurrencyConflictException(
                    f"Cannot pulse guide {direction.name} while axis {axis.name} is moving"
                )
            if state.is_axis_guiding(axis):
                raise ConcurrencyConflictException(f"Pulse guide already active on axis {axis.name}")

            # Claim the axis before any I/O so a concurrent jog sees it
            state.guiding_axes.add(axis)

        try:
            pulse = duration
            if self.altitude_compensation and axis == TelescopeAxes.axisPrimary:
                pulse = self._compensated(duration)

            command = f":Mg{letter}{pulse:04d}#"
            self._logger.debug(f"Pulse guide {direction.name} {pulse} ms: {command}")
            self._serial.send_command(command, CommandType.BLIND)

            self._sleep(pulse / 1000.0)
        finally:
            with state.lock:
                state.guiding_axes.discard(axis)

    def _compensated(self, duration: int) -> int:
        altitude = self._telemetry.altitude()
        pulse = compensate_duration(duration, altitude, self.max_compensation,
                                    self.compensation_buffer)
        pulse = min(pulse, MAX_PULSE_DURATION)
        self._logger.debug(f"Altitude {altitude:.2f}°: pulse {duration} ms -> {pulse} ms")
        return pulse
