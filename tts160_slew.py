# File: tts160_slew.py
"""
GoTo control for the TTS160.

The firmware never reports "slew in progress". Completion is inferred either
from tracking resuming (the firmware suspends tracking for the duration of a
GoTo started while tracking) or, when the mount was not tracking, from RA/Dec
samples converging on the target.
"""

import logging
import time
from typing import Callable, Optional, Tuple

from exceptions import (
    ConcurrencyConflictException,
    InvalidOperationException,
    NotConnectedException,
    OperationRejectedException,
    ParkedException,
    SlewStallException,
    SlewTimeoutException,
    ValueNotSetException,
)
from tts160_serial import SerialManager
from tts160_state import MotionState
from tts160_telemetry import MountTelemetry
from tts160_transform import angular_residual
from tts160_types import CommandType


GOTO_COMMAND = ':MS#'
HALT_ALL_COMMAND = ':Q#'

TRACKING_POLL_INTERVAL = 0.2
TRACKING_RESUME_TIMEOUT = 300.0

SAMPLE_INTERVAL = 0.1
STEP_THRESHOLD = 0.5 / 3600.0
TARGET_THRESHOLD = 10.0
ARRIVAL_COUNT = 3
STALL_COUNT = 300


class SlewController:
    """
    Blocking and poll-driven asynchronous GoTo to the armed target.

    ``settle_time`` is the number of seconds the mount is still reported as
    slewing after motion has ended.
    """

    def __init__(
        self,
        serial_manager: SerialManager,
        state: MotionState,
        telemetry: MountTelemetry,
        settle_time: float = 0.0,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self._serial = serial_manager
        self._state = state
        self._telemetry = telemetry
        self.settle_time = settle_time
        self._logger = logger or logging.getLogger(__name__)
        self._sleep = sleep
        self._clock = clock
        self._last_async_sample: Optional[Tuple[float, Tuple[float, float]]] = None

    # -------------
    # GoTo entry points
    # -------------

    def slew_to_target(self) -> None:
        """
        GoTo the armed target and return once the mount has arrived and settled.

        Raises:
            NotConnectedException, ParkedException, ValueNotSetException,
            InvalidOperationException, ConcurrencyConflictException: Preconditions
            OperationRejectedException: The mount refused the target
            SlewTimeoutException: Tracking did not resume in time
            SlewStallException: The mount stopped moving short of the target
        """
        was_tracking = self._start_goto(asynchronous=False)

        if was_tracking:
            self._wait_for_tracking_resume()
        else:
            self._wait_for_convergence()

        self._logger.info("GoTo complete")

    def slew_to_target_async(self) -> None:
        """Start a GoTo and return immediately; progress is advanced by ``is_slewing``."""
        self._start_goto(asynchronous=True)

    def _start_goto(self, asynchronous: bool) -> bool:
        """Validate, send :MS# and raise the slew flags. Returns the pre-GoTo tracking state."""
        state = self._state

        if not self._serial.is_connected:
            raise NotConnectedException("Device not connected")

        with state.lock:
            if state.is_parked:
                raise ParkedException("Cannot slew while parked")

            if state.is_slewing_to_target:
                raise ConcurrencyConflictException("GoTo already in progress")

            if not state.target.is_target_set:
                raise ValueNotSetException("Target not set")

            tracking = self._telemetry.tracking()
            if not tracking and not state.slew_altaz_track_override:
                raise InvalidOperationException("Tracking must be enabled to slew")

            target = state.target
            self._logger.info(
                f"Starting {'async ' if asynchronous else ''}GoTo to "
                f"RA {target.right_ascension:.6f}h, Dec {target.declination:.6f}°"
            )

            rejected = self._serial.send_command(GOTO_COMMAND, CommandType.BOOL)
            if rejected:
                state.slew_altaz_track_override = False
                self._logger.warning("GoTo rejected by mount (target unreachable)")
                raise OperationRejectedException("Target below horizon or otherwise unreachable")

            state.slew_settle_start = None
            state.is_slewing = True
            state.is_slewing_to_target = True
            state.is_slewing_async = asynchronous
            self._last_async_sample = None

        return tracking

    # -------------
    # Blocking completion
    # -------------

    def _wait_for_tracking_resume(self) -> None:
        deadline = self._clock() + TRACKING_RESUME_TIMEOUT

        while True:
            self._sleep(TRACKING_POLL_INTERVAL)
            if not self._state.is_slewing_to_target:
                self._logger.info("GoTo aborted while waiting for arrival")
                return
            if self._telemetry.tracking():
                break
            if self._clock() >= deadline:
                self._logger.error(f"Tracking did not resume within {TRACKING_RESUME_TIMEOUT}s, aborting")
                self.abort_slew()
                raise SlewTimeoutException(
                    f"GoTo did not complete within {TRACKING_RESUME_TIMEOUT} seconds"
                )

        self._finish_blocking()

    def _wait_for_convergence(self) -> None:
        """Sample RA/Dec until arrival, or fault if nothing moves for the whole window."""
        target = (self._state.target.right_ascension, self._state.target.declination)
        arrival_counter = ARRIVAL_COUNT
        stall_counter = STALL_COUNT
        previous = self._telemetry.position()

        while True:
            self._sleep(SAMPLE_INTERVAL)
            if not self._state.is_slewing_to_target:
                self._logger.info("GoTo aborted while converging")
                return

            current = self._telemetry.position()
            step_residual = angular_residual(current, previous)
            target_residual = angular_residual(current, target)
            still = step_residual <= STEP_THRESHOLD

            if still and target_residual <= TARGET_THRESHOLD:
                arrival_counter -= 1
            else:
                arrival_counter = min(arrival_counter + 1, ARRIVAL_COUNT)

            if still:
                stall_counter -= 1
            else:
                stall_counter = min(stall_counter + 1, STALL_COUNT)

            self._logger.debug(
                f"GoTo sample {current}: step {step_residual:.6f}, target {target_residual:.6f}, "
                f"arrival {arrival_counter}, stall {stall_counter}"
            )

            if arrival_counter <= 0:
                self._finish_blocking()
                return

            if stall_counter <= 0:
                self._logger.error("No motion detected during GoTo, halting mount")
                self._hard_stop()
                raise SlewStallException("Mount stopped moving before reaching the target")

            previous = current

    def _finish_blocking(self) -> None:
        if self.settle_time > 0:
            self._logger.debug(f"Settling for {self.settle_time}s")
            self._sleep(self.settle_time)
        with self._state.lock:
            self._state.clear_slew_flags()
            self._state.target.disarm()

    def _hard_stop(self) -> None:
        self._serial.send_command(HALT_ALL_COMMAND, CommandType.BLIND)
        with self._state.lock:
            self._state.clear_slew_flags()

    # -------------
    # Poll-driven status
    # -------------

    def is_slewing(self) -> bool:
        """
        Report whether the mount is still slewing, advancing an async GoTo.

        Each call may read the mount. There is no background thread: an async
        GoTo only progresses towards "done" while a caller keeps polling.
        """
        state = self._state
        with state.lock:
            if state.slew_settle_start is not None:
                if self._clock() - state.slew_settle_start >= self.settle_time:
                    self._logger.info("GoTo settle complete")
                    state.slew_settle_start = None
                    state.is_slewing = False
                    return False
                return True

            if state.is_slewing and state.is_slewing_async:
                if not self._async_motion_ended():
                    return True

                self._logger.info("Async GoTo motion complete")
                state.is_slewing_to_target = False
                state.is_slewing_async = False
                state.slew_altaz_track_override = False
                state.target.disarm()
                if self.settle_time > 0:
                    state.slew_settle_start = self._clock()
                    return True
                state.is_slewing = False
                return False

            return state.is_slewing

    def _async_motion_ended(self) -> bool:
        if not self._state.slew_altaz_track_override:
            return self._telemetry.tracking()

        # Alt/Az GoTo without tracking: compare with the previous poll's sample.
        # Polls are irregular, so the step is judged as a rate.
        now = self._clock()
        current = self._telemetry.position()
        last, self._last_async_sample = self._last_async_sample, (now, current)
        if last is None:
            return False
        last_time, previous = last
        elapsed = max(now - last_time, SAMPLE_INTERVAL)
        step_rate = angular_residual(current, previous) / elapsed
        target = (self._state.target.right_ascension, self._state.target.declination)
        return (step_rate <= STEP_THRESHOLD / SAMPLE_INTERVAL
                and angular_residual(current, target) <= TARGET_THRESHOLD)

    # -------------
    # Abort
    # -------------

    def abort_slew(self) -> None:
        """
        Halt all motion and clear every motion flag.

        Safe to call at any time; device errors are logged, not raised.
        Tracking is restored to its last commanded state.
        """
        state = self._state
        self._logger.info("Aborting all motion")

        try:
            self._serial.send_command(HALT_ALL_COMMAND, CommandType.BLIND)
        except Exception as ex:  # abort must not fail
            self._logger.warning(f"Halt command failed during abort: {ex}")

        with state.lock:
            state.clear_slew_flags()
            state.moving_primary = False
            state.moving_secondary = False
            state.guiding_axes.clear()
            state.target.disarm()
            restore = state.track_set_follower

        try:
            self._serial.send_command(':T1#' if restore else ':T0#', CommandType.BLIND)
        except Exception as ex:  # abort must not fail
            self._logger.warning(f"Tracking restore failed during abort: {ex}")
