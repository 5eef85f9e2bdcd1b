# File: tts160_state.py
"""
Shared motion state for the TTS160 driver.

The mount firmware has no notion of "slewing", "guiding" or "settling". These
flags are kept here, owned by the device and passed to each controller, and
every compound check-then-set goes through ``MotionState.lock``.
"""

import threading
from typing import Optional, Set

from tts160_types import DriveRates, TelescopeAxes


class TargetCoordinates:
    """GoTo/sync target with per-axis armed flags.

    The coordinate values survive a slew or abort so they can still be read
    back; only the armed flags are cleared.
    """

    def __init__(self):
        self.right_ascension: Optional[float] = None
        self.declination: Optional[float] = None
        self.is_ra_set = False
        self.is_dec_set = False

    @property
    def is_target_set(self) -> bool:
        return self.is_ra_set and self.is_dec_set

    def set_right_ascension(self, hours: float) -> None:
        self.right_ascension = hours
        self.is_ra_set = True

    def set_declination(self, degrees: float) -> None:
        self.declination = degrees
        self.is_dec_set = True

    def disarm(self) -> None:
        """Require both axes to be written again before the next GoTo."""
        self.is_ra_set = False
        self.is_dec_set = False

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(ra={self.right_ascension}, dec={self.declination}, "
            f"ra_set={self.is_ra_set}, dec_set={self.is_dec_set})"
        )


class MotionState:
    """Process-wide motion flags shared by the jog, guide and GoTo controllers."""

    def __init__(self):
        self.lock = threading.RLock()
        self.reset()

    def reset(self) -> None:
        """Return every flag to its power-on default."""
        with self.lock:
            self.moving_primary = False
            self.moving_secondary = False
            self.is_slewing = False
            self.is_slewing_async = False
            self.is_slewing_to_target = False
            self.guiding_axes: Set[TelescopeAxes] = set()
            self.is_parked = False
            self.tracking_rate_current = DriveRates.driveSidereal
            self.target = TargetCoordinates()
            self.slew_settle_start: Optional[float] = None
            self.track_set_follower = False
            self.slew_altaz_track_override = False

    def is_axis_moving(self, axis: TelescopeAxes) -> bool:
        if axis == TelescopeAxes.axisPrimary:
            return self.moving_primary
        return self.moving_secondary

    def set_axis_moving(self, axis: TelescopeAxes, moving: bool) -> None:
        with self.lock:
            if axis == TelescopeAxes.axisPrimary:
                self.moving_primary = moving
            else:
                self.moving_secondary = moving

    @property
    def is_jogging(self) -> bool:
        return self.moving_primary or self.moving_secondary

    @property
    def is_pulse_guiding(self) -> bool:
        return bool(self.guiding_axes)

    def is_axis_guiding(self, axis: TelescopeAxes) -> bool:
        return axis in self.guiding_axes

    def clear_slew_flags(self) -> None:
        """Clear GoTo progress, including a running settle timer."""
        with self.lock:
            self.is_slewing = False
            self.is_slewing_async = False
            self.is_slewing_to_target = False
            self.slew_settle_start = None
            self.slew_altaz_track_override = False

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"slewing={self.is_slewing}, async={self.is_slewing_async}, "
            f"to_target={self.is_slewing_to_target}, primary={self.moving_primary}, "
            f"secondary={self.moving_secondary}, guiding={self.is_pulse_guiding}, "
            f"parked={self.is_parked})"
        )
