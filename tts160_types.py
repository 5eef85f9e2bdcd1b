# File: tts160_types.py
"""Shared type definitions for the TTS160 driver."""

from dataclasses import dataclass
from enum import IntEnum


class CommandType(IntEnum):
    """Serial command response types."""
    BLIND = 0    # No response expected
    BOOL = 1     # Single character boolean response
    STRING = 2   # String response terminated with '#'


class TelescopeAxes(IntEnum):
    axisPrimary = 0
    axisSecondary = 1
    axisTertiary = 2


class GuideDirections(IntEnum):
    guideNorth = 0
    guideSouth = 1
    guideEast = 2
    guideWest = 3


class DriveRates(IntEnum):
    driveSidereal = 0
    driveLunar = 1
    driveSolar = 2
    driveKing = 3


class AlignmentModes(IntEnum):
    algAltAz = 0
    algPolar = 1
    algGermanPolar = 2


@dataclass(frozen=True)
class Rate:
    """Axis rate range in degrees per second."""
    Minimum: float
    Maximum: float


class EquatorialCoordinateType(IntEnum):
    equOther = 0
    equTopocentric = 1
    equJ2000 = 2
    equJ2050 = 3
    equB1950 = 4
