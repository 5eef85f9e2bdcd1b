# File: tts160_transform.py
"""
Coordinate conversions for the TTS160 driver.

Sexagesimal helpers for the LX200 wire formats, and an astropy-backed
Alt/Az to topocentric RA/Dec transform for the site configured in the profile.
"""

import logging
import math
from typing import Optional, Tuple

import astropy.units as u
from astropy.coordinates import GCRS, AltAz, EarthLocation, SkyCoord
from astropy.time import Time

from exceptions import DriverException, InvalidValueException


def dms_to_degrees(dms_str: str) -> float:
    """
    Convert an LX200 DMS string to decimal degrees.

    Accepts ``*``, ``:``, ``'`` and ``"`` as separators and an optional
    trailing ``#``, e.g. ``"+45*30'15#"`` -> 45.504167.

    Raises:
        ValueError: If the string is empty, malformed or out of range
    """
    cleaned = dms_str.rstrip('#').strip()
    if not cleaned:
        raise ValueError("DMS string cannot be empty")

    sign = -1 if cleaned.startswith('-') else 1
    cleaned = cleaned.lstrip('+-')

    parts = cleaned.replace('*', ':').replace("'", ':').replace('"', ':').split(':')
    if len(parts) > 3:
        raise ValueError(f"Invalid DMS format: expected 1-3 parts, got {len(parts)}")

    degrees = float(parts[0])
    minutes = float(parts[1]) if len(parts) > 1 else 0.0
    seconds = float(parts[2]) if len(parts) > 2 else 0.0

    if degrees < 0:
        raise ValueError(f"Degrees component cannot be negative in '{dms_str}' (use leading sign)")
    if not (0 <= minutes < 60):
        raise ValueError(f"Minutes {minutes} outside valid range 0-59")
    if not (0 <= seconds < 60):
        raise ValueError(f"Seconds {seconds} outside valid range 0-59")

    return sign * (degrees + minutes / 60.0 + seconds / 3600.0)


def hms_to_hours(hms_str: str) -> float:
    """
    Convert an LX200 HMS string to decimal hours, e.g. ``"14:32:45#"`` -> 14.545833.

    Raises:
        ValueError: If the string is empty, malformed or out of range
    """
    cleaned = hms_str.rstrip('#').strip()
    if not cleaned:
        raise ValueError("HMS string cannot be empty")

    parts = cleaned.split(':')
    if len(parts) > 3:
        raise ValueError(f"Invalid HMS format: expected 1-3 parts, got {len(parts)}")

    hours = float(parts[0])
    minutes = float(parts[1]) if len(parts) > 1 else 0.0
    seconds = float(parts[2]) if len(parts) > 2 else 0.0

    if not (0 <= hours < 24):
        raise ValueError(f"Hours {hours} outside valid range 0-23")
    if not (0 <= minutes < 60):
        raise ValueError(f"Minutes {minutes} outside valid range 0-59")
    if not (0 <= seconds < 60):
        raise ValueError(f"Seconds {seconds} outside valid range 0-59")

    return hours + minutes / 60.0 + seconds / 3600.0


def _split_sexagesimal(value: float) -> Tuple[int, int, int]:
    """Split a non-negative value into whole units, minutes and rounded seconds."""
    total_seconds = int(round(value * 3600))
    whole, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return whole, minutes, seconds


def degrees_to_dms(degrees: float, deg_sep: str = "*", min_sep: str = ":") -> str:
    """Format decimal degrees for ``:Sd``, e.g. 20.5 -> ``"+20*30:00"``."""
    if math.isnan(degrees) or math.isinf(degrees):
        raise ValueError(f"Degrees cannot be NaN or infinite: {degrees}")

    sign = "-" if degrees < 0 else "+"
    deg, minutes, seconds = _split_sexagesimal(abs(degrees))
    return f"{sign}{deg:02d}{deg_sep}{minutes:02d}{min_sep}{seconds:02d}"


def hours_to_hms(hours: float) -> str:
    """Format decimal hours for ``:Sr``, e.g. 10.5 -> ``"10:30:00"``."""
    if math.isnan(hours) or math.isinf(hours):
        raise ValueError(f"Hours cannot be NaN or infinite: {hours}")

    h, m, s = _split_sexagesimal(hours % 24)
    # Rounding up from 23:59:59.5 wraps to the next day
    return f"{h % 24:02d}:{m:02d}:{s:02d}"


def angular_residual(first: Tuple[float, float], second: Tuple[float, float]) -> float:
    """
    Euclidean distance between two (RA hours, Dec degrees) samples.

    The RA difference is taken the short way round the 24h circle, so
    23:59:59 and 00:00:00 are one second apart.
    """
    ra_delta = (first[0] - second[0] + 12.0) % 24.0 - 12.0
    return math.hypot(ra_delta, first[1] - second[1])


class CoordinateTransform:
    """
    Alt/Az to topocentric equatorial conversion for a fixed site.

    Refraction is not applied, matching the mount's own pointing model.
    """

    def __init__(self, latitude: float, longitude: float, elevation: float = 0.0,
                 logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)

        if not (-90 <= latitude <= 90):
            raise InvalidValueException(f"Site latitude {latitude} outside range ±90°")
        if not (-180 <= longitude <= 180):
            raise InvalidValueException(f"Site longitude {longitude} outside range ±180°")

        self._location = EarthLocation(
            lat=latitude * u.deg,
            lon=longitude * u.deg,
            height=elevation * u.m
        )
        self._logger.debug(f"Site location: {latitude:.6f}°, {longitude:.6f}°, {elevation:.1f}m")

    @property
    def location(self) -> EarthLocation:
        return self._location

    def _frames(self, when: Optional[Time]) -> Tuple[AltAz, GCRS]:
        obstime = when if when is not None else Time.now()
        altaz = AltAz(obstime=obstime, location=self._location)
        # Topocentric: GCRS as seen from the site, not the geocenter
        obsgeoloc, obsgeovel = self._location.get_gcrs_posvel(obstime)
        gcrs = GCRS(obstime=obstime, obsgeoloc=obsgeoloc, obsgeovel=obsgeovel)
        return altaz, gcrs

    def altaz_to_radec(self, azimuth: float, altitude: float,
                       when: Optional[Time] = None) -> Tuple[float, float]:
        """
        Convert Alt/Az to topocentric RA/Dec of date.

        Args:
            azimuth: Azimuth in degrees (0-360)
            altitude: Altitude in degrees (-90 to +90)
            when: Observation time, default now

        Returns:
            Tuple of (right_ascension_hours, declination_degrees)

        Raises:
            InvalidValueException: Coordinates out of range
            DriverException: astropy could not perform the transform
        """
        if not (0 <= azimuth <= 360):
            raise InvalidValueException(f"Azimuth {azimuth} outside range 0-360")
        if not (-90 <= altitude <= 90):
            raise InvalidValueException(f"Altitude {altitude} outside range ±90")

        altaz_frame, gcrs_frame = self._frames(when)
        try:
            coord = SkyCoord(az=azimuth * u.deg, alt=altitude * u.deg, frame=altaz_frame)
            equatorial = coord.transform_to(gcrs_frame)
        except (ValueError, u.UnitsError) as ex:
            raise DriverException(f"Alt/Az to RA/Dec conversion failed: {ex}") from ex

        ra_hours = equatorial.ra.hour % 24
        self._logger.debug(
            f"Alt/Az ({azimuth:.4f}, {altitude:.4f}) -> RA/Dec ({ra_hours:.6f}h, "
            f"{equatorial.dec.degree:.6f}°)"
        )
        return ra_hours, equatorial.dec.degree

    def radec_to_altaz(self, right_ascension: float, declination: float,
                       when: Optional[Time] = None) -> Tuple[float, float]:
        """
        Convert topocentric RA/Dec of date to Alt/Az.

        Returns:
            Tuple of (azimuth_degrees, altitude_degrees)
        """
        if not (0 <= right_ascension < 24):
            raise InvalidValueException(f"Right ascension {right_ascension} outside range 0-24")
        if not (-90 <= declination <= 90):
            raise InvalidValueException(f"Declination {declination} outside range ±90")

        altaz_frame, gcrs_frame = self._frames(when)
        try:
            coord = SkyCoord(ra=right_ascension * u.hour, dec=declination * u.deg, frame=gcrs_frame)
            horizontal = coord.transform_to(altaz_frame)
        except (ValueError, u.UnitsError) as ex:
            raise DriverException(f"RA/Dec to Alt/Az conversion failed: {ex}") from ex

        return horizontal.az.degree % 360, horizontal.alt.degree
