# -*- coding: utf-8 -*-
# -----------------------------------------------------------------------------
# TTS160config.py - TTS160 persistent driver profile.  Adapted from Alpyca's
# config.py
#
# Author:   Reid W. Smythe <rwsmythe@gmail.com> (rws)
#
# Python Compatibility: Requires Python 3.7 or later
# GitHub: https://github.com/ASCOMInitiative/AlpycaDevice
#
# -----------------------------------------------------------------------------
# MIT License
#
# Copyright (c) 2022-2024 Bob Denny
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
# -----------------------------------------------------------------------------

from dataclasses import dataclass
from typing import Optional

from config import TomlConfig
from tts160_types import DriveRates


class TTS160ConfigError(Exception):
    """Custom exception for TTS160 configuration errors"""
    pass


@dataclass(frozen=True)
class DriverSettings:
    """Profile values read once at connect and cached for the session."""
    slew_settle_time: float
    pulse_guide_altitude_compensation: bool
    pulse_guide_max_compensation: int
    pulse_guide_compensation_buffer: int
    tracking_rate_on_connect: Optional[DriveRates]


class TTS160Config(TomlConfig):
    """Device profile with thread-safe TOML persistence.

    For docker-based installations, looks for /alpyca/TTS160config.toml
    first, with any settings there overriding ./TTS160config.toml.

    Attributes:
        dev_port: Device communication port
        site_elevation: Observatory elevation
        site_latitude: Observatory latitude
        site_longitude: Observatory longitude
        slew_settle_time: Seconds to report slewing after a GoTo arrives
        pulse_guide_altitude_compensation: Stretch E/W pulses by 1/cos(alt)
        pulse_guide_max_compensation: Largest allowed stretch in ms
        pulse_guide_compensation_buffer: Margin under the stretch limit in ms
        tracking_rate_on_connect: Rate applied at connect, or None to leave it
    """

    DEFAULT_CONFIG_FILE = 'TTS160config.toml'
    OVERRIDE_CONFIG_PATH = '/alpyca/TTS160config.toml'
    error_class = TTS160ConfigError

    DEVICE_SECTION = 'device'
    SITE_SECTION = 'site'
    DRIVER_SECTION = 'driver'

    TRACKING_RATE_NAMES = {
        'sidereal': DriveRates.driveSidereal,
        'lunar': DriveRates.driveLunar,
        'solar': DriveRates.driveSolar,
    }

    def snapshot(self) -> DriverSettings:
        """Capture the driver settings used for one connection."""
        with self._lock:
            return DriverSettings(
                slew_settle_time=self.slew_settle_time,
                pulse_guide_altitude_compensation=self.pulse_guide_altitude_compensation,
                pulse_guide_max_compensation=self.pulse_guide_max_compensation,
                pulse_guide_compensation_buffer=self.pulse_guide_compensation_buffer,
                tracking_rate_on_connect=self.tracking_rate_on_connect,
            )

    # --------------
    # Device Section
    # --------------

    @property
    def dev_port(self) -> str:
        """Serial port the mount is attached to."""
        return self._get_toml(self.DEVICE_SECTION, 'dev_port') or 'COM1'

    @dev_port.setter
    def dev_port(self, value: str) -> None:
        self._put_toml(self.DEVICE_SECTION, 'dev_port', value)

    # --------------
    # Site Section
    # --------------

    @property
    def site_elevation(self) -> float:
        return float(self._get_toml(self.SITE_SECTION, 'site_elevation', 0.0))

    @site_elevation.setter
    def site_elevation(self, value: float) -> None:
        self._put_toml(self.SITE_SECTION, 'site_elevation', value)

    @property
    def site_latitude(self) -> float:
        return float(self._get_toml(self.SITE_SECTION, 'site_latitude', 0.0))

    @site_latitude.setter
    def site_latitude(self, value: float) -> None:
        self._put_toml(self.SITE_SECTION, 'site_latitude', value)

    @property
    def site_longitude(self) -> float:
        """Site longitude, east positive."""
        return float(self._get_toml(self.SITE_SECTION, 'site_longitude', 0.0))

    @site_longitude.setter
    def site_longitude(self, value: float) -> None:
        self._put_toml(self.SITE_SECTION, 'site_longitude', value)

    #-----------------
    # Driver Section
    #-----------------

    @property
    def slew_settle_time(self) -> float:
        return float(self._get_toml(self.DRIVER_SECTION, 'slew_settle_time', 2))

    @slew_settle_time.setter
    def slew_settle_time(self, value: float) -> None:
        self._put_toml(self.DRIVER_SECTION, 'slew_settle_time', value)

    @property
    def pulse_guide_altitude_compensation(self) -> bool:
        return bool(self._get_toml(self.DRIVER_SECTION, 'pulse_guide_altitude_compensation', False))

    @pulse_guide_altitude_compensation.setter
    def pulse_guide_altitude_compensation(self, value: bool) -> None:
        self._put_toml(self.DRIVER_SECTION, 'pulse_guide_altitude_compensation', value)

    @property
    def pulse_guide_max_compensation(self) -> int:
        return int(self._get_toml(self.DRIVER_SECTION, 'pulse_guide_max_compensation', 1000))

    @pulse_guide_max_compensation.setter
    def pulse_guide_max_compensation(self, value: int) -> None:
        self._put_toml(self.DRIVER_SECTION, 'pulse_guide_max_compensation', value)

    @property
    def pulse_guide_compensation_buffer(self) -> int:
        return int(self._get_toml(self.DRIVER_SECTION, 'pulse_guide_compensation_buffer', 20))

    @pulse_guide_compensation_buffer.setter
    def pulse_guide_compensation_buffer(self, value: int) -> None:
        self._put_toml(self.DRIVER_SECTION, 'pulse_guide_compensation_buffer', value)

    @property
    def tracking_rate_on_connect(self) -> Optional[DriveRates]:
        """Tracking rate to select at connect: 'sidereal', 'lunar', 'solar' or 'none'."""
        name = str(self._get_toml(self.DRIVER_SECTION, 'tracking_rate_on_connect', 'none')).lower()
        if name in ('', 'none'):
            return None
        try:
            return self.TRACKING_RATE_NAMES[name]
        except KeyError as ex:
            raise TTS160ConfigError(f"Unknown tracking_rate_on_connect value: '{name}'") from ex

    @tracking_rate_on_connect.setter
    def tracking_rate_on_connect(self, value: Optional[DriveRates]) -> None:
        names = {rate: name for name, rate in self.TRACKING_RATE_NAMES.items()}
        self._put_toml(self.DRIVER_SECTION, 'tracking_rate_on_connect', names.get(value, 'none'))
