# File: tts160_telemetry.py
"""Position and status queries against the TTS160."""

import logging
from typing import Optional, Tuple

from exceptions import ProtocolError
from tts160_serial import SerialManager
from tts160_transform import dms_to_degrees, hms_to_hours
from tts160_types import CommandType


class MountTelemetry:
    """
    Read-only views of the mount used by the controllers and the device.

    Every read is a fresh round trip through the ``SerialManager``; nothing is
    cached here.
    """

    def __init__(self, serial_manager: SerialManager, logger: Optional[logging.Logger] = None):
        self._serial = serial_manager
        self._logger = logger or logging.getLogger(__name__)

    def _query(self, command: str) -> str:
        return self._serial.send_command(command, CommandType.STRING)

    def _parse(self, command: str, reply: str, parser) -> float:
        try:
            return parser(reply)
        except ValueError as ex:
            self._logger.error(f"Malformed reply to {command}: '{reply}' ({ex})")
            raise ProtocolError(f"Malformed reply to {command}: '{reply}'") from ex

    def tracking(self) -> bool:
        """Return True if the mount reports sidereal-style tracking active."""
        reply = self._query(':GW#')
        if len(reply) < 2:
            raise ProtocolError(f"Malformed reply to :GW#: '{reply}'")
        tracking = reply[1] == 'T'
        self._logger.debug(f"Tracking status '{reply}' -> {tracking}")
        return tracking

    def parked(self) -> bool:
        """Return True if the mount reports itself parked."""
        parked = bool(self._serial.send_command(':*Pq#', CommandType.BOOL))
        self._logger.debug(f"Park status -> {parked}")
        return parked

    def right_ascension(self) -> float:
        """Current RA in hours."""
        return self._parse(':GR#', self._query(':GR#'), hms_to_hours)

    def declination(self) -> float:
        """Current Dec in degrees."""
        return self._parse(':GD#', self._query(':GD#'), dms_to_degrees)

    def position(self) -> Tuple[float, float]:
        """Current (RA hours, Dec degrees) sample."""
        return self.right_ascension(), self.declination()

    def altitude(self) -> float:
        return self._parse(':GA#', self._query(':GA#'), dms_to_degrees)

    def azimuth(self) -> float:
        return self._parse(':GZ#', self._query(':GZ#'), dms_to_degrees)

    def sidereal_time(self) -> float:
        return self._parse(':GS#', self._query(':GS#'), hms_to_hours)

    def site_latitude(self) -> float:
        return self._parse(':Gt#', self._query(':Gt#'), dms_to_degrees)

    def site_longitude(self) -> float:
        """Site longitude in degrees, east positive.

        LX200 reports longitude west positive, so the sign is flipped.
        """
        return -self._parse(':Gg#', self._query(':Gg#'), dms_to_degrees)
